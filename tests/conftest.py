"""Shared test fixtures."""

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from pathlib import Path

import pytest

from id_scanner.adapters.canned_extraction_adapter import CannedExtractionAdapter
from id_scanner.config import Settings
from id_scanner.containers import AppContainer
from id_scanner.domain.capture import ImageReference
from id_scanner.domain.extraction import ExtractionResult
from id_scanner.domain.records import IDScanRecord
from id_scanner.errors import CameraUnavailable, ShareUnavailable
from id_scanner.services.capture import (
    CameraDevice,
    CaptureOrchestrator,
    CaptureSessionManager,
)
from id_scanner.services.export import ExportService, ShareTarget
from id_scanner.services.extraction import ExtractionAdapter, VisionClient
from id_scanner.services.records import RecordRepository, RecordStore

SCAN_TIME = datetime(2024, 1, 1, 10, 0, tzinfo=UTC)


def make_record(**overrides: object) -> IDScanRecord:
    values: dict[str, object] = {
        "name": "John Doe",
        "date_of_birth": "1990-01-01",
        "id_number": "ID12345678",
        "address": "123 Main St",
        "issue_date": "2020-01-01",
        "expiry_date": "2025-01-01",
        "scan_date": SCAN_TIME,
    }
    values.update(overrides)
    return IDScanRecord(**values)


@dataclass
class InMemoryRecordRepository(RecordRepository):
    """In-memory record repository for tests."""

    records: dict[int, IDScanRecord] = field(default_factory=dict)
    next_id: int = 1

    def insert_record(self, record: IDScanRecord) -> int:
        record_id = self.next_id
        self.next_id += 1
        self.records[record_id] = record.with_id(record_id)
        return record_id

    def list_records(self) -> list[IDScanRecord]:
        return sorted(
            self.records.values(), key=lambda record: record.scan_date, reverse=True
        )

    def get_record(self, record_id: int) -> IDScanRecord | None:
        return self.records.get(record_id)

    def delete_record(self, record_id: int) -> bool:
        return self.records.pop(record_id, None) is not None


@dataclass
class ScriptedExtractionAdapter(ExtractionAdapter):
    """Extraction adapter returning queued results or raising queued errors."""

    outcomes: list[ExtractionResult | Exception] = field(default_factory=list)
    requested: list[tuple[str, ...]] = field(default_factory=list)

    async def extract(
        self, image: ImageReference, fields: tuple[str, ...]
    ) -> ExtractionResult:
        self.requested.append(fields)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@dataclass
class BlockingExtractionAdapter(ExtractionAdapter):
    """Extraction adapter that waits until released."""

    result: ExtractionResult = field(
        default_factory=lambda: ExtractionResult(
            name="John Doe",
            date_of_birth="1990-01-01",
            id_number="ID12345678",
            address="123 Main St",
        )
    )
    started: asyncio.Event = field(default_factory=asyncio.Event)
    release: asyncio.Event = field(default_factory=asyncio.Event)

    async def extract(
        self, image: ImageReference, fields: tuple[str, ...]
    ) -> ExtractionResult:
        self.started.set()
        await self.release.wait()
        return self.result


@dataclass
class FakeCamera(CameraDevice):
    """Camera that returns numbered frames and records its lifecycle."""

    fail_next: bool = False
    block: asyncio.Event | None = None
    opened: int = 0
    closed: int = 0
    frames: int = 0

    async def open(self) -> None:
        self.opened += 1

    async def capture_frame(self) -> ImageReference:
        if self.block is not None:
            await self.block.wait()
        if self.fail_next:
            self.fail_next = False
            raise CameraUnavailable("shutter jammed")
        self.frames += 1
        return ImageReference(uri=f"camera://frame-{self.frames}")

    async def close(self) -> None:
        self.closed += 1


@dataclass
class FakeShareTarget(ShareTarget):
    """Share target that records hand-offs or fails on demand."""

    fail: bool = False
    shared: list[tuple[Path, str, str]] = field(default_factory=list)

    async def share(self, path: Path, title: str, message: str) -> None:
        if self.fail:
            raise ShareUnavailable("share sheet unavailable")
        self.shared.append((path, title, message))


@dataclass
class FakeVisionClient(VisionClient):
    """Fake vision client returning a fixed payload."""

    payload: dict[str, object] = field(
        default_factory=lambda: {
            "name": "Jane Roe",
            "date_of_birth": "1985-05-05",
            "id_number": "X998877",
            "address": "1 High St",
        }
    )
    calls: list[dict[str, object]] = field(default_factory=list)

    async def extract(  # noqa: PLR0913
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        image_data_url: str,
        schema: dict[str, object],
        prompt: str,
    ) -> dict[str, object]:
        self.calls.append(
            {
                "model": model,
                "image_data_url": image_data_url,
                "schema": schema,
                "prompt": prompt,
            }
        )
        return self.payload


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="header.payload.signature",
        export_dir=tmp_path / "exports",
    )


@pytest.fixture
def record_repository() -> InMemoryRecordRepository:
    return InMemoryRecordRepository()


@pytest.fixture
def share_target() -> FakeShareTarget:
    return FakeShareTarget()


@pytest.fixture
def container(
    settings: Settings,
    record_repository: InMemoryRecordRepository,
    share_target: FakeShareTarget,
) -> AppContainer:
    extraction_adapter = CannedExtractionAdapter()
    capture_sessions = CaptureSessionManager(
        lambda: CaptureOrchestrator(
            extraction_adapter=extraction_adapter,
            clock=lambda: SCAN_TIME,
        )
    )
    export_service = ExportService(
        output_dir=settings.export_dir,
        share_target=share_target,
        datetime_format="%Y-%m-%d %H:%M",
        today=lambda: date(2024, 1, 2),
    )

    async def close_resources() -> None:
        await capture_sessions.close_all()

    return AppContainer(
        settings=settings,
        record_store=RecordStore(record_repository),
        extraction_adapter=extraction_adapter,
        capture_sessions=capture_sessions,
        export_service=export_service,
        close_resources=close_resources,
    )
