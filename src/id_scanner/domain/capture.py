"""Domain models for two-sided document capture."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

from id_scanner.domain.records import IDScanRecord
from id_scanner.errors import IdScannerError


class Side(StrEnum):
    """Face of the physical document."""

    FRONT = "front"
    BACK = "back"


class CaptureState(StrEnum):
    """States of the capture state machine."""

    IDLE = "idle"
    CAPTURING = "capturing"
    EXTRACTING = "extracting"
    SIDE_COMPLETE = "side_complete"
    FINISHED = "finished"
    ERROR = "error"
    CANCELLED = "cancelled"


class CaptureSignal(StrEnum):
    """What the caller should do after a capture step."""

    CONTINUE_WITH_BACK = "continue_with_back"
    REVIEW_DRAFT = "review_draft"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ImageReference:
    """A captured image, from a camera frame or a picked library image."""

    uri: str
    content: bytes | None = None


@dataclass
class CaptureSession:
    """Transient progress of one front/back capture."""

    side: Side = Side.FRONT
    state: CaptureState = CaptureState.IDLE
    fields: dict[str, str] = field(default_factory=dict)
    last_image: ImageReference | None = None
    front_image: ImageReference | None = None
    scan_date: datetime | None = None
    history: list[CaptureState] = field(
        default_factory=lambda: [CaptureState.IDLE]
    )

    def draft(self) -> IDScanRecord:
        """Build the draft record from accumulated fields."""
        if self.scan_date is None:
            raise ValueError("Front side has not been captured")
        return IDScanRecord(
            name=self.fields.get("name", ""),
            date_of_birth=self.fields.get("date_of_birth", ""),
            id_number=self.fields.get("id_number", ""),
            address=self.fields.get("address", ""),
            issue_date=self.fields.get("issue_date"),
            expiry_date=self.fields.get("expiry_date"),
            scan_date=self.scan_date,
            image_uri=self.front_image.uri if self.front_image else None,
        )


@dataclass(frozen=True)
class CaptureStep:
    """Outcome of one capture action."""

    state: CaptureState
    side: Side
    signal: CaptureSignal | None = None
    draft: IDScanRecord | None = None
    failure: IdScannerError | None = None
