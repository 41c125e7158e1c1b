"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import ClientOptions, create_client

from id_scanner.adapters.canned_extraction_adapter import CannedExtractionAdapter
from id_scanner.adapters.openai_vision_client import OpenAIVisionClient
from id_scanner.adapters.share_targets import NullShareTarget, TelegramShareTarget
from id_scanner.adapters.supabase_record_repository import SupabaseRecordRepository
from id_scanner.config import Settings, sharing_enabled
from id_scanner.services.capture import CaptureOrchestrator, CaptureSessionManager
from id_scanner.services.export import ExportService, ShareTarget
from id_scanner.services.extraction import ExtractionAdapter, VisionExtractionAdapter
from id_scanner.services.records import RecordStore


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    record_store: RecordStore
    extraction_adapter: ExtractionAdapter
    capture_sessions: CaptureSessionManager
    export_service: ExportService
    close_resources: Callable[[], Awaitable[None]]


def build_extraction_adapter(settings: Settings) -> ExtractionAdapter:
    """Create the extraction adapter selected by configuration."""
    if settings.extraction_backend == "canned":
        return CannedExtractionAdapter()
    if settings.extraction_backend == "openai":
        if not settings.openai_api_key:
            raise ValueError("OPENAI_API_KEY is required for the openai backend")
        return VisionExtractionAdapter(
            client=OpenAIVisionClient.create(
                settings.openai_api_key, timeout=settings.extraction_timeout_seconds
            ),
            model=settings.openai_model,
            reasoning_effort=settings.openai_reasoning_effort,
            store=settings.openai_store,
        )
    raise ValueError(f"Unknown extraction backend: {settings.extraction_backend}")


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url,
        resolved_settings.supabase_service_key,
        options=ClientOptions(
            postgrest_client_timeout=resolved_settings.store_timeout_seconds
        ),
    )
    record_store = RecordStore(SupabaseRecordRepository(supabase_client))
    extraction_adapter = build_extraction_adapter(resolved_settings)

    def new_orchestrator() -> CaptureOrchestrator:
        return CaptureOrchestrator(
            extraction_adapter=extraction_adapter,
            extraction_timeout_seconds=resolved_settings.extraction_timeout_seconds,
        )

    capture_sessions = CaptureSessionManager(
        new_orchestrator,
        session_ttl_seconds=resolved_settings.capture_session_ttl_seconds,
    )

    share_target: ShareTarget
    telegram_target: TelegramShareTarget | None = None
    if sharing_enabled(resolved_settings):
        telegram_target = TelegramShareTarget.create(
            bot_token=str(resolved_settings.telegram_bot_token),
            chat_id=str(resolved_settings.telegram_share_chat_id),
        )
        share_target = telegram_target
    else:
        share_target = NullShareTarget()
    export_service = ExportService(
        output_dir=resolved_settings.export_dir,
        share_target=share_target,
        timezone=resolved_settings.export_timezone,
        datetime_format=resolved_settings.export_datetime_format,
    )

    async def close_resources() -> None:
        await capture_sessions.close_all()
        if telegram_target is not None:
            await telegram_target.close()

    return AppContainer(
        settings=resolved_settings,
        record_store=record_store,
        extraction_adapter=extraction_adapter,
        capture_sessions=capture_sessions,
        export_service=export_service,
        close_resources=close_resources,
    )
