"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import UUID

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from id_scanner.api.models import ExportRequest, ImageUpload, RecordPayload
from id_scanner.app_logging import configure_logging
from id_scanner.containers import AppContainer
from id_scanner.domain.capture import CaptureStep
from id_scanner.domain.records import IDScanRecord
from id_scanner.errors import (
    CameraUnavailable,
    CaptureBusy,
    EmptyInputError,
    ExportFailure,
    ExtractionFailure,
    IdScannerError,
    InvalidCaptureTransition,
    NotFound,
    ShareUnavailable,
    StoreUnavailable,
    ValidationError,
)

_STATUS_CODES: dict[type[IdScannerError], int] = {
    ValidationError: status.HTTP_422_UNPROCESSABLE_CONTENT,
    NotFound: status.HTTP_404_NOT_FOUND,
    StoreUnavailable: status.HTTP_503_SERVICE_UNAVAILABLE,
    CameraUnavailable: status.HTTP_503_SERVICE_UNAVAILABLE,
    ExtractionFailure: status.HTTP_502_BAD_GATEWAY,
    ShareUnavailable: status.HTTP_502_BAD_GATEWAY,
    CaptureBusy: status.HTTP_409_CONFLICT,
    InvalidCaptureTransition: status.HTTP_409_CONFLICT,
    EmptyInputError: status.HTTP_409_CONFLICT,
    ExportFailure: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.exception_handler(IdScannerError)
    async def handle_service_error(
        request: Request, exc: IdScannerError
    ) -> JSONResponse:
        status_code = _STATUS_CODES.get(
            type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR
        )
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status_code,
            content={"status": "error", "error": exc.code, "detail": str(exc)},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/captures", status_code=status.HTTP_201_CREATED)
    async def start_capture(request: Request) -> dict[str, object]:
        """Start a two-sided capture session."""
        state_container: AppContainer = request.app.state.container
        session_id, orchestrator = await state_container.capture_sessions.start()
        return {
            "status": "ok",
            "session_id": str(session_id),
            "state": orchestrator.state.value,
            "side": orchestrator.side.value if orchestrator.side else None,
        }

    @app.post("/captures/{session_id}/images")
    async def submit_capture_image(
        session_id: UUID, upload: ImageUpload, request: Request
    ) -> dict[str, object]:
        """Process a captured image for the session's current side."""
        state_container: AppContainer = request.app.state.container
        step = await state_container.capture_sessions.submit_image(
            session_id, upload.to_reference()
        )
        return _serialize_step(step)

    @app.post("/captures/{session_id}/retry")
    async def retry_capture(session_id: UUID, request: Request) -> dict[str, object]:
        """Retry the side that failed."""
        state_container: AppContainer = request.app.state.container
        return _serialize_step(state_container.capture_sessions.retry(session_id))

    @app.delete("/captures/{session_id}")
    async def cancel_capture(session_id: UUID, request: Request) -> dict[str, object]:
        """Cancel a capture session, discarding partial results."""
        state_container: AppContainer = request.app.state.container
        step = await state_container.capture_sessions.cancel(session_id)
        return _serialize_step(step)

    @app.get("/records")
    async def list_records(request: Request) -> dict[str, object]:
        """Return all records, newest scan first."""
        state_container: AppContainer = request.app.state.container
        records = state_container.record_store.list_all()
        return {"status": "ok", "records": [_serialize_record(r) for r in records]}

    @app.get("/records/{record_id}")
    async def get_record(record_id: int, request: Request) -> dict[str, object]:
        """Return a single record."""
        state_container: AppContainer = request.app.state.container
        record = state_container.record_store.get(record_id)
        return {"status": "ok", "record": _serialize_record(record)}

    @app.post("/records", status_code=status.HTTP_201_CREATED)
    async def create_record(
        payload: RecordPayload, request: Request
    ) -> dict[str, object]:
        """Persist a reviewed draft."""
        state_container: AppContainer = request.app.state.container
        record_id = state_container.record_store.create(payload.to_record())
        return {"status": "ok", "id": record_id}

    @app.delete("/records/{record_id}")
    async def delete_record(record_id: int, request: Request) -> dict[str, object]:
        """Delete a record."""
        state_container: AppContainer = request.app.state.container
        state_container.record_store.delete(record_id)
        return {"status": "ok", "id": record_id}

    @app.post("/exports")
    async def export_records(
        export_request: ExportRequest, request: Request
    ) -> dict[str, object]:
        """Export stored records or reviewed drafts to a spreadsheet and share it."""
        state_container: AppContainer = request.app.state.container
        store = state_container.record_store
        if export_request.drafts is not None:
            records = [draft.to_record() for draft in export_request.drafts]
        elif export_request.record_ids is None:
            records = store.list_all()
        else:
            records = store.get_many(export_request.record_ids)
        if not records:
            raise EmptyInputError("There are no scans to export.")
        result = await state_container.export_service.export(records)
        return {
            "status": "ok",
            "path": str(result.path),
            "rows": result.row_count,
            "shared": result.shared,
            "notice": result.notice,
        }

    return app


def _serialize_record(record: IDScanRecord) -> dict[str, object]:
    return {
        "id": record.id,
        "name": record.name,
        "date_of_birth": record.date_of_birth,
        "id_number": record.id_number,
        "address": record.address,
        "issue_date": record.issue_date,
        "expiry_date": record.expiry_date,
        "scan_date": record.scan_date.isoformat(),
        "image_uri": record.image_uri,
        "additional_info": record.additional_info,
    }


def _serialize_step(step: CaptureStep) -> dict[str, object]:
    payload: dict[str, object] = {
        "status": "error" if step.failure else "ok",
        "state": step.state.value,
        "side": step.side.value,
        "signal": step.signal.value if step.signal else None,
        "draft": _serialize_record(step.draft) if step.draft else None,
    }
    if step.failure is not None:
        payload["error"] = step.failure.code
        payload["detail"] = str(step.failure)
        kind = getattr(step.failure, "kind", None)
        if kind is not None:
            payload["kind"] = kind.value
    return payload
