"""Two-sided capture state machine for identity documents."""

import asyncio
import logging
import time
from collections.abc import Callable
from contextlib import AsyncExitStack
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID, uuid4

from id_scanner.domain.capture import (
    CaptureSession,
    CaptureSignal,
    CaptureState,
    CaptureStep,
    ImageReference,
    Side,
)
from id_scanner.domain.extraction import BACK_FIELDS, FRONT_FIELDS
from id_scanner.errors import (
    CameraUnavailable,
    CaptureBusy,
    ExtractionFailure,
    ExtractionFailureKind,
    InvalidCaptureTransition,
    NotFound,
)
from id_scanner.services.extraction import ExtractionAdapter

_logger = logging.getLogger(__name__)

_BUSY_STATES = {CaptureState.CAPTURING, CaptureState.EXTRACTING}
_TERMINAL_STATES = {CaptureState.FINISHED, CaptureState.CANCELLED}


class CameraDevice(Protocol):
    """Camera that delivers frames for capture.

    Implementations raise ``CameraUnavailable`` when the device fails.
    """

    async def open(self) -> None:
        """Acquire the camera."""

    async def capture_frame(self) -> ImageReference:
        """Take a picture and return a reference to it."""

    async def close(self) -> None:
        """Release the camera."""


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class CaptureOrchestrator:
    """Drives front then back capture and yields one draft record.

    Acquisition is accepted only while idle or after an error, so at most one
    image is in flight per session. Extraction and camera failures are
    returned as ``error`` steps; accumulated fields from a completed side
    survive them. Cancellation discards the whole session.
    """

    extraction_adapter: ExtractionAdapter
    camera: CameraDevice | None = None
    extraction_timeout_seconds: float = 30.0
    clock: Callable[[], datetime] = _utc_now
    session: CaptureSession | None = field(default_factory=CaptureSession)
    _resources: AsyncExitStack = field(
        default_factory=AsyncExitStack, init=False, repr=False
    )
    _camera_open: bool = field(default=False, init=False, repr=False)

    async def __aenter__(self) -> "CaptureOrchestrator":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @property
    def state(self) -> CaptureState:
        """Current state; ``cancelled`` once the session is discarded."""
        if self.session is None:
            return CaptureState.CANCELLED
        return self.session.state

    @property
    def side(self) -> Side | None:
        """Side currently awaited or processed."""
        return self.session.side if self.session else None

    @property
    def accumulated_fields(self) -> dict[str, str]:
        """Field values merged from completed sides."""
        return dict(self.session.fields) if self.session else {}

    async def capture_from_camera(self) -> CaptureStep:
        """Take a frame from the camera and process it for the current side."""
        if self.camera is None:
            raise CameraUnavailable("No camera device configured")
        session = self._begin_acquisition()
        failure: CameraUnavailable | None = None
        try:
            image = await self._acquire_frame(self.camera)
        except CameraUnavailable as exc:
            failure = exc
        except asyncio.CancelledError:
            await self.cancel()
            raise
        except Exception as exc:
            _logger.exception("Camera raised an unexpected error")
            failure = CameraUnavailable(f"Camera failed: {exc}")
        if self.session is not session:
            return self._cancelled_step(session)
        if failure is not None:
            self._transition(session, CaptureState.ERROR)
            _logger.warning("Camera capture failed: %s", failure)
            return CaptureStep(
                state=session.state,
                side=session.side,
                signal=CaptureSignal.FAILED,
                failure=failure,
            )
        return await self._process(session, image)

    async def submit_image(self, image: ImageReference) -> CaptureStep:
        """Process an image picked from a library for the current side."""
        session = self._begin_acquisition()
        return await self._process(session, image)

    def retry(self) -> CaptureStep:
        """Leave the error state, dropping only the failed side's image."""
        session = self._require_session()
        if session.state is not CaptureState.ERROR:
            raise InvalidCaptureTransition(
                f"Cannot retry from state {session.state.value}"
            )
        self._reset_side(session)
        return CaptureStep(state=session.state, side=session.side)

    async def cancel(self) -> CaptureStep:
        """Discard the session and release the camera."""
        session = self.session
        side = session.side if session else Side.FRONT
        if session is not None:
            self._transition(session, CaptureState.CANCELLED)
            self.session = None
        await self._release_camera()
        return CaptureStep(
            state=CaptureState.CANCELLED, side=side, signal=CaptureSignal.CANCELLED
        )

    async def close(self) -> None:
        """Release resources, cancelling any unfinished session."""
        if self.state in _TERMINAL_STATES:
            await self._release_camera()
            return
        await self.cancel()

    def _begin_acquisition(self) -> CaptureSession:
        session = self._require_session()
        if session.state in _BUSY_STATES:
            raise CaptureBusy("A capture is already in progress")
        if session.state is CaptureState.FINISHED:
            raise InvalidCaptureTransition("Capture already finished")
        if session.state is CaptureState.ERROR:
            self._reset_side(session)
        self._transition(session, CaptureState.CAPTURING)
        return session

    async def _acquire_frame(self, camera: CameraDevice) -> ImageReference:
        if not self._camera_open:
            await camera.open()
            self._resources.push_async_callback(camera.close)
            self._camera_open = True
        return await camera.capture_frame()

    async def _process(
        self, session: CaptureSession, image: ImageReference
    ) -> CaptureStep:
        session.last_image = image
        self._transition(session, CaptureState.EXTRACTING)
        fields = FRONT_FIELDS if session.side is Side.FRONT else BACK_FIELDS
        captured_at = self.clock()
        failure: ExtractionFailure | None = None
        try:
            result = await asyncio.wait_for(
                self.extraction_adapter.extract(image, fields),
                timeout=self.extraction_timeout_seconds,
            )
        except TimeoutError:
            failure = ExtractionFailure(
                ExtractionFailureKind.TIMEOUT,
                f"Extraction exceeded {self.extraction_timeout_seconds}s",
            )
        except ExtractionFailure as exc:
            failure = exc
        except asyncio.CancelledError:
            await self.cancel()
            raise
        except Exception as exc:
            _logger.exception("Extraction adapter raised an unexpected error")
            failure = ExtractionFailure(ExtractionFailureKind.UNAVAILABLE, str(exc))

        if self.session is not session:
            return self._cancelled_step(session)
        if failure is not None:
            self._transition(session, CaptureState.ERROR)
            _logger.warning(
                "Extraction failed: side=%s kind=%s",
                session.side.value,
                failure.kind.value,
            )
            return CaptureStep(
                state=session.state,
                side=session.side,
                signal=CaptureSignal.FAILED,
                failure=failure,
            )

        session.fields.update(result.recovered(fields))
        if session.side is Side.FRONT:
            session.scan_date = captured_at
            session.front_image = image
        self._transition(session, CaptureState.SIDE_COMPLETE)

        if session.side is Side.FRONT:
            session.side = Side.BACK
            self._reset_side(session)
            return CaptureStep(
                state=session.state,
                side=session.side,
                signal=CaptureSignal.CONTINUE_WITH_BACK,
            )

        draft = session.draft()
        self._transition(session, CaptureState.FINISHED)
        await self._release_camera()
        return CaptureStep(
            state=session.state,
            side=session.side,
            signal=CaptureSignal.REVIEW_DRAFT,
            draft=draft,
        )

    def _require_session(self) -> CaptureSession:
        if self.session is None:
            raise InvalidCaptureTransition("Capture session was cancelled")
        return self.session

    def _reset_side(self, session: CaptureSession) -> None:
        session.last_image = None
        self._transition(session, CaptureState.IDLE)

    def _transition(self, session: CaptureSession, state: CaptureState) -> None:
        _logger.info(
            "Capture transition: %s -> %s (side=%s)",
            session.state.value,
            state.value,
            session.side.value,
        )
        session.state = state
        session.history.append(state)

    def _cancelled_step(self, session: CaptureSession) -> CaptureStep:
        _logger.info("Discarding result for cancelled capture session")
        return CaptureStep(
            state=CaptureState.CANCELLED,
            side=session.side,
            signal=CaptureSignal.CANCELLED,
        )

    async def _release_camera(self) -> None:
        if not self._camera_open:
            return
        self._camera_open = False
        await self._resources.aclose()
        self._resources = AsyncExitStack()


@dataclass
class CaptureSessionManager:
    """Tracks in-flight capture sessions by id.

    Sessions untouched for ``session_ttl_seconds`` are treated as abandoned:
    lookups no longer find them and the next ``start`` releases them.
    """

    orchestrator_factory: Callable[[], CaptureOrchestrator]
    session_ttl_seconds: float = 900.0
    clock: Callable[[], float] = time.monotonic
    sessions: dict[UUID, CaptureOrchestrator] = field(default_factory=dict)
    _touched: dict[UUID, float] = field(default_factory=dict, init=False, repr=False)

    async def start(self) -> tuple[UUID, CaptureOrchestrator]:
        """Create a new capture session, releasing abandoned ones first."""
        await self.evict_expired()
        session_id = uuid4()
        self.sessions[session_id] = self.orchestrator_factory()
        self._touched[session_id] = self.clock()
        _logger.info("Capture session started: %s", session_id)
        return session_id, self.sessions[session_id]

    def get(self, session_id: UUID) -> CaptureOrchestrator:
        """Return an in-flight session or raise ``NotFound``."""
        orchestrator = self.sessions.get(session_id)
        if orchestrator is None or self._expired(session_id):
            raise NotFound(session_id, kind="Capture session")
        self._touched[session_id] = self.clock()
        return orchestrator

    async def submit_image(
        self, session_id: UUID, image: ImageReference
    ) -> CaptureStep:
        """Process an image for a session, forgetting it once terminal."""
        step = await self.get(session_id).submit_image(image)
        if step.state in _TERMINAL_STATES:
            await self._forget(session_id)
        else:
            self._touched[session_id] = self.clock()
        return step

    def retry(self, session_id: UUID) -> CaptureStep:
        """Retry a failed side."""
        return self.get(session_id).retry()

    async def cancel(self, session_id: UUID) -> CaptureStep:
        """Cancel and forget a session."""
        step = await self.get(session_id).cancel()
        await self._forget(session_id)
        return step

    async def evict_expired(self) -> None:
        """Release sessions idle for longer than the configured TTL."""
        for session_id in [key for key in self.sessions if self._expired(key)]:
            _logger.info("Capture session expired: %s", session_id)
            await self._forget(session_id)

    async def close_all(self) -> None:
        """Release every tracked session."""
        for session_id in list(self.sessions):
            await self._forget(session_id)

    def _expired(self, session_id: UUID) -> bool:
        touched = self._touched.get(session_id)
        if touched is None:
            return False
        return self.clock() - touched > self.session_ttl_seconds

    async def _forget(self, session_id: UUID) -> None:
        self._touched.pop(session_id, None)
        orchestrator = self.sessions.pop(session_id, None)
        if orchestrator is not None:
            await orchestrator.close()
