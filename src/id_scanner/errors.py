"""Typed failures raised by the capture, store and export services."""

from enum import StrEnum


class IdScannerError(Exception):
    """Base class for all expected service failures."""

    code = "error"


class ValidationError(IdScannerError):
    """A record is missing fields required for persistence."""

    code = "validation_error"

    def __init__(self, missing_fields: list[str]) -> None:
        self.missing_fields = missing_fields
        super().__init__(f"Missing required fields: {', '.join(missing_fields)}")


class StoreUnavailable(IdScannerError):
    """The remote record store could not be reached or rejected the call."""

    code = "store_unavailable"


class NotFound(IdScannerError):
    """No entity exists for the requested identifier."""

    code = "not_found"

    def __init__(self, identifier: object, kind: str = "Record") -> None:
        self.identifier = identifier
        super().__init__(f"{kind} {identifier} not found")


class ExtractionFailureKind(StrEnum):
    """Declared failure modes of an extraction backend."""

    UNAVAILABLE = "unavailable"
    UNRECOGNIZED = "unrecognized"
    TIMEOUT = "timeout"


class ExtractionFailure(IdScannerError):
    """Extraction of document fields from an image failed."""

    code = "extraction_failure"

    def __init__(self, kind: ExtractionFailureKind, message: str = "") -> None:
        self.kind = kind
        super().__init__(message or f"Extraction failed: {kind.value}")


class CaptureBusy(IdScannerError):
    """An image was acquired while another one is still being processed."""

    code = "capture_busy"


class InvalidCaptureTransition(IdScannerError):
    """The capture session cannot accept the requested action in its state."""

    code = "invalid_transition"


class CameraUnavailable(IdScannerError):
    """The camera device failed to open or to deliver a frame."""

    code = "camera_unavailable"


class ExportFailure(IdScannerError):
    """The export artifact could not be produced."""

    code = "export_failure"


class ShareUnavailable(IdScannerError):
    """Handing the export artifact to the share mechanism failed."""

    code = "share_unavailable"


class EmptyInputError(IdScannerError):
    """There is nothing to export."""

    code = "empty_input"
