"""Pydantic models for HTTP request payloads."""

import base64
import binascii

from pydantic import (
    AwareDatetime,
    BaseModel,
    Field,
    field_validator,
    model_validator,
)

from id_scanner.domain.capture import ImageReference
from id_scanner.domain.records import IDScanRecord


class ImageUpload(BaseModel):
    """Captured image sent by a client, by reference or inline."""

    uri: str | None = None
    content_base64: str | None = None

    @field_validator("content_base64")
    @classmethod
    def _check_base64(cls, value: str | None) -> str | None:
        if value is None:
            return value
        try:
            base64.b64decode(value, validate=True)
        except binascii.Error as exc:
            raise ValueError("content_base64 is not valid base64") from exc
        return value

    @model_validator(mode="after")
    def _require_image(self) -> "ImageUpload":
        if not self.uri and not self.content_base64:
            raise ValueError("Either uri or content_base64 is required")
        return self

    def to_reference(self) -> ImageReference:
        """Convert the payload into an image reference."""
        content = base64.b64decode(self.content_base64) if self.content_base64 else None
        return ImageReference(uri=self.uri or "upload://inline", content=content)


class RecordPayload(BaseModel):
    """Reviewed draft submitted for persistence."""

    name: str = ""
    date_of_birth: str = ""
    id_number: str = ""
    address: str = ""
    issue_date: str | None = None
    expiry_date: str | None = None
    scan_date: AwareDatetime
    image_uri: str | None = None
    additional_info: str | None = None

    def to_record(self) -> IDScanRecord:
        """Convert the payload into a draft record."""
        return IDScanRecord(**self.model_dump())


class ExportRequest(BaseModel):
    """What to export: stored records (all when omitted) or unsaved drafts."""

    record_ids: list[int] | None = Field(default=None)
    drafts: list[RecordPayload] | None = Field(default=None)

    @model_validator(mode="after")
    def _single_source(self) -> "ExportRequest":
        if self.record_ids is not None and self.drafts is not None:
            raise ValueError("Provide either record_ids or drafts, not both")
        return self
