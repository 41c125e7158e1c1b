"""Extraction boundary turning captured images into record fields."""

import base64
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import pydantic

from id_scanner.domain.capture import ImageReference
from id_scanner.domain.extraction import ExtractionResult
from id_scanner.errors import ExtractionFailure, ExtractionFailureKind

_FIELD_DESCRIPTIONS = {
    "name": "full name of the holder",
    "date_of_birth": "date of birth as YYYY-MM-DD",
    "id_number": "document or identity number",
    "address": "postal address of the holder",
    "issue_date": "date of issue as YYYY-MM-DD",
    "expiry_date": "date of expiry as YYYY-MM-DD",
}


class ExtractionAdapter(Protocol):
    """Pluggable capability deriving record fields from one image.

    A single call per invocation with no internal retries. Failures are
    raised as ``ExtractionFailure``.
    """

    async def extract(
        self, image: ImageReference, fields: tuple[str, ...]
    ) -> ExtractionResult:
        """Return the requested fields recovered from the image."""


class VisionClient(Protocol):
    """Interface for LLM vision extraction."""

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
        """Return structured vision extraction data."""


@dataclass
class VisionExtractionAdapter(ExtractionAdapter):
    """Extraction adapter that prompts a vision model with a strict schema."""

    client: VisionClient
    model: str
    reasoning_effort: str | None
    store: bool

    async def extract(
        self, image: ImageReference, fields: tuple[str, ...]
    ) -> ExtractionResult:
        """Extract the requested fields from an identity document image."""
        image_bytes = _load_image_bytes(image)
        labels = ", ".join(f"{name} ({_FIELD_DESCRIPTIONS[name]})" for name in fields)
        prompt = (
            "The image shows one side of an identity document. "
            f"Read these fields: {labels}. "
            "Use null for any field that is not visible."
        )
        raw = await self.client.extract(
            model=self.model,
            reasoning_effort=self.reasoning_effort,
            store=self.store,
            image_data_url=_to_data_url(image_bytes),
            schema=build_schema(fields),
            prompt=prompt,
        )
        try:
            result = ExtractionResult.model_validate(raw)
        except pydantic.ValidationError as exc:
            raise ExtractionFailure(
                ExtractionFailureKind.UNRECOGNIZED, "Malformed extraction output"
            ) from exc
        if not result.recovered(fields):
            raise ExtractionFailure(
                ExtractionFailureKind.UNRECOGNIZED, "No document fields recognized"
            )
        return result


def build_schema(fields: tuple[str, ...]) -> dict[str, object]:
    """Build a strict JSON schema for the requested fields."""
    return {
        "type": "object",
        "properties": {
            name: {"anyOf": [{"type": "string"}, {"type": "null"}]} for name in fields
        },
        "required": list(fields),
        "additionalProperties": False,
    }


def _load_image_bytes(image: ImageReference) -> bytes:
    if image.content is not None:
        return image.content
    path = Path(image.uri.removeprefix("file://"))
    try:
        return path.read_bytes()
    except OSError as exc:
        raise ExtractionFailure(
            ExtractionFailureKind.UNRECOGNIZED, f"Image not readable: {image.uri}"
        ) from exc


def _to_data_url(image_bytes: bytes) -> str:
    """Convert bytes to a base64 data URL for image input."""
    mime_type = _detect_mime_type(image_bytes)
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def _detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"
