"""Extraction adapter returning fixed sample values."""

import asyncio
from dataclasses import dataclass, field

from id_scanner.domain.capture import ImageReference
from id_scanner.domain.extraction import ExtractionResult
from id_scanner.services.extraction import ExtractionAdapter


def _sample_values() -> dict[str, str]:
    return {
        "name": "John Doe",
        "date_of_birth": "1990-01-01",
        "id_number": "ID12345678",
        "address": "123 Main St, Anytown, USA",
        "issue_date": "2020-01-01",
        "expiry_date": "2025-01-01",
    }


@dataclass
class CannedExtractionAdapter(ExtractionAdapter):
    """Stand-in for a recognition backend, useful for demos and tests."""

    values: dict[str, str] = field(default_factory=_sample_values)
    delay_seconds: float = 0.0
    calls: list[ImageReference] = field(default_factory=list)

    async def extract(
        self, image: ImageReference, fields: tuple[str, ...]
    ) -> ExtractionResult:
        """Return the canned values for the requested fields."""
        self.calls.append(image)
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)
        return ExtractionResult(
            **{name: self.values[name] for name in fields if name in self.values}
        )
