"""Models for document field extraction."""

from pydantic import BaseModel

FRONT_FIELDS = ("name", "date_of_birth", "id_number", "address")
BACK_FIELDS = ("issue_date", "expiry_date")


class ExtractionResult(BaseModel):
    """Partial set of record fields recovered from one image."""

    name: str | None = None
    date_of_birth: str | None = None
    id_number: str | None = None
    address: str | None = None
    issue_date: str | None = None
    expiry_date: str | None = None

    def recovered(self, fields: tuple[str, ...]) -> dict[str, str]:
        """Return non-empty values for the requested fields."""
        values: dict[str, str] = {}
        for field in fields:
            value = getattr(self, field)
            if value:
                values[field] = value
        return values
