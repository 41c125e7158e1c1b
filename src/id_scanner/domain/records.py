"""Domain models for scanned identity documents."""

from dataclasses import dataclass, replace
from datetime import datetime

REQUIRED_FIELDS = ("name", "id_number")


@dataclass(frozen=True)
class IDScanRecord:
    """Structured representation of one scanned identity document.

    ``id`` is assigned by the record store and stays ``None`` for drafts.
    """

    name: str
    date_of_birth: str
    id_number: str
    address: str
    scan_date: datetime
    issue_date: str | None = None
    expiry_date: str | None = None
    image_uri: str | None = None
    additional_info: str | None = None
    id: int | None = None

    def missing_required_fields(self) -> list[str]:
        """Return required fields that are blank."""
        return [field for field in REQUIRED_FIELDS if not getattr(self, field).strip()]

    def with_changes(self, **changes: object) -> "IDScanRecord":
        """Return a copy with reviewed values applied."""
        return replace(self, **changes)

    def with_id(self, record_id: int | None) -> "IDScanRecord":
        """Return the persisted form of this record."""
        return replace(self, id=record_id)
