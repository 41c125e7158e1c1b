"""Supabase-backed record repository."""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TypeVar

import httpx
from postgrest.exceptions import APIError
from supabase import Client

from id_scanner.domain.records import IDScanRecord
from id_scanner.errors import StoreUnavailable
from id_scanner.services.records import RecordRepository

_TABLE = "id_scans"
_COLUMNS = (
    "id, name, dateOfBirth, idNumber, address, issueDate, expiryDate, "
    "scanDate, imageUri, additionalInfo"
)

T = TypeVar("T")


@dataclass
class SupabaseRecordRepository(RecordRepository):
    """Supabase implementation for scanned records."""

    client: Client

    def insert_record(self, record: IDScanRecord) -> int:
        """Insert a record row and return its id."""
        response = _call(
            "insert",
            lambda: self.client.table(_TABLE).insert(_to_row(record)).execute(),
        )
        if not response.data:
            raise StoreUnavailable("Insert returned no row")
        return int(response.data[0]["id"])

    def list_records(self) -> list[IDScanRecord]:
        """Return all record rows, newest scan first."""
        response = _call(
            "list",
            lambda: self.client.table(_TABLE)
            .select(_COLUMNS)
            .order("scanDate", desc=True)
            .execute(),
        )
        return [_parse_row(row) for row in response.data or []]

    def get_record(self, record_id: int) -> IDScanRecord | None:
        """Return a record row by id, if present."""
        response = _call(
            "get",
            lambda: self.client.table(_TABLE)
            .select(_COLUMNS)
            .eq("id", record_id)
            .limit(1)
            .execute(),
        )
        if not response.data:
            return None
        return _parse_row(response.data[0])

    def delete_record(self, record_id: int) -> bool:
        """Delete a record row and report whether one existed."""
        response = _call(
            "delete",
            lambda: self.client.table(_TABLE).delete().eq("id", record_id).execute(),
        )
        return bool(response.data)


def _call(operation: str, request: Callable[[], T]) -> T:
    try:
        return request()
    except (APIError, httpx.HTTPError) as exc:
        raise StoreUnavailable(f"Record store {operation} failed: {exc}") from exc


def _to_row(record: IDScanRecord) -> dict[str, object]:
    return {
        "name": record.name,
        "dateOfBirth": record.date_of_birth,
        "idNumber": record.id_number,
        "address": record.address,
        "issueDate": record.issue_date,
        "expiryDate": record.expiry_date,
        "scanDate": record.scan_date.astimezone(UTC).isoformat(),
        "imageUri": record.image_uri,
        "additionalInfo": record.additional_info,
    }


def _parse_row(row: dict[str, object]) -> IDScanRecord:
    return IDScanRecord(
        id=int(row["id"]),
        name=str(row.get("name") or ""),
        date_of_birth=str(row.get("dateOfBirth") or ""),
        id_number=str(row.get("idNumber") or ""),
        address=str(row.get("address") or ""),
        issue_date=row.get("issueDate") or None,
        expiry_date=row.get("expiryDate") or None,
        scan_date=_parse_timestamp(str(row["scanDate"])),
        image_uri=row.get("imageUri") or None,
        additional_info=row.get("additionalInfo") or None,
    )


def _parse_timestamp(value: str) -> datetime:
    """Parse an ISO timestamp, accepting a trailing ``Z``."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)
