"""Record store service over a remote collection."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol

from id_scanner.domain.records import IDScanRecord
from id_scanner.errors import NotFound, ValidationError

_logger = logging.getLogger(__name__)


class RecordRepository(Protocol):
    """Persistence interface for scanned records.

    Implementations raise ``StoreUnavailable`` on transport or backend errors.
    """

    def insert_record(self, record: IDScanRecord) -> int:
        """Insert a record and return the assigned id."""

    def list_records(self) -> list[IDScanRecord]:
        """Return all records, most recent scan first."""

    def get_record(self, record_id: int) -> IDScanRecord | None:
        """Return a record by id, if present."""

    def delete_record(self, record_id: int) -> bool:
        """Delete a record and return whether a row was removed."""


@dataclass
class RecordStore:
    """CRUD over persisted records with no client-side caching."""

    repository: RecordRepository

    def create(self, draft: IDScanRecord) -> int:
        """Validate and persist a reviewed draft, returning its new id."""
        missing = draft.missing_required_fields()
        if missing:
            raise ValidationError(missing)
        record_id = self.repository.insert_record(draft.with_id(None))
        _logger.info("Record created: id=%s", record_id)
        return record_id

    def list_all(self) -> list[IDScanRecord]:
        """Return every record ordered by scan date, newest first."""
        return self.repository.list_records()

    def get(self, record_id: int) -> IDScanRecord:
        """Return a record or raise ``NotFound``."""
        record = self.repository.get_record(record_id)
        if record is None:
            raise NotFound(record_id)
        return record

    def get_many(self, record_ids: Iterable[int]) -> list[IDScanRecord]:
        """Return records in the requested order."""
        return [self.get(record_id) for record_id in record_ids]

    def delete(self, record_id: int) -> None:
        """Delete a record or raise ``NotFound``."""
        if not self.repository.delete_record(record_id):
            raise NotFound(record_id)
        _logger.info("Record deleted: id=%s", record_id)
