"""Spreadsheet export of scanned records."""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Protocol
from zoneinfo import ZoneInfo

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from id_scanner.domain.records import IDScanRecord
from id_scanner.errors import ExportFailure, ShareUnavailable

_logger = logging.getLogger(__name__)

SHEET_TITLE = "ID Scans"
SHARE_TITLE = "ID Scan Data"
SHARE_MESSAGE = "Here is the exported ID scan data"

# (header, width) in the fixed export order.
COLUMNS: tuple[tuple[str, int], ...] = (
    ("Name", 20),
    ("Date of Birth", 15),
    ("ID Number", 15),
    ("Address", 30),
    ("Issue Date", 15),
    ("Expiry Date", 15),
    ("Scan Date", 20),
    ("Additional Info", 30),
)
HEADER_FILL = "FFE0E0E0"


class ShareTarget(Protocol):
    """Out-of-process share mechanism for exported files.

    Implementations raise ``ShareUnavailable`` when the hand-off fails.
    """

    async def share(self, path: Path, title: str, message: str) -> None:
        """Hand the file at ``path`` to the share mechanism."""


@dataclass(frozen=True)
class ExportResult:
    """Location of the exported file and the share outcome."""

    path: Path
    row_count: int
    shared: bool
    notice: str | None = None


def _today() -> date:
    return datetime.now(tz=UTC).date()


@dataclass
class ExportService:
    """Builds the records spreadsheet and hands it to a share target."""

    output_dir: Path
    share_target: ShareTarget
    timezone: str = "UTC"
    datetime_format: str = "%x %X"
    today: Callable[[], date] = _today

    def build_rows(self, records: Sequence[IDScanRecord]) -> list[list[str]]:
        """Return the header row followed by one row per record."""
        rows = [[header for header, _width in COLUMNS]]
        rows.extend(self._record_row(record) for record in records)
        return rows

    def build_workbook(self, records: Sequence[IDScanRecord]) -> Workbook:
        """Return a single-sheet workbook with a styled header."""
        workbook = Workbook()
        sheet = workbook.active
        sheet.title = SHEET_TITLE
        for row in self.build_rows(records):
            sheet.append(row)

        alignment = Alignment(horizontal="left", vertical="center")
        for index, (_header, width) in enumerate(COLUMNS, start=1):
            sheet.column_dimensions[get_column_letter(index)].width = width
        for row in sheet.iter_rows():
            for cell in row:
                cell.alignment = alignment
        for cell in sheet[1]:
            cell.font = Font(bold=True)
            cell.fill = PatternFill(
                fill_type="solid", start_color=HEADER_FILL, end_color=HEADER_FILL
            )
        return workbook

    def write(self, records: Sequence[IDScanRecord]) -> Path:
        """Write the spreadsheet under the output directory."""
        path = self.output_dir / f"id_scans_{self.today().isoformat()}.xlsx"
        workbook = self.build_workbook(records)
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            workbook.save(path)
        except OSError as exc:
            raise ExportFailure(f"Failed to write export file {path}: {exc}") from exc
        _logger.info("Export written: path=%s records=%s", path, len(records))
        return path

    async def export(self, records: Sequence[IDScanRecord]) -> ExportResult:
        """Write the spreadsheet and share it.

        A failed hand-off keeps the file and reports its location instead.
        """
        path = self.write(records)
        try:
            await self.share_target.share(path, SHARE_TITLE, SHARE_MESSAGE)
        except ShareUnavailable as exc:
            _logger.warning("Share hand-off failed: %s", exc)
            return ExportResult(
                path=path,
                row_count=len(records) + 1,
                shared=False,
                notice=(
                    f"The spreadsheet has been saved to {path}. "
                    "You can access it through your file manager."
                ),
            )
        return ExportResult(path=path, row_count=len(records) + 1, shared=True)

    def _record_row(self, record: IDScanRecord) -> list[str]:
        return [
            record.name,
            record.date_of_birth,
            record.id_number,
            record.address,
            record.issue_date or "",
            record.expiry_date or "",
            self._format_scan_date(record.scan_date),
            record.additional_info or "",
        ]

    def _format_scan_date(self, value: datetime) -> str:
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(ZoneInfo(self.timezone)).strftime(self.datetime_format)
