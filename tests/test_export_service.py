"""Tests for spreadsheet export."""

import asyncio
from datetime import date, datetime
from pathlib import Path

import pytest
from openpyxl import load_workbook

from id_scanner.errors import ExportFailure
from id_scanner.services.export import (
    COLUMNS,
    SHARE_MESSAGE,
    SHARE_TITLE,
    ExportService,
)
from tests.conftest import SCAN_TIME, FakeShareTarget, make_record

HEADERS = [
    "Name",
    "Date of Birth",
    "ID Number",
    "Address",
    "Issue Date",
    "Expiry Date",
    "Scan Date",
    "Additional Info",
]


def _service(tmp_path: Path, share_target: FakeShareTarget) -> ExportService:
    return ExportService(
        output_dir=tmp_path,
        share_target=share_target,
        datetime_format="%Y-%m-%d %H:%M",
        today=lambda: date(2024, 1, 2),
    )


def test_rows_follow_fixed_column_order(tmp_path: Path) -> None:
    service = _service(tmp_path, FakeShareTarget())

    rows = service.build_rows([make_record()])

    assert rows == [
        HEADERS,
        [
            "John Doe",
            "1990-01-01",
            "ID12345678",
            "123 Main St",
            "2020-01-01",
            "2025-01-01",
            "2024-01-01 10:00",
            "",
        ],
    ]


def test_absent_optional_fields_render_empty(tmp_path: Path) -> None:
    service = _service(tmp_path, FakeShareTarget())

    rows = service.build_rows(
        [make_record(issue_date=None, expiry_date=None, additional_info=None)]
    )

    assert rows[1][4:6] == ["", ""]
    assert rows[1][7] == ""


def test_scan_date_uses_locale_format_in_configured_timezone(tmp_path: Path) -> None:
    service = ExportService(
        output_dir=tmp_path,
        share_target=FakeShareTarget(),
        timezone="America/New_York",
    )

    rows = service.build_rows([make_record()])

    expected = datetime(2024, 1, 1, 5, 0).strftime("%x %X")
    assert rows[1][6] == expected
    assert rows[1][6] != SCAN_TIME.isoformat()


def test_rows_keep_received_order(tmp_path: Path) -> None:
    service = _service(tmp_path, FakeShareTarget())
    records = [make_record(name="Zed"), make_record(name="Amy")]

    rows = service.build_rows(records)

    assert [row[0] for row in rows[1:]] == ["Zed", "Amy"]


def test_header_row_is_bold_and_shaded(tmp_path: Path) -> None:
    service = _service(tmp_path, FakeShareTarget())

    workbook = service.build_workbook([make_record()])
    sheet = workbook.active

    assert sheet.title == "ID Scans"
    assert all(cell.font.bold for cell in sheet[1])
    assert sheet["A1"].fill.fill_type == "solid"
    assert sheet["A1"].fill.start_color.rgb == "FFE0E0E0"
    assert not sheet["A2"].font.bold
    assert sheet.column_dimensions["D"].width == COLUMNS[3][1]


def test_export_writes_dated_file_and_shares_it(tmp_path: Path) -> None:
    share_target = FakeShareTarget()
    service = _service(tmp_path, share_target)

    result = asyncio.run(service.export([make_record(), make_record(name="Amy")]))

    assert result.path == tmp_path / "id_scans_2024-01-02.xlsx"
    assert result.path.exists()
    assert result.shared is True
    assert result.notice is None
    assert result.row_count == 3
    assert share_target.shared == [(result.path, SHARE_TITLE, SHARE_MESSAGE)]

    sheet = load_workbook(result.path).active
    assert sheet.max_row == 3
    assert [cell.value for cell in sheet[1]] == HEADERS
    assert sheet["A3"].value == "Amy"


def test_export_of_no_records_is_header_only(tmp_path: Path) -> None:
    service = _service(tmp_path, FakeShareTarget())

    result = asyncio.run(service.export([]))

    sheet = load_workbook(result.path).active
    assert sheet.max_row == 1
    assert [cell.value for cell in sheet[1]] == HEADERS
    assert result.row_count == 1


def test_share_failure_keeps_file_and_reports_location(tmp_path: Path) -> None:
    service = _service(tmp_path, FakeShareTarget(fail=True))

    result = asyncio.run(service.export([make_record()]))

    assert result.shared is False
    assert result.path.exists()
    assert result.notice is not None
    assert str(result.path) in result.notice


def test_export_creates_missing_output_directory(tmp_path: Path) -> None:
    service = _service(tmp_path / "nested" / "dir", FakeShareTarget())

    path = service.write([make_record()])

    assert path.parent == tmp_path / "nested" / "dir"
    assert path.exists()


def test_unwritable_location_raises_export_failure(tmp_path: Path) -> None:
    blocker = tmp_path / "not-a-directory"
    blocker.write_text("occupied")
    service = _service(blocker, FakeShareTarget())

    with pytest.raises(ExportFailure):
        service.write([make_record()])


def test_naive_scan_dates_are_treated_as_utc(tmp_path: Path) -> None:
    service = _service(tmp_path, FakeShareTarget())

    rows = service.build_rows([make_record(scan_date=datetime(2024, 1, 1, 10, 0))])

    assert rows[1][6] == "2024-01-01 10:00"
