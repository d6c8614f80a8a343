"""
test_boq_export.py — Tests for CSV / Excel BOQ export.

Tests cover:
  - CSV header and row formatting (quantities, money to cents)
  - Quote wrapping: commas and quotes survive a standard CSV reader
  - Excel workbook bytes
  - Download file naming
"""

import csv
import io
import zipfile
from datetime import date

import pytest

from cadboq.models.boq_schema import BOQGenerationResult, BOQItem, BOQMetadata, BOQSummary
from cadboq.services.boq_export import CSV_HEADER, csv_row, export_csv, export_filename, export_xlsx


def _item(**overrides) -> BOQItem:
    fields = {
        "id": "item-1",
        "item_number": "1.0",
        "description": "Steel Plate",
        "quantity": 4,
        "unit": "ea",
        "unit_rate": 150,
        "total_amount": 600,
        "category": "Material",
        "specifications": "Grade: A36",
    }
    fields.update(overrides)
    return BOQItem(**fields)


def _result(items) -> BOQGenerationResult:
    total = sum(i.total_amount for i in items)
    return BOQGenerationResult(
        items=items,
        summary=BOQSummary(material_cost=total, total_cost=total, item_count=len(items)),
        metadata=BOQMetadata(
            source_file="plan", generated_at="2025-01-01T00:00:00+00:00",
            processing_time=1, confidence=70,
        ),
    )


def _read_csv(text):
    return list(csv.reader(io.StringIO(text)))


class TestCSV:

    def test_header(self):
        rows = _read_csv(export_csv(_result([])))
        assert rows == [CSV_HEADER]

    def test_row_formatting(self):
        row = csv_row(_item(quantity=1.5, unit_rate=37.5, total_amount=56.25))
        assert row == ["1.0", "Steel Plate", "1.5", "ea", "37.50", "56.25", "Material", "Grade: A36"]

    def test_whole_quantity_has_no_decimal(self):
        assert csv_row(_item())[2] == "4"

    def test_money_rounds_half_up(self):
        assert csv_row(_item(total_amount=149.4375))[5] == "149.44"

    def test_comma_in_description_round_trips(self):
        description = "Steel Plate 10mm (A36) - 2000x1000x10mm, primed"
        rows = _read_csv(export_csv(_result([_item(description=description)])))
        assert rows[1][1] == description
        assert len(rows[1]) == len(CSV_HEADER)

    def test_quotes_round_trip(self):
        description = 'Pipe 6" Sch 40'
        rows = _read_csv(export_csv(_result([_item(description=description)])))
        assert rows[1][1] == description

    def test_every_cell_quoted(self):
        line = export_csv(_result([_item()])).splitlines()[1]
        assert line.startswith('"1.0","Steel Plate","4"')

    def test_one_line_per_item(self):
        items = [_item(id=f"item-{n}", item_number=f"{n}.0") for n in range(1, 4)]
        rows = _read_csv(export_csv(_result(items)))
        assert [r[0] for r in rows[1:]] == ["1.0", "2.0", "3.0"]


class TestXLSX:

    def test_workbook_bytes(self):
        content = export_xlsx(_result([_item()]))
        assert content.startswith(b"PK")

    def test_two_sheets(self):
        content = export_xlsx(_result([_item(description="Bolt, M16")]), currency="AED")
        with zipfile.ZipFile(io.BytesIO(content)) as zf:
            workbook = zf.read("xl/workbook.xml").decode()
            strings = zf.read("xl/sharedStrings.xml").decode()
        assert 'name="BOQ"' in workbook
        assert 'name="Summary"' in workbook
        assert "Bolt, M16" in strings
        assert "Amount (AED)" in strings


class TestFilename:

    def test_dated_name(self):
        assert export_filename("plan", "csv", on=date(2025, 3, 7)) == "BOQ_plan_2025-03-07.csv"

    @pytest.mark.parametrize("title", [None, ""])
    def test_missing_title(self, title):
        assert export_filename(title, "xlsx", on=date(2025, 3, 7)) == "BOQ_CAD_2025-03-07.xlsx"
