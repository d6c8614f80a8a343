"""
BOQ export: CSV (front-end download format) and an Excel workbook.
"""
import csv
import io
from datetime import date
from typing import List, Optional

import xlsxwriter

from cadboq.models.boq_schema import BOQGenerationResult, BOQItem
from cadboq.services.perf_monitor import timed
from cadboq.services.units import format_number, round2

CSV_HEADER = ["Item No.", "Description", "Qty", "Unit", "Rate", "Amount", "Category", "Specifications"]


def _money(value: float) -> str:
    return f"{round2(value):.2f}"


def csv_row(item: BOQItem) -> List[str]:
    return [
        item.item_number,
        item.description,
        format_number(item.quantity),
        item.unit,
        _money(item.unit_rate),
        _money(item.total_amount),
        item.category,
        item.specifications or "",
    ]


@timed
def export_csv(result: BOQGenerationResult) -> str:
    """Every cell quoted, so descriptions with commas or quotes survive a CSV reader."""
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for item in result.items:
        writer.writerow(csv_row(item))
    return buf.getvalue()


@timed
def export_xlsx(result: BOQGenerationResult, currency: str = "USD") -> bytes:
    """Two sheets: the BOQ line items and a cost summary."""
    output = io.BytesIO()
    wb = xlsxwriter.Workbook(output, {"in_memory": True})

    hdr = wb.add_format({"bold": True, "bg_color": "#14141E", "font_color": "#FFFFFF",
                         "border": 1, "font_size": 10})
    money = wb.add_format({"num_format": "#,##0.00", "border": 1})
    qty_fmt = wb.add_format({"num_format": "#,##0.000", "border": 1})
    normal = wb.add_format({"border": 1, "font_size": 9})
    total_fmt = wb.add_format({"bold": True, "bg_color": "#002147", "font_color": "#FFFFFF",
                               "num_format": "#,##0.00", "border": 1})
    title_fmt = wb.add_format({"bold": True, "font_size": 14, "font_color": "#14141E"})

    # ── Sheet 1: BOQ ─────────────────────────────────────────────────────────
    ws = wb.add_worksheet("BOQ")
    widths = [10, 55, 12, 8, 14, 16, 12, 45]
    for col, width in enumerate(widths):
        ws.set_column(col, col, width)
    ws.write_row(0, 0, CSV_HEADER, hdr)
    for row, item in enumerate(result.items, start=1):
        ws.write(row, 0, item.item_number, normal)
        ws.write(row, 1, item.description, normal)
        ws.write_number(row, 2, item.quantity, qty_fmt)
        ws.write(row, 3, item.unit, normal)
        ws.write_number(row, 4, item.unit_rate, money)
        ws.write_number(row, 5, item.total_amount, money)
        ws.write(row, 6, item.category, normal)
        ws.write(row, 7, item.specifications or "", normal)

    # ── Sheet 2: Summary ─────────────────────────────────────────────────────
    ws2 = wb.add_worksheet("Summary")
    ws2.set_column("A:A", 36)
    ws2.set_column("B:B", 20)
    ws2.write("A1", f"Bill of Quantities: {result.metadata.source_file}", title_fmt)
    ws2.write("A2", f"Generated: {result.metadata.generated_at}", normal)
    ws2.write("A3", f"Confidence: {result.metadata.confidence}%", normal)
    ws2.write_row(4, 0, ["Description", f"Amount ({currency})"], hdr)
    summary = result.summary
    rows = [
        ("Material Cost", summary.material_cost),
        ("Labor Cost", summary.labor_cost),
        ("Equipment Cost", summary.equipment_cost),
        ("Overhead", summary.overhead_cost),
    ]
    for i, (label, value) in enumerate(rows):
        ws2.write(5 + i, 0, label, normal)
        ws2.write_number(5 + i, 1, value, money)
    ws2.write(5 + len(rows), 0, "TOTAL", total_fmt)
    ws2.write_number(5 + len(rows), 1, summary.total_cost, total_fmt)
    ws2.write(6 + len(rows), 0, f"Items: {summary.item_count}", normal)

    wb.close()
    return output.getvalue()


def export_filename(title: Optional[str], extension: str, on: Optional[date] = None) -> str:
    """BOQ_<title>_<YYYY-MM-DD>.<ext>"""
    day = (on or date.today()).isoformat()
    return f"BOQ_{title or 'CAD'}_{day}.{extension}"
