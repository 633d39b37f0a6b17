"""
Tests for the region-based Excel builder.
"""
import json
from datetime import datetime
from io import BytesIO

import pandas as pd
import pytest
from openpyxl import Workbook, load_workbook
from openpyxl.styles import Font

from utils.errors import MergeConflictError
from utils.excel_styles import COLORS, ColumnType, HeaderLevel
from utils.exporters import (
    SUMMARY_SHEET_NAME,
    Band,
    Column,
    Metric,
    ReportBuilder,
    ReportExporter,
    ReportSheet,
    SheetCanvas,
    SheetHeader,
    apply_regions,
    export_data_to_excel,
    safe_merge,
    unique_sheet_name,
)

GENERATED_AT = datetime(2024, 1, 1, 12, 0)


@pytest.fixture
def money_sheet():
    """One money column and one status column, no headers."""
    return ReportSheet(
        name="الطلبات",
        columns=[
            Column("المبلغ", "amount", 15, ColumnType.MONEY),
            Column("الحالة", "status", 15, ColumnType.STATUS),
        ],
        rows=[{"amount": 1500, "status": "مكتمل"}, {"amount": 20.5, "status": "ملغي"}],
    )


def _export(sheets, **kwargs):
    output = BytesIO()
    assert export_data_to_excel("تقرير", "report.xlsx", sheets, destination=output,
                                generated_at=GENERATED_AT, **kwargs)
    return load_workbook(output)


class TestExportDataToExcel:
    """Tests for export_data_to_excel."""

    def test_money_cells_formatted(self, money_sheet):
        ws = _export([money_sheet])["الطلبات"]
        assert ws["A1"].value == "المبلغ"
        assert ws["A2"].value == "1,500 ج.م"
        assert ws["A3"].value == "20.5 ج.م"

    def test_status_font_colored(self, money_sheet):
        ws = _export([money_sheet])["الطلبات"]
        assert ws["B2"].font.color.rgb.endswith(COLORS["SUCCESS"])
        assert ws["B3"].font.color.rgb.endswith(COLORS["DANGER"])

    def test_sheet_is_right_to_left(self, money_sheet):
        ws = _export([money_sheet])["الطلبات"]
        assert ws.sheet_view.rightToLeft

    def test_footer_and_brand_rows(self, money_sheet):
        ws = _export([money_sheet])["الطلبات"]
        # header row 1, data rows 2-3, footer after one blank row
        assert ws["A5"].value == "تم إنشاء التقرير بتاريخ 2024/01/01 12:00"
        assert ws["A7"].value == "S7teen Food App - تقرير تم إنشاؤه تلقائياً"

    def test_footer_and_brand_de_emphasized(self, money_sheet):
        ws = _export([money_sheet])["الطلبات"]
        for ref in ("A5", "A7"):
            font = ws[ref].font
            assert font.sz <= 10
            assert not font.b
            assert font.color.rgb.endswith(COLORS["GRAY_DARK"])

    def test_main_header_layout(self, money_sheet):
        money_sheet.headers = [SheetHeader("تقرير الطلبات", HeaderLevel.MAIN)]
        ws = _export([money_sheet])["الطلبات"]
        assert ws["A1"].value == "تقرير الطلبات"
        assert "A1:B1" in {r.coord for r in ws.merged_cells.ranges}
        assert ws["A4"].value == "المبلغ"
        assert ws["A5"].value == "1,500 ج.م"

    def test_summary_sheet_first(self, money_sheet):
        metrics = [Metric("الإيرادات", "1,520.5 ج.م"), Metric("الطلبات", 2)]
        wb = _export([money_sheet], dashboard_metrics=metrics)
        assert wb.sheetnames == [SUMMARY_SHEET_NAME, "الطلبات"]

        ws = wb[SUMMARY_SHEET_NAME]
        assert ws["A1"].value == "تقرير"
        assert ws["A3"].value == "ملخص الأداء"
        assert ws["A4"].value == "الإيرادات"
        assert ws["A5"].value == "1,520.5 ج.م"
        assert ws["G4"].value == "الطلبات"
        assert ws["G5"].value == 2
        merged = {r.coord for r in ws.merged_cells.ranges}
        assert {"A1:L1", "A3:L3", "A4:F4", "G5:L5"} <= merged

    def test_metric_subtext_row(self, money_sheet):
        metrics = [Metric("الفترة", "أسبوع", subtext="من 2024/01/01")]
        ws = _export([money_sheet], dashboard_metrics=metrics)[SUMMARY_SHEET_NAME]
        assert ws["A6"].value == "من 2024/01/01"

    def test_report_info_shown_on_request(self, money_sheet):
        ws = _export([money_sheet], dashboard_metrics=[Metric("x", 1)],
                     hide_report_info=False)[SUMMARY_SHEET_NAME]
        values = [ws.cell(row=r, column=1).value for r in range(1, ws.max_row + 1)]
        assert "معلومات التقرير" in values
        assert "مولد بواسطة" in values

    def test_report_info_hidden_by_default(self, money_sheet):
        ws = _export([money_sheet], dashboard_metrics=[Metric("x", 1)])[SUMMARY_SHEET_NAME]
        values = [ws.cell(row=r, column=1).value for r in range(1, ws.max_row + 1)]
        assert "معلومات التقرير" not in values

    def test_empty_sheet_has_headers_only(self):
        sheet = ReportSheet(name="فارغ", columns=[Column("أ", "a")])
        ws = _export([sheet])["فارغ"]
        assert ws["A1"].value == "أ"
        assert ws["A2"].value is None

    def test_saves_to_directory(self, money_sheet, tmp_path):
        assert export_data_to_excel("تقرير", "out.xlsx", [money_sheet], destination=tmp_path)
        assert (tmp_path / "out.xlsx").exists()

    def test_no_sheets_returns_false(self):
        assert export_data_to_excel("تقرير", "out.xlsx", [], destination=BytesIO()) is False

    def test_broken_sheet_returns_false(self):
        sheet = ReportSheet(name="x", columns=None)
        assert export_data_to_excel("تقرير", "out.xlsx", [sheet], destination=BytesIO()) is False


class TestRegions:
    """Tests for merge safety and per-region results."""

    def test_safe_merge_rejects_overlap(self):
        ws = Workbook().active
        safe_merge(ws, 1, 1, 1, 4)
        with pytest.raises(MergeConflictError):
            safe_merge(ws, 1, 3, 2, 5)

    def test_safe_merge_allows_disjoint(self):
        ws = Workbook().active
        safe_merge(ws, 1, 1, 1, 2)
        safe_merge(ws, 2, 1, 2, 2)
        assert len(ws.merged_cells.ranges) == 2

    def test_write_into_merged_cell_skipped(self):
        ws = Workbook().active
        canvas = SheetCanvas(ws)
        canvas.merge(1, 1, 1, 4)
        canvas.put(1, 2, "hidden")
        assert len(canvas.skipped) == 1
        assert ws["B1"].value is None

    def test_conflicting_band_is_skipped_not_fatal(self):
        ws = Workbook().active
        font = Font(bold=True)
        results = apply_regions(ws, [
            Band("first", 1, 4, "أول", font),
            Band("second", 1, 2, "ثان", font),
            Band("third", 3, 4, "ثالث", font),
        ])
        assert [r.ok for r in results] == [True, False, True]
        assert results[1].skipped
        assert ws["A1"].value == "ثان"
        assert ws["A3"].value == "ثالث"

    def test_builder_records_results(self, money_sheet):
        builder = ReportBuilder("تقرير", [money_sheet], generated_at=GENERATED_AT)
        builder.build()
        kinds = [r.kind for r in builder.results]
        assert kinds == ["column_headers", "data_rows", "table_border", "footer", "brand"]
        assert all(r.ok for r in builder.results)

    def test_to_bytes(self, money_sheet):
        output = ReportBuilder("تقرير", [money_sheet]).to_bytes()
        assert output.read(2) == b"PK"


class TestSheetNames:
    """Tests for unique_sheet_name."""

    def test_invalid_characters_replaced(self):
        assert unique_sheet_name("a/b:c", set()) == "a-b-c"

    def test_truncated(self):
        assert len(unique_sheet_name("x" * 40, set())) == 31

    def test_duplicates_suffixed(self):
        used = set()
        assert unique_sheet_name("Sheet", used) == "Sheet"
        assert unique_sheet_name("sheet", used) == "sheet (2)"
        assert unique_sheet_name("Sheet", used) == "Sheet (3)"


class TestOrdersTable:
    """Tests for ReportExporter.export_orders_table."""

    def test_items_summarized(self):
        df = pd.DataFrame([{
            "order_id": "A",
            "created_at": "2024-01-01T10:00:00",
            "customer_name": "أحمد",
            "status": "مكتمل",
            "total_amount": 200.0,
            "products": json.dumps([{"name": "بانيه", "quantity": 2}], ensure_ascii=False),
        }])
        ws = load_workbook(ReportExporter.export_orders_table(df)).active

        assert ws.title == "جميع الطلبات"
        assert ws["A1"].value == "جميع الطلبات"
        headers = [c.value for c in ws[3]]
        assert headers[0] == "رقم الطلب"
        assert ws.cell(row=4, column=headers.index("الأصناف") + 1).value == "بانيه x2"
