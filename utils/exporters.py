"""
مصدّر التقارير - Report Exporter
يبني ملفات Excel منسقة من أوصاف الأوراق (لوحة قيادة، عناوين، جداول، تذييل)

كل ورقة تتحول إلى قائمة مناطق (regions) تطبق على الورقة في تمريرة واحدة،
وفشل تنسيق منطقة لا يوقف باقي الملف.
"""

import json
import re
from dataclasses import dataclass, field
from datetime import datetime
from io import BytesIO
from pathlib import Path
from typing import Any, List, Mapping, Optional, Sequence

import pandas as pd
import structlog
from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.cell_range import CellRange
from openpyxl.worksheet.page import PageMargins

from config import OUTPUT_DIR, ReportConfig
from utils.errors import CellResolutionError, MergeConflictError, ReportError
from utils.excel_styles import (
    CENTER,
    CENTER_WRAP,
    COLORS,
    FONT_NAME,
    INFO_EVEN_FILL,
    INFO_ODD_FILL,
    ROW_BORDER,
    ROW_EVEN_FILL,
    ROW_ODD_FILL,
    ColumnType,
    HeaderLevel,
    box_border,
    classify_status,
    column_header_font,
    format_value,
    header_style,
    solid_fill,
)

logger = structlog.get_logger(__name__)

SUMMARY_SHEET_NAME = 'ملخص التقرير - الملخص'
SUMMARY_COLUMNS    = 12
MAX_SHEET_NAME     = 31
INVALID_SHEET_CHARS = re.compile(r'[\[\]:*?/\\]')

_KEEP = object()


# ==================== أوصاف الأوراق ====================

@dataclass
class Column:
    """عمود في جدول البيانات"""
    header: str
    key: str
    width: float = 15
    type: ColumnType = ColumnType.TEXT
    format: Optional[str] = None


@dataclass
class Metric:
    """مؤشر (KPI) في لوحة القيادة"""
    title: str
    value: Any
    color: str = COLORS['PRIMARY']
    subtext: Optional[str] = None


@dataclass
class SheetHeader:
    text: str
    level: HeaderLevel = HeaderLevel.NORMAL


@dataclass
class ReportSheet:
    """وصف ورقة: أعمدة وصفوف وعناوين ولوحة قيادة مصغرة اختيارية"""
    name: str
    columns: List[Column]
    rows: List[Mapping[str, Any]] = field(default_factory=list)
    headers: List[SheetHeader] = field(default_factory=list)
    dashboard_metrics: List[Metric] = field(default_factory=list)


@dataclass
class RegionResult:
    """نتيجة تطبيق منطقة واحدة"""
    sheet: str
    kind: str
    ref: str
    skipped: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and not self.skipped


# ==================== الرسم على الورقة ====================

def safe_merge(ws, min_row: int, min_col: int, max_row: int, max_col: int):
    """
    دمج نطاق بعد التأكد من عدم تداخله مع نطاق مدمج موجود

    Raises:
        MergeConflictError: إذا كان النطاق متداخلاً مع دمج سابق
    """
    target = CellRange(min_row=min_row, min_col=min_col, max_row=max_row, max_col=max_col)
    for existing in ws.merged_cells.ranges:
        if not target.isdisjoint(existing):
            raise MergeConflictError(f"{target.coord} overlaps merged range {existing.coord}")
    ws.merge_cells(start_row=min_row, start_column=min_col, end_row=max_row, end_column=max_col)


class SheetCanvas:
    """غلاف للورقة: خطوات الدمج والكتابة الفاشلة تتخطى ولا توقف المنطقة"""

    def __init__(self, ws):
        self.ws = ws
        self.skipped: List[str] = []

    def merge(self, min_row: int, min_col: int, max_row: int, max_col: int):
        if min_row == max_row and min_col == max_col:
            return
        try:
            safe_merge(self.ws, min_row, min_col, max_row, max_col)
        except MergeConflictError as e:
            self._skip(e)

    def put(self, row: int, col: int, value=_KEEP, font=None, fill=None, border=None, alignment=None):
        cell = self.ws.cell(row=row, column=col)
        if value is not _KEEP:
            try:
                cell.value = value
            except AttributeError:
                self._skip(CellResolutionError(f"{cell.coordinate} is covered by a merged range"))
        if font is not None:
            cell.font = font
        if fill is not None:
            cell.fill = fill
        if border is not None:
            cell.border = border
        if alignment is not None:
            cell.alignment = alignment
        return cell

    def outline(self, min_row: int, min_col: int, max_row: int, max_col: int,
                color: str, style: str = 'medium'):
        """حدود خارجية للنطاق مع الاحتفاظ بالحدود الداخلية الموجودة"""
        if min_row > max_row or min_col > max_col:
            raise CellResolutionError(f"empty range rows {min_row}-{max_row} cols {min_col}-{max_col}")
        edge = {'style': style, 'color': color}
        for r in range(min_row, max_row + 1):
            for c in range(min_col, max_col + 1):
                cell = self.ws.cell(row=r, column=c)
                current = cell.border
                cell.border = Border(
                    left=_side(edge) if c == min_col else current.left,
                    right=_side(edge) if c == max_col else current.right,
                    top=_side(edge) if r == min_row else current.top,
                    bottom=_side(edge) if r == max_row else current.bottom,
                )

    def _skip(self, error: ReportError):
        logger.warning("excel_step_skipped", sheet=self.ws.title, reason=str(error))
        self.skipped.append(str(error))


def _side(edge: dict) -> Side:
    return Side(style=edge['style'], color=edge['color'])


def _span_ref(min_row: int, min_col: int, max_row: int, max_col: int) -> str:
    return f"{get_column_letter(min_col)}{min_row}:{get_column_letter(max_col)}{max_row}"


# ==================== المناطق ====================

@dataclass
class Band:
    """شريط عنوان مدمج بعرض الورقة"""
    kind: str
    row: int
    last_col: int
    text: str
    font: Font
    fill: Any = None
    border: Any = None
    alignment: Alignment = CENTER
    height: Optional[float] = None

    @property
    def ref(self) -> str:
        return _span_ref(self.row, 1, self.row, self.last_col)

    def draw(self, canvas: SheetCanvas):
        canvas.merge(self.row, 1, self.row, self.last_col)
        canvas.put(self.row, 1, self.text, font=self.font, fill=self.fill,
                   border=self.border, alignment=self.alignment)
        if self.height:
            canvas.ws.row_dimensions[self.row].height = self.height


@dataclass
class MetricTiles:
    """المؤشرات في صف واحد بأعمدة متساوية العرض"""
    row: int
    metrics: List[Metric]
    total_columns: int
    kind: str = 'metric_tiles'

    @property
    def width(self) -> int:
        return max(1, self.total_columns // len(self.metrics))

    @property
    def has_subtext(self) -> bool:
        return any(metric.subtext for metric in self.metrics)

    @property
    def ref(self) -> str:
        last_row = self.row + (2 if self.has_subtext else 1)
        return _span_ref(self.row, 1, last_row, self.width * len(self.metrics))

    def draw(self, canvas: SheetCanvas):
        title_row, value_row, subtext_row = self.row, self.row + 1, self.row + 2
        for i, metric in enumerate(self.metrics):
            first = 1 + i * self.width
            last = (i + 1) * self.width

            canvas.merge(title_row, first, title_row, last)
            canvas.put(title_row, first, metric.title,
                       font=Font(name=FONT_NAME, size=12, bold=True, color=COLORS['BLACK']),
                       fill=solid_fill(COLORS['DASHBOARD_SUBHEADER']), alignment=CENTER)

            canvas.merge(value_row, first, value_row, last)
            canvas.put(value_row, first, metric.value,
                       font=Font(name=FONT_NAME, size=18, bold=True, color=metric.color),
                       fill=solid_fill(COLORS['DASHBOARD_METRIC_BG']), alignment=CENTER)

            canvas.outline(title_row, first, value_row, last, metric.color)

            if metric.subtext:
                canvas.merge(subtext_row, first, subtext_row, last)
                canvas.put(subtext_row, first, metric.subtext,
                           font=Font(name=FONT_NAME, size=10, color=COLORS['GRAY_DARK']),
                           fill=solid_fill(COLORS['DASHBOARD_METRIC_BG']), alignment=CENTER)

        canvas.ws.row_dimensions[title_row].height = 24
        canvas.ws.row_dimensions[value_row].height = 36


@dataclass
class ColumnHeaderRow:
    row: int
    columns: List[Column]
    kind: str = 'column_headers'

    @property
    def ref(self) -> str:
        return _span_ref(self.row, 1, self.row, max(len(self.columns), 1))

    def draw(self, canvas: SheetCanvas):
        for c, column in enumerate(self.columns, start=1):
            canvas.put(self.row, c, column.header,
                       font=column_header_font(),
                       fill=solid_fill(COLORS['TABLE_HEADER']),
                       border=box_border(COLORS['PRIMARY']),
                       alignment=CENTER_WRAP)
            canvas.ws.column_dimensions[get_column_letter(c)].width = column.width
        canvas.ws.row_dimensions[self.row].height = 30


@dataclass
class DataRows:
    """صفوف البيانات: تنسيق حسب نوع العمود، تلوين متناوب، حدود وتوسيط"""
    start_row: int
    columns: List[Column]
    rows: Sequence[Mapping[str, Any]]
    currency_label: str
    kind: str = 'data_rows'

    @property
    def ref(self) -> str:
        return _span_ref(self.start_row, 1, self.start_row + len(self.rows) - 1, max(len(self.columns), 1))

    def draw(self, canvas: SheetCanvas):
        border = box_border(ROW_BORDER)
        for index, record in enumerate(self.rows):
            row = self.start_row + index
            fill = solid_fill(ROW_EVEN_FILL if index % 2 == 0 else ROW_ODD_FILL)
            for c, column in enumerate(self.columns, start=1):
                value = format_value(record.get(column.key), column.type, column.format, self.currency_label)
                font = None
                if column.type == ColumnType.METRIC:
                    font = Font(size=12, bold=True, color=COLORS['PRIMARY'])
                elif column.type == ColumnType.STATUS:
                    font = Font(bold=True, color=classify_status(value))
                canvas.put(row, c, value, font=font, fill=fill, border=border, alignment=CENTER)
            canvas.ws.row_dimensions[row].height = 22


@dataclass
class TableBorder:
    min_row: int
    min_col: int
    max_row: int
    max_col: int
    color: str = COLORS['PRIMARY']
    style: str = 'thin'
    kind: str = 'table_border'

    @property
    def ref(self) -> str:
        return _span_ref(self.min_row, self.min_col, self.max_row, self.max_col)

    def draw(self, canvas: SheetCanvas):
        canvas.outline(self.min_row, self.min_col, self.max_row, self.max_col, self.color, self.style)


@dataclass
class InfoTable:
    """جدول معلومات التقرير (عمودان: المعلومة والقيمة)"""
    row: int
    entries: List[tuple]
    kind: str = 'report_info'

    @property
    def ref(self) -> str:
        return _span_ref(self.row, 1, self.row + len(self.entries), 2)

    def draw(self, canvas: SheetCanvas):
        for c, text in enumerate(('معلومات', 'القيمة'), start=1):
            canvas.put(self.row, c, text,
                       font=Font(bold=True, color=COLORS['WHITE']),
                       fill=solid_fill(COLORS['TABLE_HEADER']),
                       border=box_border(COLORS['PRIMARY']), alignment=CENTER)

        border = box_border(ROW_BORDER)
        for index, (label, value) in enumerate(self.entries):
            row = self.row + index + 1
            fill = solid_fill(INFO_EVEN_FILL if index % 2 == 0 else INFO_ODD_FILL)
            canvas.put(row, 1, label, font=Font(bold=True, color=COLORS['PRIMARY']),
                       fill=fill, border=border, alignment=CENTER)
            canvas.put(row, 2, value, font=Font(bold=False, color=COLORS['BLACK']),
                       fill=fill, border=border, alignment=CENTER)

        canvas.outline(self.row, 1, self.row + len(self.entries), 2, COLORS['PRIMARY'])


def apply_regions(ws, regions: Sequence) -> List[RegionResult]:
    """تطبيق المناطق على الورقة بالترتيب - نتيجة مستقلة لكل منطقة"""
    results = []
    for region in regions:
        canvas = SheetCanvas(ws)
        result = RegionResult(sheet=ws.title, kind=region.kind, ref=region.ref)
        try:
            region.draw(canvas)
        except ReportError as e:
            logger.warning("excel_region_failed", sheet=ws.title, region=region.kind, ref=result.ref, reason=str(e))
            result.error = str(e)
        result.skipped = canvas.skipped
        results.append(result)
    return results


# ==================== بناء المصنف ====================

class ReportBuilder:
    """يخطط مناطق كل ورقة ثم يطبقها ويحتفظ بنتيجة كل منطقة"""

    def __init__(
        self,
        title: str,
        sheets: Sequence[ReportSheet],
        dashboard_metrics: Optional[Sequence[Metric]] = None,
        hide_report_info: bool = True,
        config: Optional[ReportConfig] = None,
        generated_at: Optional[datetime] = None
    ):
        self.title = title
        self.sheets = list(sheets)
        self.dashboard_metrics = list(dashboard_metrics or [])
        self.hide_report_info = hide_report_info
        self.config = config or ReportConfig()
        self.generated_at = generated_at or datetime.now()
        self.results: List[RegionResult] = []

    def build(self) -> Workbook:
        workbook = Workbook()
        workbook.remove(workbook.active)
        workbook.properties.creator = self.config.brand_name
        workbook.properties.lastModifiedBy = 'S7teen Reports'

        used_names = set()
        self.results = []

        if self.dashboard_metrics:
            ws = _add_worksheet(workbook, unique_sheet_name(SUMMARY_SHEET_NAME, used_names))
            self.results.extend(apply_regions(ws, self.plan_summary()))

        for sheet in self.sheets:
            ws = _add_worksheet(workbook, unique_sheet_name(sheet.name, used_names))
            self.results.extend(apply_regions(ws, self.plan_sheet(sheet)))

        if not workbook.worksheets:
            raise ReportError("report has no sheets")
        return workbook

    def to_bytes(self) -> BytesIO:
        output = BytesIO()
        self.build().save(output)
        output.seek(0)
        return output

    def plan_dashboard(self, title: str, metrics: Sequence[Metric], total_columns: int):
        """
        مناطق لوحة القيادة: عنوان، قسم "ملخص الأداء"، ثم المؤشرات

        Returns:
            (regions, next_row, last_row)
        """
        regions = [Band('dashboard_title', 1, total_columns, title, **header_style(HeaderLevel.DASHBOARD))]
        row = 3
        regions.append(Band(
            'section', row, total_columns, 'ملخص الأداء',
            font=Font(name=FONT_NAME, size=14, bold=True, color=COLORS['WHITE']),
            fill=solid_fill(COLORS['SECONDARY'])
        ))
        row += 1
        if metrics:
            tiles = MetricTiles(row, list(metrics), total_columns)
            regions.append(tiles)
            row += 1
            if tiles.has_subtext:
                row += 1
        return regions, row + 3, row

    def plan_summary(self) -> list:
        regions, _, last_row = self.plan_dashboard(self.title, self.dashboard_metrics, SUMMARY_COLUMNS)
        if self.hide_report_info:
            return regions

        section_row = last_row + 2
        regions.append(Band(
            'section', section_row, SUMMARY_COLUMNS, 'معلومات التقرير',
            font=Font(name=FONT_NAME, size=14, bold=True, color=COLORS['WHITE']),
            fill=solid_fill(COLORS['INFO']), height=25
        ))
        first_header = self.sheets[0].headers[0].text if self.sheets and self.sheets[0].headers else 'تقرير كامل'
        regions.append(InfoTable(section_row + 2, [
            ('مولد بواسطة', self.config.brand_name),
            ('تاريخ الإنشاء', self.generated_at.strftime('%Y/%m/%d %H:%M:%S')),
            ('الفترة الزمنية', first_header),
        ]))
        return regions

    def plan_sheet(self, sheet: ReportSheet) -> list:
        regions = []
        row = 1
        last_col = min(max(len(sheet.columns), 1), 26)

        if sheet.dashboard_metrics:
            dashboard, row, _ = self.plan_dashboard(
                f"{sheet.name} - الملخص", sheet.dashboard_metrics, min(len(sheet.columns), 12) + 1
            )
            regions.extend(dashboard)

        for header in sheet.headers:
            style = header_style(header.level)
            if style['border'] is not None:
                style['border'] = box_border(COLORS['PRIMARY'])
            regions.append(Band('header', row, last_col, header.text, **style))
            row += 1
            if HeaderLevel(header.level) in (HeaderLevel.DASHBOARD, HeaderLevel.MAIN):
                row += 1
        if sheet.headers:
            row += 1

        header_row = row
        start_data_row = header_row + 1
        regions.append(ColumnHeaderRow(header_row, sheet.columns))

        if sheet.rows:
            regions.append(DataRows(start_data_row, sheet.columns, sheet.rows, self.config.currency_label))
            regions.append(TableBorder(header_row, 1, start_data_row + len(sheet.rows) - 1, last_col))

        footer_row = start_data_row + len(sheet.rows) + 1
        regions.append(Band(
            'footer', footer_row, last_col,
            f"تم إنشاء التقرير بتاريخ {self.generated_at.strftime('%Y/%m/%d %H:%M')}",
            font=Font(name=FONT_NAME, size=10, italic=True, color=COLORS['GRAY_DARK']),
            alignment=Alignment(horizontal='center')
        ))
        regions.append(Band(
            'brand', footer_row + 2, last_col,
            f"{self.config.brand_name} - تقرير تم إنشاؤه تلقائياً",
            font=Font(name=FONT_NAME, size=10, color=COLORS['GRAY_DARK']),
            alignment=Alignment(horizontal='center')
        ))
        return regions


def _add_worksheet(workbook: Workbook, name: str):
    ws = workbook.create_sheet(title=name)
    ws.sheet_view.rightToLeft = True
    ws.sheet_properties.tabColor = COLORS['PRIMARY']
    ws.page_margins = PageMargins(left=0.25, right=0.25, top=0.25, bottom=0.25, header=0, footer=0)
    return ws


def unique_sheet_name(name: str, used: set) -> str:
    """اسم ورقة صالح: بدون رموز ممنوعة، 31 حرفاً كحد أقصى، وغير مكرر"""
    base = INVALID_SHEET_CHARS.sub('-', str(name)).strip() or 'Sheet'
    base = base[:MAX_SHEET_NAME]
    candidate = base
    counter = 2
    while candidate.lower() in used:
        suffix = f" ({counter})"
        candidate = base[:MAX_SHEET_NAME - len(suffix)] + suffix
        counter += 1
    used.add(candidate.lower())
    return candidate


def export_data_to_excel(
    title: str,
    file_name: str,
    sheets: Sequence[ReportSheet],
    dashboard_metrics: Optional[Sequence[Metric]] = None,
    destination: Any = None,
    hide_report_info: bool = True,
    config: Optional[ReportConfig] = None,
    generated_at: Optional[datetime] = None
) -> bool:
    """
    تصدير البيانات إلى ملف Excel منسق

    Args:
        title: عنوان التقرير (لوحة القيادة)
        file_name: اسم الملف
        sheets: أوصاف الأوراق بالترتيب
        dashboard_metrics: مؤشرات ورقة الملخص (اختياري)
        destination: مجلد الحفظ أو كائن ملف (BytesIO)؛ الافتراضي OUTPUT_DIR
        hide_report_info: إخفاء قسم "معلومات التقرير"

    Returns:
        True عند النجاح، False عند أي خطأ (لا يرفع استثناءات)
    """
    try:
        builder = ReportBuilder(title, sheets, dashboard_metrics, hide_report_info, config, generated_at)
        workbook = builder.build()

        if destination is None:
            destination = OUTPUT_DIR
        if hasattr(destination, 'write'):
            workbook.save(destination)
            if hasattr(destination, 'seek'):
                destination.seek(0)
        else:
            Path(destination).mkdir(parents=True, exist_ok=True)
            workbook.save(Path(destination) / file_name)

        skipped = [r for r in builder.results if not r.ok]
        logger.info("excel_exported", file_name=file_name,
                    sheets=len(workbook.worksheets), skipped_regions=len(skipped))
        return True
    except Exception as e:
        logger.error("excel_export_failed", file_name=file_name, error=str(e), exc_info=True)
        return False


class ReportExporter:
    """تصدير جدول الطلبات الخام (xlsxwriter)"""

    @staticmethod
    def export_orders_table(orders_df: pd.DataFrame, title: str = 'جميع الطلبات') -> BytesIO:
        """
        تصدير جدول الطلبات كما هو في قاعدة البيانات

        Args:
            orders_df: DataFrame من DatabaseManager.get_orders_dataframe()
            title: عنوان الورقة

        Returns:
            BytesIO يحتوي على ملف Excel
        """
        output = BytesIO()

        export_df = orders_df.copy()
        if 'products' in export_df.columns:
            export_df['products'] = export_df['products'].apply(_items_summary)

        export_df = export_df.rename(columns={
            'order_id':         'رقم الطلب',
            'created_at':       'تاريخ الطلب',
            'customer_name':    'العميل',
            'customer_phone':   'الهاتف',
            'customer_address': 'العنوان',
            'status':           'الحالة',
            'total_amount':     'الإجمالي',
            'products':         'الأصناف',
        })

        with pd.ExcelWriter(output, engine='xlsxwriter') as writer:
            workbook = writer.book

            header_format = workbook.add_format({
                'bold': True,
                'bg_color': '#' + COLORS['PRIMARY'],
                'font_color': 'white',
                'border': 1,
                'align': 'center',
                'valign': 'vcenter'
            })

            title_format = workbook.add_format({
                'bold': True,
                'font_size': 16,
                'bg_color': '#' + COLORS['DASHBOARD_HEADER'],
                'font_color': 'white',
                'align': 'center',
                'valign': 'vcenter'
            })

            currency_format = workbook.add_format({
                'num_format': '#,##0.00',
                'border': 1
            })

            export_df.to_excel(writer, sheet_name=title[:MAX_SHEET_NAME], index=False, startrow=2)
            sheet = writer.sheets[title[:MAX_SHEET_NAME]]
            sheet.right_to_left()

            last_col = max(len(export_df.columns) - 1, 1)
            sheet.merge_range(0, 0, 0, last_col, title, title_format)
            sheet.write(1, 0, f'تاريخ التقرير: {datetime.now().strftime("%Y-%m-%d %H:%M")}')

            for col_num, value in enumerate(export_df.columns.values):
                sheet.write(2, col_num, value, header_format)

            sheet.set_column(0, len(export_df.columns) - 1, 18)
            if 'الإجمالي' in export_df.columns:
                money_col = list(export_df.columns).index('الإجمالي')
                sheet.set_column(money_col, money_col, 15, currency_format)
            if 'الأصناف' in export_df.columns:
                items_col = list(export_df.columns).index('الأصناف')
                sheet.set_column(items_col, items_col, 55)

        output.seek(0)
        return output


def _items_summary(products_json) -> str:
    """'اسم المنتج x2 | منتج آخر x1'"""
    if not isinstance(products_json, str) or not products_json:
        return ''
    try:
        products = json.loads(products_json)
    except ValueError:
        return products_json
    if not isinstance(products, list):
        return ''
    parts = []
    for prod in products:
        if isinstance(prod, Mapping):
            parts.append(f"{prod.get('name', '')} x{prod.get('quantity', 1)}")
    return ' | '.join(parts)
