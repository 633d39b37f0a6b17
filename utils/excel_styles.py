"""
تنسيقات الإكسل - Excel Styles
الألوان ومستويات العناوين وأنواع الأعمدة وتنسيق القيم
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from openpyxl.styles import Alignment, Border, Font, PatternFill, Side

from config import CURRENCY_LABEL

COLORS = {
    'PRIMARY':             '4472C4',
    'SECONDARY':           '5B9BD5',
    'SUCCESS':             '70AD47',
    'WARNING':             'ED7D31',
    'DANGER':              'FF0000',
    'INFO':                '4BACC6',
    'GRAY_LIGHT':          'F2F2F2',
    'GRAY_MEDIUM':         'D9D9D9',
    'GRAY_DARK':           'A6A6A6',
    'WHITE':               'FFFFFF',
    'BLACK':               '000000',
    'DASHBOARD_HEADER':    '305496',
    'DASHBOARD_SUBHEADER': 'D6DCE4',
    'DASHBOARD_METRIC_BG': 'EBF1DE',
    'TABLE_HEADER':        '8EA9DB',
}

ROW_EVEN_FILL  = 'E6EFF7'
ROW_ODD_FILL   = 'FFFFFF'
ROW_BORDER     = 'E5E8EB'
INFO_EVEN_FILL = 'F9FAFC'
INFO_ODD_FILL  = 'D9E1F2'

FONT_NAME = 'Arial'

ARABIC_WEEKDAYS = ['الاثنين', 'الثلاثاء', 'الأربعاء', 'الخميس', 'الجمعة', 'السبت', 'الأحد']

SUCCESS_MARKERS = ('مكتمل', 'ناجح', 'completed', 'success', 'delivered')
DANGER_MARKERS  = ('ملغي', 'مرفوض', 'فشل', 'cancel', 'fail', 'rejected')
WARNING_MARKERS = ('قيد', 'معلق', 'جار', 'pending', 'processing')


class HeaderLevel(str, Enum):
    """مستوى العنوان - dashboard > main > sub > normal"""
    DASHBOARD = 'dashboard'
    MAIN = 'main'
    SUB = 'sub'
    NORMAL = 'normal'


class ColumnType(str, Enum):
    TEXT = 'text'
    NUMBER = 'number'
    MONEY = 'money'
    DATE = 'date'
    PERCENTAGE = 'percentage'
    STATUS = 'status'
    METRIC = 'metric'


CENTER = Alignment(horizontal='center', vertical='center')
CENTER_WRAP = Alignment(horizontal='center', vertical='center', wrap_text=True)


def solid_fill(color: str) -> PatternFill:
    return PatternFill('solid', fgColor=color)


def box_border(color: str, style: str = 'thin') -> Border:
    side = Side(style=style, color=color)
    return Border(left=side, right=side, top=side, bottom=side)


def header_style(level: HeaderLevel) -> dict:
    """
    خط وتعبئة وحدود العنوان حسب مستواه

    Returns:
        dict بالمفاتيح font / fill / border (fill و border قد تكون None)
    """
    level = HeaderLevel(level)
    if level == HeaderLevel.DASHBOARD:
        return {
            'font': Font(name=FONT_NAME, size=18, bold=True, color=COLORS['WHITE']),
            'fill': solid_fill(COLORS['DASHBOARD_HEADER']),
            'border': box_border(COLORS['WHITE']),
        }
    if level == HeaderLevel.MAIN:
        return {
            'font': Font(name=FONT_NAME, size=16, bold=True, color=COLORS['WHITE']),
            'fill': solid_fill(COLORS['PRIMARY']),
            'border': Border(bottom=Side(style='medium', color=COLORS['SECONDARY'])),
        }
    if level == HeaderLevel.SUB:
        return {
            'font': Font(name=FONT_NAME, size=14, bold=True, color=COLORS['PRIMARY']),
            'fill': solid_fill(COLORS['DASHBOARD_SUBHEADER']),
            'border': None,
        }
    return {
        'font': Font(name=FONT_NAME, size=12, bold=True, color=COLORS['BLACK']),
        'fill': None,
        'border': None,
    }


def column_header_font() -> Font:
    return Font(name=FONT_NAME, size=12, bold=True, color=COLORS['WHITE'])


def classify_status(status: Any) -> str:
    """لون الحالة - مطابقة جزئية بدون حساسية لحالة الأحرف"""
    text = str(status or '').lower()
    if any(marker in text for marker in SUCCESS_MARKERS):
        return COLORS['SUCCESS']
    if any(marker in text for marker in DANGER_MARKERS):
        return COLORS['DANGER']
    if any(marker in text for marker in WARNING_MARKERS):
        return COLORS['WARNING']
    return COLORS['INFO']


def format_number(value: float, max_fraction: int = 3) -> str:
    """1500 -> '1,500' ، 1234.5 -> '1,234.5'"""
    text = f"{value:,.{max_fraction}f}"
    if '.' in text:
        text = text.rstrip('0').rstrip('.')
    return '0' if text == '-0' else text


def format_money(value: float, currency_label: str = CURRENCY_LABEL) -> str:
    return f"{format_number(value)} {currency_label}"


def format_percentage(value: float) -> str:
    return f"{value:,.1f}%"


def format_date(value: Any, fmt: Optional[str] = None) -> Any:
    """تنسيق التاريخ - %A يستبدل باسم اليوم بالعربية"""
    fmt = fmt or '%Y/%m/%d'
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, date):
        moment = datetime.combine(value, datetime.min.time())
    elif isinstance(value, str):
        try:
            moment = datetime.fromisoformat(value.strip())
        except ValueError:
            return value
    else:
        return value
    if '%A' in fmt:
        fmt = fmt.replace('%A', ARABIC_WEEKDAYS[moment.weekday()])
    return moment.strftime(fmt)


def format_value(value: Any, column_type: ColumnType, fmt: Optional[str] = None,
                 currency_label: str = CURRENCY_LABEL) -> Any:
    """
    تنسيق قيمة الخلية حسب نوع العمود

    القيم المفقودة تصبح نصاً فارغاً، والقيم غير الرقمية في الأعمدة الرقمية تبقى كما هي
    """
    if value is None:
        return ''

    is_number = isinstance(value, (int, float)) and not isinstance(value, bool)
    column_type = ColumnType(column_type)

    if column_type == ColumnType.MONEY:
        return format_money(value, currency_label) if is_number else value
    if column_type == ColumnType.PERCENTAGE:
        return format_percentage(value) if is_number else value
    if column_type == ColumnType.NUMBER:
        return format_number(value) if is_number else value
    if column_type == ColumnType.DATE:
        return format_date(value, fmt)
    return value
