# ============================================================
#  Project  : S7teen Food — Sales Reports & Excel Export
#             تقارير المبيعات وتصدير الإكسل
#  Module   : generate_report.py — Sales Report Generator
#  Developer : Abdelrhaman Wael Mohammed
#  Created   : February 2026
# ============================================================
import argparse
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

import structlog

from config import DB_NAME, OUTPUT_DIR, ReportConfig
from database import AggregationWindow, DatabaseManager, ExportLog, ReportLog, SalesReport
from database.db_manager import ANALYTICS_LAST_RESET
from processors import OrderAggregator, period_label, resolve_window
from processors.periods import END_OF_DAY
from utils.excel_styles import COLORS, ColumnType, HeaderLevel, format_date, format_money
from utils.exporters import Column, Metric, ReportSheet, SheetHeader, export_data_to_excel
from utils.logging_config import setup_logging

logger = structlog.get_logger(__name__)

REPAIR_PERIODS = ('day', 'week', 'month', 'year')
REPAIR_DAYS    = 14


def report_title(window: AggregationWindow, period: str) -> str:
    if period == 'day':
        return f"تقرير يومي: {window.start:%d/%m/%Y}"
    return f"تقرير المبيعات: من {window.start:%d/%m/%Y} إلى {window.end:%d/%m/%Y}"


def report_file_name(window: AggregationWindow, period: str) -> str:
    """تقرير_يومي_<dd-mm-yyyy>.xlsx أو تقرير_المبيعات_<من>_إلى_<إلى>.xlsx"""
    if period == 'day':
        return f"تقرير_يومي_{window.start:%d-%m-%Y}.xlsx"
    return f"تقرير_المبيعات_{window.start:%d-%m-%Y}_إلى_{window.end:%d-%m-%Y}.xlsx"


def _period_text(window: AggregationWindow, period: str) -> str:
    if period == 'day':
        return f"يوم واحد ({window.start:%Y/%m/%d})"
    if period == 'custom':
        return f"مخصصة ({window.start:%Y/%m/%d} - {window.end:%Y/%m/%d})"
    return period_label(period)


def _share(part: float, whole: float) -> float:
    return part / whole * 100 if whole else 0.0


def build_dashboard_metrics(report: SalesReport, window: AggregationWindow, period: str,
                            config: Optional[ReportConfig] = None) -> List[Metric]:
    """مؤشرات لوحة القيادة الرئيسية - مؤشرات إضافية لتقرير اليوم الواحد"""
    config = config or ReportConfig()
    if period == 'day':
        subtext = f"{window.start:%Y/%m/%d}"
    else:
        subtext = f"من {window.start:%Y/%m/%d} إلى {window.end:%Y/%m/%d}"

    metrics = [
        Metric('إجمالي الإيرادات', format_money(report.total_revenue, config.currency_label), COLORS['PRIMARY']),
        Metric('عدد الطلبات', report.total_orders, COLORS['SUCCESS']),
        Metric('متوسط قيمة الطلب', f"{report.average_order_value:.2f} {config.currency_label}", COLORS['WARNING']),
        Metric('الفترة الزمنية', period_label(period), COLORS['INFO'], subtext=subtext),
    ]

    if report.is_single_day:
        peak = report.peak_hour
        metrics.append(Metric('ساعة الذروة', peak.bucket_key if peak else 'لا يوجد', COLORS['SECONDARY']))
        metrics.append(Metric('متوسط المنتجات في الطلب', f"{report.average_items_per_order:.1f}", COLORS['INFO']))

    return metrics


def build_report_sheets(report: SalesReport, window: AggregationWindow, period: str,
                        config: Optional[ReportConfig] = None) -> List[ReportSheet]:
    """
    أوراق تقرير المبيعات بالترتيب

    Args:
        report: نتيجة التجميع
        window: النافذة الزمنية
        period: day | week | month | year | custom
        config: إعدادات التقرير

    Returns:
        قائمة ReportSheet
    """
    config = config or ReportConfig()
    total = report.total_revenue
    sheets = []

    # 1. ملخص التقرير
    sheets.append(ReportSheet(
        name='ملخص التقرير',
        headers=[SheetHeader(report_title(window, period), HeaderLevel.MAIN)],
        columns=[
            Column('إجمالي الإيرادات', 'total_revenue', 20, ColumnType.MONEY),
            Column('عدد الطلبات', 'total_orders', 15, ColumnType.NUMBER),
            Column('متوسط قيمة الطلب', 'average', 20, ColumnType.MONEY),
            Column('الفترة الزمنية', 'period', 25, ColumnType.TEXT),
        ],
        rows=[{
            'total_revenue': report.total_revenue,
            'total_orders': report.total_orders,
            'average': report.average_order_value,
            'period': _period_text(window, period),
        }],
        dashboard_metrics=build_dashboard_metrics(report, window, period, config),
    ))

    # 2. الإيرادات اليومية
    sheets.append(ReportSheet(
        name='الإيرادات اليومية',
        headers=[SheetHeader('تقرير الإيرادات اليومية', HeaderLevel.MAIN)],
        columns=[
            _bucket_column(window),
            Column('الإيرادات', 'revenue', 20, ColumnType.MONEY),
            Column('عدد الطلبات', 'orders', 20, ColumnType.NUMBER),
            Column('متوسط قيمة الطلب', 'average', 20, ColumnType.MONEY),
        ],
        rows=[{
            'date': bucket.bucket_key,
            'revenue': bucket.revenue,
            'orders': bucket.order_count,
            'average': bucket.revenue / bucket.order_count if bucket.order_count else 0,
        } for bucket in report.time_series],
    ))

    # 3. المنتجات الأكثر مبيعاً
    sheets.append(ReportSheet(
        name='المنتجات الأكثر مبيعاً',
        headers=[SheetHeader('تقرير المنتجات الأكثر مبيعاً', HeaderLevel.MAIN)],
        columns=_product_columns('نسبة من الإجمالي'),
        rows=_product_rows(report.top_products, total),
    ))

    # 4. الإيرادات حسب التصنيف
    sheets.append(ReportSheet(
        name='الإيرادات حسب التصنيف',
        headers=[SheetHeader('تقرير الإيرادات حسب تصنيف المنتجات', HeaderLevel.MAIN)],
        columns=[
            Column('التصنيف', 'category', 30, ColumnType.TEXT),
            Column('الإيرادات', 'revenue', 20, ColumnType.MONEY),
            Column('نسبة من الإجمالي', 'percentage', 20, ColumnType.PERCENTAGE),
        ],
        rows=[{
            'category': entry.category,
            'revenue': entry.revenue,
            'percentage': _share(entry.revenue, total),
        } for entry in report.category_revenue],
    ))

    if report.is_single_day and report.daily_order_details:
        sheets.extend(_single_day_sheets(report, window, config))

    return sheets


def _single_day_sheets(report: SalesReport, window: AggregationWindow, config: ReportConfig) -> List[ReportSheet]:
    day = window.start
    day_total = report.day_total_revenue
    day_count = report.day_order_count
    day_average = day_total / day_count if day_count else 0

    day_label = format_date(day, '%d/%m/%Y (%A)')

    details = ReportSheet(
        name='تفاصيل طلبات اليوم',
        headers=[SheetHeader(f"تفاصيل طلبات يوم {day_label}", HeaderLevel.DASHBOARD)],
        columns=[
            Column('الوقت', 'time', 15, ColumnType.TEXT),
            Column('رقم الطلب', 'id', 20, ColumnType.TEXT),
            Column('العميل', 'customer_name', 25, ColumnType.TEXT),
            Column('عدد المنتجات', 'items', 15, ColumnType.NUMBER),
            Column('المبلغ', 'total_amount', 15, ColumnType.MONEY),
            Column('الحالة', 'status', 15, ColumnType.STATUS),
        ],
        rows=[{
            'time': d.time,
            'id': d.id,
            'customer_name': d.customer_name,
            'items': d.items,
            'total_amount': d.total_amount,
            'status': d.status,
        } for d in report.daily_order_details],
        dashboard_metrics=[
            Metric('إيرادات اليوم', format_money(day_total, config.currency_label), COLORS['PRIMARY']),
            Metric('عدد الطلبات', day_count, COLORS['SUCCESS']),
            Metric('متوسط قيمة الطلب', f"{day_average:.2f} {config.currency_label}", COLORS['WARNING']),
        ],
    )

    top_of_day = ReportSheet(
        name='المنتجات الأكثر مبيعاً باليوم',
        headers=[SheetHeader(f"المنتجات الأكثر مبيعاً ليوم {day:%d/%m/%Y}", HeaderLevel.MAIN)],
        columns=_product_columns('نسبة من إجمالي اليوم'),
        rows=_product_rows(report.daily_top_products, day_total),
    )

    hourly = ReportSheet(
        name='المبيعات حسب الساعة',
        headers=[SheetHeader(f"توزيع المبيعات حسب الساعة ليوم {day:%d/%m/%Y}", HeaderLevel.MAIN)],
        columns=[
            Column('الساعة', 'hour', 15, ColumnType.TEXT),
            Column('عدد الطلبات', 'orders', 20, ColumnType.NUMBER),
            Column('الإيرادات', 'revenue', 20, ColumnType.MONEY),
        ],
        rows=[{
            'hour': bucket.bucket_key,
            'orders': bucket.order_count,
            'revenue': bucket.revenue,
        } for bucket in report.hourly_series or [] if bucket.order_count > 0],
    )

    return [details, top_of_day, hourly]


def _bucket_column(window: AggregationWindow) -> Column:
    """عمود الفترة: تاريخ ويوم للفترات اليومية، تاريخ وساعة للفترات بالساعة"""
    if window.granularity == 'hour':
        return Column('الساعة', 'date', 20, ColumnType.DATE, '%Y/%m/%d %H:%M')
    return Column('التاريخ', 'date', 20, ColumnType.DATE, '%Y/%m/%d (%A)')


def _product_columns(share_header: str) -> List[Column]:
    return [
        Column('المنتج', 'name', 30, ColumnType.TEXT),
        Column('عدد المبيعات', 'sales', 20, ColumnType.NUMBER),
        Column('الإيرادات', 'revenue', 20, ColumnType.MONEY),
        Column(share_header, 'percentage', 20, ColumnType.PERCENTAGE),
    ]


def _product_rows(products, total: float) -> List[dict]:
    return [{
        'name': product.name,
        'sales': product.units_sold,
        'revenue': product.revenue,
        'percentage': _share(product.revenue, total),
    } for product in products]


# ==================== التصدير والسجلات ====================

def export_sales_report(
    db: DatabaseManager,
    report: SalesReport,
    window: AggregationWindow,
    period: str,
    config: Optional[ReportConfig] = None,
    destination=None,
    now: Optional[datetime] = None
) -> Tuple[bool, str]:
    """
    تصدير تقرير المبيعات إلى Excel وتسجيل عملية التصدير

    Returns:
        (نجاح التصدير، اسم الملف)
    """
    config = config or ReportConfig()
    now = now or datetime.now()
    file_name = report_file_name(window, period)

    exported = export_data_to_excel(
        title=report_title(window, period),
        file_name=file_name,
        sheets=build_report_sheets(report, window, period, config),
        dashboard_metrics=build_dashboard_metrics(report, window, period, config),
        destination=destination,
        hide_report_info=True,
        config=config,
        generated_at=now,
    )

    if exported:
        db.add_export_log(ExportLog(
            timestamp=now,
            format='excel',
            period=period,
            start_date=window.start.date().isoformat(),
            end_date=window.end.date().isoformat(),
            exported_by=config.exported_by,
            report_type='daily' if period == 'day' else 'periodic',
            total_revenue=report.total_revenue,
            total_orders=report.total_orders,
        ))
    return exported, file_name


def record_report_view(db: DatabaseManager, report: SalesReport, window: AggregationWindow,
                       period: str, config: ReportConfig, now: Optional[datetime] = None) -> bool:
    """تسجيل عرض التقرير - لا شيء إذا كان التسجيل الآلي معطلاً"""
    if config.disable_auto_reporting:
        return False
    return db.add_report_log(ReportLog(
        timestamp=now or datetime.now(),
        period=period,
        start_date=window.start,
        end_date=window.end,
        total_revenue=report.total_revenue,
        total_orders=report.total_orders,
        average_order_value=report.average_order_value,
    ))


def clear_analytics(db: DatabaseManager, delete_orders: bool = False, now: Optional[datetime] = None) -> dict:
    """مسح سجلات التصدير والتقارير (والطلبات اختيارياً) وتعطيل التسجيل الآلي"""
    db.set_disable_auto_reporting(True)
    cleared = {
        'export_logs': db.clear_export_logs(),
        'report_logs': db.clear_report_logs(),
        'orders': db.delete_all_orders() if delete_orders else 0,
    }
    db.set_setting(ANALYTICS_LAST_RESET, (now or datetime.now()).isoformat())
    logger.info("analytics_cleared", **cleared)
    return cleared


def repair_report_logs(db: DatabaseManager, now: Optional[datetime] = None,
                       config: Optional[ReportConfig] = None) -> int:
    """
    إعادة إنشاء سجلات التقارير من الطلبات الحالية

    سجل لكل فترة (يوم، أسبوع، شهر، سنة) وسجل لكل يوم من آخر 14 يوماً،
    وكلها معلمة بأنها مستعادة.
    """
    now = now or datetime.now()
    aggregator = OrderAggregator(config)
    orders = aggregator.normalizer.normalize_all(db.get_all_orders(), now)

    windows = [(period, resolve_window(period, now)) for period in REPAIR_PERIODS]
    for offset in range(REPAIR_DAYS):
        day = (now - timedelta(days=offset)).date()
        windows.append(('day', AggregationWindow(
            datetime.combine(day, datetime.min.time()), datetime.combine(day, END_OF_DAY)
        )))

    created = 0
    for period, window in windows:
        report = aggregator.aggregate_orders(orders, window)
        if db.add_report_log(ReportLog(
            timestamp=now,
            period=period,
            start_date=window.start,
            end_date=window.end,
            total_revenue=report.total_revenue,
            total_orders=report.total_orders,
            average_order_value=report.average_order_value,
            restored=True,
        )):
            created += 1

    logger.info("report_logs_repaired", created=created)
    return created


def generate_sales_report(period: str = 'week', start_date=None, end_date=None, day=None,
                          db_path: str = DB_NAME, output_dir: str = OUTPUT_DIR) -> bool:
    db = DatabaseManager(db_path)
    config = ReportConfig(disable_auto_reporting=db.get_disable_auto_reporting())
    now = datetime.now()

    window = resolve_window(period, now, start_date, end_date, day)
    report = OrderAggregator(config).aggregate(db.get_all_orders(), window, now)
    record_report_view(db, report, window, period, config, now)

    exported, file_name = export_sales_report(db, report, window, period, config, output_dir, now)
    if exported:
        logger.info("report_generated", path=f"{output_dir}/{file_name}",
                    total_revenue=report.total_revenue, total_orders=report.total_orders)
    return exported


def main(argv=None):
    parser = argparse.ArgumentParser(description='تصدير تقرير المبيعات إلى Excel')
    parser.add_argument('--period', default='week', choices=['day', 'week', 'month', 'year', 'custom'])
    parser.add_argument('--start', help='بداية الفترة المخصصة YYYY-MM-DD')
    parser.add_argument('--end', help='نهاية الفترة المخصصة YYYY-MM-DD')
    parser.add_argument('--day', help='اليوم المختار YYYY-MM-DD')
    parser.add_argument('--db', default=DB_NAME)
    parser.add_argument('--output', default=OUTPUT_DIR)
    args = parser.parse_args(argv)

    setup_logging('sales-reports')
    ok = generate_sales_report(args.period, args.start, args.end, args.day, args.db, args.output)
    return 0 if ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
