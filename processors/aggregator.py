"""
محرك تجميع الطلبات - Order Aggregator
يحسب الإيرادات وعدد الطلبات والمنتجات الأكثر مبيعاً والإيرادات حسب التصنيف
والسلاسل الزمنية (يومية / بالساعة) لنافذة زمنية محددة
"""

from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional

import pandas as pd

from config import ReportConfig
from database.models import (
    AggregationWindow,
    CategoryRevenue,
    DailyOrderDetail,
    Order,
    ProductRanking,
    SalesReport,
    TimeBucketRevenue,
)
from processors.normalizer import OrderNormalizer

LINE_COLUMNS = ['product_id', 'name', 'category', 'quantity', 'revenue']


class OrderAggregator:
    """محرك التجميع - دالة نقية على قائمة طلبات في الذاكرة"""

    def __init__(self, config: Optional[ReportConfig] = None):
        self.config = config or ReportConfig()
        self.normalizer = OrderNormalizer(self.config)

    def aggregate(
        self,
        raw_orders: Iterable[Mapping],
        window: AggregationWindow,
        now: Optional[datetime] = None
    ) -> SalesReport:
        """
        تجميع الطلبات الخام

        Args:
            raw_orders: سجلات الطلبات كما وردت من قاعدة البيانات
            window: النافذة الزمنية
            now: الوقت البديل للطلبات بدون تاريخ

        Returns:
            SalesReport
        """
        orders = self.normalizer.normalize_all(raw_orders, now)
        return self.aggregate_orders(orders, window)

    def aggregate_orders(self, orders: Iterable[Order], window: AggregationWindow) -> SalesReport:
        # الفلترة قبل أي تجميع
        in_window = [order for order in orders if window.contains(order.created_at)]

        series = self._init_buckets(window)
        hourly = self._init_hourly() if window.is_single_day else None

        total_revenue = 0.0
        line_rows = []
        day_details = []

        for order in in_window:
            order_total = order.total
            total_revenue += order_total

            bucket = series[_bucket_key(order.created_at, window.granularity)]
            bucket.revenue += order_total
            bucket.order_count += 1

            for item in order.line_items:
                line_rows.append((item.product_id, item.name, item.category, item.quantity, item.revenue))

            if hourly is not None:
                hour_bucket = hourly[f"{order.created_at.hour:02d}:00"]
                hour_bucket.revenue += order_total
                hour_bucket.order_count += 1
                day_details.append(DailyOrderDetail(
                    id=order.order_id,
                    time=order.created_at.strftime('%H:%M'),
                    customer_name=order.customer_name,
                    total_amount=order_total,
                    status=order.status,
                    items=order.item_count,
                ))

        total_orders = len(in_window)
        lines = pd.DataFrame(line_rows, columns=LINE_COLUMNS)
        top_products = self.rank_products(lines, self.config.top_n)

        report = SalesReport(
            total_revenue=total_revenue,
            total_orders=total_orders,
            average_order_value=total_revenue / total_orders if total_orders > 0 else 0.0,
            top_products=top_products,
            category_revenue=self.rank_categories(lines),
            time_series=list(series.values()),
        )

        if hourly is not None:
            report.hourly_series = list(hourly.values())
            report.daily_order_details = sorted(day_details, key=lambda d: d.time)
            report.daily_top_products = list(top_products)
            report.day_total_revenue = total_revenue
            report.day_order_count = total_orders

        return report

    @staticmethod
    def rank_products(lines: pd.DataFrame, top_n: int) -> List[ProductRanking]:
        """
        المنتجات الأكثر مبيعاً مرتبة تنازلياً حسب الإيراد

        Args:
            lines: جدول أسطر الطلبات
            top_n: عدد المنتجات المطلوب

        Returns:
            قائمة ProductRanking بطول لا يتجاوز top_n
        """
        if lines.empty:
            return []

        ranked = (
            lines.groupby('product_id', sort=False)
            .agg(name=('name', 'first'), units_sold=('quantity', 'sum'), revenue=('revenue', 'sum'))
            .reset_index()
            .sort_values('revenue', ascending=False, kind='mergesort')
            .head(top_n)
        )
        return [
            ProductRanking(
                product_id=row.product_id,
                name=row.name,
                units_sold=_plain_number(row.units_sold),
                revenue=float(row.revenue),
            )
            for row in ranked.itertuples(index=False)
        ]

    @staticmethod
    def rank_categories(lines: pd.DataFrame) -> List[CategoryRevenue]:
        """الإيرادات حسب التصنيف مرتبة تنازلياً"""
        if lines.empty:
            return []

        totals = (
            lines.groupby('category', sort=False)['revenue']
            .sum()
            .sort_values(ascending=False, kind='mergesort')
        )
        return [CategoryRevenue(category=category, revenue=float(revenue))
                for category, revenue in totals.items()]

    @staticmethod
    def _init_buckets(window: AggregationWindow) -> Dict[str, TimeBucketRevenue]:
        """كل فترات النافذة موجودة بقيمة صفر حتى بدون طلبات"""
        if window.granularity == 'hour':
            moments = pd.date_range(
                start=pd.Timestamp(window.start).floor('h'),
                end=pd.Timestamp(window.end),
                freq=pd.Timedelta(hours=1)
            )
        else:
            moments = pd.date_range(
                start=pd.Timestamp(window.start.date()),
                end=pd.Timestamp(window.end.date()),
                freq='D'
            )
        buckets = {}
        for moment in moments:
            key = _bucket_key(moment, window.granularity)
            buckets[key] = TimeBucketRevenue(bucket_key=key)
        return buckets

    @staticmethod
    def _init_hourly() -> Dict[str, TimeBucketRevenue]:
        return {f"{hour:02d}:00": TimeBucketRevenue(bucket_key=f"{hour:02d}:00") for hour in range(24)}


def _bucket_key(moment, granularity: str) -> str:
    if granularity == 'hour':
        return moment.strftime('%Y-%m-%d %H:00')
    return moment.strftime('%Y-%m-%d')


def _plain_number(value):
    number = float(value)
    return int(number) if number.is_integer() else number
