"""
نماذج البيانات لتقارير المبيعات
Data Models for Sales Reports
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import List, Optional

from utils.errors import InvalidWindowError

GRANULARITIES = ('hour', 'day')


@dataclass(frozen=True)
class LineItem:
    """منتج داخل الطلب - Line Item"""
    product_id: str
    name: str
    category: str
    price: float
    quantity: float

    @property
    def revenue(self) -> float:
        """إيراد السطر"""
        return self.price * self.quantity


@dataclass(frozen=True)
class Order:
    """نموذج الطلب بعد التوحيد - Normalized Order"""
    order_id: str
    customer_name: str
    customer_phone: str
    customer_address: str
    status: str
    created_at: datetime
    line_items: tuple = ()
    fallback_total: Optional[float] = None

    @property
    def total(self) -> float:
        """قيمة الطلب: مجموع المنتجات، أو إجمالي الطلب إذا لم توجد منتجات"""
        if self.line_items:
            return sum(item.revenue for item in self.line_items)
        return self.fallback_total or 0.0

    @property
    def item_count(self) -> float:
        return sum(item.quantity for item in self.line_items)


@dataclass(frozen=True)
class AggregationWindow:
    """النافذة الزمنية للتقرير (شاملة للطرفين)"""
    start: datetime
    end: datetime
    granularity: str = 'day'

    def __post_init__(self):
        if self.start > self.end:
            raise InvalidWindowError(f"window start {self.start} is after end {self.end}")
        if self.granularity not in GRANULARITIES:
            raise InvalidWindowError(f"unknown granularity: {self.granularity!r}")

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end

    @property
    def is_single_day(self) -> bool:
        return self.start.date() == self.end.date()


@dataclass
class ProductRanking:
    product_id: str
    name: str
    units_sold: float
    revenue: float


@dataclass
class CategoryRevenue:
    category: str
    revenue: float


@dataclass
class TimeBucketRevenue:
    bucket_key: str
    revenue: float = 0.0
    order_count: int = 0


@dataclass
class DailyOrderDetail:
    """تفاصيل طلب في اليوم المحدد"""
    id: str
    time: str
    customer_name: str
    total_amount: float
    status: str
    items: float


@dataclass
class SalesReport:
    """نتيجة التجميع - Aggregation Result"""
    total_revenue: float
    total_orders: int
    average_order_value: float
    top_products: List[ProductRanking]
    category_revenue: List[CategoryRevenue]
    time_series: List[TimeBucketRevenue]
    hourly_series: Optional[List[TimeBucketRevenue]] = None
    daily_order_details: List[DailyOrderDetail] = field(default_factory=list)
    daily_top_products: List[ProductRanking] = field(default_factory=list)
    day_total_revenue: float = 0.0
    day_order_count: int = 0

    @property
    def is_single_day(self) -> bool:
        return self.hourly_series is not None

    @property
    def peak_hour(self) -> Optional[TimeBucketRevenue]:
        """ساعة الذروة: أعلى إيراد، أول ساعة عند التساوي"""
        best = None
        for bucket in self.hourly_series or []:
            if bucket.revenue > (best.revenue if best else 0):
                best = bucket
        return best

    @property
    def average_items_per_order(self) -> float:
        if not self.daily_order_details:
            return 0.0
        return sum(d.items for d in self.daily_order_details) / len(self.daily_order_details)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ReportLog:
    """سجل عرض التقرير"""
    timestamp: datetime
    period: str
    start_date: datetime
    end_date: datetime
    total_revenue: float
    total_orders: int
    average_order_value: float
    restored: bool = False
    log_id: Optional[int] = None


@dataclass
class ExportLog:
    """سجل التصدير"""
    timestamp: datetime
    format: str
    period: str
    start_date: str
    end_date: str
    exported_by: str
    report_type: str
    total_revenue: float
    total_orders: int
    restored: bool = False
    log_id: Optional[int] = None
