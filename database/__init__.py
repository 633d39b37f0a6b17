"""
Database package initialization
"""

from .models import (
    LineItem,
    Order,
    AggregationWindow,
    ProductRanking,
    CategoryRevenue,
    TimeBucketRevenue,
    DailyOrderDetail,
    SalesReport,
    ReportLog,
    ExportLog,
)
from .db_manager import DatabaseManager

__all__ = [
    'LineItem',
    'Order',
    'AggregationWindow',
    'ProductRanking',
    'CategoryRevenue',
    'TimeBucketRevenue',
    'DailyOrderDetail',
    'SalesReport',
    'ReportLog',
    'ExportLog',
    'DatabaseManager'
]
