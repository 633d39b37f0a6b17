# ============================================================
#  Project  : S7teen Food — Sales Reports & Excel Export
#             تقارير المبيعات وتصدير الإكسل
#  Module   : config.py — Settings
#  Developer : Abdelrhaman Wael Mohammed
#  Created   : February 2026
# ============================================================
import os
from dataclasses import dataclass

DB_NAME    = os.getenv("ORDERS_DB", "food_orders.db")
OUTPUT_DIR = os.getenv("REPORTS_DIR", "reports")
TIMEZONE   = os.getenv("REPORT_TIMEZONE", "Africa/Cairo")

BRAND_NAME          = "S7teen Food App"
CURRENCY_LABEL      = "ج.م"
UNCATEGORIZED_LABEL = "غير مصنف"
DEFAULT_CUSTOMER    = "عميل"
DEFAULT_STATUS      = "مكتمل"

TOP_PRODUCTS_LIMIT    = 10
AUTO_REFRESH_SECONDS  = 60


@dataclass
class ReportConfig:
    """إعدادات التقرير - تمرر صراحة لكل عملية تجميع أو تصدير"""
    disable_auto_reporting: bool = False
    top_n: int = TOP_PRODUCTS_LIMIT
    timezone: str = TIMEZONE
    currency_label: str = CURRENCY_LABEL
    brand_name: str = BRAND_NAME
    uncategorized_label: str = UNCATEGORIZED_LABEL
    default_customer: str = DEFAULT_CUSTOMER
    default_status: str = DEFAULT_STATUS
    exported_by: str = "admin"
