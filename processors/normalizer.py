"""
موحّد الطلبات - Order Normalizer
يحوّل سجلات الطلبات الخام (بأشكالها المختلفة) إلى نموذج Order موحد
"""

import math
from collections.abc import Mapping
from datetime import date, datetime, timezone
from typing import Any, Iterable, List, Optional
from zoneinfo import ZoneInfo

import pandas as pd

from config import ReportConfig
from database.models import LineItem, Order

TIMESTAMP_FIELDS = ('createdAt', 'date')


class OrderNormalizer:
    """موحّد سجلات الطلبات"""

    def __init__(self, config: Optional[ReportConfig] = None):
        self.config = config or ReportConfig()
        self._tz = ZoneInfo(self.config.timezone)

    def normalize_all(self, raw_orders: Iterable[Mapping], now: Optional[datetime] = None) -> List[Order]:
        """
        توحيد مجموعة طلبات

        Args:
            raw_orders: السجلات الخام
            now: الوقت المستخدم للطلبات بدون تاريخ صالح

        Returns:
            قائمة Order
        """
        now = now or datetime.now()
        return [self.normalize(raw, now) for raw in raw_orders]

    def normalize(self, raw: Mapping, now: datetime) -> Order:
        line_items = self._parse_line_items(raw.get('products'))

        fallback_total = None
        if not line_items:
            fallback_total = _to_number(raw.get('totalAmount'), None)

        return Order(
            order_id=str(raw.get('id') or ''),
            customer_name=str(raw.get('customerName') or raw.get('name') or self.config.default_customer),
            customer_phone=str(raw.get('customerPhone') or ''),
            customer_address=str(raw.get('customerAddress') or ''),
            status=str(raw.get('status') or self.config.default_status),
            created_at=self._resolve_created_at(raw, now),
            line_items=tuple(line_items),
            fallback_total=fallback_total,
        )

    def parse_timestamp(self, value: Any) -> Optional[datetime]:
        """
        تحويل قيمة التاريخ إلى datetime محلي بدون منطقة زمنية

        يقبل: datetime، كائن له to_datetime()، قاموس seconds/nanoseconds،
        رقم epoch، أو نص بصيغة ISO. يرجع None إذا تعذر التحويل.
        """
        if value is None or value is pd.NaT:
            return None

        if isinstance(value, datetime):
            parsed = value
        elif isinstance(value, date):
            parsed = datetime.combine(value, datetime.min.time())
        elif hasattr(value, 'to_datetime'):
            parsed = value.to_datetime()
        elif hasattr(value, 'ToDatetime'):
            parsed = value.ToDatetime().replace(tzinfo=timezone.utc)
        elif isinstance(value, Mapping):
            parsed = _from_seconds_mapping(value)
        elif isinstance(value, bool):
            return None
        elif isinstance(value, (int, float)):
            parsed = _from_epoch(value)
        elif isinstance(value, str):
            parsed = _from_string(value)
        else:
            return None

        if parsed is None:
            return None
        if isinstance(parsed, pd.Timestamp):
            parsed = parsed.to_pydatetime()
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(self._tz).replace(tzinfo=None)
        return parsed

    def _resolve_created_at(self, raw: Mapping, now: datetime) -> datetime:
        for field_name in TIMESTAMP_FIELDS:
            parsed = self.parse_timestamp(raw.get(field_name))
            if parsed is not None:
                return parsed
        return now

    def _parse_line_items(self, products: Any) -> List[LineItem]:
        if not isinstance(products, (list, tuple)):
            return []

        items = []
        for prod in products:
            if not isinstance(prod, Mapping):
                continue
            name = prod.get('name')
            product_id = prod.get('id', prod.get('productId'))
            if product_id is None or product_id == '':
                product_id = name or ''
            items.append(LineItem(
                product_id=str(product_id),
                name=str(name if name is not None else product_id),
                category=str(prod.get('category') or self.config.uncategorized_label),
                price=_to_number(prod.get('price'), 0.0),
                quantity=_to_number(prod.get('quantity'), 1),
            ))
        return items


def _to_number(value: Any, default):
    """رقم آمن: القيم المفقودة أو غير الصالحة ترجع القيمة الافتراضية"""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        try:
            number = float(str(value).strip().replace(',', ''))
        except ValueError:
            return default
    if math.isnan(number) or math.isinf(number):
        return default
    return int(number) if number.is_integer() else number


def _from_seconds_mapping(value: Mapping) -> Optional[datetime]:
    seconds = value.get('seconds', value.get('_seconds'))
    if seconds is None:
        return None
    nanos = value.get('nanoseconds', value.get('_nanoseconds')) or 0
    try:
        return datetime.fromtimestamp(float(seconds) + float(nanos) / 1e9, tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return None


def _from_epoch(value: float) -> Optional[datetime]:
    if math.isnan(value) or math.isinf(value):
        return None
    seconds = value / 1000 if abs(value) > 1e11 else value
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (ValueError, OverflowError, OSError):
        return None


def _from_string(value: str) -> Optional[datetime]:
    text = value.strip()
    if not text:
        return None
    parsed = pd.to_datetime(text, errors='coerce')
    if parsed is pd.NaT or pd.isna(parsed):
        return None
    return parsed
