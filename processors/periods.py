"""
الفترات الزمنية للتقارير - Report Periods
"""

from datetime import date, datetime, time, timedelta
from typing import Optional, Union

import pandas as pd

from database.models import AggregationWindow
from utils.errors import InvalidWindowError

PERIOD_LABELS = {
    'day':    'يوم واحد',
    'week':   'أسبوع',
    'month':  'شهر',
    'year':   'سنة',
    'custom': 'مخصصة',
}

END_OF_DAY = time(23, 59, 59, 999999)

DateLike = Union[str, date, datetime, None]


def resolve_window(
    period: str,
    now: datetime,
    start_date: DateLike = None,
    end_date: DateLike = None,
    selected_day: DateLike = None,
    granularity: str = 'day'
) -> AggregationWindow:
    """
    تحويل الفترة المختارة إلى نافذة زمنية

    Args:
        period: day | week | month | year | custom
        now: الوقت الحالي
        start_date / end_date: حدود الفترة المخصصة
        selected_day: اليوم المختار لتقرير اليوم الواحد
        granularity: day | hour

    Returns:
        AggregationWindow
    """
    if period == 'day':
        day = _to_date(selected_day) or now.date()
        return AggregationWindow(
            datetime.combine(day, time.min), datetime.combine(day, END_OF_DAY), granularity
        )
    if period == 'week':
        return AggregationWindow(now - timedelta(days=7), now, granularity)
    if period == 'month':
        return AggregationWindow(_months_back(now, 1), now, granularity)
    if period == 'year':
        return AggregationWindow(_months_back(now, 12), now, granularity)
    if period == 'custom':
        start = _to_date(start_date)
        end = _to_date(end_date)
        if start is None or end is None:
            raise InvalidWindowError("custom period needs both start and end dates")
        return AggregationWindow(
            datetime.combine(start, time.min), datetime.combine(end, END_OF_DAY), granularity
        )
    raise InvalidWindowError(f"unknown period: {period!r}")


def period_label(period: str) -> str:
    return PERIOD_LABELS.get(period, PERIOD_LABELS['custom'])


def _months_back(moment: datetime, months: int) -> datetime:
    return (pd.Timestamp(moment) - pd.DateOffset(months=months)).to_pydatetime()


def _to_date(value: DateLike) -> Optional[date]:
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError as e:
        raise InvalidWindowError(f"invalid date: {value!r}") from e
