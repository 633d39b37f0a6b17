"""
Processors package initialization
"""

from .normalizer import OrderNormalizer
from .aggregator import OrderAggregator
from .periods import resolve_window, period_label
from .scheduler import AutoRefresher

__all__ = [
    'OrderNormalizer',
    'OrderAggregator',
    'resolve_window',
    'period_label',
    'AutoRefresher'
]
