"""
أخطاء التقارير - Report Errors
"""
import traceback
from typing import Any, Dict, Optional


class ReportError(Exception):
    """Base error for the reporting pipeline"""
    pass


class InvalidWindowError(ReportError, ValueError):
    """نافذة زمنية غير صالحة (البداية بعد النهاية أو فترة غير معروفة)"""
    pass


class MergeConflictError(ReportError):
    """The requested range overlaps an existing merged range"""
    pass


class CellResolutionError(ReportError):
    """A referenced cell cannot be resolved or written"""
    pass


def handle_exception(exception: Exception, logger: Optional[Any] = None) -> Dict[str, Any]:
    """
    Handle exceptions and return structured error info

    Args:
        exception: The exception to handle
        logger: Optional logger for logging

    Returns:
        Dict with error details
    """
    error_details = {
        'type': type(exception).__name__,
        'message': str(exception),
        'traceback': traceback.format_exc()
    }

    if logger:
        logger.error("Exception occurred",
                     error_type=error_details['type'],
                     error_message=error_details['message'])

    return error_details
