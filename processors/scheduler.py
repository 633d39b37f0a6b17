"""
التحديث التلقائي للتقارير - Auto Refresh
يعيد تشغيل التجميع كل فترة ثابتة في خيط خلفي
"""

import threading
from typing import Callable, Optional

import structlog

from config import AUTO_REFRESH_SECONDS

logger = structlog.get_logger(__name__)


class AutoRefresher:
    """مؤقت تحديث دوري يمكن إيقافه في أي وقت"""

    def __init__(self, interval_seconds: float = AUTO_REFRESH_SECONDS, callback: Optional[Callable[[], object]] = None):
        if callback is None:
            raise ValueError("callback is required")
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.callback = callback
        self.interval_seconds = interval_seconds
        self.runs = 0
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> bool:
        """تشغيل المؤقت - يرجع False إذا كان يعمل بالفعل"""
        with self._lock:
            if self.is_running:
                return False
            self._stop_event = threading.Event()
            self._thread = threading.Thread(
                target=self._run, args=(self._stop_event,), name="auto-refresh", daemon=True
            )
            self._thread.start()
        logger.info("auto_refresh_started", interval_seconds=self.interval_seconds)
        return True

    def stop(self, timeout: Optional[float] = None) -> bool:
        """إيقاف المؤقت - يرجع False إذا لم يكن يعمل"""
        with self._lock:
            thread = self._thread
            if thread is None:
                return False
            self._stop_event.set()
            self._thread = None
        if thread is not threading.current_thread():
            thread.join(timeout)
        logger.info("auto_refresh_stopped", runs=self.runs)
        return True

    def run_once(self):
        """تشغيل واحد - الأخطاء تسجل ولا توقف المؤقت"""
        self.runs += 1
        try:
            self.callback()
        except Exception as e:
            logger.error("auto_refresh_failed", run=self.runs, error=str(e), exc_info=True)

    def _run(self, stop_event: threading.Event):
        while not stop_event.wait(self.interval_seconds):
            self.run_once()
