"""
مدير قاعدة البيانات - Database Manager
يدير الطلبات وسجلات التقارير والتصدير والإعدادات في SQLite
"""

import json
import sqlite3
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd
import structlog

from config import TIMEZONE, ReportConfig

from .models import ReportLog, ExportLog

logger = structlog.get_logger(__name__)

DISABLE_AUTO_REPORTING = "disable_auto_reporting"
ANALYTICS_LAST_RESET   = "analytics_last_reset"


class DatabaseManager:
    """مدير قاعدة البيانات"""

    def __init__(self, db_path: str = "food_orders.db", timezone: str = TIMEZONE):
        """
        تهيئة مدير قاعدة البيانات

        Args:
            db_path: مسار ملف قاعدة البيانات
            timezone: المنطقة الزمنية لحفظ تواريخ الطلبات كوقت محلي
        """
        # استيراد متأخر: processors يستورد database.models
        from processors.normalizer import OrderNormalizer

        self.db_path = str(db_path)
        self._normalizer = OrderNormalizer(ReportConfig(timezone=timezone))
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._create_tables()

    def _get_connection(self) -> sqlite3.Connection:
        """إنشاء اتصال بقاعدة البيانات"""
        conn = sqlite3.connect(self.db_path, timeout=20)
        conn.row_factory = sqlite3.Row
        return conn

    def _create_tables(self):
        """إنشاء جداول قاعدة البيانات"""
        conn = self._get_connection()
        cursor = conn.cursor()

        # جدول الطلبات - المنتجات محفوظة كـ JSON
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS orders (
                order_id         TEXT PRIMARY KEY,
                customer_name    TEXT DEFAULT '',
                customer_phone   TEXT DEFAULT '',
                customer_address TEXT DEFAULT '',
                status           TEXT,
                total_amount     REAL,
                products         TEXT,
                created_at       TEXT
            )
        """)

        # سجل عرض التقارير
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS report_logs (
                log_id              INTEGER PRIMARY KEY AUTOINCREMENT,
                timestamp           TEXT NOT NULL,
                period              TEXT NOT NULL,
                start_date          TEXT NOT NULL,
                end_date            TEXT NOT NULL,
                total_revenue       REAL DEFAULT 0,
                total_orders        INTEGER DEFAULT 0,
                average_order_value REAL DEFAULT 0,
                restored            INTEGER DEFAULT 0
            )
        """)

        # سجل التصدير
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS export_logs (
                log_id        INTEGER PRIMARY KEY AUTOINCREMENT,
                timestamp     TEXT NOT NULL,
                format        TEXT NOT NULL,
                period        TEXT NOT NULL,
                start_date    TEXT,
                end_date      TEXT,
                exported_by   TEXT DEFAULT 'admin',
                report_type   TEXT,
                total_revenue REAL DEFAULT 0,
                total_orders  INTEGER DEFAULT 0,
                restored      INTEGER DEFAULT 0
            )
        """)

        # الإعدادات المحفوظة بين الجلسات
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS settings (
                key   TEXT PRIMARY KEY,
                value TEXT
            )
        """)

        conn.commit()
        conn.close()

    # ==================== عمليات الطلبات ====================

    def add_order(self, order: Dict[str, Any]) -> str:
        """إضافة طلب واحد وإرجاع رقمه"""
        order_id = str(order.get('id') or uuid.uuid4().hex)
        products = order.get('products')
        conn = self._get_connection()
        conn.execute("""
            INSERT OR REPLACE INTO orders
            (order_id, customer_name, customer_phone, customer_address, status,
             total_amount, products, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            order_id,
            order.get('customerName') or order.get('name') or '',
            order.get('customerPhone') or '',
            order.get('customerAddress') or '',
            order.get('status'),
            _to_float_or_none(order.get('totalAmount')),
            json.dumps(products, ensure_ascii=False, default=str) if isinstance(products, list) else None,
            self._resolve_timestamp(order),
        ))
        conn.commit()
        conn.close()
        return order_id

    def _resolve_timestamp(self, order: Dict[str, Any]) -> Optional[str]:
        """
        تاريخ الطلب كنص ISO بالوقت المحلي

        يقبل كل أشكال التاريخ التي يفهمها الموحّد (datetime، seconds/_seconds،
        epoch، نص ISO). النص غير القابل للتحويل يحفظ كما هو.
        """
        raw_values = [order.get(field) for field in ('createdAt', 'date')]
        for value in raw_values:
            parsed = self._normalizer.parse_timestamp(value)
            if parsed is not None:
                return parsed.isoformat()
        for value in raw_values:
            if isinstance(value, str) and value.strip():
                return value.strip()
        return None

    def add_orders_bulk(self, orders: List[Dict[str, Any]]) -> int:
        """إضافة مجموعة من الطلبات دفعة واحدة"""
        added_count = 0
        for order in orders:
            try:
                self.add_order(order)
                added_count += 1
            except (sqlite3.Error, TypeError, ValueError) as e:
                logger.warning("order_insert_failed", order_id=order.get('id'), error=str(e))
        return added_count

    def get_all_orders(self) -> List[Dict[str, Any]]:
        """
        الحصول على جميع الطلبات بنفس شكل المستند الخام
        (customerName, products, createdAt ...)
        """
        conn = self._get_connection()
        rows = conn.execute("SELECT * FROM orders ORDER BY created_at DESC").fetchall()
        conn.close()

        orders = []
        for row in rows:
            record = {
                'id': row['order_id'],
                'customerName': row['customer_name'],
                'customerPhone': row['customer_phone'],
                'customerAddress': row['customer_address'],
                'createdAt': row['created_at'],
            }
            if row['status']:
                record['status'] = row['status']
            if row['total_amount'] is not None:
                record['totalAmount'] = row['total_amount']
            if row['products'] is not None:
                record['products'] = json.loads(row['products'])
            orders.append(record)
        return orders

    def get_orders_dataframe(self) -> pd.DataFrame:
        """الطلبات كجدول مسطح للتصدير"""
        conn = self._get_connection()
        df = pd.read_sql_query(
            "SELECT order_id, created_at, customer_name, customer_phone, customer_address, "
            "status, total_amount, products FROM orders ORDER BY created_at",
            conn
        )
        conn.close()
        return df

    def count_orders(self) -> int:
        conn = self._get_connection()
        count = conn.execute("SELECT COUNT(*) FROM orders").fetchone()[0]
        conn.close()
        return count

    def delete_all_orders(self) -> int:
        return self._delete_all("orders")

    # ==================== سجلات التقارير ====================

    def add_report_log(self, log: ReportLog) -> bool:
        """حفظ سجل عرض تقرير"""
        try:
            conn = self._get_connection()
            conn.execute("""
                INSERT INTO report_logs
                (timestamp, period, start_date, end_date, total_revenue,
                 total_orders, average_order_value, restored)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                log.timestamp.isoformat(), log.period,
                log.start_date.isoformat(), log.end_date.isoformat(),
                log.total_revenue, log.total_orders, log.average_order_value,
                int(log.restored)
            ))
            conn.commit()
            conn.close()
            return True
        except sqlite3.Error as e:
            logger.warning("report_log_failed", period=log.period, error=str(e))
            return False

    def get_report_logs(self, limit: int = 100) -> List[ReportLog]:
        conn = self._get_connection()
        rows = conn.execute(
            "SELECT * FROM report_logs ORDER BY log_id DESC LIMIT ?", (limit,)
        ).fetchall()
        conn.close()
        return [
            ReportLog(
                timestamp=datetime.fromisoformat(row['timestamp']),
                period=row['period'],
                start_date=datetime.fromisoformat(row['start_date']),
                end_date=datetime.fromisoformat(row['end_date']),
                total_revenue=row['total_revenue'],
                total_orders=row['total_orders'],
                average_order_value=row['average_order_value'],
                restored=bool(row['restored']),
                log_id=row['log_id'],
            )
            for row in rows
        ]

    def clear_report_logs(self) -> int:
        return self._delete_all("report_logs")

    # ==================== سجلات التصدير ====================

    def add_export_log(self, log: ExportLog) -> bool:
        """حفظ سجل تصدير"""
        try:
            conn = self._get_connection()
            conn.execute("""
                INSERT INTO export_logs
                (timestamp, format, period, start_date, end_date, exported_by,
                 report_type, total_revenue, total_orders, restored)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                log.timestamp.isoformat(), log.format, log.period,
                log.start_date, log.end_date, log.exported_by, log.report_type,
                log.total_revenue, log.total_orders, int(log.restored)
            ))
            conn.commit()
            conn.close()
            return True
        except sqlite3.Error as e:
            logger.warning("export_log_failed", period=log.period, error=str(e))
            return False

    def get_export_logs(self, limit: int = 100) -> List[ExportLog]:
        conn = self._get_connection()
        rows = conn.execute(
            "SELECT * FROM export_logs ORDER BY log_id DESC LIMIT ?", (limit,)
        ).fetchall()
        conn.close()
        return [
            ExportLog(
                timestamp=datetime.fromisoformat(row['timestamp']),
                format=row['format'],
                period=row['period'],
                start_date=row['start_date'],
                end_date=row['end_date'],
                exported_by=row['exported_by'],
                report_type=row['report_type'],
                total_revenue=row['total_revenue'],
                total_orders=row['total_orders'],
                restored=bool(row['restored']),
                log_id=row['log_id'],
            )
            for row in rows
        ]

    def clear_export_logs(self) -> int:
        return self._delete_all("export_logs")

    # ==================== الإعدادات ====================

    def get_setting(self, key: str, default: Optional[str] = None) -> Optional[str]:
        conn = self._get_connection()
        row = conn.execute("SELECT value FROM settings WHERE key = ?", (key,)).fetchone()
        conn.close()
        return row['value'] if row else default

    def set_setting(self, key: str, value: str):
        conn = self._get_connection()
        conn.execute("INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)", (key, value))
        conn.commit()
        conn.close()

    def get_disable_auto_reporting(self) -> bool:
        """حالة تعطيل تسجيل التقارير الآلي"""
        return json.loads(self.get_setting(DISABLE_AUTO_REPORTING, 'false')) is True

    def set_disable_auto_reporting(self, disabled: bool):
        self.set_setting(DISABLE_AUTO_REPORTING, json.dumps(bool(disabled)))

    def _delete_all(self, table: str) -> int:
        conn = self._get_connection()
        cursor = conn.execute(f"DELETE FROM {table}")
        deleted = cursor.rowcount
        conn.commit()
        conn.close()
        return deleted


def _to_float_or_none(value) -> Optional[float]:
    if value is None or value == '':
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None

