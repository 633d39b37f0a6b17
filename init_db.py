# ============================================================
#  Project  : S7teen Food — Sales Reports & Excel Export
#             تقارير المبيعات وتصدير الإكسل
#  Module   : init_db.py — Database Initialization
#  Developer : Abdelrhaman Wael Mohammed
#  Created   : February 2026
# ============================================================
import os
import sqlite3

import structlog

from config import DB_NAME
from database import DatabaseManager
from database.db_manager import DISABLE_AUTO_REPORTING
from utils.logging_config import setup_logging

logger = structlog.get_logger(__name__)

# أعمدة أضيفت بعد الإصدار الأول من الجداول
MIGRATIONS = [
    ('orders',      'status',      'TEXT'),
    ('report_logs', 'restored',    'INTEGER DEFAULT 0'),
    ('export_logs', 'exported_by', "TEXT DEFAULT 'admin'"),
    ('export_logs', 'restored',    'INTEGER DEFAULT 0'),
]


def create_database(db_path: str = DB_NAME) -> DatabaseManager:
    if os.path.exists(db_path):
        logger.info("database_exists", db=db_path, action="running migrations")

    db = DatabaseManager(db_path)

    conn = sqlite3.connect(db_path)
    cursor = conn.cursor()
    for table, column, col_def in MIGRATIONS:
        _migrate_add_column(cursor, table, column, col_def)
    conn.commit()
    conn.close()

    # الإعدادات الافتراضية
    if db.get_setting(DISABLE_AUTO_REPORTING) is None:
        db.set_disable_auto_reporting(False)

    logger.info("database_ready", db=db_path,
                tables=["orders", "report_logs", "export_logs", "settings"])
    return db


def _migrate_add_column(cursor, table, column, col_def):
    """Add a column to an existing table if it doesn't already exist."""
    existing = {row[1] for row in cursor.execute(f"PRAGMA table_info({table})")}
    if column in existing:
        return False
    cursor.execute(f"ALTER TABLE {table} ADD COLUMN {column} {col_def}")
    logger.info("column_added", table=table, column=column)
    return True


if __name__ == "__main__":
    setup_logging('orders-db')
    create_database()
