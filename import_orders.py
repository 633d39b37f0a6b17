# ============================================================
#  Project  : S7teen Food — Sales Reports & Excel Export
#             تقارير المبيعات وتصدير الإكسل
#  Module   : import_orders.py — Orders Import
#  Developer : Abdelrhaman Wael Mohammed
#  Created   : February 2026
# ============================================================
import argparse
import csv
import json
import os
import zipfile
from typing import Any, Dict, List, Optional

import pandas as pd
import structlog

from config import DB_NAME
from database import DatabaseManager
from utils.logging_config import setup_logging

logger = structlog.get_logger(__name__)

SAMPLES_DIR = "samples"

# أسماء الأعمدة المقبولة لكل حقل في ملفات الطلبات
ORDER_ALIASES = {
    'id':              ['id', 'order_id', 'orderid', 'رقم الطلب'],
    'customerName':    ['customername', 'customer_name', 'customer', 'العميل', 'اسم العميل'],
    'customerPhone':   ['customerphone', 'customer_phone', 'phone', 'الهاتف'],
    'customerAddress': ['customeraddress', 'customer_address', 'address', 'العنوان'],
    'status':          ['status', 'الحالة'],
    'totalAmount':     ['totalamount', 'total_amount', 'total', 'الإجمالي', 'المبلغ'],
    'createdAt':       ['createdat', 'created_at', 'date', 'order_date', 'تاريخ الطلب'],
    'products':        ['products', 'المنتجات'],
}

LINE_ALIASES = {
    'name':      ['product', 'product_name', 'item', 'المنتج', 'اسم المنتج'],
    'productId': ['productid', 'product_id', 'sku'],
    'price':     ['price', 'unit_price', 'السعر'],
    'quantity':  ['quantity', 'qty', 'الكمية'],
    'category':  ['category', 'التصنيف'],
}


def normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Clean column names removing quotes and spaces"""
    df.columns = [str(c).replace('"', '').replace('=', '').strip() for c in df.columns]
    return df


def read_file_safe(file_path: str) -> Optional[pd.DataFrame]:
    ext = os.path.splitext(file_path)[1].lower()
    if ext in ['.xls', '.xlsx']:
        try:
            return normalize_columns(pd.read_excel(file_path))
        except (ValueError, OSError, zipfile.BadZipFile) as e:
            logger.warning("excel_read_failed", path=file_path, error=str(e))
            return None
    if ext in ['.csv', '.txt']:
        encodings  = ['utf-8-sig', 'utf-8', 'cp1256', 'latin1']
        separators = [',', ';', '\t', None]
        for enc in encodings:
            for sep in separators:
                try:
                    df = pd.read_csv(file_path, encoding=enc, sep=sep, engine='python')
                except (UnicodeDecodeError, csv.Error, pd.errors.ParserError, pd.errors.EmptyDataError, ValueError):
                    continue
                if len(df.columns) > 1:
                    return normalize_columns(df)
    return None


def load_json_orders(file_path: str) -> List[Dict[str, Any]]:
    """ملف JSON: قائمة طلبات أو {"orders": [...]}"""
    with open(file_path, encoding='utf-8') as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get('orders', [])
    return [record for record in data if isinstance(record, dict)]


def frame_to_orders(df: pd.DataFrame) -> List[Dict[str, Any]]:
    """
    تحويل جدول إلى سجلات طلبات

    يقبل صفاً لكل طلب (مع عمود products بصيغة JSON) أو صفاً لكل منتج
    مع رقم الطلب، فيتم تجميع المنتجات تحت طلبها.
    """
    order_cols = _match_columns(df, ORDER_ALIASES)
    line_cols = _match_columns(df, LINE_ALIASES)

    if 'name' in line_cols and 'id' in order_cols:
        return _group_line_rows(df, order_cols, line_cols)

    orders = []
    for _, row in df.iterrows():
        record = {field: _clean(row[col]) for field, col in order_cols.items()}
        if isinstance(record.get('products'), str):
            try:
                record['products'] = json.loads(record['products'])
            except ValueError:
                record.pop('products')
        orders.append({k: v for k, v in record.items() if v is not None})
    return orders


def _group_line_rows(df: pd.DataFrame, order_cols: dict, line_cols: dict) -> List[Dict[str, Any]]:
    orders = []
    for order_id, group in df.groupby(order_cols['id'], sort=False):
        first = group.iloc[0]
        record = {field: _clean(first[col]) for field, col in order_cols.items() if field != 'products'}
        record['id'] = str(order_id)
        record['products'] = [
            {field: _clean(line[col]) for field, col in line_cols.items() if _clean(line[col]) is not None}
            for _, line in group.iterrows()
        ]
        orders.append({k: v for k, v in record.items() if v is not None})
    return orders


def _match_columns(df: pd.DataFrame, aliases: dict) -> Dict[str, str]:
    lookup = {str(c).strip().lower(): c for c in df.columns}
    matched = {}
    for field, names in aliases.items():
        for name in names:
            if name in lookup:
                matched[field] = lookup[name]
                break
    return matched


def _clean(value):
    if isinstance(value, (list, dict)):
        return value
    if value is None or pd.isna(value):
        return None
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if hasattr(value, 'item'):
        return value.item()
    return value


def import_file(db: DatabaseManager, file_path: str) -> int:
    """استيراد ملف واحد وإرجاع عدد الطلبات المضافة"""
    ext = os.path.splitext(file_path)[1].lower()
    if ext == '.json':
        orders = load_json_orders(file_path)
    else:
        df = read_file_safe(file_path)
        if df is None:
            logger.warning("file_skipped", path=file_path, reason="unreadable")
            return 0
        orders = frame_to_orders(df)

    added = db.add_orders_bulk(orders)
    logger.info("orders_imported", path=file_path, found=len(orders), added=added)
    return added


def main(argv=None):
    parser = argparse.ArgumentParser(description='استيراد الطلبات إلى قاعدة البيانات')
    parser.add_argument('paths', nargs='*', default=[SAMPLES_DIR], help='ملفات أو مجلدات')
    parser.add_argument('--db', default=DB_NAME)
    args = parser.parse_args(argv)

    setup_logging('orders-import')
    db = DatabaseManager(args.db)

    total = 0
    for path in args.paths:
        if not os.path.exists(path):
            logger.warning("path_not_found", path=path)
            continue
        if os.path.isdir(path):
            files = [os.path.join(path, f) for f in sorted(os.listdir(path))
                     if not f.startswith('~$') and os.path.isfile(os.path.join(path, f))]
        else:
            files = [path]
        for file_path in files:
            total += import_file(db, file_path)

    logger.info("import_finished", added=total, orders_in_db=db.count_orders())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
