"""
# ============================================================
#  Project  : S7teen Food — Sales Reports & Excel Export
#             تقارير المبيعات وتصدير الإكسل
#  Developer : Abdelrhaman Wael Mohammed
#  Created   : February 2026
#  Version   : 1.0 (Flask Edition)
# ============================================================
#  Description:
#    Flask backend for the back-office sales reports page.
#    Serves aggregated reports, styled Excel downloads,
#    audit logs, auto refresh and analytics maintenance.
# ============================================================
"""

import threading
from dataclasses import asdict
from datetime import datetime
from io import BytesIO

import structlog
from flask import Flask, jsonify, request, send_file

import generate_report
from config import AUTO_REFRESH_SECONDS, DB_NAME, ReportConfig
from database import DatabaseManager
from processors import AutoRefresher, OrderAggregator, period_label, resolve_window
from utils.errors import InvalidWindowError, handle_exception
from utils.exporters import ReportExporter
from utils.logging_config import setup_logging

logger = structlog.get_logger(__name__)

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
REFRESH_STOP_TIMEOUT = 5

app = Flask(__name__)
app.config["DB_PATH"] = DB_NAME
app.config["AUTO_REFRESH_SECONDS"] = AUTO_REFRESH_SECONDS

_refresher = None
_refresher_lock = threading.Lock()


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────

def get_manager() -> DatabaseManager:
    return DatabaseManager(app.config["DB_PATH"])


def load_config(db: DatabaseManager) -> ReportConfig:
    """إعدادات جديدة لكل طلب - حالة التسجيل الآلي تقرأ من قاعدة البيانات"""
    return ReportConfig(disable_auto_reporting=db.get_disable_auto_reporting())


def window_from_args(args, now):
    period = args.get("period", "week")
    window = resolve_window(
        period, now,
        start_date=args.get("start"),
        end_date=args.get("end"),
        selected_day=args.get("day"),
        granularity=args.get("granularity", "day"),
    )
    return period, window


def build_report(db, config, period_args, now):
    period, window = window_from_args(period_args, now)
    report = OrderAggregator(config).aggregate(db.get_all_orders(), window, now)
    return period, window, report


def _json_body():
    return request.get_json(force=True, silent=True) or {}


def _log_to_dict(log):
    data = asdict(log)
    for key, value in data.items():
        if isinstance(value, datetime):
            data[key] = value.isoformat()
    return data


def _refresh_job(db_path, period_args):
    """تحديث دوري: نفس مسار عرض التقرير (تجميع + تسجيل)"""
    def job():
        db = DatabaseManager(db_path)
        config = ReportConfig(disable_auto_reporting=db.get_disable_auto_reporting())
        now = datetime.now()
        period, window, report = build_report(db, config, period_args, now)
        generate_report.record_report_view(db, report, window, period, config, now)
        logger.info("reports_refreshed", period=period,
                    total_revenue=report.total_revenue, total_orders=report.total_orders)
    return job


@app.errorhandler(InvalidWindowError)
def invalid_window(e):
    return jsonify({"success": False, "error": str(e)}), 400


# ─────────────────────────────────────────────────────────────────────────────
# Reports
# ─────────────────────────────────────────────────────────────────────────────

@app.route("/api/reports")
def api_reports():
    now = datetime.now()
    db = get_manager()
    config = load_config(db)
    period, window, report = build_report(db, config, request.args, now)
    logged = generate_report.record_report_view(db, report, window, period, config, now)

    return jsonify({
        "success": True,
        "period": period,
        "period_label": period_label(period),
        "window": {
            "start": window.start.isoformat(),
            "end": window.end.isoformat(),
            "granularity": window.granularity,
        },
        "report": report.to_dict(),
        "logged": logged,
    })


@app.route("/api/reports/export")
def api_reports_export():
    now = datetime.now()
    db = get_manager()
    config = load_config(db)
    period, window, report = build_report(db, config, request.args, now)

    output = BytesIO()
    exported, file_name = generate_report.export_sales_report(
        db, report, window, period, config, destination=output, now=now
    )
    if not exported:
        return jsonify({"success": False, "error": "تعذر إنشاء ملف الإكسل"}), 500
    return send_file(output, as_attachment=True, download_name=file_name, mimetype=XLSX_MIME)


@app.route("/api/orders/export")
def api_orders_export():
    try:
        df = get_manager().get_orders_dataframe()
        output = ReportExporter.export_orders_table(df)
    except Exception as e:
        details = handle_exception(e, logger)
        return jsonify({"success": False, "error": details["message"]}), 500
    file_name = f"الطلبات_{datetime.now():%d-%m-%Y}.xlsx"
    return send_file(output, as_attachment=True, download_name=file_name, mimetype=XLSX_MIME)


@app.route("/api/reports/logs")
def api_report_logs():
    limit = request.args.get("limit", 100, type=int)
    logs = get_manager().get_report_logs(limit)
    return jsonify({"success": True, "logs": [_log_to_dict(log) for log in logs]})


@app.route("/api/exports/logs")
def api_export_logs():
    limit = request.args.get("limit", 100, type=int)
    logs = get_manager().get_export_logs(limit)
    return jsonify({"success": True, "logs": [_log_to_dict(log) for log in logs]})


# ─────────────────────────────────────────────────────────────────────────────
# Orders
# ─────────────────────────────────────────────────────────────────────────────

@app.route("/api/orders", methods=["POST"])
def api_add_order():
    data = _json_body()
    products = data.get("products")
    if not data.get("customerName"):
        return jsonify({"success": False, "error": "اسم العميل مطلوب"}), 400
    if not isinstance(products, list) or not products:
        return jsonify({"success": False, "error": "الطلب لا يحتوي على منتجات"}), 400

    order = {
        "customerName":    data.get("customerName"),
        "customerPhone":   data.get("customerPhone", ""),
        "customerAddress": data.get("customerAddress", ""),
        "products":        products,
        "createdAt":       datetime.now(),
    }
    if data.get("status"):
        order["status"] = data["status"]

    order_id = get_manager().add_order(order)
    return jsonify({"success": True, "id": order_id}), 201


# ─────────────────────────────────────────────────────────────────────────────
# Settings & maintenance
# ─────────────────────────────────────────────────────────────────────────────

@app.route("/api/settings/auto-reporting", methods=["GET", "POST"])
def api_auto_reporting():
    db = get_manager()
    if request.method == "POST":
        data = _json_body()
        if "disabled" not in data:
            return jsonify({"success": False, "error": "disabled مطلوب"}), 400
        db.set_disable_auto_reporting(bool(data["disabled"]))
    return jsonify({"success": True, "disable_auto_reporting": db.get_disable_auto_reporting()})


@app.route("/api/reports/auto-refresh", methods=["GET", "POST"])
def api_auto_refresh():
    global _refresher
    stopping = None
    with _refresher_lock:
        if request.method == "POST":
            data = _json_body()
            if data.get("enabled"):
                if _refresher is None or not _refresher.is_running:
                    period_args = {k: data[k] for k in ("period", "start", "end", "day") if data.get(k)}
                    # التحقق من الفترة قبل تشغيل المؤقت
                    window_from_args(period_args, datetime.now())
                    _refresher = AutoRefresher(
                        app.config["AUTO_REFRESH_SECONDS"],
                        _refresh_job(app.config["DB_PATH"], period_args),
                    )
                    _refresher.start()
            elif _refresher is not None:
                stopping, _refresher = _refresher, None

        running = _refresher is not None and _refresher.is_running
        runs = _refresher.runs if _refresher else 0

    # الانتظار خارج القفل
    if stopping is not None:
        stopping.stop(timeout=REFRESH_STOP_TIMEOUT)

    return jsonify({
        "success": True,
        "enabled": running,
        "interval_seconds": app.config["AUTO_REFRESH_SECONDS"],
        "runs": runs,
    })


@app.route("/api/analytics/clear", methods=["POST"])
def api_clear_analytics():
    data = _json_body()
    try:
        cleared = generate_report.clear_analytics(get_manager(), bool(data.get("delete_orders")))
    except Exception as e:
        details = handle_exception(e, logger)
        return jsonify({"success": False, "error": details["message"]}), 500
    return jsonify({"success": True, "cleared": cleared, "message": "تم مسح بيانات التحليلات بنجاح"})


@app.route("/api/reports/repair", methods=["POST"])
def api_repair_reports():
    try:
        created = generate_report.repair_report_logs(get_manager())
    except Exception as e:
        details = handle_exception(e, logger)
        return jsonify({"success": False, "error": details["message"]}), 500
    return jsonify({"success": True, "created": created, "message": "تم إعادة إنشاء سجلات التقارير بنجاح"})


if __name__ == "__main__":
    import init_db
    setup_logging("sales-reports-api")
    init_db.create_database(app.config["DB_PATH"])
    app.run(debug=False, port=5000)
