"""
Tests for the reports API.
"""
import threading
import time
from datetime import datetime

import pytest

import app as app_module

ORDER = {
    "customerName": "أحمد",
    "products": [{"id": "p1", "name": "بانيه", "price": 100, "quantity": 2, "category": "مجمدات"}],
}


@pytest.fixture
def with_order(client):
    response = client.post("/api/orders", json=ORDER)
    assert response.status_code == 201
    return response.get_json()["id"]


class TestReports:
    """Tests for GET /api/reports."""

    def test_today_report(self, client, with_order):
        response = client.get("/api/reports?period=day")
        data = response.get_json()

        assert response.status_code == 200
        assert data["period_label"] == "يوم واحد"
        assert data["report"]["total_orders"] == 1
        assert data["report"]["total_revenue"] == 200
        assert data["report"]["top_products"][0]["product_id"] == "p1"
        assert data["logged"] is True

    def test_custom_window(self, client):
        response = client.get("/api/reports?period=custom&start=2024-01-01&end=2024-01-03")
        data = response.get_json()
        assert data["window"]["start"] == "2024-01-01T00:00:00"
        assert len(data["report"]["time_series"]) == 3

    def test_invalid_window(self, client):
        response = client.get("/api/reports?period=custom&start=2024-01-08&end=2024-01-01")
        assert response.status_code == 400
        assert response.get_json()["success"] is False

    def test_unknown_period(self, client):
        assert client.get("/api/reports?period=decade").status_code == 400

    def test_view_logged(self, client):
        client.get("/api/reports?period=week")
        logs = client.get("/api/reports/logs").get_json()["logs"]
        assert len(logs) == 1
        assert logs[0]["period"] == "week"

    def test_view_not_logged_when_disabled(self, client):
        client.post("/api/settings/auto-reporting", json={"disabled": True})
        data = client.get("/api/reports?period=week").get_json()
        assert data["logged"] is False
        assert client.get("/api/reports/logs").get_json()["logs"] == []


class TestExports:
    """Tests for the Excel download endpoints."""

    def test_report_export(self, client, with_order):
        response = client.get("/api/reports/export?period=day")
        assert response.status_code == 200
        assert response.data[:2] == b"PK"
        assert "attachment" in response.headers["Content-Disposition"]

        logs = client.get("/api/exports/logs").get_json()["logs"]
        assert logs[0]["report_type"] == "daily"
        assert logs[0]["format"] == "excel"

    def test_report_export_failure(self, client, monkeypatch):
        monkeypatch.setattr(app_module.generate_report, "export_data_to_excel", lambda **kwargs: False)
        response = client.get("/api/reports/export?period=week")
        assert response.status_code == 500
        assert client.get("/api/exports/logs").get_json()["logs"] == []

    def test_orders_export(self, client, with_order):
        response = client.get("/api/orders/export")
        assert response.status_code == 200
        assert response.data[:2] == b"PK"


class TestOrders:
    """Tests for POST /api/orders."""

    def test_missing_customer(self, client):
        response = client.post("/api/orders", json={"products": ORDER["products"]})
        assert response.status_code == 400

    def test_missing_products(self, client):
        response = client.post("/api/orders", json={"customerName": "x", "products": []})
        assert response.status_code == 400


class TestSettings:
    """Tests for settings and maintenance endpoints."""

    def test_auto_reporting_toggle(self, client):
        assert client.get("/api/settings/auto-reporting").get_json()["disable_auto_reporting"] is False
        data = client.post("/api/settings/auto-reporting", json={"disabled": True}).get_json()
        assert data["disable_auto_reporting"] is True

    def test_auto_reporting_requires_flag(self, client):
        assert client.post("/api/settings/auto-reporting", json={}).status_code == 400

    def test_auto_refresh_toggle(self, client):
        data = client.post("/api/reports/auto-refresh", json={"enabled": True, "period": "day"}).get_json()
        try:
            assert data["enabled"] is True
            assert data["interval_seconds"] == 3600
        finally:
            data = client.post("/api/reports/auto-refresh", json={"enabled": False}).get_json()
        assert data["enabled"] is False
        assert data["runs"] == 0

    def test_stopping_slow_run_does_not_block_requests(self, client, monkeypatch):
        """Other auto-refresh requests are served while a stopped run finishes."""
        started, release = threading.Event(), threading.Event()

        def slow_job(db_path, period_args):
            def job():
                started.set()
                release.wait(10)
            return job

        monkeypatch.setattr(app_module, "_refresh_job", slow_job)
        monkeypatch.setitem(app_module.app.config, "AUTO_REFRESH_SECONDS", 0.01)
        client.post("/api/reports/auto-refresh", json={"enabled": True})
        assert started.wait(5)

        stopper = threading.Thread(target=lambda: app_module.app.test_client().post(
            "/api/reports/auto-refresh", json={"enabled": False}))
        stopper.start()
        try:
            deadline = time.monotonic() + 5
            while app_module._refresher is not None and time.monotonic() < deadline:
                time.sleep(0.01)
            began = time.monotonic()
            data = client.get("/api/reports/auto-refresh").get_json()
            assert time.monotonic() - began < 2
            assert data["enabled"] is False
        finally:
            release.set()
            stopper.join(10)
        assert not stopper.is_alive()

    def test_auto_refresh_rejects_bad_period(self, client):
        response = client.post("/api/reports/auto-refresh", json={"enabled": True, "period": "decade"})
        assert response.status_code == 400
        assert client.get("/api/reports/auto-refresh").get_json()["enabled"] is False

    def test_clear_analytics(self, client, with_order):
        client.get("/api/reports?period=day")
        data = client.post("/api/analytics/clear", json={"delete_orders": True}).get_json()
        assert data["cleared"] == {"export_logs": 0, "report_logs": 1, "orders": 1}
        assert client.get("/api/settings/auto-reporting").get_json()["disable_auto_reporting"] is True

    def test_repair(self, client, with_order):
        data = client.post("/api/reports/repair").get_json()
        assert data["created"] == 18
        logs = client.get("/api/reports/logs?limit=50").get_json()["logs"]
        assert len(logs) == 18
        assert all(log["restored"] for log in logs)


def test_log_dates_serialized(client):
    client.get("/api/reports?period=week")
    log = client.get("/api/reports/logs").get_json()["logs"][0]
    assert datetime.fromisoformat(log["timestamp"])
