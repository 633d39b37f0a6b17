"""
Pytest fixtures for sales report tests.
"""
from datetime import datetime

import pytest

from config import ReportConfig
from database import AggregationWindow, DatabaseManager


@pytest.fixture
def config():
    """Report configuration with a fixed timezone."""
    return ReportConfig(timezone="Africa/Cairo")


@pytest.fixture
def db(tmp_path):
    """Fresh SQLite database per test."""
    return DatabaseManager(str(tmp_path / "orders.db"), timezone="Africa/Cairo")


@pytest.fixture
def new_year_window():
    """Single-day window for 2024-01-01."""
    return AggregationWindow(datetime(2024, 1, 1), datetime(2024, 1, 1, 23, 59, 59, 999999))


@pytest.fixture
def two_orders():
    """Order A at 10:00 (100 x 2) and order B at 15:00 (50 x 1)."""
    return [
        {
            "id": "A",
            "customerName": "أحمد",
            "createdAt": datetime(2024, 1, 1, 10, 0),
            "products": [{"id": "p1", "name": "بانيه جاهز", "price": 100, "quantity": 2, "category": "مجمدات"}],
        },
        {
            "id": "B",
            "customerName": "سارة",
            "status": "قيد التنفيذ",
            "createdAt": datetime(2024, 1, 1, 15, 0),
            "products": [{"id": "p2", "name": "ورق كرنب", "price": 50, "quantity": 1, "category": "محاشي"}],
        },
    ]


@pytest.fixture
def client(db):
    """Flask test client bound to the per-test database."""
    from app import app

    app.config["TESTING"] = True
    app.config["DB_PATH"] = db.db_path
    app.config["AUTO_REFRESH_SECONDS"] = 3600
    with app.test_client() as test_client:
        yield test_client
