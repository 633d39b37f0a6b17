"""
Tests for importing order files into the database.
"""
import json
from datetime import datetime

import pandas as pd

import import_orders
from processors import OrderAggregator


class TestFrameToOrders:
    """Tests for frame_to_orders."""

    def test_line_rows_grouped_by_order(self):
        df = pd.DataFrame({
            "Order_ID": ["A", "A", "B"],
            "Customer": ["أحمد", "أحمد", "سارة"],
            "Product": ["بانيه", "كفتة", "محشي"],
            "Price": [100, 80, 50],
            "Qty": [2, 1, 1],
        })
        orders = import_orders.frame_to_orders(df)

        assert [o["id"] for o in orders] == ["A", "B"]
        assert orders[0]["customerName"] == "أحمد"
        assert [p["name"] for p in orders[0]["products"]] == ["بانيه", "كفتة"]
        assert orders[0]["products"][0]["quantity"] == 2
        assert isinstance(orders[0]["products"][0]["price"], int)

    def test_order_rows_with_products_json(self):
        df = pd.DataFrame({
            "id": ["A"],
            "customerName": ["أحمد"],
            "createdAt": ["2024-01-01T10:00:00"],
            "products": [json.dumps([{"name": "بانيه", "price": 100}])],
        })
        orders = import_orders.frame_to_orders(df)
        assert orders == [{
            "id": "A",
            "customerName": "أحمد",
            "createdAt": "2024-01-01T10:00:00",
            "products": [{"name": "بانيه", "price": 100}],
        }]

    def test_bad_products_json_dropped(self):
        df = pd.DataFrame({"id": ["A"], "total": [300], "products": ["{not json"]})
        orders = import_orders.frame_to_orders(df)
        assert orders == [{"id": "A", "totalAmount": 300}]

    def test_missing_values_dropped(self):
        df = pd.DataFrame({"id": ["A", "B"], "status": ["مكتمل", None]})
        orders = import_orders.frame_to_orders(df)
        assert "status" not in orders[1]

    def test_timestamps_become_datetimes(self):
        df = pd.DataFrame({"id": ["A"], "date": [pd.Timestamp("2024-01-01 10:00")]})
        assert import_orders.frame_to_orders(df)[0]["createdAt"] == datetime(2024, 1, 1, 10, 0)


class TestImportFile:
    """Tests for import_file and main."""

    def test_json_list(self, db, tmp_path):
        path = tmp_path / "orders.json"
        path.write_text(json.dumps([{"id": "A", "totalAmount": 10}, "junk"]), encoding="utf-8")
        assert import_orders.import_file(db, str(path)) == 1

    def test_json_wrapped(self, db, tmp_path):
        path = tmp_path / "orders.json"
        path.write_text(json.dumps({"orders": [{"id": "A"}, {"id": "B"}]}), encoding="utf-8")
        assert import_orders.import_file(db, str(path)) == 2

    def test_platform_and_epoch_timestamps_kept(self, db, tmp_path, new_year_window):
        """Firestore {_seconds} exports and epoch milliseconds land on their own day."""
        path = tmp_path / "orders.json"
        path.write_text(json.dumps([
            {"id": "fs", "createdAt": {"_seconds": 1704103200, "_nanoseconds": 0}, "totalAmount": 100},
            {"id": "ms", "createdAt": 1704103200000, "totalAmount": 50},
        ]), encoding="utf-8")
        assert import_orders.import_file(db, str(path)) == 2

        stored = {o["id"]: o["createdAt"] for o in db.get_all_orders()}
        assert stored == {"fs": "2024-01-01T12:00:00", "ms": "2024-01-01T12:00:00"}

        report = OrderAggregator().aggregate(db.get_all_orders(), new_year_window, datetime(2024, 3, 1))
        assert report.total_orders == 2
        assert report.total_revenue == 150

    def test_csv(self, db, tmp_path):
        path = tmp_path / "orders.csv"
        path.write_text("order_id,product,price,quantity\nA,بانيه,100,2\nA,كفتة,80,1\n", encoding="utf-8")
        assert import_orders.import_file(db, str(path)) == 1
        assert len(db.get_all_orders()[0]["products"]) == 2

    def test_unreadable_file_skipped(self, db, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("just one column\n", encoding="utf-8")
        assert import_orders.import_file(db, str(path)) == 0

    def test_main_walks_directory(self, db, tmp_path):
        folder = tmp_path / "samples"
        folder.mkdir()
        (folder / "a.json").write_text(json.dumps([{"id": "A"}]), encoding="utf-8")
        (folder / "b.json").write_text(json.dumps([{"id": "B"}]), encoding="utf-8")

        assert import_orders.main([str(folder), str(tmp_path / "missing"), "--db", db.db_path]) == 0
        assert db.count_orders() == 2
