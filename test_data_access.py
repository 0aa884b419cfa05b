"""
Tests for WooDataAccess aggregations over raw WooCommerce rows.

The REST client is replaced with a MagicMock returning canned order and
product rows.
"""

from datetime import datetime
from unittest.mock import MagicMock
from services.data_access import WooDataAccess, period_key, format_order


def _order(order_id, total, status, created, customer_id=0, **extra):
    row = {
        "id": order_id, "total": total, "currency": "USD", "status": status,
        "date_created": created, "customer_id": customer_id, "line_items": [],
    }
    row.update(extra)
    return row


ORDERS = [
    _order(5, "50.00", "completed", "2024-03-04T12:10:00", 1),
    _order(4, "30.00", "processing", "2024-03-04T09:00:00", 2),
    _order(3, "20.00", "completed", "2024-03-02T18:30:00", 1),
    _order(2, "100.00", "refunded", "2024-02-27T08:00:00", 3,
           refunds=[{"id": 90, "total": "-100.00", "reason": "Damaged"}],
           date_modified="2024-02-28T10:00:00"),
]


def _access(collection=None, count=0):
    client = MagicMock()
    client.get_collection.return_value = list(collection if collection is not None else ORDERS)
    client.count.return_value = count
    return WooDataAccess(client), client


class TestPeriodKey:
    def test_keys(self):
        created = datetime(2024, 3, 4, 12, 10)
        assert period_key(created, "hour") == "2024-03-04 12:00:00"
        assert period_key(created, "day") == "2024-03-04"
        assert period_key(created, "week") == "2024-10"
        assert period_key(created, "month") == "2024-03"


class TestOrders:
    def test_list_passes_limit_and_filters(self):
        access, client = _access()
        access.list_orders({"limit": 2, "status": "completed", "date_from": datetime(2024, 3, 1)})

        endpoint, params = client.get_collection.call_args[0]
        assert endpoint == "orders"
        assert params["status"] == "completed"
        assert params["after"] == "2024-03-01T00:00:00"
        assert client.get_collection.call_args[1]["limit"] == 2

    def test_unbounded_list(self):
        access, client = _access()
        rows = access.list_orders({"limit": -1})
        assert client.get_collection.call_args[1]["limit"] == -1
        assert len(rows) == 4

    def test_format_order(self):
        row = format_order(_order(9, "10.00", "completed", "2024-03-04T00:00:00", 4,
                                  line_items=[{"name": "Mug", "quantity": 2, "total": "10.00", "product_id": 11}]))
        assert row["date"] == "2024-03-04T00:00:00"
        assert row["items"][0]["product"]["id"] == 11

    def test_statistics(self):
        access, client = _access()
        stats = access.order_statistics({})

        assert client.get_collection.call_args[1]["limit"] == -1
        summary = stats["summary"]
        assert summary["total_orders"] == 4
        assert summary["total_revenue"] == 200.0
        assert summary["avg_order_value"] == 50.0
        assert summary["min_order_value"] == 20.0
        assert summary["max_order_value"] == 100.0
        assert summary["unique_customers"] == 3
        completed = [b for b in stats["status_breakdown"] if b["status"] == "completed"][0]
        assert completed == {"status": "completed", "count": 2, "revenue": 70.0}
        assert [d["date"] for d in stats["daily_trend"]] == ["2024-02-27", "2024-03-02", "2024-03-04"]

    def test_statistics_of_nothing(self):
        access, _ = _access(collection=[])
        stats = access.order_statistics({})
        assert stats["summary"]["total_orders"] == 0
        assert stats["summary"]["avg_order_value"] == 0

    def test_statistics_date_range(self):
        access, _ = _access()
        stats = access.order_statistics({
            "date_from": datetime(2024, 3, 1), "date_to": datetime(2024, 3, 31, 23, 59, 59),
        })
        assert stats["date_range"] == {"from": "2024-03-01", "to": "2024-03-31"}

    def test_by_period_newest_first(self):
        access, _ = _access()
        buckets = access.orders_by_period("day", {})
        assert [b["period"] for b in buckets] == ["2024-03-04", "2024-03-02", "2024-02-27"]
        assert buckets[0]["order_count"] == 2
        assert buckets[0]["revenue"] == 80.0
        assert buckets[0]["avg_order_value"] == 40.0

    def test_by_period_bad_period_is_day(self):
        access, _ = _access()
        assert access.orders_by_period("fortnight", {})[0]["period"] == "2024-03-04"

    def test_systematic_sample(self):
        orders = [_order(i, "1.00", "completed", "2024-03-01T00:00:00") for i in range(250)]
        access, _ = _access(collection=orders)
        sample = access.sampled_orders({"sample_size": 100})
        assert len(sample) == 100
        assert [o["id"] for o in sample[:3]] == [0, 2, 4]

    def test_small_population_not_sampled(self):
        access, _ = _access()
        assert len(access.sampled_orders({"sample_size": 100})) == 4

    def test_refunds_from_orders(self):
        access, _ = _access()
        refunds = access.list_refunds({})
        assert refunds == [{
            "id": 90, "parent_order": 2, "amount": 100.0, "reason": "Damaged",
            "date": "2024-02-28T10:00:00",
        }]


class TestProducts:
    def test_low_stock_threshold(self):
        products = [
            {"id": 1, "name": "A", "stock_quantity": 2},
            {"id": 2, "name": "B", "stock_quantity": 10},
            {"id": 3, "name": "C", "stock_quantity": None},
        ]
        access, _ = _access(collection=products)
        assert [p["name"] for p in access.low_stock_products(10)] == ["A"]

    def test_inventory_keeps_every_product(self):
        products = [
            {"id": 1, "name": "A", "stock_quantity": 2, "manage_stock": True},
            {"id": 2, "name": "B", "stock_quantity": None, "manage_stock": False},
        ]
        access, client = _access(collection=products)
        rows = access.all_inventory_products({"limit": -1})
        assert [r["stock_quantity"] for r in rows] == [2, None]
        assert client.get_collection.call_args[1]["limit"] == -1

    def test_top_products_by_popularity(self):
        access, client = _access(collection=[{"id": 1, "name": "A", "total_sales": "7", "price": "3"}])
        rows = access.top_products(5)
        assert client.get_collection.call_args[0][1]["orderby"] == "popularity"
        assert rows == [{"id": 1, "name": "A", "total_sales": 7, "price": "3"}]


class TestCustomers:
    def test_summary_from_paid_orders(self):
        access, client = _access(count=4)
        summary = access.customer_summary()
        assert summary == {"total_customers": 4, "avg_lifetime_spent": 50.0}
        paid = client.get_collection.call_args[0][1]["status"]
        assert paid == "completed,processing,on-hold"

    def test_no_customers(self):
        access, client = _access(count=0)
        assert access.customer_summary() == {"total_customers": 0, "avg_lifetime_spent": 0}
        client.get_collection.assert_not_called()

    def test_list_with_spend(self):
        client = MagicMock()
        client.get_collection.side_effect = [
            [{"id": 1, "email": "a@example.com", "first_name": "Ann", "billing": {"city": "Oslo"}}],
            ORDERS,
        ]
        rows = WooDataAccess(client).list_customers(5)
        assert rows[0]["city"] == "Oslo"
        assert rows[0]["total_spent"] == 70.0
        assert rows[0]["order_count"] == 2
