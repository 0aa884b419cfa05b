"""
Pytest configuration and fixtures for dataviz-chat tests.

Provides an in-memory stand-in for the WooCommerce data layer and a
scripted chat model, so the executor, orchestrator, chat service and Flask
routes can be tested without network access.
"""

import pytest
from typing import Dict, List, Optional

from models import StreamChunk, DONE_CHUNK
from tool_executor import ToolExecutor
from core import HistoryStore, FeatureRequestStore
from chat_service import ChatService


class FakeDataAccess:
    """
    In-memory store data with the WooDataAccess method surface.

    Every call is recorded in `calls` as (method_name, argument) so tests can
    assert what the executor asked for.
    """

    def __init__(self):
        self.calls = []
        self.orders = [
            {"id": 1001, "total": "120.00", "currency": "USD", "status": "completed",
             "date": "2024-03-01T10:00:00", "items": [], "customer_id": 7},
            {"id": 1002, "total": "80.00", "currency": "USD", "status": "processing",
             "date": "2024-03-02T11:30:00", "items": [], "customer_id": 8},
            {"id": 1003, "total": "45.50", "currency": "USD", "status": "completed",
             "date": "2024-03-03T09:15:00", "items": [], "customer_id": 7},
        ]
        self.products = [
            {"id": 11, "name": "Alpha Mug", "total_sales": 90, "price": "12.00"},
            {"id": 12, "name": "Beta Shirt", "total_sales": 75, "price": "25.00"},
            {"id": 13, "name": "Gamma Poster", "total_sales": 60, "price": "8.00"},
            {"id": 14, "name": "Delta Cap", "total_sales": 41, "price": "15.00"},
            {"id": 15, "name": "Epsilon Socks", "total_sales": 33, "price": "6.00"},
            {"id": 16, "name": "Zeta Hoodie", "total_sales": 20, "price": "45.00"},
            {"id": 17, "name": "Eta Sticker", "total_sales": 5, "price": "1.00"},
        ]
        self.inventory = [
            {"id": 11, "name": "Alpha Mug", "sku": "AM-1", "stock_quantity": 40,
             "stock_status": "instock", "manage_stock": True, "price": "12.00", "backorders": "no"},
            {"id": 12, "name": "Beta Shirt", "sku": "BS-1", "stock_quantity": 3,
             "stock_status": "instock", "manage_stock": True, "price": "25.00", "backorders": "no"},
        ]
        self.customers = [
            {"id": 7, "email": "ann@example.com", "first_name": "Ann", "last_name": "Lee",
             "username": "ann", "total_spent": 165.5, "order_count": 2},
            {"id": 8, "email": "bo@example.com", "first_name": "Bo", "last_name": "Kim",
             "username": "bo", "total_spent": 80.0, "order_count": 1},
        ]
        self.categories = [{"id": 3, "name": "Apparel", "slug": "apparel", "count": 3}]
        self.tags = []
        self.coupons = [
            {"id": 5, "code": "SPRING10", "amount": 10.0, "discount_type": "percent", "usage_count": 4},
        ]
        self.refunds = []
        self.periods = [
            {"period": "2024-03-03", "order_count": 1, "revenue": 45.5, "avg_order_value": 45.5},
            {"period": "2024-03-02", "order_count": 1, "revenue": 80.0, "avg_order_value": 80.0},
        ]

    # ─── orders ───

    def list_orders(self, filters: Dict) -> List[Dict]:
        self.calls.append(("list_orders", dict(filters)))
        rows = self.orders
        if filters.get("status"):
            rows = [o for o in rows if o["status"] == filters["status"]]
        limit = filters.get("limit", 20)
        return list(rows) if limit == -1 else rows[:limit]

    def order_statistics(self, filters: Dict) -> Dict:
        self.calls.append(("order_statistics", dict(filters)))
        rows = self.orders
        if filters.get("status"):
            rows = [o for o in rows if o["status"] == filters["status"]]
        revenue = sum(float(o["total"]) for o in rows)
        return {
            "summary": {
                "total_orders": len(rows),
                "total_revenue": revenue,
                "avg_order_value": revenue / len(rows) if rows else 0,
                "min_order_value": 0,
                "max_order_value": 0,
                "unique_customers": len({o["customer_id"] for o in rows}),
            },
            "status_breakdown": [],
            "daily_trend": [],
            "date_range": {"from": None, "to": None},
        }

    def orders_by_period(self, period: str, filters: Dict) -> List[Dict]:
        self.calls.append(("orders_by_period", period))
        return list(self.periods)

    def sampled_orders(self, filters: Dict) -> List[Dict]:
        self.calls.append(("sampled_orders", dict(filters)))
        return list(self.orders)

    # ─── products ───

    def top_products(self, limit: int) -> List[Dict]:
        self.calls.append(("top_products", limit))
        return self.products[:limit]

    def products_by_category(self, category_id: int, limit: int) -> List[Dict]:
        self.calls.append(("products_by_category", category_id))
        return self.products[:limit]

    def low_stock_products(self, threshold: int) -> List[Dict]:
        self.calls.append(("low_stock_products", threshold))
        return [p for p in self.inventory if p["stock_quantity"] < threshold]

    def all_inventory_products(self, filters: Dict) -> List[Dict]:
        self.calls.append(("all_inventory_products", dict(filters)))
        return list(self.inventory)

    # ─── customers ───

    def customer_summary(self) -> Dict:
        self.calls.append(("customer_summary", None))
        total = len(self.customers)
        spent = sum(c["total_spent"] for c in self.customers)
        return {"total_customers": total, "avg_lifetime_spent": spent / total if total else 0}

    def list_customers(self, limit: int) -> List[Dict]:
        self.calls.append(("list_customers", limit))
        return self.customers[:limit]

    # ─── taxonomy, coupons, refunds ───

    def list_categories(self) -> List[Dict]:
        self.calls.append(("list_categories", None))
        return list(self.categories)

    def list_tags(self) -> List[Dict]:
        self.calls.append(("list_tags", None))
        return list(self.tags)

    def list_coupons(self, filters: Dict) -> List[Dict]:
        self.calls.append(("list_coupons", dict(filters)))
        return list(self.coupons)

    def list_refunds(self, filters: Dict) -> List[Dict]:
        self.calls.append(("list_refunds", dict(filters)))
        return list(self.refunds)


class FakeLLMClient:
    """
    Scripted chat model.

    `replies` are returned by chat() in order (assistant message dicts);
    `stream_chunks` are yielded by chat_stream(). Sent messages and tools
    are captured for assertions.
    """

    provider = "openai"
    is_configured = True

    def __init__(self, replies: Optional[List[Dict]] = None, stream_chunks: Optional[List[StreamChunk]] = None):
        self.replies = list(replies or [])
        self.stream_chunks = list(stream_chunks or [])
        self.requests = []
        self.stream_requests = []

    def chat(self, messages, tools=None, tool_choice=None):
        self.requests.append({"messages": list(messages), "tools": tools, "tool_choice": tool_choice})
        if not self.replies:
            return {"role": "assistant", "content": None}
        return self.replies.pop(0)

    def chat_stream(self, messages):
        self.stream_requests.append(list(messages))
        for chunk in self.stream_chunks:
            yield chunk
        if not any(c.is_terminal for c in self.stream_chunks):
            yield DONE_CHUNK


def tool_call_message(*calls) -> Dict:
    """Assistant message requesting tools; each call is (id, name, arguments_json)."""
    return {
        "role": "assistant",
        "content": None,
        "tool_calls": [
            {"id": call_id, "type": "function", "function": {"name": name, "arguments": args}}
            for call_id, name, args in calls
        ],
    }


def text_message(content: str) -> Dict:
    return {"role": "assistant", "content": content}


@pytest.fixture
def data_access():
    return FakeDataAccess()


@pytest.fixture
def feature_store():
    return FeatureRequestStore()


@pytest.fixture
def executor(data_access, feature_store):
    return ToolExecutor(data_access, feature_store)


@pytest.fixture
def history():
    return HistoryStore()


@pytest.fixture
def template_service(executor, history):
    """Chat service with no model: keyword rules + template answers."""
    return ChatService(executor, history, orchestrator=None)


@pytest.fixture
def app(template_service, history, feature_store):
    from server import create_app
    flask_app = create_app(template_service, history, feature_store)
    flask_app.config["TESTING"] = True
    return flask_app


@pytest.fixture
def client(app):
    return app.test_client()
