"""
Store data access over the WooCommerce REST API.

Every list method accepts the filter-set shape built by the tool executor:
    limit      int, -1 = no limit
    status     order status slug
    date_from  datetime (start of day)
    date_to    datetime (end of day)
Aggregations (statistics, by-period buckets, sampling) are computed here
from the raw order rows.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from services.woo_client import WooClient
from models import UNBOUNDED_LIMIT
from config.settings import (
    PAID_ORDER_STATUSES, DEFAULT_ORDER_LIMIT, DEFAULT_COUPON_LIMIT,
    DEFAULT_REFUND_LIMIT, DEFAULT_INVENTORY_LIMIT, DEFAULT_SAMPLE_SIZE,
)
from chat_logger import get_logger

logger = get_logger("dataviz_chat")

VALID_PERIODS = ("hour", "day", "week", "month")


def _to_float(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def _parse_wc_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


def period_key(created: datetime, period: str) -> str:
    """Bucket label for an order timestamp."""
    if period == "hour":
        return created.strftime("%Y-%m-%d %H:00:00")
    if period == "week":
        year, week, _ = created.isocalendar()
        return f"{year}-{week:02d}"
    if period == "month":
        return created.strftime("%Y-%m")
    return created.strftime("%Y-%m-%d")


def format_order(order: Dict) -> Dict:
    return {
        "id": order.get("id"),
        "total": order.get("total"),
        "currency": order.get("currency"),
        "status": order.get("status"),
        "date": order.get("date_created"),
        "items": [
            {
                "name": item.get("name"),
                "quantity": item.get("quantity"),
                "total": item.get("total"),
                "product": {
                    "id": item.get("product_id"),
                    "sku": item.get("sku"),
                    "price": item.get("price"),
                },
            }
            for item in order.get("line_items", [])
        ],
        "customer_id": order.get("customer_id"),
    }


def _format_product(product: Dict, include_stock: bool = False) -> Dict:
    data = {
        "id": product.get("id"),
        "name": product.get("name"),
        "total_sales": int(product.get("total_sales") or 0),
        "price": product.get("price"),
    }
    if include_stock:
        data["stock"] = product.get("stock_quantity")
    return data


class WooDataAccess:
    """Read-only store queries used by the tool executor."""

    def __init__(self, client: Optional[WooClient] = None):
        self.client = client or WooClient()

    # ═══════════════════════════════════════════
    # ORDERS
    # ═══════════════════════════════════════════

    def _order_params(self, filters: Dict) -> Dict:
        params: Dict[str, Any] = {"orderby": "date", "order": "desc"}
        if filters.get("status"):
            params["status"] = filters["status"]
        if filters.get("date_from"):
            params["after"] = filters["date_from"].isoformat()
        if filters.get("date_to"):
            params["before"] = filters["date_to"].isoformat()
        return params

    def _all_orders(self, filters: Dict) -> List[Dict]:
        return self.client.get_collection(
            "orders", self._order_params(filters), limit=UNBOUNDED_LIMIT,
        )

    def list_orders(self, filters: Dict) -> List[Dict]:
        """
        Newest orders matching the filters.

        Args:
            filters: status, date_from / date_to (datetimes) and limit
                     (-1 reads every page)

        Returns:
            [ { id, total, currency, status, date, items, customer_id }, ... ]
        """
        limit = filters.get("limit", DEFAULT_ORDER_LIMIT)
        orders = self.client.get_collection("orders", self._order_params(filters), limit=limit)
        return [format_order(o) for o in orders]

    def order_statistics(self, filters: Dict) -> Dict:
        """
        Aggregate every order in range.

        Args:
            filters: status and date_from / date_to (datetimes)

        Returns:
            {
                "summary": { total_orders, total_revenue, avg/min/max_order_value,
                             unique_customers },
                "status_breakdown": [ { status, count, revenue }, ... ],
                "daily_trend": [ { date, order_count, revenue }, ... ],
                "date_range": { from, to }
            }
        """
        orders = self._all_orders(filters)
        logger.info(f"Order statistics | orders={len(orders)} | filters={_loggable(filters)}")

        values = []
        customers = set()
        by_status: Dict[str, Dict[str, Any]] = {}
        by_day: Dict[str, Dict[str, Any]] = {}

        for order in orders:
            total = _to_float(order.get("total"))
            values.append(total)
            if order.get("customer_id"):
                customers.add(order["customer_id"])

            bucket = by_status.setdefault(order.get("status"), {"count": 0, "revenue": 0.0})
            bucket["count"] += 1
            bucket["revenue"] += total

            created = _parse_wc_date(order.get("date_created"))
            if created:
                day = by_day.setdefault(created.strftime("%Y-%m-%d"), {"order_count": 0, "revenue": 0.0})
                day["order_count"] += 1
                day["revenue"] += total

        date_from = filters.get("date_from")
        date_to = filters.get("date_to")
        trend_days = 30
        if date_from and date_to:
            trend_days = min(90, max(7, (date_to - date_from).days))

        daily_trend = [
            {"date": day, "order_count": data["order_count"], "revenue": data["revenue"]}
            for day, data in sorted(by_day.items())
        ][-trend_days:]

        total_revenue = sum(values)
        return {
            "summary": {
                "total_orders": len(orders),
                "total_revenue": total_revenue,
                "avg_order_value": total_revenue / len(values) if values else 0,
                "min_order_value": min(values) if values else 0,
                "max_order_value": max(values) if values else 0,
                "unique_customers": len(customers),
            },
            "status_breakdown": [
                {"status": status, "count": data["count"], "revenue": data["revenue"]}
                for status, data in by_status.items()
            ],
            "daily_trend": daily_trend,
            "date_range": {
                "from": date_from.date().isoformat() if date_from else None,
                "to": date_to.date().isoformat() if date_to else None,
            },
        }

    def orders_by_period(self, period: str, filters: Dict) -> List[Dict]:
        """
        Bucket orders by hour, day, week or month.

        Args:
            period: Bucket size; anything else falls back to "day"
            filters: status and date_from / date_to (datetimes)

        Returns:
            [ { period, order_count, revenue, avg_order_value }, ... ] newest bucket first
        """
        if period not in VALID_PERIODS:
            period = "day"

        buckets: Dict[str, Dict[str, Any]] = {}
        for order in self._all_orders(filters):
            created = _parse_wc_date(order.get("date_created"))
            if not created:
                continue
            key = period_key(created, period)
            bucket = buckets.setdefault(key, {"period": key, "order_count": 0, "revenue": 0.0})
            bucket["order_count"] += 1
            bucket["revenue"] += _to_float(order.get("total"))

        result = []
        for bucket in buckets.values():
            bucket["avg_order_value"] = bucket["revenue"] / bucket["order_count"]
            result.append(bucket)
        result.sort(key=lambda b: b["period"], reverse=True)
        return result

    def sampled_orders(self, filters: Dict) -> List[Dict]:
        """Systematic sample: every n-th order, newest first."""
        sample_size = filters.get("sample_size", DEFAULT_SAMPLE_SIZE)
        orders = self._all_orders(filters)
        if len(orders) <= sample_size:
            return [format_order(o) for o in orders]

        interval = len(orders) // sample_size
        return [format_order(o) for o in orders[::interval][:sample_size]]

    # ═══════════════════════════════════════════
    # PRODUCTS
    # ═══════════════════════════════════════════

    def top_products(self, limit: int) -> List[Dict]:
        products = self.client.get_collection(
            "products",
            {"orderby": "popularity", "order": "desc", "status": "publish"},
            limit=limit,
        )
        return [_format_product(p) for p in products]

    def products_by_category(self, category_id: int, limit: int) -> List[Dict]:
        products = self.client.get_collection(
            "products",
            {"category": category_id, "status": "publish", "orderby": "date", "order": "desc"},
            limit=limit,
        )
        return [_format_product(p, include_stock=True) for p in products]

    def low_stock_products(self, threshold: int) -> List[Dict]:
        products = self.client.get_collection(
            "products", {"stock_status": "instock", "status": "publish"}, limit=UNBOUNDED_LIMIT,
        )
        low_stock = []
        for product in products:
            quantity = product.get("stock_quantity")
            if quantity is not None and quantity < threshold:
                low_stock.append({
                    "id": product.get("id"),
                    "name": product.get("name"),
                    "sku": product.get("sku"),
                    "stock_quantity": quantity,
                    "price": product.get("price"),
                    "stock_status": product.get("stock_status"),
                })
        return low_stock

    def all_inventory_products(self, filters: Dict) -> List[Dict]:
        """
        Every published product with its stock level.

        Args:
            filters: limit (-1 reads every page)

        Returns:
            [ { id, name, sku, stock_quantity, stock_status, manage_stock, price,
                backorders }, ... ]; stock_quantity is None when stock is unmanaged
        """
        products = self.client.get_collection(
            "products", {"status": "publish"},
            limit=filters.get("limit", DEFAULT_INVENTORY_LIMIT),
        )
        inventory = []
        for product in products:
            manage_stock = bool(product.get("manage_stock"))
            quantity = product.get("stock_quantity")
            inventory.append({
                "id": product.get("id"),
                "name": product.get("name"),
                "sku": product.get("sku"),
                "stock_quantity": (quantity if quantity is not None else 0) if manage_stock else None,
                "stock_status": product.get("stock_status"),
                "manage_stock": manage_stock,
                "price": product.get("price"),
                "backorders": product.get("backorders"),
            })
        return inventory

    # ═══════════════════════════════════════════
    # CUSTOMERS
    # ═══════════════════════════════════════════

    def _spend_by_customer(self) -> Dict[int, Dict[str, float]]:
        spend: Dict[int, Dict[str, float]] = {}
        orders = self.client.get_collection(
            "orders", {"status": ",".join(PAID_ORDER_STATUSES)}, limit=UNBOUNDED_LIMIT,
        )
        for order in orders:
            customer_id = order.get("customer_id")
            if not customer_id:
                continue
            entry = spend.setdefault(customer_id, {"total_spent": 0.0, "order_count": 0})
            entry["total_spent"] += _to_float(order.get("total"))
            entry["order_count"] += 1
        return spend

    def customer_summary(self) -> Dict:
        total_customers = self.client.count("customers", {"role": "customer"})
        summary = {"total_customers": total_customers, "avg_lifetime_spent": 0}
        if total_customers > 0:
            total_spent = sum(s["total_spent"] for s in self._spend_by_customer().values())
            summary["avg_lifetime_spent"] = total_spent / total_customers
        return summary

    def list_customers(self, limit: int) -> List[Dict]:
        customers = self.client.get_collection(
            "customers",
            {"role": "customer", "orderby": "registered_date", "order": "desc"},
            limit=limit,
        )
        if not customers:
            return []

        spend = self._spend_by_customer()
        result = []
        for customer in customers:
            billing = customer.get("billing") or {}
            totals = spend.get(customer.get("id"), {})
            result.append({
                "id": customer.get("id"),
                "email": customer.get("email"),
                "username": customer.get("username"),
                "first_name": customer.get("first_name"),
                "last_name": customer.get("last_name"),
                "city": billing.get("city"),
                "state": billing.get("state"),
                "country": billing.get("country"),
                "phone": billing.get("phone"),
                "company": billing.get("company"),
                "registered": customer.get("date_created"),
                "total_spent": totals.get("total_spent", 0.0),
                "order_count": int(totals.get("order_count", 0)),
            })
        return result

    # ═══════════════════════════════════════════
    # TAXONOMY, COUPONS, REFUNDS
    # ═══════════════════════════════════════════

    def list_categories(self) -> List[Dict]:
        categories = self.client.get_collection(
            "products/categories", {"hide_empty": "false"}, limit=UNBOUNDED_LIMIT,
        )
        return [
            {
                "id": c.get("id"),
                "name": c.get("name"),
                "slug": c.get("slug"),
                "description": c.get("description"),
                "count": c.get("count"),
                "parent": c.get("parent"),
            }
            for c in categories
        ]

    def list_tags(self) -> List[Dict]:
        tags = self.client.get_collection(
            "products/tags", {"hide_empty": "false"}, limit=UNBOUNDED_LIMIT,
        )
        return [
            {
                "id": t.get("id"),
                "name": t.get("name"),
                "slug": t.get("slug"),
                "description": t.get("description"),
                "count": t.get("count"),
            }
            for t in tags
        ]

    def list_coupons(self, filters: Dict) -> List[Dict]:
        coupons = self.client.get_collection(
            "coupons", {"orderby": "date", "order": "desc"},
            limit=filters.get("limit", DEFAULT_COUPON_LIMIT),
        )
        result = []
        for coupon in coupons:
            expires = coupon.get("date_expires")
            result.append({
                "id": coupon.get("id"),
                "code": coupon.get("code"),
                "amount": _to_float(coupon.get("amount")),
                "discount_type": coupon.get("discount_type"),
                "usage_count": int(coupon.get("usage_count") or 0),
                "usage_limit": coupon.get("usage_limit") or None,
                "date_expires": expires[:10] if expires else None,
                "minimum_amount": _to_float(coupon.get("minimum_amount")),
                "maximum_amount": _to_float(coupon.get("maximum_amount")),
            })
        return result

    def list_refunds(self, filters: Dict) -> List[Dict]:
        """Refunds as listed on their parent orders, newest order first."""
        limit = filters.get("limit", DEFAULT_REFUND_LIMIT)
        refunds: List[Dict] = []
        for order in self._all_orders(filters):
            for refund in order.get("refunds") or []:
                refunds.append({
                    "id": refund.get("id"),
                    "parent_order": order.get("id"),
                    "amount": abs(_to_float(refund.get("total"))),
                    "reason": refund.get("reason"),
                    "date": order.get("date_modified"),
                })
                if limit != UNBOUNDED_LIMIT and len(refunds) >= limit:
                    return refunds
        return refunds


def _loggable(filters: Dict) -> Dict:
    return {k: (v.isoformat() if isinstance(v, datetime) else v) for k, v in filters.items()}
