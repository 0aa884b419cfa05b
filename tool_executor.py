"""
Tool Executor: runs one named tool call against the store data layer.

Recoverable problems (unknown tool, unsupported entity, empty result sets)
come back as ToolResult payloads the model can read. Configuration and
upstream failures propagate to the caller.
"""

from datetime import datetime, time as dtime
from typing import Any, Dict, List, Optional
from models import ToolResult, QueryType, EntityType
from classifier import normalize_entity_type
from store_registry import SUPPORTED_ENTITIES
from tool_registry import (
    TOOL_NAMES, parse_arguments, arguments_to_dict, coerce_int,
    WooDataArgs, OrderStatisticsArgs, RecentOrdersArgs, TopProductsArgs,
    CustomerSummaryArgs, CustomersArgs, FeatureRequestArgs,
)
from config.settings import (
    DEFAULT_ORDER_LIMIT, DEFAULT_PRODUCT_LIMIT, DEFAULT_CUSTOMER_LIMIT,
    DEFAULT_INVENTORY_LIMIT, DEFAULT_STOCK_THRESHOLD, DEFAULT_SAMPLE_SIZE,
)
from errors import UnknownToolError
from chat_logger import get_logger

logger = get_logger("dataviz_chat")


# ═══════════════════════════════════════════
# HELPERS
# ═══════════════════════════════════════════

def _parse_day(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.strptime(value.strip()[:10], "%Y-%m-%d")
    except ValueError:
        return None


def date_range_filters(date_from: Optional[str], date_to: Optional[str]) -> Dict[str, datetime]:
    """
    Convert date strings to day boundaries.

    date_from -> 00:00:00, date_to -> 23:59:59. If any given bound fails to
    parse, the whole date filter is dropped.
    """
    parsed_from = _parse_day(date_from)
    parsed_to = _parse_day(date_to)
    if (date_from and not parsed_from) or (date_to and not parsed_to):
        logger.warning(f"Dropping unparseable date range | date_from={date_from} | date_to={date_to}")
        return {}

    bounds: Dict[str, datetime] = {}
    if parsed_from:
        bounds["date_from"] = datetime.combine(parsed_from.date(), dtime.min)
    if parsed_to:
        bounds["date_to"] = datetime.combine(parsed_to.date(), dtime(23, 59, 59))
    return bounds


def _query_params(filters: Dict[str, Any]) -> Dict[str, Any]:
    return {k: (v.isoformat() if isinstance(v, datetime) else v) for k, v in filters.items()}


def _empty_result(tool_name: str, key: str, entity_label: str, filters: Dict[str, Any]) -> ToolResult:
    return ToolResult(
        tool_name=tool_name,
        success=True,
        payload={
            key: [],
            "no_records_found": True,
            "record_count": 0,
            "message": f"No {entity_label} found matching the criteria.",
            "query_params": _query_params(filters),
        },
    )


def _records_result(
    tool_name: str, key: str, rows: List[Dict], filters: Dict[str, Any], entity_label: str = None,
) -> ToolResult:
    if not rows:
        return _empty_result(tool_name, key, entity_label or key, filters)
    return ToolResult(
        tool_name=tool_name,
        success=True,
        payload={key: rows, "record_count": len(rows)},
    )


def _error_result(tool_name: str, error_type: str, message: str, **extra) -> ToolResult:
    payload = {"error": True, "error_type": error_type, "message": message}
    payload.update(extra)
    return ToolResult(tool_name=tool_name, success=False, payload=payload, error=error_type)


def unsupported_entity_result(tool_name: str, entity_type: str) -> ToolResult:
    supported = ", ".join(SUPPORTED_ENTITIES)
    return _error_result(
        tool_name,
        "unsupported_entity",
        f'The "{entity_type}" data type is not currently supported. '
        f"Available data types are: {supported}.",
        requested_entity=entity_type,
        available_entities=list(SUPPORTED_ENTITIES),
        suggestion=f"You can ask about: {supported}",
        can_submit_request=True,
        submission_prompt=(
            'Would you like to request this feature? Just say "yes" or "request this feature" '
            f'and I\'ll submit a feature request for "{entity_type}" to the administrators.'
        ),
    )


# ═══════════════════════════════════════════
# EXECUTOR
# ═══════════════════════════════════════════

class ToolExecutor:
    def __init__(self, data_access, feature_requests=None):
        self.data = data_access
        self.feature_requests = feature_requests

    def execute(self, tool_name: str, arguments: Any = None, user_id: str = "") -> ToolResult:
        """Run one tool call. `arguments` may be a dict or a JSON string."""
        try:
            args = parse_arguments(tool_name, arguments)
        except UnknownToolError:
            logger.warning(f"Step 3: Unknown tool requested | tool={tool_name}")
            return _error_result(
                tool_name,
                "unknown_tool",
                f'The tool "{tool_name}" is not available. '
                f"Please use one of: {', '.join(TOOL_NAMES)}.",
                requested_tool=tool_name,
                available_tools=list(TOOL_NAMES),
            )

        logger.info(f"Step 3: Executing tool | tool={tool_name} | args={arguments_to_dict(args)}")

        if isinstance(args, WooDataArgs):
            result = self._flexible_query(tool_name, args)
        elif isinstance(args, OrderStatisticsArgs):
            result = self._order_statistics(tool_name, args.date_from, args.date_to, args.status)
        elif isinstance(args, RecentOrdersArgs):
            filters = {"limit": args.limit}
            if args.status:
                filters["status"] = args.status
            filters.update(date_range_filters(args.date_from, args.date_to))
            result = _records_result(tool_name, "orders", self.data.list_orders(filters), filters)
        elif isinstance(args, TopProductsArgs):
            result = _records_result(
                tool_name, "products", self.data.top_products(args.limit), {"limit": args.limit},
            )
        elif isinstance(args, CustomerSummaryArgs):
            result = self._customer_summary(tool_name)
        elif isinstance(args, CustomersArgs):
            result = _records_result(
                tool_name, "customers", self.data.list_customers(args.limit), {"limit": args.limit},
            )
        else:
            result = self._submit_feature_request(tool_name, args, user_id)

        logger.info(
            f"Step 3: Tool finished | tool={tool_name} | success={result.success} | "
            f"records={result.payload.get('record_count', '-')} | empty={result.is_empty}"
        )
        return result

    # ─── get_woocommerce_data ───

    def _flexible_query(self, tool_name: str, args: WooDataArgs) -> ToolResult:
        entity = normalize_entity_type(args.entity_type)
        filters = args.filters
        query_type = args.query_type

        if entity == EntityType.ORDERS:
            return self._orders_query(tool_name, query_type, filters)

        if entity == EntityType.PRODUCTS:
            limit = coerce_int(filters.get("limit"), DEFAULT_PRODUCT_LIMIT, 1, 50)
            if filters.get("category_id") and query_type == QueryType.LIST:
                rows = self.data.products_by_category(filters["category_id"], limit)
                return _records_result(
                    tool_name, "products", rows,
                    {"category_id": filters["category_id"], "limit": limit},
                )
            return _records_result(tool_name, "products", self.data.top_products(limit), {"limit": limit})

        if entity == EntityType.CUSTOMERS:
            if query_type == QueryType.STATISTICS:
                return self._customer_summary(tool_name)
            limit = coerce_int(filters.get("limit"), DEFAULT_CUSTOMER_LIMIT, 1, 100)
            return _records_result(tool_name, "customers", self.data.list_customers(limit), {"limit": limit})

        if entity == EntityType.CATEGORIES:
            return _records_result(tool_name, "categories", self.data.list_categories(), {})

        if entity == EntityType.TAGS:
            return _records_result(tool_name, "tags", self.data.list_tags(), {})

        if entity == EntityType.COUPONS:
            coupon_filters = {k: v for k, v in filters.items() if k == "limit"}
            return _records_result(tool_name, "coupons", self.data.list_coupons(coupon_filters), coupon_filters)

        if entity == EntityType.REFUNDS:
            refund_filters = {k: v for k, v in filters.items() if k == "limit"}
            refund_filters.update(date_range_filters(filters.get("date_from"), filters.get("date_to")))
            return _records_result(tool_name, "refunds", self.data.list_refunds(refund_filters), refund_filters)

        if entity == EntityType.STOCK:
            threshold = coerce_int(filters.get("stock_threshold"), DEFAULT_STOCK_THRESHOLD, 0)
            rows = self.data.low_stock_products(threshold)
            return _records_result(
                tool_name, "products", rows, {"stock_threshold": threshold}, "low stock products",
            )

        if entity == EntityType.INVENTORY:
            limit = coerce_int(
                filters.get("limit"), DEFAULT_INVENTORY_LIMIT, 1, 500, allow_unbounded=True,
            )
            rows = self.data.all_inventory_products({"limit": limit})
            if not rows:
                return _empty_result(tool_name, "products", "inventory products", {"limit": limit})
            return ToolResult(
                tool_name=tool_name,
                success=True,
                payload={
                    "products": rows,
                    "total": len(rows),
                    "record_count": len(rows),
                    "message": f"Found {len(rows)} product{'s' if len(rows) != 1 else ''} "
                               f"with inventory information.",
                },
            )

        logger.info(f"Step 3: Unsupported entity requested | entity_type={args.entity_type}")
        return unsupported_entity_result(tool_name, args.entity_type)

    def _orders_query(self, tool_name: str, query_type: QueryType, filters: Dict[str, Any]) -> ToolResult:
        if query_type == QueryType.STATISTICS:
            return self._order_statistics(
                tool_name, filters.get("date_from"), filters.get("date_to"), filters.get("status"),
            )

        base: Dict[str, Any] = {}
        if filters.get("status"):
            base["status"] = filters["status"]
        base.update(date_range_filters(filters.get("date_from"), filters.get("date_to")))

        if query_type == QueryType.BY_PERIOD:
            period = filters.get("period", "day")
            rows = self.data.orders_by_period(period, base)
            return _records_result(tool_name, "periods", rows, dict(base, period=period), "orders")

        if query_type == QueryType.SAMPLE:
            base["sample_size"] = coerce_int(filters.get("sample_size"), DEFAULT_SAMPLE_SIZE, 50, 500)
            return _records_result(tool_name, "orders", self.data.sampled_orders(base), base)

        base["limit"] = coerce_int(
            filters.get("limit"), DEFAULT_ORDER_LIMIT, 1, 100, allow_unbounded=True,
        )
        return _records_result(tool_name, "orders", self.data.list_orders(base), base)

    # ─── aggregates ───

    def _order_statistics(
        self, tool_name: str, date_from: Optional[str], date_to: Optional[str], status: Optional[str],
    ) -> ToolResult:
        filters: Dict[str, Any] = {}
        if status:
            filters["status"] = status
        filters.update(date_range_filters(date_from, date_to))

        stats = self.data.order_statistics(filters)
        payload = dict(stats)
        if not stats.get("summary", {}).get("total_orders"):
            payload.update({
                "no_records_found": True,
                "record_count": 0,
                "message": "No orders found matching the criteria. Total orders: 0.",
                "query_params": _query_params(filters),
            })
        else:
            payload["record_count"] = stats["summary"]["total_orders"]
        return ToolResult(tool_name=tool_name, success=True, payload=payload)

    def _customer_summary(self, tool_name: str) -> ToolResult:
        summary = self.data.customer_summary()
        payload = dict(summary)
        if not summary.get("total_customers"):
            payload.update({
                "no_records_found": True,
                "record_count": 0,
                "message": "No customers found. Total customers: 0.",
                "query_params": {},
            })
        return ToolResult(tool_name=tool_name, success=True, payload=payload)

    # ─── submit_feature_request ───

    def _submit_feature_request(self, tool_name: str, args: FeatureRequestArgs, user_id: str) -> ToolResult:
        if not args.entity_type:
            return _error_result(
                tool_name, "invalid_arguments",
                "Entity type is required to submit a feature request.",
            )
        if self.feature_requests is None:
            return _error_result(
                tool_name, "unavailable", "Feature requests are not enabled on this server.",
            )

        request_id = self.feature_requests.submit_request(args.entity_type, user_id, args.description)
        logger.info(f"Step 3: Feature request stored | entity_type={args.entity_type} | id={request_id}")
        return ToolResult(
            tool_name=tool_name,
            success=True,
            payload={
                "success": True,
                "message": (
                    f'Feature request for "{args.entity_type}" has been submitted successfully! '
                    f"Request ID: #{request_id}. The administrators have been notified."
                ),
                "request_id": request_id,
            },
        )
