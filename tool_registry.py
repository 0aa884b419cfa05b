"""
Tool catalog exposed to the chat model's function-calling mechanism.

Each tool has a descriptor (rendered as JSON schema for the model) and a
typed argument dataclass. Raw arguments proposed by the model, or built by
the rule-based dispatcher, go through `parse_arguments` before execution:
ints are coerced and clamped, enums checked, unknown keys dropped.
"""

import json
from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional, Any, Union
from models import ToolDescriptor, ToolParameter, QueryType, UNBOUNDED_LIMIT
from store_registry import ORDER_STATUSES
from errors import UnknownToolError
from chat_logger import get_logger

logger = get_logger("dataviz_chat")

PERIODS = ("hour", "day", "week", "month")
QUERY_TYPES = tuple(q.value for q in QueryType)


# ═══════════════════════════════════════════
# ARGUMENT TYPES (one per tool)
# ═══════════════════════════════════════════

@dataclass
class WooDataArgs:
    entity_type: str = "orders"
    query_type: QueryType = QueryType.LIST
    filters: Dict[str, Any] = field(default_factory=dict)


@dataclass
class OrderStatisticsArgs:
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    status: Optional[str] = None


@dataclass
class RecentOrdersArgs:
    limit: int = 20
    status: Optional[str] = None
    date_from: Optional[str] = None
    date_to: Optional[str] = None


@dataclass
class TopProductsArgs:
    limit: int = 10


@dataclass
class CustomerSummaryArgs:
    pass


@dataclass
class CustomersArgs:
    limit: int = 10


@dataclass
class FeatureRequestArgs:
    entity_type: str = ""
    description: str = ""


ToolArgs = Union[
    WooDataArgs, OrderStatisticsArgs, RecentOrdersArgs, TopProductsArgs,
    CustomerSummaryArgs, CustomersArgs, FeatureRequestArgs,
]


# ═══════════════════════════════════════════
# DESCRIPTORS
# ═══════════════════════════════════════════

_DATE_FROM = ToolParameter("date_from", "string", "Start date in YYYY-MM-DD format. Optional.")
_DATE_TO = ToolParameter("date_to", "string", "End date in YYYY-MM-DD format. Optional.")
_STATUS = ToolParameter(
    "status", "string", "Filter by order status. Optional.", enum=tuple(ORDER_STATUSES),
)

FILTER_PARAMETERS = (
    _DATE_FROM,
    _DATE_TO,
    ToolParameter("status", "string", "Order status."),
    ToolParameter("stock_threshold", "integer", "Low-stock threshold (default 10).", minimum=0),
    ToolParameter(
        "limit", "integer",
        "Maximum records to return. Use -1 for all records.", minimum=UNBOUNDED_LIMIT,
    ),
    ToolParameter("category_id", "integer", "Product category id."),
    ToolParameter("period", "string", "Time bucket for by_period queries.", enum=PERIODS),
    ToolParameter("sample_size", "integer", "Sample size for sample queries.", minimum=50, maximum=500),
)

TOOLS: Dict[str, ToolDescriptor] = {
    "get_woocommerce_data": ToolDescriptor(
        name="get_woocommerce_data",
        description=(
            "Get any WooCommerce data dynamically: orders, products, customers, categories, "
            "tags, coupons, refunds, stock levels or inventory. Use the exact entity_type the "
            "user mentioned, even if it may not be supported; unsupported types are reported "
            "back with an offer to submit a feature request. \"inventory\" and \"stock\" are "
            "different: inventory lists every product's stock, stock lists low-stock products."
        ),
        parameters=(
            ToolParameter(
                "entity_type", "string",
                "What type of data to fetch. Supported: orders, products, customers, categories, "
                "tags, coupons, refunds, stock, inventory.",
                required=True,
            ),
            ToolParameter(
                "query_type", "string",
                "list (individual items), statistics (aggregated totals/averages), sample "
                "(representative sample), by_period (time series by hour/day/week/month)",
                enum=QUERY_TYPES, required=True,
            ),
            ToolParameter("filters", "object", "Filters to apply.", properties=FILTER_PARAMETERS),
        ),
    ),
    "get_order_statistics": ToolDescriptor(
        name="get_order_statistics",
        description=(
            "Get aggregated order statistics (totals, averages, counts, status breakdown). "
            "Use for questions like \"total revenue\", \"how many orders\", \"average order value\"."
        ),
        parameters=(_DATE_FROM, _DATE_TO, _STATUS),
    ),
    "get_recent_orders": ToolDescriptor(
        name="get_recent_orders",
        description="List the most recent orders, optionally filtered by status and date range.",
        parameters=(
            ToolParameter(
                "limit", "integer", "Number of orders (-1 for all).",
                minimum=1, maximum=100, default=20,
            ),
            _STATUS, _DATE_FROM, _DATE_TO,
        ),
    ),
    "get_top_products": ToolDescriptor(
        name="get_top_products",
        description="Best-selling products ordered by total sales.",
        parameters=(
            ToolParameter("limit", "integer", "Number of products.", minimum=1, maximum=50, default=10),
        ),
    ),
    "get_customer_summary": ToolDescriptor(
        name="get_customer_summary",
        description="Total customer count and average lifetime spend.",
    ),
    "get_customers": ToolDescriptor(
        name="get_customers",
        description="List customers with contact details, total spent and order count.",
        parameters=(
            ToolParameter("limit", "integer", "Number of customers.", minimum=1, maximum=100, default=10),
        ),
    ),
    "submit_feature_request": ToolDescriptor(
        name="submit_feature_request",
        description=(
            "Submit a feature request after the user confirms (\"yes\", \"request this feature\", "
            "\"submit request\") that they want an unsupported data type added. Take entity_type "
            "from the requested_entity field of the most recent unsupported_entity error."
        ),
        parameters=(
            ToolParameter("entity_type", "string", "The unsupported entity type requested.", required=True),
            ToolParameter("description", "string", "Optional context for the request."),
        ),
    ),
}

TOOL_NAMES = list(TOOLS)


def get_tool(name: str) -> ToolDescriptor:
    if name not in TOOLS:
        raise UnknownToolError(name)
    return TOOLS[name]


def to_openai_tools() -> List[Dict[str, Any]]:
    """Catalog as the chat-completions `tools` array."""
    return [descriptor.to_openai_tool() for descriptor in TOOLS.values()]


# ═══════════════════════════════════════════
# ARGUMENT COERCION
# ═══════════════════════════════════════════

def decode_arguments(raw: Union[str, Dict, None]) -> Dict[str, Any]:
    """Decode a tool-call argument payload; malformed input becomes {}."""
    if isinstance(raw, dict):
        return raw
    if not raw:
        return {}
    try:
        decoded = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning(f"Tool arguments not valid JSON, using empty set | raw={str(raw)[:200]}")
        return {}
    return decoded if isinstance(decoded, dict) else {}


def coerce_int(
    value: Any,
    default: Optional[int] = None,
    minimum: Optional[int] = None,
    maximum: Optional[int] = None,
    allow_unbounded: bool = False,
) -> Optional[int]:
    """
    int() the value and clamp it.

    -1 passes through when allowed; otherwise it means "as many as the
    tool permits" and becomes the maximum.

    Args:
        value: Raw argument (int, float, numeric string, anything else)
        default: Returned for missing, non-numeric or non-finite input
        minimum: Lower clamp bound
        maximum: Upper clamp bound
        allow_unbounded: Keep -1 as the unbounded sentinel

    Returns:
        Clamped int, -1, or `default`
    """
    if value is None or value == "":
        return default
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        # inf from 1e999 / Infinity, nan, non-numeric text
        return default
    if number == UNBOUNDED_LIMIT:
        if allow_unbounded:
            return number
        if maximum is not None:
            return maximum
    if minimum is not None:
        number = max(minimum, number)
    if maximum is not None:
        number = min(maximum, number)
    return number


def _coerce_enum(value: Any, allowed, default=None):
    if value is None:
        return default
    text = str(value).strip().lower()
    return text if text in allowed else default


def _coerce_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _coerce_filters(raw: Any) -> Dict[str, Any]:
    if not isinstance(raw, dict):
        return {}
    filters: Dict[str, Any] = {}
    for key in ("date_from", "date_to"):
        if _coerce_str(raw.get(key)):
            filters[key] = _coerce_str(raw[key])
    if _coerce_str(raw.get("status")):
        filters["status"] = _coerce_str(raw["status"]).lower()
    limit = coerce_int(raw.get("limit"), minimum=1, allow_unbounded=True)
    if limit is not None:
        filters["limit"] = limit
    for key in ("stock_threshold", "category_id", "sample_size"):
        number = coerce_int(raw.get(key), minimum=0 if key == "stock_threshold" else 1)
        if number is not None:
            filters[key] = number
    period = _coerce_enum(raw.get("period"), PERIODS)
    if period:
        filters["period"] = period
    return filters


def parse_arguments(tool_name: str, raw: Union[str, Dict, None]) -> ToolArgs:
    """
    Validate raw arguments against the tool's schema.

    Args:
        tool_name: Catalog name, e.g. "get_recent_orders"
        raw: JSON string from the model, a dict, or None

    Returns:
        The tool's argument dataclass with defaults applied and numbers
        clamped. Malformed input yields the defaults.

    Raises:
        UnknownToolError: name is outside the catalog
    """
    get_tool(tool_name)
    args = decode_arguments(raw)

    if tool_name == "get_woocommerce_data":
        query_type = _coerce_enum(args.get("query_type"), QUERY_TYPES, "list")
        return WooDataArgs(
            entity_type=_coerce_str(args.get("entity_type")) or "orders",
            query_type=QueryType(query_type),
            filters=_coerce_filters(args.get("filters")),
        )

    if tool_name == "get_order_statistics":
        return OrderStatisticsArgs(
            date_from=_coerce_str(args.get("date_from")),
            date_to=_coerce_str(args.get("date_to")),
            status=_coerce_enum(args.get("status"), ORDER_STATUSES),
        )

    if tool_name == "get_recent_orders":
        return RecentOrdersArgs(
            limit=coerce_int(args.get("limit"), 20, 1, 100, allow_unbounded=True),
            status=_coerce_enum(args.get("status"), ORDER_STATUSES),
            date_from=_coerce_str(args.get("date_from")),
            date_to=_coerce_str(args.get("date_to")),
        )

    if tool_name == "get_top_products":
        return TopProductsArgs(limit=coerce_int(args.get("limit"), 10, 1, 50))

    if tool_name == "get_customer_summary":
        return CustomerSummaryArgs()

    if tool_name == "get_customers":
        return CustomersArgs(limit=coerce_int(args.get("limit"), 10, 1, 100))

    # submit_feature_request
    return FeatureRequestArgs(
        entity_type=_coerce_str(args.get("entity_type")) or "",
        description=_coerce_str(args.get("description")) or "",
    )


def arguments_to_dict(args: ToolArgs) -> Dict[str, Any]:
    data = asdict(args)
    if isinstance(args, WooDataArgs):
        data["query_type"] = args.query_type.value
    return {k: v for k, v in data.items() if v is not None}
