"""
Rule-based tool selection: question text -> tool calls, no model round-trip.

Branch priority: orders -> products -> customers -> stock/inventory ->
any other entity -> default (recent orders, limit 20).
"""

import re
import uuid
from typing import List, Dict, Any
from models import ToolCall, EntityType, QueryType
from classifier import (
    requires_data, extract_entity_type, extract_query_type,
    extract_filters, extract_number,
)
from store_registry import STATISTICS_PATTERN
from config.settings import DEFAULT_ORDER_LIMIT, DEFAULT_PRODUCT_LIMIT, DEFAULT_CUSTOMER_LIMIT
from chat_logger import get_logger, sanitize_log_string

logger = get_logger("dataviz_chat")


def _call_id(branch: str) -> str:
    return f"intent-{branch}-{uuid.uuid4().hex[:13]}"


def _data_call(branch: str, entity: str, query_type: QueryType, filters: Dict[str, Any]) -> ToolCall:
    return ToolCall(
        id=_call_id(branch),
        name="get_woocommerce_data",
        arguments={"entity_type": entity, "query_type": query_type.value, "filters": filters},
    )


def classify_intent_and_get_tools(question: str) -> List[ToolCall]:
    """Deterministic tool calls for a question; [] when no data is needed."""
    if not requires_data(question):
        return []

    text = question.lower()
    entity_type = extract_entity_type(text)
    query_type = extract_query_type(text)
    filters = extract_filters(text, entity_type)
    is_statistics = query_type == QueryType.STATISTICS or bool(re.search(STATISTICS_PATTERN, text))

    # ─── Orders ───
    if entity_type == EntityType.ORDERS or re.search(
        r"\b(order|orders|sale|sales|transaction|purchase|recent order)\b", text
    ):
        if is_statistics:
            calls = [ToolCall(id=_call_id("order-stats"), name="get_order_statistics", arguments=dict(filters))]
        else:
            calls = [_data_call("orders", "orders", query_type, filters)]

    # ─── Products ───
    elif entity_type == EntityType.PRODUCTS or re.search(r"\b(product|products|item|items)\b", text):
        if re.search(r"\b(top|best|popular|selling|bestselling)\b", text):
            limit = extract_number(text, DEFAULT_PRODUCT_LIMIT)
            calls = [ToolCall(id=_call_id("top-products"), name="get_top_products", arguments={"limit": limit})]
        else:
            calls = [_data_call("products", "products", query_type, filters)]

    # ─── Customers ───
    elif entity_type == EntityType.CUSTOMERS or re.search(
        r"\b(customer|customers|buyer|buyers|client|clients)\b", text
    ):
        if is_statistics or re.search(r"\b(summary|overview|total)\b", text):
            calls = [ToolCall(id=_call_id("customer-summary"), name="get_customer_summary", arguments={})]
        else:
            limit = extract_number(text, DEFAULT_CUSTOMER_LIMIT)
            calls = [ToolCall(id=_call_id("customers"), name="get_customers", arguments={"limit": limit})]

    # ─── Stock / inventory (kept distinct) ───
    elif entity_type in (EntityType.STOCK, EntityType.INVENTORY) or re.search(
        r"\b(inventory|stock|low stock|out of stock)\b", text
    ):
        entity = entity_type.value if entity_type else "stock"
        calls = [_data_call(entity, entity, query_type, filters)]

    # ─── Categories, tags, coupons, refunds ───
    elif entity_type:
        calls = [_data_call(entity_type.value, entity_type.value, query_type, filters)]

    # ─── Default: recent orders ───
    else:
        calls = [_data_call("default", "orders", QueryType.LIST, {"limit": DEFAULT_ORDER_LIMIT})]

    logger.info(
        f"Step 1: Rule-based tool selection | question=\"{sanitize_log_string(question[:100])}\" | "
        f"entity={entity_type.value if entity_type else None} | query_type={query_type.value} | "
        f"tools={[c.name for c in calls]}"
    )
    return calls
