"""
Deterministic answers built straight from tool results.

Used when ANSWER_MODE=template (no chat model configured, or tests). Every
record returned is listed exactly once; empty results say "0".
"""

from typing import Dict, List, Any
from models import ToolResult


def _money(value: Any) -> str:
    try:
        return f"{float(value):,.2f}"
    except (TypeError, ValueError):
        return str(value)


def _label(result: ToolResult) -> str:
    for key in ("orders", "products", "customers", "categories", "tags", "coupons", "refunds", "periods"):
        if key in result.payload:
            return "order periods" if key == "periods" else key
    if "summary" in result.payload:
        return "orders"
    if "total_customers" in result.payload:
        return "customers"
    return "records"


def _compose_error(payload: Dict) -> str:
    parts = [payload.get("message", "That request could not be completed.")]
    if payload.get("suggestion"):
        parts.append(payload["suggestion"] + ".")
    if payload.get("submission_prompt"):
        parts.append(payload["submission_prompt"])
    return " ".join(parts)


def _compose_rows(key: str, rows: List[Dict]) -> str:
    count = len(rows)
    if key == "orders":
        lines = [
            f"- Order #{o.get('id')}: {o.get('status')}, {_money(o.get('total'))} "
            f"{o.get('currency') or ''}".rstrip() + (f", {o['date']}" if o.get("date") else "")
            for o in rows
        ]
        return f"Found {count} order{'s' if count != 1 else ''}:\n" + "\n".join(lines)

    if key == "products":
        lines = []
        for p in rows:
            details = []
            if "total_sales" in p:
                details.append(f"{p['total_sales']} sold")
            if "stock_quantity" in p:
                details.append(f"stock {p['stock_quantity']}")
            if p.get("price") not in (None, ""):
                details.append(f"price {p['price']}")
            suffix = f" ({', '.join(details)})" if details else ""
            lines.append(f"{len(lines) + 1}. {p.get('name')}{suffix}")
        return f"Here are {count} product{'s' if count != 1 else ''}:\n" + "\n".join(lines)

    if key == "customers":
        lines = []
        for c in rows:
            name = " ".join(filter(None, [c.get("first_name"), c.get("last_name")])) or c.get("username") or c.get("email")
            lines.append(
                f"- {name}: {c.get('order_count', 0)} orders, {_money(c.get('total_spent', 0))} spent"
            )
        return f"Found {count} customer{'s' if count != 1 else ''}:\n" + "\n".join(lines)

    if key == "periods":
        lines = [
            f"- {b['period']}: {b['order_count']} orders, revenue {_money(b['revenue'])}"
            for b in rows
        ]
        return f"Orders over {count} period{'s' if count != 1 else ''}:\n" + "\n".join(lines)

    if key == "coupons":
        lines = [f"- {c.get('code')}: {c.get('amount')} ({c.get('discount_type')}), used {c.get('usage_count')} times" for c in rows]
        return f"Found {count} coupon{'s' if count != 1 else ''}:\n" + "\n".join(lines)

    if key == "refunds":
        lines = [
            f"- Refund #{r.get('id')} on order #{r.get('parent_order')}: {_money(r.get('amount'))}"
            + (f" ({r['reason']})" if r.get("reason") else "")
            for r in rows
        ]
        return f"Found {count} refund{'s' if count != 1 else ''}:\n" + "\n".join(lines)

    # categories, tags
    lines = [f"- {r.get('name')} ({r.get('count', 0)} products)" for r in rows]
    return f"Found {count} {key}:\n" + "\n".join(lines)


def compose_result(result: ToolResult) -> str:
    payload = result.payload
    if not result.success:
        return _compose_error(payload)

    if payload.get("no_records_found"):
        return f"There are 0 {_label(result)} matching your query in the store."

    if "summary" in payload:
        s = payload["summary"]
        lines = [
            f"Total orders: {s['total_orders']}",
            f"Total revenue: {_money(s['total_revenue'])}",
            f"Average order value: {_money(s['avg_order_value'])}",
            f"Unique customers: {s['unique_customers']}",
        ]
        for b in payload.get("status_breakdown", []):
            lines.append(f"- {b['status']}: {b['count']} orders, {_money(b['revenue'])}")
        return "\n".join(lines)

    if "total_customers" in payload:
        return (
            f"You have {payload['total_customers']} customers with an average lifetime "
            f"spend of {_money(payload['avg_lifetime_spent'])}."
        )

    if "request_id" in payload:
        return payload.get("message", "")

    for key in ("orders", "products", "customers", "categories", "tags", "coupons", "refunds", "periods"):
        if isinstance(payload.get(key), list):
            return _compose_rows(key, payload[key])

    return payload.get("message", "")


def compose_answer(results: List[ToolResult]) -> str:
    """Join per-tool answers; no results means nothing was looked up."""
    if not results:
        return "I can answer questions about your store's orders, products, customers, and inventory."
    return "\n\n".join(compose_result(r) for r in results)
