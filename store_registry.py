"""
Registry of keyword tables used to read store-data questions.

Table order is significant: the first matching row wins.
"""

from models import EntityType, QueryType


# ─── DATA KEYWORDS (substring match) ───
DATA_KEYWORDS = [
    "order", "product", "customer", "sale", "revenue", "transaction",
    "purchase", "buy", "item", "inventory", "stock", "buyer", "client",
    "purchased", "sold", "total", "recent", "list", "show me", "display",
    "what are", "how many", "tell me about",
]

# ─── ENTITY SYNONYMS (whole-word match, declaration order) ───
ENTITY_PATTERNS = [
    (EntityType.ORDERS, [
        "order", "orders", "sale", "sales", "transaction", "transactions",
        "purchase", "purchases",
    ]),
    (EntityType.PRODUCTS, ["product", "products", "item", "items", "goods"]),
    (EntityType.CUSTOMERS, [
        "customer", "customers", "buyer", "buyers", "client", "clients",
    ]),
    (EntityType.CATEGORIES, [
        "category", "categories", "product category", "product categories",
    ]),
    (EntityType.TAGS, ["tag", "tags", "product tag", "product tags"]),
    (EntityType.COUPONS, [
        "coupon", "coupons", "discount", "discounts", "promo code", "promo codes",
    ]),
    (EntityType.REFUNDS, ["refund", "refunds"]),
    (EntityType.STOCK, ["stock", "stock level", "stock levels", "low stock"]),
    (EntityType.INVENTORY, ["inventory", "inventories"]),
]

CONJUNCTION_PATTERNS = [r"\band\b", r"\bor\b", r"\bplus\b", r"\bwith\b", r","]

# ─── QUERY TYPE RULES (priority order) ───
STATISTICS_PATTERN = (
    r"\b(total|revenue|count|average|sum|statistics|stats|how many|"
    r"revenue by|total sales|avg|mean)\b"
)

QUERY_TYPE_RULES = [
    (STATISTICS_PATTERN, QueryType.STATISTICS),
    (
        r"\b(by (day|week|month|year|hour)|over time|trend|daily|weekly|monthly|hourly)\b",
        QueryType.BY_PERIOD,
    ),
    (r"\b(sample|example|few|some)\b", QueryType.SAMPLE),
]

UNBOUNDED_KEYWORDS = r"\b(all|every|entire|complete|full)\b"

# ─── ORDER STATUS SYNONYMS (declaration order) ───
STATUS_PATTERNS = [
    ("completed",  ["completed", "finished", "done", "processed"]),
    ("pending",    ["pending", "waiting", "unpaid"]),
    ("processing", ["processing", "in progress", "being processed"]),
    ("on-hold",    ["on hold", "on-hold", "held"]),
    ("cancelled",  ["cancelled", "canceled"]),
    ("refunded",   ["refunded", "refund"]),
    ("failed",     ["failed", "failure"]),
]

ORDER_STATUSES = [status for status, _ in STATUS_PATTERNS]

# "inventory" is deliberately absent: it stays its own entity type.
ENTITY_SYNONYMS = {
    "stock levels": "stock",
    "stock level":  "stock",
}

# ─── FEATURE REQUEST CONFIRMATION ───
AFFIRMATIVE_PATTERNS = [
    r"^yes\b", r"^yes please\b", r"^yep\b", r"^yup\b", r"^sure\b", r"^ok\b",
    r"^okay\b", r"\brequest this feature\b", r"\bsubmit request\b",
    r"\bsubmit the request\b", r"\bplease submit\b", r"^go ahead\b",
    r"^do it\b", r"\bthat would be great\b",
]

SUPPORTED_ENTITIES = [
    "orders", "products", "customers", "categories", "tags", "coupons",
    "refunds", "stock", "inventory",
]
