"""
Entity / intent extraction for store-data questions.

Pure functions over the question text. Matching is case-insensitive and
whole-word; within each table the first matching row wins.
"""

import re
from typing import Optional, List, Dict, Any
from models import EntityType, QueryType, UNBOUNDED_LIMIT
from store_registry import (
    DATA_KEYWORDS, ENTITY_PATTERNS, CONJUNCTION_PATTERNS, QUERY_TYPE_RULES,
    UNBOUNDED_KEYWORDS, STATUS_PATTERNS, ENTITY_SYNONYMS,
)

MIN_LIMIT = 1
MAX_LIMIT = 100


def _phrase_regex(phrase: str) -> str:
    return r"\b" + re.escape(phrase) + r"\b"


def _matches_any(text: str, phrases: List[str]) -> bool:
    return any(re.search(_phrase_regex(p), text) for p in phrases)


def requires_data(question: str) -> bool:
    """Cheap gate: does the question mention any store-data concept?"""
    text = question.lower()
    return any(keyword in text for keyword in DATA_KEYWORDS)


def extract_entity_type(question: str) -> Optional[EntityType]:
    """First entity type (in table order) with a whole-word synonym match."""
    text = question.lower()
    for entity_type, synonyms in ENTITY_PATTERNS:
        if _matches_any(text, synonyms):
            return entity_type
    return None


def detect_multiple_entities(question: str) -> List[EntityType]:
    """
    Return every matched entity type when the question joins two or more.

    Only active when a conjunction marker is present. A single match returns
    an empty list so the caller stays on the single-entity path.

    Args:
        question: Raw user question

    Returns:
        Matched EntityTypes in table order, e.g. [ORDERS, PRODUCTS], or []
    """
    text = question.lower()
    if not any(re.search(p, text) for p in CONJUNCTION_PATTERNS):
        return []

    found = [
        entity_type for entity_type, synonyms in ENTITY_PATTERNS
        if _matches_any(text, synonyms)
    ]
    return found if len(found) >= 2 else []


def extract_query_type(question: str) -> QueryType:
    """
    Classify what kind of answer the question wants.

    Args:
        question: Raw user question

    Returns:
        First QueryType whose rule matches (statistics, by_period, sample),
        else QueryType.LIST
    """
    text = question.lower()
    for pattern, query_type in QUERY_TYPE_RULES:
        if re.search(pattern, text):
            return query_type
    return QueryType.LIST


def extract_number(question: str, default: Optional[int] = None) -> Optional[int]:
    """First bare integer token in the question, or `default`."""
    match = re.search(r"\b(\d+)\b", question)
    if match:
        return int(match.group(1))
    return default


def _extract_status(text: str) -> Optional[str]:
    for status, synonyms in STATUS_PATTERNS:
        if _matches_any(text, synonyms):
            return status
    return None


def extract_filters(question: str, entity_type: Optional[EntityType] = None) -> Dict[str, Any]:
    """
    Build the filter set for a question.

    - first integer -> limit, clamped to [1, 100]
    - else all/every/entire/complete/full -> limit = -1 (unbounded)
    - else no limit key (tool default applies)
    - order status, only for order questions

    Args:
        question: Raw user question
        entity_type: Entity already extracted from the question, if any

    Returns:
        {"limit": 10, "status": "processing"} with only the keys found
    """
    text = question.lower()
    filters: Dict[str, Any] = {}

    number = extract_number(text)
    if number is not None:
        filters["limit"] = min(MAX_LIMIT, max(MIN_LIMIT, number))
    elif re.search(UNBOUNDED_KEYWORDS, text):
        filters["limit"] = UNBOUNDED_LIMIT

    if entity_type == EntityType.ORDERS or re.search(r"\b(order|orders)\b", text):
        status = _extract_status(text)
        if status:
            filters["status"] = status

    return filters


def normalize_entity_type(type_str: str) -> EntityType:
    """
    Map a free-form entity name to an EntityType.

    "stock level(s)" folds into stock; "inventory" stays distinct.
    Anything unrecognised is OTHER.
    """
    value = (type_str or "").strip().lower()
    value = ENTITY_SYNONYMS.get(value, value)
    try:
        return EntityType(value)
    except ValueError:
        return EntityType.OTHER
