"""
Tests for question classification: data gate, entity and query type
extraction, filter extraction and multi-entity detection.
"""

import re
import pytest
from models import EntityType, QueryType, UNBOUNDED_LIMIT
from store_registry import QUERY_TYPE_RULES, STATISTICS_PATTERN
from classifier import (
    requires_data,
    extract_entity_type,
    detect_multiple_entities,
    extract_query_type,
    extract_filters,
    extract_number,
    normalize_entity_type,
)


class TestRequiresData:
    """Keyword gate in front of tool selection."""

    @pytest.mark.parametrize("question", [
        "Hello there",
        "What's the weather like?",
        "Tell me a joke",
    ])
    def test_chit_chat_needs_no_data(self, question):
        assert requires_data(question) is False

    @pytest.mark.parametrize("question", [
        "Show me recent orders",
        "How many customers do I have?",
        "What is my REVENUE?",
        "list coupons",
    ])
    def test_store_questions_need_data(self, question):
        assert requires_data(question) is True


class TestEntityType:
    def test_orders(self):
        assert extract_entity_type("show me 15 pending orders") == EntityType.ORDERS

    def test_sales_means_orders(self):
        assert extract_entity_type("sales last week") == EntityType.ORDERS

    def test_first_declared_entity_wins(self):
        """Orders are declared before products, so they win when both appear."""
        assert extract_entity_type("products in recent orders") == EntityType.ORDERS

    def test_whole_word_only(self):
        """'stockholm' must not match the stock entity."""
        assert extract_entity_type("ship to stockholm") is None

    def test_inventory_and_stock_are_distinct(self):
        assert extract_entity_type("show inventory") == EntityType.INVENTORY
        assert extract_entity_type("show low stock") == EntityType.STOCK

    def test_unknown_returns_none(self):
        assert extract_entity_type("what time is it") is None


class TestMultipleEntities:
    def test_orders_and_products(self):
        found = detect_multiple_entities("How many completed orders and products do I have")
        assert EntityType.ORDERS in found
        assert EntityType.PRODUCTS in found

    def test_needs_a_conjunction(self):
        assert detect_multiple_entities("orders products") == []

    def test_single_entity_with_conjunction(self):
        assert detect_multiple_entities("orders and more orders") == []


class TestQueryType:
    def test_list_is_default(self):
        assert extract_query_type("show me 15 pending orders") == QueryType.LIST

    def test_statistics_beats_by_period(self):
        """'total'/'revenue' are checked before 'monthly'."""
        assert extract_query_type("what is my total revenue this month") == QueryType.STATISTICS
        assert extract_query_type("total monthly revenue") == QueryType.STATISTICS

    def test_statistics_rule_shares_dispatcher_pattern(self):
        assert (STATISTICS_PATTERN, QueryType.STATISTICS) in QUERY_TYPE_RULES
        assert re.search(STATISTICS_PATTERN, "how many customers do i have")
        assert not re.search(STATISTICS_PATTERN, "show me recent orders")

    def test_by_period(self):
        assert extract_query_type("orders by week") == QueryType.BY_PERIOD
        assert extract_query_type("daily orders trend") == QueryType.BY_PERIOD

    def test_sample(self):
        assert extract_query_type("show me a sample of orders") == QueryType.SAMPLE


class TestFilters:
    def test_limit_and_status(self):
        assert extract_filters("show me 15 pending orders", EntityType.ORDERS) == {
            "limit": 15, "status": "pending",
        }

    def test_all_means_unbounded(self):
        assert extract_filters("show me all orders", EntityType.ORDERS) == {"limit": UNBOUNDED_LIMIT}

    def test_no_number_no_all_has_no_limit(self):
        assert "limit" not in extract_filters("show me orders", EntityType.ORDERS)

    def test_limit_is_clamped(self):
        assert extract_filters("show 500 orders")["limit"] == 100
        assert extract_filters("show 0 orders")["limit"] == 1

    def test_number_beats_all(self):
        assert extract_filters("show all 30 orders")["limit"] == 30

    def test_status_only_for_order_questions(self):
        assert "status" not in extract_filters("completed products", EntityType.PRODUCTS)

    def test_status_synonyms_in_declaration_order(self):
        assert extract_filters("canceled orders")["status"] == "cancelled"
        assert extract_filters("orders on hold")["status"] == "on-hold"

    def test_extract_number_default(self):
        assert extract_number("top products", 10) == 10
        assert extract_number("top 7 products", 10) == 7


class TestNormalizeEntityType:
    def test_stock_levels_fold_into_stock(self):
        assert normalize_entity_type("Stock Levels") == EntityType.STOCK

    def test_inventory_is_not_stock(self):
        assert normalize_entity_type("inventory") == EntityType.INVENTORY

    def test_unknown_is_other(self):
        assert normalize_entity_type("shipping zones") == EntityType.OTHER
        assert normalize_entity_type("") == EntityType.OTHER
