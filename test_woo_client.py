"""
Tests for WooClient pagination and error handling with a mocked requests session.
"""

import pytest
import requests
from unittest.mock import MagicMock
from services.woo_client import WooClient
from errors import DataAccessError, ConfigurationError


def _response(data, status=200, total_pages=1, total=None):
    response = MagicMock()
    response.status_code = status
    response.json.return_value = data
    response.text = str(data)
    response.url = "https://shop.example.com/wp-json/wc/v3/orders?consumer_key=ck_1&consumer_secret=cs_1"
    response.headers = {"X-WP-TotalPages": str(total_pages)}
    if total is not None:
        response.headers["X-WP-Total"] = str(total)
    return response


def _client(*responses):
    session = MagicMock()
    session.headers = {}
    session.get.side_effect = list(responses)
    client = WooClient("https://shop.example.com/wp-json/wc/v3/", "ck_1", "cs_1", session=session)
    return client, session


class TestGet:
    def test_auth_and_url(self):
        client, session = _client(_response([]))
        client.get("orders", {"status": "completed"})
        url = session.get.call_args[0][0]
        params = session.get.call_args[1]["params"]
        assert url == "https://shop.example.com/wp-json/wc/v3/orders"
        assert params["consumer_key"] == "ck_1"
        assert params["status"] == "completed"

    def test_http_error(self):
        client, _ = _client(_response({"code": "woocommerce_rest_cannot_view"}, status=401))
        with pytest.raises(DataAccessError) as excinfo:
            client.get("orders")
        assert excinfo.value.status_code == 401

    def test_network_error(self):
        session = MagicMock()
        session.headers = {}
        session.get.side_effect = requests.exceptions.ConnectionError("refused")
        client = WooClient("https://shop.example.com/wp-json/wc/v3", "ck", "cs", session=session)
        with pytest.raises(DataAccessError):
            client.get("orders")

    def test_not_configured(self):
        client = WooClient("", "", "", session=MagicMock(headers={}))
        with pytest.raises(ConfigurationError):
            client.get("orders")

    def test_non_json_body(self):
        response = _response(None)
        response.json.side_effect = requests.exceptions.JSONDecodeError("Expecting value", "<html>blocked</html>", 0)
        response.text = "<html>blocked</html>"
        client, _ = _client(response)
        with pytest.raises(DataAccessError) as excinfo:
            client.get("orders")
        assert excinfo.value.status_code == 200
        assert excinfo.value.body == "<html>blocked</html>"


class TestPagination:
    def test_limit_within_one_page(self):
        client, session = _client(_response([{"id": i} for i in range(5)], total_pages=3))
        rows = client.get_collection("orders", limit=5)
        assert len(rows) == 5
        assert session.get.call_count == 1
        assert session.get.call_args[1]["params"]["per_page"] == 5

    def test_unbounded_reads_every_page(self):
        client, session = _client(
            _response([{"id": i} for i in range(100)], total_pages=3),
            _response([{"id": i} for i in range(100, 200)], total_pages=3),
            _response([{"id": 200}], total_pages=3),
        )
        rows = client.get_collection("orders", limit=-1)
        assert len(rows) == 201
        assert [c[1]["params"]["page"] for c in session.get.call_args_list] == [1, 2, 3]
        assert session.get.call_args_list[0][1]["params"]["per_page"] == 100

    def test_limit_spanning_pages_is_trimmed(self):
        client, _ = _client(
            _response([{"id": i} for i in range(100)], total_pages=2),
            _response([{"id": i} for i in range(100, 200)], total_pages=2),
        )
        assert len(client.get_collection("orders", limit=150)) == 150

    def test_count_header(self):
        client, session = _client(_response([{"id": 1}], total=42))
        assert client.count("customers") == 42
        assert session.get.call_args[1]["params"]["per_page"] == 1
