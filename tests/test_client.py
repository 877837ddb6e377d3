"""
Tests for the Python API client: local cache, stale-while-revalidate
loading and optimistic order item updates.
"""
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock

import pytest
import requests

from bento_api.client import ApiError, BentoClient, CachedFetch, LocalCache, is_data_changed


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def http_response(status: int = 200, body=None, reason: str = "OK"):
    response = MagicMock()
    response.status_code = status
    response.ok = status < 400
    response.reason = reason
    response.content = b"{}" if body is not None else b""
    if body is None:
        response.json.side_effect = ValueError("no body")
    else:
        response.json.return_value = body
    return response


class TestLocalCache:
    def test_get_set_clear(self):
        cache = LocalCache()
        cache.set("orders", [{"id": "20250131"}])

        assert cache.get("orders") == [{"id": "20250131"}]

        cache.clear("orders")
        assert cache.get("orders") is None

    def test_max_age(self):
        clock = FakeClock()
        cache = LocalCache(clock=clock)
        cache.set("menus", ["a"])

        clock.now += 30
        assert cache.get("menus", max_age=60) == ["a"]

        clock.now += 31
        assert cache.get("menus", max_age=60) is None
        assert cache.get("menus") == ["a"]

    def test_persists_to_file(self, tmp_path):
        path = tmp_path / "cache.json"
        LocalCache(path).set("rank", {"topSpenders": []})

        assert LocalCache(path).get("rank") == {"topSpenders": []}

    def test_unreadable_file_starts_empty(self, tmp_path):
        path = tmp_path / "cache.json"
        path.write_text("{not json")

        assert LocalCache(path).get("anything") is None

    def test_clear_all(self, tmp_path):
        path = tmp_path / "cache.json"
        cache = LocalCache(path)
        cache.set("a", 1)
        cache.set("b", 2)

        cache.clear_all()

        assert LocalCache(path).get("a") is None
        assert cache.get("b") is None

    def test_is_data_changed(self):
        assert not is_data_changed({"a": 1, "b": [1, 2]}, {"b": [1, 2], "a": 1})
        assert is_data_changed({"a": 1}, {"a": 2})


class TestCachedFetch:
    def test_fetches_without_cache(self):
        cache = LocalCache()
        fetch = MagicMock(return_value=["fresh"])

        loader = CachedFetch("menus", fetch, cache)

        assert loader.load() == ["fresh"]
        assert cache.get("menus") == ["fresh"]
        assert loader.loading is False

    def test_serves_stale_then_revalidates(self):
        cache = LocalCache()
        cache.set("menus", ["stale"])
        changes = []
        loader = CachedFetch("menus", lambda: ["fresh"], cache, on_data_change=changes.append)

        assert loader.load() == ["stale"]
        assert loader.data == ["fresh"]
        assert cache.get("menus") == ["fresh"]
        assert changes == [["fresh"]]

    def test_unchanged_data_does_not_notify(self):
        cache = LocalCache()
        cache.set("menus", ["same"])
        changes = []
        loader = CachedFetch("menus", lambda: ["same"], cache, on_data_change=changes.append)

        loader.load()

        assert changes == []

    def test_background_revalidation(self):
        cache = LocalCache()
        cache.set("orders", ["stale"])

        with ThreadPoolExecutor(max_workers=1) as executor:
            loader = CachedFetch("orders", lambda: ["fresh"], cache, executor=executor)
            assert loader.load() == ["stale"]
            assert loader.wait(timeout=5) == ["fresh"]

    def test_skip_cache(self):
        cache = LocalCache()
        cache.set("rank", "stale")

        loader = CachedFetch("rank", lambda: "fresh", cache, skip_cache=True)

        assert loader.load() == "fresh"

    def test_fetch_error_keeps_cached_data(self):
        cache = LocalCache()
        cache.set("orders", ["cached"])

        def failing():
            raise ApiError(500, "boom")

        loader = CachedFetch("orders", failing, cache)

        assert loader.load() == ["cached"]
        assert loader.data == ["cached"]
        assert isinstance(loader.error, ApiError)
        assert cache.get("orders") == ["cached"]

    def test_single_revalidation_in_flight(self):
        cache = LocalCache()
        calls = []

        def fetch():
            calls.append(1)
            # A nested refetch while one is running is a no-op
            assert loader.refetch() is None
            return "fresh"

        loader = CachedFetch("k", fetch, cache)
        loader.refetch()

        assert calls == [1]
        assert loader.data == "fresh"

    def test_invalidate_and_update(self):
        cache = LocalCache()
        loader = CachedFetch("k", lambda: "fresh", cache)

        loader.update_data("patched")
        assert cache.get("k") == "patched"
        assert loader.data == "patched"

        loader.invalidate()
        assert cache.get("k") is None


class TestBentoClient:
    @pytest.fixture
    def session(self):
        session = MagicMock()
        session.headers = {}
        return session

    @pytest.fixture
    def client(self, session):
        return BentoClient("https://bento.example.com/", access_token="token", cache=LocalCache(), session=session)

    def test_sets_bearer_header(self, client, session):
        assert session.headers["Authorization"] == "Bearer token"

    def test_get_request(self, client, session):
        session.request.return_value = http_response(body=[{"id": "20250131"}])

        assert client.list_orders() == [{"id": "20250131"}]
        args, kwargs = session.request.call_args
        assert args == ("GET", "https://bento.example.com/api/orders")
        assert kwargs["timeout"] == 10.0

    def test_error_raises_api_error(self, client, session):
        session.request.return_value = http_response(400, {"detail": "Order is closed"}, reason="Bad Request")

        with pytest.raises(ApiError) as exc_info:
            client.get_order("20250131")

        assert exc_info.value.status == 400
        assert exc_info.value.message == "Order is closed"

    def test_error_without_json_body(self, client, session):
        session.request.return_value = http_response(502, None, reason="Bad Gateway")

        with pytest.raises(ApiError) as exc_info:
            client.rank()

        assert exc_info.value.message == "Bad Gateway"

    def test_add_order_item_reconciles(self, client, session):
        client.cache.set("order_20250131", {"id": "20250131", "order_items": []})
        client.cache.set("orders", [{"id": "20250131"}])
        fresh = {"id": "20250131", "order_items": [{"id": "real-id", "menu_item_id": "m1"}]}
        session.request.side_effect = [
            http_response(201, {"id": "real-id"}),
            http_response(body=fresh),
        ]

        created = client.add_order_item("20250131", "m1", no_sauce=True)

        assert created == {"id": "real-id"}
        assert client.cache.get("order_20250131") == fresh
        assert client.cache.get("orders") is None
        post_kwargs = session.request.call_args_list[0].kwargs
        assert post_kwargs["json"] == {
            "order_id": "20250131", "menu_item_id": "m1", "no_sauce": True, "additional": None,
        }

    def test_add_order_item_shows_item_before_response(self, client, session):
        client.cache.set("order_20250131", {"id": "20250131", "order_items": []})
        seen = []

        def request(method, url, **kwargs):
            if method == "POST":
                seen.append(client.cache.get("order_20250131"))
                return http_response(201, {"id": "real-id"})
            return http_response(body={"id": "20250131", "order_items": [{"id": "real-id"}]})

        session.request.side_effect = request

        client.add_order_item("20250131", "m1", menu_item={"name": "Chicken Bento"})

        temp_item = seen[0]["order_items"][0]
        assert temp_item["id"].startswith("temp-")
        assert temp_item["menu_items"] == {"name": "Chicken Bento"}

    def test_add_order_item_rolls_back(self, client, session):
        previous = {"id": "20250131", "order_items": [{"id": "existing"}]}
        client.cache.set("order_20250131", previous)
        session.request.return_value = http_response(400, {"detail": "Order is closed"})

        with pytest.raises(ApiError):
            client.add_order_item("20250131", "m1")

        assert client.cache.get("order_20250131") == previous

    def test_add_order_item_network_error_rolls_back(self, client, session):
        previous = {"id": "20250131", "order_items": []}
        client.cache.set("order_20250131", previous)
        session.request.side_effect = requests.ConnectionError("offline")

        with pytest.raises(requests.ConnectionError):
            client.add_order_item("20250131", "m1")

        assert client.cache.get("order_20250131") == previous

    def test_delete_order_item_rolls_back(self, client, session):
        previous = {"id": "20250131", "order_items": [{"id": "a"}, {"id": "b"}]}
        client.cache.set("order_20250131", previous)
        session.request.return_value = http_response(403, {"detail": "You can only remove your own items"})

        with pytest.raises(ApiError):
            client.delete_order_item("20250131", "a")

        assert client.cache.get("order_20250131") == previous

    def test_delete_order_item_reconciles(self, client, session):
        client.cache.set("order_20250131", {"id": "20250131", "order_items": [{"id": "a"}, {"id": "b"}]})
        fresh = {"id": "20250131", "order_items": [{"id": "b"}]}
        session.request.side_effect = [
            http_response(body={"success": True}),
            http_response(body=fresh),
        ]

        client.delete_order_item("20250131", "a")

        assert client.cache.get("order_20250131") == fresh

    def test_reconcile_failure_clears_cached_order(self, client, session):
        client.cache.set("order_20250131", {"id": "20250131", "order_items": []})
        session.request.side_effect = [
            http_response(201, {"id": "real-id"}),
            http_response(500, {"error": "internal_server_error"}),
        ]

        client.add_order_item("20250131", "m1")

        assert client.cache.get("order_20250131") is None

    def test_cached_loader_uses_client_cache(self, client, session):
        session.request.return_value = http_response(body={"topSpenders": []})

        loader = client.cached("rank", client.rank)

        assert loader.load() == {"topSpenders": []}
        assert client.cache.get("rank") == {"topSpenders": []}

    def test_logout_clears_cache(self, client, session):
        client.cache.set("orders", [])
        session.request.return_value = http_response(body={"message": "Successfully logged out"})

        client.logout()

        assert client.cache.get("orders") is None
        assert "Authorization" not in session.headers
