"""
HTTP client for the Bento Order API.
"""
import logging
import uuid
from copy import deepcopy
from typing import Any, Callable, Dict, List, Optional

import requests

from bento_api.client.cache import LocalCache
from bento_api.client.cached_fetch import CachedFetch

logger = logging.getLogger(__name__)

ORDERS_CACHE_KEY = "orders"
MENUS_CACHE_KEY = "menus"


def order_cache_key(order_id: str) -> str:
    return f"order_{order_id}"


def menu_cache_key(menu_id: str) -> str:
    return f"menu_{menu_id}"


class ApiError(Exception):
    """Non-2xx response from the API."""

    def __init__(self, status: int, message: str):
        super().__init__(f"{status}: {message}")
        self.status = status
        self.message = message


class BentoClient:
    """
    Thin wrapper around the REST endpoints.

    Reads can go through `cached()` for stale-while-revalidate loading;
    order item mutations patch the cached order optimistically.
    """

    def __init__(
        self,
        base_url: str,
        access_token: Optional[str] = None,
        cache: Optional[LocalCache] = None,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.cache = cache if cache is not None else LocalCache()
        self.timeout = timeout
        self.http = session or requests.Session()
        if access_token:
            self.set_access_token(access_token)

    def set_access_token(self, access_token: Optional[str]) -> None:
        if access_token:
            self.http.headers["Authorization"] = f"Bearer {access_token}"
        else:
            self.http.headers.pop("Authorization", None)

    def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self.base_url}{path}"
        response = self.http.request(method, url, timeout=self.timeout, **kwargs)

        if not response.ok:
            message = response.reason or "Request failed"
            try:
                body = response.json()
            except ValueError:
                body = None
            if isinstance(body, dict):
                detail = body.get("detail") or body.get("message") or body.get("error")
                if detail:
                    message = detail if isinstance(detail, str) else str(detail)
            logger.warning(f"{method} {path} failed with {response.status_code}: {message}")
            raise ApiError(response.status_code, message)

        if not response.content:
            return None
        return response.json()

    def cached(
        self,
        cache_key: str,
        fetch_fn: Callable[[], Any],
        skip_cache: bool = False,
        on_data_change: Optional[Callable[[Any], None]] = None,
        executor=None,
    ) -> CachedFetch:
        """Stale-while-revalidate loader bound to this client's cache."""
        return CachedFetch(
            cache_key,
            fetch_fn,
            self.cache,
            skip_cache=skip_cache,
            on_data_change=on_data_change,
            executor=executor,
        )

    # Session

    def me(self) -> Dict[str, Any]:
        return self._request("GET", "/api/me")

    def me_stats(self) -> Dict[str, Any]:
        return self._request("GET", "/api/me/stats")

    def refresh_session(self, refresh_token: str) -> Dict[str, Any]:
        session = self._request("POST", "/api/auth/refresh", json={"refresh_token": refresh_token})
        self.set_access_token(session.get("access_token"))
        return session

    def logout(self) -> None:
        self._request("POST", "/api/auth/logout")
        self.set_access_token(None)
        self.cache.clear_all()

    # Menus

    def list_menus(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/api/menus")

    def get_menu(self, menu_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/api/menus/{menu_id}")

    def menu_stats(self, menu_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/api/menus/{menu_id}/stats")

    def create_menu(self, name: str, phone: str, menu_items: List[Dict[str, Any]],
                    additional: Optional[List[str]] = None) -> Dict[str, Any]:
        restaurant = self._request("POST", "/api/menus", json={
            "name": name,
            "phone": phone,
            "additional": additional,
            "menu_items": menu_items,
        })
        self.cache.clear(MENUS_CACHE_KEY)
        return restaurant

    def update_menu(self, menu_id: str, **fields) -> Dict[str, Any]:
        restaurant = self._request("PUT", f"/api/menus/{menu_id}", json=fields)
        self.cache.clear(MENUS_CACHE_KEY)
        self.cache.clear(menu_cache_key(menu_id))
        return restaurant

    def delete_menu(self, menu_id: str) -> None:
        self._request("DELETE", f"/api/menus/{menu_id}")
        self.cache.clear(MENUS_CACHE_KEY)
        self.cache.clear(menu_cache_key(menu_id))

    def parse_menu_image(self, image_data: bytes, filename: str = "menu.jpg",
                         mime_type: str = "image/jpeg") -> List[Dict[str, Any]]:
        result = self._request(
            "POST",
            "/api/menus/parse-image",
            files={"file": (filename, image_data, mime_type)},
        )
        return result["menu_items"]

    # Orders

    def list_orders(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/api/orders")

    def get_order(self, order_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/api/orders/{order_id}")

    def create_order(self, restaurant_id: str, order_date: str,
                     auto_close_at: Optional[str] = None) -> Dict[str, Any]:
        order = self._request("POST", "/api/orders", json={
            "restaurant_id": restaurant_id,
            "order_date": order_date,
            "auto_close_at": auto_close_at,
        })
        self.cache.clear(ORDERS_CACHE_KEY)
        return order

    def close_order(self, order_id: str) -> Dict[str, Any]:
        order = self._request("POST", f"/api/orders/{order_id}/close")
        self._invalidate_order(order_id)
        return order

    def reopen_order(self, order_id: str) -> Dict[str, Any]:
        order = self._request("POST", f"/api/orders/{order_id}/reopen")
        self._invalidate_order(order_id)
        return order

    def delete_order(self, order_id: str) -> None:
        self._request("DELETE", f"/api/orders/{order_id}")
        self._invalidate_order(order_id)

    def _invalidate_order(self, order_id: str) -> None:
        self.cache.clear(ORDERS_CACHE_KEY)
        self.cache.clear(order_cache_key(order_id))

    def _restore_order(self, order_id: str, previous: Optional[Dict[str, Any]]) -> None:
        if previous is None:
            self.cache.clear(order_cache_key(order_id))
        else:
            self.cache.set(order_cache_key(order_id), previous)

    def _reconcile_order(self, order_id: str) -> Optional[Dict[str, Any]]:
        try:
            fresh = self.get_order(order_id)
        except (ApiError, requests.RequestException) as e:
            # The mutation went through; a later load will pick up the server state
            logger.warning(f"Could not refresh order {order_id} after update: {e}")
            self.cache.clear(order_cache_key(order_id))
            return None
        self.cache.set(order_cache_key(order_id), fresh)
        return fresh

    def add_order_item(
        self,
        order_id: str,
        menu_item_id: str,
        no_sauce: bool = False,
        additional: Optional[int] = None,
        menu_item: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Add a dish to an order.

        The cached order shows the new item right away under a temporary id;
        it is replaced by the server's copy, or removed again if the request
        fails.
        """
        key = order_cache_key(order_id)
        previous = self.cache.get(key)

        if previous is not None:
            patched = deepcopy(previous)
            patched.setdefault("order_items", []).append({
                "id": f"temp-{uuid.uuid4()}",
                "order_id": order_id,
                "menu_item_id": menu_item_id,
                "no_sauce": no_sauce,
                "additional": additional,
                "menu_items": menu_item,
            })
            self.cache.set(key, patched)

        try:
            created = self._request("POST", "/api/order-items", json={
                "order_id": order_id,
                "menu_item_id": menu_item_id,
                "no_sauce": no_sauce,
                "additional": additional,
            })
        except (ApiError, requests.RequestException):
            self._restore_order(order_id, previous)
            raise

        self.cache.clear(ORDERS_CACHE_KEY)
        self._reconcile_order(order_id)
        return created

    def delete_order_item(self, order_id: str, item_id: str) -> None:
        """
        Remove a dish from an order, hiding it from the cached order first.
        """
        key = order_cache_key(order_id)
        previous = self.cache.get(key)

        if previous is not None:
            patched = deepcopy(previous)
            patched["order_items"] = [
                item for item in patched.get("order_items", [])
                if str(item.get("id")) != str(item_id)
            ]
            self.cache.set(key, patched)

        try:
            self._request("DELETE", f"/api/order-items/{item_id}")
        except (ApiError, requests.RequestException):
            self._restore_order(order_id, previous)
            raise

        self.cache.clear(ORDERS_CACHE_KEY)
        self._reconcile_order(order_id)

    # Leaderboard

    def rank(self) -> Dict[str, Any]:
        return self._request("GET", "/api/rank")
