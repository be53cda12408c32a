# sdk/shopclient.py
import uuid
from typing import Any, Dict, Optional

import httpx
import requests


class ShopAPIError(Exception):
    """The server answered with success: false."""

    def __init__(self, status_code: int, message: str, payload: Optional[Dict[str, Any]] = None):
        super().__init__(f"HTTP {status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.payload = payload or {}


def new_session_id() -> str:
    return f"session_{uuid.uuid4().hex}"


class StoreClient:
    """
    Thin client over the mockshop REST API.

    `session` can be any requests-compatible session object. The cart
    endpoints are keyed by `session_id`, sent in the `session_header` header
    (x-session-id unless the server is configured otherwise).
    """

    def __init__(
        self,
        base_url: str = "http://localhost:3000",
        session_id: Optional[str] = None,
        session: Any = None,
        timeout: int = 10,
        session_header: str = "x-session-id",
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout
        self.session_id = session_id or new_session_id()
        self.session_header = session_header

    def _headers(self) -> Dict[str, str]:
        return {self.session_header: self.session_id}

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        r = self.session.request(
            method,
            f"{self.base_url}{path}",
            headers=self._headers(),
            timeout=self.timeout,
            **kwargs,
        )
        return self._unwrap(r)

    @staticmethod
    def _unwrap(r: Any) -> Dict[str, Any]:
        try:
            body = r.json()
        except ValueError:
            raise ShopAPIError(r.status_code, r.text or "invalid JSON response")
        if not body.get("success", r.status_code < 400):
            raise ShopAPIError(r.status_code, body.get("error") or body.get("message", "request failed"), body)
        return body

    # Products
    def list_products(self, **filters: Any) -> Dict[str, Any]:
        """Returns the full envelope: data, pagination and filters."""
        params = {k: v for k, v in filters.items() if v is not None}
        return self._request("GET", "/api/products", params=params)

    def search_products(self, term: str, **filters: Any):
        return self.list_products(search=term, **filters)["data"]

    def get_product(self, product_id: int):
        return self._request("GET", f"/api/products/{product_id}")["data"]

    def product_filters(self):
        return self._request("GET", "/api/products/filters")["data"]

    # Feed
    def get_feed(self, cursor: Optional[int] = None, limit: Optional[int] = None, category: Optional[str] = None):
        params = {"cursor": cursor, "limit": limit, "category": category}
        return self._request("GET", "/api/feed", params={k: v for k, v in params.items() if v is not None})

    def feed_categories(self):
        return self._request("GET", "/api/feed/categories")["data"]

    # Geo
    def list_countries(self):
        return self._request("GET", "/api/countries")["data"]

    def list_states(self, country_id: int):
        return self._request("GET", "/api/states", params={"countryId": country_id})["data"]

    def list_cities(self, state_id: int):
        return self._request("GET", "/api/cities", params={"stateId": state_id})["data"]

    # Cart
    def view_cart(self):
        return self._request("GET", "/api/cart")["data"]

    def add_to_cart(self, product_id: int, quantity: int = 1):
        return self._request("POST", "/api/cart/add", json={"productId": product_id, "quantity": quantity})["data"]

    def update_cart(self, product_id: int, quantity: int):
        return self._request("PUT", "/api/cart/update", json={"productId": product_id, "quantity": quantity})["data"]

    def remove_from_cart(self, product_id: int):
        return self._request("DELETE", f"/api/cart/remove/{product_id}")["data"]

    def clear_cart(self):
        return self._request("DELETE", "/api/cart/clear")

    def validate_cart(self) -> Dict[str, Any]:
        """
        Returns the envelope either way; a cart with issues is not an exception
        here, callers inspect `success`, `issues` and `validItems`.
        """
        try:
            return self._request("POST", "/api/cart/validate")
        except ShopAPIError as e:
            if "issues" in e.payload:
                return e.payload
            raise

    # Async add (used for concurrent demos)
    async def add_to_cart_async(self, product_id: int, quantity: int = 1, transport: Any = None):
        async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=transport) as client:
            r = await client.post(
                "/api/cart/add",
                json={"productId": product_id, "quantity": quantity},
                headers=self._headers(),
            )
            return self._unwrap(r)["data"]
