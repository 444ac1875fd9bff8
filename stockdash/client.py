# stockdash/client.py
import logging
from typing import Optional, Dict, Any, List, Callable

import httpx

from .errors import ServiceUnavailableError, error_for_status
from .models import ProductDraft, ProductUpdate

log = logging.getLogger(__name__)

TokenProvider = Callable[[], Optional[str]]


def _error_message(r: httpx.Response) -> str:
    try:
        body = r.json()
    except ValueError:
        return r.text or r.reason_phrase
    if isinstance(body, dict):
        return str(body.get("message") or body.get("detail") or body)
    return str(body)


def _as_list(data: Any, path: str) -> List[Dict[str, Any]]:
    if data is None:
        return []
    if not isinstance(data, list):
        raise ServiceUnavailableError(f"Expected a list from {path}")
    return data


class InventoryClient:
    """
    Async client for the remote inventory service.

    The bearer token is read through `token_provider` on every call so a
    login/logout takes effect without rebuilding the client.
    """

    def __init__(self, base_url: str = "http://localhost:5000", token_provider: Optional[TokenProvider] = None,
                 timeout: float = 10, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.token_provider = token_provider
        self._http = httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=transport)

    async def aclose(self):
        await self._http.aclose()

    async def __aenter__(self) -> "InventoryClient":
        return self

    async def __aexit__(self, *exc):
        await self.aclose()

    def _headers(self) -> Dict[str, str]:
        token = self.token_provider() if self.token_provider else None
        return {"Authorization": f"Bearer {token}"} if token else {}

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            r = await self._http.request(method, path, headers=self._headers(), **kwargs)
        except httpx.TimeoutException as e:
            log.error("%s %s timed out", method, path)
            raise ServiceUnavailableError(f"Request to {path} timed out") from e
        except httpx.TransportError as e:
            log.error("%s %s failed: %s", method, path, e)
            raise ServiceUnavailableError(f"Inventory service unreachable: {e}") from e

        if r.status_code >= 400:
            message = _error_message(r)
            if r.status_code == 403:
                # not fatal to the session; the caller decides what to show
                log.warning("Permission denied: %s", message)
            else:
                log.error("%s %s -> %s: %s", method, path, r.status_code, message)
            raise error_for_status(r.status_code, message)

        if not r.content:
            return None
        try:
            return r.json()
        except ValueError as e:
            raise ServiceUnavailableError(f"Invalid JSON from {path}", r.status_code) from e

    # Auth
    async def register(self, username: str, email: str, password: str, role: Optional[str] = None) -> Dict[str, Any]:
        payload = {"username": username, "email": email, "password": password}
        if role:
            payload["role"] = role
        return await self._request("POST", "/auth/register", json=payload)

    async def login(self, username: str, password: str) -> Dict[str, Any]:
        return await self._request("POST", "/auth/login", json={"username": username, "password": password})

    async def me(self) -> Dict[str, Any]:
        return await self._request("GET", "/auth/me")

    # Products
    async def list_products(self) -> List[Dict[str, Any]]:
        return _as_list(await self._request("GET", "/products"), "/products")

    async def get_product(self, product_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/products/{product_id}")

    async def create_product(self, draft: ProductDraft) -> Dict[str, Any]:
        return await self._request("POST", "/products", json=draft.to_wire())

    async def update_product(self, product_id: str, changes: ProductUpdate) -> Dict[str, Any]:
        return await self._request("PUT", f"/products/{product_id}", json=changes.to_wire())

    async def delete_product(self, product_id: str) -> Any:
        return await self._request("DELETE", f"/products/{product_id}")

    # Sales
    async def list_sales(self) -> List[Dict[str, Any]]:
        return _as_list(await self._request("GET", "/sales"), "/sales")

    async def record_sale(self, product_id: str, quantity: int) -> Dict[str, Any]:
        log.debug("Recording sale: product=%s quantity=%s", product_id, quantity)
        return await self._request("POST", "/sales", json={"productId": product_id, "quantity": quantity})

    # Development service only
    async def reset(self) -> Dict[str, Any]:
        return await self._request("POST", "/reset")
