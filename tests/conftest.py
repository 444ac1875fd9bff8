import asyncio
import json
import uuid
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple

import httpx
import pytest

from inventory_service.database import reset_all
from inventory_service.main import app
from stockdash import Settings, Workspace


class RecordingTransport(httpx.AsyncBaseTransport):
    """Forwards to the in-memory service, recording every request.

    Interceptors may answer a request themselves (return a Response) or
    raise by returning an exception; `delay` yields to the event loop first,
    and `slow` adds an extra delay for one (method, path).
    """

    def __init__(self, inner: httpx.AsyncBaseTransport):
        self.inner = inner
        self.requests: List[httpx.Request] = []
        self.interceptors: List[Callable[[httpx.Request], object]] = []
        self.delay = 0.0
        self.slow: Dict[Tuple[str, str], float] = {}

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        extra = self.slow.get((request.method, request.url.path))
        if extra:
            await asyncio.sleep(extra)
        for intercept in self.interceptors:
            outcome = intercept(request)
            if isinstance(outcome, Exception):
                raise outcome
            if outcome is not None:
                return outcome
        return await self.inner.handle_async_request(request)


def fail(method: str, path: str, status: int, detail: str = "boom") -> Callable[[httpx.Request], Optional[httpx.Response]]:
    def _intercept(request: httpx.Request):
        if request.method == method and request.url.path == path:
            return httpx.Response(status, json={"detail": detail})
        return None
    return _intercept


def accept_all_sales(request: httpx.Request):
    """A service that records any sale without checking stock."""
    if request.method == "POST" and request.url.path == "/sales":
        body = json.loads(request.content)
        return httpx.Response(201, json={
            "_id": uuid.uuid4().hex,
            "productId": body["productId"],
            "quantity": body["quantity"],
            "date": datetime.now(timezone.utc).isoformat(),
        })
    return None


@pytest.fixture(autouse=True)
def clean_service():
    reset_all()
    yield
    reset_all()


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport(httpx.ASGITransport(app=app))


@pytest.fixture
def make_workspace(tmp_path, transport):
    """Build a workspace whose session lives in its own file under tmp_path."""
    def _make(name: str = "default") -> Workspace:
        settings = Settings(api_url="http://inventory.test", session_file=tmp_path / f"{name}.json")
        return Workspace(settings, transport=transport)
    return _make


@pytest.fixture
def signed_in(make_workspace):
    """Async factory: a workspace registered with the given role and an active store."""
    async def _signed_in(role: str = "manager", name: Optional[str] = None) -> Workspace:
        ws = make_workspace(name or role)
        await ws.register(name or f"{role}-user", f"{role}@example.com", "secret", role=role)
        return ws
    return _signed_in


@pytest.fixture
def notes():
    return []
