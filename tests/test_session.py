# tests/test_session.py
import asyncio
import json

import pytest

from stockdash.errors import AuthenticationError, InvalidDataError
from stockdash.models import Role
from stockdash.session import TOKEN_KEY, USER_KEY


def test_register_persists_credential_and_profile(signed_in, tmp_path):
    async def scenario():
        ws = await signed_in("staff", name="kim")
        await ws.aclose()
        return ws

    ws = asyncio.run(scenario())
    stored = json.loads((tmp_path / "kim.json").read_text())
    assert stored[TOKEN_KEY]
    assert stored[USER_KEY]["username"] == "kim"
    assert ws.session.role is Role.STAFF
    assert ws.session.is_authenticated


def test_restore_uses_cached_profile(signed_in, make_workspace, transport):
    async def scenario():
        first = await signed_in("manager")
        await first.aclose()
        transport.requests.clear()
        async with make_workspace("manager") as again:
            return await again.session.restore()

    principal = asyncio.run(scenario())
    assert principal.username == "manager-user"
    assert principal.role is Role.MANAGER
    assert transport.requests == []


def test_restore_with_token_only_fetches_profile(signed_in, make_workspace, transport):
    async def scenario():
        first = await signed_in("cashier")
        first.storage.remove(USER_KEY)
        await first.aclose()
        transport.requests.clear()
        async with make_workspace("cashier") as again:
            principal = await again.session.restore()
            return principal, again.storage.get(USER_KEY)

    principal, cached = asyncio.run(scenario())
    assert principal.role is Role.CASHIER
    assert len(transport.calls("GET", "/auth/me")) == 1
    assert cached["username"] == "cashier-user"


def test_rejected_token_is_cleared(make_workspace, transport):
    async def scenario():
        async with make_workspace("stale") as ws:
            ws.storage.set(TOKEN_KEY, "expired")
            principal = await ws.session.restore()
            return ws, principal

    ws, principal = asyncio.run(scenario())
    assert principal is None
    assert ws.storage.get(TOKEN_KEY) is None
    assert not ws.session.is_authenticated
    assert ws.session.role is Role.USER


def test_logout_clears_storage(signed_in):
    async def scenario():
        ws = await signed_in("manager")
        ws.logout()
        await ws.aclose()
        return ws

    ws = asyncio.run(scenario())
    assert ws.storage.get(TOKEN_KEY) is None
    assert ws.storage.get(USER_KEY) is None
    assert ws.session.principal is None


def test_login_with_wrong_password(signed_in, make_workspace):
    async def scenario():
        first = await signed_in("manager")
        await first.aclose()
        async with make_workspace("other") as ws:
            await ws.login("manager-user", "wrong")

    with pytest.raises(AuthenticationError):
        asyncio.run(scenario())


def test_login_then_store_is_loaded(signed_in, make_workspace):
    async def scenario():
        first = await signed_in("manager")
        await first.store.add_product({"name": "Milk", "category": "Dairy", "price": 1.5, "stock": 20})
        await first.aclose()
        async with make_workspace("laptop") as ws:
            principal = await ws.login("manager-user", "secret")
            return principal, ws.store

    principal, store = asyncio.run(scenario())
    assert principal.role is Role.MANAGER
    assert [p.name for p in store.products] == ["Milk"]


def test_duplicate_username_is_rejected(signed_in):
    async def scenario():
        first = await signed_in("manager")
        await first.aclose()
        await signed_in("manager")

    with pytest.raises(InvalidDataError):
        asyncio.run(scenario())


def test_unreadable_session_file_is_ignored(make_workspace, tmp_path):
    (tmp_path / "broken.json").write_text("{not json")

    async def scenario():
        async with make_workspace("broken") as ws:
            return await ws.start()

    store = asyncio.run(scenario())
    assert store.products == ()
