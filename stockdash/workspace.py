# stockdash/workspace.py
import logging
from typing import Optional

import httpx

from .client import InventoryClient
from .config import Settings
from .models import Principal
from .notify import Notifier
from .session import LocalStorage, SessionHolder, TOKEN_KEY
from .store import StockStore

log = logging.getLogger(__name__)


class Workspace:
    """
    Wires client, session, notifier and store for one dashboard run.

    The store is created when a session starts and torn down on logout;
    consumers get it from here instead of from module globals.
    """

    def __init__(self, settings: Optional[Settings] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings or Settings.from_env()
        self.storage = LocalStorage(self.settings.session_file)
        self.client = InventoryClient(
            self.settings.api_url,
            token_provider=lambda: self.storage.get(TOKEN_KEY),
            timeout=self.settings.timeout,
            transport=transport,
        )
        self.session = SessionHolder(self.client, self.storage)
        self.notifier = Notifier()
        self.store: Optional[StockStore] = None

    async def start(self) -> StockStore:
        """Restore any stored session and activate a fresh store."""
        await self.session.restore()
        return await self._open_store()

    async def _open_store(self) -> StockStore:
        if self.store is not None:
            self.store.teardown()
        self.store = StockStore(self.client, self.session, self.notifier)
        await self.store.activate()
        return self.store

    async def login(self, username: str, password: str) -> Principal:
        principal = await self.session.login(username, password)
        await self._open_store()
        return principal

    async def register(self, username: str, email: str, password: str,
                       role: Optional[str] = None) -> Principal:
        principal = await self.session.register(username, email, password, role)
        await self._open_store()
        return principal

    def logout(self) -> None:
        if self.store is not None:
            self.store.teardown()
            self.store = None
        self.session.logout()
        log.info("Signed out")

    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> "Workspace":
        return self

    async def __aexit__(self, *exc):
        await self.aclose()
