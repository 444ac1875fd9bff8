# stockdash/session.py
import json
import logging
from pathlib import Path
from typing import Optional, Dict, Any

from pydantic import ValidationError

from .client import InventoryClient
from .errors import AuthenticationError, InventoryError
from .models import Principal, Role

log = logging.getLogger(__name__)

TOKEN_KEY = "token"
USER_KEY = "user"


class LocalStorage:
    """Tiny durable key/value file so a restart does not need a new login."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            return json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            log.warning("Ignoring unreadable session file %s", self.path)
            return {}

    def get(self, key: str) -> Any:
        return self._read().get(key)

    def set(self, key: str, value: Any) -> None:
        data = self._read()
        data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data), encoding="utf-8")

    def remove(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self.path.write_text(json.dumps(data), encoding="utf-8")


class SessionHolder:
    """Current principal plus the credential the client sends as a bearer token."""

    def __init__(self, client: InventoryClient, storage: LocalStorage):
        self.client = client
        self.storage = storage
        self._principal: Optional[Principal] = None

    @property
    def principal(self) -> Optional[Principal]:
        return self._principal

    @property
    def is_authenticated(self) -> bool:
        return self.credential() is not None

    @property
    def role(self) -> Role:
        return self._principal.role if self._principal else Role.USER

    def credential(self) -> Optional[str]:
        return self.storage.get(TOKEN_KEY) or None

    def _establish(self, payload: Dict[str, Any]) -> Principal:
        token = payload.get("token")
        if not token:
            raise AuthenticationError("No token in authentication response")
        try:
            principal = Principal.model_validate(payload.get("user") or {})
        except ValidationError as e:
            raise AuthenticationError("Malformed user in authentication response") from e
        self.storage.set(TOKEN_KEY, token)
        self.storage.set(USER_KEY, principal.model_dump(mode="json"))
        self._principal = principal
        log.info("Signed in as %s (%s)", principal.username, principal.role.value)
        return principal

    async def register(self, username: str, email: str, password: str, role: Optional[str] = None) -> Principal:
        return self._establish(await self.client.register(username, email, password, role))

    async def login(self, username: str, password: str) -> Principal:
        return self._establish(await self.client.login(username, password))

    async def restore(self) -> Optional[Principal]:
        """Pick up a stored session; a rejected token clears it."""
        if not self.is_authenticated:
            return None
        cached = self.storage.get(USER_KEY)
        if cached:
            try:
                self._principal = Principal.model_validate(cached)
                return self._principal
            except ValidationError:
                log.warning("Cached profile unreadable, fetching it again")
        try:
            self._principal = Principal.model_validate(await self.client.me())
            self.storage.set(USER_KEY, self._principal.model_dump(mode="json"))
        except ValidationError:
            log.error("Malformed profile from server")
        except AuthenticationError:
            log.warning("Stored session rejected, signing out")
            self.logout()
        except InventoryError as e:
            log.error("Could not restore session: %s", e)
        return self._principal

    def logout(self) -> None:
        self.storage.remove(TOKEN_KEY)
        self.storage.remove(USER_KEY)
        self._principal = None
