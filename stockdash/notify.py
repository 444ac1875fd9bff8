# stockdash/notify.py
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from .errors import InventoryError

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notification:
    title: str
    message: str
    variant: str = "default"  # "default" | "destructive"
    kind: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.variant == "destructive"


Listener = Callable[[Notification], None]


class Notifier:
    """Side channel from the store to whatever is presenting it (toasts, status bar)."""

    def __init__(self):
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return _unsubscribe

    def clear(self) -> None:
        self._listeners.clear()

    def success(self, title: str, message: str) -> Notification:
        return self._emit(Notification(title, message))

    def failure(self, error: InventoryError, message: Optional[str] = None) -> Notification:
        return self._emit(Notification(
            error.title, message or error.message, variant="destructive", kind=error.kind
        ))

    def _emit(self, n: Notification) -> Notification:
        for listener in list(self._listeners):
            try:
                listener(n)
            except Exception:
                log.exception("notification listener failed")
        return n
