from .client import InventoryClient
from .config import Settings
from .errors import InventoryError
from .models import Product, SaleRecord, ProductDraft, ProductUpdate, Principal, Role
from .notify import Notification, Notifier
from .session import LocalStorage, SessionHolder
from .store import StockStore
from .workspace import Workspace

__all__ = [
    "InventoryClient", "Settings", "InventoryError",
    "Product", "SaleRecord", "ProductDraft", "ProductUpdate", "Principal", "Role",
    "Notification", "Notifier", "LocalStorage", "SessionHolder", "StockStore", "Workspace",
]
