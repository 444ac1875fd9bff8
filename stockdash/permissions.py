# stockdash/permissions.py
from enum import Enum
from typing import Dict, FrozenSet, Optional, Union

from .models import Role


class Action(str, Enum):
    VIEW = "view"
    RECORD_SALE = "record_sale"
    ADD_PRODUCT = "add_product"
    UPDATE_PRODUCT = "update_product"
    DELETE_PRODUCT = "delete_product"
    IMPORT_CSV = "import_csv"
    EXPORT_CSV = "export_csv"


_READ_ONLY = frozenset({Action.VIEW, Action.RECORD_SALE, Action.EXPORT_CSV})

# Advisory only: the inventory service rejects unauthorized writes on its own.
_POLICY: Dict[Role, FrozenSet[Action]] = {
    Role.MANAGER: frozenset(Action),
    Role.STAFF: _READ_ONLY | {Action.ADD_PRODUCT, Action.UPDATE_PRODUCT, Action.IMPORT_CSV},
    Role.CASHIER: _READ_ONLY,
    Role.USER: _READ_ONLY,
}

_DISPLAY_NAMES = {
    Role.MANAGER: "Manager",
    Role.STAFF: "Staff",
    Role.CASHIER: "Cashier",
    Role.USER: "User",
}


def can(role: Optional[Union[Role, str]], action: Union[Action, str]) -> bool:
    """Single capability check shared by the store and the CLI."""
    return Action(action) in _POLICY[Role.parse(role)]


def role_display_name(role: Optional[Union[Role, str]]) -> str:
    return _DISPLAY_NAMES[Role.parse(role)]
