import asyncio
from typing import Dict, Any

# This file holds all the in-memory data stores and concurrency locks.

USERS: Dict[str, Dict[str, Any]] = {}
TOKENS: Dict[str, str] = {}
PRODUCTS: Dict[str, Dict[str, Any]] = {}
SALES: Dict[str, Dict[str, Any]] = {}
_LOCKS: Dict[str, asyncio.Lock] = {}


def _get_lock(key: str) -> asyncio.Lock:
    if key not in _LOCKS:
        _LOCKS[key] = asyncio.Lock()
    return _LOCKS[key]


def reset_all() -> None:
    USERS.clear()
    TOKENS.clear()
    PRODUCTS.clear()
    SALES.clear()
    _LOCKS.clear()
