# inventory_service/main.py
import logging
import uuid
from typing import Optional, Dict, Any, List

from fastapi import Depends, FastAPI, Header, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from .core import (
    RegisterIn, LoginIn, ProductIn, ProductPatch, SaleIn,
    _hash_password, _make_product_dict, _make_user_dict, _now_iso,
    _public_user, _stock_status
)
from .database import USERS, TOKENS, PRODUCTS, SALES, _get_lock, reset_all

log = logging.getLogger(__name__)

app = FastAPI(title="inventory-service (in-memory dev double)")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------
# Auth helpers
# ---------------------------
def _issue_token(user: Dict[str, Any]) -> Dict[str, Any]:
    token = uuid.uuid4().hex
    TOKENS[token] = user["_id"]
    return {"token": token, "user": _public_user(user)}


async def current_user(authorization: Optional[str] = Header(None)) -> Dict[str, Any]:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="missing bearer token")
    user_id = TOKENS.get(authorization[len("Bearer "):])
    user = USERS.get(user_id) if user_id else None
    if not user:
        raise HTTPException(status_code=401, detail="invalid or expired token")
    return user


def require_role(*roles: str):
    async def _check(user: Dict[str, Any] = Depends(current_user)) -> Dict[str, Any]:
        if user["role"] not in roles:
            raise HTTPException(status_code=403, detail=f"role '{user['role']}' is not allowed to do this")
        return user
    return _check


# ---------------------------
# Auth endpoints
# ---------------------------
@app.post("/auth/register", status_code=201)
async def register(payload: RegisterIn):
    if any(u["username"] == payload.username for u in USERS.values()):
        raise HTTPException(status_code=400, detail="username already taken")
    user = _make_user_dict(payload)
    USERS[user["_id"]] = user
    return _issue_token(user)


@app.post("/auth/login")
async def login(payload: LoginIn):
    for user in USERS.values():
        if user["username"] == payload.username:
            if user["password_hash"] == _hash_password(payload.password, user["salt"]):
                return _issue_token(user)
            break
    log.info("rejected login for %s", payload.username)
    raise HTTPException(status_code=401, detail="invalid credentials")


@app.get("/auth/me")
async def me(user: Dict[str, Any] = Depends(current_user)):
    return _public_user(user)


# ---------------------------
# Product endpoints
# ---------------------------
@app.get("/products")
async def list_products(user: Dict[str, Any] = Depends(current_user)) -> List[Dict[str, Any]]:
    return list(PRODUCTS.values())


@app.get("/products/{product_id}")
async def get_product(product_id: str, user: Dict[str, Any] = Depends(current_user)):
    p = PRODUCTS.get(product_id)
    if not p:
        raise HTTPException(status_code=404, detail="product not found")
    return p


@app.post("/products", status_code=201)
async def create_product(payload: ProductIn, user: Dict[str, Any] = Depends(require_role("manager", "staff"))):
    pid = uuid.uuid4().hex
    PRODUCTS[pid] = _make_product_dict(pid, payload)
    return PRODUCTS[pid]


@app.put("/products/{product_id}")
async def update_product(product_id: str, payload: ProductPatch,
                         user: Dict[str, Any] = Depends(require_role("manager", "staff"))):
    async with _get_lock(f"product:{product_id}"):
        p = PRODUCTS.get(product_id)
        if not p:
            raise HTTPException(status_code=404, detail="product not found")
        p.update(payload.model_dump(exclude_unset=True, exclude_none=True))
        p["status"] = _stock_status(p["stock"])
        p["updatedAt"] = _now_iso()
        return p


@app.delete("/products/{product_id}")
async def delete_product(product_id: str, user: Dict[str, Any] = Depends(require_role("manager"))):
    async with _get_lock(f"product:{product_id}"):
        if PRODUCTS.pop(product_id, None) is None:
            raise HTTPException(status_code=404, detail="product not found")
    # sales referencing the product are kept
    return {"message": "product removed"}


# ---------------------------
# Sales endpoints
# ---------------------------
@app.get("/sales")
async def list_sales(user: Dict[str, Any] = Depends(current_user)) -> List[Dict[str, Any]]:
    return list(SALES.values())


@app.post("/sales", status_code=201)
async def record_sale(payload: SaleIn, user: Dict[str, Any] = Depends(current_user)):
    if payload.quantity <= 0:
        raise HTTPException(status_code=400, detail="quantity must be > 0")

    async with _get_lock(f"product:{payload.product_id}"):
        prod = PRODUCTS.get(payload.product_id)
        if not prod:
            raise HTTPException(status_code=404, detail="product not found")
        if prod["stock"] < payload.quantity:
            raise HTTPException(status_code=409, detail="insufficient_stock")

        # Commit
        prod["stock"] -= payload.quantity
        prod["salesCount"] = prod.get("salesCount", 0) + payload.quantity
        prod["status"] = _stock_status(prod["stock"])
        prod["updatedAt"] = _now_iso()

        sale_id = uuid.uuid4().hex
        sale = {
            "_id": sale_id,
            "productId": payload.product_id,
            "productName": prod["name"],
            "quantity": payload.quantity,
            "totalAmount": prod["price"] * payload.quantity,
            "date": _now_iso(),
        }
        SALES[sale_id] = sale
        return sale


# ---------------------------
# Utility: reset (for tests/demo)
# ---------------------------
@app.post("/reset")
async def reset():
    reset_all()
    return {"status": "reset"}
