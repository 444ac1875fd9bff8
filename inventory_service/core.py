import hashlib
import uuid
from datetime import datetime, timezone
from typing import Optional, Dict, Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Category = Literal[
    "Groceries", "Dairy", "Bakery", "Meat", "Produce",
    "Beverages", "Snacks", "Household", "Other",
]
RoleName = Literal["manager", "staff", "cashier"]


class RegisterIn(BaseModel):
    username: str = Field(min_length=1)
    email: str
    password: str = Field(min_length=1)
    role: Optional[RoleName] = "cashier"


class LoginIn(BaseModel):
    username: str
    password: str


class ProductIn(BaseModel):
    name: str = Field(min_length=1)
    category: Category
    price: float = Field(gt=0)
    stock: int = Field(ge=0)
    description: Optional[str] = ""


class ProductPatch(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    category: Optional[Category] = None
    price: Optional[float] = Field(default=None, gt=0)
    stock: Optional[int] = Field(default=None, ge=0)
    description: Optional[str] = None


class SaleIn(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    product_id: str
    quantity: int


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _hash_password(password: str, salt: str) -> str:
    return hashlib.sha256(f"{salt}:{password}".encode("utf-8")).hexdigest()


def _stock_status(stock: int) -> str:
    if stock <= 0:
        return "Out of Stock"
    if stock <= 10:
        return "Low Stock"
    return "In Stock"


def _make_user_dict(payload: RegisterIn) -> Dict[str, Any]:
    salt = uuid.uuid4().hex
    return {
        "_id": uuid.uuid4().hex,
        "username": payload.username,
        "email": payload.email,
        "role": payload.role or "cashier",
        "salt": salt,
        "password_hash": _hash_password(payload.password, salt),
    }


def _public_user(user: Dict[str, Any]) -> Dict[str, Any]:
    return {"id": user["_id"], "username": user["username"], "email": user["email"], "role": user["role"]}


def _make_product_dict(product_id: str, p: ProductIn) -> Dict[str, Any]:
    now = _now_iso()
    return {
        "_id": product_id,
        "name": p.name,
        "category": p.category,
        "price": p.price,
        "stock": p.stock,
        "description": p.description or "",
        "salesCount": 0,
        "status": _stock_status(p.stock),
        "createdAt": now,
        "updatedAt": now,
    }
