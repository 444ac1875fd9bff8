# stockdash/models.py
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any, Literal, Tuple, get_args

from pydantic import (
    AliasChoices, BaseModel, ConfigDict, Field, ValidationError,
    computed_field, field_validator
)
from pydantic.alias_generators import to_camel

from .derive import product_status
from .errors import InvalidDataError

Category = Literal[
    "Groceries", "Dairy", "Bakery", "Meat", "Produce",
    "Beverages", "Snacks", "Household", "Other",
]
CATEGORIES: Tuple[str, ...] = get_args(Category)

ProductStatus = Literal["In Stock", "Low Stock", "Out of Stock"]
STATUSES: Tuple[str, ...] = get_args(ProductStatus)


class Role(str, Enum):
    MANAGER = "manager"
    STAFF = "staff"
    CASHIER = "cashier"
    USER = "user"

    @classmethod
    def parse(cls, value: Any) -> "Role":
        try:
            return cls(value)
        except ValueError:
            return cls.USER


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# ---------------------------
# Canonical records (read-only snapshot entries)
# ---------------------------
class _Record(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class Product(_Record):
    id: str = Field(min_length=1)
    name: str
    category: Category
    price: float
    stock: int
    description: str = ""
    sales_count: int = 0
    last_updated: datetime

    @field_validator("last_updated")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return _as_utc(v)

    @computed_field
    @property
    def status(self) -> ProductStatus:
        return product_status(self.stock)


class SaleRecord(_Record):
    id: str = Field(min_length=1)
    product_id: str
    product_name: str
    quantity: int = Field(gt=0)
    total_amount: float
    date: datetime

    @field_validator("date")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return _as_utc(v)


class Principal(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(validation_alias=AliasChoices("id", "_id"))
    username: str
    email: str = ""
    role: Role = Role.USER

    @field_validator("role", mode="before")
    @classmethod
    def _default_role(cls, v: Any) -> Role:
        return Role.parse(v)


# ---------------------------
# Mutation inputs
# ---------------------------
class ProductDraft(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str = Field(min_length=1)
    category: Category
    price: float = Field(gt=0)
    stock: int = Field(ge=0)
    description: str = ""

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class ProductUpdate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: Optional[str] = Field(default=None, min_length=1)
    category: Optional[Category] = None
    price: Optional[float] = Field(default=None, gt=0)
    stock: Optional[int] = Field(default=None, ge=0)
    description: Optional[str] = None

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_unset=True)


# ---------------------------
# Normalization of server payloads
# ---------------------------
_PRODUCT_FIELDS = (
    (("name",), "name"),
    (("category",), "category"),
    (("price",), "price"),
    (("stock",), "stock"),
    (("description",), "description"),
    (("salesCount", "sales_count"), "sales_count"),
)


def _first(raw: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if raw.get(key) is not None:
            return raw[key]
    return None


def normalize_product(raw: Dict[str, Any], received_at: datetime,
                      base: Optional[Product] = None) -> Product:
    """
    Map a server product record onto the canonical shape.

    Server ids arrive as `_id` or `id`, timestamps as `updatedAt` or
    `updated_at`. Fields the response omits are taken from `base` when given,
    otherwise defaulted (empty description, zero sales, `received_at`).
    Any `status` in the payload is ignored.
    """
    data: Dict[str, Any] = base.model_dump(exclude={"status"}) if base else {}
    data["id"] = str(_first(raw, "_id", "id") or data.get("id") or "")
    for keys, attr in _PRODUCT_FIELDS:
        value = _first(raw, *keys)
        if value is not None:
            data[attr] = value
    data.setdefault("description", "")
    data.setdefault("sales_count", 0)
    data["last_updated"] = _first(raw, "updatedAt", "updated_at", "lastUpdated") or received_at
    try:
        return Product.model_validate(data)
    except ValidationError as e:
        raise InvalidDataError(f"Malformed product record from server: {e.error_count()} invalid field(s)")


def normalize_sale(raw: Dict[str, Any], received_at: datetime,
                   defaults: Optional[Dict[str, Any]] = None) -> SaleRecord:
    data: Dict[str, Any] = dict(defaults or {})
    data["id"] = str(_first(raw, "_id", "id") or "")
    for keys, attr in (
        (("productId", "product_id"), "product_id"),
        (("productName", "product_name"), "product_name"),
        (("quantity",), "quantity"),
        (("totalAmount", "total_amount"), "total_amount"),
    ):
        value = _first(raw, *keys)
        if value is not None:
            data.setdefault(attr, value)
    if isinstance(data.get("product_id"), dict):
        data["product_id"] = str(_first(data["product_id"], "_id", "id"))
    data["date"] = _first(raw, "date", "createdAt", "created_at") or received_at
    try:
        return SaleRecord.model_validate(data)
    except ValidationError as e:
        raise InvalidDataError(f"Malformed sale record from server: {e.error_count()} invalid field(s)")
