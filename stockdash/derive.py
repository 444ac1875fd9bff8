# stockdash/derive.py
"""
Pure derivations over a product/sale snapshot.

Nothing here touches the network or mutates its inputs; the store and the
CLI call these after every transition instead of storing derived values.
"""
from datetime import datetime, date, timedelta, timezone
from typing import Optional, Dict, List, Iterable, Sequence, TYPE_CHECKING

from pydantic import BaseModel

if TYPE_CHECKING:
    from .models import Product, SaleRecord

LOW_STOCK_THRESHOLD = 10


def product_status(stock: int) -> str:
    if stock <= 0:
        return "Out of Stock"
    if stock <= LOW_STOCK_THRESHOLD:
        return "Low Stock"
    return "In Stock"


# ---------------------------
# Totals
# ---------------------------
def total_revenue(sales: Iterable["SaleRecord"]) -> float:
    return sum((s.total_amount for s in sales), 0.0)


def total_sold(sales: Iterable["SaleRecord"]) -> int:
    return sum(s.quantity for s in sales)


def total_stock(products: Iterable["Product"]) -> int:
    return sum(p.stock for p in products)


def find_product(products: Iterable["Product"], product_id: str) -> Optional["Product"]:
    for p in products:
        if p.id == product_id:
            return p
    return None


# ---------------------------
# Chart aggregations
# ---------------------------
def stock_by_category(products: Iterable["Product"]) -> Dict[str, int]:
    out: Dict[str, int] = {}
    for p in products:
        out[p.category] = out.get(p.category, 0) + p.stock
    return out


class DailySales(BaseModel):
    day: date
    quantity: int = 0
    revenue: float = 0.0

    @property
    def label(self) -> str:
        return self.day.strftime("%b %d")


def sales_by_day(sales: Iterable["SaleRecord"], days: int,
                 now: Optional[datetime] = None) -> List[DailySales]:
    """
    Bucket sales per calendar day for the last `days` + 1 days, today included.

    Buckets come back oldest first. Sales dated outside the window are
    dropped. Days are taken in the timezone of `now` (UTC by default).
    """
    if days < 0:
        raise ValueError("days must be >= 0")
    now = now or datetime.now(timezone.utc)
    today = now.date()
    buckets: Dict[date, DailySales] = {}
    for i in range(days, -1, -1):
        d = today - timedelta(days=i)
        buckets[d] = DailySales(day=d)

    for s in sales:
        sale_day = s.date.astimezone(now.tzinfo).date() if now.tzinfo else s.date.date()
        bucket = buckets.get(sale_day)
        if bucket is None:
            continue
        bucket.quantity += s.quantity
        bucket.revenue += s.total_amount
    return list(buckets.values())


# ---------------------------
# Dashboard helpers
# ---------------------------
def low_stock_products(products: Iterable["Product"]) -> List["Product"]:
    return [p for p in products if p.status == "Low Stock"]


def out_of_stock_products(products: Iterable["Product"]) -> List["Product"]:
    return [p for p in products if p.status == "Out of Stock"]


def top_selling(products: Iterable["Product"], limit: int = 5) -> List["Product"]:
    return sorted(products, key=lambda p: p.sales_count, reverse=True)[:limit]


def categories(products: Iterable["Product"]) -> List[str]:
    seen: List[str] = []
    for p in products:
        if p.category not in seen:
            seen.append(p.category)
    return seen


def filter_products(products: Iterable["Product"], status: Optional[str] = None,
                    category: Optional[str] = None, query: Optional[str] = None) -> List["Product"]:
    """`None` or "All" disables a filter; `query` matches name or description."""
    term = (query or "").lower()
    out = []
    for p in products:
        if status and status != "All" and p.status != status:
            continue
        if category and category != "All" and p.category != category:
            continue
        if term and term not in p.name.lower() and term not in p.description.lower():
            continue
        out.append(p)
    return out


SORT_KEYS = ("name", "category", "price", "stock", "status", "sales_count", "last_updated")


def sort_products(products: Sequence["Product"], key: str, descending: bool = False) -> List["Product"]:
    if key not in SORT_KEYS:
        raise ValueError(f"cannot sort by {key!r}")
    return sorted(products, key=lambda p: getattr(p, key), reverse=descending)
