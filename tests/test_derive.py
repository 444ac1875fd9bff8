# tests/test_derive.py
from datetime import datetime, timedelta, timezone

import pytest

from stockdash import derive
from stockdash.models import Product, SaleRecord

NOW = datetime(2024, 5, 20, 15, 30, tzinfo=timezone.utc)


def product(pid, stock, category="Dairy", name=None, sales_count=0, price=2.0, description=""):
    return Product(id=pid, name=name or f"p{pid}", category=category, price=price, stock=stock,
                   sales_count=sales_count, description=description, last_updated=NOW)


def sale(sid, quantity, total, when, product_id="1"):
    return SaleRecord(id=sid, product_id=product_id, product_name="Milk", quantity=quantity,
                      total_amount=total, date=when)


@pytest.mark.parametrize("stock,status", [
    (-3, "Out of Stock"), (0, "Out of Stock"), (1, "Low Stock"),
    (10, "Low Stock"), (11, "In Stock"), (500, "In Stock"),
])
def test_status_thresholds(stock, status):
    assert derive.product_status(stock) == status
    assert product("1", stock).status == status


def test_totals():
    sales = [sale("a", 2, 5.0, NOW), sale("b", 3, 7.5, NOW)]
    products = [product("1", 4), product("2", 6)]
    assert derive.total_revenue(sales) == pytest.approx(12.5)
    assert derive.total_sold(sales) == 5
    assert derive.total_stock(products) == 10
    assert derive.total_revenue([]) == 0


def test_find_product():
    products = [product("1", 4), product("2", 6)]
    assert derive.find_product(products, "2").stock == 6
    assert derive.find_product(products, "nope") is None


def test_stock_by_category_ignores_order():
    a = [product("1", 5, "Dairy"), product("2", 3, "Dairy"), product("3", 10, "Bakery")]
    b = list(reversed(a))
    assert derive.stock_by_category(a) == {"Dairy": 8, "Bakery": 10}
    assert derive.stock_by_category(b) == {"Dairy": 8, "Bakery": 10}


def test_sales_by_day_window_edges():
    sales = [
        sale("old", 4, 8.0, NOW - timedelta(days=8)),
        sale("today", 2, 4.0, NOW - timedelta(hours=1)),
        sale("edge", 1, 2.0, NOW - timedelta(days=7)),
    ]
    buckets = derive.sales_by_day(sales, 7, now=NOW)

    assert len(buckets) == 8
    assert [b.day for b in buckets] == sorted(b.day for b in buckets)
    assert buckets[-1].day == NOW.date()
    assert buckets[-1].quantity == 2 and buckets[-1].revenue == pytest.approx(4.0)
    assert buckets[0].day == (NOW - timedelta(days=7)).date()
    assert buckets[0].quantity == 1
    assert sum(b.quantity for b in buckets) == 3


def test_sales_by_day_is_order_independent():
    sales = [sale(str(i), 1, 1.0, NOW - timedelta(days=i % 3)) for i in range(9)]
    forward = derive.sales_by_day(sales, 3, now=NOW)
    backward = derive.sales_by_day(list(reversed(sales)), 3, now=NOW)
    assert [(b.day, b.quantity) for b in forward] == [(b.day, b.quantity) for b in backward]
    assert [b.quantity for b in forward] == [0, 3, 3, 3]


def test_sales_by_day_labels():
    buckets = derive.sales_by_day([], 0, now=NOW)
    assert len(buckets) == 1
    assert buckets[0].label == "May 20"


def test_dashboard_helpers():
    products = [
        product("1", 0, name="Gone", sales_count=9),
        product("2", 5, name="Few", sales_count=20),
        product("3", 50, "Bakery", name="Plenty", sales_count=1, description="fresh loaf"),
    ]
    assert [p.name for p in derive.low_stock_products(products)] == ["Few"]
    assert [p.name for p in derive.out_of_stock_products(products)] == ["Gone"]
    assert [p.name for p in derive.top_selling(products, 2)] == ["Few", "Gone"]
    assert derive.categories(products) == ["Dairy", "Bakery"]


def test_filter_and_sort():
    products = [
        product("1", 0, name="Milk"),
        product("2", 50, "Bakery", name="Bread", description="Whole wheat"),
        product("3", 5, name="Butter"),
    ]
    assert [p.name for p in derive.filter_products(products, status="Low Stock")] == ["Butter"]
    assert [p.name for p in derive.filter_products(products, category="All", query="WHEAT")] == ["Bread"]
    assert len(derive.filter_products(products, status="All", category="All")) == 3
    assert [p.name for p in derive.sort_products(products, "stock", descending=True)] == ["Bread", "Butter", "Milk"]
    with pytest.raises(ValueError):
        derive.sort_products(products, "id")
