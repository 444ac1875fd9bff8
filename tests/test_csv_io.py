# tests/test_csv_io.py
import asyncio
from datetime import date, datetime, timezone

from stockdash.csv_io import export_filename, export_products, import_products, parse_import
from stockdash.models import Product

STAMP = datetime(2024, 5, 20, 9, 15, tzinfo=timezone.utc)


def test_export_format():
    products = [
        Product(id="1", name="Milk", category="Dairy", price=1.5, stock=3,
                description='Whole, "fresh"', last_updated=STAMP),
    ]
    lines = export_products(products).splitlines()
    assert lines[0] == "Name,Category,Price,Stock,Status,Description,Last Updated"
    assert lines[1] == '"Milk","Dairy","1.5","3","Low Stock","Whole, ""fresh""","2024-05-20"'
    assert export_filename(date(2024, 5, 20)) == "stock-export-2024-05-20.csv"


def test_parse_skips_blank_short_and_bad_rows():
    text = "\n".join([
        "Name,Category,Price,Stock",
        "",
        '"Bread","Bakery","2.25","40"',
        "Cheese,Dairy,6",
        "Soap,Household,abc,3",
        "Toy,Toys,1,1",
        "  ",
        "Eggs,Dairy,3,12,ignored,columns",
    ])
    drafts, skipped = parse_import(text)
    assert [(d.name, d.category, d.price, d.stock) for d in drafts] == [
        ("Bread", "Bakery", 2.25, 40),
        ("Eggs", "Dairy", 3.0, 12),
    ]
    assert all(d.description == "" for d in drafts)
    assert skipped == 3


def test_header_only_file_has_no_rows():
    assert parse_import("Name,Category,Price,Stock\n") == ([], 0)
    assert parse_import("") == ([], 0)


def test_export_then_import_updates_in_place(signed_in, transport, notes):
    async def scenario():
        ws = await signed_in("manager")
        await ws.store.add_product({"name": "Milk", "category": "Dairy", "price": 1.5,
                                    "stock": 20, "description": "2L"})
        await ws.store.add_product({"name": "Bread", "category": "Bakery", "price": 2.0, "stock": 5})
        before = ws.store.products
        ws.notifier.subscribe(notes.append)
        result = await import_products(ws.store, export_products(before))
        await ws.aclose()
        return before, ws.store.products, result

    before, after, result = asyncio.run(scenario())
    assert (result.added, result.updated, result.skipped, result.failed) == (0, 2, 0, 0)
    assert len(transport.calls("POST", "/products")) == 2
    assert [(p.id, p.name, p.category, p.price, p.stock, p.description) for p in after] == [
        (p.id, p.name, p.category, p.price, p.stock, p.description) for p in before
    ]
    assert notes[-1].title == "CSV Import Complete"
    assert notes[-1].message == "0 products added, 2 products updated."


def test_import_adds_unknown_names(signed_in):
    text = "Name,Category,Price,Stock\nMilk,Dairy,1.5,7\nApples,Produce,0.5,100\n"

    async def scenario():
        ws = await signed_in("staff")
        await ws.store.add_product({"name": "Milk", "category": "Dairy", "price": 1.5, "stock": 20})
        result = await import_products(ws.store, text)
        await ws.aclose()
        return ws.store, result

    store, result = asyncio.run(scenario())
    assert (result.added, result.updated) == (1, 1)
    assert store.find_by_name("Milk").stock == 7
    assert store.find_by_name("Apples").status == "In Stock"


def test_quoted_and_padded_names_survive_round_trip(signed_in):
    async def scenario():
        ws = await signed_in("manager")
        await ws.store.add_product({"name": 'Crate "A"', "category": "Other", "price": 9.0, "stock": 4})
        await ws.store.add_product({"name": " Padded", "category": "Household", "price": 3.0, "stock": 15})
        result = await import_products(ws.store, export_products(ws.store.products))
        await ws.aclose()
        return ws.store, result

    store, result = asyncio.run(scenario())
    assert (result.added, result.updated, result.skipped) == (0, 2, 0)
    assert [p.name for p in store.products] == ['Crate "A"', " Padded"]


def test_parse_skips_numbers_too_large_to_convert():
    text = "Name,Category,Price,Stock\nMilk,Dairy,1.5,1e400\nEggs,Dairy,3,inf\nBread,Bakery,2,5\n"
    drafts, skipped = parse_import(text)
    assert [d.name for d in drafts] == ["Bread"]
    assert skipped == 2
