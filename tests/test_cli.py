# tests/test_cli.py
import asyncio

from cli import export_csv_file, import_csv_file, menu_options


def labels(role):
    return [label for _, label in menu_options(role)]


def test_menu_offers_csv_by_role():
    assert "📤 Export CSV" in labels("manager")
    assert "📥 Import CSV" in labels("manager")
    assert "📥 Import CSV" in labels("staff")
    assert "📤 Export CSV" in labels("cashier")
    assert "📥 Import CSV" not in labels("cashier")
    assert "🗑️ Delete product" not in labels("staff")


def test_menu_keys_are_unique():
    keys = [k for k, _ in menu_options("manager")]
    assert len(keys) == len(set(keys))


def test_export_then_import_files(signed_in, tmp_path):
    out = tmp_path / "stock.csv"

    async def scenario():
        ws = await signed_in("manager")
        await ws.store.add_product({"name": "Milk", "category": "Dairy", "price": 1.5, "stock": 20})
        written = export_csv_file(list(ws.store.products), str(out))
        result = await import_csv_file(ws.store, str(out))
        missing = await import_csv_file(ws.store, str(tmp_path / "nope.csv"))
        await ws.aclose()
        return written, result, missing

    written, result, missing = asyncio.run(scenario())
    assert written == out
    assert out.read_text(encoding="utf-8").startswith("Name,Category,Price,Stock")
    assert (result.added, result.updated) == (0, 1)
    assert missing is None


def test_export_to_unwritable_path(tmp_path):
    assert export_csv_file([], str(tmp_path / "no-such-dir" / "out.csv")) is None
