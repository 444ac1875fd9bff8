import asyncio
import tempfile
from pathlib import Path

import httpx

from inventory_service.main import app
from stockdash import Settings, Workspace


async def simulate_sale(store, product_id, qty, who):
    sale = await store.record_sale(product_id, qty)
    if sale:
        print(f"✅ {who} sold {qty} units (sale {sale.id[:8]}, total {sale.total_amount:.2f})")
    else:
        print(f"❌ {who} could not sell {qty} units")


async def main():
    settings = Settings(api_url="http://inventory.test", session_file=Path(tempfile.mkdtemp()) / "session.json")
    async with Workspace(settings, transport=httpx.ASGITransport(app=app)) as ws:
        ws.notifier.subscribe(lambda n: print(f"   [{n.title}] {n.message}"))
        await ws.client.reset()
        await ws.register("till", "till@example.com", "secret", role="manager")
        store = ws.store

        product = await store.add_product({"name": "Gaming Laptop", "category": "Other", "price": 999.0, "stock": 3})
        print(f"\n🖥️  Registered product: {product.name} (stock {product.stock})")

        # Both pass a naive stock check against stock=3; the store serializes them.
        print("\n⚡ Simulating concurrent sales...")
        await asyncio.gather(
            simulate_sale(store, product.id, 2, "register 1"),
            simulate_sale(store, product.id, 2, "register 2"),
        )

        final = store.get_product(product.id)
        print(f"\n📦 Final product state: stock={final.stock} sold={final.sales_count} status={final.status}")
        print(f"🧾 Sales recorded: {len(store.sales)}")


if __name__ == "__main__":
    asyncio.run(main())
