#!/usr/bin/env python
# Walk through a session against a running service (`python cli.py serve`).
import asyncio
import tempfile
import uuid
from pathlib import Path

from rich import print

from stockdash import Settings, Workspace
from stockdash.logger import setup_logger


async def main():
    setup_logger()
    settings = Settings(
        api_url="http://127.0.0.1:5000",
        session_file=Path(tempfile.mkdtemp()) / "session.json",
    )
    async with Workspace(settings) as ws:
        ws.notifier.subscribe(lambda n: print(f"[cyan]{n.title}:[/cyan] {n.message}"))

        # -----------------------------
        # Reset and sign in as a manager
        # -----------------------------
        print("Resetting service...")
        await ws.client.reset()
        await ws.register(f"manager-{uuid.uuid4().hex[:6]}", "manager@example.com", "secret", role="manager")
        store = ws.store

        # -----------------------------
        # Add products
        # -----------------------------
        print("\nAdding products...")
        milk = await store.add_product({"name": "Milk", "category": "Dairy", "price": 1.5, "stock": 40})
        bread = await store.add_product({"name": "Bread", "category": "Bakery", "price": 2.25, "stock": 12})
        await store.add_product({"name": "Cheese", "category": "Dairy", "price": 6.0, "stock": 8})

        # -----------------------------
        # Record sales
        # -----------------------------
        print("\nRecording sales...")
        await store.record_sale(milk.id, 5)
        await store.record_sale(bread.id, 3)
        await store.record_sale(bread.id, 50)  # rejected locally

        # -----------------------------
        # Derived reads
        # -----------------------------
        print("\nProducts:")
        for p in store.products:
            print(f"  {p.name:<8} stock={p.stock:<3} sold={p.sales_count:<3} {p.status}")
        print("Total revenue:", store.total_revenue())
        print("Units sold:", store.total_sold())
        print("Stock by category:", store.stock_by_category())
        print("Last 7 days:", [(b.label, b.quantity) for b in store.sales_by_day(7)])

        # -----------------------------
        # Delete keeps the sale history
        # -----------------------------
        print("\nDeleting Bread...")
        await store.delete_product(bread.id)
        print("Sales:", [(s.product_name, s.quantity) for s in store.sales])

        ws.logout()


if __name__ == "__main__":
    asyncio.run(main())
