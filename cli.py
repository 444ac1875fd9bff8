# cli.py
import argparse
import asyncio
import sys
from datetime import date
from pathlib import Path
from typing import List, Optional, Tuple

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, FloatPrompt, IntPrompt, Prompt
from rich.table import Table

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.styles import Style as PromptStyle

from stockdash import Workspace, Settings, StockStore, Product, SaleRecord, Notification
from stockdash.csv_io import ImportResult, export_filename, export_products, import_products
from stockdash.derive import SORT_KEYS
from stockdash.errors import InventoryError
from stockdash.logger import setup_logger
from stockdash.models import CATEGORIES, STATUSES
from stockdash.permissions import Action, can, role_display_name

console = Console()

custom_style = PromptStyle.from_dict({
    'completion-menu.completion': 'bg:#008888 #ffffff',
    'completion-menu.completion.current': 'bg:#00aaaa #000000',
})

STATUS_STYLE = {"In Stock": "green", "Low Stock": "yellow", "Out of Stock": "red"}


# ---------------------------
# Display helpers
# ---------------------------
def show_notification(n: Notification):
    style = "red" if n.is_error else "green"
    console.print(Panel.fit(f"[{style}]{n.message}[/{style}]", title=n.title, border_style=style))
    if n.kind == "authentication":
        console.print("[yellow]Your session has ended. Run `cli.py login` to sign in again.[/yellow]")


def show_products(products: List[Product]):
    if not products:
        console.print("[italic yellow]No products found[/italic yellow]")
        return

    table = Table(title="📦 Stock Overview", box=box.ROUNDED, header_style="bold cyan",
                  title_style="bold magenta", show_lines=True)
    table.add_column("ID", style="dim", width=12)
    table.add_column("Name", style="bold", width=20)
    table.add_column("Category", width=12)
    table.add_column("Price", justify="right", width=10)
    table.add_column("Stock", justify="right", width=7)
    table.add_column("Status", width=13)
    table.add_column("Sold", justify="right", width=6)
    table.add_column("Updated", width=11)

    for p in products:
        style = STATUS_STYLE.get(p.status, "white")
        table.add_row(
            p.id[:12], p.name, p.category, f"{p.price:.2f}", str(p.stock),
            f"[{style}]{p.status}[/{style}]", str(p.sales_count),
            p.last_updated.date().isoformat(),
        )
    console.print(table)


def show_sales(sales: List[SaleRecord]):
    if not sales:
        console.print("[italic yellow]No sales recorded[/italic yellow]")
        return

    table = Table(title="🧾 Sales History", box=box.ROUNDED, header_style="bold yellow")
    table.add_column("Date", width=17)
    table.add_column("Product", width=22)
    table.add_column("Qty", justify="right", width=6)
    table.add_column("Total", justify="right", width=10)
    for s in sorted(sales, key=lambda s: s.date, reverse=True):
        table.add_row(s.date.strftime("%Y-%m-%d %H:%M"), s.product_name, str(s.quantity), f"{s.total_amount:.2f}")
    console.print(table)


def show_dashboard(store: StockStore):
    stats = Table.grid(padding=(0, 4))
    for _ in range(4):
        stats.add_column(justify="center")
    stats.add_row("[dim]Total Products[/dim]", "[dim]Total Stock[/dim]",
                  "[dim]Units Sold[/dim]", "[dim]Revenue[/dim]")
    stats.add_row(f"[bold]{len(store.products)}[/bold]", f"[bold]{store.total_stock()}[/bold]",
                  f"[bold]{store.total_sold()}[/bold]", f"[bold green]{store.total_revenue():.2f}[/bold green]")
    console.print(Panel(stats, title="📊 Dashboard", border_style="blue"))

    low, out = store.low_stock_products(), store.out_of_stock_products()
    if low or out:
        lines = [f"[yellow]Low stock:[/yellow] {p.name} ({p.stock})" for p in low]
        lines += [f"[red]Out of stock:[/red] {p.name}" for p in out]
        console.print(Panel("\n".join(lines), title="⚠️ Stock Alerts", border_style="yellow"))

    top = Table(title="Top Selling Products", box=box.SIMPLE)
    top.add_column("Product")
    top.add_column("Sold", justify="right")
    for p in store.top_selling(5):
        top.add_row(p.name, str(p.sales_count))
    console.print(top)


def show_analytics(store: StockStore, days: int):
    cat = Table(title="Stock by Category", box=box.ROUNDED, header_style="bold cyan")
    cat.add_column("Category")
    cat.add_column("Units", justify="right")
    total = store.total_stock() or 1
    for name, units in store.stock_by_category().items():
        cat.add_row(name, f"{units} ({units * 100 / total:.0f}%)")
    console.print(cat)

    trend = Table(title=f"Sales, last {days} days", box=box.ROUNDED, header_style="bold green")
    trend.add_column("Day")
    trend.add_column("Units", justify="right")
    trend.add_column("Revenue", justify="right")
    for bucket in store.sales_by_day(days):
        trend.add_row(bucket.label, str(bucket.quantity), f"{bucket.revenue:.2f}")
    console.print(trend)


def resolve_product(store: StockStore, ref: str) -> Optional[Product]:
    """Accept an id, an id prefix as shown in tables, or an exact name."""
    product = store.get_product(ref) or store.find_by_name(ref)
    if product is None:
        matches = [p for p in store.products if p.id.startswith(ref)]
        product = matches[0] if len(matches) == 1 else None
    if product is None:
        console.print(f"[red]No product matches '{ref}'[/red]")
    return product


def export_csv_file(products: List[Product], out: Optional[str] = None) -> Optional[Path]:
    path = Path(out or export_filename(date.today()))
    try:
        path.write_text(export_products(products), encoding="utf-8")
    except OSError as e:
        console.print(f"[red]Cannot write {path}: {e.strerror or e}[/red]")
        return None
    console.print(f"[green]Exported {len(products)} products to {path}[/green]")
    return path


async def import_csv_file(store: StockStore, file: str) -> Optional[ImportResult]:
    try:
        text = Path(file).read_text(encoding="utf-8")
    except OSError as e:
        console.print(f"[red]Cannot read {file}: {e.strerror or e}[/red]")
        return None
    return await import_products(store, text)


# ---------------------------
# Commands
# ---------------------------
async def run_command(args, ws: Workspace) -> int:
    if args.command == "login":
        password = args.password or Prompt.ask("Password", password=True)
        principal = await ws.login(args.username, password)
        console.print(f"[green]Signed in as {principal.username} ({role_display_name(principal.role)})[/green]")
        return 0
    if args.command == "register":
        password = args.password or Prompt.ask("Password", password=True)
        principal = await ws.register(args.username, args.email, password, args.role)
        console.print(f"[green]Registered {principal.username} ({role_display_name(principal.role)})[/green]")
        return 0
    if args.command == "logout":
        ws.logout()
        console.print("[green]Signed out[/green]")
        return 0

    store = await ws.start()
    if not ws.session.is_authenticated:
        console.print("[red]Not signed in. Run `cli.py login` first.[/red]")
        return 1

    if args.command == "whoami":
        p = ws.session.principal
        console.print(f"{p.username} <{p.email}> - {role_display_name(p.role)}" if p else "unknown user")
    elif args.command == "dashboard":
        show_dashboard(store)
    elif args.command == "products":
        products = store.filter_products(args.status, args.category, args.search)
        if args.sort:
            products = store.sort_products(args.sort, args.desc, products)
        show_products(products)
    elif args.command == "sales":
        show_sales(list(store.sales))
    elif args.command == "analytics":
        show_analytics(store, args.days)
    elif args.command == "add-product":
        await store.add_product({"name": args.name, "category": args.category, "price": args.price,
                                 "stock": args.stock, "description": args.description})
    elif args.command == "update-product":
        product = resolve_product(store, args.product)
        changes = {k: v for k, v in (("name", args.name), ("category", args.category), ("price", args.price),
                                     ("stock", args.stock), ("description", args.description)) if v is not None}
        if product:
            await store.update_product(product.id, changes)
    elif args.command == "delete-product":
        product = resolve_product(store, args.product)
        if product and (args.yes or Confirm.ask(f"Delete {product.name}?")):
            await store.delete_product(product.id)
    elif args.command == "sell":
        product = resolve_product(store, args.product)
        if product:
            await store.record_sale(product.id, args.qty)
    elif args.command == "export":
        products = store.filter_products(args.status, args.category, args.search)
        if export_csv_file(products, args.out) is None:
            return 1
    elif args.command == "import":
        if not can(ws.session.role, Action.IMPORT_CSV):
            console.print("[red]Your role cannot import products[/red]")
            return 1
        if await import_csv_file(store, args.file) is None:
            return 1
    elif args.command == "shell":
        await interactive(ws, store)
    return 0


# ---------------------------
# Interactive menu
# ---------------------------
MENU_OPTIONS = [
    ("1", "📊 Dashboard", Action.VIEW),
    ("2", "📦 Stock overview", Action.VIEW),
    ("3", "🧾 Sales history", Action.VIEW),
    ("4", "📈 Analytics", Action.VIEW),
    ("5", "🛒 Record sale", Action.RECORD_SALE),
    ("6", "➕ Add product", Action.ADD_PRODUCT),
    ("7", "✏️ Update stock", Action.UPDATE_PRODUCT),
    ("8", "🗑️ Delete product", Action.DELETE_PRODUCT),
    ("9", "📤 Export CSV", Action.EXPORT_CSV),
    ("10", "📥 Import CSV", Action.IMPORT_CSV),
    ("11", "🔄 Refresh", Action.VIEW),
]


def menu_options(role) -> List[Tuple[str, str]]:
    return [(k, label) for k, label, action in MENU_OPTIONS if can(role, action)]


def _product_completer(store: StockStore) -> WordCompleter:
    return WordCompleter([p.name for p in store.products] + [p.id for p in store.products], ignore_case=True)


async def interactive(ws: Workspace, store: StockStore):
    ps = PromptSession(style=custom_style)
    role = ws.session.role
    allowed = menu_options(role)

    while True:
        menu = Table.grid(padding=(0, 2))
        menu.add_column(style="bold cyan", width=4)
        menu.add_column(width=30)
        for key, label in allowed + [("q", "👋 Quit")]:
            menu.add_row(key, label)
        console.print(Panel(menu, title=f"📋 Menu - {role_display_name(role)}", border_style="yellow"))

        choice = (await ps.prompt_async(
            "Choose an option: ", completer=WordCompleter([k for k, _ in allowed] + ["q"])
        )).strip().lower()
        if choice not in {k for k, _ in allowed} | {"q", "quit", "exit"}:
            console.print("[red]Unknown option[/red]")
            continue

        if choice == "1":
            show_dashboard(store)
        elif choice == "2":
            status = Prompt.ask("Status", choices=["All", *STATUSES], default="All")
            show_products(store.filter_products(status=status))
        elif choice == "3":
            show_sales(list(store.sales))
        elif choice == "4":
            show_analytics(store, IntPrompt.ask("Days", default=7))
        elif choice == "5":
            ref = await ps.prompt_async("Product: ", completer=_product_completer(store))
            product = resolve_product(store, ref.strip())
            if product:
                await store.record_sale(product.id, IntPrompt.ask(f"Quantity (max {product.stock})", default=1))
        elif choice == "6":
            await store.add_product({
                "name": Prompt.ask("Name"),
                "category": Prompt.ask("Category", choices=list(CATEGORIES), default="Other"),
                "price": FloatPrompt.ask("Price"),
                "stock": IntPrompt.ask("Stock", default=0),
                "description": Prompt.ask("Description", default=""),
            })
        elif choice == "7":
            ref = await ps.prompt_async("Product: ", completer=_product_completer(store))
            product = resolve_product(store, ref.strip())
            if product:
                await store.update_product(product.id, {"stock": IntPrompt.ask("New stock", default=product.stock)})
        elif choice == "8":
            ref = await ps.prompt_async("Product: ", completer=_product_completer(store))
            product = resolve_product(store, ref.strip())
            if product and Confirm.ask(f"[red]Delete {product.name}?[/red]"):
                await store.delete_product(product.id)
        elif choice == "9":
            status = Prompt.ask("Status", choices=["All", *STATUSES], default="All")
            out = Prompt.ask("File", default=export_filename(date.today()))
            export_csv_file(store.filter_products(status=status), out)
        elif choice == "10":
            await import_csv_file(store, Prompt.ask("CSV file"))
        elif choice == "11":
            await store.refresh()
        else:
            return
        console.rule(style="dim")


# ---------------------------
# Argument parsing
# ---------------------------
def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Inventory dashboard CLI")
    sub = parser.add_subparsers(dest="command", required=True)

    sv = sub.add_parser("serve", help="Run the in-memory inventory service")
    sv.add_argument("--host", default="127.0.0.1")
    sv.add_argument("--port", type=int, default=5000)

    lg = sub.add_parser("login", help="Sign in")
    lg.add_argument("--username", required=True)
    lg.add_argument("--password")

    rg = sub.add_parser("register", help="Create an account and sign in")
    rg.add_argument("--username", required=True)
    rg.add_argument("--email", required=True)
    rg.add_argument("--password")
    rg.add_argument("--role", choices=["manager", "staff", "cashier"])

    sub.add_parser("logout", help="Sign out and forget the stored session")
    sub.add_parser("whoami", help="Show the signed-in user")
    sub.add_parser("dashboard", help="Totals, stock alerts and top sellers")
    sub.add_parser("sales", help="Sales history")
    sub.add_parser("shell", help="Interactive menu")

    for name in ("products", "export"):
        p = sub.add_parser(name, help="List products" if name == "products" else "Export products to CSV")
        p.add_argument("--status", choices=["All", *STATUSES])
        p.add_argument("--category", choices=["All", *CATEGORIES])
        p.add_argument("--search")
        if name == "products":
            p.add_argument("--sort", choices=list(SORT_KEYS))
            p.add_argument("--desc", action="store_true")
        else:
            p.add_argument("--out", help="Output file (default stock-export-<date>.csv)")

    an = sub.add_parser("analytics", help="Category stock and daily sales")
    an.add_argument("--days", type=int, default=7)

    ap = sub.add_parser("add-product", help="Add a product")
    ap.add_argument("--name", required=True)
    ap.add_argument("--category", choices=CATEGORIES, required=True)
    ap.add_argument("--price", type=float, required=True)
    ap.add_argument("--stock", type=int, required=True)
    ap.add_argument("--description", default="")

    up = sub.add_parser("update-product", help="Change product fields")
    up.add_argument("product", help="Product id or exact name")
    up.add_argument("--name")
    up.add_argument("--category", choices=CATEGORIES)
    up.add_argument("--price", type=float)
    up.add_argument("--stock", type=int)
    up.add_argument("--description")

    dp = sub.add_parser("delete-product", help="Delete a product (manager only)")
    dp.add_argument("product", help="Product id or exact name")
    dp.add_argument("--yes", action="store_true", help="Do not ask for confirmation")

    sl = sub.add_parser("sell", help="Record a sale")
    sl.add_argument("product", help="Product id or exact name")
    sl.add_argument("--qty", type=int, default=1)

    im = sub.add_parser("import", help="Import products from CSV")
    im.add_argument("file")
    return parser


async def main_async(args, settings: Settings) -> int:
    async with Workspace(settings) as ws:
        ws.notifier.subscribe(show_notification)
        try:
            return await run_command(args, ws)
        except InventoryError as e:
            console.print(Panel.fit(f"[red]{e.message}[/red]", title=e.title, border_style="red"))
            return 1


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = Settings.from_env()
    setup_logger(level=settings.log_level, log_file=settings.log_file, rich=True)

    if args.command == "serve":
        import uvicorn
        uvicorn.run("inventory_service.main:app", host=args.host, port=args.port, log_level="info")
        return 0
    return asyncio.run(main_async(args, settings))


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        console.print("\n\n[bold red]Interrupted by user[/bold red]")
        sys.exit(1)
