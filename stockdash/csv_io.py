# stockdash/csv_io.py
import csv
import io
import logging
from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Tuple

from pydantic import ValidationError

from .models import Product, ProductDraft, ProductUpdate
from .store import StockStore

log = logging.getLogger(__name__)

EXPORT_HEADERS = ["Name", "Category", "Price", "Stock", "Status", "Description", "Last Updated"]


def export_products(products: Iterable[Product]) -> str:
    """Header line, then one fully quoted row per product."""
    buf = io.StringIO()
    buf.write(",".join(EXPORT_HEADERS) + "\n")
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for p in products:
        writer.writerow([
            p.name, p.category, p.price, p.stock, p.status,
            p.description, p.last_updated.date().isoformat(),
        ])
    return buf.getvalue()


def export_filename(today: date) -> str:
    return f"stock-export-{today.isoformat()}.csv"


def parse_import(text: str) -> Tuple[List[ProductDraft], int]:
    """
    Parse an exported (or hand-written) CSV into drafts.

    The first non-blank line is a header and is discarded. Columns 0-3 are
    name, category, price and stock; anything after is ignored and the
    description starts out empty. Fields are used exactly as the csv module
    unquotes them, so exported names come back unchanged. Returns the drafts
    and the number of rows that were skipped.
    """
    rows = [row for row in csv.reader(io.StringIO(text)) if any(v.strip() for v in row)]
    drafts: List[ProductDraft] = []
    skipped = 0
    for values in rows[1:]:
        if len(values) < 4:
            skipped += 1
            continue
        try:
            drafts.append(ProductDraft(
                name=values[0], category=values[1].strip(),
                price=float(values[2]), stock=int(float(values[3])),
            ))
        except (ValueError, OverflowError, ValidationError):
            log.warning("Skipping unreadable CSV row: %r", values)
            skipped += 1
    return drafts, skipped


@dataclass
class ImportResult:
    added: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0


async def import_products(store: StockStore, text: str) -> ImportResult:
    """Rows whose name exactly matches a product update it; the rest are added."""
    drafts, skipped = parse_import(text)
    result = ImportResult(skipped=skipped)
    for draft in drafts:
        existing = store.find_by_name(draft.name)
        if existing is not None:
            changes = ProductUpdate(name=draft.name, category=draft.category,
                                    price=draft.price, stock=draft.stock)
            ok = await store.update_product(existing.id, changes) is not None
            if ok:
                result.updated += 1
        else:
            ok = await store.add_product(draft) is not None
            if ok:
                result.added += 1
        if not ok:
            result.failed += 1
    store.notifier.success(
        "CSV Import Complete",
        f"{result.added} products added, {result.updated} products updated.",
    )
    return result
