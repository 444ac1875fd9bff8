# stockdash/store.py
import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List, Tuple, Union, Callable

from pydantic import ValidationError

from . import derive
from .client import InventoryClient
from .derive import DailySales
from .errors import (
    InventoryError, AuthenticationError, AuthorizationError, InvalidDataError,
    NotFoundError, InsufficientStockError
)
from .models import (
    Product, SaleRecord, ProductDraft, ProductUpdate,
    normalize_product, normalize_sale
)
from .notify import Notifier
from .permissions import Action, can
from .session import SessionHolder

log = logging.getLogger(__name__)

StoreListener = Callable[["StockStore"], None]

REFRESH_ATTEMPTS = 3


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StockStore:
    """
    Canonical product/sale snapshot for one dashboard session.

    Every mutation goes to the inventory service first and is applied locally
    only once the service has confirmed it. The snapshot is swapped as a whole
    (tuples of frozen models), so readers never see half of a transition.
    Errors are reported through `notifier` and never raised to the caller.
    """

    def __init__(self, client: InventoryClient, session: SessionHolder,
                 notifier: Optional[Notifier] = None, enforce_roles: bool = True,
                 clock: Callable[[], datetime] = _utcnow):
        self.client = client
        self.session = session
        self.notifier = notifier or Notifier()
        self.enforce_roles = enforce_roles
        self._clock = clock
        self._products: Tuple[Product, ...] = ()
        self._sales: Tuple[SaleRecord, ...] = ()
        self._listeners: List[StoreListener] = []
        self._locks: Dict[str, asyncio.Lock] = {}
        self._generation = 0
        self._pending = 0
        self._idle = asyncio.Event()
        self._idle.set()
        self.loading = False
        self.ready = False

    # ---------------------------
    # Snapshot / subscriptions
    # ---------------------------
    @property
    def products(self) -> Tuple[Product, ...]:
        return self._products

    @property
    def sales(self) -> Tuple[SaleRecord, ...]:
        return self._sales

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return _unsubscribe

    def _commit(self, products: Optional[Tuple[Product, ...]] = None,
                sales: Optional[Tuple[SaleRecord, ...]] = None) -> None:
        # no await between these two assignments
        if products is not None:
            self._products = tuple(products)
        if sales is not None:
            self._sales = tuple(sales)
        self._generation += 1
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                log.exception("store listener failed")

    def _get_lock(self, key: str) -> asyncio.Lock:
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        return self._locks[key]

    @asynccontextmanager
    async def _mutating(self):
        # refresh waits for this count to drop to zero before fetching
        self._pending += 1
        self._idle.clear()
        try:
            yield
        finally:
            self._pending -= 1
            if not self._pending:
                self._idle.set()

    def _fail(self, error: InventoryError, context: str) -> None:
        if error.status_code is None and error.kind in ("business_rule", "validation", "authorization"):
            log.warning("%s: %s", context, error.message)
        else:
            log.error("%s: %s", context, error.message)
        self.notifier.failure(error, f"{context}: {error.message}")
        if isinstance(error, AuthenticationError) and self.session.is_authenticated:
            log.warning("Session rejected by the service, signing out")
            self.session.logout()

    def _allowed(self, action: Action) -> bool:
        if not self.enforce_roles or can(self.session.role, action):
            return True
        self._fail(
            AuthorizationError(f"role '{self.session.role.value}' may not {action.value.replace('_', ' ')}"),
            "Action not permitted",
        )
        return False

    # ---------------------------
    # Lifecycle
    # ---------------------------
    async def activate(self) -> None:
        """Load the snapshot if a credential is present; otherwise start empty."""
        if not self.session.is_authenticated:
            self._commit((), ())
            self.loading = False
            self.ready = True
            return
        await self.refresh()
        self.ready = True

    async def refresh(self) -> bool:
        """
        Replace both collections from the service. Failure keeps the last good snapshot.

        Products and sales are fetched separately, so a result is only
        committed if no mutation was in flight or confirmed while fetching;
        otherwise the fetch is repeated.
        """
        self.loading = True
        try:
            for _ in range(REFRESH_ATTEMPTS):
                await self._idle.wait()
                generation = self._generation
                raw_products, raw_sales = await asyncio.gather(
                    self.client.list_products(), self.client.list_sales()
                )
                if generation == self._generation and not self._pending:
                    break
                log.info("Snapshot changed while loading, fetching again")
            else:
                log.warning("Snapshot kept changing during refresh, keeping the current one")
                return False
            fetched_at = self._clock()
            products = tuple(normalize_product(p, fetched_at) for p in raw_products)
            sales = tuple(normalize_sale(s, fetched_at) for s in raw_sales)
        except InventoryError as e:
            self._fail(e, "Failed to load data from server")
            return False
        finally:
            self.loading = False
        self._commit(products, sales)
        log.info("Loaded %d products and %d sales", len(products), len(sales))
        return True

    def teardown(self) -> None:
        self._products = ()
        self._sales = ()
        self._listeners.clear()
        self._locks.clear()
        self.ready = False

    # ---------------------------
    # Mutations
    # ---------------------------
    async def add_product(self, draft: Union[ProductDraft, Dict[str, Any]]) -> Optional[Product]:
        if not self._allowed(Action.ADD_PRODUCT):
            return None
        try:
            if not isinstance(draft, ProductDraft):
                draft = ProductDraft.model_validate(draft)
        except ValidationError as e:
            self._fail(InvalidDataError(f"{e.error_count()} invalid field(s)"), "Failed to add product")
            return None

        async with self._mutating():
            try:
                raw = await self.client.create_product(draft)
                product = normalize_product(raw or {}, self._clock())
            except InventoryError as e:
                self._fail(e, "Failed to add product")
                return None
            self._commit(products=self._products + (product,))
        self.notifier.success("Product Added", f"{product.name} has been added to inventory")
        return product

    async def update_product(self, product_id: str,
                             changes: Union[ProductUpdate, Dict[str, Any]]) -> Optional[Product]:
        if not self._allowed(Action.UPDATE_PRODUCT):
            return None
        try:
            if not isinstance(changes, ProductUpdate):
                changes = ProductUpdate.model_validate(changes)
        except ValidationError as e:
            self._fail(InvalidDataError(f"{e.error_count()} invalid field(s)"), "Failed to update product")
            return None

        async with self._get_lock(product_id), self._mutating():
            try:
                raw = await self.client.update_product(product_id, changes)
                received_at = self._clock()
                current = self.get_product(product_id)
                if current is None:
                    log.info("Updated product %s is not in the local snapshot", product_id)
                    self.notifier.success("Product Updated", "The product has been updated successfully")
                    return None
                merged = {**changes.to_wire(), **(raw or {})}
                product = normalize_product(merged, received_at, base=current)
            except InventoryError as e:
                self._fail(e, "Failed to update product")
                return None

            self._commit(products=tuple(product if p.id == product_id else p for p in self._products))
        self.notifier.success("Product Updated", "The product has been updated successfully")
        return product

    async def delete_product(self, product_id: str) -> bool:
        if not self._allowed(Action.DELETE_PRODUCT):
            return False
        async with self._get_lock(product_id), self._mutating():
            try:
                await self.client.delete_product(product_id)
            except InventoryError as e:
                self._fail(e, "Failed to delete product")
                return False
            removed = self.get_product(product_id)
            self._commit(products=tuple(p for p in self._products if p.id != product_id))
        if removed is not None:
            self.notifier.success("Product Deleted", f"{removed.name} has been removed from inventory")
        return True

    async def record_sale(self, product_id: str, quantity: int) -> Optional[SaleRecord]:
        """
        Record a sale of `quantity` units.

        Stock is checked against the latest snapshot while holding the
        product's lock, so concurrent sales of one product are checked and
        applied one after another and can never oversell.
        """
        if not self._allowed(Action.RECORD_SALE):
            return None
        async with self._get_lock(product_id), self._mutating():
            product = self.get_product(product_id)
            if product is None:
                self._fail(NotFoundError("Product not found"), "Error recording sale")
                return None
            if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
                self._fail(InvalidDataError("Quantity must be a positive whole number"), "Cannot record sale")
                return None
            if quantity > product.stock:
                self._fail(
                    InsufficientStockError(f"Insufficient stock: {product.stock} of {product.name} left"),
                    "Cannot record sale",
                )
                return None

            try:
                raw = await self.client.record_sale(product_id, quantity)
                received_at = self._clock()
                sale = normalize_sale(raw or {}, received_at, defaults={
                    "product_id": product_id,
                    "product_name": product.name,
                    "quantity": quantity,
                    "total_amount": product.price * quantity,
                })
            except InventoryError as e:
                self._fail(e, "Failed to record sale")
                return None

            self._commit(
                products=tuple(self._sold(p, quantity, received_at) if p.id == product_id else p
                               for p in self._products),
                sales=self._sales + (sale,),
            )
        self.notifier.success("Sale Recorded", f"Sold {quantity} units of {product.name}")
        return sale

    @staticmethod
    def _sold(product: Product, quantity: int, at: datetime) -> Product:
        return product.model_copy(update={
            "stock": product.stock - quantity,
            "sales_count": product.sales_count + quantity,
            "last_updated": at,
        })

    # ---------------------------
    # Derived reads
    # ---------------------------
    def get_product(self, product_id: str) -> Optional[Product]:
        return derive.find_product(self._products, product_id)

    def find_by_name(self, name: str) -> Optional[Product]:
        for p in self._products:
            if p.name == name:
                return p
        return None

    def total_revenue(self) -> float:
        return derive.total_revenue(self._sales)

    def total_sold(self) -> int:
        return derive.total_sold(self._sales)

    def total_stock(self) -> int:
        return derive.total_stock(self._products)

    def stock_by_category(self) -> Dict[str, int]:
        return derive.stock_by_category(self._products)

    def sales_by_day(self, days: int, now: Optional[datetime] = None) -> List[DailySales]:
        return derive.sales_by_day(self._sales, days, now or self._clock())

    def low_stock_products(self) -> List[Product]:
        return derive.low_stock_products(self._products)

    def out_of_stock_products(self) -> List[Product]:
        return derive.out_of_stock_products(self._products)

    def top_selling(self, limit: int = 5) -> List[Product]:
        return derive.top_selling(self._products, limit)

    def categories(self) -> List[str]:
        return derive.categories(self._products)

    def filter_products(self, status: Optional[str] = None, category: Optional[str] = None,
                        query: Optional[str] = None) -> List[Product]:
        return derive.filter_products(self._products, status, category, query)

    def sort_products(self, key: str, descending: bool = False,
                      products: Optional[List[Product]] = None) -> List[Product]:
        return derive.sort_products(self._products if products is None else products, key, descending)
