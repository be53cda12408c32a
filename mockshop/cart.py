# mockshop/cart.py
import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from mockshop.database import CartStore, InMemoryCartStore, ShopData
from mockshop.errors import EmptyCartError, NotFoundError, StockError, ValidationError
from mockshop.models import Cart, CartIssue, CartLine, CartSummary, CartValidation, CartView

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def summarize(items: Iterable[CartLine], created_at: Optional[str] = None) -> CartSummary:
    items = list(items)
    subtotal = sum(item.price * item.quantity for item in items)
    return CartSummary(
        subtotal=round(subtotal, 2),
        item_count=sum(item.quantity for item in items),
        created_at=created_at,
    )


def _find_line(cart: Cart, product_id: int) -> Optional[CartLine]:
    for line in cart.items:
        if line.product_id == product_id:
            return line
    return None


class CartLedger:
    """
    Per-session carts checked against the live catalog.

    Mutations for one session are serialized through an asyncio.Lock and every
    check runs before the cart is touched, so a failed call leaves it as it was.
    The catalog is only ever read.
    """

    def __init__(self, catalog: ShopData, store: Optional[CartStore] = None):
        self.catalog = catalog
        self.store = store if store is not None else InMemoryCartStore()
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}

    @asynccontextmanager
    async def _session_lock(self, session_id: str):
        # a lock lives only while some call for the session holds or awaits it
        lock = self._locks.setdefault(session_id, asyncio.Lock())
        self._lock_users[session_id] = self._lock_users.get(session_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[session_id] -= 1
            if not self._lock_users[session_id]:
                del self._lock_users[session_id]
                del self._locks[session_id]

    @staticmethod
    def _view(cart: Cart, include_created_at: bool = False) -> CartView:
        return CartView(
            items=list(cart.items),
            summary=summarize(cart.items, cart.created_at if include_created_at else None),
        )

    # ---------------------------
    # Reads
    # ---------------------------
    def get(self, session_id: str) -> CartView:
        cart = self.store.get(session_id)
        if cart is None:
            return CartView(items=[], summary=summarize([]))
        return self._view(cart, include_created_at=True)

    def validate(self, session_id: str) -> CartValidation:
        cart = self.store.get(session_id)
        if cart is None or not cart.items:
            raise EmptyCartError()

        issues: List[CartIssue] = []
        valid_items: List[CartLine] = []

        for line in cart.items:
            product = self.catalog.product_by_id(line.product_id)
            if product is None:
                issues.append(CartIssue(product_id=line.product_id, issue="Product no longer exists"))
            elif not product.in_stock or product.stock == 0:
                issues.append(CartIssue(product_id=line.product_id, name=line.name, issue="Out of stock"))
            elif product.stock < line.quantity:
                issues.append(CartIssue(
                    product_id=line.product_id,
                    name=line.name,
                    issue="Insufficient stock",
                    requested=line.quantity,
                    available=product.stock,
                ))
            elif product.price != line.price:
                issues.append(CartIssue(
                    product_id=line.product_id,
                    name=line.name,
                    issue="Price changed",
                    old_price=line.price,
                    new_price=product.price,
                ))
                valid_items.append(line.model_copy(update={"price": product.price}))
            else:
                valid_items.append(line)

        return CartValidation(issues=issues, items=valid_items, summary=summarize(valid_items))

    # ---------------------------
    # Mutations
    # ---------------------------
    async def add(self, session_id: str, product_id: int, quantity: int = 1) -> CartView:
        if quantity < 1:
            raise ValidationError("quantity must be >= 1")

        product = self.catalog.product_by_id(product_id)
        if product is None:
            raise NotFoundError("Product not found")
        if not product.in_stock or product.stock < quantity:
            raise StockError("Insufficient stock", available_stock=product.stock)

        async with self._session_lock(session_id):
            cart = self.store.get(session_id)
            existing = _find_line(cart, product_id) if cart is not None else None

            if existing is not None:
                new_quantity = existing.quantity + quantity
                if product.stock < new_quantity:
                    raise StockError(
                        "Insufficient stock for requested quantity",
                        available_stock=product.stock,
                        current_in_cart=existing.quantity,
                    )
                existing.quantity = new_quantity
            else:
                if cart is None:
                    cart = Cart(created_at=_now())
                cart.items.append(CartLine(
                    product_id=product.id,
                    name=product.name,
                    price=product.price,
                    image=product.image,
                    quantity=quantity,
                ))

            self.store.set(session_id, cart)
            logger.debug("cart %s: added %d x product %s", session_id, quantity, product_id)
            return self._view(cart)

    async def update(self, session_id: str, product_id: int, quantity: Optional[int]) -> CartView:
        if quantity is None:
            raise ValidationError("productId and quantity are required")
        if quantity < 0:
            raise ValidationError("quantity must be >= 0")

        async with self._session_lock(session_id):
            cart = self.store.get(session_id)
            if cart is None:
                raise NotFoundError("Cart not found")
            line = _find_line(cart, product_id)
            if line is None:
                raise NotFoundError("Item not in cart")

            product = self.catalog.product_by_id(product_id)
            if product is None:
                raise NotFoundError("Product not found")
            if quantity > product.stock:
                raise StockError("Insufficient stock", available_stock=product.stock)

            if quantity == 0:
                cart.items = [item for item in cart.items if item.product_id != product_id]
            else:
                line.quantity = quantity

            self.store.set(session_id, cart)
            logger.debug("cart %s: product %s set to %d", session_id, product_id, quantity)
            return self._view(cart)

    async def remove(self, session_id: str, product_id: int) -> CartView:
        async with self._session_lock(session_id):
            cart = self.store.get(session_id)
            if cart is None:
                raise NotFoundError("Cart not found")
            cart.items = [item for item in cart.items if item.product_id != product_id]
            self.store.set(session_id, cart)
            logger.debug("cart %s: removed product %s", session_id, product_id)
            return self._view(cart)

    async def clear(self, session_id: str) -> None:
        async with self._session_lock(session_id):
            self.store.delete(session_id)
        logger.debug("cart %s: cleared", session_id)
