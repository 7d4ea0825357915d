"""
In-memory product catalogue.

A ``Product`` is a single record with two optional traits: an expiration
date (perishable goods) and a weight in kilograms (shippable goods).  The
traits are independent, so a product may be perishable, shippable, both
or neither without needing a dedicated class for each combination.

``Catalog`` plays the role the product DAO plays in a database backed
shop: it registers products under a stable SKU, looks them up and lists
them in insertion order.  Nothing is persisted; products live for the
lifetime of the process and are mutated in place by checkout.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterator, List, Optional, Tuple

from amounts import is_amount, is_count
from errors import Expired, InsufficientStock, InvalidArgument

logger = logging.getLogger(__name__)

# Fields that may only be assigned once, during construction.
_IMMUTABLE_FIELDS = frozenset({"sku", "name", "unit_price", "expiration_date", "weight"})


@dataclass(eq=False)
class Product:
    """A catalogue item with a mutable quantity on hand.

    Products compare by identity; carts key them by ``sku``.
    """

    sku: str
    name: str
    unit_price: float
    quantity: int
    expiration_date: Optional[date] = None
    weight: Optional[float] = None
    # Held by checkout across validate + deduct; re-entrant so deduct() can
    # take it again from the same thread.
    _lock: threading.RLock = field(default_factory=threading.RLock, init=False, repr=False)

    def __post_init__(self) -> None:
        if not self.sku or not str(self.sku).strip():
            raise InvalidArgument("Product SKU cannot be empty")
        if not self.name or not self.name.strip():
            raise InvalidArgument("Product name cannot be empty")
        if not is_amount(self.unit_price):
            raise InvalidArgument(f"Price of {self.name} must be a finite, non-negative number")
        if not is_count(self.quantity):
            raise InvalidArgument(f"Quantity of {self.name} must be a non-negative integer")
        if self.weight is not None and (not is_amount(self.weight) or self.weight == 0):
            raise InvalidArgument(f"Weight of {self.name} must be positive")

    def __setattr__(self, key: str, value) -> None:
        if key in _IMMUTABLE_FIELDS and key in self.__dict__:
            raise AttributeError(f"Product.{key} cannot be changed")
        super().__setattr__(key, value)

    @property
    def is_perishable(self) -> bool:
        return self.expiration_date is not None

    @property
    def is_shippable(self) -> bool:
        return self.weight is not None

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    def check_validity(self, as_of: date) -> None:
        """Raise ``Expired`` if ``as_of`` is strictly after the expiration date.

        Non-perishable products are always valid.  The check has no side
        effects and may be repeated.
        """
        if self.expiration_date is not None and as_of > self.expiration_date:
            raise Expired(f"Product {self.name} is expired")

    def deduct(self, amount: int) -> None:
        """Remove ``amount`` units from stock, or fail without changing it."""
        if not is_count(amount):
            raise InvalidArgument(f"Amount must be a non-negative integer, got {amount!r}")
        with self._lock:
            if amount > self.quantity:
                raise InsufficientStock(
                    f"Not enough quantity available for {self.name}: "
                    f"requested {amount}, have {self.quantity}"
                )
            self.quantity -= amount

    def restock(self, amount: int) -> None:
        """Return ``amount`` units to stock."""
        if not is_count(amount):
            raise InvalidArgument(f"Amount must be a non-negative integer, got {amount!r}")
        with self._lock:
            self.quantity += amount


class Catalog:
    """Registry of products keyed by SKU, in insertion order."""

    def __init__(self) -> None:
        self._products: Dict[str, Product] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def _generate_sku(self) -> str:
        while True:
            sku = f"SKU-{self._next_id:04d}"
            self._next_id += 1
            if sku not in self._products:
                return sku

    def register(self, product: Product) -> Product:
        """Add an already constructed product.

        :raises InvalidArgument: if the SKU is already registered.
        """
        with self._lock:
            if product.sku in self._products:
                raise InvalidArgument(f"SKU {product.sku} is already registered")
            self._products[product.sku] = product
        logger.debug("Product registered", extra={"extra": {"sku": product.sku, "name": product.name}})
        return product

    def add_product(
        self,
        name: str,
        price: float,
        quantity: int,
        expiration_date: Optional[date] = None,
        weight: Optional[float] = None,
        sku: Optional[str] = None,
    ) -> Product:
        """Create a product and register it.  A SKU is generated when omitted."""
        with self._lock:
            sku = sku or self._generate_sku()
        product = Product(
            sku=sku,
            name=name,
            unit_price=price,
            quantity=quantity,
            expiration_date=expiration_date,
            weight=weight,
        )
        return self.register(product)

    def upsert_product(
        self,
        name: str,
        price: float,
        quantity: int,
        expiration_date: Optional[date] = None,
        weight: Optional[float] = None,
        sku: Optional[str] = None,
    ) -> Tuple[Product, bool]:
        """Update the stock of an existing product or add a new one.

        The product is matched by SKU, or by name when no SKU is given.
        Existing products keep their identity (carts may reference them)
        and their price; only the quantity on hand is replaced.

        :returns: ``(product, created)``.
        """
        if not is_count(quantity):
            raise InvalidArgument(f"Quantity of {name} must be a non-negative integer")
        existing = self.get_product(sku) if sku else self.get_product_by_name(name)
        if existing is None:
            return self.add_product(name, price, quantity, expiration_date, weight, sku), True
        with existing.lock:
            if existing.unit_price != price:
                logger.warning(
                    "Ignoring price change for existing product",
                    extra={"extra": {"sku": existing.sku, "price": existing.unit_price, "feed_price": price}},
                )
            diff = quantity - existing.quantity
            if diff >= 0:
                existing.restock(diff)
            else:
                existing.deduct(-diff)
        return existing, False

    def get_product(self, sku: str) -> Optional[Product]:
        return self._products.get(sku)

    def get_product_by_name(self, name: str) -> Optional[Product]:
        """Return the first product with the given name (case-insensitive)."""
        wanted = name.strip().lower()
        for product in self._products.values():
            if product.name.lower() == wanted:
                return product
        return None

    def list_products(self) -> List[Product]:
        return list(self._products.values())

    def __len__(self) -> int:
        return len(self._products)

    def __contains__(self, sku: object) -> bool:
        return sku in self._products

    def __iter__(self) -> Iterator[Product]:
        return iter(self.list_products())
