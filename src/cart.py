"""
Shopping cart.

The cart is a mapping of product SKU to a ``CartLine``.  Adding a product
that is already in the cart merges the quantities instead of creating a
second line, and the order in which products were first added is kept
for the receipt.  Adding to the cart never reserves stock: the quantity
is checked against the product's stock at add time and again, against
live stock, at checkout.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterator, Optional, Tuple, Union

from amounts import is_count
from catalog import Product
from errors import InvalidArgument


@dataclass(frozen=True)
class CartLine:
    """A product and the (aggregated) quantity requested for it."""

    product: Product
    quantity: int

    @property
    def sku(self) -> str:
        return self.product.sku

    @property
    def line_total(self) -> float:
        return self.product.unit_price * self.quantity


class Cart:
    """Ordered, duplicate-free collection of cart lines keyed by SKU."""

    def __init__(self) -> None:
        self._lines: Dict[str, CartLine] = {}

    def add(self, product: Product, quantity: Optional[int] = None) -> CartLine:
        """Add ``quantity`` units of ``product``.

        Without a quantity the product's whole current stock is added.

        :raises InvalidArgument: if the product is missing, the quantity is
            not a positive integer or exceeds the product's current stock,
            or another product with the same SKU is already in the cart.
        :returns: the (possibly merged) line for the product.
        """
        if product is None:
            raise InvalidArgument("Product cannot be null")
        if quantity is None:
            quantity = product.quantity
        if not is_count(quantity) or quantity == 0:
            raise InvalidArgument("Quantity must be a positive integer")
        if quantity > product.quantity:
            raise InvalidArgument(
                f"Not enough quantity available for {product.name}: only {product.quantity} in stock"
            )
        existing = self._lines.get(product.sku)
        if existing is not None and existing.product is not product:
            raise InvalidArgument(
                f"SKU {product.sku} is already in the cart as {existing.product.name}"
            )
        # Re-assigning an existing key keeps its position in the dict.
        line = CartLine(product, quantity + (existing.quantity if existing else 0))
        self._lines[product.sku] = line
        return line

    def remove(self, product: Union[Product, str]) -> None:
        """Drop the line for a product (or SKU); no-op when absent."""
        sku = product if isinstance(product, str) else product.sku
        self._lines.pop(sku, None)

    def clear(self) -> None:
        self._lines.clear()

    def lines(self) -> Tuple[CartLine, ...]:
        """Snapshot of the cart lines in insertion order."""
        return tuple(self._lines.values())

    def quantity_of(self, product: Union[Product, str]) -> int:
        sku = product if isinstance(product, str) else product.sku
        line = self._lines.get(sku)
        return line.quantity if line else 0

    def subtotal(self) -> float:
        return sum(line.line_total for line in self._lines.values())

    def is_empty(self) -> bool:
        return not self._lines

    def __len__(self) -> int:
        return len(self._lines)

    def __iter__(self) -> Iterator[CartLine]:
        return iter(self.lines())
