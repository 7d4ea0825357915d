"""
Shipping notifier.

After a successful checkout the shippable goods are handed to the
``ShippingService``, which prints a shipment notice listing every item
with its weight and the total package weight.  The service only reads
the products it is given; it never changes stock or any other state.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from typing import Iterable, List, Optional, TextIO, Tuple

from amounts import format_fixed, round_half_up
from catalog import Product
from errors import InvalidArgument
from metrics import UNITS_SHIPPED_TOTAL

logger = logging.getLogger(__name__)

MANIFEST_HEADER = "** Shipment notice **"
NAME_WIDTH = 15


@dataclass(frozen=True)
class ManifestLine:
    name: str
    quantity: int
    weight: float  # kilograms, for all units of the line

    @property
    def grams(self) -> int:
        return round_half_up(self.weight * 1000)

    def render(self) -> str:
        return f"{self.quantity}x {self.name:<{NAME_WIDTH}.{NAME_WIDTH}} {self.grams}g"


@dataclass(frozen=True)
class ShipmentManifest:
    """Content of one shipment notice, independent of where it is printed."""

    lines: Tuple[ManifestLine, ...]
    total_weight: float  # kilograms

    @property
    def total_units(self) -> int:
        return sum(line.quantity for line in self.lines)

    def render(self) -> str:
        out = [MANIFEST_HEADER]
        out.extend(line.render() for line in self.lines)
        out.append(f"Total package weight {format_fixed(self.total_weight, 1)}kg")
        return "\n".join(out) + "\n"


class ShippingService:
    """Build and print shipment notices.

    ``out`` is the stream notices are written to; ``None`` means standard
    output at the time of the call.
    """

    def __init__(self, out: Optional[TextIO] = None) -> None:
        self.out = out

    def build_manifest(self, items: Iterable[Tuple[Product, int]]) -> ShipmentManifest:
        lines: List[ManifestLine] = []
        total_weight = 0.0
        for product, quantity in items:
            if product.weight is None:
                raise InvalidArgument(f"Product {product.name} is not shippable")
            if quantity <= 0:
                raise InvalidArgument("Quantity must be greater than zero")
            weight = product.weight * quantity
            total_weight += weight
            lines.append(ManifestLine(name=product.name, quantity=quantity, weight=weight))
        return ShipmentManifest(lines=tuple(lines), total_weight=total_weight)

    def ship(self, items: Iterable[Tuple[Product, int]], out: Optional[TextIO] = None) -> ShipmentManifest:
        """Print a shipment notice for ``items`` and return its manifest.

        :param items: ordered ``(product, quantity)`` pairs of shippable
            products, one entry per product.
        :param out: stream overriding the service's own ``out``.
        """
        manifest = self.build_manifest(items)
        stream = out or self.out or sys.stdout
        stream.write(manifest.render() + "\n")
        UNITS_SHIPPED_TOTAL.inc(manifest.total_units)
        logger.info(
            "Shipment created",
            extra={"extra": {"items": len(manifest.lines), "total_weight_kg": round(manifest.total_weight, 3)}},
        )
        return manifest


shipping_service = ShippingService()
