# src/checkout.py
"""
Checkout orchestration.

``CheckoutService.checkout`` runs one purchase for a customer and a cart
as a single transaction that moves through the states
``VALIDATING -> COMPUTING -> COMMITTING -> REPORTING -> DONE``:

1. Reject an empty cart.
2. Lock every product in the cart (in SKU order) and the customer.
3. Validate each line in insertion order: positive quantity, product not
   expired, quantity available in live stock.  Accumulate the subtotal
   and, for shippable products, the shipping fee and the shipment list.
4. Reject the checkout if the total exceeds the customer's balance.
5. Deduct stock for every line, then charge the customer.
6. Print the shipment notice (if anything ships) and the receipt.

Steps 1-4 never mutate anything, so a rejected checkout leaves products
and customer exactly as they were.  Validation and commit happen under
the same locks, so nothing observed during validation can change before
the commit; should a deduction fail regardless, the deductions already
applied are reversed before the error propagates.
"""

from __future__ import annotations

import logging
import sys
import time
import uuid
from contextlib import ExitStack
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, TextIO, Tuple

from amounts import format_fixed
from cart import Cart, CartLine
from catalog import Product
from customer import Customer
from errors import CheckoutError, EmptyCart, InsufficientBalance, InvalidArgument, OutOfStock
from fees import FlatRateFeePolicy, ShippingFeePolicy
from metrics import (
    CHECKOUT_AMOUNT_TOTAL,
    CHECKOUT_DURATION_SECONDS,
    CHECKOUT_ERROR_TOTAL,
    CHECKOUT_ROLLBACKS_TOTAL,
    CHECKOUT_TOTAL,
    CHECKOUTS_IN_PROGRESS,
)
from shipping_service import ShipmentManifest, ShippingService
from shipping_service import shipping_service as default_shipping_service

logger = logging.getLogger(__name__)

RECEIPT_HEADER = "** Checkout receipt **"
RECEIPT_SEPARATOR = "-" * 22


class CheckoutState(Enum):
    VALIDATING = "validating"
    COMPUTING = "computing"
    COMMITTING = "committing"
    REPORTING = "reporting"
    DONE = "done"


@dataclass(frozen=True)
class CheckoutResult:
    """Everything a successful checkout produced."""

    checkout_id: str
    customer_name: str
    lines: Tuple[CartLine, ...]
    subtotal: float
    shipping_fee: float
    total: float
    balance: float
    shipped: Tuple[Tuple[Product, int], ...]
    manifest: Optional[ShipmentManifest]
    receipt: str
    state: CheckoutState = CheckoutState.DONE


def aggregate_shipment(items: Iterable[Tuple[Product, int]]) -> List[Tuple[Product, int]]:
    """Collapse entries for the same SKU into one, keeping first-seen order."""
    totals: Dict[str, List] = {}
    for product, quantity in items:
        entry = totals.get(product.sku)
        if entry is None:
            totals[product.sku] = [product, quantity]
        else:
            entry[1] += quantity
    return [(product, quantity) for product, quantity in totals.values()]


def render_receipt(
    lines: Iterable[CartLine],
    subtotal: float,
    shipping_fee: float,
    total: float,
    balance: float,
) -> str:
    out = [RECEIPT_HEADER]
    for line in lines:
        out.append(f"{line.quantity}x {line.product.name:<10} {format_fixed(line.line_total)}")
    out.append(RECEIPT_SEPARATOR)
    out.append(f"{'Subtotal':<10}{format_fixed(subtotal):>10}")
    out.append(f"{'Shipping':<10}{format_fixed(shipping_fee):>10}")
    out.append(f"{'Amount':<10}{format_fixed(total):>10}")
    out.append("")
    out.append(f"Customer balance: {format_fixed(balance)}")
    return "\n".join(out) + "\n"


class CheckoutService:
    """Validates, prices, commits and reports cart purchases."""

    def __init__(
        self,
        fee_policy: Optional[ShippingFeePolicy] = None,
        shipping_service: Optional[ShippingService] = None,
        out: Optional[TextIO] = None,
        clock: Optional[Callable[[], date]] = None,
    ) -> None:
        self.fee_policy = fee_policy or FlatRateFeePolicy()
        self.shipping_service = shipping_service or default_shipping_service
        self.out = out
        self.clock = clock or date.today

    def checkout(self, customer: Customer, cart: Cart, today: Optional[date] = None) -> CheckoutResult:
        """Run the checkout transaction for ``customer`` and ``cart``.

        :param today: date used for the expiration check; defaults to the
            service clock.
        :raises EmptyCart, InvalidArgument, Expired, OutOfStock,
            InsufficientBalance: with no product or balance changed.
        """
        start_time = time.perf_counter()
        checkout_id = f"CHK-{uuid.uuid4().hex[:12]}"
        log_ctx = {"checkout_id": checkout_id, "customer": customer.name}
        CHECKOUTS_IN_PROGRESS.inc()
        try:
            result = self._run(checkout_id, customer, cart, today or self.clock(), log_ctx)
        except CheckoutError as exc:
            CHECKOUT_TOTAL.inc(outcome="rejected")
            CHECKOUT_ERROR_TOTAL.inc(type=exc.error_type)
            logger.warning(
                "Checkout rejected",
                extra={**log_ctx, "extra": {"error_type": exc.error_type, "reason": str(exc)}},
            )
            raise
        finally:
            CHECKOUTS_IN_PROGRESS.dec()
            CHECKOUT_DURATION_SECONDS.observe(time.perf_counter() - start_time)

        CHECKOUT_TOTAL.inc(outcome="success")
        CHECKOUT_AMOUNT_TOTAL.inc(result.total)
        logger.info(
            "Checkout completed",
            extra={
                **log_ctx,
                "extra": {
                    "lines": len(result.lines),
                    "subtotal": result.subtotal,
                    "shipping_fee": result.shipping_fee,
                    "total": result.total,
                },
            },
        )
        return result

    # ---- phases ----

    def _run(
        self,
        checkout_id: str,
        customer: Customer,
        cart: Cart,
        today: date,
        log_ctx: Dict[str, str],
    ) -> CheckoutResult:
        if cart.is_empty():
            raise EmptyCart("Cart is empty")
        lines = cart.lines()

        with ExitStack() as stack:
            distinct = {line.product.sku: line.product for line in lines}
            for sku in sorted(distinct):
                stack.enter_context(distinct[sku].lock)
            stack.enter_context(customer.lock)

            logger.debug("Checkout state", extra={**log_ctx, "extra": {"state": CheckoutState.VALIDATING.value}})
            subtotal, shipping_fee, to_ship = self._validate(lines, today)

            logger.debug("Checkout state", extra={**log_ctx, "extra": {"state": CheckoutState.COMPUTING.value}})
            total = subtotal + shipping_fee
            if total > customer.balance:
                raise InsufficientBalance(
                    f"Insufficient balance: need {format_fixed(total)}, have {format_fixed(customer.balance)}"
                )

            logger.debug("Checkout state", extra={**log_ctx, "extra": {"state": CheckoutState.COMMITTING.value}})
            self._commit(lines, customer, total, log_ctx)
            balance = customer.balance

        logger.debug("Checkout state", extra={**log_ctx, "extra": {"state": CheckoutState.REPORTING.value}})
        out = self.out or sys.stdout
        shipped = tuple(aggregate_shipment(to_ship))
        manifest = self.shipping_service.ship(shipped, out=out) if shipped else None
        receipt = render_receipt(lines, subtotal, shipping_fee, total, balance)
        out.write(receipt)

        return CheckoutResult(
            checkout_id=checkout_id,
            customer_name=customer.name,
            lines=lines,
            subtotal=subtotal,
            shipping_fee=shipping_fee,
            total=total,
            balance=balance,
            shipped=shipped,
            manifest=manifest,
            receipt=receipt,
        )

    def _validate(
        self, lines: Tuple[CartLine, ...], today: date
    ) -> Tuple[float, float, List[Tuple[Product, int]]]:
        """Read-only pass over the cart; returns subtotal, fee and shipment list."""
        subtotal = 0
        shipping_fee = 0
        to_ship: List[Tuple[Product, int]] = []
        for line in lines:
            product, quantity = line.product, line.quantity
            if quantity <= 0:
                raise InvalidArgument(f"Quantity for {product.name} must be greater than zero")
            product.check_validity(today)
            if quantity > product.quantity:
                raise OutOfStock(f"Product out of stock: {product.name}")
            subtotal += product.unit_price * quantity
            if product.is_shippable:
                shipping_fee += self.fee_policy.fee(product, quantity)
                to_ship.append((product, quantity))
        return subtotal, shipping_fee, to_ship

    def _commit(
        self,
        lines: Tuple[CartLine, ...],
        customer: Customer,
        total: float,
        log_ctx: Dict[str, str],
    ) -> None:
        applied: List[CartLine] = []
        try:
            for line in lines:
                line.product.deduct(line.quantity)
                applied.append(line)
            customer.deduct_balance(total)
        except Exception:
            for line in reversed(applied):
                line.product.restock(line.quantity)
            CHECKOUT_ROLLBACKS_TOTAL.inc()
            logger.error(
                "Checkout commit rolled back",
                exc_info=True,
                extra={**log_ctx, "extra": {"restored_lines": len(applied)}},
            )
            raise


def checkout(customer: Customer, cart: Cart, today: Optional[date] = None, **kwargs) -> CheckoutResult:
    """Run a checkout with a throwaway ``CheckoutService`` built from ``kwargs``."""
    return CheckoutService(**kwargs).checkout(customer, cart, today)
