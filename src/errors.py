"""
Exception taxonomy for the checkout application.

Every failure raised by the domain objects derives from ``CheckoutError``.
Each class carries an ``error_type`` label that the checkout service uses
when incrementing the ``checkout_error_total`` counter, so the metric
labels stay in one place instead of being scattered as string literals.
"""

from __future__ import annotations


class CheckoutError(Exception):
    """Base class for all checkout related failures."""

    error_type = "checkout_error"


class InvalidArgument(CheckoutError, ValueError):
    """A call was made with a missing, zero or negative quantity/amount."""

    error_type = "invalid_argument"


class Expired(CheckoutError):
    """A perishable product is past its expiration date."""

    error_type = "expired"


class OutOfStock(CheckoutError):
    """The requested quantity exceeds the live stock of a product."""

    error_type = "out_of_stock"


class InsufficientStock(OutOfStock):
    """Raised by ``Product.deduct`` when asked for more than is on hand."""


class EmptyCart(CheckoutError):
    """Checkout was attempted on a cart with no lines."""

    error_type = "empty_cart"


class InsufficientBalance(CheckoutError):
    """The checkout total (or a deduction) exceeds the customer's balance."""

    error_type = "insufficient_balance"
