# fees.py
"""
Shipping fee policies used by the checkout service.

- Strategy-based fee computation (flat per unit / weight based).
- One policy is active per checkout service; they are never combined.
- ``select_fee_policy`` maps a configuration name to a policy.
"""

from __future__ import annotations

from typing import Dict, Optional, Type

from amounts import is_amount
from catalog import Product
from errors import InvalidArgument


# ---------- Strategy interface ----------

class ShippingFeePolicy:
    """Abstract base for shipping fee policies."""

    name = "abstract"
    default_rate: float = 0.0

    def __init__(self, rate: Optional[float] = None) -> None:
        rate = self.default_rate if rate is None else rate
        if not is_amount(rate):
            raise InvalidArgument(f"Shipping rate must be a finite, non-negative number, got {rate!r}")
        self.rate = rate

    def fee(self, product: Product, quantity: int) -> float:
        """Fee for shipping ``quantity`` units of a shippable product."""
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}(rate={self.rate!r})"


class FlatRateFeePolicy(ShippingFeePolicy):
    """A fixed fee for every shipped unit, regardless of weight."""

    name = "flat"
    default_rate = 10

    def fee(self, product: Product, quantity: int) -> float:
        return self.rate * quantity


class WeightRateFeePolicy(ShippingFeePolicy):
    """Fee proportional to the shipped weight in kilograms."""

    name = "weight"
    default_rate = 0.1

    def fee(self, product: Product, quantity: int) -> float:
        if product.weight is None:
            raise InvalidArgument(f"Product {product.name} is not shippable")
        return product.weight * quantity * self.rate


# ---------- Registry ----------

_POLICIES: Dict[str, Type[ShippingFeePolicy]] = {
    FlatRateFeePolicy.name: FlatRateFeePolicy,
    WeightRateFeePolicy.name: WeightRateFeePolicy,
}


def select_fee_policy(name: str, rate: Optional[float] = None) -> ShippingFeePolicy:
    """Build the policy registered under ``name`` (case-insensitive)."""
    policy_cls = _POLICIES.get(name.strip().lower())
    if policy_cls is None:
        raise InvalidArgument(f"Unknown shipping fee policy: {name}")
    return policy_cls(rate)
