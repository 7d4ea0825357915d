"""Customer account holding a non-negative balance."""

from __future__ import annotations

import threading

from amounts import format_fixed, is_amount
from errors import InsufficientBalance, InvalidArgument


class Customer:
    """A named customer whose balance can only move through guarded calls."""

    def __init__(self, name: str, balance: float = 0) -> None:
        if not is_amount(balance):
            raise InvalidArgument("Balance must be a finite, non-negative number")
        self._name = name
        self._balance = balance
        self._lock = threading.RLock()

    @property
    def name(self) -> str:
        return self._name

    @property
    def balance(self) -> float:
        return self._balance

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    def add_balance(self, amount: float) -> None:
        if not is_amount(amount):
            raise InvalidArgument("Amount must be a finite, non-negative number")
        with self._lock:
            self._balance += amount

    def deduct_balance(self, amount: float) -> None:
        """Charge ``amount``; the balance is left untouched on failure."""
        if not is_amount(amount):
            raise InvalidArgument("Amount must be a finite, non-negative number")
        with self._lock:
            if amount > self._balance:
                raise InsufficientBalance(
                    f"Not enough balance available: need {format_fixed(amount)}, "
                    f"have {format_fixed(self._balance)}"
                )
            self._balance -= amount

    def __repr__(self) -> str:
        return f"Customer(name={self._name!r}, balance={self._balance!r})"
