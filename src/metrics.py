"""In-process metrics for the checkout application.

Counters, gauges and histograms are kept in module-level objects and can
be exported in the Prometheus text exposition format with
``generate_metrics_text``.  Nothing is pushed anywhere; a caller that
wants to expose the numbers reads the text and serves it however it
likes.
"""

from collections import defaultdict
from threading import Lock
from typing import Dict, Iterable, List, Tuple


class Metric:
    """Base class for all metrics."""

    kind = "untyped"

    def __init__(self, name: str, description: str, label_names: Iterable[str] = ()):
        self.name = name
        self.description = description
        self.label_names = list(label_names)
        self._lock = Lock()
        _METRIC_REGISTRY.append(self)

    def _label_key(self, labels: Dict[str, str]) -> Tuple[str, ...]:
        return tuple(str(labels.get(k, "")) for k in self.label_names)

    def _format_labels(self, label_values: Tuple[str, ...], extra: str = "") -> str:
        pairs = [f'{name}="{value}"' for name, value in zip(self.label_names, label_values)]
        if extra:
            pairs.append(extra)
        return "{" + ",".join(pairs) + "}" if pairs else ""

    def _header(self) -> List[str]:
        return [f"# HELP {self.name} {self.description}", f"# TYPE {self.name} {self.kind}"]

    def reset(self) -> None:
        raise NotImplementedError

    def to_prometheus(self) -> List[str]:
        """Return the metric as lines of Prometheus exposition text."""
        raise NotImplementedError


class Counter(Metric):
    """Monotonic counter.  ``COUNTER.inc(type="expired")`` adds one."""

    kind = "counter"

    def __init__(self, name: str, description: str, label_names: Iterable[str] = ()):
        super().__init__(name, description, label_names)
        self._values: Dict[Tuple[str, ...], float] = defaultdict(float)

    def inc(self, amount: float = 1.0, **labels: str) -> None:
        if amount < 0:
            raise ValueError("Counters can only increase")
        key = self._label_key(labels)
        with self._lock:
            self._values[key] += amount

    def value(self, **labels: str) -> float:
        with self._lock:
            return self._values.get(self._label_key(labels), 0.0)

    def reset(self) -> None:
        with self._lock:
            self._values.clear()

    def to_prometheus(self) -> List[str]:
        lines = self._header()
        with self._lock:
            for label_values, value in self._values.items():
                lines.append(f"{self.name}{self._format_labels(label_values)} {value}")
        return lines


class Gauge(Metric):
    """A value that may go up or down."""

    kind = "gauge"

    def __init__(self, name: str, description: str, label_names: Iterable[str] = ()):
        super().__init__(name, description, label_names)
        self._values: Dict[Tuple[str, ...], float] = {}

    def set(self, value: float, **labels: str) -> None:
        with self._lock:
            self._values[self._label_key(labels)] = float(value)

    def inc(self, amount: float = 1.0, **labels: str) -> None:
        key = self._label_key(labels)
        with self._lock:
            self._values[key] = self._values.get(key, 0.0) + amount

    def dec(self, amount: float = 1.0, **labels: str) -> None:
        self.inc(-amount, **labels)

    def value(self, **labels: str) -> float:
        with self._lock:
            return self._values.get(self._label_key(labels), 0.0)

    def reset(self) -> None:
        with self._lock:
            self._values.clear()

    def to_prometheus(self) -> List[str]:
        lines = self._header()
        with self._lock:
            for label_values, value in self._values.items():
                lines.append(f"{self.name}{self._format_labels(label_values)} {value}")
        return lines


class Histogram(Metric):
    """Histogram with fixed, ascending bucket upper bounds.

    Observations above the largest bound only show up in the ``+Inf``
    bucket, which equals the total observation count.
    """

    kind = "histogram"

    def __init__(
        self,
        name: str,
        description: str,
        label_names: Iterable[str] = (),
        buckets: Iterable[float] = (0.005, 0.01, 0.05, 0.1, 0.5, 1.0),
    ):
        super().__init__(name, description, label_names)
        self.buckets = sorted(float(b) for b in buckets)
        # Per-bucket (non-cumulative) counts; cumulated on export.
        self._counts: Dict[Tuple[str, ...], List[int]] = defaultdict(lambda: [0] * len(self.buckets))
        self._sums: Dict[Tuple[str, ...], float] = defaultdict(float)
        self._totals: Dict[Tuple[str, ...], int] = defaultdict(int)

    def observe(self, value: float, **labels: str) -> None:
        key = self._label_key(labels)
        with self._lock:
            for idx, upper in enumerate(self.buckets):
                if value <= upper:
                    self._counts[key][idx] += 1
                    break
            self._totals[key] += 1
            self._sums[key] += float(value)

    def count(self, **labels: str) -> int:
        with self._lock:
            return self._totals.get(self._label_key(labels), 0)

    def reset(self) -> None:
        with self._lock:
            self._counts.clear()
            self._sums.clear()
            self._totals.clear()

    def to_prometheus(self) -> List[str]:
        lines = self._header()
        with self._lock:
            for label_values, total in self._totals.items():
                cumulative = 0
                for idx, upper in enumerate(self.buckets):
                    cumulative += self._counts[label_values][idx]
                    labels = self._format_labels(label_values, f'le="{upper}"')
                    lines.append(f"{self.name}_bucket{labels} {cumulative}")
                labels = self._format_labels(label_values, 'le="+Inf"')
                lines.append(f"{self.name}_bucket{labels} {total}")
                plain = self._format_labels(label_values)
                lines.append(f"{self.name}_sum{plain} {self._sums[label_values]}")
                lines.append(f"{self.name}_count{plain} {total}")
        return lines


_METRIC_REGISTRY: List[Metric] = []


def generate_metrics_text() -> bytes:
    """Generate the text representation of all registered metrics."""
    lines: List[str] = []
    for metric in _METRIC_REGISTRY:
        lines.extend(metric.to_prometheus())
    return "\n".join(lines).encode("utf-8")


def reset_metrics() -> None:
    """Clear every registered metric (used by tests)."""
    for metric in _METRIC_REGISTRY:
        metric.reset()


# -----------------------------------------------------------------------------
# Metrics recorded by the checkout application.
# -----------------------------------------------------------------------------

# Checkout attempts, labelled by outcome ("success" or "rejected")
CHECKOUT_TOTAL = Counter(
    name="checkout_total",
    description="Total number of checkout attempts",
    label_names=["outcome"],
)

# Rejected checkouts, labelled by the error_type of the raised CheckoutError
CHECKOUT_ERROR_TOTAL = Counter(
    name="checkout_error_total",
    description="Total number of checkout errors, labelled by type",
    label_names=["type"],
)

CHECKOUT_DURATION_SECONDS = Histogram(
    name="checkout_duration_seconds",
    description="Duration of checkout operations in seconds",
)

# Sum of the totals (subtotal + shipping) charged to customers
CHECKOUT_AMOUNT_TOTAL = Counter(
    name="checkout_amount_total",
    description="Total money charged by successful checkouts",
)

UNITS_SHIPPED_TOTAL = Counter(
    name="units_shipped_total",
    description="Total number of units handed to the shipping service",
)

CHECKOUT_ROLLBACKS_TOTAL = Counter(
    name="checkout_rollbacks_total",
    description="Number of checkouts whose commit phase was rolled back",
)

CHECKOUTS_IN_PROGRESS = Gauge(
    name="checkouts_in_progress",
    description="Number of checkouts currently being processed",
)
