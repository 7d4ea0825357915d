"""
Catalog feed loading.

Catalogs can be seeded from a CSV or JSON feed instead of code.  Each
adapter parses a feed into plain product dicts; ``load_catalog_feed``
then upserts them into a ``Catalog``.

Recognised fields (CSV columns or JSON keys):

``sku`` (optional), ``name``, ``price``, ``stock``,
``expires`` (optional, ``YYYY-MM-DD``) and ``weight`` (optional, kg).

Rows with missing or malformed values are skipped and logged.

Usage example:

    from catalog import Catalog
    from catalog_feed import load_catalog_feed
    catalog = Catalog()
    load_catalog_feed("catalog.csv", catalog)
"""

from __future__ import annotations

import csv
import json
import logging
import math
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from catalog import Catalog
from errors import InvalidArgument

logger = logging.getLogger(__name__)


def _optional(value: Any) -> Optional[Any]:
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _parse_stock(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"stock must be a whole number, got {value!r}")
    if isinstance(value, int):
        return value
    number = float(value)
    if not number.is_integer():
        raise ValueError(f"stock must be a whole number, got {value!r}")
    return int(number)


def _parse_record(row: Mapping[str, Any], index: int) -> Optional[Dict[str, Any]]:
    """Validate one raw row; ``None`` when it has to be skipped."""
    row = {str(k).strip().lower(): v for k, v in row.items() if k is not None}
    name = str(row.get("name") or "").strip()
    if not name:
        logger.warning("Skipping feed record without a name", extra={"extra": {"index": index}})
        return None
    try:
        price = float(row.get("price", 0))
        if not math.isfinite(price):
            raise ValueError(f"price must be a finite number, got {row.get('price')!r}")
        stock = _parse_stock(row.get("stock", 0))
        expires = _optional(row.get("expires"))
        expiration_date = date.fromisoformat(str(expires).strip()) if expires is not None else None
        weight = _optional(row.get("weight"))
        weight = float(weight) if weight is not None else None
    except (TypeError, ValueError) as exc:
        logger.warning(
            "Skipping malformed feed record",
            extra={"extra": {"index": index, "name": name, "reason": str(exc)}},
        )
        return None
    if price.is_integer():
        price = int(price)
    sku = _optional(row.get("sku"))
    return {
        "sku": str(sku).strip() if sku is not None else None,
        "name": name,
        "price": price,
        "stock": stock,
        "expiration_date": expiration_date,
        "weight": weight,
    }


class CatalogAdapter:
    """Base class for catalog feed adapters."""

    def parse(self, data: str) -> List[Dict[str, Any]]:  # pragma: no cover
        raise NotImplementedError


class CSVCatalogAdapter(CatalogAdapter):
    """Parse a CSV feed with a header row."""

    def parse(self, data: str) -> List[Dict[str, Any]]:
        products: List[Dict[str, Any]] = []
        reader = csv.DictReader(data.splitlines())
        for idx, row in enumerate(reader):
            record = _parse_record(row, idx)
            if record:
                products.append(record)
        return products


class JSONCatalogAdapter(CatalogAdapter):
    """Parse a JSON feed: an array of objects."""

    def parse(self, data: str) -> List[Dict[str, Any]]:
        try:
            items = json.loads(data)
        except json.JSONDecodeError as exc:
            raise InvalidArgument(f"Invalid JSON catalog feed: {exc}")
        if not isinstance(items, list):
            raise InvalidArgument("JSON catalog feed must be a list of product objects")
        products: List[Dict[str, Any]] = []
        for idx, row in enumerate(items):
            if not isinstance(row, dict):
                logger.warning("Skipping non-object feed record", extra={"extra": {"index": idx}})
                continue
            record = _parse_record(row, idx)
            if record:
                products.append(record)
        return products


def select_adapter(file_path: str) -> CatalogAdapter:
    """Select an adapter based on the file extension."""
    ext = Path(file_path).suffix.lower()
    if ext == ".csv":
        return CSVCatalogAdapter()
    if ext in {".json", ".jsn"}:
        return JSONCatalogAdapter()
    raise InvalidArgument(f"Unsupported catalog feed format: {ext}")


def load_catalog_feed(file_path: str, catalog: Catalog) -> Tuple[int, int]:
    """
    Load a feed file into ``catalog``.

    :param file_path: path to a CSV or JSON feed.
    :param catalog: catalog receiving the products.
    :returns: ``(inserted, updated)`` counts.
    """
    adapter = select_adapter(file_path)
    data = Path(file_path).read_text(encoding="utf-8")
    inserted = 0
    updated = 0
    for record in adapter.parse(data):
        try:
            _, created = catalog.upsert_product(
                name=record["name"],
                price=record["price"],
                quantity=record["stock"],
                expiration_date=record["expiration_date"],
                weight=record["weight"],
                sku=record["sku"],
            )
        except InvalidArgument as exc:
            logger.warning(
                "Skipping invalid feed product",
                extra={"extra": {"name": record["name"], "reason": str(exc)}},
            )
            continue
        if created:
            inserted += 1
        else:
            updated += 1
    logger.info(
        "Catalog feed loaded",
        extra={"extra": {"path": str(file_path), "inserted": inserted, "updated": updated}},
    )
    return inserted, updated
