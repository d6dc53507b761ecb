"""
Catalog boundary -- read-only product reference data.

Responsibility:
    The ledger does not own products.  It reads reorder points and unit
    prices through the ProductCatalog protocol, which an external catalog
    service implements.  StaticCatalog is the in-process implementation used
    when the catalog is loaded up front (and in tests).

Architecture position:
    Kernel > Domain -- pure, zero I/O.  Catalog adapters that talk to a real
    catalog service live outside the kernel and satisfy ProductCatalog.

Invariants enforced:
    - reorder_point >= 0 and unit_price >= 0 (the source schema's CHECK
      constraints), validated at construction.
    - unit_price is Decimal; floats are rejected.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class Product:
    """Reference data the ledger needs about one product."""

    product_id: str
    reorder_point: int
    unit_price: Decimal
    name: str | None = None
    sku: str | None = None
    supplier_name: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.product_id, str) or not self.product_id.strip():
            raise ValueError(f"product_id must be a non-empty string: {self.product_id!r}")
        object.__setattr__(self, "product_id", self.product_id.strip())

        if isinstance(self.reorder_point, bool) or not isinstance(self.reorder_point, int):
            raise ValueError(f"reorder_point must be an integer: {self.reorder_point!r}")
        if self.reorder_point < 0:
            raise ValueError(f"reorder_point must not be negative: {self.reorder_point}")

        if isinstance(self.unit_price, float):
            raise ValueError(f"unit_price must not be float: {self.unit_price!r}")
        if not isinstance(self.unit_price, Decimal):
            try:
                object.__setattr__(self, "unit_price", Decimal(str(self.unit_price)))
            except (InvalidOperation, ValueError) as e:
                raise ValueError(f"Invalid unit_price: {self.unit_price!r}") from e
        if not self.unit_price.is_finite() or self.unit_price < 0:
            raise ValueError(f"unit_price must be a non-negative amount: {self.unit_price}")


@runtime_checkable
class ProductCatalog(Protocol):
    """What the ledger needs from the catalog collaborator."""

    def lookup(self, product_id: str) -> Product | None:
        """Return the product, or None if the catalog does not know it."""
        ...

    def products(self) -> Iterable[Product]:
        """Every product the catalog knows, for the projections."""
        ...


class StaticCatalog:
    """
    In-process ProductCatalog backed by a dict.

    Reads and ``upsert`` are thread-safe; ``products()`` returns a snapshot.
    """

    def __init__(self, products: Iterable[Product] = ()):
        self._lock = threading.Lock()
        self._products: dict[str, Product] = {}
        for product in products:
            self._products[product.product_id] = product

    def lookup(self, product_id: str) -> Product | None:
        with self._lock:
            return self._products.get(product_id)

    def products(self) -> list[Product]:
        with self._lock:
            return list(self._products.values())

    def upsert(self, product: Product) -> None:
        """Refresh one product's reference data from the catalog feed."""
        with self._lock:
            self._products[product.product_id] = product

    def __len__(self) -> int:
        with self._lock:
            return len(self._products)
