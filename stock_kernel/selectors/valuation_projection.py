"""
Module: stock_kernel.selectors.valuation_projection
Responsibility: Total inventory valuation -- sum over products of
    current_stock x unit_price, plus total units on hand.
Architecture position: Kernel > Selectors.  Pull-on-read over one
    consistent balance read and the catalog's unit prices.

Invariants enforced:
    - Decimal arithmetic throughout; per-line values are exact.
    - The total is rounded once, at the end, to the currency's minor unit
      using ROUND_HALF_EVEN.

Failure modes:
    - StorageUnavailable if the balances cannot be read.
    - Balances for products the catalog no longer lists are left out of the
      snapshot and logged as ``valuation_product_missing``.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_EVEN

from sqlalchemy.orm import Session, sessionmaker

from stock_kernel.db.engine import session_scope, translate_storage_errors
from stock_kernel.domain.catalog import ProductCatalog
from stock_kernel.domain.values import Currency, Money
from stock_kernel.logging_config import get_logger
from stock_kernel.selectors.balance_selector import BalanceSelector

logger = get_logger("selectors.valuation")


@dataclass(frozen=True)
class ValuationLine:
    """One product's contribution to the valuation (unrounded)."""

    product_id: str
    units: int
    unit_price: Money
    value: Money


@dataclass(frozen=True)
class ValuationSnapshot:
    """Point-in-time inventory valuation."""

    total_inventory_value: Money
    total_units: int
    currency: Currency
    lines: tuple[ValuationLine, ...] = ()

    @property
    def exact_total(self) -> Money:
        """Sum of the line values before rounding."""
        total = Money.zero(self.currency)
        for line in self.lines:
            total = total + line.value
        return total


class ValuationProjection:
    """Derived valuation over balances and catalog unit prices."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        catalog: ProductCatalog,
        currency: str | Currency = "USD",
    ):
        self._session_factory = session_factory
        self._catalog = catalog
        self._currency = currency if isinstance(currency, Currency) else Currency(currency)

    @property
    def currency(self) -> Currency:
        return self._currency

    def current_valuation(self) -> ValuationSnapshot:
        with translate_storage_errors("read"):
            with session_scope(self._session_factory) as session:
                levels = BalanceSelector(session).stock_levels()

        products = {p.product_id: p for p in self._catalog.products()}
        missing = sorted(set(levels) - set(products))
        if missing:
            logger.warning(
                "valuation_product_missing",
                extra={"product_ids": missing},
            )

        lines: list[ValuationLine] = []
        exact = Money.zero(self._currency)
        total_units = 0
        for product_id in sorted(products):
            units = levels.get(product_id, 0)
            unit_price = Money(products[product_id].unit_price, self._currency)
            value = unit_price * units
            lines.append(
                ValuationLine(
                    product_id=product_id,
                    units=units,
                    unit_price=unit_price,
                    value=value,
                )
            )
            exact = exact + value
            total_units += units

        snapshot = ValuationSnapshot(
            total_inventory_value=exact.round(ROUND_HALF_EVEN),
            total_units=total_units,
            currency=self._currency,
            lines=tuple(lines),
        )
        logger.debug(
            "valuation_computed",
            extra={
                "total_inventory_value": snapshot.total_inventory_value.amount,
                "total_units": total_units,
                "products": len(lines),
            },
        )
        return snapshot
