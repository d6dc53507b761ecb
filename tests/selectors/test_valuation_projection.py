"""Tests for the inventory valuation projection."""

from decimal import Decimal

from stock_kernel.domain.catalog import Product, StaticCatalog
from stock_kernel.domain.values import Currency
from stock_kernel.ledger import InventoryLedger
from stock_kernel.selectors.valuation_projection import ValuationProjection


class TestCurrentValuation:
    def test_empty_ledger_values_zero(self, ledger):
        snapshot = ledger.current_valuation()
        assert snapshot.total_inventory_value.amount == Decimal("0.00")
        assert snapshot.total_units == 0
        assert snapshot.currency == Currency("USD")

    def test_sum_of_stock_times_price(self, ledger, stock_to):
        stock_to("WIDGET", 10)   # 10 x 2.50  = 25.00
        stock_to("GADGET", 3)    # 3 x 19.99  = 59.97
        stock_to("BOLT", 7)      # 7 x 0.05   = 0.35

        snapshot = ledger.current_valuation()

        assert snapshot.total_inventory_value.amount == Decimal("85.32")
        assert snapshot.total_units == 20
        lines = {line.product_id: line for line in snapshot.lines}
        assert lines["GADGET"].value.amount == Decimal("59.97")
        assert lines["BOLT"].units == 7

    def test_rounded_once_half_even(self, session_factory, deterministic_clock):
        catalog = StaticCatalog(
            [
                Product("A", reorder_point=0, unit_price=Decimal("0.005")),
                Product("B", reorder_point=0, unit_price=Decimal("0.0125")),
            ]
        )
        ledger = InventoryLedger(session_factory, catalog, clock=deterministic_clock)
        ledger.submit("A", "inbound", 1)   # 0.005
        ledger.submit("B", "inbound", 2)   # 0.025

        snapshot = ledger.current_valuation()

        # Per-line rounding would give 0.00 + 0.02; exact total 0.030.
        assert snapshot.exact_total.amount == Decimal("0.0300")
        assert snapshot.total_inventory_value.amount == Decimal("0.03")

    def test_half_even_tie(self, session_factory, deterministic_clock):
        catalog = StaticCatalog([Product("A", reorder_point=0, unit_price=Decimal("0.125"))])
        ledger = InventoryLedger(session_factory, catalog, clock=deterministic_clock)
        ledger.submit("A", "inbound", 1)

        assert ledger.current_valuation().total_inventory_value.amount == Decimal("0.12")

    def test_lines_exact_and_sorted(self, ledger, stock_to):
        stock_to("BOLT", 3)
        snapshot = ledger.current_valuation()
        assert [line.product_id for line in snapshot.lines] == ["BOLT", "GADGET", "WIDGET"]
        assert snapshot.lines[0].value.amount == Decimal("0.15")

    def test_currency_from_ledger(self, session_factory, catalog, deterministic_clock):
        ledger = InventoryLedger(
            session_factory, catalog, clock=deterministic_clock, currency="JPY"
        )
        ledger.submit("WIDGET", "inbound", 1)
        snapshot = ledger.current_valuation()
        assert snapshot.currency.code == "JPY"
        assert snapshot.total_inventory_value.amount == Decimal("2")

    def test_products_dropped_from_catalog_logged(
        self, session_factory, catalog, stock_to, captured_logs
    ):
        stock_to("WIDGET", 4)
        reduced = StaticCatalog([p for p in catalog.products() if p.product_id != "WIDGET"])

        snapshot = ValuationProjection(session_factory, reduced).current_valuation()

        assert snapshot.total_units == 0
        missing = [r for r in captured_logs() if r["message"] == "valuation_product_missing"]
        assert missing[0]["product_ids"] == ["WIDGET"]
