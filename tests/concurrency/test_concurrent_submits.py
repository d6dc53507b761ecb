"""
True concurrency tests for the per-product critical section.

Multiple threads released together by a barrier submit against the same
ledger.  Whatever the interleaving, the final balance must equal the sum of
the committed events, never go negative, and the log must stay gap-free.

Skip with: pytest -m "not slow_locks"
"""

import random
from concurrent.futures import ThreadPoolExecutor, as_completed
from threading import Barrier

import pytest

from stock_kernel.domain.events import StockEventKind

pytestmark = pytest.mark.slow_locks


def _run_together(submissions, ledger):
    """Submit every (product_id, kind, quantity) at once; return the results."""
    barrier = Barrier(len(submissions))

    def worker(product_id, kind, quantity):
        barrier.wait(timeout=10)
        return ledger.submit(product_id, kind, quantity)

    with ThreadPoolExecutor(max_workers=len(submissions)) as pool:
        futures = [pool.submit(worker, *s) for s in submissions]
        return [f.result(timeout=60) for f in as_completed(futures)]


class TestConcurrentSubmits:
    def test_inbound_and_outbound_race(self, ledger, stock_to):
        """Stock 10: concurrent Inbound 5 and Outbound 3 end at 12."""
        stock_to("WIDGET", 10)

        results = _run_together(
            [
                ("WIDGET", StockEventKind.INBOUND, 5),
                ("WIDGET", StockEventKind.OUTBOUND, 3),
            ],
            ledger,
        )

        assert all(r.is_committed for r in results)
        assert ledger.get_balance("WIDGET") == 12
        kinds = sorted(e.kind.value for e in ledger.history("WIDGET"))
        assert kinds == ["inbound", "inbound", "outbound"]

    def test_oversell_race_never_goes_negative(self, ledger, stock_to):
        """20 threads each try to take 1 of 10 units: exactly 10 win."""
        stock_to("GADGET", 10)

        results = _run_together(
            [("GADGET", StockEventKind.OUTBOUND, 1)] * 20,
            ledger,
        )

        committed = [r for r in results if r.is_committed]
        rejected = [r for r in results if not r.is_committed]
        assert len(committed) == 10
        assert len(rejected) == 10
        assert all(r.code == "INSUFFICIENT_STOCK" for r in rejected)
        assert ledger.get_balance("GADGET") == 0
        assert sorted(r.new_balance for r in committed) == list(range(10))

    def test_many_products_in_parallel(self, ledger):
        rng = random.Random(42)
        submissions = []
        for product_id in ("WIDGET", "GADGET", "BOLT"):
            submissions.append((product_id, StockEventKind.INBOUND, 50))
            submissions.extend(
                (product_id, StockEventKind.OUTBOUND, rng.randint(1, 15)) for _ in range(5)
            )

        results = _run_together(submissions, ledger)

        for product_id in ("WIDGET", "GADGET", "BOLT"):
            expected = sum(
                r.event.signed_quantity
                for r in results
                if r.is_committed and r.product_id == product_id
            )
            assert ledger.get_balance(product_id) == expected >= 0

    def test_positions_gap_free_and_replay_matches(self, ledger):
        submissions = [("BOLT", StockEventKind.INBOUND, 1)] * 10 + [
            ("WIDGET", StockEventKind.INBOUND, 2)
        ] * 10

        _run_together(submissions, ledger)

        positions = [e.event_id for e in ledger.read_events(0)]
        assert positions == list(range(1, 21))

        report = ledger.verify()
        assert report.is_valid
        assert report.events_checked == 20
        assert ledger.get_balance("BOLT") == 10
        assert ledger.get_balance("WIDGET") == 20
