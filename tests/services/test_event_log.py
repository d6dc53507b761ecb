"""Tests for EventLog append, ordered reads and audit queries."""

import threading
import time
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import DataError, IntegrityError, OperationalError
from sqlalchemy.orm import sessionmaker

from stock_kernel.db.engine import translate_storage_errors
from stock_kernel.domain.events import StockEventDraft, StockEventKind
from stock_kernel.exceptions import StorageUnavailable
from stock_kernel.services.event_log import EventLog
from stock_kernel.utils.hashing import GENESIS_HASH, hash_chain_link


@pytest.fixture
def event_log(session_factory, deterministic_clock):
    return EventLog(session_factory, deterministic_clock, read_batch_size=3, follow_poll_interval=0.05)


def _append(event_log, product_id="WIDGET", kind=StockEventKind.INBOUND, quantity=1, **kwargs):
    with event_log.transaction() as session:
        return event_log.append(session, StockEventDraft(product_id, kind, quantity, **kwargs))


class TestAppend:
    def test_positions_start_at_one_and_have_no_gaps(self, event_log):
        events = [_append(event_log) for _ in range(5)]
        assert [e.event_id for e in events] == [1, 2, 3, 4, 5]
        assert event_log.last_position() == 5
        assert event_log.count() == 5

    def test_empty_log(self, event_log):
        assert event_log.count() == 0
        assert event_log.last_position() == 0
        assert list(event_log.read_since(0)) == []

    def test_hash_chain_links_to_predecessor(self, event_log):
        first = _append(event_log)
        second = _append(event_log, quantity=2)

        assert first.chain_hash == hash_chain_link(1, first.payload_hash, None)
        assert first.chain_hash == hash_chain_link(1, first.payload_hash, GENESIS_HASH)
        assert second.chain_hash == hash_chain_link(2, second.payload_hash, first.chain_hash)

    def test_occurred_at_normalized_to_utc(self, event_log):
        local = datetime(2025, 6, 1, 12, 0, tzinfo=timezone(timedelta(hours=2)))
        event = _append(event_log, occurred_at=local)

        stored = event_log.get(event.event_id)
        assert stored.occurred_at == local
        assert stored.occurred_at.utcoffset() == timedelta(0)
        assert stored.computed_payload_hash() == stored.payload_hash

    def test_stored_event_round_trips(self, event_log):
        appended = _append(
            event_log,
            kind=StockEventKind.ADJUSTMENT,
            quantity=-2,
            reference_id="COUNT-7",
            notes="cycle count",
        )
        assert event_log.get(appended.event_id) == appended

    def test_rollback_returns_position(self, event_log):
        with pytest.raises(RuntimeError):
            with event_log.transaction() as session:
                event_log.append(session, StockEventDraft("WIDGET", "inbound", 1))
                raise RuntimeError("abort")

        assert event_log.count() == 0
        assert _append(event_log).event_id == 1

    def test_append_logged(self, event_log, captured_logs):
        _append(event_log, quantity=4)
        records = [r for r in captured_logs() if r["message"] == "stock_event_appended"]
        assert records[0]["position"] == 1
        assert records[0]["quantity"] == 4
        assert records[0]["operation"] == "append"


class TestReadSince:
    def test_reads_after_position_in_order(self, event_log):
        for q in range(1, 8):
            _append(event_log, quantity=q)

        assert [e.event_id for e in event_log.read_since(0)] == list(range(1, 8))
        assert [e.event_id for e in event_log.read_since(4)] == [5, 6, 7]
        assert list(event_log.read_since(7)) == []

    def test_upto_is_inclusive(self, event_log):
        for _ in range(6):
            _append(event_log)
        assert [e.event_id for e in event_log.read_since(1, upto=4)] == [2, 3, 4]

    def test_restartable_from_any_position(self, event_log):
        for _ in range(5):
            _append(event_log)
        seen = []
        for event in event_log.read_since(0):
            seen.append(event.event_id)
            if event.event_id == 2:
                break
        seen.extend(e.event_id for e in event_log.read_since(seen[-1]))
        assert seen == [1, 2, 3, 4, 5]

    def test_negative_position_rejected(self, event_log):
        with pytest.raises(ValueError):
            list(event_log.read_since(-1))

    def test_follow_streams_new_appends_until_stopped(self, event_log):
        _append(event_log)
        stop = threading.Event()
        received = []

        def consume():
            for event in event_log.read_since(0, follow=True, stop=stop):
                received.append(event.event_id)
                if len(received) == 4:
                    stop.set()

        consumer = threading.Thread(target=consume)
        consumer.start()
        for _ in range(3):
            time.sleep(0.02)
            _append(event_log)
        consumer.join(timeout=10)

        assert not consumer.is_alive()
        assert received == [1, 2, 3, 4]

    def test_follow_with_upto_ends_at_bound(self, event_log):
        for _ in range(3):
            _append(event_log)
        events = list(event_log.read_since(0, upto=3, follow=True))
        assert [e.event_id for e in events] == [1, 2, 3]


class TestHistory:
    def test_newest_first_by_default(self, event_log):
        _append(event_log, product_id="WIDGET", quantity=1)
        _append(event_log, product_id="GADGET", quantity=1)
        _append(event_log, product_id="WIDGET", quantity=2)

        assert [e.event_id for e in event_log.history("WIDGET")] == [3, 1]
        assert [e.event_id for e in event_log.history("WIDGET", newest_first=False)] == [1, 3]
        assert [e.event_id for e in event_log.history("WIDGET", limit=1)] == [3]
        assert event_log.history("BOLT") == []


class TestStorageFailures:
    @pytest.fixture
    def unreachable_log(self, tmp_path):
        engine = create_engine(f"sqlite:///{tmp_path / 'missing-dir' / 'ledger.db'}")
        yield EventLog(sessionmaker(bind=engine))
        engine.dispose()

    def test_read_failure_raises_storage_unavailable(self, unreachable_log):
        with pytest.raises(StorageUnavailable) as exc_info:
            unreachable_log.count()

        assert exc_info.value.operation == "read"
        assert isinstance(exc_info.value.__cause__, OperationalError)

    def test_append_failure_raises_storage_unavailable(self, unreachable_log, captured_logs):
        with pytest.raises(StorageUnavailable) as exc_info:
            _append(unreachable_log)

        assert exc_info.value.operation == "append"
        assert exc_info.value.code == "STORAGE_UNAVAILABLE"
        assert any(r["message"] == "storage_unavailable" for r in captured_logs())


class TestStorageErrorTranslation:
    def test_out_of_range_value_passes_through(self):
        error = DataError("INSERT INTO stock_events", {}, Exception("integer out of range"))
        with pytest.raises(DataError):
            with translate_storage_errors("append"):
                raise error

    def test_constraint_violation_passes_through(self):
        error = IntegrityError("INSERT INTO stock_events", {}, Exception("duplicate key"))
        with pytest.raises(IntegrityError):
            with translate_storage_errors("append"):
                raise error

    def test_operational_error_wrapped(self):
        error = OperationalError("SELECT 1", {}, Exception("database is locked"))
        with pytest.raises(StorageUnavailable) as exc_info:
            with translate_storage_errors("read"):
                raise error

        assert exc_info.value.__cause__ is error
        assert "database is locked" in str(exc_info.value)
