"""UTCDateTime keeps stored timestamps timezone-aware on every backend."""

from datetime import UTC, datetime, timedelta, timezone

import pytest

from stock_kernel.db.base import UTCDateTime


class TestUTCDateTime:
    def test_naive_rejected_on_bind(self):
        with pytest.raises(ValueError):
            UTCDateTime().process_bind_param(datetime(2025, 1, 1), None)

    def test_aware_converted_to_utc(self):
        local = datetime(2025, 1, 1, 12, 0, tzinfo=timezone(timedelta(hours=-5)))
        stored = UTCDateTime().process_bind_param(local, None)
        assert stored == datetime(2025, 1, 1, 17, 0, tzinfo=UTC)
        assert stored.utcoffset() == timedelta(0)

    def test_naive_result_gets_utc(self):
        loaded = UTCDateTime().process_result_value(datetime(2025, 1, 1, 9, 0), None)
        assert loaded.tzinfo is UTC

    def test_none_passes_through(self):
        assert UTCDateTime().process_bind_param(None, None) is None
        assert UTCDateTime().process_result_value(None, None) is None

    def test_recorded_at_survives_round_trip(self, ledger, deterministic_clock):
        deterministic_clock.advance(90)
        event = ledger.submit("WIDGET", "inbound", 1).event

        stored = ledger.event_log.get(event.event_id)

        assert stored.recorded_at == deterministic_clock.now()
        assert stored.recorded_at.tzinfo is not None
