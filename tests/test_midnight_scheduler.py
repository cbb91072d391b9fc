"""Tests for midnight delay computation and the rebuild chain."""
from datetime import datetime, timedelta

import pytest
import pytz

from conftest import FakeScheduler
from engine.midnight_scheduler import MidnightScheduler, delay_until_next_midnight, next_midnight

TORONTO = pytz.timezone("America/Toronto")
HOUR_MS = 3_600_000


def _local(*args):
    return TORONTO.localize(datetime(*args))


class TestDelay:
    def test_last_millisecond_of_day_respects_floor(self):
        now = _local(2026, 10, 19, 23, 59, 59, 999000)
        delay = delay_until_next_midnight(now, TORONTO, floor_ms=5000, grace_ms=1000)
        assert delay >= 5000
        assert delay == 5000

    def test_noon_is_twelve_hours_plus_grace(self):
        now = _local(2026, 10, 19, 12, 0, 0)
        assert delay_until_next_midnight(now, TORONTO, floor_ms=5000, grace_ms=1000) == 12 * HOUR_MS + 1000

    def test_spring_forward_day_is_23_hours(self):
        now = _local(2026, 3, 8, 0, 0, 30)
        expected = 23 * HOUR_MS - 30_000
        assert delay_until_next_midnight(now, TORONTO, floor_ms=0, grace_ms=0) == expected

    def test_fall_back_day_is_25_hours(self):
        now = _local(2026, 11, 1, 0, 0, 30)
        expected = 25 * HOUR_MS - 30_000
        assert delay_until_next_midnight(now, TORONTO, floor_ms=0, grace_ms=0) == expected

    def test_utc_input_uses_reference_midnight(self):
        # 03:00 UTC is 23:00 the previous evening in Toronto.
        now = datetime(2026, 10, 19, 3, 0, tzinfo=pytz.utc)
        assert delay_until_next_midnight(now, TORONTO, floor_ms=0, grace_ms=0) == HOUR_MS

    def test_naive_input_is_utc(self):
        aware = datetime(2026, 10, 19, 3, 0, tzinfo=pytz.utc)
        assert delay_until_next_midnight(aware.replace(tzinfo=None), TORONTO) == \
            delay_until_next_midnight(aware, TORONTO)

    def test_next_midnight_is_local_midnight(self):
        nm = next_midnight(_local(2026, 10, 19, 8, 0), TORONTO)
        assert (nm.year, nm.month, nm.day, nm.hour, nm.minute) == (2026, 10, 20, 0, 0)
        assert nm.utcoffset() == timedelta(hours=-4)


class TestMidnightScheduler:
    @pytest.fixture
    def chain(self):
        sched = FakeScheduler()
        start = _local(2026, 10, 19, 23, 0, 0)
        calls = []

        def clock():
            return start + timedelta(milliseconds=sched.now_ms)

        midnight = MidnightScheduler(lambda: calls.append(clock()), TORONTO,
                                     scheduler=sched, clock=clock,
                                     floor_ms=5000, grace_ms=1000)
        return midnight, sched, calls

    def test_start_arms_one_timer(self, chain):
        midnight, sched, _ = chain
        midnight.start()
        midnight.start()
        assert len(sched.pending) == 1
        assert midnight.is_armed

    def test_fires_after_midnight_and_rearms(self, chain):
        midnight, sched, calls = chain
        midnight.start()

        sched.advance(HOUR_MS)
        assert calls == []

        sched.advance(1000)
        assert len(calls) == 1
        assert calls[0].astimezone(TORONTO).day == 20
        assert len(sched.pending) == 1
        assert sched.pending[0].due_ms == HOUR_MS + 1000 + 24 * HOUR_MS

    def test_runs_every_night(self, chain):
        midnight, sched, calls = chain
        midnight.start()
        sched.advance(HOUR_MS + 1000 + 3 * 24 * HOUR_MS)
        assert [c.astimezone(TORONTO).day for c in calls] == [20, 21, 22, 23]

    def test_callback_error_does_not_break_chain(self):
        sched = FakeScheduler()
        start = _local(2026, 10, 19, 23, 59, 0)

        def boom():
            raise RuntimeError("rebuild failed")

        midnight = MidnightScheduler(boom, "America/Toronto", scheduler=sched,
                                     clock=lambda: start + timedelta(milliseconds=sched.now_ms))
        midnight.start()
        sched.advance(61_000)

        assert len(sched.pending) == 1

    def test_stop_cancels(self, chain):
        midnight, sched, calls = chain
        midnight.start()
        midnight.stop()
        sched.advance(2 * 24 * HOUR_MS)
        assert calls == []
        assert not midnight.is_armed
