"""Tests for the per-session daily quota ledger."""

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime

import pytest

from src.core.errors import ErrorCategory, PermanentError
from src.core.quota import (
    QuotaDecision,
    QuotaInputError,
    QuotaLedger,
    QuotaUsage,
    next_reset_for,
    window_key_for,
)


class TestWindowHelpers:
    """Tests for UTC day window helpers."""

    def test_window_key_is_utc_date(self):
        moment = datetime(2025, 3, 14, 23, 59, 59, tzinfo=UTC)
        assert window_key_for(moment) == "2025-03-14"

    def test_naive_datetime_treated_as_utc(self):
        assert window_key_for(datetime(2025, 3, 14, 0, 0)) == "2025-03-14"

    def test_next_reset_is_following_midnight(self):
        assert next_reset_for("2025-12-31") == datetime(2026, 1, 1, tzinfo=UTC)

    def test_usage_to_dict(self):
        usage = QuotaUsage(used=1, remaining=1, limit=2, window_key="2025-03-14")
        assert usage.to_dict() == {
            "used": 1,
            "remaining": 1,
            "limit": 2,
            "resets_at": "2025-03-15T00:00:00+00:00",
        }


class TestAdmission:
    """Tests for check_and_reserve, commit and release."""

    def test_fresh_session_has_full_allowance(self, ledger):
        usage = ledger.peek("s1", limit=2)
        assert (usage.used, usage.remaining, usage.limit) == (0, 2, 2)

    def test_two_edits_then_denied(self, ledger):
        first = ledger.check_and_reserve("s1", limit=2)
        assert first.admitted
        assert ledger.commit(first).remaining == 1

        second = ledger.check_and_reserve("s1", limit=2)
        assert second.admitted
        usage = ledger.commit(second)
        assert (usage.used, usage.remaining) == (2, 0)

        third = ledger.check_and_reserve("s1", limit=2)
        assert not third.admitted
        assert third.reservation is None
        assert (third.usage.used, third.usage.remaining) == (2, 0)

    def test_check_does_not_count_until_commit(self, ledger):
        decision = ledger.check_and_reserve("s1", limit=2)
        assert decision.usage.used == 0
        assert decision.usage.remaining == 1
        assert ledger.peek("s1", limit=2).used == 0

    def test_release_restores_slot(self, ledger):
        decision = ledger.check_and_reserve("s1", limit=1)
        usage = ledger.release(decision)
        assert (usage.used, usage.remaining) == (0, 1)
        assert ledger.check_and_reserve("s1", limit=1).admitted

    def test_pending_reservation_blocks_last_slot(self, ledger):
        held = ledger.check_and_reserve("s1", limit=1)
        assert held.admitted
        assert not ledger.check_and_reserve("s1", limit=1).admitted

    def test_sessions_are_independent(self, ledger):
        ledger.commit(ledger.check_and_reserve("a", limit=1))
        assert not ledger.check_and_reserve("a", limit=1).admitted
        assert ledger.check_and_reserve("b", limit=1).admitted

    def test_peek_is_idempotent(self, ledger):
        ledger.commit(ledger.check_and_reserve("s1", limit=3))
        assert ledger.peek("s1", limit=3) == ledger.peek("s1", limit=3)
        assert ledger.peek("s1", limit=3).used == 1


class TestSettlementErrors:
    """Tests for misuse of decisions."""

    def test_commit_denied_decision_raises(self, ledger):
        ledger.commit(ledger.check_and_reserve("s1", limit=1))
        denied = ledger.check_and_reserve("s1", limit=1)
        with pytest.raises(QuotaInputError):
            ledger.commit(denied)

    def test_double_commit_raises(self, ledger):
        decision = ledger.check_and_reserve("s1", limit=2)
        ledger.commit(decision)
        with pytest.raises(QuotaInputError):
            ledger.commit(decision)
        assert ledger.peek("s1", limit=2).used == 1

    def test_release_after_commit_raises(self, ledger):
        decision = ledger.check_and_reserve("s1", limit=2)
        ledger.commit(decision)
        with pytest.raises(QuotaInputError):
            ledger.release(decision)

    def test_forged_decision_raises(self, ledger):
        usage = ledger.peek("s1", limit=2)
        with pytest.raises(QuotaInputError):
            ledger.commit(QuotaDecision(admitted=True, usage=usage))

    @pytest.mark.parametrize("session_id", ["", None, 42])
    def test_invalid_session_id(self, ledger, session_id):
        with pytest.raises(QuotaInputError):
            ledger.check_and_reserve(session_id, limit=2)

    @pytest.mark.parametrize("limit", [0, -1, True, 2.5, "2"])
    def test_invalid_limit(self, ledger, limit):
        with pytest.raises(QuotaInputError):
            ledger.peek("s1", limit=limit)

    def test_input_error_is_permanent(self):
        error = QuotaInputError("bad")
        assert isinstance(error, PermanentError)
        assert error.category == ErrorCategory.INVALID_INPUT


class TestDayRollover:
    """Tests for the UTC calendar-day reset."""

    def test_allowance_resets_next_day(self, ledger, clock):
        for _ in range(2):
            ledger.commit(ledger.check_and_reserve("s1", limit=2))
        assert not ledger.check_and_reserve("s1", limit=2).admitted

        clock.advance(hours=12)
        decision = ledger.check_and_reserve("s1", limit=2)
        assert decision.admitted
        assert decision.usage.window_key == "2025-03-15"
        assert decision.usage.used == 0

    def test_commit_after_rollover_counts_today(self, ledger, clock):
        decision = ledger.check_and_reserve("s1", limit=2)
        clock.advance(days=1)
        usage = ledger.commit(decision)
        assert usage.window_key == "2025-03-15"
        assert (usage.used, usage.remaining) == (1, 1)

    def test_release_after_rollover_leaves_today_untouched(self, ledger, clock):
        decision = ledger.check_and_reserve("s1", limit=2)
        clock.advance(days=1)
        usage = ledger.release(decision)
        assert (usage.used, usage.remaining) == (0, 2)

    def test_resets_at_reports_next_midnight(self, ledger):
        usage = ledger.peek("s1", limit=2)
        assert usage.resets_at == datetime(2025, 3, 15, tzinfo=UTC)


class TestConcurrency:
    """Tests for concurrent admission on one session."""

    def test_parallel_reservations_never_exceed_limit(self):
        ledger = QuotaLedger()
        barrier = threading.Barrier(16)

        def attempt():
            barrier.wait()
            decision = ledger.check_and_reserve("shared", limit=3)
            if decision.admitted:
                ledger.commit(decision)
            return decision.admitted

        with ThreadPoolExecutor(max_workers=16) as pool:
            results = list(pool.map(lambda _: attempt(), range(16)))

        assert sum(results) == 3
        assert ledger.peek("shared", limit=3).used == 3

    def test_one_slot_two_requests(self, ledger):
        ledger.commit(ledger.check_and_reserve("s1", limit=2))
        first = ledger.check_and_reserve("s1", limit=2)
        second = ledger.check_and_reserve("s1", limit=2)
        assert [first.admitted, second.admitted] == [True, False]
        assert ledger.commit(first).used == 2
