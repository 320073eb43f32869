"""Per-session daily quota ledger with reserve/commit/release admission.

This module tracks how many gated operations (product image edits) each
session has completed during the current UTC calendar day. A request first
reserves a slot, then either commits it once the upstream call succeeds or
releases it when the call fails, so failed attempts never consume quota.

Example:
    ledger = QuotaLedger()

    decision = ledger.check_and_reserve("s1", limit=2)
    if not decision.admitted:
        return deny(decision.usage)
    try:
        result = await provider.edit(request)
    except Exception:
        ledger.release(decision)
        raise
    usage = ledger.commit(decision)
"""

import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, time, timedelta
from uuid import uuid4

from src.core.errors import ErrorCategory, PermanentError
from src.core.logging import get_logger

logger = get_logger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Return the current time in UTC."""
    return datetime.now(UTC)


def window_key_for(moment: datetime) -> str:
    """Return the UTC calendar-day key (YYYY-MM-DD) for a timestamp."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC).date().isoformat()


def next_reset_for(window_key: str) -> datetime:
    """Return the UTC midnight at which the given window expires."""
    day = datetime.fromisoformat(window_key).date()
    return datetime.combine(day + timedelta(days=1), time.min, tzinfo=UTC)


class QuotaInputError(PermanentError):
    """Raised when the ledger is called in violation of its contract.

    Covers malformed session ids or limits, and commit/release calls with a
    token that was denied, unknown, or already settled.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message, ErrorCategory.INVALID_INPUT)


@dataclass
class UsageRecord:
    """Usage of one session within one UTC day.

    Attributes:
        session_id: The session this record belongs to.
        window_key: The UTC day (YYYY-MM-DD) the counts apply to.
        count: Committed successful operations within the window.
        pending: Outstanding reservations not yet committed or released.
    """

    session_id: str
    window_key: str
    count: int = 0
    pending: int = 0


@dataclass(frozen=True)
class QuotaUsage:
    """Snapshot of a session's quota, as reported to clients.

    Attributes:
        used: Committed operations today.
        remaining: Operations that may still be admitted today.
        limit: The daily allowance.
        window_key: The UTC day the snapshot applies to.
    """

    used: int
    remaining: int
    limit: int
    window_key: str

    @property
    def resets_at(self) -> datetime:
        """When the current window expires."""
        return next_reset_for(self.window_key)

    def to_dict(self) -> dict[str, int | str]:
        """Convert to dictionary for JSON serialization."""
        return {
            "used": self.used,
            "remaining": self.remaining,
            "limit": self.limit,
            "resets_at": self.resets_at.isoformat(),
        }


@dataclass(frozen=True)
class Reservation:
    """Single-use capability to commit or release one reserved slot."""

    reservation_id: str
    session_id: str
    window_key: str
    limit: int


@dataclass(frozen=True)
class QuotaDecision:
    """Outcome of an admission check.

    A denied decision is a normal result, not an error: it carries the
    current usage (remaining is always 0) and no reservation.

    Attributes:
        admitted: Whether a slot was reserved.
        usage: Usage snapshot at decision time (pending slots included).
        reservation: The reservation token when admitted, otherwise None.
    """

    admitted: bool
    usage: QuotaUsage
    reservation: Reservation | None = None


class QuotaLedger:
    """In-memory daily quota ledger keyed by session id.

    Each session's record is guarded by its own lock, so admission for one
    session is serialized while different sessions proceed independently.
    None of the critical sections await, which makes the ledger safe to
    share between asyncio tasks and worker threads alike.

    State lives only in process memory and is lost on restart.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        """Initialize the ledger.

        Args:
            clock: Callable returning the current time. Defaults to UTC now.
                Tests inject a fake clock to cross day boundaries.
        """
        self._clock = clock or utc_now
        self._records: dict[str, UsageRecord] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()
        self._outstanding: dict[str, Reservation] = {}

    def _lock_for(self, session_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(session_id)
            if lock is None:
                lock = self._locks[session_id] = threading.Lock()
            return lock

    def _current_record(self, session_id: str) -> UsageRecord:
        """Return today's record, replacing a stale one. Caller holds the lock."""
        today = window_key_for(self._clock())
        record = self._records.get(session_id)
        if record is None or record.window_key != today:
            if record is not None:
                logger.debug(
                    "quota_window_rolled_over",
                    session_id=session_id,
                    previous_window=record.window_key,
                    window=today,
                )
            record = UsageRecord(session_id=session_id, window_key=today)
            self._records[session_id] = record
        return record

    @staticmethod
    def _validate(session_id: object, limit: object) -> None:
        if not isinstance(session_id, str) or not session_id:
            raise QuotaInputError("session_id must be a non-empty string")
        if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
            raise QuotaInputError(f"limit must be a positive integer, got {limit!r}")

    @staticmethod
    def _snapshot(record: UsageRecord, limit: int) -> QuotaUsage:
        return QuotaUsage(
            used=record.count,
            remaining=max(0, limit - record.count - record.pending),
            limit=limit,
            window_key=record.window_key,
        )

    def _claim(self, decision: QuotaDecision) -> Reservation:
        """Remove and return the outstanding reservation behind a decision."""
        reservation = decision.reservation
        if not decision.admitted or reservation is None:
            raise QuotaInputError("Cannot settle a decision that was not admitted")
        with self._registry_lock:
            claimed = self._outstanding.pop(reservation.reservation_id, None)
        if claimed is None:
            raise QuotaInputError(
                f"Reservation {reservation.reservation_id} is unknown or already settled"
            )
        return claimed

    def check_and_reserve(self, session_id: str, limit: int) -> QuotaDecision:
        """Admit one more operation for the session today, if quota allows.

        An admitted decision holds a reserved slot until it is committed or
        released. Checking never increments the committed count.

        Args:
            session_id: The caller-supplied session identifier.
            limit: Maximum successful operations per UTC day.

        Returns:
            QuotaDecision indicating whether the operation is admitted.

        Raises:
            QuotaInputError: If session_id or limit is malformed.
        """
        self._validate(session_id, limit)

        with self._lock_for(session_id):
            record = self._current_record(session_id)
            if record.count + record.pending >= limit:
                usage = self._snapshot(record, limit)
                logger.info(
                    "quota_denied",
                    session_id=session_id,
                    used=record.count,
                    pending=record.pending,
                    limit=limit,
                )
                return QuotaDecision(admitted=False, usage=usage)

            record.pending += 1
            reservation = Reservation(
                reservation_id=uuid4().hex,
                session_id=session_id,
                window_key=record.window_key,
                limit=limit,
            )
            with self._registry_lock:
                self._outstanding[reservation.reservation_id] = reservation
            usage = self._snapshot(record, limit)

        logger.debug(
            "quota_reserved",
            session_id=session_id,
            reservation_id=reservation.reservation_id,
            remaining=usage.remaining,
        )
        return QuotaDecision(admitted=True, usage=usage, reservation=reservation)

    def commit(self, decision: QuotaDecision) -> QuotaUsage:
        """Consume the reserved slot after the gated operation succeeded.

        If the UTC day rolled over since the reservation was taken, the
        commit applies to the fresh record for today.

        Args:
            decision: An admitted decision from check_and_reserve.

        Returns:
            The updated usage snapshot.

        Raises:
            QuotaInputError: If the decision was denied or already settled.
        """
        reservation = self._claim(decision)
        limit = reservation.limit

        with self._lock_for(reservation.session_id):
            record = self._current_record(reservation.session_id)
            if record.window_key == reservation.window_key:
                record.pending = max(0, record.pending - 1)
            record.count = min(limit, record.count + 1)
            usage = self._snapshot(record, limit)

        logger.info(
            "quota_committed",
            session_id=reservation.session_id,
            used=usage.used,
            remaining=usage.remaining,
        )
        return usage

    def release(self, decision: QuotaDecision) -> QuotaUsage:
        """Return the reserved slot after the gated operation failed.

        Args:
            decision: An admitted decision from check_and_reserve.

        Returns:
            The usage snapshot with the slot given back.

        Raises:
            QuotaInputError: If the decision was denied or already settled.
        """
        reservation = self._claim(decision)

        with self._lock_for(reservation.session_id):
            record = self._current_record(reservation.session_id)
            if record.window_key == reservation.window_key:
                record.pending = max(0, record.pending - 1)
            usage = self._snapshot(record, reservation.limit)

        logger.info(
            "quota_released",
            session_id=reservation.session_id,
            used=usage.used,
            remaining=usage.remaining,
        )
        return usage

    def peek(self, session_id: str, limit: int) -> QuotaUsage:
        """Report today's usage for a session without admitting anything.

        Rolls a stale record over to today, like check_and_reserve.

        Raises:
            QuotaInputError: If session_id or limit is malformed.
        """
        self._validate(session_id, limit)
        with self._lock_for(session_id):
            return self._snapshot(self._current_record(session_id), limit)
