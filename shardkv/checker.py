"""Consistency checking of reads against the writes recorded for each key.

Every write is recorded, including failed ones, because a failed write may
still have partially succeeded. A successful write that ran with no other
write to the same key in flight replaces the set of acceptable values.
Any other write only adds to that set.

A read is only checked when no write to its key started or finished while
the read was in progress. This is tracked with a per-key version, bumped on
every completed write, and a per-key count of writes in flight.

All times are seconds on the :func:`time.monotonic` clock.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, replace


class InconsistencyError(Exception):
    """A read returned a result that no recorded write can explain."""


@dataclass(frozen=True)
class StateValue:
    """A value that may have been stored by a write, with its expiry bounds."""

    value: str
    written_at: float
    maybe_expired_by: float
    definitely_expired_by: float
    error: BaseException | None = None
    overwritten_at: float | None = None

    def __str__(self) -> str:
        now = time.monotonic()
        ttl_remaining = int((self.maybe_expired_by - now) * 1000)
        written_ago = int((now - self.written_at) * 1000)
        return (
            f"{{val={self.value}, ttlRemaining={ttl_remaining}ms, "
            f"writtenAtAgo={written_ago}ms, wasError={self.error is not None}}}, "
        )


def _describe(values) -> str:
    return "".join(str(value) for value in values)


class ConsistencyChecker:
    """Records writes and checks that reads return an acceptable value.

    ``check`` turns all checking off when false; ``check_ttl`` turns off the
    check for values returned after they must have expired;
    ``ttl_check_buffer`` is the slack in seconds allowed on expiry.
    """

    def __init__(self, check: bool = True, check_ttl: bool = True,
                 ttl_check_buffer: float = 0.01) -> None:
        self.check = check
        self.check_ttl = check_ttl
        self.ttl_check_buffer = ttl_check_buffer
        self.checks_run = 0
        self._lock = threading.Lock()
        self._values: dict[str, dict[str, StateValue]] = {}
        self._overwritten: dict[str, dict[str, StateValue]] = {}
        self._version: dict[str, int] = {}
        self._pending: dict[str, int] = {}

    def begin_write(self, key: str) -> int:
        """Note a write starting on ``key`` and return the key's current version."""
        if not self.check:
            return 0
        with self._lock:
            self._pending[key] = self._pending.get(key, 0) + 1
            return self._version.get(key, 0)

    def complete_write(self, key: str, value: str, error, initial_version: int,
                       maybe_expired_by: float, definitely_expired_by: float) -> None:
        """Record the outcome of a write started with :meth:`begin_write`.

        Raises ``ValueError`` if ``value`` was already written to ``key``:
        values must be unique per key.
        """
        if not self.check:
            return
        with self._lock:
            now = time.monotonic()
            new_value = StateValue(
                value=value,
                written_at=now,
                maybe_expired_by=maybe_expired_by,
                definitely_expired_by=definitely_expired_by + self.ttl_check_buffer,
                error=error,
            )
            current = self._values.setdefault(key, {})
            overwritten = self._overwritten.setdefault(key, {})
            if value in current or value in overwritten:
                raise ValueError("duplicate values are not supported!")

            exclusive = (
                error is None
                and initial_version == self._version.get(key, 0)
                and self._pending.get(key, 0) == 1
            )
            if exclusive:
                for old in current.values():
                    overwritten[old.value] = replace(old, overwritten_at=now)
                self._values[key] = {value: new_value}
            else:
                current[value] = new_value

            self._pending[key] = self._pending.get(key, 0) - 1
            self._version[key] = self._version.get(key, 0) + 1

    def begin_read(self, key: str) -> tuple[int, bool]:
        """Return ``(version, writes_pending)`` for ``key`` before a read."""
        if not self.check:
            return 0, False
        with self._lock:
            return self._version.get(key, 0), self._pending.get(key, 0) != 0

    def check_read_correct(self, key: str, value: str, was_found: bool, start_time: float,
                           initial_version: int, writes_pending: bool) -> None:
        """Raise :class:`InconsistencyError` if a read's result cannot be right.

        Reads that overlapped a write to the same key are not checked.
        """
        if not self.check:
            return
        with self._lock:
            if (self._version.get(key, 0) != initial_version or writes_pending
                    or self._pending.get(key, 0) != 0):
                return
            self.checks_run += 1

            now = time.monotonic()
            values = self._values.get(key, {})
            if not was_found:
                unexpired = [v for v in values.values() if not v.maybe_expired_by < now]
                some_expired = not values or len(unexpired) < len(values)
                if not some_expired:
                    raise InconsistencyError(
                        "no value found, but there unexpired potential values: "
                        + _describe(unexpired)
                    )
                return

            recorded = values.get(value)
            if recorded is None:
                old = self._overwritten.get(key, {}).get(value)
                if old is not None:
                    ago = int((now - (old.overwritten_at or now)) * 1000)
                    raise InconsistencyError(
                        f"incorrect value {value}; was overrwritten {ago}ms ago"
                    )
                raise InconsistencyError(f"incorrect value {value}; never written to key")

            if (self.check_ttl and recorded.error is None
                    and recorded.definitely_expired_by < start_time):
                diff = int((start_time - recorded.maybe_expired_by) * 1000)
                raise InconsistencyError(
                    f"value {value} was written, but expired at least {diff}ms ago"
                )