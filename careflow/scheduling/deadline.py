"""Timeout and cancellation signal for long-running read paths."""

import time
from threading import Event

from careflow.core.errors import QueryTimeout


class Deadline:
    """Caller-supplied bound on how long a query may keep working.

    Either limit is optional. ``check()`` is called between units of work
    (one doctor, one day) and raises ``QueryTimeout`` once the time budget is
    spent or the cancel event has been set.
    """

    def __init__(self, timeout_seconds: float | None = None, cancel_event: Event | None = None) -> None:
        self._expires_at = None if timeout_seconds is None else time.monotonic() + timeout_seconds
        self._cancel_event = cancel_event

    @property
    def cancelled(self) -> bool:
        return self._cancel_event is not None and self._cancel_event.is_set()

    @property
    def expired(self) -> bool:
        return self._expires_at is not None and time.monotonic() >= self._expires_at

    def check(self) -> None:
        if self.cancelled:
            raise QueryTimeout('Query was cancelled.')
        if self.expired:
            raise QueryTimeout('Query did not finish before its deadline.')


def check_deadline(deadline: Deadline | None) -> None:
    if deadline is not None:
        deadline.check()
