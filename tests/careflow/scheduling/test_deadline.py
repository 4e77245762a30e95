from threading import Event

import pytest

from careflow.core.errors import QueryTimeout
from careflow.scheduling.deadline import Deadline, check_deadline


def test_unbounded_deadline_never_fires() -> None:
    deadline = Deadline()

    deadline.check()
    assert not deadline.expired
    assert not deadline.cancelled


def test_spent_budget_raises_timeout() -> None:
    deadline = Deadline(timeout_seconds=0)

    assert deadline.expired
    with pytest.raises(QueryTimeout, match='deadline'):
        deadline.check()


def test_cancel_event_raises_timeout() -> None:
    cancel_event = Event()
    deadline = Deadline(timeout_seconds=60, cancel_event=cancel_event)
    deadline.check()

    cancel_event.set()

    with pytest.raises(QueryTimeout, match='cancelled'):
        deadline.check()


def test_check_deadline_accepts_none() -> None:
    check_deadline(None)
