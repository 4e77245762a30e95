"""Fire every reminder call that is due, then exit.

For deployments that drive reminders from cron instead of the API process.

Usage:
    python -m careflow.dispatch_reminders
"""
import logging
import sys

from sqlalchemy.exc import SQLAlchemyError

from careflow.database import ensure_reminder_schema
from careflow.models import appointment, doctor, hospital, reminder, user  # noqa: F401
from careflow.scheduling.reminders import run_dispatch_pass


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    try:
        ensure_reminder_schema()
        summary = run_dispatch_pass()
    except SQLAlchemyError as exc:
        print("Reminder dispatch failed:", exc, file=sys.stderr)
        sys.exit(1)
    print(", ".join(f"{status}={count}" for status, count in summary.items()))


if __name__ == "__main__":
    main()
