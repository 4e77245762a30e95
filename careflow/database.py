import os
from dotenv import load_dotenv
from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker


load_dotenv()
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./careflow.db")

_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, connect_args=_connect_args)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_appointment_schema_checked = False
_reminder_schema_checked = False


def ensure_appointment_schema() -> None:
    """Bring an existing appointments table up to date.

    ``create_all`` never alters tables that already exist, so columns added
    after the first deployment and the active-slot unique index are created
    here once per process.
    """
    global _appointment_schema_checked

    if _appointment_schema_checked:
        return

    with _schema_lock:
        if _appointment_schema_checked:
            return

        inspector = inspect(engine)

        if 'appointments' not in inspector.get_table_names():
            _appointment_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('appointments')}
        migration_steps = [
            ('token_number', 'ALTER TABLE appointments ADD COLUMN token_number VARCHAR'),
            ('reason', 'ALTER TABLE appointments ADD COLUMN reason VARCHAR'),
            ('created_at', 'ALTER TABLE appointments ADD COLUMN created_at TIMESTAMP'),
        ]

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_appointments_doctor_date ON appointments(doctor_id, date)')
            )
            connection.execute(
                text(
                    'CREATE UNIQUE INDEX IF NOT EXISTS uq_appointments_active_slot '
                    'ON appointments(doctor_id, COALESCE(hospital_id, 0), date, time) '
                    "WHERE status != 'Cancelled'"
                )
            )

        _appointment_schema_checked = True


def ensure_reminder_schema() -> None:
    global _reminder_schema_checked

    if _reminder_schema_checked:
        return

    with _schema_lock:
        if _reminder_schema_checked:
            return

        inspector = inspect(engine)

        if 'reminders' not in inspector.get_table_names():
            _reminder_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('reminders')}
        migration_steps = [
            ('attempts', 'ALTER TABLE reminders ADD COLUMN attempts INTEGER DEFAULT 0'),
            ('last_error', 'ALTER TABLE reminders ADD COLUMN last_error VARCHAR'),
            ('sent_at', 'ALTER TABLE reminders ADD COLUMN sent_at TIMESTAMP'),
            ('claimed_at', 'ALTER TABLE reminders ADD COLUMN claimed_at TIMESTAMP'),
        ]

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_reminders_status_fire_at ON reminders(status, fire_at)')
            )

        _reminder_schema_checked = True
