import os
from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')
os.environ.setdefault('REMINDER_ENABLED', 'false')

from careflow.database import Base  # noqa: E402
from careflow.models.appointment import Appointment, AppointmentStatus  # noqa: E402
from careflow.models.doctor import Doctor, Weekday, WorkSchedule  # noqa: E402
from careflow.models.hospital import Hospital  # noqa: E402
from careflow.models.reminder import Reminder  # noqa: E402,F401
from careflow.models.user import User  # noqa: E402

MONDAY = date(2026, 1, 5)
TUESDAY = date(2026, 1, 6)


@pytest.fixture
def session_factory(tmp_path):
    engine = create_engine(
        f'sqlite:///{tmp_path / "careflow-test.db"}',
        connect_args={'check_same_thread': False},
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_hospital(db):
    def _make_hospital(name: str = 'City General') -> Hospital:
        hospital = Hospital(name=name)
        db.add(hospital)
        db.commit()
        db.refresh(hospital)
        return hospital

    return _make_hospital


@pytest.fixture
def make_user(db):
    counter = {'value': 0}

    def _make_user(role: str = 'patient', phone_number: str | None = '9876543210', name: str | None = None) -> User:
        counter['value'] += 1
        user = User(
            email=f'{role}{counter["value"]}@example.com',
            name=name or f'{role.title()} {counter["value"]}',
            phone_number=phone_number,
            role=role,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_doctor(db):
    def _make_doctor(
        schedule: dict | None = None,
        hospital: Hospital | None = None,
        specialty: str = 'Cardiology',
        duration: int = 15,
        is_available: bool = True,
        user: User | None = None,
    ) -> Doctor:
        if schedule is None:
            schedule = {Weekday.MONDAY: ('09:00', '09:45')}

        doctor = Doctor(
            name='Asha Rao',
            specialty=specialty,
            hospital_id=hospital.id if hospital else None,
            appointment_duration=duration,
            is_available=is_available,
            user_id=user.id if user else None,
        )
        for weekday, window in schedule.items():
            from_time, to_time, *rest = window
            doctor.work_schedule.append(
                WorkSchedule(weekday=weekday, from_time=from_time, to_time=to_time, enabled=rest[0] if rest else True)
            )
        db.add(doctor)
        db.commit()
        db.refresh(doctor)
        return doctor

    return _make_doctor


@pytest.fixture
def book(db, make_user):
    def _book(
        doctor: Doctor,
        day: date,
        time: str,
        status: str = AppointmentStatus.PENDING.value,
        patient: User | None = None,
        hospital_id: int | None = None,
    ) -> Appointment:
        patient = patient or make_user()
        appointment = Appointment(
            patient_id=patient.id,
            doctor_id=doctor.id,
            hospital_id=hospital_id if hospital_id is not None else doctor.hospital_id,
            date=day,
            time=time,
            status=status,
            reason='Checkup',
        )
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
        return appointment

    return _book


@pytest.fixture
def client(session_factory, monkeypatch):
    from fastapi.testclient import TestClient

    from careflow.auth.dependencies import get_db
    from careflow.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    monkeypatch.setattr('careflow.routes.availability_routes.ensure_database_ready', lambda: None)
    monkeypatch.setattr('careflow.routes.appointment_routes.ensure_database_ready', lambda: None)
    monkeypatch.setattr('careflow.routes.doctor_routes.ensure_database_ready', lambda: None)
    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_header():
    from careflow.auth.jwt_handler import create_access_token

    def _auth_header(user: User) -> dict[str, str]:
        return {'Authorization': f'Bearer {create_access_token(subject=user.email, role=user.role)}'}

    return _auth_header
