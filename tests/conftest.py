"""Shared test fixtures and helpers."""

import os
import tempfile
from datetime import date, time
from typing import Optional

# Configure before the application modules read the environment
os.environ.setdefault("DATABASE_URL", f"sqlite:///{tempfile.gettempdir()}/motoshop-test.db")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DB_LOG_SLOW_QUERIES", "false")

import pytest  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from motoshop.database import Base, build_engine  # noqa: E402
from motoshop.domain.scheduling.cancellation import AppointmentCancellationService  # noqa: E402
from motoshop.domain.scheduling.enums import (  # noqa: E402
    AppointmentStatus,
    AppointmentType,
    TechnicianState,
    UserRole,
)
from motoshop.domain.scheduling.locking import DaySchedulingLocks  # noqa: E402
from motoshop.domain.scheduling.rules import schedule_rules  # noqa: E402
from motoshop.domain.scheduling.service import AppointmentScheduler  # noqa: E402
from motoshop.models import Appointment, Technician, User, Vehicle  # noqa: E402

# 2024-06-10 is a Monday; plates ending in 1 or 2 are restricted that day
MONDAY = date(2024, 6, 10)
TODAY = date(2024, 6, 1)


class RecordingNotifier:
    """Collects notifications instead of sending them"""

    def __init__(self):
        self.sent = []

    def notify(self, notification, kind, reason=None):
        self.sent.append((notification, kind, reason))


class FailingNotifier:
    def notify(self, notification, kind, reason=None):
        raise RuntimeError("notification backend down")


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'motoshop.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def locks():
    return DaySchedulingLocks()


@pytest.fixture
def scheduler(db, notifier, locks):
    return AppointmentScheduler(db, notifier=notifier, locks=locks, clock=lambda: TODAY)


@pytest.fixture
def cancellation(db, notifier, locks):
    return AppointmentCancellationService(db, notifier=notifier, locks=locks)


def make_user(
    db,
    full_name: str = "Laura Gomez",
    email: Optional[str] = None,
    phone: Optional[str] = "3001234567",
    role: UserRole = UserRole.CLIENT,
) -> User:
    user = User(
        full_name=full_name,
        email=email or f"{full_name.lower().replace(' ', '.')}@example.com",
        phone=phone,
        role=role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_vehicle(
    db,
    owner: User,
    license_plate: str = "ABC123",
    brand: str = "Yamaha",
    model: str = "NMAX",
) -> Vehicle:
    vehicle = Vehicle(owner_id=owner.id, license_plate=license_plate, brand=brand, model=model)
    db.add(vehicle)
    db.commit()
    db.refresh(vehicle)
    return vehicle


def make_technician(
    db, full_name: str, state: TechnicianState = TechnicianState.AVAILABLE
) -> Technician:
    technician = Technician(full_name=full_name, state=state, position="Mechanic")
    db.add(technician)
    db.commit()
    db.refresh(technician)
    return technician


def make_appointment(
    db,
    vehicle: Vehicle,
    technician: Technician,
    appointment_date: date = MONDAY,
    start_time: time = time(8, 0),
    appointment_type: AppointmentType = AppointmentType.OIL_CHANGE,
    status: AppointmentStatus = AppointmentStatus.SCHEDULED,
) -> Appointment:
    end_time = schedule_rules.end_time_for(appointment_type, start_time)
    appointment = Appointment(
        vehicle_id=vehicle.id,
        technician_id=technician.id,
        appointment_type=appointment_type,
        appointment_date=appointment_date,
        start_time=start_time,
        end_time=end_time,
        status=status,
        cancellation_reason="Client request" if status == AppointmentStatus.CANCELLED else None,
    )
    db.add(appointment)
    db.commit()
    db.refresh(appointment)
    return appointment


@pytest.fixture
def client_user(db):
    return make_user(db)


@pytest.fixture
def vehicle(db, client_user):
    return make_vehicle(db, client_user)


@pytest.fixture
def auteco_vehicle(db, client_user):
    return make_vehicle(db, client_user, license_plate="QWE789", brand="AUTECO", model="Pulsar NS 200")


@pytest.fixture
def technicians(db):
    return [make_technician(db, name) for name in ("Andres Ruiz", "Bruno Diaz", "Carlos Mejia")]
