"""
Test configuration and shared fixtures for the class series test suite.

Every test gets its own in-memory SQLite database with the schema created
from the SQLAlchemy models, so services can commit freely.
"""

import pytest
from datetime import date, time
from typing import Generator, List, Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from core.database import Base

# Import all models to ensure they're registered with SQLAlchemy before create_all
from models import ClassSeries, ClassSession, ConflictPolicy, UserAvailability, Vacation
from shared_types import AvailabilityStatus, AvailabilityType, SeriesStatus, SessionStatus


TEACHER_ID = 101
STUDENT_ID = 201
BOOTH_ID = 301
BRANCH_ID = 1


@pytest.fixture(scope="function")
def db_engine():
    """
    Create an in-memory SQLite engine for one test.

    StaticPool keeps the single connection alive so the schema survives, and
    lets TestClient's worker thread share it.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Provide a database session bound to the per-test engine."""
    TestingSession = sessionmaker(bind=db_engine, autoflush=False, expire_on_commit=False)
    session = TestingSession()

    yield session

    session.close()


# Helper functions for creating test records
def create_series(
    db_session: Session,
    days_of_week: Optional[List[int]] = None,
    start_time: time = time(15, 0),
    end_time: time = time(16, 0),
    start_date: date = date(2025, 1, 6),
    end_date: Optional[date] = None,
    teacher_id: Optional[int] = TEACHER_ID,
    student_id: Optional[int] = STUDENT_ID,
    booth_id: Optional[int] = BOOTH_ID,
    branch_id: Optional[int] = BRANCH_ID,
    status: str = SeriesStatus.ACTIVE.value,
    last_generated_through: Optional[date] = None,
    conflict_policy: Optional[ConflictPolicy] = None,
    **kwargs
) -> ClassSeries:
    """
    Create a class series.

    Defaults to a Monday/Wednesday 15:00-16:00 lesson starting Monday 2025-01-06.
    """
    series = ClassSeries(
        days_of_week=days_of_week if days_of_week is not None else [0, 2],
        start_time=start_time,
        end_time=end_time,
        start_date=start_date,
        end_date=end_date,
        teacher_id=teacher_id,
        student_id=student_id,
        booth_id=booth_id,
        branch_id=branch_id,
        status=status,
        last_generated_through=last_generated_through,
        **kwargs
    )
    if conflict_policy is not None:
        series.set_validated_conflict_policy(conflict_policy)
    db_session.add(series)
    db_session.commit()
    return series


def create_availability(
    db_session: Session,
    user_id: int,
    availability_type: AvailabilityType,
    day_of_week: Optional[int] = None,
    on_date: Optional[date] = None,
    start_time: Optional[time] = None,
    end_time: Optional[time] = None,
    full_day: bool = False,
    status: AvailabilityStatus = AvailabilityStatus.APPROVED
) -> UserAvailability:
    """Create an availability record (APPROVED unless told otherwise)."""
    record = UserAvailability(
        user_id=user_id,
        type=availability_type.value,
        status=status.value,
        day_of_week=day_of_week,
        date=on_date,
        full_day=full_day,
        start_time=start_time,
        end_time=end_time,
    )
    db_session.add(record)
    db_session.commit()
    return record


def create_vacation(
    db_session: Session,
    start_date: date,
    end_date: date,
    is_recurring: bool = False,
    branch_id: int = BRANCH_ID,
    name: str = "Vacation"
) -> Vacation:
    """Create a branch vacation."""
    vacation = Vacation(
        branch_id=branch_id,
        name=name,
        start_date=start_date,
        end_date=end_date,
        is_recurring=is_recurring,
    )
    db_session.add(vacation)
    db_session.commit()
    return vacation


def create_session(
    db_session: Session,
    on_date: date,
    start_time: time,
    end_time: time,
    series_id: Optional[int] = None,
    teacher_id: Optional[int] = None,
    student_id: Optional[int] = None,
    booth_id: Optional[int] = None,
    is_cancelled: bool = False
) -> ClassSession:
    """Create an existing class session (a booking outside the series under test by default)."""
    session = ClassSession(
        series_id=series_id,
        date=on_date,
        start_time=start_time,
        end_time=end_time,
        duration=(end_time.hour * 60 + end_time.minute) - (start_time.hour * 60 + start_time.minute),
        teacher_id=teacher_id,
        student_id=student_id,
        booth_id=booth_id,
        status=SessionStatus.CONFIRMED.value,
        is_cancelled=is_cancelled,
    )
    db_session.add(session)
    db_session.commit()
    return session


def weekly_availability(db_session: Session, user_id: int, days: List[int], start: time, end: time) -> None:
    """Give a user the same approved REGULAR window on several weekdays."""
    for day in days:
        create_availability(
            db_session, user_id, AvailabilityType.REGULAR,
            day_of_week=day, start_time=start, end_time=end
        )
