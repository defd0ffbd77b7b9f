"""
Test Suite Configuration
"""
from datetime import date, datetime
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from academy_analytics.config import Settings
from academy_analytics.database.models import (
    Attendance,
    AttendanceStatus,
    Base,
    Center,
    Coach,
    Fixture,
    Payment,
    Session,
    Student,
    StudentStatus,
    WebsiteLead,
)
from academy_analytics.warehouse import DateRange

PRESENT = AttendanceStatus.PRESENT
ABSENT = AttendanceStatus.ABSENT


async def _create_engine(tmp_path, exclude=()) -> AsyncEngine:
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'academy.db'}",
        poolclass=NullPool,
    )
    tables = [t for t in Base.metadata.sorted_tables if t.name not in exclude]
    async with engine.begin() as conn:
        await conn.run_sync(lambda sync_conn: Base.metadata.create_all(sync_conn, tables=tables))
    return engine


@pytest_asyncio.fixture
async def test_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """SQLite file database with the full schema"""
    engine = await _create_engine(tmp_path)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def legacy_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """SQLite file database without the website lead table"""
    engine = await _create_engine(tmp_path, exclude=("website_leads",))
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def test_settings() -> Settings:
    return Settings(APP_ENV="testing")


@pytest.fixture
def january() -> DateRange:
    return DateRange(start=date(2024, 1, 1), end=date(2024, 1, 31))


def academy_rows(with_leads: bool = True) -> list:
    """
    Two active centres and one closed centre.

    North Field (id 1, display order 2) in January 2024:
    - players Arjun (Foundation, active), Bela (Elite, active, joined 15 Jan),
      Chirag (no program, inactive)
    - sessions on 8 Jan (coach 1, 90 + 60 minutes) and 15 Jan (coach 2)
    - 4 attendance marks, 3 present
    - payments of 3000 and 2000, two leads (one converted), one match

    South Arena (id 2, display order 1) in January 2024:
    - player Dev (Foundation, active), one session, one present mark
    - a 4000 payment, one lead, one match
    """
    rows = [
        Center(id=1, name="North Field", short_name="NF", locality="Hebbal",
               city="Bengaluru", state="Karnataka", is_active=True, display_order=2),
        Center(id=2, name="South Arena", short_name="SA", city="Bengaluru",
               is_active=True, display_order=1),
        Center(id=3, name="Old Ground", is_active=False, display_order=0),
        Coach(id=1, full_name="Asha Rao"),
        Coach(id=2, full_name="Vikram Shetty"),
        Student(id=1, full_name="Arjun Menon", date_of_birth=date(2010, 5, 20), center_id=1,
                program_type="Foundation", joining_date=date(2023, 6, 1), status=StudentStatus.ACTIVE),
        Student(id=2, full_name="Bela Kapoor", date_of_birth=None, center_id=1,
                program_type="Elite", joining_date=date(2024, 1, 15), status=StudentStatus.ACTIVE),
        Student(id=3, full_name="Chirag Das", date_of_birth=date(2009, 1, 2), center_id=1,
                program_type=None, joining_date=date(2023, 2, 1), status=StudentStatus.INACTIVE),
        Student(id=4, full_name="Dev Iyer", date_of_birth=date(2011, 8, 30), center_id=2,
                program_type="Foundation", joining_date=date(2023, 9, 1), status=StudentStatus.ACTIVE),
        Session(id=1, center_id=1, coach_id=1, session_date=date(2024, 1, 8), start_time="17:00", end_time="18:30"),
        Session(id=2, center_id=1, coach_id=1, session_date=date(2024, 1, 8), start_time="18:30", end_time="19:30"),
        Session(id=3, center_id=1, coach_id=2, session_date=date(2024, 1, 15), start_time="17:00:00", end_time="18:00:00"),
        Session(id=4, center_id=2, coach_id=2, session_date=date(2024, 1, 8), start_time="07:00", end_time="08:00"),
        Session(id=5, center_id=1, coach_id=1, session_date=date(2024, 3, 1), start_time="17:00", end_time="18:00"),
        Attendance(id=1, session_id=1, student_id=1, status=PRESENT),
        Attendance(id=2, session_id=1, student_id=2, status=ABSENT),
        Attendance(id=3, session_id=2, student_id=1, status=PRESENT),
        Attendance(id=4, session_id=3, student_id=2, status=PRESENT),
        Attendance(id=5, session_id=4, student_id=4, status=PRESENT),
        Attendance(id=6, session_id=5, student_id=1, status=PRESENT),
        Payment(id=1, student_id=1, center_id=1, payment_date=date(2024, 1, 8), amount=Decimal("3000"), payment_mode="UPI"),
        Payment(id=2, student_id=2, center_id=1, payment_date=date(2024, 1, 20), amount=Decimal("2000"), payment_mode=None),
        Payment(id=3, student_id=4, center_id=2, payment_date=date(2024, 1, 10), amount=Decimal("4000"), payment_mode="CASH"),
        Payment(id=4, student_id=1, center_id=1, payment_date=date(2024, 2, 5), amount=Decimal("3000"), payment_mode="UPI"),
        Fixture(id=1, center_id=1, coach_id=1, opponent="Lions FC", match_date=date(2024, 1, 20), match_type="LEAGUE"),
        Fixture(id=2, center_id=2, coach_id=2, opponent="Rovers", match_date=date(2024, 1, 21), match_type="FRIENDLY"),
    ]
    if with_leads:
        rows += [
            WebsiteLead(id=1, full_name="Ira Shah", phone_number="9800000001", email="ira@example.com",
                        center_id=1, program_type="Foundation", status="CONVERTED",
                        converted_player_id=2, created_at=datetime(2024, 1, 8, 10, 0)),
            WebsiteLead(id=2, full_name="Kabir Sen", phone_number=None, email="kabir@example.com",
                        center_id=1, program_type="Elite", status=None,
                        converted_player_id=None, created_at=datetime(2024, 1, 22, 16, 30)),
            WebsiteLead(id=3, full_name="Maya Pillai", phone_number="9800000003",
                        center_id=2, program_type="Foundation", status="NEW",
                        created_at=datetime(2024, 1, 9, 9, 15)),
        ]
    return rows


@pytest_asyncio.fixture
async def academy(session_factory) -> async_sessionmaker[AsyncSession]:
    """Session factory over the seeded academy"""
    async with session_factory() as session:
        session.add_all(academy_rows())
        await session.commit()
    return session_factory


@pytest_asyncio.fixture
async def legacy_academy(legacy_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory over a seeded academy that predates the lead table"""
    factory = async_sessionmaker(bind=legacy_engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        session.add_all(academy_rows(with_leads=False))
        await session.commit()
    return factory
