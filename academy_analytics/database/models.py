"""
Database Models - Academy Record Store

ORM mapping of the transactional tables the analytics core reads from. The
core never writes to them; ownership lies with the administrative
application that manages centres, players, sessions and payments.

Entity tables:
- Center: training centres
- Coach: coaching staff
- Student: enrolled players

Transaction tables:
- Session: scheduled training sessions
- Attendance: one mark per (session, student)
- Payment: fee payments (every row is a completed payment)
- WebsiteLead: trial requests captured by the website (optional table)
- Fixture: matches
"""

from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Optional, List

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


# =============================================================================
# ENUMERATIONS
# =============================================================================

class StudentStatus(str, Enum):
    """Player enrolment status"""
    ACTIVE = "ACTIVE"
    TRIAL = "TRIAL"
    INACTIVE = "INACTIVE"


class AttendanceStatus(str, Enum):
    """Attendance mark"""
    PRESENT = "PRESENT"
    ABSENT = "ABSENT"


# =============================================================================
# ENTITY TABLES
# =============================================================================

class Center(Base):
    """Training centre"""
    __tablename__ = "centers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    short_name: Mapped[Optional[str]] = mapped_column(String(50))
    locality: Mapped[Optional[str]] = mapped_column(String(100))
    city: Mapped[Optional[str]] = mapped_column(String(100))
    state: Mapped[Optional[str]] = mapped_column(String(100))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    display_order: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now()
    )

    students: Mapped[List["Student"]] = relationship(back_populates="center")
    sessions: Mapped[List["Session"]] = relationship(back_populates="center")

    __table_args__ = (
        Index("ix_centers_active_order", "is_active", "display_order"),
    )


class Coach(Base):
    """Coaching staff member"""
    __tablename__ = "coaches"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(200))

    sessions: Mapped[List["Session"]] = relationship(back_populates="coach")


class Student(Base):
    """
    Enrolled player.

    Age is not stored; it is derived from date_of_birth when read.
    """
    __tablename__ = "students"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    date_of_birth: Mapped[Optional[date]] = mapped_column(Date)
    center_id: Mapped[int] = mapped_column(ForeignKey("centers.id"), nullable=False)
    program_type: Mapped[Optional[str]] = mapped_column(String(100))
    joining_date: Mapped[Optional[date]] = mapped_column(Date)
    status: Mapped[StudentStatus] = mapped_column(
        SQLEnum(StudentStatus), default=StudentStatus.ACTIVE
    )
    monthly_fee_amount: Mapped[Optional[int]] = mapped_column(Integer)

    center: Mapped["Center"] = relationship(back_populates="students")
    attendance: Mapped[List["Attendance"]] = relationship(back_populates="student")
    payments: Mapped[List["Payment"]] = relationship(back_populates="student")

    __table_args__ = (
        Index("ix_students_center_status", "center_id", "status"),
        Index("ix_students_program", "program_type"),
    )


# =============================================================================
# TRANSACTION TABLES
# =============================================================================

class Session(Base):
    """
    Training session.

    start_time and end_time are wall-clock strings ("HH:MM" or "HH:MM:SS")
    on session_date.
    """
    __tablename__ = "sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    center_id: Mapped[int] = mapped_column(ForeignKey("centers.id"), nullable=False)
    coach_id: Mapped[int] = mapped_column(ForeignKey("coaches.id"), nullable=False)
    session_date: Mapped[date] = mapped_column(Date, nullable=False)
    start_time: Mapped[str] = mapped_column(String(8), nullable=False)
    end_time: Mapped[str] = mapped_column(String(8), nullable=False)

    center: Mapped["Center"] = relationship(back_populates="sessions")
    coach: Mapped["Coach"] = relationship(back_populates="sessions")
    attendance: Mapped[List["Attendance"]] = relationship(back_populates="session")

    __table_args__ = (
        Index("ix_sessions_center_date", "center_id", "session_date"),
        Index("ix_sessions_coach_date", "coach_id", "session_date"),
    )


class Attendance(Base):
    """Attendance mark for one student at one session"""
    __tablename__ = "attendance"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[int] = mapped_column(ForeignKey("sessions.id"), nullable=False)
    student_id: Mapped[int] = mapped_column(ForeignKey("students.id"), nullable=False)
    status: Mapped[AttendanceStatus] = mapped_column(
        SQLEnum(AttendanceStatus), nullable=False
    )

    session: Mapped["Session"] = relationship(back_populates="attendance")
    student: Mapped["Student"] = relationship(back_populates="attendance")

    __table_args__ = (
        UniqueConstraint("session_id", "student_id", name="uq_attendance_session_student"),
    )


class Payment(Base):
    """Fee payment. There is no failure state; every row has been paid."""
    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    student_id: Mapped[int] = mapped_column(ForeignKey("students.id"), nullable=False)
    center_id: Mapped[int] = mapped_column(ForeignKey("centers.id"), nullable=False)
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    payment_mode: Mapped[Optional[str]] = mapped_column(String(50))

    student: Mapped["Student"] = relationship(back_populates="payments")

    __table_args__ = (
        Index("ix_payments_center_date", "center_id", "payment_date"),
    )


class WebsiteLead(Base):
    """
    Trial request captured by the marketing website.

    Deployments that have not run the CRM migration do not have this table;
    readers must cope with its absence.
    """
    __tablename__ = "website_leads"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    phone_number: Mapped[Optional[str]] = mapped_column(String(30))
    email: Mapped[Optional[str]] = mapped_column(String(200))
    center_id: Mapped[Optional[int]] = mapped_column(ForeignKey("centers.id"))
    program_type: Mapped[Optional[str]] = mapped_column(String(100))
    status: Mapped[Optional[str]] = mapped_column(String(30))
    converted_player_id: Mapped[Optional[int]] = mapped_column(ForeignKey("students.id"))
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now()
    )

    __table_args__ = (
        Index("ix_website_leads_center_created", "center_id", "created_at"),
    )


class Fixture(Base):
    """Match fixture. Results are not recorded."""
    __tablename__ = "fixtures"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    center_id: Mapped[int] = mapped_column(ForeignKey("centers.id"), nullable=False)
    coach_id: Mapped[Optional[int]] = mapped_column(ForeignKey("coaches.id"))
    opponent: Mapped[Optional[str]] = mapped_column(String(200))
    match_date: Mapped[date] = mapped_column(Date, nullable=False)
    match_type: Mapped[Optional[str]] = mapped_column(String(50))

    __table_args__ = (
        Index("ix_fixtures_center_date", "center_id", "match_date"),
    )
