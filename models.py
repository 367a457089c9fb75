from enum import Enum
from typing import Optional
from datetime import date, datetime, timezone
from sqlmodel import SQLModel, Field
from sqlalchemy import UniqueConstraint


class BookingStatus(str, Enum):
    CONFIRMED = "Confirmed"
    CANCELLED = "Cancelled"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Academy(SQLModel, table=True):
    __tablename__ = "academies"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    email: str = Field(index=True, unique=True)
    city: Optional[str] = Field(default=None, index=True)


class Sport(SQLModel, table=True):
    """Operating window and court count for one sport at one academy."""
    __tablename__ = "sports"
    __table_args__ = (
        UniqueConstraint("academy_id", "sport_name", name="unique_academy_sport"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    academy_id: int = Field(foreign_key="academies.id", index=True)
    sport_name: str
    start_time: str  # "HH:MM"
    end_time: str  # "HH:MM"
    number_of_courts: int


class CourtPricing(SQLModel, table=True):
    __tablename__ = "court_pricing"
    __table_args__ = (
        UniqueConstraint("sport_id", "court_number", name="unique_court_pricing"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    sport_id: int = Field(foreign_key="sports.id", index=True)
    court_number: int


class PriceTier(SQLModel, table=True):
    """Unit price for the one-hour block starting at hour_mark."""
    __tablename__ = "price_tiers"
    __table_args__ = (
        # At most one tier per hour mark per court
        UniqueConstraint("court_pricing_id", "hour_mark", name="unique_price_tier"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    court_pricing_id: int = Field(foreign_key="court_pricing.id", index=True)
    hour_mark: str  # "HH:MM"
    unit_price: float


class CourtDay(SQLModel, table=True):
    """Write guard for one court on one calendar day.

    Every booking write bumps `version` with a compare-and-set, so two
    writers that read the same court day can't both commit.
    """
    __tablename__ = "court_days"
    __table_args__ = (
        UniqueConstraint("academy_id", "sport", "court_number", "booking_date", name="unique_court_day"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    academy_id: int = Field(index=True)
    sport: str
    court_number: int
    booking_date: date
    version: int = 0


class Booking(SQLModel, table=True):
    __tablename__ = "bookings"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_email: str = Field(index=True)
    academy_id: int = Field(foreign_key="academies.id", index=True)
    sport: str
    court_number: int
    booking_date: date = Field(index=True)
    start_time: str  # "HH:MM"
    end_time: str  # "HH:MM"
    price: float
    status: str = Field(default=BookingStatus.CONFIRMED.value, index=True)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
