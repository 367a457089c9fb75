from enum import Enum
from datetime import date
from typing import Annotated, List, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, model_validator

from timeutils import TimeFormatError, parse_time


class RejectionReason(str, Enum):
    OUT_OF_HOURS = "OutOfHours"
    SLOT_TAKEN = "SlotTaken"
    SPORT_NOT_OFFERED = "SportNotOffered"
    PRICING_MISSING = "PricingMissing"
    NOT_FOUND_OR_NOT_OWNER = "NotFoundOrNotOwner"
    ALREADY_CANCELLED = "AlreadyCancelled"
    ACADEMY_NOT_FOUND = "AcademyNotFound"
    COURT_NOT_FOUND = "CourtNotFound"


class Rejected(BaseModel):
    """A normal "no" from the booking core. Never raised."""
    reason: RejectionReason
    detail: str = ""


class CourtAvailability(BaseModel):
    court_number: int
    available: bool
    price: float


def _check_time(value: str) -> str:
    try:
        parse_time(value)
    except TimeFormatError as e:
        raise ValueError(str(e)) from e
    return value


HHMM = Annotated[str, AfterValidator(_check_time)]


# --- Academy configuration ---

class PriceIn(BaseModel):
    time: HHMM
    price: float = Field(ge=0)


class CourtPricingIn(BaseModel):
    court_number: int = Field(ge=1)
    prices: List[PriceIn] = []

    @model_validator(mode="after")
    def unique_hour_marks(self):
        marks = [parse_time(p.time) for p in self.prices]
        if len(marks) != len(set(marks)):
            raise ValueError(f"Duplicate price time for court {self.court_number}")
        return self


class SportConfig(BaseModel):
    sport_name: str = Field(min_length=1)
    start_time: HHMM
    end_time: HHMM
    number_of_courts: int = Field(ge=1)
    pricing: List[CourtPricingIn] = []

    @model_validator(mode="after")
    def check_window_and_courts(self):
        if parse_time(self.start_time) >= parse_time(self.end_time):
            raise ValueError("start_time must be before end_time")

        numbers = [p.court_number for p in self.pricing]
        if len(numbers) != len(set(numbers)):
            raise ValueError("Duplicate court_number in pricing")
        if any(n > self.number_of_courts for n in numbers):
            raise ValueError("Pricing references a court beyond number_of_courts")
        return self


class SportsUpdate(BaseModel):
    sports: List[SportConfig]

    @model_validator(mode="after")
    def unique_sports(self):
        names = [s.sport_name for s in self.sports]
        if len(names) != len(set(names)):
            raise ValueError("Duplicate sport_name")
        return self


class AcademyCreate(BaseModel):
    name: str
    email: str
    city: Optional[str] = None


class AcademySearch(BaseModel):
    city: str
    sport: str


class AcademyOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    city: Optional[str]


# --- Availability & bookings ---

class AvailabilityRequest(BaseModel):
    academy_id: int
    sport: str
    booking_date: date
    start_time: HHMM
    duration_minutes: int = Field(gt=0)


class CourtAvailabilityRequest(AvailabilityRequest):
    court_number: int


class BookingCreate(CourtAvailabilityRequest):
    user_email: str


class BookingCancel(BaseModel):
    user_email: str


class BookingModify(BaseModel):
    user_email: str
    court_number: Optional[int] = None
    booking_date: Optional[date] = None
    start_time: Optional[HHMM] = None
    duration_minutes: Optional[int] = Field(default=None, gt=0)


class BookingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_email: str
    academy_id: int
    sport: str
    court_number: int
    booking_date: date
    start_time: str
    end_time: str
    price: float
    status: str
