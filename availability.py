"""Availability Resolver.

Decides whether a [start, start + duration) interval on a court is free on
a given date, and what it would cost. Everything here only reads: a check is
advisory and may be stale by the time a booking is written, which is why the
ledger re-runs `evaluate_slot` inside its own write.
"""
import logging
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple, Union

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

import academies
from models import Booking, BookingStatus, Sport
from pricing import Tier, calculate_price
from schemas import CourtAvailability, Rejected, RejectionReason
from timeutils import TimeFormatError, overlaps, parse_time

logger = logging.getLogger(__name__)

Interval = Tuple[int, int]


@dataclass
class SlotDecision:
    start: int
    end: int
    reason: Optional[RejectionReason] = None
    price: float = 0.0

    @property
    def available(self) -> bool:
        return self.reason is None


def requested_interval(start_time: str, duration_minutes: int) -> Interval:
    if duration_minutes <= 0:
        raise TimeFormatError(f"Duration must be positive, got {duration_minutes}")
    start = parse_time(start_time)
    return start, start + duration_minutes


def booking_intervals(bookings: Iterable[Booking]) -> List[Interval]:
    return [(parse_time(b.start_time), parse_time(b.end_time)) for b in bookings]


def evaluate_slot(
    sport: Sport,
    tiers: Optional[List[Tier]],
    existing: List[Interval],
    start_time: str,
    duration_minutes: int,
) -> SlotDecision:
    """Pure free/busy + price decision for one court.

    `tiers` is None when the court has no pricing entry at all; the slot is
    still evaluated and the caller decides whether that matters.
    """
    start, end = requested_interval(start_time, duration_minutes)
    decision = SlotDecision(start=start, end=end)

    # 1. The interval must sit inside the sport's operating window
    if start < parse_time(sport.start_time) or end > parse_time(sport.end_time):
        decision.reason = RejectionReason.OUT_OF_HOURS
        return decision

    # 2. No overlap with any confirmed booking
    for b_start, b_end in existing:
        if overlaps(start, end, b_start, b_end):
            decision.reason = RejectionReason.SLOT_TAKEN
            return decision

    # 3. Price it
    if tiers is not None:
        decision.price = calculate_price(tiers, start_time, duration_minutes)
    return decision


async def confirmed_bookings(
    session: AsyncSession,
    academy_id: int,
    sport: str,
    booking_date: date,
    court_number: Optional[int] = None,
    exclude_booking_id: Optional[int] = None,
) -> List[Booking]:
    statement = select(Booking).where(
        Booking.academy_id == academy_id,
        Booking.sport == sport,
        Booking.booking_date == booking_date,
        Booking.status == BookingStatus.CONFIRMED.value,
    )
    if court_number is not None:
        statement = statement.where(Booking.court_number == court_number)
    if exclude_booking_id is not None:
        statement = statement.where(Booking.id != exclude_booking_id)

    result = await session.execute(statement.execution_options(populate_existing=True))
    return list(result.scalars().all())


async def _load_sport(session: AsyncSession, academy_id: int, sport_name: str) -> Union[Sport, Rejected]:
    if await academies.get_academy(session, academy_id) is None:
        return Rejected(reason=RejectionReason.ACADEMY_NOT_FOUND, detail=f"Academy {academy_id} not found")

    sport = await academies.get_sport(session, academy_id, sport_name)
    if sport is None:
        return Rejected(reason=RejectionReason.SPORT_NOT_OFFERED, detail=f"Sport {sport_name!r} not offered")
    return sport


async def check_court(
    session: AsyncSession,
    academy_id: int,
    sport_name: str,
    court_number: int,
    booking_date: date,
    start_time: str,
    duration_minutes: int,
) -> Union[CourtAvailability, Rejected]:
    """Availability and price of a single court."""
    sport = await _load_sport(session, academy_id, sport_name)
    if isinstance(sport, Rejected):
        return sport
    if not 1 <= court_number <= sport.number_of_courts:
        return Rejected(reason=RejectionReason.COURT_NOT_FOUND, detail=f"Court {court_number} not found")

    bookings = await confirmed_bookings(session, academy_id, sport_name, booking_date, court_number)
    tiers = await academies.get_court_tiers(session, sport.id, court_number)

    decision = evaluate_slot(sport, tiers, booking_intervals(bookings), start_time, duration_minutes)
    return CourtAvailability(court_number=court_number, available=decision.available, price=decision.price)


async def check_sport(
    session: AsyncSession,
    academy_id: int,
    sport_name: str,
    booking_date: date,
    start_time: str,
    duration_minutes: int,
) -> Union[List[CourtAvailability], Rejected]:
    """Availability and price of every court of a sport, court 1 first."""
    sport = await _load_sport(session, academy_id, sport_name)
    if isinstance(sport, Rejected):
        return sport

    # Step 1: ALL confirmed bookings of the sport on that date (single query)
    bookings = await confirmed_bookings(session, academy_id, sport_name, booking_date)

    # Step 2: Lookup by court number
    by_court: Dict[int, List[Booking]] = {}
    for b in bookings:
        by_court.setdefault(b.court_number, []).append(b)
    tiers = await academies.get_sport_tiers(session, sport.id)

    # Step 3: One entry per court
    courts = []
    for court_number in range(1, sport.number_of_courts + 1):
        decision = evaluate_slot(
            sport,
            tiers.get(court_number),
            booking_intervals(by_court.get(court_number, [])),
            start_time,
            duration_minutes,
        )
        courts.append(CourtAvailability(court_number=court_number, available=decision.available, price=decision.price))

    logger.debug(
        f"Checked {sport_name} at academy {academy_id} on {booking_date} {start_time}+{duration_minutes}m: "
        f"{sum(c.available for c in courts)}/{len(courts)} free"
    )
    return courts
