"""Booking Ledger.

The authoritative store of Confirmed/Cancelled bookings. Two Confirmed
bookings on the same court and date never overlap.

Writes follow the same pattern everywhere:

    read court_day.version -> read confirmed bookings -> evaluate
    -> UPDATE court_days SET version = version + 1 WHERE version = seen
    -> write booking -> COMMIT

If the compare-and-set touches no row, another writer committed on that
court day after our read: end the transaction and start over from the
read. Rejections and lost races end their transaction with a commit of
nothing, so instances the caller loaded through the same session stay
usable afterwards.
Bookings are never deleted; cancelling flips the status.
"""
import logging
from datetime import date
from typing import List, Optional, Tuple, Union

from sqlalchemy import update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

import academies
import config
from availability import booking_intervals, confirmed_bookings, evaluate_slot, requested_interval
from models import Booking, BookingStatus, CourtDay, utcnow
from schemas import Rejected, RejectionReason
from timeutils import format_time, parse_time

logger = logging.getLogger(__name__)


class LedgerContentionError(RuntimeError):
    """A write kept losing its court day to concurrent writers."""


def _reject(reason: RejectionReason, detail: str) -> Rejected:
    logger.info(f"Booking rejected: {reason.value} ({detail})")
    return Rejected(reason=reason, detail=detail)


async def _court_day_version(
    session: AsyncSession, academy_id: int, sport: str, court_number: int, booking_date: date
) -> Tuple[int, int]:
    """Returns (id, version) of the court day, creating it on first use.

    Creation is an insert-or-ignore, so losing the race to create the row
    never rolls the session back.
    """
    statement = select(CourtDay.id, CourtDay.version).where(
        CourtDay.academy_id == academy_id,
        CourtDay.sport == sport,
        CourtDay.court_number == court_number,
        CourtDay.booking_date == booking_date,
    )
    row = (await session.execute(statement)).first()
    if row is not None:
        return row.id, row.version

    dialect = postgresql if session.bind.dialect.name == "postgresql" else sqlite
    await session.execute(
        dialect.insert(CourtDay)
        .values(academy_id=academy_id, sport=sport, court_number=court_number, booking_date=booking_date, version=0)
        .on_conflict_do_nothing()
    )
    await session.commit()

    row = (await session.execute(statement)).one()
    return row.id, row.version


async def _end_read(session: AsyncSession) -> None:
    # Nothing was written; commit keeps the caller's instances loaded
    # (expire_on_commit=False) where a rollback would expire them
    await session.commit()


async def _claim_court_day(session: AsyncSession, court_day_id: int, seen_version: int) -> bool:
    result = await session.execute(
        update(CourtDay)
        .where(CourtDay.id == court_day_id, CourtDay.version == seen_version)
        .values(version=seen_version + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def _get_booking(session: AsyncSession, booking_id: int) -> Optional[Booking]:
    return await session.get(Booking, booking_id, populate_existing=True)


async def commit(
    session: AsyncSession,
    user_email: str,
    academy_id: int,
    sport_name: str,
    court_number: int,
    booking_date: date,
    start_time: str,
    duration_minutes: int,
) -> Union[Booking, Rejected]:
    """Books [start_time, start_time + duration_minutes) on a court.

    Every check is redone here at write time; a previous availability check
    proves nothing. Returns the new Confirmed booking, or a Rejected carrying
    the reason. Raises LedgerContentionError if the court day stays contended
    for LEDGER_MAX_ATTEMPTS attempts.
    """
    # Malformed input fails before anything is written
    requested_interval(start_time, duration_minutes)

    for attempt in range(1, config.LEDGER_MAX_ATTEMPTS + 1):
        # 1. Validate academy, sport and court
        if await academies.get_academy(session, academy_id) is None:
            return _reject(RejectionReason.ACADEMY_NOT_FOUND, f"academy {academy_id}")
        sport = await academies.get_sport(session, academy_id, sport_name)
        if sport is None:
            return _reject(RejectionReason.SPORT_NOT_OFFERED, f"{sport_name!r} at academy {academy_id}")
        if not 1 <= court_number <= sport.number_of_courts:
            return _reject(RejectionReason.COURT_NOT_FOUND, f"court {court_number} of {sport_name!r}")

        # 2. Snapshot the court day, then what's booked on it
        court_day_id, seen = await _court_day_version(session, academy_id, sport_name, court_number, booking_date)
        bookings = await confirmed_bookings(session, academy_id, sport_name, booking_date, court_number)
        tiers = await academies.get_court_tiers(session, sport.id, court_number)

        # 3. Decide
        decision = evaluate_slot(sport, tiers, booking_intervals(bookings), start_time, duration_minutes)
        if not decision.available:
            await _end_read(session)
            return _reject(decision.reason, f"{sport_name} court {court_number} on {booking_date} at {start_time}")
        if tiers is None:
            await _end_read(session)
            return _reject(RejectionReason.PRICING_MISSING, f"{sport_name} court {court_number}")

        # 4. Claim the court day and write in the same transaction
        if not await _claim_court_day(session, court_day_id, seen):
            await _end_read(session)
            logger.warning(f"Lost court day {court_day_id} race (attempt {attempt}), retrying")
            continue

        booking = Booking(
            user_email=user_email,
            academy_id=academy_id,
            sport=sport_name,
            court_number=court_number,
            booking_date=booking_date,
            start_time=format_time(decision.start),
            end_time=format_time(decision.end),
            price=decision.price,
            status=BookingStatus.CONFIRMED.value,
        )
        session.add(booking)
        await session.commit()
        await session.refresh(booking)

        logger.info(
            f"Booking {booking.id} confirmed: {sport_name} court {court_number} on {booking_date} "
            f"{booking.start_time}-{booking.end_time} for {booking.price}"
        )
        return booking

    logger.error(
        f"Giving up on {sport_name} court {court_number} on {booking_date} "
        f"after {config.LEDGER_MAX_ATTEMPTS} attempts"
    )
    raise LedgerContentionError(f"Court day is too contended: {sport_name} court {court_number} on {booking_date}")


async def cancel(session: AsyncSession, booking_id: int, owner_email: str) -> Union[Booking, Rejected]:
    """Confirmed -> Cancelled. The slot is free again as soon as this commits."""
    result = await session.execute(
        update(Booking)
        .where(
            Booking.id == booking_id,
            Booking.user_email == owner_email,
            Booking.status == BookingStatus.CONFIRMED.value,
        )
        .values(status=BookingStatus.CANCELLED.value, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )

    if result.rowcount == 0:
        await _end_read(session)
        booking = await _get_booking(session, booking_id)
        if booking is None or booking.user_email != owner_email:
            return _reject(RejectionReason.NOT_FOUND_OR_NOT_OWNER, f"booking {booking_id}")
        return _reject(RejectionReason.ALREADY_CANCELLED, f"booking {booking_id}")

    await session.commit()
    logger.info(f"Booking {booking_id} cancelled")
    return await _get_booking(session, booking_id)


async def modify(
    session: AsyncSession,
    booking_id: int,
    owner_email: str,
    court_number: Optional[int] = None,
    booking_date: Optional[date] = None,
    start_time: Optional[str] = None,
    duration_minutes: Optional[int] = None,
) -> Union[Booking, Rejected]:
    """Moves a Confirmed booking to a new court/date/interval in place.

    Omitted arguments keep the booking's current value. The booking's own
    record is ignored in the overlap check, so "moving" it onto the interval
    it already holds succeeds.

    A cancel that lands between our read and our write rolls the session
    back before the retry, which expires instances the caller holds in it.
    """
    for attempt in range(1, config.LEDGER_MAX_ATTEMPTS + 1):
        booking = await _get_booking(session, booking_id)
        if booking is None or booking.user_email != owner_email:
            return _reject(RejectionReason.NOT_FOUND_OR_NOT_OWNER, f"booking {booking_id}")
        if booking.status == BookingStatus.CANCELLED.value:
            return _reject(RejectionReason.ALREADY_CANCELLED, f"booking {booking_id}")

        new_court = court_number if court_number is not None else booking.court_number
        new_date = booking_date if booking_date is not None else booking.booking_date
        new_start = start_time if start_time is not None else booking.start_time
        if duration_minutes is not None:
            new_duration = duration_minutes
        else:
            new_duration = parse_time(booking.end_time) - parse_time(booking.start_time)

        sport = await academies.get_sport(session, booking.academy_id, booking.sport)
        if sport is None:
            return _reject(RejectionReason.SPORT_NOT_OFFERED, f"{booking.sport!r} at academy {booking.academy_id}")
        if not 1 <= new_court <= sport.number_of_courts:
            return _reject(RejectionReason.COURT_NOT_FOUND, f"court {new_court} of {booking.sport!r}")

        court_day_id, seen = await _court_day_version(session, booking.academy_id, booking.sport, new_court, new_date)
        others = await confirmed_bookings(
            session, booking.academy_id, booking.sport, new_date, new_court, exclude_booking_id=booking_id
        )
        tiers = await academies.get_court_tiers(session, sport.id, new_court)

        decision = evaluate_slot(sport, tiers, booking_intervals(others), new_start, new_duration)
        if not decision.available:
            await _end_read(session)
            return _reject(decision.reason, f"moving booking {booking_id} to court {new_court} on {new_date}")
        if tiers is None:
            await _end_read(session)
            return _reject(RejectionReason.PRICING_MISSING, f"{booking.sport} court {new_court}")

        if not await _claim_court_day(session, court_day_id, seen):
            await _end_read(session)
            logger.warning(f"Lost court day {court_day_id} race (attempt {attempt}), retrying")
            continue

        # Only a still-Confirmed booking may move; a concurrent cancel wins
        result = await session.execute(
            update(Booking)
            .where(Booking.id == booking_id, Booking.status == BookingStatus.CONFIRMED.value)
            .values(
                court_number=new_court,
                booking_date=new_date,
                start_time=format_time(decision.start),
                end_time=format_time(decision.end),
                price=decision.price,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            # Cancelled under us: undo the version bump and re-read
            await session.rollback()
            continue

        await session.commit()
        booking = await _get_booking(session, booking_id)
        logger.info(
            f"Booking {booking_id} moved to court {new_court} on {new_date} "
            f"{booking.start_time}-{booking.end_time} for {booking.price}"
        )
        return booking

    logger.error(f"Giving up on modifying booking {booking_id} after {config.LEDGER_MAX_ATTEMPTS} attempts")
    raise LedgerContentionError(f"Court day is too contended for booking {booking_id}")


async def list_bookings(session: AsyncSession, user_email: str) -> List[Booking]:
    """The owner's Confirmed bookings, earliest first."""
    statement = (
        select(Booking)
        .where(Booking.user_email == user_email, Booking.status == BookingStatus.CONFIRMED.value)
        .order_by(Booking.booking_date, Booking.start_time)
    )
    result = await session.execute(statement)
    return list(result.scalars().all())
