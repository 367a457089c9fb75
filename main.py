from fastapi import FastAPI, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError
from typing import List
import logging

import academies
import availability
import config
import ledger
from database import init_db, get_session
from logging_config import setup_logging
from schemas import (
    AcademyCreate,
    AcademyOut,
    AcademySearch,
    AvailabilityRequest,
    BookingCancel,
    BookingCreate,
    BookingModify,
    BookingOut,
    CourtAvailability,
    CourtAvailabilityRequest,
    Rejected,
    RejectionReason,
    SportsUpdate,
)
from timeutils import TimeFormatError
from fastapi.middleware.cors import CORSMiddleware

logger = logging.getLogger(__name__)

app = FastAPI(title="Sports Academy Booking System")

# 1. Rejection code -> HTTP status
REJECTION_STATUS = {
    RejectionReason.OUT_OF_HOURS: status.HTTP_409_CONFLICT,
    RejectionReason.SLOT_TAKEN: status.HTTP_409_CONFLICT,
    RejectionReason.ALREADY_CANCELLED: status.HTTP_409_CONFLICT,
    RejectionReason.SPORT_NOT_OFFERED: status.HTTP_404_NOT_FOUND,
    RejectionReason.PRICING_MISSING: status.HTTP_404_NOT_FOUND,
    RejectionReason.ACADEMY_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    RejectionReason.COURT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    RejectionReason.NOT_FOUND_OR_NOT_OWNER: status.HTTP_404_NOT_FOUND,
}


def raise_for_rejection(outcome):
    if isinstance(outcome, Rejected):
        raise HTTPException(
            status_code=REJECTION_STATUS[outcome.reason],
            detail={"code": outcome.reason.value, "detail": outcome.detail},
        )
    return outcome


def bad_time(e: TimeFormatError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"code": "InvalidTime", "detail": str(e)})


def contended(e: ledger.LedgerContentionError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail={"code": "Busy", "detail": str(e)})


@app.on_event("startup")
async def on_startup():
    setup_logging(config.LOG_LEVEL)
    await init_db()


# --- Academies ---
@app.post("/academies", response_model=AcademyOut, status_code=status.HTTP_201_CREATED)
async def create_academy(data: AcademyCreate, session: AsyncSession = Depends(get_session)):
    try:
        return await academies.create_academy(session, data)
    except IntegrityError:
        await session.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Academy email already registered.")


@app.post("/academies/search", response_model=List[AcademyOut])
async def search_academies(req: AcademySearch, session: AsyncSession = Depends(get_session)):
    return await academies.search(session, req.city, req.sport)


@app.put("/academies/{academy_id}/sports")
async def replace_sports(academy_id: int, data: SportsUpdate, session: AsyncSession = Depends(get_session)):
    if await academies.get_academy(session, academy_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Academy not found")
    sports = await academies.replace_sports(session, academy_id, data.sports)
    return {"message": "Sports updated", "sports": [s.sport_name for s in sports]}


# --- Availability (read-only) ---
@app.post("/availability", response_model=List[CourtAvailability])
async def check_availability(req: AvailabilityRequest, session: AsyncSession = Depends(get_session)):
    try:
        outcome = await availability.check_sport(
            session, req.academy_id, req.sport, req.booking_date, req.start_time, req.duration_minutes
        )
    except TimeFormatError as e:
        raise bad_time(e)
    return raise_for_rejection(outcome)


@app.post("/availability/court", response_model=CourtAvailability)
async def check_court_availability(req: CourtAvailabilityRequest, session: AsyncSession = Depends(get_session)):
    try:
        outcome = await availability.check_court(
            session, req.academy_id, req.sport, req.court_number, req.booking_date, req.start_time,
            req.duration_minutes,
        )
    except TimeFormatError as e:
        raise bad_time(e)
    return raise_for_rejection(outcome)


# --- Bookings ---
@app.post("/bookings", response_model=BookingOut, status_code=status.HTTP_201_CREATED)
async def create_booking(req: BookingCreate, session: AsyncSession = Depends(get_session)):
    try:
        outcome = await ledger.commit(
            session, req.user_email, req.academy_id, req.sport, req.court_number, req.booking_date,
            req.start_time, req.duration_minutes,
        )
    except TimeFormatError as e:
        raise bad_time(e)
    except ledger.LedgerContentionError as e:
        raise contended(e)
    return raise_for_rejection(outcome)


@app.get("/bookings", response_model=List[BookingOut])
async def my_bookings(user_email: str, session: AsyncSession = Depends(get_session)):
    return await ledger.list_bookings(session, user_email)


@app.post("/bookings/{booking_id}/cancel", response_model=BookingOut)
async def cancel_booking(booking_id: int, req: BookingCancel, session: AsyncSession = Depends(get_session)):
    return raise_for_rejection(await ledger.cancel(session, booking_id, req.user_email))


@app.patch("/bookings/{booking_id}", response_model=BookingOut)
async def modify_booking(booking_id: int, req: BookingModify, session: AsyncSession = Depends(get_session)):
    try:
        outcome = await ledger.modify(
            session, booking_id, req.user_email,
            court_number=req.court_number,
            booking_date=req.booking_date,
            start_time=req.start_time,
            duration_minutes=req.duration_minutes,
        )
    except TimeFormatError as e:
        raise bad_time(e)
    except ledger.LedgerContentionError as e:
        raise contended(e)
    return raise_for_rejection(outcome)


app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
