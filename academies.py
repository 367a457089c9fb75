"""Academy configuration: sports, operating windows and court price tables.

The sport list of an academy is only ever replaced as a whole, inside one
transaction, so a court's tier table is never observed half-written.
"""
import logging
from typing import Dict, List, Optional

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from models import Academy, CourtPricing, PriceTier, Sport
from schemas import AcademyCreate, SportConfig
from timeutils import format_time, parse_time

logger = logging.getLogger(__name__)


def _normalise(hhmm: str) -> str:
    # "9:00" -> "09:00", so hour marks sort as strings
    return format_time(parse_time(hhmm))


async def create_academy(session: AsyncSession, data: AcademyCreate) -> Academy:
    academy = Academy(name=data.name, email=data.email, city=data.city.strip().lower() if data.city else None)
    session.add(academy)
    await session.commit()
    await session.refresh(academy)
    logger.info(f"Created academy {academy.id} ({academy.name})")
    return academy


async def replace_sports(session: AsyncSession, academy_id: int, sports: List[SportConfig]) -> List[Sport]:
    """Replaces the academy's whole sport list with `sports`."""
    # Step 1: Drop the old configuration, children first
    sport_ids = select(Sport.id).where(Sport.academy_id == academy_id)
    pricing_ids = select(CourtPricing.id).where(CourtPricing.sport_id.in_(sport_ids))
    for table, condition in (
        (PriceTier, PriceTier.court_pricing_id.in_(pricing_ids)),
        (CourtPricing, CourtPricing.sport_id.in_(sport_ids)),
        (Sport, Sport.academy_id == academy_id),
    ):
        # "fetch" also drops the deleted rows from the identity map
        await session.execute(delete(table).where(condition).execution_options(synchronize_session="fetch"))

    # Step 2: Insert the new one
    created = []
    for sport_config in sports:
        sport = Sport(
            academy_id=academy_id,
            sport_name=sport_config.sport_name,
            start_time=_normalise(sport_config.start_time),
            end_time=_normalise(sport_config.end_time),
            number_of_courts=sport_config.number_of_courts,
        )
        session.add(sport)
        await session.flush()

        for court in sport_config.pricing:
            pricing = CourtPricing(sport_id=sport.id, court_number=court.court_number)
            session.add(pricing)
            await session.flush()
            for price in court.prices:
                session.add(
                    PriceTier(court_pricing_id=pricing.id, hour_mark=_normalise(price.time), unit_price=price.price)
                )

        created.append(sport)

    # Step 3: One commit for the whole swap
    try:
        await session.commit()
    except Exception:
        await session.rollback()
        raise

    logger.info(f"Replaced sports for academy {academy_id}: {[s.sport_name for s in created]}")
    return created


async def get_academy(session: AsyncSession, academy_id: int) -> Optional[Academy]:
    result = await session.execute(select(Academy).where(Academy.id == academy_id))
    return result.scalars().first()


async def get_sport(session: AsyncSession, academy_id: int, sport_name: str) -> Optional[Sport]:
    statement = select(Sport).where(Sport.academy_id == academy_id, Sport.sport_name == sport_name)
    result = await session.execute(statement.execution_options(populate_existing=True))
    return result.scalars().first()


async def get_court_tiers(session: AsyncSession, sport_id: int, court_number: int) -> Optional[List[PriceTier]]:
    """Tier table of one court, or None when the court has no pricing entry.

    An entry with no tiers is an empty list, not None.
    """
    result = await session.execute(
        select(CourtPricing.id).where(CourtPricing.sport_id == sport_id, CourtPricing.court_number == court_number)
    )
    pricing_id = result.scalars().first()
    if pricing_id is None:
        return None

    result = await session.execute(
        select(PriceTier).where(PriceTier.court_pricing_id == pricing_id).order_by(PriceTier.hour_mark)
    )
    return list(result.scalars().all())


async def get_sport_tiers(session: AsyncSession, sport_id: int) -> Dict[int, List[PriceTier]]:
    """Tier tables for every priced court of a sport, keyed by court number."""
    statement = (
        select(CourtPricing.court_number, PriceTier)
        .join(PriceTier, PriceTier.court_pricing_id == CourtPricing.id, isouter=True)
        .where(CourtPricing.sport_id == sport_id)
    )
    result = await session.execute(statement)

    tiers: Dict[int, List[PriceTier]] = {}
    for court_number, tier in result.all():
        court_tiers = tiers.setdefault(court_number, [])
        if tier is not None:
            court_tiers.append(tier)
    return tiers


async def search(session: AsyncSession, city: str, sport_name: str) -> List[Academy]:
    """Academies in `city` (case-insensitive) that offer `sport_name`."""
    statement = (
        select(Academy)
        .join(Sport, Sport.academy_id == Academy.id)
        .where(Academy.city == city.strip().lower(), Sport.sport_name == sport_name)
        .order_by(Academy.id)
    )
    result = await session.execute(statement)
    return list(result.scalars().all())
