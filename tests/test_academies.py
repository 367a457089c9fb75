import pytest
from pydantic import ValidationError
from sqlmodel import select

import academies
from models import CourtPricing, PriceTier, Sport
from schemas import AcademyCreate, CourtPricingIn, PriceIn, SportConfig

from tests.conftest import badminton_config


@pytest.mark.asyncio
async def test_court_tiers(session, academy):
    sport = await academies.get_sport(session, academy.id, "badminton")

    tiers = await academies.get_court_tiers(session, sport.id, 1)

    assert sport.number_of_courts == 3
    assert [(t.hour_mark, t.unit_price) for t in tiers] == [("09:00", 10), ("10:00", 20), ("11:00", 20), ("21:00", 30)]
    assert await academies.get_court_tiers(session, sport.id, 3) is None


@pytest.mark.asyncio
async def test_sport_tiers_by_court(session, academy):
    sport = await academies.get_sport(session, academy.id, "badminton")

    tiers = await academies.get_sport_tiers(session, sport.id)

    assert sorted(tiers) == [1, 2]
    assert len(tiers[2]) == 4


@pytest.mark.asyncio
async def test_priced_court_with_empty_table(session, academy):
    config = SportConfig(
        sport_name="tennis",
        start_time="07:00",
        end_time="20:00",
        number_of_courts=1,
        pricing=[CourtPricingIn(court_number=1, prices=[])],
    )
    await academies.replace_sports(session, academy.id, [config])
    sport = await academies.get_sport(session, academy.id, "tennis")

    assert await academies.get_court_tiers(session, sport.id, 1) == []
    assert await academies.get_sport_tiers(session, sport.id) == {1: []}


@pytest.mark.asyncio
async def test_replace_sports_swaps_the_whole_list(session, academy):
    squash = SportConfig(
        sport_name="squash",
        start_time="08:00",
        end_time="20:00",
        number_of_courts=2,
        pricing=[CourtPricingIn(court_number=2, prices=[PriceIn(time="08:00", price=12)])],
    )

    await academies.replace_sports(session, academy.id, [squash])

    sports = (await session.execute(select(Sport.sport_name))).scalars().all()
    pricing = (await session.execute(select(CourtPricing.court_number))).scalars().all()
    tiers = (await session.execute(select(PriceTier.hour_mark))).scalars().all()
    assert sports == ["squash"]
    assert pricing == [2]
    assert tiers == ["08:00"]
    assert await academies.get_sport(session, academy.id, "badminton") is None


@pytest.mark.asyncio
async def test_replace_sports_twice_in_one_session(session, academy):
    await academies.replace_sports(session, academy.id, [badminton_config()])
    sport = await academies.get_sport(session, academy.id, "badminton")

    assert sport is not None
    assert len(await academies.get_court_tiers(session, sport.id, 2)) == 4


def test_sport_config_validation():
    with pytest.raises(ValidationError):
        SportConfig(sport_name="x", start_time="10:00", end_time="10:00", number_of_courts=1)
    with pytest.raises(ValidationError):
        SportConfig(sport_name="x", start_time="10:00", end_time="24:00", number_of_courts=1)
    with pytest.raises(ValidationError):
        SportConfig(
            sport_name="x",
            start_time="06:00",
            end_time="22:00",
            number_of_courts=2,
            pricing=[CourtPricingIn(court_number=1), CourtPricingIn(court_number=1)],
        )
    with pytest.raises(ValidationError):
        CourtPricingIn(court_number=1, prices=[PriceIn(time="09:00", price=1), PriceIn(time="09:00", price=2)])
    with pytest.raises(ValidationError):
        PriceIn(time="09:00", price=-1)


@pytest.mark.asyncio
async def test_hour_marks_are_stored_zero_padded(session, academy):
    config = SportConfig(
        sport_name="tennis",
        start_time="7:00",
        end_time="20:00",
        number_of_courts=1,
        pricing=[
            CourtPricingIn(court_number=1, prices=[PriceIn(time="10:00", price=20), PriceIn(time="9:00", price=10)])
        ],
    )
    await academies.replace_sports(session, academy.id, [config])
    sport = await academies.get_sport(session, academy.id, "tennis")

    tiers = await academies.get_court_tiers(session, sport.id, 1)

    assert sport.start_time == "07:00"
    assert [(t.hour_mark, t.unit_price) for t in tiers] == [("09:00", 10), ("10:00", 20)]


@pytest.mark.asyncio
async def test_search_by_city_and_sport(session, academy):
    other = await academies.create_academy(
        session, AcademyCreate(name="Net Play", email="hi@netplay.test", city="Pune")
    )
    await academies.replace_sports(
        session,
        other.id,
        [SportConfig(sport_name="tennis", start_time="07:00", end_time="20:00", number_of_courts=1)],
    )
    elsewhere = await academies.create_academy(
        session, AcademyCreate(name="Far Away", email="desk@faraway.test", city="Delhi")
    )
    await academies.replace_sports(session, elsewhere.id, [badminton_config()])

    found = await academies.search(session, " PUNE ", "badminton")

    assert [a.id for a in found] == [academy.id]
    assert [a.id for a in await academies.search(session, "pune", "tennis")] == [other.id]
    assert await academies.search(session, "pune", "Badminton") == []
    assert await academies.search(session, "mumbai", "badminton") == []
