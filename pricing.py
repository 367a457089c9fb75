"""Tiered hourly price calculation.

A tier prices the one-hour block that begins at its hour mark. A requested
interval is billed proportionally for every minute it shares with a tier;
minutes no tier covers are free.
"""
from typing import Iterable, Protocol

from timeutils import MINUTES_PER_HOUR, parse_time


class Tier(Protocol):
    hour_mark: str
    unit_price: float


def tier_overlap_minutes(start: int, end: int, tier_start: int) -> int:
    tier_end = tier_start + MINUTES_PER_HOUR
    return max(0, min(end, tier_end) - max(start, tier_start))


def calculate_price(tiers: Iterable[Tier], start_time: str, duration_minutes: int) -> float:
    """Price of [start_time, start_time + duration_minutes) against `tiers`.

    A non-positive duration or an empty tier table costs 0. Gaps between
    tiers are not an error.
    """
    if duration_minutes <= 0:
        return 0.0

    start = parse_time(start_time)
    end = start + duration_minutes

    total = 0.0
    for tier in tiers:
        minutes = tier_overlap_minutes(start, end, parse_time(tier.hour_mark))
        if minutes > 0:
            total += (minutes / MINUTES_PER_HOUR) * tier.unit_price

    return total
