"""
NicheNav Backend: Synthetic Trend Series

No historical search data exists for a micro-niche, so the dashboard charts a
plausible series built from the niche's single search-volume figure:
seasonal wave + weekly wave + slow growth + uniform noise + rare spikes.

Values are random on every call; only the shape is stable (window length,
chronological order, value bounds). Pass `rng` to make a run reproducible.
"""

import math
import random
from datetime import date, timedelta
from typing import Protocol

from nichenav.models import TrendPoint

WINDOW_DAYS = 90
DEFAULT_STEP_DAYS = 2

SEASONAL_AMPLITUDE = 0.3
WEEKLY_AMPLITUDE = 0.15
GROWTH_AMPLITUDE = 0.15
NOISE_AMPLITUDE = 0.2
SPIKE_PROBABILITY = 0.05
SPIKE_BOOST = 0.3

FLOOR_FRACTION = 0.10    # never below 10% of base
CEILING_FRACTION = 2.5   # never above 250% of base

ENGAGEMENT_RANGE = (1.0, 15.0)
ENGAGEMENT_NOISE = 4.0   # ±2 points


class RandomSource(Protocol):
    def random(self) -> float: ...


def base_engagement(base_search_volume: int) -> float:
    """Bigger niches engage less: 2.5% above 50k, 4.5% above 10k, else 7.5%."""
    if base_search_volume > 50_000:
        return 2.5
    if base_search_volume > 10_000:
        return 4.5
    return 7.5


def volume_factor(offset: int, rng: RandomSource) -> float:
    """Multiplier applied to the base volume `offset` days into the window."""
    seasonal = SEASONAL_AMPLITUDE * math.sin(2 * math.pi * offset / WINDOW_DAYS)
    weekly = WEEKLY_AMPLITUDE * math.sin(2 * math.pi * offset / 7)
    growth = GROWTH_AMPLITUDE * (offset / WINDOW_DAYS)
    noise = (rng.random() - 0.5) * NOISE_AMPLITUDE
    factor = 1 + seasonal + weekly + growth + noise
    if rng.random() < SPIKE_PROBABILITY:
        factor += SPIKE_BOOST
    return factor


def generate_trends(
    base_search_volume: int,
    rng: RandomSource | None = None,
    today: date | None = None,
    step_days: int = DEFAULT_STEP_DAYS,
) -> list[TrendPoint]:
    """
    Build a chronological series covering the 90 days that end today.

    Points fall at offsets 0, step, 2*step, ... < 90 from (today - 90 days),
    so the default 2-day step yields 45 points.

    Args:
        base_search_volume: The niche's monthly search volume. Must be positive.
        rng: Anything with random() -> float in [0, 1). Defaults to a fresh random.Random().
        today: Window end date. Defaults to date.today().
        step_days: Days between points, constant for the whole series.

    Returns:
        list[TrendPoint], oldest first.

    Raises:
        ValueError: base_search_volume or step_days not positive.
    """
    if base_search_volume <= 0:
        raise ValueError("base_search_volume must be positive")
    if step_days <= 0:
        raise ValueError("step_days must be positive")

    rng = rng or random.Random()
    start = (today or date.today()) - timedelta(days=WINDOW_DAYS)
    floor = math.floor(base_search_volume * FLOOR_FRACTION)
    ceiling = math.floor(base_search_volume * CEILING_FRACTION)
    engagement_base = base_engagement(base_search_volume)
    low, high = ENGAGEMENT_RANGE

    trends: list[TrendPoint] = []
    for offset in range(0, WINDOW_DAYS, step_days):
        raw_volume = math.floor(base_search_volume * volume_factor(offset, rng))
        search_volume = max(floor, min(ceiling, raw_volume))

        engagement = engagement_base + (rng.random() - 0.5) * ENGAGEMENT_NOISE
        engagement = round(max(low, min(high, engagement)), 1)

        # Mentions scale with both volume and engagement
        mentions = math.floor((search_volume / 1000) * engagement * (0.5 + rng.random()))

        trends.append(
            TrendPoint(
                date=start + timedelta(days=offset),
                search_volume=search_volume,
                engagement=engagement,
                mentions=max(1, mentions),
            )
        )

    return trends
