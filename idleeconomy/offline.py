"""Rewards for time spent away from the game.

Offline time counts in whole seconds, capped at ``capped_hours``; the
reward is ``rate * efficiency * capped_seconds``. Absences shorter than the
minimum (or timestamps from the future) earn nothing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from idleeconomy._types import now_ms as wall_clock_ms
from idleeconomy.bignum import ZERO, D, DecimalSource, ExtendedDecimal
from idleeconomy.formatting import format_hours_minutes

logger = logging.getLogger(__name__)

FULL_REST_BONUS = "Full Rest Bonus"


@dataclass(frozen=True)
class OfflineConfig:
    """Offline progression settings."""

    capped_hours: float = 8
    efficiency: float = 0.1
    minimum_time_seconds: int = 60

    @property
    def cap_seconds(self) -> float:
        return self.capped_hours * 3600


DEFAULT_OFFLINE_CONFIG = OfflineConfig()


@dataclass(frozen=True)
class OfflineReward:
    """What an absence earned."""

    reward: ExtendedDecimal
    time_away: int
    capped_time: int
    efficiency: float
    bonus_type: str | None = None


@dataclass(frozen=True)
class OfflineBreakdown:
    time_away_formatted: str
    capped_time_formatted: str
    production_rate: ExtendedDecimal
    production_rate_per_hour: ExtendedDecimal
    offline_rate_per_hour: ExtendedDecimal
    was_time_capped: bool


@dataclass(frozen=True)
class OfflineCalculationResult:
    rewards: OfflineReward
    breakdown: OfflineBreakdown


def _seconds_away(last_active_ms: float | None, now: int) -> int:
    if last_active_ms is None or isinstance(last_active_ms, bool):
        return 0
    try:
        elapsed = (now - float(last_active_ms)) / 1000
    except (TypeError, ValueError):
        return 0
    if elapsed != elapsed or elapsed <= 0:  # NaN or future timestamp
        return 0
    if elapsed == float("inf"):
        return 0
    return int(elapsed)


def _usable_rate(rate: DecimalSource) -> ExtendedDecimal:
    value = D(rate)
    if not value.is_finite() or value.is_negative():
        return ZERO
    return value


def calculate_offline_progress(
    last_active_ms: float | None,
    rate: DecimalSource,
    config: OfflineConfig = DEFAULT_OFFLINE_CONFIG,
    now_ms: int | None = None,
) -> OfflineReward:
    """Reward for the absence since *last_active_ms* at *rate* per second."""
    now = wall_clock_ms() if now_ms is None else now_ms
    time_away = _seconds_away(last_active_ms, now)

    if time_away < config.minimum_time_seconds:
        return OfflineReward(ZERO, time_away, 0, config.efficiency)

    capped_time = int(min(time_away, config.cap_seconds))
    reward = _usable_rate(rate).mul(config.efficiency).mul(capped_time)
    bonus = FULL_REST_BONUS if time_away >= config.cap_seconds else None

    logger.debug(
        "Offline %ds (capped %ds) at rate %s -> %s", time_away, capped_time, rate, reward
    )
    return OfflineReward(reward, time_away, capped_time, config.efficiency, bonus)


def calculate_offline_progress_with_breakdown(
    last_active_ms: float | None,
    rate: DecimalSource,
    config: OfflineConfig = DEFAULT_OFFLINE_CONFIG,
    now_ms: int | None = None,
) -> OfflineCalculationResult:
    """Like :func:`calculate_offline_progress`, plus display-ready details."""
    rewards = calculate_offline_progress(last_active_ms, rate, config, now_ms)
    production_rate = _usable_rate(rate)
    per_hour = production_rate.mul(3600)
    return OfflineCalculationResult(
        rewards=rewards,
        breakdown=OfflineBreakdown(
            time_away_formatted=format_hours_minutes(rewards.time_away),
            capped_time_formatted=format_hours_minutes(rewards.capped_time),
            production_rate=production_rate,
            production_rate_per_hour=per_hour,
            offline_rate_per_hour=per_hour.mul(config.efficiency),
            was_time_capped=rewards.time_away > config.cap_seconds,
        ),
    )
