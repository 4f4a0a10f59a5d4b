from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Mapping

from idleeconomy._types import Clock, as_level, now_ms
from idleeconomy.bignum import ZERO, D, DecimalSource, ExtendedDecimal
from idleeconomy.context import GameContext
from idleeconomy.definition import CLICK_SCOPE, EconomyDefinition
from idleeconomy.events import OFFLINE_PROGRESS, REBIRTH, Publish, null_publish
from idleeconomy.ledger import EconomyLedger
from idleeconomy.offline import (
    OfflineCalculationResult,
    calculate_offline_progress_with_breakdown,
)
from idleeconomy.pipeline import ProductionPipeline
from idleeconomy.producer import ProducerRegistry
from idleeconomy.registry import PurchaseResult
from idleeconomy.upgrade import UpgradeRegistry

logger = logging.getLogger(__name__)

SAVE_VERSION = 1


@dataclass(frozen=True)
class ResetResult:
    """Outcome of a rebirth."""

    success: bool
    run_number: int = 1
    resources_reset: list[str] = field(default_factory=list)
    producers_reset: list[str] = field(default_factory=list)
    upgrades_reset: list[str] = field(default_factory=list)
    reason: str = ""


class Economy(GameContext):
    """Authoritative economy processor wiring ledger, pipeline and registries."""

    def __init__(
        self,
        definition: EconomyDefinition,
        publish: Publish | None = None,
        clock: Clock | None = None,
    ) -> None:
        errors = definition.validate()
        if errors:
            raise ValueError(
                "Invalid EconomyDefinition:\n" + "\n".join(f"  - {e}" for e in errors)
            )

        self.definition = definition
        self._publish = publish or null_publish
        self._clock = clock or now_ms
        self._phase = definition.config.starting_phase
        self.run_number = 1
        self.time_elapsed = 0.0
        self.last_active: int = self._clock()

        self.ledger = EconomyLedger(definition.resources, self._publish)
        self.pipeline = ProductionPipeline(self._clock)
        self.producers = ProducerRegistry(
            definition.producers,
            self.ledger,
            self.pipeline,
            self._publish,
            self._clock,
            self._phase,
        )
        self.upgrades = UpgradeRegistry(
            definition.upgrades,
            self.ledger,
            self.pipeline,
            self._publish,
            self._clock,
            self._phase,
        )
        self.upgrades.link(self.producers)
        self.producers.bind_context(self)
        self.upgrades.bind_context(self)

    # ── Game context ─────────────────────────────────────────────────

    def get_resource_amount(self, resource_id: str) -> ExtendedDecimal:
        return self.ledger.get_amount(resource_id)

    def get_producer_count(self, producer_id: str) -> int:
        return self.producers.get_level(producer_id)

    def get_upgrade_level(self, upgrade_id: str) -> int:
        return self.upgrades.get_level(upgrade_id)

    def has_upgrade(self, upgrade_id: str) -> bool:
        return self.upgrades.is_owned(upgrade_id)

    @property
    def current_phase(self) -> int:
        return self._phase

    # ── Core loop ────────────────────────────────────────────────────

    def tick(self, delta: DecimalSource) -> dict[str, ExtendedDecimal]:
        """Advance the economy by *delta* seconds. Returns amounts produced."""
        delta = _seconds(delta)
        if delta is None:
            return {}
        self.pipeline.purge_expired()
        produced = self.producers.tick(delta)
        self.upgrades.tick(delta)
        self.producers.check_unlocks()
        self.time_elapsed += delta
        self.last_active = self._clock()
        return produced

    def advance(
        self, seconds: DecimalSource, step: DecimalSource | None = None
    ) -> dict[str, ExtendedDecimal]:
        """Run fixed-size ticks covering *seconds*; the last one may be shorter.

        Non-finite or non-positive *seconds* advance nothing. An unusable
        *step* falls back to the configured tick step.
        """
        totals: dict[str, ExtendedDecimal] = {}
        remaining = _seconds(seconds)
        if remaining is None:
            return totals
        step = _seconds(step) or self.definition.config.tick_step
        full, rest = divmod(remaining, step)
        for _ in range(int(full)):
            self._accumulate(totals, self.tick(step))
        if rest > 1e-9:
            self._accumulate(totals, self.tick(rest))
        return totals

    @staticmethod
    def _accumulate(
        totals: dict[str, ExtendedDecimal], produced: dict[str, ExtendedDecimal]
    ) -> None:
        for resource, amount in produced.items():
            totals[resource] = totals.get(resource, ZERO).add(amount)

    # ── Player actions ───────────────────────────────────────────────

    def purchase_producer(self, producer_id: str, amount: int | str = 1) -> PurchaseResult:
        result = self.producers.purchase(producer_id, amount)
        if result.success:
            self.upgrades.check_unlocks()
        return result

    def purchase_upgrade(self, upgrade_id: str, amount: int | str = 1) -> PurchaseResult:
        result = self.upgrades.purchase(upgrade_id, amount)
        if result.success:
            self.producers.check_unlocks()
            self.upgrades.check_unlocks()
        return result

    def click(self, resource: str) -> ExtendedDecimal:
        """Process a click on *resource*. Returns the amount added."""
        ct = self.definition.get_click_target(resource)
        if ct is None:
            return ZERO
        value = self.pipeline.calculate(CLICK_SCOPE, ct.base_value)
        if not self.ledger.add(resource, value, source="click"):
            return ZERO
        return value

    def set_phase(self, phase: int) -> None:
        self._phase = phase
        self.producers.set_phase(phase)
        self.upgrades.set_phase(phase)

    def rebirth(self) -> ResetResult:
        """Start a new run, keeping persistent resources and eternal items."""
        starting_phase = self.definition.config.starting_phase
        self._phase = starting_phase
        resources_reset = self.ledger.reset()
        producers_reset = self.producers.reset(starting_phase, refresh=False)
        upgrades_reset = self.upgrades.reset(starting_phase, refresh=False)
        # Unlock conditions read levels across both registries.
        self.upgrades.restore_unlock_effects()
        self.producers.refresh_unlocks()
        self.upgrades.refresh_unlocks()
        self.run_number += 1
        logger.debug("Rebirth: starting run %d", self.run_number)
        self._publish(REBIRTH, {"run_number": self.run_number})
        return ResetResult(
            success=True,
            run_number=self.run_number,
            resources_reset=resources_reset,
            producers_reset=producers_reset,
            upgrades_reset=upgrades_reset,
        )

    # ── Queries ──────────────────────────────────────────────────────

    def production_rate(self, resource: str) -> ExtendedDecimal:
        """Per-second production of *resource* at current levels."""
        return self.producers.get_production_rate(resource)

    def _offline_resources(self) -> tuple[str, str]:
        cfg = self.definition.config
        source = cfg.offline_resource
        if not source and self.definition.resources:
            source = self.definition.resources[0].id
        return source, cfg.offline_reward_resource or source

    def calculate_offline_progress(self, now_ms: int | None = None) -> OfflineCalculationResult:
        source, _ = self._offline_resources()
        return calculate_offline_progress_with_breakdown(
            self.last_active,
            self.production_rate(source),
            self.definition.config.offline,
            self._clock() if now_ms is None else now_ms,
        )

    def apply_offline_progress(self, now_ms: int | None = None) -> OfflineCalculationResult:
        """Credit the offline reward and mark the player active again."""
        now = self._clock() if now_ms is None else now_ms
        result = self.calculate_offline_progress(now)
        _, target = self._offline_resources()
        reward = result.rewards.reward
        if target and self.ledger.add(target, reward, source="offline"):
            self._publish(
                OFFLINE_PROGRESS,
                {
                    "resource_id": target,
                    "reward": reward,
                    "time_away": result.rewards.time_away,
                    "bonus_type": result.rewards.bonus_type,
                },
            )
        self.last_active = now
        return result

    # ── Persistence ──────────────────────────────────────────────────

    def serialize(self) -> dict[str, Any]:
        return {
            "version": SAVE_VERSION,
            "timestamp": self._clock(),
            "lastActive": self.last_active,
            "phase": self._phase,
            "runNumber": self.run_number,
            "timeElapsed": self.time_elapsed,
            "resources": self.ledger.serialize(),
            "producers": self.producers.serialize(),
            "upgrades": self.upgrades.serialize(),
            "pipeline": self.pipeline.serialize(),
        }

    def deserialize(self, data: Any) -> bool:
        """Restore a save. Malformed sections fall back to defaults."""
        if not isinstance(data, Mapping):
            logger.warning("Ignoring save data of type %s", type(data).__name__)
            return False

        phase = as_level(data.get("phase"))
        self._phase = phase if phase else self.definition.config.starting_phase
        run_number = as_level(data.get("runNumber"))
        self.run_number = run_number if run_number else 1
        elapsed = data.get("timeElapsed")
        self.time_elapsed = (
            float(elapsed)
            if isinstance(elapsed, (int, float))
            and not isinstance(elapsed, bool)
            and math.isfinite(elapsed)
            and elapsed >= 0
            else 0.0
        )
        last_active = as_level(data.get("lastActive"))
        if last_active is not None:
            self.last_active = last_active

        self.producers.restore_phase(self._phase)
        self.upgrades.restore_phase(self._phase)
        self.ledger.deserialize(data.get("resources", {}))
        self.producers.deserialize(data.get("producers", {}))
        self.upgrades.deserialize(data.get("upgrades", {}))
        self.pipeline.deserialize(data.get("pipeline", []))
        self.producers.refresh_unlocks()
        self.upgrades.refresh_unlocks()
        return True

    def to_json(self) -> str:
        return json.dumps(self.serialize())

    def from_json(self, text: str) -> bool:
        try:
            data = json.loads(text)
        except (TypeError, ValueError):
            logger.warning("Save text is not valid JSON")
            return False
        return self.deserialize(data)


def _seconds(value: Any) -> float | None:
    """A finite, positive duration as float seconds, or None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        seconds = D(value).to_float()
    except TypeError:
        return None
    if not math.isfinite(seconds) or seconds <= 0:
        return None
    return seconds
