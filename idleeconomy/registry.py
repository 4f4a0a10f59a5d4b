from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Iterable, Mapping

from idleeconomy._types import Clock, as_level, mapping_field, now_ms
from idleeconomy.bignum import ZERO, D, ExtendedDecimal
from idleeconomy.context import GameContext
from idleeconomy.cost_curve import CostCurve
from idleeconomy.events import Publish, null_publish
from idleeconomy.ledger import EconomyLedger
from idleeconomy.pipeline import ProductionPipeline
from idleeconomy.requirement import Requirement

logger = logging.getLogger(__name__)

MAX = "max"


class ItemCategory(Enum):
    RUN = auto()
    ETERNAL = auto()
    SECRET = auto()


# Categories whose levels survive a rebirth.
PERSISTENT_CATEGORIES = frozenset({ItemCategory.ETERNAL, ItemCategory.SECRET})


@dataclass
class ItemDef:
    """Static definition of a purchasable, levelled item."""

    id: str
    name: str = ""
    description: str = ""
    cost_resource: str = ""
    cost_curve: CostCurve = field(default_factory=CostCurve)
    min_phase: int = 1
    hidden: bool = False
    requires: list[str] = field(default_factory=list)
    unlock_conditions: list[Requirement] = field(default_factory=list)
    category: ItemCategory = ItemCategory.RUN
    display_order: int = 0

    def __post_init__(self) -> None:
        if not self.name:
            self.name = self.id

    @property
    def one_time(self) -> bool:
        return self.cost_curve.one_time_purchase

    @property
    def max_level(self) -> int | None:
        return self.cost_curve.max_level


@dataclass
class ItemState:
    """Mutable runtime state for an item."""

    level: int = 0
    unlocked: bool = False
    total_produced: ExtendedDecimal = ZERO
    total_spent: ExtendedDecimal = ZERO
    first_purchase_time: int | None = None
    current_production: ExtendedDecimal = ZERO

    @property
    def owned(self) -> bool:
        return self.level > 0


@dataclass(frozen=True)
class PurchaseResult:
    """Outcome of a purchase attempt."""

    success: bool
    amount_purchased: int = 0
    cost_paid: ExtendedDecimal = ZERO
    new_level: int = 0
    reason: str = ""


class ItemRegistry:
    """Levels, unlock state and purchases for one kind of item."""

    kind = "item"

    def __init__(
        self,
        definitions: Iterable[ItemDef],
        ledger: EconomyLedger,
        pipeline: ProductionPipeline,
        publish: Publish | None = None,
        clock: Clock | None = None,
        phase: int = 1,
    ) -> None:
        self._ledger = ledger
        self._pipeline = pipeline
        self._publish = publish or null_publish
        self._clock = clock or now_ms
        self._phase = phase
        self._context: GameContext | None = None
        self._defs: dict[str, ItemDef] = {}
        self._states: dict[str, ItemState] = {}
        for defn in definitions:
            self.register(defn)

    def register(self, defn: ItemDef) -> None:
        """Add an item; its initial unlock is evaluated silently."""
        self._defs[defn.id] = defn
        state = ItemState()
        self._states[defn.id] = state
        state.unlocked = self._meets_unlock(defn)

    def bind_context(self, context: GameContext) -> None:
        """Attach the read-only game view used by unlock conditions."""
        self._context = context
        self.refresh_unlocks()

    def refresh_unlocks(self) -> None:
        """Unlock items whose conditions hold, without publishing events."""
        for item_id, defn in self._defs.items():
            state = self._states[item_id]
            if not state.unlocked and self._meets_unlock(defn):
                state.unlocked = True

    # ── Accessors ────────────────────────────────────────────────────

    def ids(self) -> list[str]:
        return list(self._defs)

    def get_definition(self, item_id: str) -> ItemDef | None:
        return self._defs.get(item_id)

    def get_state(self, item_id: str) -> ItemState | None:
        """A copy of the item's state, or None for unknown ids."""
        state = self._states.get(item_id)
        return dataclasses.replace(state) if state else None

    def get_level(self, item_id: str) -> int:
        state = self._states.get(item_id)
        return state.level if state else 0

    def is_unlocked(self, item_id: str) -> bool:
        state = self._states.get(item_id)
        return state.unlocked if state else False

    def is_owned(self, item_id: str) -> bool:
        return self.get_level(item_id) > 0

    def is_maxed(self, item_id: str) -> bool:
        defn = self._defs.get(item_id)
        return defn is not None and defn.cost_curve.is_maxed(self.get_level(item_id))

    def get_total_spent(self, item_id: str) -> ExtendedDecimal:
        state = self._states.get(item_id)
        return state.total_spent if state else ZERO

    def get_first_purchase_time(self, item_id: str) -> int | None:
        state = self._states.get(item_id)
        return state.first_purchase_time if state else None

    def get_by_category(self, category: ItemCategory) -> list[ItemDef]:
        return [d for d in self._defs.values() if d.category is category]

    def get_visible(self) -> list[ItemDef]:
        """Unlocked items in display order."""
        visible = [d for d in self._defs.values() if self._states[d.id].unlocked]
        return sorted(visible, key=lambda d: d.display_order)

    # ── Costs ────────────────────────────────────────────────────────

    def next_cost(self, item_id: str) -> ExtendedDecimal:
        """Price of the next level; ZERO for unknown or maxed items."""
        defn = self._defs.get(item_id)
        if defn is None or self.is_maxed(item_id):
            return ZERO
        return defn.cost_curve.cost(self.get_level(item_id))

    def calculate_cost(self, item_id: str, amount: int = 1) -> ExtendedDecimal:
        """Bulk price of *amount* levels, clamped to the levels remaining."""
        defn = self._defs.get(item_id)
        quantity = _quantity(amount)
        if defn is None or quantity is None:
            return ZERO
        level = self.get_level(item_id)
        remaining = defn.cost_curve.remaining_levels(level)
        if remaining is not None:
            quantity = min(quantity, remaining)
        return defn.cost_curve.bulk_cost(level, quantity)

    def can_afford(self, item_id: str, amount: int = 1) -> bool:
        defn = self._defs.get(item_id)
        if defn is None or not self.is_unlocked(item_id) or self.is_maxed(item_id):
            return False
        if _quantity(amount) is None:
            return False
        cost = self.calculate_cost(item_id, amount)
        return cost.is_finite() and self._ledger.can_afford(defn.cost_resource, cost)

    def get_max_affordable(self, item_id: str) -> int:
        defn = self._defs.get(item_id)
        if defn is None or not self.is_unlocked(item_id):
            return 0
        budget = self._ledger.get_amount(defn.cost_resource)
        return defn.cost_curve.max_affordable(budget, self.get_level(item_id))

    # ── Purchases ────────────────────────────────────────────────────

    def purchase(self, item_id: str, amount: int | str = 1) -> PurchaseResult:
        """Buy *amount* levels (or ``"max"``) as a single transaction."""
        defn = self._defs.get(item_id)
        if defn is None:
            return PurchaseResult(False, reason=f"Unknown {self.kind}")
        state = self._states[item_id]
        if not state.unlocked:
            return PurchaseResult(False, new_level=state.level, reason="Not unlocked")

        remaining = defn.cost_curve.remaining_levels(state.level)
        if remaining == 0:
            reason = "Already owned" if defn.one_time else "Already at max level"
            return PurchaseResult(False, new_level=state.level, reason=reason)

        if amount == MAX:
            quantity = self.get_max_affordable(item_id)
            if quantity == 0:
                return PurchaseResult(False, new_level=state.level, reason="Cannot afford")
        else:
            quantity = _quantity(amount)
            if quantity is None:
                return PurchaseResult(False, new_level=state.level, reason="Invalid quantity")
        if remaining is not None:
            quantity = min(quantity, remaining)

        cost = defn.cost_curve.bulk_cost(state.level, quantity)
        if not cost.is_finite() or not self._ledger.subtract(
            defn.cost_resource, cost, source=f"{self.kind}:{item_id}"
        ):
            return PurchaseResult(False, new_level=state.level, reason="Cannot afford")

        previous = state.level
        state.level += quantity
        state.total_spent = state.total_spent.add(cost)
        if state.first_purchase_time is None:
            state.first_purchase_time = self._clock()
        self._on_purchased(item_id, previous, state.level)

        logger.debug(
            "Purchased %d x %s %r for %s (level %d)",
            quantity, self.kind, item_id, cost, state.level,
        )
        self._publish(
            f"{self.kind}_purchased",
            {"id": item_id, "new_level": state.level, "amount": quantity, "cost": cost},
        )
        self.check_unlocks()
        return PurchaseResult(True, quantity, cost, state.level)

    def purchase_max(self, item_id: str) -> PurchaseResult:
        return self.purchase(item_id, MAX)

    # ── Unlocks ──────────────────────────────────────────────────────

    def unlock(self, item_id: str, silent: bool = False) -> bool:
        """Force-unlock an item (hidden ones included). False for unknown ids."""
        state = self._states.get(item_id)
        if state is None:
            return False
        if state.unlocked:
            return True
        if silent:
            state.unlocked = True
        else:
            self._mark_unlocked(item_id)
        return True

    def set_phase(self, phase: int) -> list[str]:
        self._phase = phase
        return self.check_unlocks()

    @property
    def phase(self) -> int:
        return self._phase

    def restore_phase(self, phase: int) -> None:
        """Set the phase without unlocking anything (used when loading)."""
        self._phase = phase

    def check_unlocks(self) -> list[str]:
        """Unlock every locked item whose conditions now hold."""
        newly: list[str] = []
        for item_id, defn in self._defs.items():
            if self._states[item_id].unlocked:
                continue
            if self._meets_unlock(defn):
                self._mark_unlocked(item_id)
                newly.append(item_id)
        return newly

    def _mark_unlocked(self, item_id: str) -> None:
        defn = self._defs[item_id]
        self._states[item_id].unlocked = True
        logger.debug("Unlocked %s %r", self.kind, item_id)
        self._publish(
            f"{self.kind}_unlocked",
            {"id": item_id, "name": defn.name, "category": defn.category.name.lower()},
        )

    def _meets_unlock(self, defn: ItemDef) -> bool:
        if defn.hidden or defn.min_phase > self._phase:
            return False
        if not all(self.is_owned(req) for req in defn.requires):
            return False
        if defn.unlock_conditions:
            if self._context is None:
                return False
            return all(r.evaluate(self._context) for r in defn.unlock_conditions)
        return True

    # ── Lifecycle ────────────────────────────────────────────────────

    def reset(self, phase: int = 1, refresh: bool = True) -> list[str]:
        """Rebirth: run items return to their initial state, others are kept.

        Reset items start locked. With *refresh* their unlock conditions are
        re-evaluated right away; pass ``refresh=False`` when other state the
        conditions read is still to be reset, then call :meth:`refresh_unlocks`.
        """
        self._phase = phase
        reset_ids: list[str] = []
        for item_id, defn in self._defs.items():
            if defn.category in PERSISTENT_CATEGORIES:
                continue
            self._states[item_id] = ItemState()
            self._sync_effects(item_id)
            reset_ids.append(item_id)
        if refresh:
            self.refresh_unlocks()
        logger.debug("Reset %d %s(s)", len(reset_ids), self.kind)
        return reset_ids

    def serialize(self) -> dict[str, Any]:
        states = self._states
        return {
            "levels": {i: s.level for i, s in states.items() if s.level > 0},
            "unlocked": [i for i, s in states.items() if s.unlocked],
            "totalProduced": {
                i: s.total_produced.serialize()
                for i, s in states.items()
                if not s.total_produced.is_zero()
            },
            "totalSpent": {
                i: s.total_spent.serialize()
                for i, s in states.items()
                if not s.total_spent.is_zero()
            },
            "firstPurchaseTimes": {
                i: s.first_purchase_time
                for i, s in states.items()
                if s.first_purchase_time is not None
            },
        }

    def deserialize(self, data: Any) -> None:
        """Restore persisted state; invalid fields are skipped one by one."""
        if data is None:
            data = {}
        if not isinstance(data, Mapping):
            logger.warning("Ignoring %s data of type %s", self.kind, type(data).__name__)
            return

        for item_id in self._defs:
            self._states[item_id] = ItemState()

        for item_id, raw in self._levels_from(data).items():
            level = as_level(raw)
            defn = self._defs.get(item_id)
            if defn is None or level is None:
                logger.warning("Skipping %s level %r=%r", self.kind, item_id, raw)
                continue
            if defn.max_level is not None:
                level = min(level, defn.max_level)
            self._states[item_id].level = level

        for item_id, raw in mapping_field(data, "totalProduced").items():
            amount = _parse_total(raw)
            if item_id in self._states and amount is not None:
                self._states[item_id].total_produced = amount
        for item_id, raw in mapping_field(data, "totalSpent").items():
            amount = _parse_total(raw)
            if item_id in self._states and amount is not None:
                self._states[item_id].total_spent = amount
        for item_id, raw in mapping_field(data, "firstPurchaseTimes").items():
            if item_id in self._states and as_level(raw) is not None:
                self._states[item_id].first_purchase_time = as_level(raw)

        unlocked = data.get("unlocked")
        if isinstance(unlocked, list):
            saved = {i for i in unlocked if isinstance(i, str)}
            for item_id, state in self._states.items():
                state.unlocked = item_id in saved
        self.refresh_unlocks()

        for item_id in self._defs:
            self._sync_effects(item_id)

    def _levels_from(self, data: Mapping[str, Any]) -> dict[str, Any]:
        return mapping_field(data, "levels")

    # ── Hooks ────────────────────────────────────────────────────────

    def _on_purchased(self, item_id: str, previous: int, new: int) -> None:
        self._sync_effects(item_id)

    def _sync_effects(self, item_id: str) -> None:
        """Write (or remove) this item's pipeline contributions for its level."""


def _quantity(amount: Any) -> int | None:
    level = as_level(amount)
    if level is None or level < 1:
        return None
    return level


def _parse_total(raw: Any) -> ExtendedDecimal | None:
    if isinstance(raw, bool) or not isinstance(raw, (str, int, float)):
        return None
    value = D(raw)
    if not value.is_finite() or value.is_negative():
        return None
    return value
