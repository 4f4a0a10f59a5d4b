from __future__ import annotations

import logging
from dataclasses import dataclass

from idleeconomy.bignum import ZERO, D, DecimalSource, ExtendedDecimal
from idleeconomy.pipeline import MultiplierSource, StackingType
from idleeconomy.registry import ItemDef, ItemRegistry

logger = logging.getLogger(__name__)


@dataclass
class ProducerDef(ItemDef):
    """A purchasable generator of one resource."""

    produces_resource: str = ""
    base_production: ExtendedDecimal = ZERO
    level_multiplier: ExtendedDecimal | None = None
    multiplier_scope: str = ""

    def __post_init__(self) -> None:
        super().__post_init__()
        self.base_production = D(self.base_production)
        if self.level_multiplier is not None:
            self.level_multiplier = D(self.level_multiplier)
        if not self.multiplier_scope:
            self.multiplier_scope = self.produces_resource


class ProducerRegistry(ItemRegistry):
    """Owned producers and the production they feed into the ledger."""

    kind = "producer"

    def get_definition(self, item_id: str) -> ProducerDef | None:
        return self._defs.get(item_id)  # type: ignore[return-value]

    # ── Production ───────────────────────────────────────────────────

    def _base_by_resource(self) -> dict[str, list[tuple[str, ExtendedDecimal]]]:
        """Per-resource base output of every owned, unlocked producer."""
        groups: dict[str, list[tuple[str, ExtendedDecimal]]] = {}
        for item_id, defn in self._defs.items():
            state = self._states[item_id]
            if state.level <= 0 or not state.unlocked or not defn.produces_resource:
                continue
            base = defn.base_production.mul(state.level)
            groups.setdefault(defn.produces_resource, []).append((item_id, base))
        return groups

    def _rate(self, resource: str, base_total: ExtendedDecimal) -> ExtendedDecimal:
        rate = self._pipeline.calculate(resource, base_total)
        if not rate.is_finite() or not rate.is_positive():
            return ZERO
        return rate

    def tick(self, delta: DecimalSource) -> dict[str, ExtendedDecimal]:
        """Credit *delta* seconds of production. Returns amounts per resource."""
        dt = D(delta)
        produced: dict[str, ExtendedDecimal] = {}
        for state in self._states.values():
            state.current_production = ZERO
        if not dt.is_finite() or not dt.is_positive():
            return produced

        for resource, entries in self._base_by_resource().items():
            base_total = ZERO
            for _, base in entries:
                base_total = base_total.add(base)
            rate = self._rate(resource, base_total)
            if rate.is_zero():
                continue
            amount = rate.mul(dt)
            self._ledger.add(resource, amount, source="production")
            produced[resource] = amount
            for item_id, base in entries:
                share = base.div(base_total)
                state = self._states[item_id]
                state.current_production = rate.mul(share)
                state.total_produced = state.total_produced.add(amount.mul(share))
        return produced

    def get_production_rate(self, resource: str) -> ExtendedDecimal:
        """Current per-second output of *resource* after multipliers."""
        entries = self._base_by_resource().get(resource)
        if not entries:
            return ZERO
        base_total = ZERO
        for _, base in entries:
            base_total = base_total.add(base)
        return self._rate(resource, base_total)

    def get_production(self, item_id: str) -> ExtendedDecimal:
        """Per-second output attributed to one producer."""
        defn = self.get_definition(item_id)
        if defn is None:
            return ZERO
        entries = self._base_by_resource().get(defn.produces_resource, [])
        base_total = ZERO
        own = ZERO
        for entry_id, base in entries:
            base_total = base_total.add(base)
            if entry_id == item_id:
                own = base
        if own.is_zero():
            return ZERO
        return self._rate(defn.produces_resource, base_total).mul(own.div(base_total))

    def get_total_produced(self, item_id: str) -> ExtendedDecimal:
        state = self._states.get(item_id)
        return state.total_produced if state else ZERO

    # ── Hooks ────────────────────────────────────────────────────────

    def _sync_effects(self, item_id: str) -> None:
        defn = self.get_definition(item_id)
        if defn is None or defn.level_multiplier is None:
            return
        mid = f"producer_{item_id}"
        level = self._states[item_id].level
        if level <= 0:
            self._pipeline.remove_multiplier(mid)
            return
        self._pipeline.add_multiplier(
            mid,
            MultiplierSource.PRODUCER,
            defn.level_multiplier.pow(level),
            StackingType.MULTIPLICATIVE,
            scope=defn.multiplier_scope,
            name=defn.name,
        )
