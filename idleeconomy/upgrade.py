from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Mapping

from idleeconomy._types import mapping_field
from idleeconomy.bignum import ONE, ZERO, D, DecimalSource, ExtendedDecimal
from idleeconomy.pipeline import GLOBAL_SCOPE, MultiplierSource, StackingType
from idleeconomy.registry import ItemDef, ItemRegistry

logger = logging.getLogger(__name__)

ALL_TARGETS = "all"

# Older saves split levels by category.
_LEGACY_LEVEL_KEYS = ("runLevels", "eternalLevels", "secretLevels")


class EffectKind(Enum):
    MULTIPLIER = auto()
    ADDITIVE = auto()
    UNLOCK = auto()
    STARTING_BONUS = auto()


class Scaling(Enum):
    NONE = auto()
    LINEAR = auto()
    EXPONENTIAL = auto()


@dataclass(frozen=True)
class UpgradeEffect:
    """One effect granted while an upgrade is owned."""

    kind: EffectKind
    target: str = ALL_TARGETS
    value: ExtendedDecimal = ONE
    scaling: Scaling = Scaling.NONE

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", D(self.value))

    @classmethod
    def multiplier(
        cls, target: str, value: DecimalSource, scaling: Scaling = Scaling.NONE
    ) -> UpgradeEffect:
        """Multiply production of *target* (a resource, ``"click"`` or ``"all"``)."""
        return cls(EffectKind.MULTIPLIER, target, D(value), scaling)

    @classmethod
    def additive(cls, target: str, value: DecimalSource) -> UpgradeEffect:
        """Add flat base production to *target*, per level."""
        return cls(EffectKind.ADDITIVE, target, D(value))

    @classmethod
    def unlock(cls, target: str) -> UpgradeEffect:
        """Unlock an item or named feature on first purchase."""
        return cls(EffectKind.UNLOCK, target, ONE)

    @classmethod
    def starting_bonus(cls, resource: str, amount: DecimalSource) -> UpgradeEffect:
        """Grant *amount* per level of *resource* at the start of each run."""
        return cls(EffectKind.STARTING_BONUS, resource, D(amount))

    @property
    def scope(self) -> str:
        return GLOBAL_SCOPE if self.target == ALL_TARGETS else self.target

    def value_at(self, level: int) -> ExtendedDecimal:
        """Effect magnitude for an upgrade at *level*."""
        if level <= 0:
            return ONE if self.kind is EffectKind.MULTIPLIER else ZERO
        if self.kind is EffectKind.MULTIPLIER:
            if self.scaling is Scaling.LINEAR:
                return self.value.sub(ONE).mul(level).add(ONE)
            if self.scaling is Scaling.EXPONENTIAL:
                return self.value.pow(level)
            return self.value
        if self.kind in (EffectKind.ADDITIVE, EffectKind.STARTING_BONUS):
            return self.value.mul(level)
        return self.value


@dataclass
class UpgradeDef(ItemDef):
    """A purchasable upgrade with one or more effects."""

    effects: list[UpgradeEffect] = field(default_factory=list)


class UpgradeRegistry(ItemRegistry):
    """Owned upgrades and the pipeline contributions they grant."""

    kind = "upgrade"

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        self._linked: list[ItemRegistry] = []
        super().__init__(*args, **kwargs)

    def get_definition(self, item_id: str) -> UpgradeDef | None:
        return self._defs.get(item_id)  # type: ignore[return-value]

    def link(self, registry: ItemRegistry) -> None:
        """Let UNLOCK effects reach items in another registry."""
        if registry is not self and registry not in self._linked:
            self._linked.append(registry)

    def tick(self, delta: DecimalSource) -> list[str]:
        """Re-check unlock conditions. Returns newly unlocked ids."""
        return self.check_unlocks()

    # ── Effect queries ───────────────────────────────────────────────

    def get_active_effects(
        self, kind: EffectKind | None = None
    ) -> list[tuple[str, UpgradeEffect]]:
        """(upgrade id, effect) pairs of every owned upgrade."""
        active: list[tuple[str, UpgradeEffect]] = []
        for item_id, defn in self._defs.items():
            if self._states[item_id].level <= 0:
                continue
            for eff in defn.effects:  # type: ignore[attr-defined]
                if kind is None or eff.kind is kind:
                    active.append((item_id, eff))
        return active

    def get_multiplier(self, target: str) -> ExtendedDecimal:
        """Combined multiplier owned upgrades grant *target*."""
        factor = ONE
        for item_id, eff in self.get_active_effects(EffectKind.MULTIPLIER):
            if eff.target in (target, ALL_TARGETS):
                factor = factor.mul(eff.value_at(self.get_level(item_id)))
        return factor

    def get_additive_bonus(self, target: str) -> ExtendedDecimal:
        total = ZERO
        for item_id, eff in self.get_active_effects(EffectKind.ADDITIVE):
            if eff.target in (target, ALL_TARGETS):
                total = total.add(eff.value_at(self.get_level(item_id)))
        return total

    def is_feature_unlocked(self, feature_id: str) -> bool:
        return any(
            eff.target == feature_id
            for _, eff in self.get_active_effects(EffectKind.UNLOCK)
        )

    # ── Lifecycle ────────────────────────────────────────────────────

    def reset(self, phase: int = 1, refresh: bool = True) -> list[str]:
        """Reset run upgrades, then pay out starting bonuses of kept ones."""
        reset_ids = super().reset(phase, refresh=False)
        for item_id, eff in self.get_active_effects(EffectKind.STARTING_BONUS):
            amount = eff.value_at(self.get_level(item_id))
            if self._ledger.add(eff.target, amount, source="starting_bonus"):
                logger.debug("Starting bonus %s %s from %r", amount, eff.target, item_id)
        if refresh:
            self.restore_unlock_effects()
            self.refresh_unlocks()
        return reset_ids

    def _levels_from(self, data: Mapping[str, Any]) -> dict[str, Any]:
        levels: dict[str, Any] = {}
        for key in _LEGACY_LEVEL_KEYS:
            levels.update(mapping_field(data, key))
        levels.update(mapping_field(data, "levels"))
        return levels

    # ── Hooks ────────────────────────────────────────────────────────

    def _on_purchased(self, item_id: str, previous: int, new: int) -> None:
        super()._on_purchased(item_id, previous, new)
        if previous > 0:
            return
        defn = self.get_definition(item_id)
        for eff in defn.effects:
            if eff.kind is EffectKind.UNLOCK:
                self._unlock_target(eff.target)

    def restore_unlock_effects(self) -> None:
        """Silently re-apply UNLOCK effects of every owned upgrade."""
        for _, eff in self.get_active_effects(EffectKind.UNLOCK):
            self._unlock_target(eff.target, silent=True)

    def _unlock_target(self, target: str, silent: bool = False) -> None:
        if target in self._defs:
            self.unlock(target, silent)
            return
        for registry in self._linked:
            if registry.get_definition(target) is not None:
                registry.unlock(target, silent)
                return
        logger.debug("Feature %r unlocked", target)

    def _sync_effects(self, item_id: str) -> None:
        defn = self.get_definition(item_id)
        if defn is None:
            return
        level = self._states[item_id].level
        for index, eff in enumerate(defn.effects):
            if eff.kind is EffectKind.MULTIPLIER:
                stacking = StackingType.MULTIPLICATIVE
            elif eff.kind is EffectKind.ADDITIVE:
                stacking = StackingType.ADDITIVE
            else:
                continue
            mid = f"upgrade_{item_id}:{index}"
            if level <= 0:
                self._pipeline.remove_multiplier(mid)
                continue
            self._pipeline.add_multiplier(
                mid,
                MultiplierSource.UPGRADE,
                eff.value_at(level),
                stacking,
                scope=eff.scope,
                name=defn.name,
            )
