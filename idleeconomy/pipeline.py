from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Callable

from idleeconomy._types import Clock, now_ms
from idleeconomy.bignum import ONE, ZERO, D, DecimalSource, ExtendedDecimal

logger = logging.getLogger(__name__)

GLOBAL_SCOPE = ""
"""Scope whose contributions apply to every scope."""


class StackingType(Enum):
    ADDITIVE = auto()
    MULTIPLICATIVE = auto()


class MultiplierSource(Enum):
    PRODUCER = auto()
    UPGRADE = auto()
    ACHIEVEMENT = auto()
    PHASE = auto()
    ETERNAL = auto()
    TEMPORARY = auto()
    OTHER = auto()


# Contributions from these sources are rebuilt from item levels on load.
DERIVED_SOURCES = frozenset({MultiplierSource.PRODUCER, MultiplierSource.UPGRADE})


@dataclass
class Multiplier:
    """One registered contribution to a production scope."""

    id: str
    source: MultiplierSource
    value: ExtendedDecimal
    stacking: StackingType = StackingType.MULTIPLICATIVE
    scope: str = GLOBAL_SCOPE
    name: str = ""
    added_at: int = 0
    duration_ms: int | None = None
    active: bool = True

    @property
    def expires_at(self) -> int | None:
        if self.duration_ms is None:
            return None
        return self.added_at + self.duration_ms

    def is_expired(self, now: int) -> bool:
        expires = self.expires_at
        return expires is not None and now >= expires

    def applies_to(self, scope: str) -> bool:
        return self.scope == GLOBAL_SCOPE or self.scope == scope


@dataclass(frozen=True)
class ProductionBreakdown:
    """How a scope's final value was assembled."""

    base: ExtendedDecimal
    additive_bonus: ExtendedDecimal
    multiplicative_factor: ExtendedDecimal
    final: ExtendedDecimal
    active_multipliers: tuple[Multiplier, ...] = field(default_factory=tuple)


class ProductionPipeline:
    """Registry of multiplier contributions.

    ``final = (base + sum(additive)) * product(multiplicative)`` over the
    active, unexpired contributions whose scope matches or is global.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or now_ms
        self._multipliers: dict[str, Multiplier] = {}
        self._custom: dict[str, Callable[[str, ProductionBreakdown], DecimalSource]] = {}

    # ── Registration ─────────────────────────────────────────────────

    def add_multiplier(
        self,
        id: str,
        source: MultiplierSource,
        value: DecimalSource,
        stacking: StackingType = StackingType.MULTIPLICATIVE,
        scope: str = GLOBAL_SCOPE,
        duration_ms: int | None = None,
        name: str = "",
    ) -> Multiplier:
        """Register a contribution; an existing id is replaced."""
        mult = Multiplier(
            id=id,
            source=source,
            value=D(value),
            stacking=stacking,
            scope=scope,
            name=name or id,
            added_at=self._clock(),
            duration_ms=duration_ms,
        )
        self._multipliers[id] = mult
        return mult

    def remove_multiplier(self, id: str) -> bool:
        return self._multipliers.pop(id, None) is not None

    def has_multiplier(self, id: str) -> bool:
        mult = self._multipliers.get(id)
        return mult is not None and not mult.is_expired(self._clock())

    def get_multiplier(self, id: str) -> Multiplier | None:
        mult = self._multipliers.get(id)
        if mult is None or mult.is_expired(self._clock()):
            return None
        return mult

    def update_value(self, id: str, value: DecimalSource) -> bool:
        mult = self._multipliers.get(id)
        if mult is None:
            return False
        mult.value = D(value)
        return True

    def set_active(self, id: str, active: bool) -> bool:
        mult = self._multipliers.get(id)
        if mult is None:
            return False
        mult.active = active
        return True

    def set_custom(
        self, scope: str, fn: Callable[[str, ProductionBreakdown], DecimalSource]
    ) -> None:
        """Override the final value of one scope with a custom formula."""
        self._custom[scope] = fn

    def clear(self) -> None:
        self._multipliers.clear()

    def clear_by_source(self, source: MultiplierSource) -> int:
        doomed = [m.id for m in self._multipliers.values() if m.source is source]
        for mid in doomed:
            del self._multipliers[mid]
        return len(doomed)

    def purge_expired(self) -> int:
        now = self._clock()
        doomed = [m.id for m in self._multipliers.values() if m.is_expired(now)]
        for mid in doomed:
            del self._multipliers[mid]
            logger.debug("Multiplier %r expired", mid)
        return len(doomed)

    def ids(self) -> list[str]:
        return list(self._multipliers)

    # ── Queries ──────────────────────────────────────────────────────

    def get_multipliers_for_scope(self, scope: str) -> list[Multiplier]:
        """Active, unexpired contributions that apply to *scope*."""
        now = self._clock()
        return [
            m
            for m in self._multipliers.values()
            if m.active and not m.is_expired(now) and m.applies_to(scope)
        ]

    def get_multipliers_by_source(self, source: MultiplierSource) -> list[Multiplier]:
        now = self._clock()
        return [
            m
            for m in self._multipliers.values()
            if m.source is source and not m.is_expired(now)
        ]

    def get_total_additive(self, scope: str) -> ExtendedDecimal:
        total = ZERO
        for m in self.get_multipliers_for_scope(scope):
            if m.stacking is StackingType.ADDITIVE and not m.value.is_nan():
                total = total.add(m.value)
        return total

    def get_total_multiplicative(self, scope: str) -> ExtendedDecimal:
        factor = ONE
        for m in self.get_multipliers_for_scope(scope):
            if m.stacking is StackingType.MULTIPLICATIVE and not m.value.is_nan():
                factor = factor.mul(m.value)
        return factor

    def get_breakdown(self, scope: str, base: DecimalSource) -> ProductionBreakdown:
        base = D(base)
        active = self.get_multipliers_for_scope(scope)
        additive = ZERO
        factor = ONE
        for m in active:
            if m.value.is_nan():
                continue
            if m.stacking is StackingType.ADDITIVE:
                additive = additive.add(m.value)
            else:
                factor = factor.mul(m.value)
        breakdown = ProductionBreakdown(
            base=base,
            additive_bonus=additive,
            multiplicative_factor=factor,
            final=base.add(additive).mul(factor),
            active_multipliers=tuple(active),
        )
        fn = self._custom.get(scope)
        if fn is not None:
            breakdown = ProductionBreakdown(
                base=breakdown.base,
                additive_bonus=breakdown.additive_bonus,
                multiplicative_factor=breakdown.multiplicative_factor,
                final=D(fn(scope, breakdown)),
                active_multipliers=breakdown.active_multipliers,
            )
        return breakdown

    def calculate(self, scope: str, base: DecimalSource) -> ExtendedDecimal:
        """Final value of *base* routed through *scope*."""
        return self.get_breakdown(scope, base).final

    # ── Persistence ──────────────────────────────────────────────────

    def serialize(self) -> list[dict[str, Any]]:
        """Contributions not derivable from item levels, with remaining time."""
        now = self._clock()
        out: list[dict[str, Any]] = []
        for m in self._multipliers.values():
            if m.source in DERIVED_SOURCES or m.is_expired(now):
                continue
            entry: dict[str, Any] = {
                "id": m.id,
                "source": m.source.name.lower(),
                "value": m.value.serialize(),
                "stacking": m.stacking.name.lower(),
                "scope": m.scope,
                "name": m.name,
                "active": m.active,
            }
            if m.expires_at is not None:
                entry["remainingMs"] = m.expires_at - now
            out.append(entry)
        return out

    def deserialize(self, data: Any) -> None:
        """Restore persisted contributions, skipping malformed entries."""
        if data is None:
            data = []
        if not isinstance(data, list):
            logger.warning("Ignoring pipeline data of type %s", type(data).__name__)
            return
        for mid in [m.id for m in self._multipliers.values() if m.source not in DERIVED_SOURCES]:
            del self._multipliers[mid]
        for entry in data:
            restored = self._restore_entry(entry)
            if restored is None:
                logger.warning("Skipping malformed multiplier entry %r", entry)

    def _restore_entry(self, entry: Any) -> Multiplier | None:
        if not isinstance(entry, dict):
            return None
        mid = entry.get("id")
        if not isinstance(mid, str) or not mid:
            return None
        source = _enum_by_name(MultiplierSource, entry.get("source"))
        stacking = _enum_by_name(StackingType, entry.get("stacking", "multiplicative"))
        if source is None or stacking is None or source in DERIVED_SOURCES:
            return None
        value = ExtendedDecimal.deserialize(entry.get("value"))
        scope = entry.get("scope", GLOBAL_SCOPE)
        if not isinstance(scope, str):
            return None
        duration = entry.get("remainingMs")
        if duration is not None:
            if isinstance(duration, bool) or not isinstance(duration, (int, float)):
                return None
            if duration <= 0:
                return None
            duration = int(duration)
        name = entry.get("name")
        mult = self.add_multiplier(
            mid,
            source,
            value,
            stacking,
            scope,
            duration_ms=duration,
            name=name if isinstance(name, str) else "",
        )
        mult.active = entry.get("active", True) is not False
        return mult


def _enum_by_name(enum_cls: type[Enum], name: Any) -> Any:
    if not isinstance(name, str):
        return None
    return enum_cls.__members__.get(name.upper())
