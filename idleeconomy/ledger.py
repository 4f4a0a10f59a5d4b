from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from idleeconomy._types import mapping_field
from idleeconomy.bignum import ZERO, D, DecimalSource, ExtendedDecimal
from idleeconomy.events import RESOURCE_CHANGED, Publish, null_publish

logger = logging.getLogger(__name__)


@dataclass
class ResourceDef:
    """Static definition of a resource."""

    id: str
    display_name: str = ""
    initial_value: ExtendedDecimal = ZERO
    persistent: bool = False
    hidden: bool = False

    def __post_init__(self) -> None:
        if not self.display_name:
            self.display_name = self.id
        self.initial_value = D(self.initial_value)


@dataclass
class ResourceState:
    """Mutable runtime state for a resource."""

    amount: ExtendedDecimal = ZERO
    total_generated: ExtendedDecimal = ZERO
    total_spent: ExtendedDecimal = ZERO
    unlocked: bool = True


class EconomyLedger:
    """Current balances of every resource."""

    def __init__(
        self,
        resources: Iterable[ResourceDef] = (),
        publish: Publish | None = None,
    ) -> None:
        self._publish = publish or null_publish
        self._defs: dict[str, ResourceDef] = {}
        self._states: dict[str, ResourceState] = {}
        for rdef in resources:
            self._defs[rdef.id] = rdef
            self._states[rdef.id] = self._initial_state(rdef)

    @staticmethod
    def _initial_state(rdef: ResourceDef) -> ResourceState:
        return ResourceState(amount=rdef.initial_value, unlocked=not rdef.hidden)

    def _state(self, resource: str) -> ResourceState:
        rs = self._states.get(resource)
        if rs is None:
            rs = ResourceState()
            self._states[resource] = rs
        return rs

    def _changed(
        self, resource: str, previous: ExtendedDecimal, new: ExtendedDecimal, source: str
    ) -> None:
        self._publish(
            RESOURCE_CHANGED,
            {
                "resource_id": resource,
                "previous_amount": previous,
                "new_amount": new,
                "delta": new.sub(previous),
                "source": source,
            },
        )

    # ── Mutations ────────────────────────────────────────────────────

    def add(self, resource: str, amount: DecimalSource, source: str = "") -> bool:
        """Credit *amount*; non-positive or non-finite amounts are ignored."""
        amount = D(amount)
        if not amount.is_finite() or not amount.is_positive():
            return False
        rs = self._state(resource)
        previous = rs.amount
        rs.amount = previous.add(amount)
        rs.total_generated = rs.total_generated.add(amount)
        self._changed(resource, previous, rs.amount, source)
        return True

    def subtract(self, resource: str, amount: DecimalSource, source: str = "") -> bool:
        """Debit *amount*; fails without mutation if the balance is short."""
        amount = D(amount)
        if not amount.is_finite() or amount.is_negative():
            return False
        if amount.is_zero():
            return True
        rs = self._states.get(resource)
        if rs is None or rs.amount.lt(amount):
            return False
        previous = rs.amount
        rs.amount = previous.sub(amount)
        rs.total_spent = rs.total_spent.add(amount)
        self._changed(resource, previous, rs.amount, source)
        return True

    def subtract_all(self, costs: Mapping[str, DecimalSource], source: str = "") -> bool:
        """Debit several resources at once, or none of them."""
        if not self.can_afford_all(costs):
            return False
        for resource, amount in costs.items():
            self.subtract(resource, amount, source)
        return True

    def set_amount(self, resource: str, amount: DecimalSource, source: str = "set") -> None:
        amount = D(amount)
        if amount.is_nan():
            return
        if amount.is_negative():
            amount = ZERO
        rs = self._state(resource)
        previous = rs.amount
        rs.amount = amount
        if previous.neq(amount):
            self._changed(resource, previous, amount, source)

    def unlock(self, resource: str) -> None:
        self._state(resource).unlocked = True

    # ── Queries ──────────────────────────────────────────────────────

    def get_amount(self, resource: str) -> ExtendedDecimal:
        rs = self._states.get(resource)
        return rs.amount if rs else ZERO

    def can_afford(self, resource: str, amount: DecimalSource) -> bool:
        amount = D(amount)
        if not amount.is_finite() or amount.is_negative():
            return False
        return self.get_amount(resource).gte(amount)

    def can_afford_all(self, costs: Mapping[str, DecimalSource]) -> bool:
        return all(self.can_afford(r, a) for r, a in costs.items())

    def get_total_generated(self, resource: str) -> ExtendedDecimal:
        rs = self._states.get(resource)
        return rs.total_generated if rs else ZERO

    def get_total_spent(self, resource: str) -> ExtendedDecimal:
        rs = self._states.get(resource)
        return rs.total_spent if rs else ZERO

    def is_unlocked(self, resource: str) -> bool:
        rs = self._states.get(resource)
        return rs.unlocked if rs else False

    def get_definition(self, resource: str) -> ResourceDef | None:
        return self._defs.get(resource)

    def resource_ids(self) -> list[str]:
        return list(self._states)

    # ── Lifecycle ────────────────────────────────────────────────────

    def reset(self) -> list[str]:
        """Return non-persistent resources to their initial state."""
        reset_ids: list[str] = []
        for resource, rs in list(self._states.items()):
            rdef = self._defs.get(resource)
            if rdef is not None and rdef.persistent:
                continue
            fresh = self._initial_state(rdef) if rdef else ResourceState()
            previous = rs.amount
            self._states[resource] = fresh
            reset_ids.append(resource)
            if previous.neq(fresh.amount):
                self._changed(resource, previous, fresh.amount, "reset")
        return reset_ids

    def serialize(self) -> dict[str, Any]:
        return {
            "amounts": {r: rs.amount.serialize() for r, rs in self._states.items()},
            "unlocked": [r for r, rs in self._states.items() if rs.unlocked],
            "totalGenerated": {
                r: rs.total_generated.serialize() for r, rs in self._states.items()
            },
            "totalSpent": {r: rs.total_spent.serialize() for r, rs in self._states.items()},
        }

    def deserialize(self, data: Any) -> None:
        """Restore balances; malformed fields are skipped, never raised."""
        if data is None:
            data = {}
        if not isinstance(data, Mapping):
            logger.warning("Ignoring ledger data of type %s", type(data).__name__)
            return

        self._states = {rid: self._initial_state(rdef) for rid, rdef in self._defs.items()}
        for resource, raw in mapping_field(data, "amounts").items():
            amount = _parse_amount(raw)
            if amount is None:
                logger.warning("Skipping malformed amount for %r: %r", resource, raw)
                continue
            self._state(resource).amount = amount
        for resource, raw in mapping_field(data, "totalGenerated").items():
            amount = _parse_amount(raw)
            if amount is not None:
                self._state(resource).total_generated = amount
        for resource, raw in mapping_field(data, "totalSpent").items():
            amount = _parse_amount(raw)
            if amount is not None:
                self._state(resource).total_spent = amount

        unlocked = data.get("unlocked")
        if isinstance(unlocked, list):
            flags = {r for r in unlocked if isinstance(r, str)}
            for resource, rs in self._states.items():
                rs.unlocked = resource in flags


def _parse_amount(raw: Any) -> ExtendedDecimal | None:
    if isinstance(raw, bool) or not isinstance(raw, (str, int, float)):
        return None
    amount = D(raw)
    if amount.is_nan() or amount.is_negative():
        return None
    return amount
