from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Callable

from idleeconomy._types import compare
from idleeconomy.bignum import DecimalSource

if TYPE_CHECKING:
    from idleeconomy.context import GameContext


class Requirement(ABC):
    """A boolean condition on game state."""

    @abstractmethod
    def evaluate(self, context: GameContext) -> bool: ...

    def __and__(self, other: Requirement) -> Requirement:
        return _AllRequirement([self, other])

    def __or__(self, other: Requirement) -> Requirement:
        return _AnyRequirement([self, other])


# ── Private implementations ──────────────────────────────────────────


class _ResourceRequirement(Requirement):
    def __init__(self, resource_id: str, op: str, threshold: DecimalSource) -> None:
        self.resource_id = resource_id
        self.op = op
        self.threshold = threshold

    def evaluate(self, context: GameContext) -> bool:
        return compare(context.get_resource_amount(self.resource_id), self.op, self.threshold)


class _ProducerRequirement(Requirement):
    def __init__(self, producer_id: str, op: str, threshold: int) -> None:
        self.producer_id = producer_id
        self.op = op
        self.threshold = threshold

    def evaluate(self, context: GameContext) -> bool:
        return compare(context.get_producer_count(self.producer_id), self.op, self.threshold)


class _UpgradeRequirement(Requirement):
    def __init__(self, upgrade_id: str, op: str, threshold: int) -> None:
        self.upgrade_id = upgrade_id
        self.op = op
        self.threshold = threshold

    def evaluate(self, context: GameContext) -> bool:
        return compare(context.get_upgrade_level(self.upgrade_id), self.op, self.threshold)


class _OwnsUpgradeRequirement(Requirement):
    def __init__(self, upgrade_id: str) -> None:
        self.upgrade_id = upgrade_id

    def evaluate(self, context: GameContext) -> bool:
        return context.has_upgrade(self.upgrade_id)


class _PhaseRequirement(Requirement):
    def __init__(self, phase: int) -> None:
        self.phase = phase

    def evaluate(self, context: GameContext) -> bool:
        return context.current_phase >= self.phase


class _AllRequirement(Requirement):
    def __init__(self, reqs: list[Requirement]) -> None:
        self.reqs = reqs

    def evaluate(self, context: GameContext) -> bool:
        return all(r.evaluate(context) for r in self.reqs)


class _AnyRequirement(Requirement):
    def __init__(self, reqs: list[Requirement]) -> None:
        self.reqs = reqs

    def evaluate(self, context: GameContext) -> bool:
        return any(r.evaluate(context) for r in self.reqs)


class _CustomRequirement(Requirement):
    def __init__(self, fn: Callable[[GameContext], bool]) -> None:
        self.fn = fn

    def evaluate(self, context: GameContext) -> bool:
        return bool(self.fn(context))


# ── Public factory ───────────────────────────────────────────────────


class Req:
    """Factory for built-in requirement types."""

    @staticmethod
    def resource(resource_id: str, op: str, threshold: DecimalSource) -> Requirement:
        return _ResourceRequirement(resource_id, op, threshold)

    @staticmethod
    def producer(producer_id: str, op: str, threshold: int) -> Requirement:
        return _ProducerRequirement(producer_id, op, threshold)

    @staticmethod
    def upgrade(upgrade_id: str, op: str, threshold: int) -> Requirement:
        return _UpgradeRequirement(upgrade_id, op, threshold)

    @staticmethod
    def owns_upgrade(upgrade_id: str) -> Requirement:
        return _OwnsUpgradeRequirement(upgrade_id)

    @staticmethod
    def phase(phase: int) -> Requirement:
        return _PhaseRequirement(phase)

    @staticmethod
    def all(*reqs: Requirement) -> Requirement:
        return _AllRequirement(list(reqs))

    @staticmethod
    def any(*reqs: Requirement) -> Requirement:
        return _AnyRequirement(list(reqs))

    @staticmethod
    def custom(fn: Callable[[GameContext], bool]) -> Requirement:
        return _CustomRequirement(fn)
