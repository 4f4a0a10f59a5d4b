from __future__ import annotations

from abc import ABC, abstractmethod

from idleeconomy.bignum import ExtendedDecimal


class GameContext(ABC):
    """Read-only view of game state used by unlock conditions."""

    @abstractmethod
    def get_resource_amount(self, resource_id: str) -> ExtendedDecimal: ...

    @abstractmethod
    def get_producer_count(self, producer_id: str) -> int: ...

    @abstractmethod
    def get_upgrade_level(self, upgrade_id: str) -> int: ...

    @property
    @abstractmethod
    def current_phase(self) -> int: ...

    def has_upgrade(self, upgrade_id: str) -> bool:
        return self.get_upgrade_level(upgrade_id) > 0
