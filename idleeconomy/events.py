from __future__ import annotations

from typing import Any, Callable

Publish = Callable[[str, dict[str, Any]], None]
"""Host-supplied event sink: ``publish(event_name, payload)``."""

RESOURCE_CHANGED = "resource_changed"
PRODUCER_PURCHASED = "producer_purchased"
PRODUCER_UNLOCKED = "producer_unlocked"
UPGRADE_PURCHASED = "upgrade_purchased"
UPGRADE_UNLOCKED = "upgrade_unlocked"
REBIRTH = "rebirth"
OFFLINE_PROGRESS = "offline_progress"


def null_publish(name: str, payload: dict[str, Any]) -> None:
    """Default sink that drops every event."""


class EventRecorder:
    """Publish sink that keeps every event, for hosts and tests."""

    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def __call__(self, name: str, payload: dict[str, Any]) -> None:
        self.events.append((name, payload))

    def named(self, name: str) -> list[dict[str, Any]]:
        return [payload for event, payload in self.events if event == name]

    def clear(self) -> None:
        self.events.clear()
