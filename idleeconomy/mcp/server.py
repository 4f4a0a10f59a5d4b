"""MCP server wrapping an Economy for interactive AI playtesting."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from mcp.server.fastmcp import FastMCP

from idleeconomy.bignum import ExtendedDecimal
from idleeconomy.definition import EconomyDefinition
from idleeconomy.economy import Economy
from idleeconomy.events import EventRecorder
from idleeconomy.formatting import format_number
from idleeconomy.registry import MAX, ItemRegistry

# Maximum seconds per wait() call (24 hours)
_MAX_WAIT = 86400
# Maximum clicks per click() call
_MAX_CLICKS = 1000


@dataclass
class _EconomyHolder:
    """Holds the active definition, economy and its event log."""

    definition: EconomyDefinition
    economy: Economy
    events: EventRecorder = field(default_factory=EventRecorder)
    save_slot: str | None = None


def _new_holder(definition: EconomyDefinition) -> _EconomyHolder:
    events = EventRecorder()
    return _EconomyHolder(definition, Economy(definition, publish=events), events)


def _amount(value: ExtendedDecimal) -> dict[str, str]:
    return {"value": value.serialize(), "display": format_number(value)}


def _parse_amount(amount: int | str) -> int | str:
    if isinstance(amount, str) and amount.strip().lower() == MAX:
        return MAX
    return amount


def _items(registry: ItemRegistry) -> dict[str, Any]:
    items = {}
    for item_id in registry.ids():
        defn = registry.get_definition(item_id)
        items[item_id] = {
            "name": defn.name,
            "level": registry.get_level(item_id),
            "unlocked": registry.is_unlocked(item_id),
            "category": defn.category.name.lower(),
        }
    return items


def _purchase_result(result: Any, item_id: str) -> dict[str, Any]:
    if not result.success:
        return {"success": False, "reason": result.reason}
    return {
        "success": True,
        "id": item_id,
        "amount_purchased": result.amount_purchased,
        "cost_paid": _amount(result.cost_paid),
        "new_level": result.new_level,
    }


# ── Tool logic functions (testable without MCP protocol) ────────────


def _tool_get_economy_info(holder: _EconomyHolder) -> dict[str, Any]:
    defn = holder.definition
    return {
        "name": defn.config.name,
        "resources": [
            {"id": r.id, "display_name": r.display_name, "persistent": r.persistent}
            for r in defn.resources
        ],
        "producers": [
            {
                "id": p.id,
                "name": p.name,
                "produces": p.produces_resource,
                "base_production": p.base_production.serialize(),
                "cost_resource": p.cost_resource,
            }
            for p in defn.producers
        ],
        "upgrades": [
            {
                "id": u.id,
                "name": u.name,
                "category": u.category.name.lower(),
                "effects": [
                    {"kind": e.kind.name.lower(), "target": e.target, "value": e.value.serialize()}
                    for e in u.effects
                ],
            }
            for u in defn.upgrades
        ],
        "click_targets": [
            {"resource": ct.resource, "base_value": ct.base_value.serialize()}
            for ct in defn.click_targets
        ],
    }


def _tool_get_economy_state(holder: _EconomyHolder) -> dict[str, Any]:
    eco = holder.economy
    resources = {}
    for resource in eco.ledger.resource_ids():
        resources[resource] = {
            "amount": _amount(eco.ledger.get_amount(resource)),
            "rate": _amount(eco.production_rate(resource)),
            "total_generated": _amount(eco.ledger.get_total_generated(resource)),
        }
    return {
        "time_elapsed": round(eco.time_elapsed, 2),
        "phase": eco.current_phase,
        "run_number": eco.run_number,
        "resources": resources,
        "producers": _items(eco.producers),
        "upgrades": _items(eco.upgrades),
    }


def _tool_get_available_purchases(holder: _EconomyHolder) -> dict[str, Any]:
    eco = holder.economy
    result = []
    for kind, registry in (("producer", eco.producers), ("upgrade", eco.upgrades)):
        for defn in registry.get_visible():
            if registry.is_maxed(defn.id):
                continue
            result.append({
                "kind": kind,
                "id": defn.id,
                "name": defn.name,
                "level": registry.get_level(defn.id),
                "next_cost": _amount(registry.next_cost(defn.id)),
                "cost_resource": defn.cost_resource,
                "affordable": registry.can_afford(defn.id),
                "max_affordable": registry.get_max_affordable(defn.id),
            })
    return {"purchases": result}


def _tool_purchase_producer(
    holder: _EconomyHolder, producer_id: str, amount: int | str = 1
) -> dict[str, Any]:
    if holder.definition.get_producer(producer_id) is None:
        return {"error": f"Unknown producer: {producer_id!r}"}
    result = holder.economy.purchase_producer(producer_id, _parse_amount(amount))
    return _purchase_result(result, producer_id)


def _tool_purchase_upgrade(
    holder: _EconomyHolder, upgrade_id: str, amount: int | str = 1
) -> dict[str, Any]:
    if holder.definition.get_upgrade(upgrade_id) is None:
        return {"error": f"Unknown upgrade: {upgrade_id!r}"}
    result = holder.economy.purchase_upgrade(upgrade_id, _parse_amount(amount))
    return _purchase_result(result, upgrade_id)


def _tool_click(holder: _EconomyHolder, target: str, count: int = 1) -> dict[str, Any]:
    if count < 1:
        return {"error": "Count must be at least 1"}
    if count > _MAX_CLICKS:
        return {"error": f"Count cannot exceed {_MAX_CLICKS}"}

    ct = holder.definition.get_click_target(target)
    if ct is None:
        return {"error": f"Unknown click target: {target!r}"}

    total = ExtendedDecimal(0)
    for _ in range(count):
        total = total.add(holder.economy.click(target))
    return {
        "target": target,
        "clicks": count,
        "total_earned": _amount(total),
        "new_balance": _amount(holder.economy.get_resource_amount(target)),
    }


def _tool_wait(holder: _EconomyHolder, seconds: float) -> dict[str, Any]:
    if seconds <= 0:
        return {"error": "Seconds must be positive"}
    if seconds > _MAX_WAIT:
        return {"error": f"Cannot wait more than {_MAX_WAIT} seconds (24h) per call"}

    holder.events.clear()
    produced = holder.economy.advance(seconds)
    unlocked = [
        payload["id"]
        for name, payload in holder.events.events
        if name.endswith("_unlocked")
    ]

    result: dict[str, Any] = {
        "waited": seconds,
        "time_elapsed": round(holder.economy.time_elapsed, 2),
        "produced": {r: _amount(a) for r, a in produced.items()},
    }
    if unlocked:
        result["new_unlocks"] = unlocked
    return result


def _tool_set_phase(holder: _EconomyHolder, phase: int) -> dict[str, Any]:
    if phase < 1:
        return {"error": "Phase must be at least 1"}
    holder.events.clear()
    holder.economy.set_phase(phase)
    return {
        "phase": phase,
        "new_unlocks": [p["id"] for n, p in holder.events.events if n.endswith("_unlocked")],
    }


def _tool_rebirth(holder: _EconomyHolder) -> dict[str, Any]:
    result = holder.economy.rebirth()
    return {
        "success": result.success,
        "run_number": result.run_number,
        "resources_reset": result.resources_reset,
        "producers_reset": result.producers_reset,
        "upgrades_reset": result.upgrades_reset,
    }


def _tool_save(holder: _EconomyHolder) -> dict[str, Any]:
    holder.save_slot = holder.economy.to_json()
    return {"success": True, "size": len(holder.save_slot)}


def _tool_load(holder: _EconomyHolder, data: str | None = None) -> dict[str, Any]:
    text = data if data is not None else holder.save_slot
    if text is None:
        return {"success": False, "reason": "No save available"}
    if not holder.economy.from_json(text):
        return {"success": False, "reason": "Save data could not be read"}
    return {"success": True}


def _tool_offline_progress(
    holder: _EconomyHolder, seconds_away: float, apply: bool = False
) -> dict[str, Any]:
    if seconds_away < 0:
        return {"error": "seconds_away cannot be negative"}
    eco = holder.economy
    now = eco.last_active + int(seconds_away * 1000)
    calc = eco.apply_offline_progress(now) if apply else eco.calculate_offline_progress(now)
    rewards, breakdown = calc.rewards, calc.breakdown
    return {
        "reward": _amount(rewards.reward),
        "time_away": breakdown.time_away_formatted,
        "capped_time": breakdown.capped_time_formatted,
        "bonus_type": rewards.bonus_type,
        "was_time_capped": breakdown.was_time_capped,
        "offline_rate_per_hour": _amount(breakdown.offline_rate_per_hour),
        "applied": apply,
    }


def _tool_new_game(holder: _EconomyHolder) -> dict[str, Any]:
    fresh = _new_holder(holder.definition)
    holder.economy = fresh.economy
    holder.events = fresh.events
    return {"success": True, "message": "Economy reset to initial state"}


# ── Server factory ──────────────────────────────────────────────────


def create_server(definition: EconomyDefinition) -> FastMCP:
    """Create an MCP server wrapping an Economy for the given definition."""
    holder = _new_holder(definition)

    mcp = FastMCP(
        name=f"IdleEconomy: {definition.config.name}",
    )

    @mcp.tool()
    def get_economy_info() -> dict[str, Any]:
        """Get static overview: resources, producers, upgrades and click targets."""
        return _tool_get_economy_info(holder)

    @mcp.tool()
    def get_economy_state() -> dict[str, Any]:
        """Get current snapshot: balances, rates, levels, phase and run number."""
        return _tool_get_economy_state(holder)

    @mcp.tool()
    def get_available_purchases() -> dict[str, Any]:
        """Get unlocked producers and upgrades with next cost and affordability."""
        return _tool_get_available_purchases(holder)

    @mcp.tool()
    def purchase_producer(producer_id: str, amount: str = "1") -> dict[str, Any]:
        """Buy producer levels. amount is a whole number or "max"."""
        return _tool_purchase_producer(holder, producer_id, amount)

    @mcp.tool()
    def purchase_upgrade(upgrade_id: str, amount: str = "1") -> dict[str, Any]:
        """Buy upgrade levels. amount is a whole number or "max"."""
        return _tool_purchase_upgrade(holder, upgrade_id, amount)

    @mcp.tool()
    def click(target: str, count: int = 1) -> dict[str, Any]:
        """Click a resource target N times (max 1000). Returns total earned."""
        return _tool_click(holder, target, count)

    @mcp.tool()
    def wait(seconds: float) -> dict[str, Any]:
        """Advance time by the given seconds (max 86400) in fixed ticks."""
        return _tool_wait(holder, seconds)

    @mcp.tool()
    def set_phase(phase: int) -> dict[str, Any]:
        """Move to a progression phase, unlocking content gated on it."""
        return _tool_set_phase(holder, phase)

    @mcp.tool()
    def rebirth() -> dict[str, Any]:
        """Start a new run; eternal upgrades and persistent resources are kept."""
        return _tool_rebirth(holder)

    @mcp.tool()
    def save() -> dict[str, Any]:
        """Snapshot the economy into the server's save slot."""
        return _tool_save(holder)

    @mcp.tool()
    def load(data: str | None = None) -> dict[str, Any]:
        """Restore from JSON text, or from the save slot when omitted."""
        return _tool_load(holder, data)

    @mcp.tool()
    def offline_progress(seconds_away: float, apply: bool = False) -> dict[str, Any]:
        """Preview (or apply) the offline reward for an absence of N seconds."""
        return _tool_offline_progress(holder, seconds_away, apply)

    @mcp.tool()
    def new_game() -> dict[str, Any]:
        """Reset the economy to initial state."""
        return _tool_new_game(holder)

    return mcp
