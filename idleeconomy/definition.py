from __future__ import annotations

import warnings
from dataclasses import dataclass, field

from idleeconomy.bignum import ONE, D, ExtendedDecimal
from idleeconomy.ledger import ResourceDef
from idleeconomy.offline import DEFAULT_OFFLINE_CONFIG, OfflineConfig
from idleeconomy.producer import ProducerDef
from idleeconomy.upgrade import ALL_TARGETS, EffectKind, UpgradeDef

CLICK_SCOPE = "click"


@dataclass
class EconomyConfig:
    """Top-level economy configuration."""

    name: str = "Untitled"
    tick_step: float = 1.0
    starting_phase: int = 1
    offline: OfflineConfig = DEFAULT_OFFLINE_CONFIG
    # Resource whose production rate drives offline rewards, and where they go.
    offline_resource: str = ""
    offline_reward_resource: str = ""


@dataclass
class ClickTarget:
    """Defines a clickable resource source."""

    resource: str = ""
    base_value: ExtendedDecimal = ONE

    def __post_init__(self) -> None:
        self.base_value = D(self.base_value)


@dataclass
class EconomyDefinition:
    """Complete static content of an idle economy."""

    config: EconomyConfig = field(default_factory=EconomyConfig)
    resources: list[ResourceDef] = field(default_factory=list)
    producers: list[ProducerDef] = field(default_factory=list)
    upgrades: list[UpgradeDef] = field(default_factory=list)
    click_targets: list[ClickTarget] = field(default_factory=list)

    # Lookup dicts built in __post_init__
    _resources_by_id: dict[str, ResourceDef] = field(
        default_factory=dict, init=False, repr=False
    )
    _producers_by_id: dict[str, ProducerDef] = field(
        default_factory=dict, init=False, repr=False
    )
    _upgrades_by_id: dict[str, UpgradeDef] = field(
        default_factory=dict, init=False, repr=False
    )
    _click_targets_by_resource: dict[str, ClickTarget] = field(
        default_factory=dict, init=False, repr=False
    )

    def __post_init__(self) -> None:
        self._resources_by_id = {r.id: r for r in self.resources}
        self._producers_by_id = {p.id: p for p in self.producers}
        self._upgrades_by_id = {u.id: u for u in self.upgrades}
        self._click_targets_by_resource = {ct.resource: ct for ct in self.click_targets}

    def get_resource(self, id: str) -> ResourceDef | None:
        return self._resources_by_id.get(id)

    def get_producer(self, id: str) -> ProducerDef | None:
        return self._producers_by_id.get(id)

    def get_upgrade(self, id: str) -> UpgradeDef | None:
        return self._upgrades_by_id.get(id)

    def get_click_target(self, resource: str) -> ClickTarget | None:
        return self._click_targets_by_resource.get(resource)

    def validate(self) -> list[str]:
        """Check for common definition errors. Returns list of error messages."""
        errors: list[str] = []
        resource_ids = {r.id for r in self.resources}
        producer_ids = {p.id for p in self.producers}
        upgrade_ids = {u.id for u in self.upgrades}

        # Check for duplicate IDs
        seen_r: set[str] = set()
        for r in self.resources:
            if r.id in seen_r:
                errors.append(f"Duplicate resource ID: {r.id!r}")
            seen_r.add(r.id)

        seen_p: set[str] = set()
        for p in self.producers:
            if p.id in seen_p:
                errors.append(f"Duplicate producer ID: {p.id!r}")
            seen_p.add(p.id)

        seen_u: set[str] = set()
        for u in self.upgrades:
            if u.id in seen_u:
                errors.append(f"Duplicate upgrade ID: {u.id!r}")
            if u.id in producer_ids:
                errors.append(f"Upgrade ID {u.id!r} collides with a producer")
            seen_u.add(u.id)

        # Check costs and requirements of every item
        for kind, items, known in (
            ("Producer", self.producers, producer_ids),
            ("Upgrade", self.upgrades, upgrade_ids),
        ):
            for item in items:
                if item.cost_resource not in resource_ids:
                    errors.append(
                        f"{kind} {item.id!r} costs unknown resource {item.cost_resource!r}"
                    )
                curve = item.cost_curve
                if curve.max_level is not None and curve.max_level < 1:
                    errors.append(f"{kind} {item.id!r} has max_level below 1")
                if curve.base_cost.is_negative() or not curve.base_cost.is_finite():
                    errors.append(f"{kind} {item.id!r} has an invalid base cost")
                elif curve.cost_fn is None and curve.cost_multiplier.lt(ONE):
                    warnings.warn(
                        f"{kind} {item.id!r} has cost multiplier {curve.cost_multiplier} "
                        f"below 1, so each level gets cheaper.",
                        stacklevel=2,
                    )
                for req in item.requires:
                    if req not in known:
                        errors.append(f"{kind} {item.id!r} requires unknown {kind.lower()} {req!r}")

        # Check producers output known resources
        for p in self.producers:
            if p.produces_resource not in resource_ids:
                errors.append(
                    f"Producer {p.id!r} produces unknown resource {p.produces_resource!r}"
                )

        # Check upgrade effect targets
        scopes = resource_ids | {CLICK_SCOPE, ALL_TARGETS}
        for u in self.upgrades:
            for eff in u.effects:
                if eff.kind in (EffectKind.MULTIPLIER, EffectKind.ADDITIVE):
                    if eff.target not in scopes:
                        errors.append(
                            f"Upgrade {u.id!r} has effect targeting unknown scope {eff.target!r}"
                        )
                elif eff.kind is EffectKind.STARTING_BONUS:
                    if eff.target not in resource_ids:
                        errors.append(
                            f"Upgrade {u.id!r} grants unknown resource {eff.target!r}"
                        )

        # Check click targets reference known resources
        for ct in self.click_targets:
            if ct.resource not in resource_ids:
                errors.append(f"ClickTarget references unknown resource {ct.resource!r}")

        cfg = self.config
        for label, rid in (
            ("offline_resource", cfg.offline_resource),
            ("offline_reward_resource", cfg.offline_reward_resource),
        ):
            if rid and rid not in resource_ids:
                errors.append(f"EconomyConfig.{label} references unknown resource {rid!r}")
        if cfg.tick_step <= 0:
            errors.append("EconomyConfig.tick_step must be positive")

        return errors
