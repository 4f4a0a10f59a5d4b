"""Pixel painting example economy."""
from __future__ import annotations

from idleeconomy.cost_curve import CostCurve
from idleeconomy.definition import ClickTarget, EconomyConfig, EconomyDefinition
from idleeconomy.ledger import ResourceDef
from idleeconomy.offline import OfflineConfig
from idleeconomy.producer import ProducerDef
from idleeconomy.registry import ItemCategory
from idleeconomy.requirement import Req
from idleeconomy.upgrade import Scaling, UpgradeDef, UpgradeEffect


def define_economy() -> EconomyDefinition:
    return EconomyDefinition(
        config=EconomyConfig(
            name="Pixel Example",
            tick_step=1.0,
            offline=OfflineConfig(capped_hours=8, efficiency=0.1, minimum_time_seconds=60),
            offline_resource="pixels",
            offline_reward_resource="dream_pixels",
        ),
        resources=[
            ResourceDef("pixels", display_name="Pixels"),
            ResourceDef("dream_pixels", display_name="Dream Pixels", persistent=True),
        ],
        producers=[
            ProducerDef(
                id="pixel_brush",
                name="Pixel Brush",
                cost_resource="pixels",
                cost_curve=CostCurve.exponential(10, "1.15"),
                produces_resource="pixels",
                base_production=1,
                display_order=1,
            ),
            ProducerDef(
                id="pixel_painter",
                name="Pixel Painter",
                cost_resource="pixels",
                cost_curve=CostCurve.exponential(100, "1.15"),
                produces_resource="pixels",
                base_production=8,
                requires=["pixel_brush"],
                display_order=2,
            ),
            ProducerDef(
                id="canvas_loom",
                name="Canvas Loom",
                cost_resource="pixels",
                cost_curve=CostCurve.exponential(1100, "1.15"),
                produces_resource="pixels",
                base_production=47,
                level_multiplier="1.1",
                min_phase=2,
                display_order=3,
            ),
            ProducerDef(
                id="dream_weaver",
                name="Dream Weaver",
                cost_resource="pixels",
                cost_curve=CostCurve.exponential(12000, "1.2"),
                produces_resource="pixels",
                base_production=260,
                hidden=True,
                display_order=4,
            ),
        ],
        upgrades=[
            UpgradeDef(
                id="sharper_brush",
                name="Sharper Brush",
                cost_resource="pixels",
                cost_curve=CostCurve.one_time(100),
                requires=[],
                effects=[UpgradeEffect.multiplier("pixels", 2)],
            ),
            UpgradeDef(
                id="steady_hand",
                name="Steady Hand",
                cost_resource="pixels",
                cost_curve=CostCurve.exponential(50, "1.5", max_level=10),
                effects=[UpgradeEffect.multiplier("click", "1.5", Scaling.LINEAR)],
            ),
            UpgradeDef(
                id="lucid_dreaming",
                name="Lucid Dreaming",
                cost_resource="pixels",
                cost_curve=CostCurve.one_time(5000),
                unlock_conditions=[Req.producer("pixel_painter", ">=", 5)],
                effects=[UpgradeEffect.unlock("dream_weaver")],
            ),
            UpgradeDef(
                id="quick_start",
                name="Quick Start",
                cost_resource="dream_pixels",
                cost_curve=CostCurve.exponential(10, 2, max_level=5),
                category=ItemCategory.ETERNAL,
                effects=[UpgradeEffect.starting_bonus("pixels", 50)],
            ),
            UpgradeDef(
                id="seed_of_life",
                name="Seed of Life",
                cost_resource="dream_pixels",
                cost_curve=CostCurve.exponential(10, 2, max_level=5),
                category=ItemCategory.ETERNAL,
                effects=[UpgradeEffect.multiplier("all", "1.1", Scaling.EXPONENTIAL)],
            ),
        ],
        click_targets=[ClickTarget("pixels", base_value=1)],
    )
