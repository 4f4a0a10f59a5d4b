"""Tests for the Economy facade: loop, actions, rebirth, offline and saves."""
import json

import pytest

from idleeconomy.bignum import ZERO, D
from idleeconomy.cost_curve import CostCurve
from idleeconomy.definition import ClickTarget, EconomyConfig, EconomyDefinition
from idleeconomy.economy import SAVE_VERSION, Economy
from idleeconomy.events import (
    OFFLINE_PROGRESS,
    PRODUCER_UNLOCKED,
    REBIRTH,
    UPGRADE_UNLOCKED,
    EventRecorder,
)
from idleeconomy.ledger import ResourceDef
from idleeconomy.pipeline import MultiplierSource
from idleeconomy.producer import ProducerDef
from idleeconomy.registry import ItemCategory
from idleeconomy.requirement import Req
from idleeconomy.upgrade import UpgradeDef, UpgradeEffect

START = 1_700_000_000_000


class _FakeClock:
    def __init__(self, now=START):
        self.now = now

    def __call__(self):
        return self.now


def _make_definition(**config):
    return EconomyDefinition(
        config=EconomyConfig(name="Test", **config),
        resources=[
            ResourceDef("gold"),
            ResourceDef("essence", persistent=True),
        ],
        producers=[
            ProducerDef("miner", cost_resource="gold", cost_curve=CostCurve.exponential(10, 2),
                        produces_resource="gold", base_production=1),
            ProducerDef("quarry", cost_resource="gold", cost_curve=CostCurve.fixed(10),
                        produces_resource="gold", base_production=5, min_phase=2),
            ProducerDef("golem", cost_resource="gold", cost_curve=CostCurve.fixed(10),
                        produces_resource="gold", base_production=50, hidden=True),
        ],
        upgrades=[
            UpgradeDef("pick", cost_resource="gold", cost_curve=CostCurve.one_time(50),
                       effects=[UpgradeEffect.multiplier("gold", 2)]),
            UpgradeDef("rune", cost_resource="gold", cost_curve=CostCurve.one_time(5),
                       unlock_conditions=[Req.producer("miner", ">=", 3)],
                       effects=[UpgradeEffect.unlock("golem")]),
            UpgradeDef("legacy", cost_resource="essence", cost_curve=CostCurve.fixed(1),
                       category=ItemCategory.ETERNAL,
                       effects=[UpgradeEffect.starting_bonus("gold", 25)]),
        ],
        click_targets=[ClickTarget("gold", base_value=1)],
    )


def _make_economy(gold=0, **config):
    events = EventRecorder()
    clock = _FakeClock()
    economy = Economy(_make_definition(**config), publish=events, clock=clock)
    if gold:
        economy.ledger.add("gold", gold)
    events.clear()
    return economy, events, clock


# ── Construction ─────────────────────────────────────────────────────


def test_construct():
    economy, _, _ = _make_economy()
    assert economy.run_number == 1
    assert economy.current_phase == 1
    assert economy.last_active == START
    assert economy.get_resource_amount("gold") == 0
    assert economy.producers.is_unlocked("miner")
    assert not economy.upgrades.is_unlocked("rune")


def test_invalid_definition_raises():
    defn = _make_definition()
    defn.producers.append(
        ProducerDef("broken", cost_resource="silver", produces_resource="gold")
    )
    with pytest.raises(ValueError, match="Invalid EconomyDefinition"):
        Economy(defn)


class TestValidate:
    def test_valid(self):
        assert _make_definition().validate() == []

    def test_reports_errors(self):
        defn = EconomyDefinition(
            config=EconomyConfig(tick_step=0, offline_resource="mana"),
            resources=[ResourceDef("gold"), ResourceDef("gold")],
            producers=[
                ProducerDef("a", cost_resource="gold", produces_resource="wood",
                            requires=["ghost"]),
            ],
            upgrades=[
                UpgradeDef("a", cost_resource="gold",
                           effects=[UpgradeEffect.multiplier("mana", 2)]),
                UpgradeDef("b", cost_resource="gold", cost_curve=CostCurve.fixed(-1),
                           effects=[UpgradeEffect.starting_bonus("wood", 1)]),
            ],
            click_targets=[ClickTarget("stone")],
        )
        errors = "\n".join(defn.validate())
        assert "Duplicate resource ID: 'gold'" in errors
        assert "collides with a producer" in errors
        assert "produces unknown resource 'wood'" in errors
        assert "requires unknown producer 'ghost'" in errors
        assert "unknown scope 'mana'" in errors
        assert "invalid base cost" in errors
        assert "grants unknown resource 'wood'" in errors
        assert "ClickTarget references unknown resource 'stone'" in errors
        assert "offline_resource" in errors
        assert "tick_step must be positive" in errors

    def test_cheapening_curve_warns(self):
        defn = _make_definition()
        defn.producers.append(
            ProducerDef("odd", cost_resource="gold", produces_resource="gold",
                        cost_curve=CostCurve.exponential(10, "0.5"))
        )
        with pytest.warns(UserWarning, match="below 1"):
            assert defn.validate() == []


# ── Loop ─────────────────────────────────────────────────────────────


class TestLoop:
    def test_tick_produces(self):
        economy, _, clock = _make_economy(gold=100)
        economy.purchase_producer("miner")
        clock.now += 1000
        assert economy.tick(1) == {"gold": D(1)}
        assert economy.get_resource_amount("gold") == 91
        assert economy.time_elapsed == 1.0
        assert economy.last_active == START + 1000

    def test_invalid_delta(self):
        economy, _, _ = _make_economy(gold=100)
        economy.purchase_producer("miner")
        for delta in (0, -1, float("nan"), float("inf"), D("1e500"), "abc", None, True, [1]):
            assert economy.tick(delta) == {}
        assert economy.time_elapsed == 0.0

    def test_tick_accepts_decimal_sources(self):
        economy, _, _ = _make_economy(gold=100)
        economy.purchase_producer("miner")
        assert economy.tick(D("1.5")) == {"gold": D("1.5")}
        assert economy.tick("2") == {"gold": D(2)}
        assert economy.time_elapsed == pytest.approx(3.5)

    def test_advance(self):
        economy, _, _ = _make_economy(gold=100)
        economy.purchase_producer("miner")
        totals = economy.advance(5)
        assert totals["gold"] == 5
        assert economy.time_elapsed == pytest.approx(5.0)
        totals = economy.advance(2.5, step=1)
        assert totals["gold"] == D("2.5")

    @pytest.mark.parametrize("seconds", [0, -5, float("nan"), float("inf"), D("1e500"), None])
    def test_advance_rejects_unusable_durations(self, seconds):
        economy, _, _ = _make_economy(gold=100)
        economy.purchase_producer("miner")
        assert economy.advance(seconds) == {}
        assert economy.time_elapsed == 0.0

    @pytest.mark.parametrize("step", [-1, 0, float("nan"), float("inf"), "abc"])
    def test_advance_falls_back_to_tick_step(self, step):
        economy, _, _ = _make_economy(gold=100)
        economy.purchase_producer("miner")
        totals = economy.advance(3, step=step)
        assert totals["gold"] == 3
        assert economy.time_elapsed == pytest.approx(3.0)

    def test_temporary_boost_expires(self):
        economy, _, clock = _make_economy(gold=100)
        economy.purchase_producer("miner")
        economy.pipeline.add_multiplier(
            "frenzy", MultiplierSource.TEMPORARY, 7, duration_ms=1000
        )
        assert economy.tick(1) == {"gold": D(7)}
        clock.now += 1000
        assert economy.tick(1) == {"gold": D(1)}
        assert "frenzy" not in economy.pipeline.ids()


# ── Actions ──────────────────────────────────────────────────────────


class TestActions:
    def test_click(self):
        economy, _, _ = _make_economy()
        assert economy.click("gold") == 1
        assert economy.click("essence") == ZERO
        assert economy.get_resource_amount("gold") == 1

    def test_click_uses_global_multipliers(self):
        economy, _, _ = _make_economy()
        economy.pipeline.add_multiplier("all_x3", MultiplierSource.ACHIEVEMENT, 3)
        assert economy.click("gold") == 3

    def test_upgrade_multiplies_production(self):
        economy, _, _ = _make_economy(gold=100)
        economy.purchase_producer("miner")
        assert economy.production_rate("gold") == 1
        assert economy.purchase_upgrade("pick").success
        assert economy.production_rate("gold") == 2

    def test_condition_unlock_chain(self):
        economy, events, _ = _make_economy(gold=1000)
        economy.purchase_producer("miner", 2)
        assert not economy.upgrades.is_unlocked("rune")
        economy.purchase_producer("miner")
        assert economy.upgrades.is_unlocked("rune")
        assert events.named(UPGRADE_UNLOCKED)[0]["id"] == "rune"
        economy.purchase_upgrade("rune")
        assert economy.producers.is_unlocked("golem")
        assert economy.purchase_producer("golem").success

    def test_set_phase(self):
        economy, _, _ = _make_economy()
        assert not economy.producers.is_unlocked("quarry")
        economy.set_phase(2)
        assert economy.current_phase == 2
        assert economy.producers.is_unlocked("quarry")

    def test_unknown_purchase(self):
        economy, _, _ = _make_economy(gold=100)
        assert economy.purchase_producer("castle").reason == "Unknown producer"
        assert economy.purchase_upgrade("castle").reason == "Unknown upgrade"


# ── Rebirth ──────────────────────────────────────────────────────────


def test_rebirth():
    economy, events, _ = _make_economy(gold=1000)
    economy.ledger.add("essence", 3)
    economy.purchase_producer("miner", 3)
    economy.purchase_upgrade("pick")
    economy.purchase_upgrade("legacy")
    economy.set_phase(2)

    result = economy.rebirth()
    assert result.success
    assert result.run_number == 2
    assert "gold" in result.resources_reset
    assert "essence" not in result.resources_reset
    assert "miner" in result.producers_reset
    assert "legacy" not in result.upgrades_reset
    assert economy.current_phase == 1
    assert economy.producers.get_level("miner") == 0
    assert economy.upgrades.get_level("pick") == 0
    assert economy.upgrades.get_level("legacy") == 1
    assert economy.get_resource_amount("essence") == 2
    assert economy.get_resource_amount("gold") == 25
    assert not economy.upgrades.is_unlocked("rune")
    assert not economy.producers.is_unlocked("quarry")
    assert events.named(REBIRTH) == [{"run_number": 2}]


def _make_gated_definition():
    return EconomyDefinition(
        config=EconomyConfig(name="Gated"),
        resources=[ResourceDef("gold")],
        producers=[
            ProducerDef("mine", cost_resource="gold", produces_resource="gold",
                        unlock_conditions=[Req.owns_upgrade("deed")]),
            ProducerDef("forge", cost_resource="gold", produces_resource="gold",
                        unlock_conditions=[Req.phase(3)]),
            ProducerDef("vault", cost_resource="gold", produces_resource="gold",
                        hidden=True),
        ],
        upgrades=[
            UpgradeDef("deed", cost_resource="gold", cost_curve=CostCurve.one_time(5)),
            UpgradeDef("charter", cost_resource="gold", cost_curve=CostCurve.one_time(5),
                       category=ItemCategory.ETERNAL,
                       effects=[UpgradeEffect.unlock("vault")]),
        ],
    )


class TestRebirthUnlocks:
    def _played(self):
        events = EventRecorder()
        economy = Economy(_make_gated_definition(), publish=events, clock=_FakeClock())
        economy.ledger.add("gold", 100)
        assert economy.purchase_upgrade("deed").success
        assert economy.purchase_upgrade("charter").success
        economy.set_phase(3)
        assert economy.producers.is_unlocked("mine")
        assert economy.producers.is_unlocked("forge")
        assert economy.producers.is_unlocked("vault")
        events.clear()
        return economy, events

    def test_upgrade_gated_producer_relocks(self):
        economy, _ = self._played()
        economy.rebirth()
        assert not economy.upgrades.is_owned("deed")
        assert not economy.producers.is_unlocked("mine")

    def test_phase_gated_producer_relocks(self):
        economy, _ = self._played()
        economy.rebirth()
        assert economy.current_phase == 1
        assert not economy.producers.is_unlocked("forge")

    def test_eternal_unlock_effect_survives(self):
        economy, events = self._played()
        economy.rebirth()
        assert economy.upgrades.is_owned("charter")
        assert economy.producers.is_unlocked("vault")
        assert events.named(PRODUCER_UNLOCKED) == []

    def test_relocked_producer_unlocks_again(self):
        economy, events = self._played()
        economy.rebirth()
        economy.ledger.add("gold", 5)
        assert economy.purchase_upgrade("deed").success
        assert economy.producers.is_unlocked("mine")
        assert [e["id"] for e in events.named(PRODUCER_UNLOCKED)] == ["mine"]


# ── Offline ──────────────────────────────────────────────────────────


class TestOffline:
    def test_apply(self):
        economy, events, clock = _make_economy(gold=100)
        economy.purchase_producer("miner")
        economy.tick(1)
        clock.now += 3 * 3600 * 1000
        result = economy.apply_offline_progress()
        assert result.rewards.time_away == 10800
        assert result.rewards.reward == 1080
        assert economy.get_resource_amount("gold") == 91 + 1080
        assert economy.last_active == clock.now
        assert events.named(OFFLINE_PROGRESS)[0]["reward"] == 1080

    def test_calculate_does_not_mutate(self):
        economy, _, _ = _make_economy(gold=100)
        economy.purchase_producer("miner")
        result = economy.calculate_offline_progress(now_ms=START + 600_000)
        assert result.rewards.reward == 60
        assert economy.get_resource_amount("gold") == 90
        assert economy.last_active == START

    def test_reward_resource(self):
        economy, _, clock = _make_economy(
            gold=100, offline_resource="gold", offline_reward_resource="essence"
        )
        economy.purchase_producer("miner")
        clock.now += 600_000
        economy.apply_offline_progress()
        assert economy.get_resource_amount("essence") == 60
        assert economy.get_resource_amount("gold") == 90

    def test_short_absence(self):
        economy, events, clock = _make_economy(gold=100)
        economy.purchase_producer("miner")
        clock.now += 30_000
        result = economy.apply_offline_progress()
        assert result.rewards.reward == 0
        assert events.named(OFFLINE_PROGRESS) == []
        assert economy.last_active == clock.now


# ── Persistence ──────────────────────────────────────────────────────


class TestPersistence:
    def _played(self):
        economy, _, clock = _make_economy(gold=1000)
        economy.ledger.add("essence", 2)
        economy.purchase_producer("miner", 3)
        economy.purchase_upgrade("pick")
        economy.purchase_upgrade("rune")
        economy.purchase_upgrade("legacy")
        economy.set_phase(2)
        economy.pipeline.add_multiplier(
            "frenzy", MultiplierSource.TEMPORARY, 7, duration_ms=60_000
        )
        economy.advance(3)
        return economy, clock

    def test_serialize_shape(self):
        economy, _ = self._played()
        data = economy.serialize()
        assert data["version"] == SAVE_VERSION
        assert data["phase"] == 2
        assert data["producers"]["levels"] == {"miner": 3}
        assert [m["id"] for m in data["pipeline"]] == ["frenzy"]
        json.dumps(data)

    def test_json_round_trip(self):
        economy, clock = self._played()
        text = economy.to_json()

        restored = Economy(_make_definition(), clock=clock)
        assert restored.from_json(text)
        assert restored.current_phase == 2
        assert restored.get_resource_amount("gold") == economy.get_resource_amount("gold")
        assert restored.get_resource_amount("essence") == 1
        assert restored.producers.get_level("miner") == 3
        assert restored.upgrades.is_owned("pick")
        assert restored.producers.is_unlocked("golem")
        assert restored.producers.is_unlocked("quarry")
        assert restored.production_rate("gold") == economy.production_rate("gold")
        assert restored.production_rate("gold") == 42
        assert restored.time_elapsed == pytest.approx(3.0)
        assert restored.last_active == economy.last_active

    def test_bad_json(self):
        economy, _, _ = _make_economy()
        assert not economy.from_json("{not json")
        assert not economy.deserialize([1, 2, 3])
        assert not economy.deserialize(None)

    def test_empty_save_restores_defaults(self):
        economy, _ = self._played()
        assert economy.deserialize({})
        assert economy.current_phase == 1
        assert economy.run_number == 1
        assert economy.producers.get_level("miner") == 0
        assert economy.get_resource_amount("gold") == 0
        assert economy.production_rate("gold") == 0

    def test_malformed_sections(self):
        economy, _, _ = _make_economy()
        assert economy.deserialize({
            "phase": "two",
            "runNumber": -4,
            "timeElapsed": "long",
            "resources": {"amounts": {"gold": "12"}},
            "producers": "garbage",
            "upgrades": {"levels": {"pick": 1}},
            "pipeline": {"not": "a list"},
        })
        assert economy.current_phase == 1
        assert economy.run_number == 1
        assert economy.time_elapsed == 0.0
        assert economy.get_resource_amount("gold") == 12
        assert economy.upgrades.is_owned("pick")
