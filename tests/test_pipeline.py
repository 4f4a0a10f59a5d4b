"""Tests for the production pipeline."""
from idleeconomy.bignum import D
from idleeconomy.pipeline import (
    MultiplierSource,
    ProductionPipeline,
    StackingType,
)


class _FakeClock:
    def __init__(self, now=0):
        self.now = now

    def __call__(self):
        return self.now


def _make_pipeline(now=0):
    clock = _FakeClock(now)
    return ProductionPipeline(clock=clock), clock


# ── Stacking ─────────────────────────────────────────────────────────


def test_multiplier_add_then_remove():
    pipe, _ = _make_pipeline()
    pipe.add_multiplier("double", MultiplierSource.OTHER, 2)
    assert pipe.calculate("pixels", 10) == 20
    assert pipe.remove_multiplier("double")
    assert pipe.calculate("pixels", 10) == 10


def test_additive_applied_before_multiplicative():
    pipe, _ = _make_pipeline()
    pipe.add_multiplier("flat", MultiplierSource.OTHER, 5, StackingType.ADDITIVE, "pixels")
    pipe.add_multiplier("triple", MultiplierSource.OTHER, 3, scope="pixels")
    assert pipe.calculate("pixels", 10) == 45
    assert pipe.get_total_additive("pixels") == 5
    assert pipe.get_total_multiplicative("pixels") == 3


def test_multiplicative_contributions_compound():
    pipe, _ = _make_pipeline()
    pipe.add_multiplier("a", MultiplierSource.OTHER, 2)
    pipe.add_multiplier("b", MultiplierSource.OTHER, "1.5")
    assert pipe.calculate("pixels", 10) == 30


def test_scope_isolation():
    pipe, _ = _make_pipeline()
    pipe.add_multiplier("global", MultiplierSource.OTHER, 2)
    pipe.add_multiplier("gold_only", MultiplierSource.OTHER, 10, scope="gold")
    assert pipe.calculate("pixels", 1) == 2
    assert pipe.calculate("gold", 1) == 20


def test_empty_pipeline_is_identity():
    pipe, _ = _make_pipeline()
    assert pipe.calculate("anything", "1e300") == D("1e300")


def test_same_id_replaces():
    pipe, _ = _make_pipeline()
    pipe.add_multiplier("boost", MultiplierSource.OTHER, 2)
    pipe.add_multiplier("boost", MultiplierSource.OTHER, 3)
    assert pipe.calculate("pixels", 10) == 30
    assert pipe.ids() == ["boost"]


def test_nan_contribution_is_skipped():
    pipe, _ = _make_pipeline()
    pipe.add_multiplier("broken", MultiplierSource.OTHER, "garbage")
    pipe.add_multiplier("good", MultiplierSource.OTHER, 2)
    assert pipe.calculate("pixels", 10) == 20


def test_update_and_deactivate():
    pipe, _ = _make_pipeline()
    pipe.add_multiplier("boost", MultiplierSource.OTHER, 2)
    assert pipe.update_value("boost", 4)
    assert pipe.calculate("pixels", 1) == 4
    assert pipe.set_active("boost", False)
    assert pipe.calculate("pixels", 1) == 1
    assert not pipe.update_value("missing", 4)
    assert not pipe.set_active("missing", True)
    assert not pipe.remove_multiplier("missing")


def test_clear_by_source():
    pipe, _ = _make_pipeline()
    pipe.add_multiplier("a", MultiplierSource.UPGRADE, 2)
    pipe.add_multiplier("b", MultiplierSource.UPGRADE, 2)
    pipe.add_multiplier("c", MultiplierSource.ACHIEVEMENT, 2)
    assert pipe.clear_by_source(MultiplierSource.UPGRADE) == 2
    assert pipe.ids() == ["c"]
    assert len(pipe.get_multipliers_by_source(MultiplierSource.ACHIEVEMENT)) == 1
    pipe.clear()
    assert pipe.ids() == []


def test_breakdown():
    pipe, _ = _make_pipeline()
    pipe.add_multiplier("flat", MultiplierSource.OTHER, 2, StackingType.ADDITIVE)
    pipe.add_multiplier("double", MultiplierSource.OTHER, 2)
    bd = pipe.get_breakdown("pixels", 8)
    assert bd.base == 8
    assert bd.additive_bonus == 2
    assert bd.multiplicative_factor == 2
    assert bd.final == 20
    assert len(bd.active_multipliers) == 2


def test_custom_formula_overrides_final():
    pipe, _ = _make_pipeline()
    pipe.add_multiplier("double", MultiplierSource.OTHER, 2)
    pipe.set_custom("pixels", lambda scope, bd: bd.final.sqrt())
    assert pipe.calculate("pixels", 8) == 4
    assert pipe.calculate("gold", 8) == 16


# ── Expiry ───────────────────────────────────────────────────────────


class TestTemporaryMultipliers:
    def test_expires_at_deadline(self):
        pipe, clock = _make_pipeline(now=5000)
        pipe.add_multiplier("frenzy", MultiplierSource.TEMPORARY, 7, duration_ms=1000)
        clock.now = 5999
        assert pipe.has_multiplier("frenzy")
        assert pipe.calculate("pixels", 1) == 7
        clock.now = 6000
        assert not pipe.has_multiplier("frenzy")
        assert pipe.get_multiplier("frenzy") is None
        assert pipe.calculate("pixels", 1) == 1

    def test_purge_expired(self):
        pipe, clock = _make_pipeline()
        pipe.add_multiplier("short", MultiplierSource.TEMPORARY, 2, duration_ms=10)
        pipe.add_multiplier("forever", MultiplierSource.OTHER, 2)
        clock.now = 10
        assert pipe.purge_expired() == 1
        assert pipe.ids() == ["forever"]


# ── Persistence ──────────────────────────────────────────────────────


class TestPipelinePersistence:
    def test_serialize_skips_derived_sources(self):
        pipe, _ = _make_pipeline()
        pipe.add_multiplier("producer_x", MultiplierSource.PRODUCER, 2)
        pipe.add_multiplier("upgrade_y:0", MultiplierSource.UPGRADE, 2)
        pipe.add_multiplier("ach", MultiplierSource.ACHIEVEMENT, "1.5", scope="pixels")
        data = pipe.serialize()
        assert [e["id"] for e in data] == ["ach"]
        assert data[0]["source"] == "achievement"
        assert data[0]["stacking"] == "multiplicative"
        assert data[0]["value"] == "1.5"
        assert "remainingMs" not in data[0]

    def test_round_trip_keeps_remaining_time(self):
        pipe, clock = _make_pipeline(now=1000)
        pipe.add_multiplier("frenzy", MultiplierSource.TEMPORARY, 7, duration_ms=3000)
        pipe.add_multiplier("bonus", MultiplierSource.PHASE, 5, StackingType.ADDITIVE)
        pipe.set_active("bonus", False)
        clock.now = 2000
        data = pipe.serialize()
        assert data[0]["remainingMs"] == 2000

        restored, other_clock = _make_pipeline(now=50_000)
        restored.deserialize(data)
        frenzy = restored.get_multiplier("frenzy")
        assert frenzy.value == 7
        assert frenzy.expires_at == 52_000
        bonus = restored.get_multiplier("bonus")
        assert bonus.stacking is StackingType.ADDITIVE
        assert not bonus.active
        other_clock.now = 52_000
        assert not restored.has_multiplier("frenzy")

    def test_deserialize_keeps_derived_contributions(self):
        pipe, _ = _make_pipeline()
        pipe.add_multiplier("producer_x", MultiplierSource.PRODUCER, 3)
        pipe.add_multiplier("old", MultiplierSource.OTHER, 9)
        pipe.deserialize([])
        assert pipe.ids() == ["producer_x"]

    def test_deserialize_malformed_input(self):
        pipe, _ = _make_pipeline()
        pipe.deserialize(None)
        pipe.deserialize("not a list")
        pipe.deserialize([
            1,
            {"id": 5, "source": "other", "value": "2"},
            {"id": "bad_source", "source": "nope", "value": "2"},
            {"id": "derived", "source": "upgrade", "value": "2"},
            {"id": "expired", "source": "temporary", "value": "2", "remainingMs": 0},
            {"id": "ok", "source": "other", "value": "2"},
        ])
        assert pipe.ids() == ["ok"]
        assert pipe.calculate("pixels", 1) == 2
