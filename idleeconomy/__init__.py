# idleeconomy: extended-precision idle-game progression engine

from idleeconomy.bignum import (
    D,
    DecimalSource,
    ExtendedDecimal,
    ZERO,
    ONE,
    TWO,
    TEN,
    HUNDRED,
    THOUSAND,
    MILLION,
    BILLION,
    TRILLION,
    INFINITY,
    NEG_INFINITY,
    maximum,
    minimum,
    calculate_production,
    apply_multiplier,
    apply_percent_bonus,
)
from idleeconomy._types import Clock, compare, now_ms
from idleeconomy.events import Publish, EventRecorder, null_publish
from idleeconomy.context import GameContext
from idleeconomy.requirement import Requirement, Req
from idleeconomy.cost_curve import (
    CostCurve,
    calculate_exponential_cost,
    calculate_bulk_cost,
    calculate_max_affordable,
)
from idleeconomy.pipeline import (
    GLOBAL_SCOPE,
    Multiplier,
    MultiplierSource,
    ProductionBreakdown,
    ProductionPipeline,
    StackingType,
)
from idleeconomy.ledger import EconomyLedger, ResourceDef, ResourceState
from idleeconomy.registry import (
    ItemCategory,
    ItemDef,
    ItemRegistry,
    ItemState,
    PurchaseResult,
)
from idleeconomy.producer import ProducerDef, ProducerRegistry
from idleeconomy.upgrade import (
    EffectKind,
    Scaling,
    UpgradeDef,
    UpgradeEffect,
    UpgradeRegistry,
)
from idleeconomy.offline import (
    DEFAULT_OFFLINE_CONFIG,
    FULL_REST_BONUS,
    OfflineBreakdown,
    OfflineCalculationResult,
    OfflineConfig,
    OfflineReward,
    calculate_offline_progress,
    calculate_offline_progress_with_breakdown,
)
from idleeconomy.definition import ClickTarget, EconomyConfig, EconomyDefinition
from idleeconomy.economy import Economy, ResetResult
from idleeconomy.formatting import format_duration, format_number

__all__ = [
    # Numbers
    "D",
    "DecimalSource",
    "ExtendedDecimal",
    "ZERO",
    "ONE",
    "TWO",
    "TEN",
    "HUNDRED",
    "THOUSAND",
    "MILLION",
    "BILLION",
    "TRILLION",
    "INFINITY",
    "NEG_INFINITY",
    "maximum",
    "minimum",
    "calculate_production",
    "apply_multiplier",
    "apply_percent_bonus",
    # Types
    "Clock",
    "compare",
    "now_ms",
    # Events
    "Publish",
    "EventRecorder",
    "null_publish",
    # Context & requirements
    "GameContext",
    "Requirement",
    "Req",
    # Cost
    "CostCurve",
    "calculate_exponential_cost",
    "calculate_bulk_cost",
    "calculate_max_affordable",
    # Pipeline
    "GLOBAL_SCOPE",
    "Multiplier",
    "MultiplierSource",
    "ProductionBreakdown",
    "ProductionPipeline",
    "StackingType",
    # Ledger
    "EconomyLedger",
    "ResourceDef",
    "ResourceState",
    # Registries
    "ItemCategory",
    "ItemDef",
    "ItemRegistry",
    "ItemState",
    "PurchaseResult",
    "ProducerDef",
    "ProducerRegistry",
    "EffectKind",
    "Scaling",
    "UpgradeDef",
    "UpgradeEffect",
    "UpgradeRegistry",
    # Offline
    "DEFAULT_OFFLINE_CONFIG",
    "FULL_REST_BONUS",
    "OfflineBreakdown",
    "OfflineCalculationResult",
    "OfflineConfig",
    "OfflineReward",
    "calculate_offline_progress",
    "calculate_offline_progress_with_breakdown",
    # Definition & runtime
    "ClickTarget",
    "EconomyConfig",
    "EconomyDefinition",
    "Economy",
    "ResetResult",
    # Formatting
    "format_duration",
    "format_number",
]
