"""Exact acquisition-probability engine for pity-based gacha banners."""

from .api import (
    CurveComputationResult,
    compute_probability_curve,
    error_info_from_exception,
    prepare_pool,
    state_space_bound,
    validate_calculation_data,
)
from .catalog import (
    builtin_presets,
    catalog_to_records,
    default_catalog,
    format_probability_percent,
    load_banner_presets,
    normalize_catalog,
    parse_probability_percent,
    validate_item_group,
)
from .curve import CurveAggregator, aggregate_curve, curve_to_records
from .data import (
    CSV_HEADER,
    DEFAULT_COPIES_REQUIRED,
    DEFAULT_MAX_PULLS,
    DEFAULT_SAMPLE_STEP,
    GUARANTEE_LABELS,
    HARD_PITY_PERIOD,
    PITY_LABELS,
    SOFT_PITY_PERIOD,
)
from .errors import (
    CalculationCancelled,
    ComputationError,
    ConfigurationError,
    ErrorKind,
    GachaError,
)
from .models import (
    BannerPreset,
    CalculationSettings,
    CurvePoint,
    DrawOutcome,
    ErrorInfo,
    ItemGroup,
    PityRules,
    ProbabilityTable,
    SimulationState,
    TargetSlot,
)
from .pool import DrawPool, build_draw_pool
from .simulation import PullSimulator

__all__ = [
    "BannerPreset",
    "CSV_HEADER",
    "CalculationCancelled",
    "CalculationSettings",
    "ComputationError",
    "ConfigurationError",
    "CurveAggregator",
    "CurveComputationResult",
    "CurvePoint",
    "DEFAULT_COPIES_REQUIRED",
    "DEFAULT_MAX_PULLS",
    "DEFAULT_SAMPLE_STEP",
    "DrawOutcome",
    "DrawPool",
    "ErrorInfo",
    "ErrorKind",
    "GUARANTEE_LABELS",
    "GachaError",
    "HARD_PITY_PERIOD",
    "ItemGroup",
    "PITY_LABELS",
    "PityRules",
    "ProbabilityTable",
    "PullSimulator",
    "SOFT_PITY_PERIOD",
    "SimulationState",
    "TargetSlot",
    "aggregate_curve",
    "build_draw_pool",
    "builtin_presets",
    "catalog_to_records",
    "compute_probability_curve",
    "curve_to_records",
    "default_catalog",
    "error_info_from_exception",
    "format_probability_percent",
    "load_banner_presets",
    "normalize_catalog",
    "parse_probability_percent",
    "prepare_pool",
    "state_space_bound",
    "validate_calculation_data",
    "validate_item_group",
]
