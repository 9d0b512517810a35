"""Dataclasses shared across the pool builder, simulator, and aggregator."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Optional

from .data import (
    DEFAULT_COPIES_REQUIRED,
    DEFAULT_MAX_PULLS,
    DEFAULT_SAMPLE_STEP,
    GUARANTEE_LABELS,
    HARD_PITY_PERIOD,
    PITY_LABELS,
    PRUNE_EPSILON,
    SOFT_PITY_PERIOD,
    StateCounts,
)
from .errors import ErrorKind


@dataclass(frozen=True)
class ItemGroup:
    """Catalog row: ``count`` indistinguishable items sharing one probability."""

    label: str
    probability: float
    count: int

    @property
    def group_mass(self) -> float:
        """Return the combined draw probability of every item in the group."""

        return self.probability * self.count


@dataclass(frozen=True)
class TargetSlot:
    """One individually tracked item synthesized from a catalog label."""

    name: str
    label: str
    index: int
    pity_eligible: bool


@dataclass(frozen=True)
class DrawOutcome:
    """Normalized entry of a draw pool."""

    weight: float
    guarantee: bool
    target_index: Optional[int] = None
    label: str = ""


@dataclass(frozen=True)
class SimulationState:
    """DP key: per-target copy counts plus both pity counters."""

    counts: StateCounts
    soft_position: int = 0
    soft_satisfied: bool = False
    hard_position: int = 0

    @classmethod
    def initial(cls, num_targets: int) -> SimulationState:
        return cls(counts=(0,) * num_targets)

    def achieved(self, copies_required: int) -> int:
        """Return how many targets have reached ``copies_required`` copies."""

        return sum(1 for count in self.counts if count >= copies_required)


ProbabilityTable = dict[SimulationState, float]


@dataclass(frozen=True)
class PityRules:
    """Guarantee policy applied by the simulator.

    Parameters
    ----------
    guarantee_labels:
        Labels whose outcomes satisfy the soft (10-pull) guarantee.
    pity_labels:
        Labels whose target slots may be force-granted by the hard guarantee.
    soft_period:
        Block length of the soft guarantee.
    hard_period:
        Pull interval after which the hard guarantee fires.
    prune_epsilon:
        States whose mass falls below this value are dropped.
    """

    guarantee_labels: frozenset[str] = GUARANTEE_LABELS
    pity_labels: frozenset[str] = PITY_LABELS
    soft_period: int = SOFT_PITY_PERIOD
    hard_period: int = HARD_PITY_PERIOD
    prune_epsilon: float = PRUNE_EPSILON


@dataclass
class CalculationSettings:
    """Target selection and run length requested by the caller."""

    targets_by_label: Mapping[str, int] = field(default_factory=dict)
    copies_required: int = DEFAULT_COPIES_REQUIRED
    max_pulls: int = DEFAULT_MAX_PULLS
    sample_step: int = DEFAULT_SAMPLE_STEP


@dataclass(frozen=True)
class CurvePoint:
    """``probabilities[i]`` is P(at least ``i + 1`` targets acquired)."""

    pull_count: int
    probabilities: tuple[float, ...]


@dataclass
class BannerPreset:
    """Named catalog bundled with a default target selection."""

    name: str
    items: list[ItemGroup]
    targets_by_label: dict[str, int]


@dataclass(frozen=True)
class ErrorInfo:
    """Validation or computation failure reported to the presentation layer."""

    kind: ErrorKind
    message: str
