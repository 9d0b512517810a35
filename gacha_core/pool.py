"""Draw pool construction and guarantee classification."""

from __future__ import annotations

import logging
import operator
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Optional

from .catalog import validate_item_group
from .data import TARGET_NAME_SEPARATOR
from .errors import ConfigurationError, ErrorKind
from .models import CalculationSettings, DrawOutcome, ItemGroup, PityRules, TargetSlot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DrawPool:
    """Normalized outcomes plus the guarantee data derived from them.

    Attributes
    ----------
    outcomes:
        Base pool; weights sum to 1.
    guarantee_outcomes:
        Soft-guarantee pool, renormalized to sum to 1. Empty when no
        guarantee-flagged outcome carries any mass.
    targets:
        Tracked target slots in emission order.
    pity_targets:
        Indices of hard-guarantee eligible targets, in emission order.
    copies_required:
        Copies of each target needed before it counts as acquired.
    total_mass:
        Raw probability mass of the catalog before normalization.
    """

    outcomes: tuple[DrawOutcome, ...]
    guarantee_outcomes: tuple[DrawOutcome, ...]
    targets: tuple[TargetSlot, ...]
    pity_targets: tuple[int, ...]
    copies_required: int
    total_mass: float

    @property
    def num_targets(self) -> int:
        return len(self.targets)

    @property
    def target_names(self) -> list[str]:
        return [slot.name for slot in self.targets]


def target_slot_name(label: str, ordinal: int) -> str:
    """Return the display name of the ``ordinal``-th (1-based) target of a label."""

    return f"{label}{TARGET_NAME_SEPARATOR}{ordinal}"


def _coerce_target_count(label: str, raw: object) -> int:
    if isinstance(raw, float) and raw.is_integer():
        return int(raw)
    if not isinstance(raw, bool):
        try:
            return operator.index(raw)
        except TypeError:
            pass
    raise ConfigurationError(
        f"Invalid target count {raw!r} for '{label}'", ErrorKind.INVALID_TARGET_COUNT
    )


def normalize_targets(targets_by_label: Mapping[str, object]) -> dict[str, int]:
    """Return the requested targets with zero entries dropped.

    Raises
    ------
    ConfigurationError
        If a requested count is negative or not an integer.
    """

    normalized: dict[str, int] = {}
    for label, raw in targets_by_label.items():
        amount = _coerce_target_count(label, raw)
        if amount < 0:
            raise ConfigurationError(
                f"Invalid target count {amount} for '{label}'", ErrorKind.INVALID_TARGET_COUNT
            )
        if amount:
            normalized[label] = amount
    return normalized


def _coerce_positive_setting(name: str, value: object) -> int:
    invalid = ConfigurationError(
        f"{name} must be a positive integer, received {value!r}",
        ErrorKind.INVALID_SETTINGS,
    )
    if isinstance(value, bool):
        raise invalid
    try:
        number = operator.index(value)
    except TypeError as exc:
        raise invalid from exc
    if number < 1:
        raise invalid
    return number


def validate_settings(settings: CalculationSettings, rules: PityRules) -> None:
    """Check the numeric run parameters and guarantee periods."""

    for name in ("copies_required", "max_pulls", "sample_step"):
        _coerce_positive_setting(name, getattr(settings, name))
    if rules.soft_period < 1 or rules.hard_period < 1:
        raise ConfigurationError("Pity periods must be at least 1", ErrorKind.INVALID_SETTINGS)
    if rules.prune_epsilon < 0:
        raise ConfigurationError("prune_epsilon must be non-negative", ErrorKind.INVALID_SETTINGS)


def guarantee_pool(outcomes: Sequence[DrawOutcome]) -> tuple[DrawOutcome, ...]:
    """Return the guarantee-flagged outcomes rescaled so their weights sum to 1."""

    flagged = [outcome for outcome in outcomes if outcome.guarantee]
    flagged_total = sum(outcome.weight for outcome in flagged)
    if flagged_total <= 0.0:
        return tuple()
    return tuple(
        DrawOutcome(
            weight=outcome.weight / flagged_total,
            guarantee=True,
            target_index=outcome.target_index,
            label=outcome.label,
        )
        for outcome in flagged
    )


def pity_target_indices(targets: Sequence[TargetSlot]) -> tuple[int, ...]:
    """Return hard-guarantee eligible target indices in emission order."""

    return tuple(slot.index for slot in targets if slot.pity_eligible)


def _first_group_index(catalog: Sequence[ItemGroup], label: str) -> Optional[int]:
    for index, group in enumerate(catalog):
        if group.label == label:
            return index
    return None


def build_draw_pool(
    catalog: Sequence[ItemGroup],
    settings: CalculationSettings,
    rules: Optional[PityRules] = None,
) -> DrawPool:
    """Normalize the catalog into a draw pool for the requested targets.

    Parameters
    ----------
    catalog:
        Item groups in display order.
    settings:
        Target selection and run parameters.
    rules:
        Guarantee policy; defaults to the built-in label sets.

    Returns
    -------
    DrawPool
        Target outcomes first (in request order), then one residual outcome
        per group that still has untracked items.

    Raises
    ------
    ConfigurationError
        On an empty catalog or target selection, a negative or non-finite
        probability or count, zero total mass, an unknown label, or a target
        count above the label's item count.
    """

    if rules is None:
        rules = PityRules()
    if not catalog:
        raise ConfigurationError("The item catalog is empty", ErrorKind.NO_DATA)
    validate_settings(settings, rules)
    catalog = [validate_item_group(group) for group in catalog]
    targets_by_label = normalize_targets(settings.targets_by_label)
    if not targets_by_label:
        raise ConfigurationError("No targets were selected", ErrorKind.NO_TARGETS)

    total_mass = sum(group.group_mass for group in catalog)
    if total_mass <= 0.0:
        raise ConfigurationError(
            "The catalog's total probability must be positive",
            ErrorKind.ZERO_PROBABILITY_MASS,
        )

    outcomes: list[DrawOutcome] = []
    targets: list[TargetSlot] = []
    drawn_from: dict[int, int] = {}
    for label, amount in targets_by_label.items():
        group_index = _first_group_index(catalog, label)
        if group_index is None:
            raise ConfigurationError(
                f"Target label '{label}' was not found in the catalog",
                ErrorKind.UNKNOWN_LABEL,
            )
        group = catalog[group_index]
        if amount > group.count:
            raise ConfigurationError(
                f"Requested {amount} targets from '{label}' but only {group.count} exist",
                ErrorKind.INVALID_TARGET_COUNT,
            )
        drawn_from[group_index] = amount
        is_guarantee = label in rules.guarantee_labels
        for ordinal in range(1, amount + 1):
            slot = TargetSlot(
                name=target_slot_name(label, ordinal),
                label=label,
                index=len(targets),
                pity_eligible=label in rules.pity_labels,
            )
            targets.append(slot)
            outcomes.append(
                DrawOutcome(
                    weight=group.probability / total_mass,
                    guarantee=is_guarantee,
                    target_index=slot.index,
                    label=label,
                )
            )

    for group_index, group in enumerate(catalog):
        residual = group.count - drawn_from.get(group_index, 0)
        if residual > 0:
            outcomes.append(
                DrawOutcome(
                    weight=group.probability * residual / total_mass,
                    guarantee=group.label in rules.guarantee_labels,
                    label=group.label,
                )
            )

    pool = DrawPool(
        outcomes=tuple(outcomes),
        guarantee_outcomes=guarantee_pool(outcomes),
        targets=tuple(targets),
        pity_targets=pity_target_indices(targets),
        copies_required=operator.index(settings.copies_required),
        total_mass=total_mass,
    )
    logger.debug(
        "Built draw pool: %d outcomes, %d guarantee outcomes, %d targets (%d pity eligible)",
        len(pool.outcomes),
        len(pool.guarantee_outcomes),
        pool.num_targets,
        len(pool.pity_targets),
    )
    return pool
