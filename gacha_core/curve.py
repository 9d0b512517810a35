"""Aggregation of per-pull probability tables into cumulative curves."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

import numpy as np

from .models import CurvePoint, ProbabilityTable


def is_sampled_pull(pull_count: int, step: int, max_pulls: int) -> bool:
    """Return True for pull 1, the final pull, and every multiple of ``step``."""

    return pull_count == 1 or pull_count == max_pulls or pull_count % step == 0


def achieved_histogram(
    table: ProbabilityTable, num_targets: int, copies_required: int
) -> np.ndarray:
    """Return mass indexed by how many targets are fully acquired."""

    histogram = np.zeros(num_targets + 1, dtype=float)
    for state, mass in table.items():
        histogram[state.achieved(copies_required)] += mass
    return histogram


def at_least_probabilities(histogram: np.ndarray) -> tuple[float, ...]:
    """Convert a histogram into P(at least k acquired) for ``k >= 1``."""

    cumulative = np.cumsum(histogram[::-1])[::-1]
    return tuple(float(value) for value in cumulative[1:])


class CurveAggregator:
    """Collect sampled curve points; usable directly as a simulator callback."""

    def __init__(
        self,
        num_targets: int,
        copies_required: int,
        step: int,
        max_pulls: int,
    ) -> None:
        self.num_targets = num_targets
        self.copies_required = copies_required
        self.step = step
        self.max_pulls = max_pulls
        self.points: list[CurvePoint] = []

    def __call__(self, pull_count: int, table: ProbabilityTable) -> None:
        if not is_sampled_pull(pull_count, self.step, self.max_pulls):
            return
        histogram = achieved_histogram(table, self.num_targets, self.copies_required)
        self.points.append(CurvePoint(pull_count, at_least_probabilities(histogram)))


def aggregate_curve(
    tables: Iterable[tuple[int, ProbabilityTable]],
    num_targets: int,
    copies_required: int,
    step: int,
    max_pulls: int,
) -> list[CurvePoint]:
    """Build the sampled curve from a sequence of ``(pull_count, table)`` pairs."""

    aggregator = CurveAggregator(num_targets, copies_required, step, max_pulls)
    for pull_count, table in tables:
        aggregator(pull_count, table)
    return aggregator.points


def curve_to_records(curve: Sequence[CurvePoint]) -> list[dict[str, object]]:
    """Return the curve in the charting layer's ``pullCount``/``probabilities`` shape."""

    return [
        {"pullCount": point.pull_count, "probabilities": list(point.probabilities)}
        for point in curve
    ]
