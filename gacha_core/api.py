"""High-level entry points used by the UI and callers."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from dataclasses import dataclass
from time import perf_counter
from typing import Optional

from .catalog import CatalogRecord, normalize_catalog
from .curve import CurveAggregator
from .errors import (
    CalculationCancelled,
    ComputationError,
    ConfigurationError,
    ErrorKind,
    GachaError,
)
from .models import CalculationSettings, CurvePoint, ErrorInfo, PityRules
from .pool import DrawPool, build_draw_pool
from .simulation import PullSimulator

logger = logging.getLogger(__name__)


@dataclass
class CurveComputationResult:
    """Bundle containing the curve and derived reporting artefacts."""

    curve: list[CurvePoint]
    target_names: list[str]
    pool: DrawPool
    compute_seconds: float
    peak_states: int


def prepare_pool(
    catalog: Iterable[CatalogRecord],
    settings: CalculationSettings,
    rules: Optional[PityRules] = None,
) -> DrawPool:
    """Normalize raw catalog rows and build the draw pool in one call."""

    return build_draw_pool(normalize_catalog(catalog), settings, rules)


def validate_calculation_data(
    catalog: Iterable[CatalogRecord],
    settings: CalculationSettings,
    rules: Optional[PityRules] = None,
) -> Optional[ErrorInfo]:
    """Return the first configuration problem, or ``None`` when the inputs are usable.

    Parameters
    ----------
    catalog:
        Item rows as ``ItemGroup`` instances or ``label``/``probability``/``count`` mappings.
    settings:
        Target selection and run parameters.
    rules:
        Optional guarantee policy override.
    """

    try:
        prepare_pool(catalog, settings, rules)
    except Exception as exc:
        return error_info_from_exception(exc)
    return None


def error_info_from_exception(exc: BaseException) -> ErrorInfo:
    """Translate any exception into the ``ErrorInfo`` contract."""

    if isinstance(exc, GachaError):
        return ErrorInfo(kind=exc.kind, message=exc.message)
    return ErrorInfo(kind=ErrorKind.COMPUTATION_ERROR, message=str(exc))


def state_space_bound(pool: DrawPool) -> int:
    """Return the worst-case number of live DP states at any single pull.

    Both pity positions are fixed by the pull index, so only the copy counts
    and the soft-guarantee flag vary between states.
    """

    return (pool.copies_required + 1) ** pool.num_targets * 2


def compute_probability_curve(
    catalog: Iterable[CatalogRecord],
    settings: CalculationSettings,
    rules: Optional[PityRules] = None,
    cancel_event: Optional[threading.Event] = None,
) -> CurveComputationResult:
    """Compute the cumulative acquisition curve for the requested targets.

    Parameters
    ----------
    catalog:
        Item rows in display order.
    settings:
        Target selection, copies per target, pull count and sampling step.
    rules:
        Optional guarantee policy override.
    cancel_event:
        Checked once per pull; setting it aborts with ``CalculationCancelled``.

    Returns
    -------
    CurveComputationResult
        Sampled curve plus the pool and timing used to produce it.

    Raises
    ------
    ConfigurationError
        When the inputs fail validation.
    ComputationError
        When pool preparation or the simulation fails unexpectedly.
    """

    try:
        pool = prepare_pool(catalog, settings, rules)
    except ConfigurationError:
        raise
    except Exception as exc:
        logger.exception("Could not prepare the draw pool")
        raise ComputationError(str(exc)) from exc

    simulator = PullSimulator(pool, rules)
    aggregator = CurveAggregator(
        num_targets=pool.num_targets,
        copies_required=pool.copies_required,
        step=settings.sample_step,
        max_pulls=settings.max_pulls,
    )

    compute_start = perf_counter()
    try:
        simulator.run(settings.max_pulls, on_pull=aggregator, cancel_event=cancel_event)
    except (CalculationCancelled, ComputationError):
        raise
    except Exception as exc:
        logger.exception("Probability curve computation failed")
        raise ComputationError(str(exc)) from exc
    compute_seconds = perf_counter() - compute_start

    logger.info(
        "Computed %d pulls for %d targets in %.2fs (peak %d states)",
        settings.max_pulls,
        pool.num_targets,
        compute_seconds,
        simulator.peak_states,
    )
    return CurveComputationResult(
        curve=aggregator.points,
        target_names=pool.target_names,
        pool=pool,
        compute_seconds=compute_seconds,
        peak_states=simulator.peak_states,
    )
