"""Exact pull-by-pull dynamic programming over the guarantee state space."""

from __future__ import annotations

import logging
import math
import threading
from collections.abc import Callable, Iterator
from typing import Optional

from .data import MASS_TOLERANCE
from .errors import CalculationCancelled, ComputationError
from .models import DrawOutcome, PityRules, ProbabilityTable, SimulationState
from .pool import DrawPool

logger = logging.getLogger(__name__)

PullCallback = Callable[[int, ProbabilityTable], None]


class PullSimulator:
    """Advance a sparse probability table one pull at a time."""

    def __init__(self, pool: DrawPool, rules: Optional[PityRules] = None) -> None:
        """Prepare the simulator for the given draw pool.

        Parameters
        ----------
        pool:
            Normalized base pool and guarantee data from ``build_draw_pool``.
        rules:
            Guarantee periods and pruning threshold (defaults to the built-in rules).
        """
        if rules is None:
            rules = PityRules()
        self.pool = pool
        self.rules = rules
        self._copies = pool.copies_required
        self._base = tuple(outcome for outcome in pool.outcomes if outcome.weight > 0.0)
        self._guarantee = tuple(
            outcome for outcome in pool.guarantee_outcomes if outcome.weight > 0.0
        )
        self._soft_last = rules.soft_period - 1
        self.peak_states = 0

    def initial_table(self) -> ProbabilityTable:
        """Return the pull-0 table: the all-zero state with probability 1."""

        return {SimulationState.initial(self.pool.num_targets): 1.0}

    def soft_pity_forced(self, state: SimulationState) -> bool:
        """Return True when the next pull must come from the guarantee pool."""

        return (
            bool(self._guarantee)
            and state.soft_position == self._soft_last
            and not state.soft_satisfied
        )

    def advance(
        self, state: SimulationState, outcome: DrawOutcome, forced: bool
    ) -> SimulationState:
        """Return the successor of ``state`` after drawing ``outcome``."""

        counts = state.counts
        index = outcome.target_index
        if index is not None and counts[index] < self._copies:
            counts = counts[:index] + (counts[index] + 1,) + counts[index + 1 :]

        hard_position = (state.hard_position + 1) % self.rules.hard_period
        if forced:
            # The forced draw always closes the block.
            soft_position = 0
            soft_satisfied = False
        else:
            soft_position = (state.soft_position + 1) % self.rules.soft_period
            soft_satisfied = soft_position != 0 and (state.soft_satisfied or outcome.guarantee)
        return SimulationState(counts, soft_position, soft_satisfied, hard_position)

    def apply_hard_pity(self, state: SimulationState) -> SimulationState:
        """Grant one copy to the first unsatisfied pity target, if any."""

        for index in self.pool.pity_targets:
            if state.counts[index] < self._copies:
                counts = state.counts
                counts = counts[:index] + (counts[index] + 1,) + counts[index + 1 :]
                return SimulationState(
                    counts, state.soft_position, state.soft_satisfied, state.hard_position
                )
        return state

    def step(self, table: ProbabilityTable, pull_count: int) -> ProbabilityTable:
        """Return the table after pull number ``pull_count`` (1-based).

        The input table is left untouched.
        """

        after_pull: ProbabilityTable = {}
        for state, mass in table.items():
            if mass == 0.0:
                continue
            forced = self.soft_pity_forced(state)
            active_pool = self._guarantee if forced else self._base
            for outcome in active_pool:
                successor = self.advance(state, outcome, forced)
                after_pull[successor] = after_pull.get(successor, 0.0) + mass * outcome.weight

        if pull_count % self.rules.hard_period == 0 and self.pool.pity_targets:
            corrected: ProbabilityTable = {}
            for state, mass in after_pull.items():
                key = self.apply_hard_pity(state)
                corrected[key] = corrected.get(key, 0.0) + mass
            after_pull = corrected

        return self._prune(after_pull, pull_count)

    def _prune(self, table: ProbabilityTable, pull_count: int) -> ProbabilityTable:
        epsilon = self.rules.prune_epsilon
        kept: ProbabilityTable = {}
        pruned_mass = 0.0
        total = 0.0
        for state, mass in table.items():
            total += mass
            if mass < epsilon:
                pruned_mass += mass
                continue
            kept[state] = mass

        if not math.isfinite(total):
            raise ComputationError(f"Probability mass became {total} at pull {pull_count}")
        if abs(total - 1.0) > MASS_TOLERANCE:
            logger.warning("Probability mass drifted to %.12f at pull %d", total, pull_count)
        if pruned_mass:
            logger.debug("Pruned %.3e mass at pull %d", pruned_mass, pull_count)

        self.peak_states = max(self.peak_states, len(kept))
        if pull_count % self.rules.hard_period == 0:
            logger.debug("Pull %d: %d live states", pull_count, len(kept))
        return kept

    @staticmethod
    def _check_cancel(cancel_event: Optional[threading.Event], completed: int) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise CalculationCancelled(completed)

    def run(
        self,
        max_pulls: int,
        on_pull: Optional[PullCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ProbabilityTable:
        """Simulate ``max_pulls`` pulls and return the final table.

        Parameters
        ----------
        max_pulls:
            Number of pulls to simulate.
        on_pull:
            Called as ``on_pull(pull_count, table)`` after every pull. Each table
            is a fresh mapping that the simulator never mutates afterwards.
        cancel_event:
            Checked before every pull; once set, ``CalculationCancelled`` is raised.
        """

        table = self.initial_table()
        for pull_count in range(1, max_pulls + 1):
            self._check_cancel(cancel_event, pull_count - 1)
            table = self.step(table, pull_count)
            if on_pull is not None:
                on_pull(pull_count, table)
        return table

    def iter_tables(
        self,
        max_pulls: int,
        cancel_event: Optional[threading.Event] = None,
    ) -> Iterator[tuple[int, ProbabilityTable]]:
        """Yield ``(pull_count, table)`` once per pull; the sequence is one-pass."""

        table = self.initial_table()
        for pull_count in range(1, max_pulls + 1):
            self._check_cancel(cancel_event, pull_count - 1)
            table = self.step(table, pull_count)
            yield pull_count, table
