"""Error taxonomy surfaced by the probability engine."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Machine-readable category attached to every engine error."""

    NO_DATA = "no-data"
    NO_TARGETS = "no-targets"
    ZERO_PROBABILITY_MASS = "zero-probability-mass"
    UNKNOWN_LABEL = "unknown-label"
    INVALID_TARGET_COUNT = "invalid-target-count"
    INVALID_PROBABILITY = "invalid-probability"
    INVALID_COUNT = "invalid-count"
    INVALID_SETTINGS = "invalid-settings"
    COMPUTATION_ERROR = "computation-error"


class GachaError(Exception):
    """Base class for errors raised by ``gacha_core``."""

    kind: ErrorKind = ErrorKind.COMPUTATION_ERROR

    def __init__(self, message: str, kind: ErrorKind | None = None) -> None:
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind


class ConfigurationError(GachaError, ValueError):
    """Invalid catalog or target configuration, detected before simulating."""

    kind = ErrorKind.INVALID_SETTINGS


class ComputationError(GachaError, RuntimeError):
    """Unexpected failure while the simulation was running."""

    kind = ErrorKind.COMPUTATION_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message, ErrorKind.COMPUTATION_ERROR)


class CalculationCancelled(Exception):
    """Raised at a pull boundary once the caller's cancel event is set."""

    def __init__(self, completed_pulls: int) -> None:
        super().__init__(f"Calculation cancelled after {completed_pulls} pulls")
        self.completed_pulls = completed_pulls
