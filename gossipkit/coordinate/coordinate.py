"""Network coordinates for a Vivaldi-style latency estimation model.

All distances are expressed in seconds. Distances returned by
:meth:`Coordinate.distance_to` are truncated to nanosecond resolution so
that they compare exactly, like a clock duration would.
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass, field

SECONDS_TO_NANOSECONDS = 1.0e9

# Used to decide if two coordinates are on top of each other.
ZERO_THRESHOLD = 1.0e-6


@dataclass
class Config:
    """Tuning parameters of the coordinate algorithm.

    ``adjustment_window_size`` of zero disables the adjustment feature.
    """

    dimensionality: int = 8
    vivaldi_error_max: float = 1.5
    vivaldi_ce: float = 0.25
    vivaldi_cc: float = 0.25
    adjustment_window_size: int = 20
    height_min: float = 10.0e-6
    latency_filter_size: int = 3
    gravity_rho: float = 150.0


def default_config() -> Config:
    """Return a config with defaults suitable for basic use of the algorithm."""
    return Config()


class DimensionalityConflictError(ValueError):
    """Raised when operating on coordinates of different dimensionality."""

    def __init__(self, message: str = "coordinate dimensionality does not match") -> None:
        super().__init__(message)


def _truncate_to_nanoseconds(seconds: float) -> float:
    return int(seconds * SECONDS_TO_NANOSECONDS) / SECONDS_TO_NANOSECONDS


@dataclass
class Coordinate:
    """A network coordinate: Euclidean vector plus error, adjustment and height."""

    vec: list[float] = field(default_factory=list)
    error: float = 0.0
    adjustment: float = 0.0
    height: float = 0.0

    @classmethod
    def new(cls, config: Config) -> Coordinate:
        """Create a coordinate at the origin using the config's initial values."""
        return cls(
            vec=[0.0] * config.dimensionality,
            error=config.vivaldi_error_max,
            adjustment=0.0,
            height=config.height_min,
        )

    def clone(self) -> Coordinate:
        """Return an independent copy of this coordinate."""
        return Coordinate(
            vec=list(self.vec),
            error=self.error,
            adjustment=self.adjustment,
            height=self.height,
        )

    def is_valid(self) -> bool:
        """Return False if any component is NaN or infinite."""
        return all(math.isfinite(v) for v in self.vec) and all(
            math.isfinite(v) for v in (self.error, self.adjustment, self.height)
        )

    def is_compatible_with(self, other: Coordinate) -> bool:
        """Return True if both coordinates have the same dimensionality."""
        return len(self.vec) == len(other.vec)

    def _check_compatible(self, other: Coordinate) -> None:
        if not self.is_compatible_with(other):
            raise DimensionalityConflictError()

    def apply_force(self, config: Config, force: float, other: Coordinate) -> Coordinate:
        """Return the result of applying ``force`` from the direction of ``other``."""
        self._check_compatible(other)
        result = self.clone()
        unit, mag = unit_vector_at(self.vec, other.vec)
        result.vec = add(result.vec, mul(unit, force))
        if mag > ZERO_THRESHOLD:
            result.height = (result.height + other.height) * force / mag + result.height
            result.height = max(result.height, config.height_min)
        return result

    def distance_to(self, other: Coordinate) -> float:
        """Return the estimated distance in seconds, including adjustments.

        Negative total adjustments are ignored.
        """
        self._check_compatible(other)
        dist = self.raw_distance_to(other)
        adjusted = dist + self.adjustment + other.adjustment
        if adjusted > 0.0:
            dist = adjusted
        return _truncate_to_nanoseconds(dist)

    def raw_distance_to(self, other: Coordinate) -> float:
        """Return the Vivaldi distance in seconds, without adjustments."""
        return magnitude(diff(self.vec, other.vec)) + self.height + other.height


def add(vec1: list[float], vec2: list[float]) -> list[float]:
    """Return the element-wise sum of two vectors."""
    return [a + b for a, b in zip(vec1, vec2)]


def diff(vec1: list[float], vec2: list[float]) -> list[float]:
    """Return the element-wise difference ``vec1 - vec2``."""
    return [a - b for a, b in zip(vec1, vec2)]


def mul(vec: list[float], factor: float) -> list[float]:
    """Return ``vec`` scaled by ``factor``."""
    return [v * factor for v in vec]


def magnitude(vec: list[float]) -> float:
    """Return the Euclidean length of ``vec``."""
    return math.sqrt(sum(v * v for v in vec))


def unit_vector_at(vec1: list[float], vec2: list[float]) -> tuple[list[float], float]:
    """Return a unit vector pointing at ``vec1`` from ``vec2`` and their distance.

    If the points coincide, a random unit vector is returned with distance 0.
    """
    delta = diff(vec1, vec2)
    mag = magnitude(delta)
    if mag > ZERO_THRESHOLD:
        return mul(delta, 1.0 / mag), mag

    delta = [random.random() - 0.5 for _ in delta]
    mag = magnitude(delta)
    if mag > ZERO_THRESHOLD:
        return mul(delta, 1.0 / mag), 0.0

    # Exceedingly rare: fall back to a unit vector along the first dimension.
    fallback = [0.0] * len(delta)
    fallback[0] = 1.0
    return fallback, 0.0