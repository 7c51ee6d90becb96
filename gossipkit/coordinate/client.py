"""A client that maintains a node's network coordinate from RTT observations."""

from __future__ import annotations

import dataclasses
import threading
from dataclasses import dataclass

from gossipkit.coordinate.coordinate import Config, Coordinate

# Round trip times longer than this (in seconds) are rejected.
MAX_RTT = 10.0

_ZERO_THRESHOLD = 1.0e-6


@dataclass
class ClientStats:
    """Counters of events that occur while updating coordinates."""

    resets: int = 0


class Client:
    """Tracks the estimated coordinate of a node and refines it with observations.

    All round trip times are given in seconds.
    """

    def __init__(self, config: Config) -> None:
        if not config.dimensionality > 0:
            raise ValueError("dimensionality must be >0")
        self._config = config
        self._coord = Coordinate.new(config)
        self._origin = Coordinate.new(config)
        self._adjustment_index = 0
        self._adjustment_samples = [0.0] * config.adjustment_window_size
        self._latency_samples: dict[str, list[float]] = {}
        self._stats = ClientStats()
        self._lock = threading.Lock()

    def get_coordinate(self) -> Coordinate:
        """Return a copy of this client's coordinate."""
        with self._lock:
            return self._coord.clone()

    def set_coordinate(self, coord: Coordinate) -> None:
        """Force the client's coordinate to a known state."""
        with self._lock:
            self._check_coordinate(coord)
            self._coord = coord.clone()

    def forget_node(self, node: str) -> None:
        """Drop any state kept for ``node``."""
        with self._lock:
            self._latency_samples.pop(node, None)

    def stats(self) -> ClientStats:
        """Return a copy of the client's statistics."""
        with self._lock:
            return dataclasses.replace(self._stats)

    def _check_coordinate(self, coord: Coordinate) -> None:
        if not self._coord.is_compatible_with(coord):
            raise ValueError("dimensions aren't compatible")
        if not coord.is_valid():
            raise ValueError("coordinate is invalid")

    def _latency_filter(self, node: str, rtt: float) -> float:
        """Add a sample for ``node`` and return the moving median."""
        samples = self._latency_samples.setdefault(node, [])
        samples.append(rtt)
        if len(samples) > self._config.latency_filter_size:
            del samples[0]
        ordered = sorted(samples)
        return ordered[len(ordered) // 2]

    def _update_vivaldi(self, other: Coordinate, rtt: float) -> None:
        config = self._config
        dist = self._coord.distance_to(other)
        rtt = max(rtt, _ZERO_THRESHOLD)
        wrongness = abs(dist - rtt) / rtt

        total_error = max(self._coord.error + other.error, _ZERO_THRESHOLD)
        weight = self._coord.error / total_error

        error = config.vivaldi_ce * weight * wrongness + self._coord.error * (
            1.0 - config.vivaldi_ce * weight
        )
        self._coord.error = min(error, config.vivaldi_error_max)

        force = config.vivaldi_cc * weight * (rtt - dist)
        self._coord = self._coord.apply_force(config, force, other)

    def _update_adjustment(self, other: Coordinate, rtt: float) -> None:
        window = self._config.adjustment_window_size
        if window == 0:
            return
        # Existing adjustments do not figure into this, so use the raw distance.
        dist = self._coord.raw_distance_to(other)
        self._adjustment_samples[self._adjustment_index] = rtt - dist
        self._adjustment_index = (self._adjustment_index + 1) % window
        self._coord.adjustment = sum(self._adjustment_samples) / (2.0 * window)

    def _update_gravity(self) -> None:
        dist = self._origin.distance_to(self._coord)
        force = -1.0 * (dist / self._config.gravity_rho) ** 2.0
        self._coord = self._coord.apply_force(self._config, force, self._origin)

    def update(self, node: str, other: Coordinate, rtt: float) -> Coordinate:
        """Refine the coordinate from an RTT observation to ``node``.

        Returns a copy of the updated coordinate. Raises ``ValueError`` if
        ``other`` is unusable or ``rtt`` is outside ``[0, MAX_RTT]``.
        """
        with self._lock:
            self._check_coordinate(other)
            if not 0 <= rtt <= MAX_RTT:
                raise ValueError(
                    f"round trip time not in valid range, duration {rtt}s is not "
                    f"a positive value less than {MAX_RTT}s"
                )

            filtered = self._latency_filter(node, rtt)
            try:
                self._update_vivaldi(other, filtered)
                self._update_adjustment(other, filtered)
                self._update_gravity()
                valid = self._coord.is_valid()
            except (ValueError, OverflowError):
                # The arithmetic hit a non-finite value: the state is unusable.
                valid = False
            if not valid:
                self._stats.resets += 1
                self._coord = Coordinate.new(self._config)

            return self._coord.clone()

    def distance_to(self, other: Coordinate) -> float:
        """Return the estimated RTT in seconds to the node at ``other``."""
        with self._lock:
            return self._coord.distance_to(other)