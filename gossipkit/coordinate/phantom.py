"""Synthetic network topologies for exercising the coordinate algorithm.

Truth matrices hold round trip times in seconds, truncated to nanoseconds.
"""

from __future__ import annotations

import contextlib
import math
import random
from dataclasses import dataclass

from gossipkit.coordinate.client import Client
from gossipkit.coordinate.coordinate import SECONDS_TO_NANOSECONDS, Config

Matrix = list[list[float]]


def _as_duration(seconds: float) -> float:
    return int(seconds * SECONDS_TO_NANOSECONDS) / SECONDS_TO_NANOSECONDS


def _empty_matrix(nodes: int) -> Matrix:
    return [[0.0] * nodes for _ in range(nodes)]


def _fill_symmetric(nodes: int, rtt_for) -> Matrix:
    truth = _empty_matrix(nodes)
    for i in range(nodes):
        for j in range(i + 1, nodes):
            rtt = rtt_for(i, j)
            truth[i][j] = truth[j][i] = rtt
    return truth


def generate_clients(nodes: int, config: Config) -> list[Client]:
    """Return ``nodes`` clients sharing the given config."""
    return [Client(config) for _ in range(nodes)]


def generate_line(nodes: int, spacing: float) -> Matrix:
    """Truth matrix for nodes on a straight line, ``spacing`` apart."""
    return _fill_symmetric(nodes, lambda i, j: (j - i) * spacing)


def generate_grid(nodes: int, spacing: float) -> Matrix:
    """Truth matrix for nodes on a square grid, ``spacing`` apart."""
    n = int(math.sqrt(nodes))

    def rtt(i: int, j: int) -> float:
        y1, x1 = divmod(i, n)
        y2, x2 = divmod(j, n)
        return _as_duration(math.hypot(x2 - x1, y2 - y1) * spacing)

    return _fill_symmetric(nodes, rtt)


def generate_split(nodes: int, lan: float, wan: float) -> Matrix:
    """Truth matrix for two groups of nodes, ``lan`` apart locally and ``wan`` between."""
    split = nodes // 2

    def rtt(i: int, j: int) -> float:
        if (i <= split) != (j <= split):
            return lan + wan
        return lan

    return _fill_symmetric(nodes, rtt)


def generate_circle(nodes: int, radius: float) -> Matrix:
    """Truth matrix for nodes spread evenly on a circle.

    Node 0 sits at the centre but at twice the radius from everyone, so it
    should end up above the others in height.
    """

    def rtt(i: int, j: int) -> float:
        if i == 0:
            return 2 * radius
        t1 = 2.0 * math.pi * i / nodes
        t2 = 2.0 * math.pi * j / nodes
        dist = math.hypot(math.cos(t2) - math.cos(t1), math.sin(t2) - math.sin(t1))
        return _as_duration(dist * radius)

    return _fill_symmetric(nodes, rtt)


def generate_random(nodes: int, mean: float, deviation: float) -> Matrix:
    """Truth matrix of normally distributed delays.

    The random generator is re-seeded so a given size always yields the same matrix.
    """
    random.seed(1)
    return _fill_symmetric(
        nodes, lambda i, j: _as_duration(random.gauss(0.0, 1.0) * deviation + mean)
    )


def simulate(clients: list[Client], truth: Matrix, cycles: int) -> None:
    """Run ``cycles`` rounds in which every client observes a random peer.

    The random generator is re-seeded so runs are deterministic. Rejected
    observations are skipped.
    """
    random.seed(1)
    nodes = len(clients)
    for _ in range(cycles):
        for i, client in enumerate(clients):
            j = random.randrange(nodes)
            if j == i:
                continue
            coord = clients[j].get_coordinate()
            with contextlib.suppress(ValueError):
                client.update(f"node_{j}", coord, truth[i][j])


@dataclass
class Stats:
    """Summary of how well estimated distances match the truth."""

    error_max: float = 0.0
    error_avg: float = 0.0


def evaluate(clients: list[Client], truth: Matrix) -> Stats:
    """Compare estimated distances against ``truth`` and print a summary."""
    stats = Stats()
    count = 0
    total = 0.0
    for i, client in enumerate(clients):
        for j in range(i + 1, len(clients)):
            est = client.distance_to(clients[j].get_coordinate())
            actual = truth[i][j]
            error = abs(est - actual) / actual
            stats.error_max = max(stats.error_max, error)
            total += error
            count += 1

    stats.error_avg = total / count if count else math.nan
    print(f"Error avg={stats.error_avg:9.6f} max={stats.error_max:9.6f}")
    return stats