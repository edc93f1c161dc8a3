"""Headless pendulum driver: owns start-up constants and polls positions.

Plays the role of a frame loop without any rendering. Each frame the
elapsed frame time is scaled by ``time_scale`` and handed to
DoublePendulum.advance; the bob positions are then read back, the way a
renderer would reposition its sprites.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import NamedTuple

import numpy as np

from simulation import DEFAULT_GRAVITY, DoublePendulum

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DriverConfig:
    """Start-up constants for a simulated session.

    Angles are given in degrees; lengths and masses in arbitrary units.
    """

    theta1_deg: float = 15.0
    theta2_deg: float = 45.0
    l1: float = 100.0
    l2: float = 80.0
    m1: float = 5.0
    m2: float = 5.0
    g: float = DEFAULT_GRAVITY
    # Simulated seconds per wall-clock second
    time_scale: float = 8.0

    def build_pendulum(self) -> DoublePendulum:
        """Create the pendulum at rest. Raises InvalidParameter on bad values."""
        return DoublePendulum.create(
            math.radians(self.theta1_deg),
            math.radians(self.theta2_deg),
            self.l1, self.l2, self.m1, self.m2, g=self.g,
        )


class BobPositions(NamedTuple):
    """Display coordinates of both bobs for one frame."""

    x1: float
    y1: float
    x2: float
    y2: float


class Trajectory(NamedTuple):
    """Recorded run; row 0 is the state before the first frame."""

    times: np.ndarray      # (n_frames + 1,)
    angles: np.ndarray     # (n_frames + 1, 2) [theta1, theta2]
    positions: np.ndarray  # (n_frames + 1, 4) [x1, y1, x2, y2]
    energies: np.ndarray   # (n_frames + 1,)


def energy_drift(trajectory: Trajectory) -> float:
    """Largest absolute deviation of total energy from its initial value."""
    energies = trajectory.energies
    if energies.size == 0:
        return 0.0
    return float(np.max(np.abs(energies - energies[0])))


class PendulumDriver:
    """Drives one DoublePendulum frame by frame."""

    def __init__(self, config: DriverConfig | None = None):
        self.config = config if config is not None else DriverConfig()
        self.pendulum = self.config.build_pendulum()
        self.frame = 0

    @property
    def pivot(self) -> tuple[float, float]:
        """Anchor point in display coordinates."""
        params = self.pendulum.params
        return 0.0, params.l1 + params.l2

    def positions(self) -> BobPositions:
        return BobPositions(*self.pendulum.bob_positions())

    def tick(self, frame_seconds: float) -> BobPositions:
        """Advance by one frame of wall-clock length frame_seconds."""
        self.pendulum.advance(frame_seconds * self.config.time_scale)
        self.frame = self.frame + 1
        return self.positions()

    def run(self, n_frames: int, frame_seconds: float) -> Trajectory:
        """Tick n_frames times at a constant frame length and record each frame."""
        if n_frames < 0:
            raise ValueError(f"n_frames must be non-negative, got {n_frames}")

        n_rows = n_frames + 1
        times = np.empty(n_rows, dtype=np.float64)
        angles = np.empty((n_rows, 2), dtype=np.float64)
        coords = np.empty((n_rows, 4), dtype=np.float64)
        energies = np.empty(n_rows, dtype=np.float64)

        def record(row):
            p = self.pendulum
            times[row] = p.time
            angles[row] = (p.theta1, p.theta2)
            coords[row] = p.bob_positions()
            energies[row] = p.total_energy()

        logger.debug(
            "Running %d frames of %.4f s (time scale %.2f)",
            n_frames, frame_seconds, self.config.time_scale,
        )

        record(0)
        for row in range(1, n_rows):
            self.tick(frame_seconds)
            record(row)

        return Trajectory(times, angles, coords, energies)
