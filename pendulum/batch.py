"""NumPy vectorized fixed-step backend for many independent pendulums.

All N pendulums share one PendulumParams and advance through each tick
simultaneously as (N, 4) arrays. The scheme is the same as
DoublePendulum.advance: velocities first, then angles with the previous
accelerations, then fresh accelerations, positions and angle wrapping.

IMPORTANT: No in-place mutation (uses states = states + delta, never +=).
Each BatchState is a value; advance_batch() returns a new one.

Physics equations here duplicate simulation.py's angular_acceleration1/2
but operate on (N,) columns. See test_batch.py for cross-validation tests.
"""

from __future__ import annotations

from typing import NamedTuple

import numpy as np

from simulation import TWO_PI, PendulumParams


class BatchState(NamedTuple):
    """Immutable snapshot of N pendulums after a tick.

    Supports tuple unpacking: ``states, alphas, positions, time = batch``.
    """

    states: np.ndarray     # (N, 4) float64 [theta1, theta2, omega1, omega2]
    alphas: np.ndarray     # (N, 2) float64 [alpha1, alpha2]
    positions: np.ndarray  # (N, 4) float64 [x1, y1, x2, y2]
    time: float


def accelerations_batch(states: np.ndarray, params: PendulumParams) -> np.ndarray:
    """Compute angular accelerations for N pendulums simultaneously.

    Args:
        states: (N, 4) array with columns [theta1, theta2, omega1, omega2].
        params: Physics parameters.

    Returns:
        (N, 2) array [alpha1, alpha2]. Singular configurations yield
        inf/nan entries rather than raising.
    """
    theta1 = states[:, 0]
    theta2 = states[:, 1]
    omega1 = states[:, 2]
    omega2 = states[:, 3]

    m1, m2, l1, l2, g = params.m1, params.m2, params.l1, params.l2, params.g

    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        delta = theta1 - theta2
        sin_delta = np.sin(delta)
        cos_delta = np.cos(delta)
        shared = 2 * m1 + m2 - m2 * np.cos(2 * theta1 - 2 * theta2)

        alpha1 = (
            -g * (2 * m1 + m2) * np.sin(theta1)
            - m2 * g * np.sin(theta1 - 2 * theta2)
            - 2 * sin_delta * m2
            * (omega2**2 * l2 + omega1**2 * l1 * cos_delta)
        ) / (l1 * shared)

        alpha2 = 2 * sin_delta * (
            omega1**2 * l1 * (m1 + m2)
            + g * (m1 + m2) * np.cos(theta1)
            + omega2**2 * l2 * m2 * cos_delta
        ) / (l2 * shared)

    return np.stack([alpha1, alpha2], axis=1)


def positions_batch(states: np.ndarray, params: PendulumParams) -> np.ndarray:
    """Display coordinates [x1, y1, x2, y2] for N pendulums, pivot at (0, l1 + l2)."""
    theta1 = states[:, 0]
    theta2 = states[:, 1]
    l1, l2 = params.l1, params.l2
    height = l1 + l2

    x1 = l1 * np.sin(theta1)
    y1 = height - l1 * np.cos(theta1)
    x2 = x1 + l2 * np.sin(theta2)
    y2 = height - (l1 * np.cos(theta1) + l2 * np.cos(theta2))

    return np.stack([x1, y1, x2, y2], axis=1)


def _wrap_angles(theta: np.ndarray) -> np.ndarray:
    with np.errstate(invalid="ignore"):
        wrapped = np.mod(theta, TWO_PI)
    return np.where(wrapped == TWO_PI, 0.0, wrapped)


def initial_batch(initial_angles: np.ndarray, params: PendulumParams) -> BatchState:
    """Build N pendulums at rest.

    Args:
        initial_angles: (N, 2) array [theta1, theta2] in radians.
        params: Physics parameters.
    """
    angles = np.asarray(initial_angles, dtype=np.float64)
    if angles.ndim != 2 or angles.shape[1] != 2:
        raise ValueError(
            f"initial_angles must have shape (N, 2), got {angles.shape}"
        )

    states = np.zeros((angles.shape[0], 4), dtype=np.float64)
    states[:, 0:2] = angles

    return BatchState(
        states=states,
        alphas=accelerations_batch(states, params),
        positions=positions_batch(states, params),
        time=0.0,
    )


def advance_batch(batch: BatchState, params: PendulumParams, dt: float) -> BatchState:
    """Advance every pendulum by one tick of length dt.

    Returns a new BatchState; the input arrays are left untouched.
    """
    states, alphas = batch.states, batch.alphas

    with np.errstate(invalid="ignore", over="ignore"):
        omegas = states[:, 2:4] + alphas * dt
        thetas = states[:, 0:2] + omegas * dt + 0.5 * alphas * dt**2

    moved = np.concatenate([thetas, omegas], axis=1)
    new_alphas = accelerations_batch(moved, params)
    new_positions = positions_batch(moved, params)

    wrapped = np.concatenate([_wrap_angles(thetas), omegas], axis=1)

    return BatchState(
        states=wrapped,
        alphas=new_alphas,
        positions=new_positions,
        time=batch.time + dt,
    )
