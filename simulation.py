"""Double pendulum physics engine.

Implements the closed-form Lagrangian equations of motion for a double
pendulum and a fixed-step semi-implicit integrator (DoublePendulum.advance).
A high-accuracy SciPy solution of the same equations is available through
reference_trajectory() for measuring the fixed-step error.

Angles are measured from the downward vertical. Cartesian positions use a
display frame with the Y axis pointing up and the pivot drawn at height
l1 + l2, so a pendulum hanging at rest has both bobs at y >= 0.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

import numpy as np
from scipy.integrate import solve_ivp

logger = logging.getLogger(__name__)

DEFAULT_GRAVITY = 10.0

TWO_PI = 2.0 * math.pi


class InvalidParameter(ValueError):
    """Raised when a rod length or bob mass is not strictly positive."""


@dataclass(frozen=True)
class PendulumParams:
    """Physical parameters of the double pendulum system."""

    m1: float = 5.0
    m2: float = 5.0
    l1: float = 100.0
    l2: float = 80.0
    g: float = DEFAULT_GRAVITY

    def __post_init__(self):
        for name in ("l1", "l2", "m1", "m2"):
            value = getattr(self, name)
            # "not >" so that NaN is rejected too
            if not value > 0:
                raise InvalidParameter(
                    f"{name} must be strictly positive, got {value!r}"
                )


def angular_acceleration1(m1, m2, theta1, theta2, omega1, omega2, l1, l2,
                          g=DEFAULT_GRAVITY):
    """Angular acceleration of the upper rod."""
    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        numerator = (
            -g * (2 * m1 + m2) * np.sin(theta1)
            - m2 * g * np.sin(theta1 - 2 * theta2)
            - 2 * np.sin(theta1 - theta2) * m2
            * (omega2**2 * l2 + omega1**2 * l1 * np.cos(theta1 - theta2))
        )
        denominator = l1 * (2 * m1 + m2 - m2 * np.cos(2 * theta1 - 2 * theta2))
        return numerator / denominator


def angular_acceleration2(m1, m2, theta1, theta2, omega1, omega2, l1, l2,
                          g=DEFAULT_GRAVITY):
    """Angular acceleration of the lower rod."""
    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        numerator = 2 * np.sin(theta1 - theta2) * (
            omega1**2 * l1 * (m1 + m2)
            + g * (m1 + m2) * np.cos(theta1)
            + omega2**2 * l2 * m2 * np.cos(theta1 - theta2)
        )
        denominator = l2 * (2 * m1 + m2 - m2 * np.cos(2 * theta1 - 2 * theta2))
        return numerator / denominator


def positions(theta1, theta2, l1, l2):
    """Convert angles to display coordinates.

    Returns (x1, y1, x2, y2) with y pointing up and the pivot at (0, l1 + l2).
    """
    height = l1 + l2
    x1 = l1 * np.sin(theta1)
    y1 = height - l1 * np.cos(theta1)
    x2 = x1 + l2 * np.sin(theta2)
    y2 = height - (l1 * np.cos(theta1) + l2 * np.cos(theta2))
    return x1, y1, x2, y2


def wrap_angle(theta):
    """Map an angle into [0, 2*pi). Non-finite values pass through."""
    wrapped = theta % TWO_PI
    # x % 2pi rounds up to exactly 2pi for tiny negative x
    if wrapped == TWO_PI:
        return 0.0
    return wrapped


def derivatives(t, state, params):
    """Compute the four first-order ODEs for the double pendulum.

    State vector: [theta1, theta2, omega1, omega2]
    Returns: [d_theta1/dt, d_theta2/dt, d_omega1/dt, d_omega2/dt]
    """
    theta1, theta2, omega1, omega2 = state
    m1, m2, l1, l2, g = params.m1, params.m2, params.l1, params.l2, params.g

    alpha1 = angular_acceleration1(m1, m2, theta1, theta2, omega1, omega2, l1, l2, g)
    alpha2 = angular_acceleration2(m1, m2, theta1, theta2, omega1, omega2, l1, l2, g)

    return [omega1, omega2, alpha1, alpha2]


def total_energy(state, params):
    """Compute total mechanical energy (T + V) for a single state.

    Potential energy is measured from the pivot point.
    """
    theta1, theta2, omega1, omega2 = state
    m1, m2, l1, l2, g = params.m1, params.m2, params.l1, params.l2, params.g

    # Kinetic energy
    T = (
        0.5 * (m1 + m2) * l1**2 * omega1**2
        + 0.5 * m2 * l2**2 * omega2**2
        + m2 * l1 * l2 * omega1 * omega2 * np.cos(theta1 - theta2)
    )

    # Potential energy (from pivot)
    V = -(m1 + m2) * g * l1 * np.cos(theta1) - m2 * g * l2 * np.cos(theta2)

    return T + V


def reference_trajectory(params, theta1_0, theta2_0, t_end, dt,
                         omega1_0=0.0, omega2_0=0.0):
    """Solve the same equations with DOP853 at tight tolerances.

    Intended as ground truth when measuring the fixed-step error of
    DoublePendulum.advance; angles are not wrapped.

    Returns:
        t_array: 1D array of time values at uniform dt spacing
        state_array: 2D array of shape (len(t_array), 4)
    """
    t_eval = np.arange(0, t_end, dt)
    y0 = [theta1_0, theta2_0, omega1_0, omega2_0]

    sol = solve_ivp(
        fun=lambda t, y: derivatives(t, y, params),
        t_span=(0, t_end),
        y0=y0,
        method="DOP853",
        t_eval=t_eval,
        rtol=1e-12,
        atol=1e-12,
    )
    if not sol.success:
        logger.warning("Reference solve failed: %s", sol.message)

    return sol.t, sol.y.T  # shape: (n_steps, 4)


class DoublePendulum:
    """Mutable state of one simulated double pendulum.

    Each call to advance() performs one fixed-step tick:

        omega += alpha * dt
        theta += omega * dt + 0.5 * alpha * dt**2

    where alpha is the acceleration left over from the previous tick and
    omega is already updated. The accelerations are then re-evaluated at the
    new state for use by the next tick.

    Any real dt is accepted. A zero step leaves angles, velocities and
    positions unchanged (accelerations are re-evaluated); a negative step
    runs the scheme backwards. Instances are not safe for concurrent
    advance() calls, but separate instances share nothing.
    """

    def __init__(self, params: PendulumParams, theta1: float, theta2: float):
        self.params = params

        self.theta1 = theta1
        self.theta2 = theta2
        self.omega1 = 0.0
        self.omega2 = 0.0
        self.alpha1, self.alpha2 = self._accelerations()
        self.x1, self.y1, self.x2, self.y2 = positions(
            theta1, theta2, params.l1, params.l2,
        )

        self.time = 0.0
        self.last_dt = 0.0

    @classmethod
    def create(cls, theta1, theta2, l1, l2, m1, m2, g=DEFAULT_GRAVITY):
        """Build a pendulum at rest from initial angles (radians)."""
        params = PendulumParams(m1=m1, m2=m2, l1=l1, l2=l2, g=g)
        return cls(params, theta1, theta2)

    def __repr__(self):
        return (
            f"DoublePendulum(theta1={self.theta1!r}, theta2={self.theta2!r}, "
            f"omega1={self.omega1!r}, omega2={self.omega2!r}, time={self.time!r})"
        )

    def _accelerations(self):
        p = self.params
        args = (
            p.m1, p.m2, self.theta1, self.theta2,
            self.omega1, self.omega2, p.l1, p.l2, p.g,
        )
        return angular_acceleration1(*args), angular_acceleration2(*args)

    def advance(self, dt: float) -> None:
        """Advance the state by one tick of length dt, in place."""
        with np.errstate(invalid="ignore", over="ignore"):
            self.omega1 = self.omega1 + self.alpha1 * dt
            self.omega2 = self.omega2 + self.alpha2 * dt
            self.theta1 = self.theta1 + self.omega1 * dt + 0.5 * self.alpha1 * dt**2
            self.theta2 = self.theta2 + self.omega2 * dt + 0.5 * self.alpha2 * dt**2

            self.alpha1, self.alpha2 = self._accelerations()
            self.x1, self.y1, self.x2, self.y2 = positions(
                self.theta1, self.theta2, self.params.l1, self.params.l2,
            )

            self.theta1 = wrap_angle(self.theta1)
            self.theta2 = wrap_angle(self.theta2)

        self.time = self.time + dt
        self.last_dt = dt

    def advance_with_last_step(self) -> None:
        """Advance by the dt of the previous advance() call."""
        self.advance(self.last_dt)

    def state(self):
        """Return (theta1, theta2, omega1, omega2)."""
        return self.theta1, self.theta2, self.omega1, self.omega2

    def bob_positions(self):
        """Return (x1, y1, x2, y2) in display coordinates."""
        return self.x1, self.y1, self.x2, self.y2

    def total_energy(self):
        return total_energy(self.state(), self.params)
