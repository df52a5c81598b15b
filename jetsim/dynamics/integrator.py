"""Semi-implicit Euler integration of the aircraft rigid body.

One step, in order:

1. Body velocity from the summed body forces.
2. Body rates from the summed moments, then multiplicative rate damping
   standing in for the aerodynamic damping derivatives the force model
   does not compute.
3. Euler angles from the new rates through the kinematic equations, with
   pitch held away from +/-90 deg where the equations divide by cos(theta).
4. Earth position from the new velocity rotated by the new attitude.
5. Ground plane: altitude never goes below zero.

Explicit Euler is only faithful at small steps. ``integrate`` therefore
expects a fixed small ``dt``; the simulator splits frame times into whole
fixed steps before calling it.

The inner kinematics are numba-compiled.

Example:
    >>> from jetsim.dynamics import integrate, RigidBodyState
    >>>
    >>> state = RigidBodyState.level_flight(altitude=3000.0, airspeed=150.0)
    >>> new_state = integrate(state, force, moment, mass=63000.0,
    ...                       inertia=np.array([3e4, 5e4, 8e4]), dt=1 / 60)
"""

import math

import numpy as np
from beartype import beartype
from numba import njit
from numpy.typing import NDArray

from jetsim.dynamics.state import PITCH_LIMIT, RigidBodyState, normalize_angle

# Integration step [s]
FIXED_DT = 1.0 / 60.0

# Per-step rate damping (roll, pitch, yaw), tuned at FIXED_DT
DEFAULT_DAMPING = (0.98, 0.98, 0.98)

# Body rate ceiling [rad/s]
MAX_BODY_RATE = math.pi

# Height and sink rate under which the aircraft is resting on the runway [m], [m/s]
GROUND_TOLERANCE = 0.1


# =============================================================================
# Numba-Optimized Kinematics
# =============================================================================


@njit(cache=True, fastmath=True)
def _euler_angle_rates(
    phi: float, theta: float,
    p: float, q: float, r: float,
    pitch_limit: float,
) -> tuple[float, float, float]:
    """Euler angle rates from body rates, with the gimbal-lock guard."""
    th = min(max(theta, -pitch_limit), pitch_limit)
    sphi = np.sin(phi)
    cphi = np.cos(phi)
    q_r = q * sphi + r * cphi
    return (
        p + np.tan(th) * q_r,
        q * cphi - r * sphi,
        q_r / np.cos(th),
    )


@njit(cache=True, fastmath=True)
def _earth_rates(
    u: float, v: float, w: float,
    phi: float, theta: float, psi: float,
) -> tuple[float, float, float]:
    """Rotate body velocity into North-East-Down rates."""
    cphi, sphi = np.cos(phi), np.sin(phi)
    cth, sth = np.cos(theta), np.sin(theta)
    cpsi, spsi = np.cos(psi), np.sin(psi)

    north = (
        u * cth * cpsi
        + v * (sphi * sth * cpsi - cphi * spsi)
        + w * (cphi * sth * cpsi + sphi * spsi)
    )
    east = (
        u * cth * spsi
        + v * (sphi * sth * spsi + cphi * cpsi)
        + w * (cphi * sth * spsi - sphi * cpsi)
    )
    down = -u * sth + v * sphi * cth + w * cphi * cth
    return (north, east, down)


# =============================================================================
# Kinematics
# =============================================================================


@beartype
def euler_angle_rates(
    orientation: NDArray[np.float64],
    angular_rates: NDArray[np.float64],
) -> NDArray[np.float64]:
    """Euler angle rates (phi_dot, theta_dot, psi_dot).

    phi_dot = p + tan(theta) (q sin(phi) + r cos(phi))
    theta_dot = q cos(phi) - r sin(phi)
    psi_dot = (q sin(phi) + r cos(phi)) / cos(theta)

    theta is clamped to +/-(pi/2 - 0.01) inside the trigonometric terms.

    Args:
        orientation: (roll, pitch, yaw) [rad]
        angular_rates: Body rates (p, q, r) [rad/s]

    Returns:
        Euler angle rates [rad/s]
    """
    return np.array(_euler_angle_rates(
        orientation[0], orientation[1],
        angular_rates[0], angular_rates[1], angular_rates[2],
        PITCH_LIMIT,
    ))


@beartype
def earth_rates(
    velocity: NDArray[np.float64],
    orientation: NDArray[np.float64],
) -> NDArray[np.float64]:
    """Position rates in the earth frame for a body-frame velocity."""
    return np.array(_earth_rates(
        velocity[0], velocity[1], velocity[2],
        orientation[0], orientation[1], orientation[2],
    ))


@beartype
def is_on_ground(state: RigidBodyState) -> bool:
    """True when resting on or rolling along the runway."""
    if state.altitude > GROUND_TOLERANCE:
        return False
    climb_rate = -earth_rates(state.velocity, state.orientation)[2]
    return bool(climb_rate <= GROUND_TOLERANCE)


# =============================================================================
# Integration
# =============================================================================


@beartype
def integrate(
    state: RigidBodyState,
    force: NDArray[np.float64],
    moment: NDArray[np.float64],
    mass: float,
    inertia: NDArray[np.float64],
    dt: float,
    damping: NDArray[np.float64] | None = None,
    wind: NDArray[np.float64] | None = None,
    max_rate: float = MAX_BODY_RATE,
) -> RigidBodyState:
    """Advance the state by one semi-implicit Euler step.

    Args:
        state: Current state (not modified)
        force: Total body-frame force [N]
        moment: Total body-frame moment [N*m]
        mass: Aircraft mass [kg]
        inertia: Principal moments of inertia (Ixx, Iyy, Izz) [kg*m^2]
        dt: Time step [s]
        damping: Per-axis multiplicative rate damping, each < 1
        wind: Wind velocity, North-East-Down [m/s]
        max_rate: Body rate ceiling [rad/s]

    Returns:
        New state after dt
    """
    new = state.copy()
    if dt <= 0:
        return new

    if damping is None:
        damping = np.array(DEFAULT_DAMPING)

    # Translational: velocity first
    new.velocity = state.velocity + (force / mass) * dt

    # Rotational
    rates = (state.angular_rates + (moment / inertia) * dt) * damping
    new.angular_rates = np.clip(rates, -max_rate, max_rate)

    # Attitude from the updated rates
    phi, theta, psi = state.orientation
    p, q, r = new.angular_rates
    phi_dot, theta_dot, psi_dot = _euler_angle_rates(phi, theta, p, q, r, PITCH_LIMIT)
    new.orientation = np.array([
        normalize_angle(float(phi + phi_dot * dt)),
        float(np.clip(theta + theta_dot * dt, -PITCH_LIMIT, PITCH_LIMIT)),
        normalize_angle(float(psi + psi_dot * dt)),
    ])

    # Position from the updated velocity and attitude
    rates_ned = np.array(_earth_rates(
        new.velocity[0], new.velocity[1], new.velocity[2],
        new.orientation[0], new.orientation[1], new.orientation[2],
    ))
    if wind is not None:
        rates_ned = rates_ned + wind
    new.position = state.position + rates_ned * dt
    new.time = state.time + dt

    if new.position[2] > 0.0:
        _settle_on_ground(new)

    return new


def _settle_on_ground(state: RigidBodyState) -> None:
    """Hold the aircraft on the runway surface (in place)."""
    state.position[2] = 0.0

    # Wings level, nose not below the horizon
    state.orientation[0] = 0.0
    state.angular_rates[0] = 0.0
    if state.orientation[1] < 0.0:
        state.orientation[1] = 0.0
        state.angular_rates[1] = max(float(state.angular_rates[1]), 0.0)

    # Remove the descending part of the velocity
    down_axis = state.dcm()[2]
    sink = float(down_axis @ state.velocity)
    if sink > 0.0:
        state.velocity = state.velocity - sink * down_axis
