"""Rigid-body state and integration for 6DOF flight simulation.

Example:
    >>> from jetsim.dynamics import RigidBodyState, integrate, normalize_angle
    >>>
    >>> state = RigidBodyState.level_flight(altitude=3000.0, airspeed=150.0)
    >>> state = integrate(state, force, moment, mass, inertia, dt=1 / 60)
"""

from jetsim.dynamics.controls import (
    AirBrake,
    ControlState,
    FlapDetent,
)
from jetsim.dynamics.integrator import (
    DEFAULT_DAMPING,
    FIXED_DT,
    earth_rates,
    euler_angle_rates,
    integrate,
    is_on_ground,
)
from jetsim.dynamics.state import (
    PITCH_LIMIT,
    RigidBodyState,
    body_to_earth,
    heading_degrees,
    normalize_angle,
)

__all__ = [
    # Controls
    "AirBrake",
    "ControlState",
    "FlapDetent",
    # Integration
    "DEFAULT_DAMPING",
    "FIXED_DT",
    "earth_rates",
    "euler_angle_rates",
    "integrate",
    "is_on_ground",
    # State
    "PITCH_LIMIT",
    "RigidBodyState",
    "body_to_earth",
    "heading_degrees",
    "normalize_angle",
]
