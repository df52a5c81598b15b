"""Airframe modeling: configuration and aerodynamics.

Example:
    >>> from jetsim.vehicle import AircraftConfig, aerodynamic_forces
    >>>
    >>> config = AircraftConfig.from_dict({"wingArea": 122.6})
    >>> aero = aerodynamic_forces(config, state, env, mass=config.mass)
"""

from jetsim.vehicle.aerodynamics import (
    AeroResult,
    aerodynamic_forces,
    drag_coefficient,
    ground_effect,
    lift_coefficient,
)
from jetsim.vehicle.aircraft import (
    AircraftConfig,
    AxisValues,
)

__all__ = [
    # Aerodynamics
    "AeroResult",
    "aerodynamic_forces",
    "drag_coefficient",
    "ground_effect",
    "lift_coefficient",
    # Configuration
    "AircraftConfig",
    "AxisValues",
]
