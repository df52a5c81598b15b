"""Turbofan thrust and fuel flow.

Thrust scales linearly with the throttle lever and lapses with air density:

    T = throttle * n_engines * T_max * (rho / rho0)^0.7

and acts along the body X axis through the CG (no pitching moment from
engine placement). Fuel flow is proportional to thrust through a constant
specific fuel consumption; with the tanks dry the engines flame out.

Example:
    >>> from jetsim.propulsion import propulsion_forces
    >>>
    >>> f = propulsion_forces(config, throttle=0.8, environment=env)
    >>> print(f"Thrust: {f[0] / 1000:.1f} kN")
"""

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from jetsim.environment.atmosphere import RHO0, Environment
from jetsim.vehicle.aircraft import AircraftConfig

# =============================================================================
# Thrust
# =============================================================================


@beartype
def thrust(
    config: AircraftConfig,
    throttle: float,
    environment: Environment,
    fuel: float | None = None,
) -> float:
    """Total engine thrust [N].

    Args:
        config: Aircraft configuration
        throttle: Throttle setting, clipped to [0, 1]
        environment: Air data at the aircraft
        fuel: Fuel on board [kg]; None ignores fuel state

    Returns:
        Thrust magnitude [N]
    """
    if fuel is not None and fuel <= 0.0:
        return 0.0
    setting = float(np.clip(throttle, 0.0, 1.0))
    lapse = (environment.density / RHO0) ** config.thrust_lapse_exponent
    return setting * config.max_thrust * lapse


@beartype
def propulsion_forces(
    config: AircraftConfig,
    throttle: float,
    environment: Environment,
    fuel: float | None = None,
) -> NDArray[np.float64]:
    """Thrust vector in the body frame [N], along +X."""
    return np.array([thrust(config, throttle, environment, fuel), 0.0, 0.0])


@beartype
def fuel_flow(config: AircraftConfig, thrust_newtons: float) -> float:
    """Fuel mass flow for a thrust level [kg/s]."""
    return config.specific_fuel_consumption * max(thrust_newtons, 0.0)
