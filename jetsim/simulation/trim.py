"""Steady level flight trim.

Finds the angle of attack and throttle that hold an altitude and true
airspeed wings level with zero flight path angle (pitch equal to alpha):

1. Bisect alpha until the body Z force (aero + weight) vanishes.
2. Solve the thrust that zeroes the body X force, then the throttle that
   produces it at this density.

The auto-trim already nulls the pitching moment, so a trimmed state has no
net force or moment and holds its flight condition with the controls
untouched.

Example:
    >>> from jetsim.simulation.trim import trim_level_flight
    >>>
    >>> trim = trim_level_flight(AircraftConfig(), altitude=3000.0, airspeed=150.0)
    >>> print(f"alpha={np.degrees(trim.alpha):.2f} deg, throttle={trim.throttle:.3f}")
    >>> state = trim.to_state(heading=90.0, fuel=config.fuel_weight)
"""

import logging
import math
from dataclasses import dataclass

from beartype import beartype

from jetsim.dynamics.state import RigidBodyState
from jetsim.environment.atmosphere import Atmosphere, get_atmosphere
from jetsim.simulation.forces import compute_forces
from jetsim.vehicle.aerodynamics import AeroResult
from jetsim.vehicle.aircraft import AircraftConfig

logger = logging.getLogger(__name__)

# Angle of attack search bracket [rad]
ALPHA_BRACKET = (-0.2, 0.4)


@beartype
@dataclass(frozen=True)
class TrimResult:
    """Trimmed level flight condition.

    Attributes:
        altitude: Altitude [m]
        airspeed: True airspeed [m/s]
        mass: Mass trimmed for [kg]
        alpha: Angle of attack, equal to pitch [rad]
        throttle: Throttle setting (0-1)
        thrust: Required thrust [N]
        lift_coefficient: CL at trim
        drag: Drag at trim [N]
        iterations: Bisection iterations used
        converged: Z force balanced within tolerance and throttle within [0, 1]
    """
    altitude: float
    airspeed: float
    mass: float
    alpha: float
    throttle: float
    thrust: float
    lift_coefficient: float
    drag: float
    iterations: int
    converged: bool

    def to_state(self, heading: float = 0.0, fuel: float = 0.0) -> RigidBodyState:
        """Initial state flying this trim condition, gear up."""
        return RigidBodyState.level_flight(
            altitude=self.altitude,
            airspeed=self.airspeed,
            heading=heading,
            angle_of_attack=self.alpha,
            throttle=self.throttle,
            fuel=fuel,
        )


@beartype
def trim_level_flight(
    config: AircraftConfig,
    altitude: float,
    airspeed: float,
    mass: float | None = None,
    atmosphere: Atmosphere | None = None,
    tolerance: float = 1e-10,
    max_iterations: int = 100,
) -> TrimResult:
    """Trim for steady, wings-level, constant altitude flight.

    Args:
        config: Aircraft configuration
        altitude: Altitude [m]
        airspeed: True airspeed [m/s]
        mass: Mass [kg]; defaults to the configured gross mass
        atmosphere: Atmosphere model; defaults to the shared instance
        tolerance: Bisection tolerance on alpha [rad]
        max_iterations: Bisection iteration cap

    Returns:
        TrimResult; ``converged`` is False when no balance exists in the
        alpha bracket or the thrust needed is outside the engines' range

    Raises:
        ValueError: If the airspeed is not positive
    """
    if airspeed <= 0:
        raise ValueError(f"airspeed must be positive, got {airspeed}")

    if mass is None:
        mass = config.mass
    if atmosphere is None:
        atmosphere = get_atmosphere()
    env = atmosphere.at_altitude(altitude)

    def residuals(alpha: float) -> tuple[float, float, AeroResult]:
        state = RigidBodyState.level_flight(altitude, airspeed, angle_of_attack=alpha)
        forces, aero = compute_forces(config, state, env, mass)
        total = forces.total_force
        return float(total[0]), float(total[2]), aero

    lo, hi = ALPHA_BRACKET
    fz_lo = residuals(lo)[1]
    fz_hi = residuals(hi)[1]
    bracketed = fz_lo * fz_hi <= 0.0

    iterations = 0
    if bracketed:
        while hi - lo > tolerance and iterations < max_iterations:
            mid = 0.5 * (lo + hi)
            fz_mid = residuals(mid)[1]
            if fz_mid == 0.0:
                lo = hi = mid
                break
            if (fz_mid > 0.0) == (fz_lo > 0.0):
                lo, fz_lo = mid, fz_mid
            else:
                hi = mid
            iterations += 1
        alpha = 0.5 * (lo + hi)
    else:
        # No balance in the bracket: take the end with the smaller residual
        alpha = lo if abs(fz_lo) < abs(fz_hi) else hi
        logger.warning(
            "No level flight trim at %.0f m, %.1f m/s: Z force does not change sign",
            altitude, airspeed,
        )

    fx, _, aero = residuals(alpha)
    thrust_required = -fx
    available = config.max_thrust * env.density_ratio ** config.thrust_lapse_exponent
    throttle = thrust_required / available if available > 0 else math.inf
    feasible = 0.0 <= throttle <= 1.0
    if not feasible:
        logger.warning(
            "Trim throttle %.3f outside [0, 1] at %.0f m, %.1f m/s",
            throttle, altitude, airspeed,
        )

    return TrimResult(
        altitude=altitude,
        airspeed=airspeed,
        mass=mass,
        alpha=alpha,
        throttle=min(max(throttle, 0.0), 1.0),
        thrust=thrust_required,
        lift_coefficient=aero.lift_coefficient,
        drag=aero.drag,
        iterations=iterations,
        converged=bracketed and feasible,
    )
