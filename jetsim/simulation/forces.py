"""Force and moment summation for one tick.

Collects the aerodynamic, propulsive and gravitational contributions, in the
body frame, into a ``ForceBreakdown`` that the integrator consumes and the
state reporter exposes for diagnostics.

On the runway the gear carries whatever net force pushes the airframe into
the ground; that reaction is recorded separately so the three physical
contributions stay untouched.

Example:
    >>> from jetsim.simulation.forces import compute_forces
    >>>
    >>> forces, aero = compute_forces(config, state, env, mass=63000.0)
    >>> print(forces.total_force)
"""

from dataclasses import dataclass, field

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from jetsim.dynamics.state import RigidBodyState
from jetsim.environment.atmosphere import Environment
from jetsim.environment.gravity import gravitational_forces
from jetsim.propulsion.thrust import propulsion_forces
from jetsim.vehicle.aerodynamics import AeroResult, aerodynamic_forces
from jetsim.vehicle.aircraft import AircraftConfig

# =============================================================================
# Breakdown
# =============================================================================


def _zeros() -> NDArray[np.float64]:
    return np.zeros(3)


@beartype
@dataclass(frozen=True)
class ForceBreakdown:
    """Body-frame forces and moments acting this tick.

    Attributes:
        aero: Aerodynamic force, control surfaces included [N]
        thrust: Engine thrust [N]
        gravity: Weight [N]
        moment: Total moment (roll, pitch, yaw) [N*m]
        ground: Runway reaction [N]
    """
    aero: NDArray[np.float64] = field(default_factory=_zeros)
    thrust: NDArray[np.float64] = field(default_factory=_zeros)
    gravity: NDArray[np.float64] = field(default_factory=_zeros)
    moment: NDArray[np.float64] = field(default_factory=_zeros)
    ground: NDArray[np.float64] = field(default_factory=_zeros)

    @property
    def total_force(self) -> NDArray[np.float64]:
        """Sum of all forces [N]."""
        return self.aero + self.thrust + self.gravity + self.ground

    @property
    def total_moment(self) -> NDArray[np.float64]:
        """Sum of all moments [N*m]."""
        return self.moment

    def as_dict(self) -> dict[str, list[float]]:
        """Plain lists, for logging and JSON."""
        return {
            "aero": self.aero.tolist(),
            "thrust": self.thrust.tolist(),
            "gravity": self.gravity.tolist(),
            "ground": self.ground.tolist(),
            "total": self.total_force.tolist(),
            "moment": self.moment.tolist(),
        }


# =============================================================================
# Summation
# =============================================================================


@beartype
def compute_forces(
    config: AircraftConfig,
    state: RigidBodyState,
    environment: Environment,
    mass: float,
    on_ground: bool = False,
    fuel: float | None = None,
) -> tuple[ForceBreakdown, AeroResult]:
    """All forces and moments for the current state.

    Args:
        config: Aircraft configuration
        state: Current state
        environment: Air data at the aircraft
        mass: Current mass [kg]
        on_ground: Wheels on the runway
        fuel: Fuel on board [kg]; engines flame out at zero. None ignores it.

    Returns:
        (ForceBreakdown, AeroResult) for this tick
    """
    aero = aerodynamic_forces(config, state, environment, mass, on_ground)
    thrust = propulsion_forces(config, state.controls.throttle, environment, fuel)
    gravity = gravitational_forces(mass, state.pitch)

    ground = np.zeros(3)
    if on_ground:
        net_down = aero.force[2] + thrust[2] + gravity[2]
        if net_down > 0.0:
            ground[2] = -net_down

    breakdown = ForceBreakdown(
        aero=aero.force,
        thrust=thrust,
        gravity=gravity,
        moment=aero.moment,
        ground=ground,
    )
    return breakdown, aero
