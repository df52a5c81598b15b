"""Aerodynamic forces and moments on the airframe.

Lift is a blend of two coefficients: the one that would exactly carry the
current weight at this dynamic pressure, and the one the lift curve gives
for the current angle of attack. The blend keeps the aircraft close to
1 g for any reasonable attitude, while the angle-of-attack term still lets
the pilot climb and descend.

Sign conventions (body axes X forward, Y right, Z down):
- alpha positive with the relative wind from below (w > 0)
- beta positive with the relative wind from the right (v > 0)
- pitching moment positive nose up

Example:
    >>> from jetsim.vehicle import AircraftConfig, aerodynamic_forces
    >>>
    >>> aero = aerodynamic_forces(config, state, env, mass=63000.0)
    >>> print(f"CL={aero.lift_coefficient:.3f} alpha={np.degrees(aero.alpha):.1f} deg")
"""

import math
from dataclasses import dataclass, field

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from jetsim.dynamics.state import RigidBodyState
from jetsim.environment.atmosphere import G0, Environment
from jetsim.vehicle.aircraft import AircraftConfig

# =============================================================================
# Constants
# =============================================================================

# Below this airspeed the aerodynamic forces are zero [m/s]
MIN_AIRSPEED = 1.0

# Flow angle limits [rad]
MAX_ALPHA = math.radians(60.0)
MAX_BETA = math.radians(45.0)

# Lift coefficient floors
CL_REQUIRED_FLOOR = 0.1
CL_FLOOR = 0.3

# Stall warning as a fraction of CLmax
STALL_WARNING_FRACTION = 0.8

# Peak lift gain in ground effect (at zero height)
GROUND_EFFECT_GAIN = 0.15


# =============================================================================
# Result
# =============================================================================


@beartype
@dataclass(frozen=True)
class AeroResult:
    """Aerodynamic forces, moments and the intermediate values behind them.

    Attributes:
        force: Body-frame aerodynamic force, control surfaces included [N]
        moment: Body-frame moment (roll, pitch, yaw) [N*m]
        airspeed: True airspeed [m/s]
        dynamic_pressure: q [Pa]
        alpha: Angle of attack [rad]
        beta: Sideslip angle [rad]
        flight_path_angle: gamma = theta - alpha [rad]
        lift_coefficient: CL after flap and speed brake increments
        drag_coefficient: CD
        lift: Lift [N]
        drag: Drag [N]
        pitching_moment: Untrimmed aerodynamic pitching moment [N*m]
        trim_moment: Auto-trim moment opposing it [N*m]
        stalling: CL at CLmax
        stall_warning: CL above the stall warning threshold
    """
    force: NDArray[np.float64] = field(default_factory=lambda: np.zeros(3))
    moment: NDArray[np.float64] = field(default_factory=lambda: np.zeros(3))
    airspeed: float = 0.0
    dynamic_pressure: float = 0.0
    alpha: float = 0.0
    beta: float = 0.0
    flight_path_angle: float = 0.0
    lift_coefficient: float = 0.0
    drag_coefficient: float = 0.0
    lift: float = 0.0
    drag: float = 0.0
    pitching_moment: float = 0.0
    trim_moment: float = 0.0
    stalling: bool = False
    stall_warning: bool = False


# =============================================================================
# Coefficients
# =============================================================================


@beartype
def lift_coefficient(
    config: AircraftConfig,
    alpha: float,
    dynamic_pressure: float,
    mass: float,
) -> float:
    """Clean-wing lift coefficient.

    Blends the CL that balances the weight with the lift-curve CL at alpha,
    then clamps to [0.3, CLmax].

    Args:
        config: Aircraft configuration
        alpha: Angle of attack [rad]
        dynamic_pressure: q [Pa]
        mass: Current mass [kg]

    Returns:
        CL before flap and speed brake increments; with no dynamic pressure
        (vacuum above the atmosphere table) the weight term saturates at CLmax
    """
    cl_max = config.max_lift_coefficient
    lift_capacity = dynamic_pressure * config.wing_area
    if lift_capacity > 0.0:
        cl_required = np.clip(mass * G0 / lift_capacity, CL_REQUIRED_FLOOR, cl_max)
    else:
        cl_required = cl_max
    cl_alpha = config.lift_curve_slope * (alpha + config.trim_offset)
    blend = config.lift_blend
    cl = blend * cl_required + (1.0 - blend) * cl_alpha
    return float(np.clip(cl, CL_FLOOR, cl_max))


@beartype
def drag_coefficient(
    config: AircraftConfig,
    cl: float,
    surface_drag: float = 0.0,
) -> float:
    """Drag polar CD = CD0 + k CL^2 plus surface increments."""
    return (
        config.zero_lift_drag_coefficient
        + config.induced_drag_factor * cl * cl
        + surface_drag
    )


@beartype
def ground_effect(height: float, span: float) -> float:
    """Lift multiplier near the ground, 1 + 0.15 exp(-2h/b)."""
    return 1.0 + GROUND_EFFECT_GAIN * math.exp(-2.0 * max(height, 0.0) / span)


# =============================================================================
# Forces
# =============================================================================


@beartype
def aerodynamic_forces(
    config: AircraftConfig,
    state: RigidBodyState,
    environment: Environment,
    mass: float,
    on_ground: bool = False,
) -> AeroResult:
    """Aerodynamic force and moment for the current state.

    Args:
        config: Aircraft configuration
        state: Current state (velocity, attitude and controls are read)
        environment: Air data at the aircraft
        mass: Current mass [kg]
        on_ground: Wheels on the runway (ground spoiler increments)

    Returns:
        AeroResult; all zeros below 1 m/s airspeed
    """
    u, v, w = (float(c) for c in state.velocity)
    airspeed = math.sqrt(u * u + v * v + w * w)
    if airspeed < MIN_AIRSPEED:
        return AeroResult(airspeed=airspeed)

    controls = state.controls
    q_dyn = 0.5 * environment.density * airspeed * airspeed
    qs = q_dyn * config.wing_area

    alpha = float(np.clip(math.atan2(w, u), -MAX_ALPHA, MAX_ALPHA))
    beta = float(np.clip(math.atan2(v, math.hypot(u, w)), -MAX_BETA, MAX_BETA))

    # Lift and drag coefficients
    cl_clean = lift_coefficient(config, alpha, q_dyn, mass)
    cl_max = config.max_lift_coefficient
    brake_cl, brake_cd = controls.air_brakes.increments(on_ground)
    cl = max(cl_clean + controls.flaps.lift_increment + brake_cl, 0.0)
    surface_drag = controls.flaps.drag_increment + brake_cd
    if controls.gear_down:
        surface_drag += config.gear_drag_coefficient
    cd = drag_coefficient(config, cl, surface_drag)

    lift = qs * cl * ground_effect(state.altitude, config.wing_span)
    drag = qs * cd

    # Lift normal to the relative wind, drag along it
    sin_a, cos_a = math.sin(alpha), math.cos(alpha)
    fx = lift * sin_a - drag * cos_a
    fy = -qs * config.side_force_coefficient * beta
    fz = -lift * cos_a - drag * sin_a

    # Direct control surface forces
    fy += qs * (
        config.aileron_effectiveness * controls.roll
        + config.rudder_effectiveness * controls.yaw
    )
    fz -= qs * config.elevator_effectiveness * controls.pitch

    # Pitching moment about the CG, and the auto-trim that opposes it
    arm = config.moment_arm
    pitching = arm * (-lift * sin_a + drag * cos_a)
    trim = -config.trim_authority * pitching

    control_scale = qs * config.mean_chord * config.control_moment_coefficient
    power = config.control_power
    moment = np.array([
        power.roll * controls.roll * control_scale,
        power.pitch * controls.pitch * control_scale + (pitching + trim),
        power.yaw * controls.yaw * control_scale,
    ])

    return AeroResult(
        force=np.array([fx, fy, fz]),
        moment=moment,
        airspeed=airspeed,
        dynamic_pressure=q_dyn,
        alpha=alpha,
        beta=beta,
        flight_path_angle=state.pitch - alpha,
        lift_coefficient=cl,
        drag_coefficient=cd,
        lift=lift,
        drag=drag,
        pitching_moment=pitching,
        trim_moment=trim,
        stalling=cl_clean >= cl_max,
        stall_warning=cl_clean >= STALL_WARNING_FRACTION * cl_max,
    )
