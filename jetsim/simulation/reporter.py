"""Derived flight data, alarms and crash detection.

``StateReporter`` turns the raw rigid-body state into the values a cockpit
or a client actually reads (indicated airspeed, Mach, vertical speed in
ft/min, compass heading) and watches for unsafe conditions.

It is split in two:
- ``monitor`` runs after every fixed integration step and keeps the timers
  and the crash latch current.
- ``report`` assembles the read-only ``StateSnapshot`` on demand.

Alarms (airborne only):
- SINKRATE: descent above 2000 ft/min for 2 s
- TERRAIN: impact within 20 s while descending above 1000 ft/min
- PULL UP: impact within 10 s while descending above 1000 ft/min
- BANK ANGLE: |roll| above 60 deg
- PITCH: |pitch| above 45 deg
- STALL: indicated airspeed below the stall speed, or CL at CLmax

Example:
    >>> from jetsim.simulation.reporter import StateReporter
    >>>
    >>> reporter = StateReporter()
    >>> reporter.monitor(state, config, env, forces, mass, on_ground=False, dt=1 / 60)
    >>> snapshot = reporter.report(state, config, env, forces, aero, False, mass)
    >>> print(snapshot.alarms, snapshot.crashed)
"""

import logging
import math
from dataclasses import dataclass, field

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from jetsim.dynamics.controls import ControlState
from jetsim.dynamics.state import RigidBodyState
from jetsim.environment.atmosphere import G0, Environment
from jetsim.gnc.control.autopilot import AutopilotStatus
from jetsim.simulation.forces import ForceBreakdown
from jetsim.units import knots_to_mps, meters_to_feet, mps_to_fpm, mps_to_knots
from jetsim.vehicle.aerodynamics import AeroResult
from jetsim.vehicle.aircraft import AircraftConfig

logger = logging.getLogger(__name__)

SINKRATE = "SINKRATE"
TERRAIN = "TERRAIN"
PULL_UP = "PULL UP"
BANK_ANGLE = "BANK ANGLE"
PITCH = "PITCH"
STALL = "STALL"


# =============================================================================
# Derived Quantities
# =============================================================================


@beartype
def indicated_airspeed(true_airspeed: float, environment: Environment) -> float:
    """IAS from TAS through the density ratio, IAS = TAS * sqrt(rho / rho0)."""
    return true_airspeed * math.sqrt(max(environment.density_ratio, 0.0))


@beartype
def time_to_impact(altitude: float, vertical_speed: float) -> float:
    """Seconds until the ground at the current rate of descent.

    Args:
        altitude: Height above the runway [m]
        vertical_speed: Rate of climb, positive up [m/s]

    Returns:
        Time [s]; infinity when level or climbing
    """
    if vertical_speed >= 0.0:
        return math.inf
    return max(altitude, 0.0) / -vertical_speed


@beartype
def load_factor(forces: ForceBreakdown, mass: float) -> float:
    """Normal load factor n: non-gravitational body -Z force over weight."""
    specific = forces.total_force - forces.gravity
    return float(-specific[2] / (mass * G0))


# =============================================================================
# Snapshot
# =============================================================================


@beartype
@dataclass(frozen=True)
class StateSnapshot:
    """Everything a client reads about the aircraft at one instant.

    Attributes:
        time: Simulation time [s]
        position: Earth position, North-East-Down [m]
        velocity: Body velocity (u, v, w) [m/s]
        orientation: (roll, pitch, yaw) [rad]
        angular_rates: Body rates (p, q, r) [rad/s]
        altitude: Altitude [m]
        altitude_ft: Altitude [ft]
        true_airspeed: TAS [m/s]
        indicated_airspeed: IAS [m/s]
        indicated_airspeed_kt: IAS [kt]
        mach: Mach number
        ground_speed: Horizontal speed over the ground [m/s]
        vertical_speed: Rate of climb [m/s]
        vertical_speed_fpm: Rate of climb [ft/min]
        heading: Compass heading [deg]
        pitch_deg: Pitch [deg]
        roll_deg: Roll [deg]
        alpha_deg: Angle of attack [deg]
        beta_deg: Sideslip [deg]
        flight_path_deg: Flight path angle [deg]
        load_factor: Normal load factor [g]
        fuel: Fuel on board [kg]
        mass: Current mass [kg]
        on_ground: Wheels on the runway
        controls: Applied controls
        forces: Forces and moments of the last step
        environment: Air data at the aircraft
        autopilot: Autopilot status
        alarms: Active alarm names
        crashed: Crash latched
        crash_reason: First crash cause, None when intact
    """
    time: float
    position: NDArray[np.float64]
    velocity: NDArray[np.float64]
    orientation: NDArray[np.float64]
    angular_rates: NDArray[np.float64]
    altitude: float
    altitude_ft: float
    true_airspeed: float
    indicated_airspeed: float
    indicated_airspeed_kt: float
    mach: float
    ground_speed: float
    vertical_speed: float
    vertical_speed_fpm: float
    heading: float
    pitch_deg: float
    roll_deg: float
    alpha_deg: float
    beta_deg: float
    flight_path_deg: float
    load_factor: float
    fuel: float
    mass: float
    on_ground: bool
    controls: ControlState
    forces: ForceBreakdown
    environment: Environment
    autopilot: AutopilotStatus | None = None
    alarms: tuple[str, ...] = ()
    crashed: bool = False
    crash_reason: str | None = None

    def to_dict(self) -> dict:
        """Flat, JSON-friendly summary."""
        return {
            "time": self.time,
            "position": self.position.tolist(),
            "velocity": self.velocity.tolist(),
            "orientation": self.orientation.tolist(),
            "angular_rates": self.angular_rates.tolist(),
            "altitude": self.altitude,
            "altitude_ft": self.altitude_ft,
            "true_airspeed": self.true_airspeed,
            "indicated_airspeed": self.indicated_airspeed,
            "indicated_airspeed_kt": self.indicated_airspeed_kt,
            "mach": self.mach,
            "ground_speed": self.ground_speed,
            "vertical_speed": self.vertical_speed,
            "vertical_speed_fpm": self.vertical_speed_fpm,
            "heading": self.heading,
            "pitch_deg": self.pitch_deg,
            "roll_deg": self.roll_deg,
            "alpha_deg": self.alpha_deg,
            "beta_deg": self.beta_deg,
            "load_factor": self.load_factor,
            "fuel": self.fuel,
            "on_ground": self.on_ground,
            "throttle": self.controls.throttle,
            "flaps": int(self.controls.flaps),
            "air_brakes": int(self.controls.air_brakes),
            "gear_down": self.controls.gear_down,
            "forces": self.forces.as_dict(),
            "autopilot_engaged": bool(self.autopilot and self.autopilot.engaged),
            "alarms": list(self.alarms),
            "crashed": self.crashed,
            "crash_reason": self.crash_reason,
        }


# =============================================================================
# Reporter
# =============================================================================


@beartype
@dataclass
class StateReporter:
    """Alarm and crash monitor, and snapshot builder.

    Attributes:
        sink_rate_fpm: SINKRATE descent threshold [ft/min]
        sink_duration: Time the descent must persist [s]
        terrain_fpm: Descent above which impact warnings are armed [ft/min]
        terrain_time: TERRAIN time to impact [s]
        pull_up_time: PULL UP time to impact [s]
        max_bank: BANK ANGLE threshold [deg]
        max_pitch: PITCH threshold [deg]
        hard_landing_fpm: Touchdown descent that destroys the gear [ft/min]
        max_mach: Overspeed limit
        max_load: Structural load limit [g]
    """
    sink_rate_fpm: float = 2000.0
    sink_duration: float = 2.0
    terrain_fpm: float = 1000.0
    terrain_time: float = 20.0
    pull_up_time: float = 10.0
    max_bank: float = 60.0
    max_pitch: float = 45.0
    hard_landing_fpm: float = 2000.0
    max_mach: float = 1.0
    max_load: float = 5.0

    # Internal state
    _sink_timer: float = field(default=0.0, init=False, repr=False)
    _crash_reason: str | None = field(default=None, init=False, repr=False)

    @property
    def crashed(self) -> bool:
        """Crash latched since the last reset."""
        return self._crash_reason is not None

    @property
    def crash_reason(self) -> str | None:
        """First crash cause."""
        return self._crash_reason

    @property
    def sink_timer(self) -> float:
        """Time the current excessive descent has lasted [s]."""
        return self._sink_timer

    @beartype
    def reset(self) -> None:
        """Clear timers and the crash latch."""
        self._sink_timer = 0.0
        self._crash_reason = None

    @beartype
    def crash_check(
        self,
        state: RigidBodyState,
        config: AircraftConfig,
        environment: Environment,
        forces: ForceBreakdown,
        mass: float,
        touchdown_rate: float | None = None,
    ) -> str | None:
        """First crash condition met by this state, or None.

        Args:
            state: State after the step
            config: Aircraft configuration
            environment: Air data at the aircraft
            forces: Forces of the step
            mass: Current mass [kg]
            touchdown_rate: Rate of climb just before ground contact this
                step [m/s], None when no contact was made
        """
        if not state.is_finite():
            return "non-finite state"
        if touchdown_rate is not None and -mps_to_fpm(touchdown_rate) > self.hard_landing_fpm:
            return f"hard landing at {-mps_to_fpm(touchdown_rate):.0f} ft/min"
        if environment.speed_of_sound > 0.0:
            mach = state.airspeed / environment.speed_of_sound
            if mach >= self.max_mach:
                return f"overspeed at Mach {mach:.2f}"
        rate = float(np.max(np.abs(state.angular_rates)))
        if rate > config.max_angular_rate:
            return f"angular rate {rate:.2f} rad/s exceeds structural limit"
        n = load_factor(forces, mass)
        if abs(n) > self.max_load:
            return f"load factor {n:.1f} g exceeds structural limit"
        return None

    @beartype
    def monitor(
        self,
        state: RigidBodyState,
        config: AircraftConfig,
        environment: Environment,
        forces: ForceBreakdown,
        mass: float,
        on_ground: bool,
        dt: float,
        touchdown_rate: float | None = None,
    ) -> bool:
        """Update timers and the crash latch after one step.

        Returns:
            True if the aircraft is (now or already) crashed
        """
        descent_fpm = -mps_to_fpm(state.vertical_speed(environment.wind))
        if not on_ground and descent_fpm > self.sink_rate_fpm:
            self._sink_timer += dt
        else:
            self._sink_timer = 0.0

        if self._crash_reason is None:
            reason = self.crash_check(
                state, config, environment, forces, mass, touchdown_rate
            )
            if reason is not None:
                self._crash_reason = reason
                logger.warning("Crash at t=%.2f s: %s", state.time, reason)
        return self.crashed

    @beartype
    def alarms(
        self,
        state: RigidBodyState,
        config: AircraftConfig,
        environment: Environment,
        aero: AeroResult,
        on_ground: bool,
    ) -> tuple[str, ...]:
        """Active alarms for the current state."""
        if on_ground:
            return ()

        active: list[str] = []
        vertical_speed = state.vertical_speed(environment.wind)
        descent_fpm = -mps_to_fpm(vertical_speed)

        if self._sink_timer >= self.sink_duration:
            active.append(SINKRATE)

        if descent_fpm > self.terrain_fpm:
            tti = time_to_impact(state.altitude, vertical_speed)
            if tti <= self.pull_up_time:
                active.append(PULL_UP)
            elif tti <= self.terrain_time:
                active.append(TERRAIN)

        if abs(math.degrees(state.roll)) > self.max_bank:
            active.append(BANK_ANGLE)
        if abs(math.degrees(state.pitch)) > self.max_pitch:
            active.append(PITCH)

        ias = indicated_airspeed(state.airspeed, environment)
        if ias < knots_to_mps(config.stall_speed) or aero.stalling:
            active.append(STALL)

        return tuple(active)

    @beartype
    def report(
        self,
        state: RigidBodyState,
        config: AircraftConfig,
        environment: Environment,
        forces: ForceBreakdown,
        aero: AeroResult,
        on_ground: bool,
        mass: float,
        autopilot: AutopilotStatus | None = None,
    ) -> StateSnapshot:
        """Assemble the snapshot for the current state."""
        tas = state.airspeed
        ias = indicated_airspeed(tas, environment)
        earth_velocity = state.earth_velocity(environment.wind)
        vertical_speed = float(-earth_velocity[2])
        mach = tas / environment.speed_of_sound if environment.speed_of_sound > 0 else 0.0

        return StateSnapshot(
            time=state.time,
            position=state.position.copy(),
            velocity=state.velocity.copy(),
            orientation=state.orientation.copy(),
            angular_rates=state.angular_rates.copy(),
            altitude=state.altitude,
            altitude_ft=meters_to_feet(state.altitude),
            true_airspeed=tas,
            indicated_airspeed=ias,
            indicated_airspeed_kt=mps_to_knots(ias),
            mach=mach,
            ground_speed=float(np.hypot(earth_velocity[0], earth_velocity[1])),
            vertical_speed=vertical_speed,
            vertical_speed_fpm=mps_to_fpm(vertical_speed),
            heading=state.heading,
            pitch_deg=math.degrees(state.pitch),
            roll_deg=math.degrees(state.roll),
            alpha_deg=math.degrees(aero.alpha),
            beta_deg=math.degrees(aero.beta),
            flight_path_deg=math.degrees(aero.flight_path_angle),
            load_factor=load_factor(forces, mass),
            fuel=state.fuel,
            mass=mass,
            on_ground=on_ground,
            controls=state.controls.copy(),
            forces=forces,
            environment=environment,
            autopilot=autopilot,
            alarms=self.alarms(state, config, environment, aero, on_ground),
            crashed=self.crashed,
            crash_reason=self._crash_reason,
        )
