"""Step-driven flight simulation for a transport aircraft.

The simulator owns the truth state and advances it in fixed steps of 1/60 s
in response to control inputs. One step, in order:

1. Controls: the autopilot (when engaged) or the latest manual command,
   smoothed and rate limited toward the demand.
2. Forces: aerodynamics, thrust and weight at the current state.
3. Integration: semi-implicit Euler, ground plane included.
4. Fuel burn, then the alarm and crash monitor.

``update()`` runs exactly one step. ``update(dt=...)`` adds a frame time
to an accumulator and runs every whole step it contains, so a caller
rendering at any frame rate gets the same trajectory as one calling once per
step.

Example:
    >>> from jetsim.simulation import FlightSimulator
    >>>
    >>> sim = FlightSimulator.from_trim(altitude=3000.0, airspeed=150.0)
    >>> sim.set_autopilot(True)
    >>> sim.update_autopilot_targets({"altitude": 3300.0})
    >>>
    >>> for _ in range(600):  # 10 s at 60 Hz
    ...     snapshot = sim.update()
    >>> print(f"Alt: {snapshot.altitude:.0f} m, IAS: {snapshot.indicated_airspeed_kt:.0f} kt")
"""

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass, field

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from jetsim.dynamics.controls import AirBrake, FlapDetent
from jetsim.dynamics.integrator import (
    DEFAULT_DAMPING,
    FIXED_DT,
    MAX_BODY_RATE,
    integrate,
    is_on_ground,
)
from jetsim.dynamics.state import RigidBodyState
from jetsim.environment.atmosphere import Atmosphere, Environment, get_atmosphere
from jetsim.environment.gravity import gravitational_forces
from jetsim.gnc.control.autopilot import (
    AutopilotLimits,
    AutopilotStatus,
    ControlLaw,
    FlightMeasurements,
    PIDAutopilot,
)
from jetsim.gnc.control.limits import (
    CHANNELS,
    CommandLimiter,
    CommandLimits,
    ControlCommand,
    clamp_manual,
    sanitize,
)
from jetsim.gnc.control.pid import PIDGains
from jetsim.propulsion.thrust import fuel_flow, propulsion_forces
from jetsim.simulation.forces import ForceBreakdown, compute_forces
from jetsim.simulation.reporter import StateReporter, StateSnapshot, indicated_airspeed
from jetsim.simulation.trim import trim_level_flight
from jetsim.vehicle.aerodynamics import AeroResult, aerodynamic_forces
from jetsim.vehicle.aircraft import AircraftConfig

logger = logging.getLogger(__name__)

# Slack when comparing the accumulator against a whole step [s]
STEP_EPSILON = 1e-9


# =============================================================================
# Configuration
# =============================================================================


@beartype
@dataclass
class SimConfig:
    """Simulation configuration.

    Attributes:
        fixed_dt: Integration step [s]
        max_frame_dt: Longest frame time accepted by ``update`` [s]
        max_substeps: Most steps run by one ``update``
        damping: Per-step angular rate damping (roll, pitch, yaw)
        max_rate: Body rate ceiling [rad/s]
        wind: Constant wind, North-East-Down [m/s]
        limits: Command clamps, smoothing and rate limits
        record_history: Keep a snapshot of every step
    """
    fixed_dt: float = FIXED_DT
    max_frame_dt: float = 0.25
    max_substeps: int = 20
    damping: tuple[float, float, float] = DEFAULT_DAMPING
    max_rate: float = MAX_BODY_RATE
    wind: tuple[float, float, float] = (0.0, 0.0, 0.0)
    limits: CommandLimits = field(default_factory=CommandLimits)
    record_history: bool = False

    def __post_init__(self) -> None:
        """Validate parameters."""
        if not self.fixed_dt > 0:
            raise ValueError(f"fixed_dt must be positive, got {self.fixed_dt}")
        if not self.max_frame_dt > 0:
            raise ValueError(f"max_frame_dt must be positive, got {self.max_frame_dt}")
        if self.max_substeps < 1:
            raise ValueError(f"max_substeps must be at least 1, got {self.max_substeps}")
        if not all(0.0 < d <= 1.0 for d in self.damping):
            raise ValueError(f"damping factors must be in (0, 1], got {self.damping}")


# =============================================================================
# Inputs
# =============================================================================


@beartype
@dataclass
class ControlInputs:
    """One call's worth of control inputs.

    Continuous channels left as None keep the previous manual command.

    Attributes:
        throttle: Throttle (0-1)
        pitch: Elevator, positive nose up
        roll: Aileron, positive right wing down
        yaw: Rudder, positive nose right
        reset: Return to the initial conditions instead of stepping
        autopilot: Engage (True) or disengage (False); None leaves it
        targets: Autopilot targets with any of altitude/speed/heading
    """
    throttle: float | None = None
    pitch: float | None = None
    roll: float | None = None
    yaw: float | None = None
    reset: bool = False
    autopilot: bool | None = None
    targets: dict[str, float] | None = None

    @classmethod
    def from_mapping(cls, data: Mapping) -> "ControlInputs":
        """Parse a loosely typed mapping.

        Non-numeric channel values become NaN, which the simulator replaces
        with the applied control. Unknown keys are ignored.
        """
        channels = {}
        for name in CHANNELS:
            raw = data.get(name)
            channels[name] = None if raw is None else sanitize(raw, math.nan)

        autopilot = data.get("autopilot")
        targets = data.get("targets")
        parsed_targets = None
        if isinstance(targets, Mapping):
            parsed_targets = {
                key: sanitize(targets[key], math.nan)
                for key in ("altitude", "speed", "heading")
                if targets.get(key) is not None
            }

        return cls(
            **channels,
            reset=bool(data.get("reset", False)),
            autopilot=None if autopilot is None else bool(autopilot),
            targets=parsed_targets,
        )


# =============================================================================
# Results
# =============================================================================


@beartype
@dataclass(frozen=True)
class Diagnostics:
    """Force model internals of the last step.

    Attributes:
        forces: Body-frame force and moment breakdown
        aero: Aerodynamic intermediate values
        environment: Air data used
        mass: Mass used [kg]
        on_ground: Ground contact at the start of the step
    """
    forces: ForceBreakdown
    aero: AeroResult
    environment: Environment
    mass: float
    on_ground: bool


@beartype
@dataclass
class FlightRecord:
    """Recorded snapshots of a run.

    Provides convenient access to time histories.
    """
    snapshots: list[StateSnapshot]

    def __len__(self) -> int:
        return len(self.snapshots)

    @property
    def time(self) -> NDArray[np.float64]:
        """Time array [s]."""
        return np.array([s.time for s in self.snapshots], dtype=np.float64)

    @property
    def position(self) -> NDArray[np.float64]:
        """Position history, North-East-Down [m], shape (N, 3)."""
        return np.array([s.position for s in self.snapshots], dtype=np.float64).reshape(-1, 3)

    @property
    def altitude(self) -> NDArray[np.float64]:
        """Altitude history [m]."""
        return np.array([s.altitude for s in self.snapshots], dtype=np.float64)

    @property
    def true_airspeed(self) -> NDArray[np.float64]:
        """True airspeed history [m/s]."""
        return np.array([s.true_airspeed for s in self.snapshots], dtype=np.float64)

    @property
    def indicated_airspeed(self) -> NDArray[np.float64]:
        """Indicated airspeed history [m/s]."""
        return np.array([s.indicated_airspeed for s in self.snapshots], dtype=np.float64)

    def to_dataframe(self):
        """Convert to Polars DataFrame."""
        import polars as pl

        position = self.position
        return pl.DataFrame({
            "time": self.time,
            "north": position[:, 0],
            "east": position[:, 1],
            "altitude": self.altitude,
            "true_airspeed": self.true_airspeed,
            "indicated_airspeed": self.indicated_airspeed,
            "vertical_speed": [s.vertical_speed for s in self.snapshots],
            "heading": [s.heading for s in self.snapshots],
            "pitch_deg": [s.pitch_deg for s in self.snapshots],
            "roll_deg": [s.roll_deg for s in self.snapshots],
            "alpha_deg": [s.alpha_deg for s in self.snapshots],
            "throttle": [s.controls.throttle for s in self.snapshots],
            "fuel": [s.fuel for s in self.snapshots],
            "crashed": [s.crashed for s in self.snapshots],
        })


# =============================================================================
# Simulator
# =============================================================================


@beartype
@dataclass
class FlightSimulator:
    """Fixed-step 6DOF flight simulator.

    Maintains the truth state and propagates physics in response to control
    inputs, manual or from the autopilot.

    Example:
        >>> sim = FlightSimulator(AircraftConfig.from_dict({"wingArea": 122.6}))
        >>> sim.set_initial_conditions(altitude=3000.0, airspeed=150.0)
        >>> snapshot = sim.update({"throttle": 0.6, "pitch": 0.02}, dt=1 / 30)
    """
    config: AircraftConfig | Mapping = field(default_factory=AircraftConfig)
    sim_config: SimConfig = field(default_factory=SimConfig)
    state: RigidBodyState | None = None
    autopilot: ControlLaw | None = None

    # Internal
    _atmosphere: Atmosphere = field(init=False, repr=False)
    _limiter: CommandLimiter = field(init=False, repr=False)
    _reporter: StateReporter = field(init=False, repr=False)
    _initial: RigidBodyState = field(init=False, repr=False)
    _command: ControlCommand = field(init=False, repr=False)
    _wind: NDArray[np.float64] = field(init=False, repr=False)
    _damping: NDArray[np.float64] = field(init=False, repr=False)
    _accumulator: float = field(default=0.0, init=False, repr=False)
    _diagnostics: Diagnostics = field(init=False, repr=False)
    _history: list[StateSnapshot] = field(default_factory=list, init=False, repr=False)

    def __post_init__(self) -> None:
        """Initialize models and the starting state."""
        if not isinstance(self.config, AircraftConfig):
            self.config = AircraftConfig.from_dict(self.config)
        if self.state is None:
            self.state = RigidBodyState.on_runway(fuel=self.config.fuel_weight)

        self._atmosphere = get_atmosphere()
        if self.autopilot is None:
            self.autopilot = PIDAutopilot(
                limits=AutopilotLimits(safety=self.sim_config.limits)
            )
        self._limiter = CommandLimiter(limits=self.sim_config.limits)
        self._reporter = StateReporter()
        self._wind = np.array(self.sim_config.wind, dtype=np.float64)
        self._damping = np.array(self.sim_config.damping, dtype=np.float64)
        self._start_from(self.state)

        logger.info(
            "Flight simulator ready: mass=%.0f kg, alt=%.0f m, TAS=%.1f m/s",
            self.mass, self.state.altitude, self.state.airspeed,
        )

    @classmethod
    def from_trim(
        cls,
        config: AircraftConfig | None = None,
        altitude: float = 3000.0,
        airspeed: float = 150.0,
        heading: float = 0.0,
        sim_config: SimConfig | None = None,
    ) -> "FlightSimulator":
        """Create a simulator in trimmed level flight with full tanks.

        Args:
            config: Aircraft configuration
            altitude: Altitude [m]
            airspeed: True airspeed [m/s]
            heading: Heading [deg]
            sim_config: Simulation configuration
        """
        config = config or AircraftConfig()
        trim = trim_level_flight(config, altitude, airspeed)
        return cls(
            config=config,
            sim_config=sim_config or SimConfig(),
            state=trim.to_state(heading=heading, fuel=config.fuel_weight),
        )

    def _start_from(self, state: RigidBodyState) -> None:
        """Make ``state`` the current and initial state."""
        self.state = state.copy()
        self._initial = state.copy()
        self._accumulator = 0.0
        self._command = self._applied()
        self._reporter.reset()
        self._history = []
        self._refresh()
        if self.sim_config.record_history:
            self._history.append(self.get_aircraft_state())

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def mass(self) -> float:
        """Current mass, fuel on board included [kg]."""
        return self.config.empty_weight + self.config.payload_weight + self.state.fuel

    @property
    def time(self) -> float:
        """Current simulation time [s]."""
        return self.state.time

    @property
    def on_ground(self) -> bool:
        """Wheels on the runway."""
        return is_on_ground(self.state)

    @property
    def crashed(self) -> bool:
        """Crash latched; the state is frozen until reset."""
        return self._reporter.crashed

    def environment(self) -> Environment:
        """Air data at the current position."""
        return self._atmosphere.at_altitude(self.state.altitude, self._wind)

    def _applied(self) -> ControlCommand:
        c = self.state.controls
        return ControlCommand(throttle=c.throttle, pitch=c.pitch, roll=c.roll, yaw=c.yaw)

    def _measure(self, environment: Environment) -> FlightMeasurements:
        return FlightMeasurements(
            altitude=self.state.altitude,
            indicated_airspeed=indicated_airspeed(self.state.airspeed, environment),
            heading=self.state.heading,
            roll=self.state.roll,
            vertical_speed=self.state.vertical_speed(self._wind),
        )

    def _refresh(self) -> None:
        """Recompute forces for the current state without stepping."""
        env = self.environment()
        on_ground = is_on_ground(self.state)
        forces, aero = compute_forces(
            self.config, self.state, env, self.mass, on_ground, self.state.fuel
        )
        self._diagnostics = Diagnostics(
            forces=forces, aero=aero, environment=env, mass=self.mass, on_ground=on_ground
        )

    # -------------------------------------------------------------------------
    # Stepping
    # -------------------------------------------------------------------------

    @beartype
    def update(
        self,
        inputs: ControlInputs | Mapping | None = None,
        dt: float | None = None,
    ) -> StateSnapshot:
        """Apply inputs and advance the simulation.

        Args:
            inputs: Control inputs, as ``ControlInputs`` or a mapping with
                throttle/pitch/roll/yaw and optional reset/autopilot/targets
            dt: Frame time [s]; None runs exactly one fixed step

        Returns:
            Snapshot after the update
        """
        if isinstance(inputs, Mapping):
            inputs = ControlInputs.from_mapping(inputs)
        if inputs is None:
            inputs = ControlInputs()

        if inputs.reset:
            self.reset()
            return self.get_aircraft_state()

        if inputs.autopilot is not None:
            self.set_autopilot(inputs.autopilot)
        if inputs.targets:
            self.update_autopilot_targets(inputs.targets)
        self._set_manual_command(inputs)

        for _ in range(self._steps_for(dt)):
            if self.crashed:
                break
            self._step(self.sim_config.fixed_dt)

        return self.get_aircraft_state()

    def _set_manual_command(self, inputs: ControlInputs) -> None:
        applied = self._applied()
        values = {}
        for name in CHANNELS:
            raw = getattr(inputs, name)
            if raw is None:
                values[name] = getattr(self._command, name)
            elif not math.isfinite(raw):
                logger.warning("Non-finite %s input ignored", name)
                values[name] = getattr(applied, name)
            else:
                values[name] = raw
        self._command = clamp_manual(ControlCommand(**values), self.sim_config.limits)

    def _steps_for(self, dt: float | None) -> int:
        """Whole fixed steps contained in this frame."""
        if dt is None:
            return 1
        if not math.isfinite(dt) or dt < 0.0:
            logger.warning("Invalid frame time %r ignored", dt)
            return 0

        cfg = self.sim_config
        if dt > cfg.max_frame_dt:
            logger.debug("Frame time %.3f s clamped to %.3f s", dt, cfg.max_frame_dt)
            dt = cfg.max_frame_dt

        self._accumulator += dt
        steps = 0
        while self._accumulator >= cfg.fixed_dt - STEP_EPSILON and steps < cfg.max_substeps:
            self._accumulator -= cfg.fixed_dt
            steps += 1
        if self._accumulator >= cfg.fixed_dt:
            logger.debug("Substep limit reached, dropping %.3f s", self._accumulator)
            self._accumulator = 0.0
        return steps

    def _step(self, dt: float) -> None:
        """One fixed integration step."""
        state = self.state
        env = self.environment()
        on_ground = is_on_ground(state)
        mass = self.mass

        # Controls
        current = self._applied()
        command = self._command
        if self.autopilot.engaged:
            command = clamp_manual(
                self.autopilot.compute(self._measure(env), current, dt),
                self.sim_config.limits,
            )
        shaped = self._limiter.shape(command, current, dt)
        for name in CHANNELS:
            setattr(state.controls, name, getattr(shaped, name))

        # Forces
        forces, aero = compute_forces(self.config, state, env, mass, on_ground, state.fuel)

        # Integration
        climb_rate = state.vertical_speed(self._wind)
        new = integrate(
            state,
            forces.total_force,
            forces.total_moment,
            mass,
            self.config.inertia,
            dt,
            damping=self._damping,
            wind=self._wind,
            max_rate=self.sim_config.max_rate,
        )

        # Fuel
        if state.fuel > 0.0:
            burned = fuel_flow(self.config, float(forces.thrust[0])) * dt
            new.fuel = max(state.fuel - burned, 0.0)
            if new.fuel == 0.0:
                logger.warning("Fuel exhausted at t=%.1f s", new.time)

        touchdown_rate = climb_rate if state.altitude > 0.0 and new.altitude <= 0.0 else None

        self.state = new
        self._diagnostics = Diagnostics(
            forces=forces, aero=aero, environment=env, mass=mass, on_ground=on_ground
        )
        self._reporter.monitor(
            new, self.config, env, forces, mass, is_on_ground(new), dt, touchdown_rate
        )
        if self.sim_config.record_history:
            self._history.append(self.get_aircraft_state())

    # -------------------------------------------------------------------------
    # Reporting
    # -------------------------------------------------------------------------

    @beartype
    def get_aircraft_state(self) -> StateSnapshot:
        """Snapshot of the current state without advancing."""
        d = self._diagnostics
        return self._reporter.report(
            self.state,
            self.config,
            self.environment(),
            d.forces,
            d.aero,
            is_on_ground(self.state),
            self.mass,
            self.get_autopilot_status(),
        )

    def get_history(self) -> FlightRecord:
        """Recorded snapshots (empty unless ``record_history`` is set)."""
        return FlightRecord(snapshots=list(self._history))

    def diagnostics(self) -> Diagnostics:
        """Forces and aerodynamic internals of the last step."""
        return self._diagnostics

    @beartype
    def calculate_aerodynamic_forces(self) -> AeroResult:
        """Aerodynamic forces for the current state."""
        return aerodynamic_forces(
            self.config, self.state, self.environment(), self.mass, self.on_ground
        )

    @beartype
    def calculate_propulsion_forces(self) -> NDArray[np.float64]:
        """Thrust vector for the current state [N]."""
        return propulsion_forces(
            self.config, self.state.controls.throttle, self.environment(), self.state.fuel
        )

    @beartype
    def calculate_gravitational_forces(self) -> NDArray[np.float64]:
        """Weight vector in the body frame for the current state [N]."""
        return gravitational_forces(self.mass, self.state.pitch)

    # -------------------------------------------------------------------------
    # Autopilot
    # -------------------------------------------------------------------------

    @beartype
    def set_autopilot(self, enabled: bool) -> None:
        """Engage or disengage the autopilot.

        Engaging holds the current altitude, airspeed and heading.
        Disengaging leaves the controls where the autopilot last put them.
        """
        if enabled and not self.autopilot.engaged:
            self.autopilot.engage(self._measure(self.environment()))
        elif not enabled and self.autopilot.engaged:
            self.autopilot.disengage()
            self._command = self._applied()

    @beartype
    def update_autopilot_targets(self, targets: Mapping) -> None:
        """Change any of the altitude [m], speed [m/s] and heading [deg] targets."""
        def pick(key: str) -> float | None:
            value = targets.get(key)
            return None if value is None else sanitize(value, math.nan)

        self.autopilot.update_targets(
            altitude=pick("altitude"),
            speed=pick("speed"),
            heading=pick("heading"),
        )

    @beartype
    def get_autopilot_status(self) -> AutopilotStatus:
        """Read-only autopilot status."""
        return self.autopilot.status()

    @beartype
    def tune_pid(
        self,
        loop: str,
        kp: float | None = None,
        ki: float | None = None,
        kd: float | None = None,
    ) -> PIDGains:
        """Change the gains of one autopilot loop ("altitude", "speed" or "heading").

        Raises:
            ValueError: If the loop name is unknown
            TypeError: If the autopilot cannot be tuned
        """
        tune = getattr(self.autopilot, "tune", None)
        if tune is None:
            raise TypeError(f"{type(self.autopilot).__name__} does not support tuning")
        return tune(loop, kp=kp, ki=ki, kd=kd)

    # -------------------------------------------------------------------------
    # Discrete controls
    # -------------------------------------------------------------------------

    @beartype
    def set_flaps(self, detent: FlapDetent | int | float) -> FlapDetent:
        """Move the flap lever to the nearest detent.

        Returns:
            Detent selected; non-finite values leave the flaps unchanged
        """
        if not math.isfinite(detent):
            logger.warning("Invalid flap setting %r ignored", detent)
            return self.state.controls.flaps
        self.state.controls.flaps = FlapDetent.nearest(float(detent))
        self._refresh()
        return self.state.controls.flaps

    @beartype
    def set_air_brakes(self, position: AirBrake | bool | int | float) -> AirBrake:
        """Extend (>= 0.5) or retract the speed brakes."""
        if not math.isfinite(position):
            logger.warning("Invalid air brake setting %r ignored", position)
            return self.state.controls.air_brakes
        extended = float(position) >= 0.5
        self.state.controls.air_brakes = AirBrake.EXTENDED if extended else AirBrake.RETRACTED
        self._refresh()
        return self.state.controls.air_brakes

    @beartype
    def set_gear(self, down: bool) -> bool:
        """Lower or raise the landing gear.

        Returns:
            False if retraction was refused because the aircraft is on the ground
        """
        if not down and self.on_ground:
            logger.warning("Gear retraction refused on the ground")
            return False
        self.state.controls.gear_down = down
        self._refresh()
        return True

    # -------------------------------------------------------------------------
    # Initial conditions
    # -------------------------------------------------------------------------

    @beartype
    def set_initial_conditions(
        self,
        altitude: float = 0.0,
        airspeed: float = 0.0,
        heading: float = 0.0,
        pitch: float | None = None,
        throttle: float | None = None,
        fuel: float | None = None,
    ) -> StateSnapshot:
        """Restart from a new flight condition.

        Airborne starts are wings level with zero flight path angle. Without
        an explicit pitch the condition is trimmed, and the trim throttle is
        used unless one is given.

        Args:
            altitude: Altitude [m]; 0 with zero airspeed parks on the runway
            airspeed: True airspeed [m/s]
            heading: Heading [deg]
            pitch: Pitch, equal to the angle of attack [rad]
            throttle: Throttle (0-1)
            fuel: Fuel on board [kg]; defaults to full tanks

        Returns:
            Snapshot of the new initial state
        """
        fuel = self.config.fuel_weight if fuel is None else max(fuel, 0.0)

        if altitude <= 0.0 and airspeed <= 0.0:
            state = RigidBodyState.on_runway(heading=heading, fuel=fuel)
            if throttle is not None:
                state.controls.throttle = float(np.clip(throttle, 0.0, 1.0))
        else:
            alpha = pitch
            if alpha is None:
                mass = self.config.empty_weight + self.config.payload_weight + fuel
                trim = trim_level_flight(
                    self.config, altitude, airspeed, mass=mass, atmosphere=self._atmosphere
                )
                alpha = trim.alpha
                if throttle is None:
                    throttle = trim.throttle
            state = RigidBodyState.level_flight(
                altitude=altitude,
                airspeed=airspeed,
                heading=heading,
                angle_of_attack=alpha,
                throttle=float(np.clip(throttle or 0.0, 0.0, 1.0)),
                fuel=fuel,
            )
            state.controls.gear_down = altitude <= 0.0

        self.autopilot.disengage()
        self._start_from(state)
        logger.info(
            "Initial conditions: alt=%.0f m, TAS=%.1f m/s, heading=%.0f deg",
            altitude, airspeed, heading,
        )
        return self.get_aircraft_state()

    @beartype
    def reset(self) -> None:
        """Return to the initial conditions; the autopilot is disengaged."""
        self.autopilot.disengage()
        self._start_from(self._initial)
        logger.info("Simulation reset")
