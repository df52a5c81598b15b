"""Autopilot control laws.

The simulator talks to an autopilot only through the ``ControlLaw``
protocol: it hands over measurements and the currently applied controls and
gets a ``ControlCommand`` back. Any control law satisfying the protocol can
be dropped in without touching the force model or the integrator.

``PIDAutopilot`` is the stock implementation, three independent loops:
- altitude error -> pitch command, clamped to [min_pitch, max_pitch]
- airspeed error -> throttle increment on the current throttle, clamped to
  [min_throttle, max_throttle]
- heading error -> roll command, clamped to +/-max_roll, with a
  proportional rudder term (-0.1 x roll) for turn coordination

Engaging resets every loop and snaps the targets to the current flight
condition, so the first command matches what the aircraft is already doing.

Example:
    >>> from jetsim.gnc.control import PIDAutopilot, FlightMeasurements
    >>>
    >>> ap = PIDAutopilot()
    >>> ap.engage(measurements)
    >>> ap.update_targets(altitude=measurements.altitude + 304.8)  # +1000 ft
    >>> command = ap.compute(measurements, current, dt=1 / 60)
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

import numpy as np
from beartype import beartype

from jetsim.gnc.control.limits import CommandLimits, ControlCommand
from jetsim.gnc.control.pid import PIDController, PIDGains

logger = logging.getLogger(__name__)

LOOPS = ("altitude", "speed", "heading")


# =============================================================================
# Data Types
# =============================================================================


@beartype
@dataclass(frozen=True)
class FlightMeasurements:
    """What the autopilot senses.

    Attributes:
        altitude: Altitude [m]
        indicated_airspeed: Indicated airspeed [m/s]
        heading: Heading [deg, 0-360)
        roll: Bank angle [rad]
        vertical_speed: Rate of climb [m/s]
    """
    altitude: float
    indicated_airspeed: float
    heading: float
    roll: float = 0.0
    vertical_speed: float = 0.0


@beartype
@dataclass
class AutopilotTargets:
    """Hold targets.

    Attributes:
        altitude: Altitude [m]
        speed: Indicated airspeed [m/s]
        heading: Heading [deg, 0-360)
    """
    altitude: float = 0.0
    speed: float = 0.0
    heading: float = 0.0


@beartype
@dataclass(frozen=True)
class AutopilotLimits:
    """Authority limits of the autopilot.

    Pitch and roll authority are read from ``safety``, the same
    ``CommandLimits`` the manual path is clamped to; only the throttle band
    belongs to the autopilot alone.

    Attributes:
        safety: Pitch, roll and yaw limits shared with manual control
        max_throttle: Throttle ceiling
        min_throttle: Throttle floor
    """
    safety: CommandLimits = field(default_factory=CommandLimits)
    max_throttle: float = 0.95
    min_throttle: float = 0.20

    @property
    def max_pitch(self) -> float:
        """Largest nose-up pitch command [rad-equivalent]."""
        return self.safety.max_pitch

    @property
    def min_pitch(self) -> float:
        """Largest nose-down pitch command [rad-equivalent]."""
        return self.safety.min_pitch

    @property
    def max_roll(self) -> float:
        """Roll command magnitude limit."""
        return self.safety.max_roll


@beartype
@dataclass(frozen=True)
class AutopilotStatus:
    """Read-only view of the autopilot.

    Attributes:
        engaged: Autopilot in command
        targets: Current targets (a copy)
        limits: Authority limits
        command: Last command issued, None before the first one
        altitude_error: Last altitude error [m]
        speed_error: Last airspeed error [m/s]
        heading_error: Last heading error [deg]
    """
    engaged: bool
    targets: AutopilotTargets
    limits: AutopilotLimits
    command: ControlCommand | None = None
    altitude_error: float = 0.0
    speed_error: float = 0.0
    heading_error: float = 0.0


@runtime_checkable
class ControlLaw(Protocol):
    """Interface the simulator uses to drive an autopilot."""

    @property
    def engaged(self) -> bool:
        """Autopilot in command."""
        ...

    def engage(self, measurements: FlightMeasurements) -> None:
        """Take command, starting from the current flight condition."""
        ...

    def disengage(self) -> None:
        """Release command."""
        ...

    def update_targets(
        self,
        altitude: float | None = None,
        speed: float | None = None,
        heading: float | None = None,
    ) -> None:
        """Change hold targets."""
        ...

    def compute(
        self,
        measurements: FlightMeasurements,
        current: ControlCommand,
        dt: float,
    ) -> ControlCommand:
        """Controls demanded this tick."""
        ...

    def status(self) -> AutopilotStatus:
        """Read-only status."""
        ...


@beartype
def heading_error(target: float, heading: float) -> float:
    """Shortest signed turn from ``heading`` to ``target`` [deg, -180 to 180)."""
    return (target - heading + 180.0) % 360.0 - 180.0


# =============================================================================
# PID Autopilot
# =============================================================================


@beartype
@dataclass
class PIDAutopilot:
    """Altitude, airspeed and heading hold with one PID loop each.

    Attributes:
        altitude_gains: Altitude loop gains (m -> pitch command)
        speed_gains: Airspeed loop gains (m/s -> throttle increment)
        heading_gains: Heading loop gains (deg -> roll command)
        limits: Authority limits
        max_throttle_step: Largest throttle increment per tick from the speed loop
        yaw_coordination: Rudder per unit roll command, applied as -roll * k
    """
    altitude_gains: PIDGains = field(
        default_factory=lambda: PIDGains(kp=0.0002, ki=0.0, kd=0.003)
    )
    speed_gains: PIDGains = field(
        default_factory=lambda: PIDGains(kp=0.002, ki=0.0, kd=0.005)
    )
    heading_gains: PIDGains = field(
        default_factory=lambda: PIDGains(kp=0.02, ki=0.0005, kd=0.02)
    )
    limits: AutopilotLimits = field(default_factory=AutopilotLimits)
    max_throttle_step: float = 0.05
    yaw_coordination: float = 0.1

    # Internal state
    _altitude_pid: PIDController = field(init=False, repr=False)
    _speed_pid: PIDController = field(init=False, repr=False)
    _heading_pid: PIDController = field(init=False, repr=False)
    _engaged: bool = field(default=False, init=False, repr=False)
    _targets: AutopilotTargets = field(default_factory=AutopilotTargets, init=False, repr=False)
    _last_command: ControlCommand | None = field(default=None, init=False, repr=False)
    _errors: tuple[float, float, float] = field(default=(0.0, 0.0, 0.0), init=False, repr=False)

    def __post_init__(self) -> None:
        """Initialize internal controllers."""
        self._altitude_pid = PIDController.from_gains(
            self.altitude_gains,
            output_limits=(self.limits.min_pitch, self.limits.max_pitch),
        )
        self._speed_pid = PIDController.from_gains(
            self.speed_gains,
            output_limits=(-self.max_throttle_step, self.max_throttle_step),
        )
        self._heading_pid = PIDController.from_gains(
            self.heading_gains,
            output_limits=(-self.limits.max_roll, self.limits.max_roll),
        )

    @property
    def engaged(self) -> bool:
        """Autopilot in command."""
        return self._engaged

    @property
    def targets(self) -> AutopilotTargets:
        """Current targets (a copy)."""
        t = self._targets
        return AutopilotTargets(altitude=t.altitude, speed=t.speed, heading=t.heading)

    @beartype
    def reset(self) -> None:
        """Reset all three loops."""
        self._altitude_pid.reset()
        self._speed_pid.reset()
        self._heading_pid.reset()

    @beartype
    def engage(self, measurements: FlightMeasurements) -> None:
        """Engage, holding the current altitude, airspeed and heading."""
        self.reset()
        self._targets = AutopilotTargets(
            altitude=measurements.altitude,
            speed=measurements.indicated_airspeed,
            heading=measurements.heading,
        )
        self._errors = (0.0, 0.0, 0.0)
        self._engaged = True
        logger.info(
            "Autopilot engaged: alt=%.0f m, speed=%.1f m/s, heading=%.0f deg",
            measurements.altitude,
            measurements.indicated_airspeed,
            measurements.heading,
        )

    @beartype
    def disengage(self) -> None:
        """Disengage; the last applied controls stay where they are."""
        if self._engaged:
            logger.info("Autopilot disengaged")
        self._engaged = False

    @beartype
    def update_targets(
        self,
        altitude: float | None = None,
        speed: float | None = None,
        heading: float | None = None,
    ) -> None:
        """Change hold targets. Non-finite values are ignored.

        Args:
            altitude: Altitude [m]
            speed: Indicated airspeed [m/s]
            heading: Heading [deg], wrapped into [0, 360)
        """
        if altitude is not None and math.isfinite(altitude):
            self._targets.altitude = altitude
        if speed is not None and math.isfinite(speed):
            self._targets.speed = max(speed, 0.0)
        if heading is not None and math.isfinite(heading):
            self._targets.heading = heading % 360.0
        logger.debug("Autopilot targets: %s", self._targets)

    @beartype
    def tune(
        self,
        loop: str,
        kp: float | None = None,
        ki: float | None = None,
        kd: float | None = None,
    ) -> PIDGains:
        """Change the gains of one loop in flight.

        Args:
            loop: "altitude", "speed" or "heading"
            kp, ki, kd: New gains; None keeps the current value

        Returns:
            The loop's gains after the change

        Raises:
            ValueError: If the loop name is unknown
        """
        if loop not in LOOPS:
            raise ValueError(f"Unknown autopilot loop {loop!r}, expected one of {LOOPS}")
        pid: PIDController = getattr(self, f"_{loop}_pid")
        current = pid.gains
        pid.gains = PIDGains(
            kp=current.kp if kp is None else kp,
            ki=current.ki if ki is None else ki,
            kd=current.kd if kd is None else kd,
        )
        return pid.gains

    @beartype
    def compute(
        self,
        measurements: FlightMeasurements,
        current: ControlCommand,
        dt: float,
    ) -> ControlCommand:
        """Controls demanded this tick.

        Args:
            measurements: Current flight condition
            current: Controls applied last tick
            dt: Time step [s]

        Returns:
            Demanded controls; ``current`` unchanged when disengaged
        """
        if not self._engaged:
            return current

        t = self._targets
        altitude_error = t.altitude - measurements.altitude
        speed_error = t.speed - measurements.indicated_airspeed
        turn = heading_error(t.heading, measurements.heading)

        pitch = self._altitude_pid.update(altitude_error, dt)

        throttle_step = self._speed_pid.update(speed_error, dt)
        throttle = float(np.clip(
            current.throttle + throttle_step,
            self.limits.min_throttle,
            self.limits.max_throttle,
        ))

        roll = self._heading_pid.update(turn, dt)
        yaw = -roll * self.yaw_coordination

        command = ControlCommand(throttle=throttle, pitch=pitch, roll=roll, yaw=yaw)
        self._last_command = command
        self._errors = (altitude_error, speed_error, turn)
        return command

    @beartype
    def status(self) -> AutopilotStatus:
        """Read-only status."""
        return AutopilotStatus(
            engaged=self._engaged,
            targets=self.targets,
            limits=self.limits,
            command=self._last_command,
            altitude_error=self._errors[0],
            speed_error=self._errors[1],
            heading_error=self._errors[2],
        )
