"""Command clamping, sanitization, smoothing and rate limiting.

Every control command, manual or autopilot, goes through the same chain
before it reaches the airframe:

1. ``sanitize``: NaN, infinities and non-numbers fall back to the value
   currently applied, so a bad input never enters the integrator.
2. ``clamp_manual``: the safety limits. Manual commands are clamped on
   entry; autopilot commands are clamped again on the way out, and the
   stock autopilot reads its pitch and roll authority from the same
   ``CommandLimits`` object.
3. ``CommandLimiter.shape``: first-order smoothing toward the command, with
   the per-tick change capped at a maximum rate.

Example:
    >>> from jetsim.gnc.control import CommandLimiter, ControlCommand
    >>>
    >>> limiter = CommandLimiter()
    >>> applied = limiter.shape(ControlCommand(throttle=1.0), current, dt=1 / 60)
"""

import math
from dataclasses import dataclass, field

import numpy as np
from beartype import beartype

# =============================================================================
# Commands and Limits
# =============================================================================


@beartype
@dataclass
class ControlCommand:
    """Continuous control demand for one tick.

    Attributes:
        throttle: Throttle (0-1)
        pitch: Elevator, positive nose up
        roll: Aileron, positive right wing down
        yaw: Rudder, positive nose right
    """
    throttle: float = 0.0
    pitch: float = 0.0
    roll: float = 0.0
    yaw: float = 0.0


CHANNELS = ("throttle", "pitch", "roll", "yaw")


@beartype
@dataclass(frozen=True)
class CommandLimits:
    """Safety limits shared by the manual and autopilot paths.

    Attributes:
        min_pitch: Most nose-down elevator [rad-equivalent]
        max_pitch: Most nose-up elevator [rad-equivalent]
        max_roll: Aileron magnitude limit
        max_yaw: Rudder magnitude limit
        smoothing: Fraction of the remaining command error taken per tick,
            per channel (throttle, pitch, roll, yaw)
        max_rate: Largest change per second, per channel
    """
    min_pitch: float = math.radians(-5.0)
    max_pitch: float = math.radians(15.0)
    max_roll: float = 0.5
    max_yaw: float = 0.3
    smoothing: tuple[float, float, float, float] = (0.5, 0.4, 0.4, 0.3)
    max_rate: tuple[float, float, float, float] = (0.5, 0.5, 1.0, 1.0)


# =============================================================================
# Sanitization and Clamping
# =============================================================================


@beartype
def sanitize(value: object, fallback: float) -> float:
    """Finite float reading of ``value``, else ``fallback``."""
    if isinstance(value, bool) or not isinstance(
        value, (int, float, np.integer, np.floating)
    ):
        return fallback
    number = float(value)
    return number if math.isfinite(number) else fallback


@beartype
def clamp_manual(command: ControlCommand, limits: CommandLimits) -> ControlCommand:
    """Apply the safety limits to a manual or autopilot command.

    Throttle is held to [0, 1]; pitch, roll and yaw to ``limits``.
    """
    return ControlCommand(
        throttle=float(np.clip(command.throttle, 0.0, 1.0)),
        pitch=float(np.clip(command.pitch, limits.min_pitch, limits.max_pitch)),
        roll=float(np.clip(command.roll, -limits.max_roll, limits.max_roll)),
        yaw=float(np.clip(command.yaw, -limits.max_yaw, limits.max_yaw)),
    )


# =============================================================================
# Smoothing and Rate Limiting
# =============================================================================


@beartype
@dataclass
class CommandLimiter:
    """Moves applied controls toward a command, smoothly and rate limited.

    Attributes:
        limits: Smoothing factors and rate limits
    """
    limits: CommandLimits = field(default_factory=CommandLimits)

    @beartype
    def shape(
        self,
        command: ControlCommand,
        current: ControlCommand,
        dt: float,
    ) -> ControlCommand:
        """Controls to apply this tick.

        Args:
            command: Demanded controls
            current: Controls applied last tick
            dt: Time step [s]

        Returns:
            New applied controls
        """
        shaped = {}
        for i, name in enumerate(CHANNELS):
            start = getattr(current, name)
            step = (getattr(command, name) - start) * self.limits.smoothing[i]
            max_step = self.limits.max_rate[i] * dt
            shaped[name] = float(start + np.clip(step, -max_step, max_step))
        return ControlCommand(**shaped)
