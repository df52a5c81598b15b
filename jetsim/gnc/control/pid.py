"""Single-loop PID used by every autopilot channel.

Each loop (altitude, speed, heading) owns one controller. The integrator
is held inside a fixed band so a long saturation, such as a big altitude
change, cannot wind it up. The derivative acts on the error against a
previous error that starts at zero, so a step in the setpoint gives a one
sample kick; the command limiter downstream absorbs it.

Example:
    >>> from jetsim.gnc.control import PIDController
    >>>
    >>> altitude_loop = PIDController(kp=0.0002, kd=0.003, output_limits=(-0.1, 0.25))
    >>> pitch_cmd = altitude_loop.calculate(setpoint=3353.0, measured=3048.0, dt=1 / 60)
"""

from dataclasses import dataclass, field

import numpy as np
from beartype import beartype

# Symmetric band on the accumulated error [error * s]
INTEGRAL_LIMIT = 10.0


@beartype
@dataclass
class PIDGains:
    """Proportional, integral and derivative gains of one loop."""
    kp: float = 1.0
    ki: float = 0.0
    kd: float = 0.0


@beartype
@dataclass
class PIDController:
    """Parallel-form PID with a clamped integrator.

    output = kp * e + ki * sum(e * dt) + kd * (e - e_prev) / dt

    Attributes:
        kp, ki, kd: Loop gains
        output_limits: Saturation applied to the output, or None
        integral_limits: Band the accumulated error is held inside
    """
    kp: float = 1.0
    ki: float = 0.0
    kd: float = 0.0
    output_limits: tuple[float, float] | None = None
    integral_limits: tuple[float, float] = (-INTEGRAL_LIMIT, INTEGRAL_LIMIT)

    _integral: float = field(default=0.0, init=False, repr=False)
    _prev_error: float = field(default=0.0, init=False, repr=False)

    @classmethod
    def from_gains(
        cls,
        gains: PIDGains,
        output_limits: tuple[float, float] | None = None,
    ) -> "PIDController":
        """Build a controller around a gain set."""
        return cls(gains.kp, gains.ki, gains.kd, output_limits)

    @property
    def gains(self) -> PIDGains:
        return PIDGains(self.kp, self.ki, self.kd)

    @gains.setter
    def gains(self, value: PIDGains) -> None:
        self.kp, self.ki, self.kd = value.kp, value.ki, value.kd

    @property
    def integral(self) -> float:
        """Accumulated error, already clamped."""
        return self._integral

    @property
    def previous_error(self) -> float:
        """Last error seen; zero after a reset."""
        return self._prev_error

    def reset(self) -> None:
        """Forget the loop history. The gains stay."""
        self._integral = 0.0
        self._prev_error = 0.0

    @beartype
    def update(self, error: float, dt: float) -> float:
        """Advance the loop by one sample.

        A non-positive ``dt`` returns 0.0 and leaves the loop untouched.

        Args:
            error: setpoint - measurement
            dt: Sample interval [s]

        Returns:
            Controller output, saturated if ``output_limits`` is set
        """
        if dt <= 0:
            return 0.0

        low, high = self.integral_limits
        self._integral = float(np.clip(self._integral + error * dt, low, high))

        rate = (error - self._prev_error) / dt
        self._prev_error = error

        u = self.kp * error + self.ki * self._integral + self.kd * rate
        if self.output_limits is not None:
            u = np.clip(u, *self.output_limits)
        return float(u)

    @beartype
    def calculate(self, setpoint: float, measured: float, dt: float) -> float:
        """Same as ``update(setpoint - measured, dt)``."""
        return self.update(setpoint - measured, dt)
