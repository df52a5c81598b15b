"""GNC (Guidance, Navigation, Control) module for the aircraft.

Example:
    >>> from jetsim.gnc.control import PIDAutopilot, PIDController
    >>>
    >>> # Altitude loop on its own
    >>> altitude_loop = PIDController(kp=0.0002, kd=0.003)
    >>>
    >>> # Full three-loop autopilot
    >>> autopilot = PIDAutopilot()
"""

from jetsim.gnc.control import (
    CommandLimiter,
    ControlCommand,
    PIDAutopilot,
    PIDController,
)

__all__ = [
    "CommandLimiter",
    "ControlCommand",
    "PIDAutopilot",
    "PIDController",
]
