"""Control algorithms for the aircraft.

Provides PID loops, the autopilot built from them, and the command limiting
shared by the manual and autopilot paths.
"""

from jetsim.gnc.control.autopilot import (
    AutopilotLimits,
    AutopilotStatus,
    AutopilotTargets,
    ControlLaw,
    FlightMeasurements,
    PIDAutopilot,
    heading_error,
)
from jetsim.gnc.control.limits import (
    CommandLimiter,
    CommandLimits,
    ControlCommand,
    clamp_manual,
    sanitize,
)
from jetsim.gnc.control.pid import (
    PIDController,
    PIDGains,
)

__all__ = [
    # Autopilot
    "AutopilotLimits",
    "AutopilotStatus",
    "AutopilotTargets",
    "ControlLaw",
    "FlightMeasurements",
    "PIDAutopilot",
    "heading_error",
    # Limits
    "CommandLimiter",
    "CommandLimits",
    "ControlCommand",
    "clamp_manual",
    "sanitize",
    # PID
    "PIDController",
    "PIDGains",
]
