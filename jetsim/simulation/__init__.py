"""Simulation module for aircraft flight simulation.

Provides the fixed-step simulator, the force summation it feeds the
integrator, level flight trim, and the state reporter that derives the
externally visible snapshot.

Example:
    >>> from jetsim.simulation import FlightSimulator, SimConfig
    >>>
    >>> sim = FlightSimulator.from_trim(altitude=3000.0, airspeed=150.0)
    >>>
    >>> # Render loop at any frame rate
    >>> while running:
    ...     snapshot = sim.update({"throttle": 0.7, "pitch": 0.02}, dt=frame_time)
    ...     if snapshot.crashed:
    ...         break
"""

from jetsim.simulation.forces import (
    ForceBreakdown,
    compute_forces,
)
from jetsim.simulation.reporter import (
    BANK_ANGLE,
    PITCH,
    PULL_UP,
    SINKRATE,
    STALL,
    TERRAIN,
    StateReporter,
    StateSnapshot,
    indicated_airspeed,
    load_factor,
    time_to_impact,
)
from jetsim.simulation.simulator import (
    ControlInputs,
    Diagnostics,
    FlightRecord,
    FlightSimulator,
    SimConfig,
)
from jetsim.simulation.trim import (
    TrimResult,
    trim_level_flight,
)

__all__ = [
    # Forces
    "ForceBreakdown",
    "compute_forces",
    # Reporting
    "BANK_ANGLE",
    "PITCH",
    "PULL_UP",
    "SINKRATE",
    "STALL",
    "TERRAIN",
    "StateReporter",
    "StateSnapshot",
    "indicated_airspeed",
    "load_factor",
    "time_to_impact",
    # Simulator
    "ControlInputs",
    "Diagnostics",
    "FlightRecord",
    "FlightSimulator",
    "SimConfig",
    # Trim
    "TrimResult",
    "trim_level_flight",
]
