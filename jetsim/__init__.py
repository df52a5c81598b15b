"""jetsim - 6DOF flight dynamics for transport aircraft.

A fixed-timestep rigid-body flight model: aerodynamic, propulsive and
gravitational forces, semi-implicit Euler integration, and a three-loop PID
autopilot holding altitude, airspeed and heading.

Example:
    >>> from jetsim import AircraftConfig, FlightSimulator
    >>>
    >>> config = AircraftConfig.from_dict({"maxThrustPerEngine": 110000})
    >>> sim = FlightSimulator.from_trim(config, altitude=3048.0, airspeed=140.0)
    >>> sim.set_autopilot(True)
    >>> sim.update_autopilot_targets({"heading": 90.0})
    >>> snapshot = sim.update(dt=1 / 30)
    >>> print(f"Heading: {snapshot.heading:.0f} deg, IAS: {snapshot.indicated_airspeed_kt:.0f} kt")
"""

__version__ = "0.1.0"

# Aircraft and environment
from jetsim.dynamics import (
    AirBrake,
    ControlState,
    FlapDetent,
    RigidBodyState,
)
from jetsim.environment import (
    Atmosphere,
    Environment,
)

# Control
from jetsim.gnc.control import (
    PIDAutopilot,
    PIDController,
    PIDGains,
)

# Simulation
from jetsim.simulation import (
    ControlInputs,
    FlightSimulator,
    SimConfig,
    StateSnapshot,
    trim_level_flight,
)
from jetsim.vehicle import AircraftConfig

__all__ = [
    "__version__",
    # Aircraft and environment
    "AircraftConfig",
    "AirBrake",
    "Atmosphere",
    "ControlState",
    "Environment",
    "FlapDetent",
    "RigidBodyState",
    # Control
    "PIDAutopilot",
    "PIDController",
    "PIDGains",
    # Simulation
    "ControlInputs",
    "FlightSimulator",
    "SimConfig",
    "StateSnapshot",
    "trim_level_flight",
]
