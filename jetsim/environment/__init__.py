"""Environment models for flight simulation.

Provides the standard atmosphere, per-tick air data and gravity.

Example:
    >>> from jetsim.environment import Atmosphere, gravitational_forces
    >>>
    >>> atm = Atmosphere()
    >>> env = atm.at_altitude(3048.0)
    >>> f_grav = gravitational_forces(mass=63000.0, pitch=0.05)
"""

from jetsim.environment.atmosphere import (
    G0,
    RHO0,
    Atmosphere,
    Environment,
    get_atmosphere,
)
from jetsim.environment.gravity import (
    gravitational_forces,
    weight,
)

__all__ = [
    "G0",
    "RHO0",
    "Atmosphere",
    "Environment",
    "get_atmosphere",
    "gravitational_forces",
    "weight",
]
