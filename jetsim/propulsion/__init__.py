"""Propulsion models.

Example:
    >>> from jetsim.propulsion import propulsion_forces, fuel_flow
"""

from jetsim.propulsion.thrust import (
    fuel_flow,
    propulsion_forces,
    thrust,
)

__all__ = [
    "fuel_flow",
    "propulsion_forces",
    "thrust",
]
