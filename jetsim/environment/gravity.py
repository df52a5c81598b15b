"""Gravitational force on the airframe.

Flat-earth constant gravity, resolved into the body frame through the pitch
angle only. Bank does not redistribute weight between the body Y and Z
axes in this model; coordinated turns are produced by the Euler-angle
kinematics instead.

Body axes are X forward, Y right, Z down, so level flight carries the full
weight along +Z.

Example:
    >>> from jetsim.environment import gravitational_forces
    >>>
    >>> f = gravitational_forces(mass=63000.0, pitch=np.radians(5.0))
    >>> f[0]  # Component pulling back along the nose
    -53848.9...
"""

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from jetsim.environment.atmosphere import G0

# =============================================================================
# Gravity
# =============================================================================


@beartype
def weight(mass: float) -> float:
    """Weight of a mass at standard gravity [N]."""
    return mass * G0


@beartype
def gravitational_forces(mass: float, pitch: float) -> NDArray[np.float64]:
    """Weight vector in the body frame.

    Args:
        mass: Aircraft mass [kg]
        pitch: Pitch angle theta [rad]

    Returns:
        Body-frame force [Fx, Fy, Fz] [N]
    """
    w = weight(mass)
    return np.array([-w * np.sin(pitch), 0.0, w * np.cos(pitch)])
