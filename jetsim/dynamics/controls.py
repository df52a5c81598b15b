"""Cockpit control positions.

Continuous controls (throttle, elevator, aileron, rudder) are floats; the
flap lever and speed brake handle have fixed detents, each carrying its own
lift and drag increments.

Example:
    >>> from jetsim.dynamics import ControlState, FlapDetent
    >>>
    >>> controls = ControlState(throttle=0.8, flaps=FlapDetent.TAKEOFF)
    >>> controls.flaps.lift_increment
    0.3
"""

from dataclasses import dataclass
from enum import IntEnum

from beartype import beartype

# =============================================================================
# Detents
# =============================================================================


class FlapDetent(IntEnum):
    """Flap lever positions."""

    RETRACTED = 0
    TAKEOFF = 1
    LANDING = 2

    @property
    def lift_increment(self) -> float:
        """Delta CL at this detent."""
        return _FLAP_INCREMENTS[self][0]

    @property
    def drag_increment(self) -> float:
        """Delta CD at this detent."""
        return _FLAP_INCREMENTS[self][1]

    @classmethod
    def nearest(cls, value: float) -> "FlapDetent":
        """Detent closest to a lever reading, clamped to the lever range."""
        index = int(round(value))
        return cls(min(max(index, cls.RETRACTED), cls.LANDING))


# (delta CL, delta CD)
_FLAP_INCREMENTS: dict[FlapDetent, tuple[float, float]] = {
    FlapDetent.RETRACTED: (0.0, 0.0),
    FlapDetent.TAKEOFF: (0.3, 0.015),
    FlapDetent.LANDING: (1.0, 0.07),
}


class AirBrake(IntEnum):
    """Speed brake handle positions."""

    RETRACTED = 0
    EXTENDED = 1

    def increments(self, on_ground: bool) -> tuple[float, float]:
        """(delta CL, delta CD); on the runway they act as ground spoilers."""
        if self is AirBrake.RETRACTED:
            return (0.0, 0.0)
        if on_ground:
            return (-0.2, 0.15)
        return (-0.1, 0.06)


# =============================================================================
# Control State
# =============================================================================


@beartype
@dataclass
class ControlState:
    """Control positions currently applied to the airframe.

    Attributes:
        throttle: Thrust lever, 0 (idle) to 1 (full)
        pitch: Elevator command, positive nose up
        roll: Aileron command, positive right wing down
        yaw: Rudder command, positive nose right
        flaps: Flap detent
        air_brakes: Speed brake handle
        gear_down: Landing gear extended
    """
    throttle: float = 0.0
    pitch: float = 0.0
    roll: float = 0.0
    yaw: float = 0.0
    flaps: FlapDetent = FlapDetent.RETRACTED
    air_brakes: AirBrake = AirBrake.RETRACTED
    gear_down: bool = True

    def copy(self) -> "ControlState":
        """Create a copy."""
        return ControlState(
            throttle=self.throttle,
            pitch=self.pitch,
            roll=self.roll,
            yaw=self.yaw,
            flaps=self.flaps,
            air_brakes=self.air_brakes,
            gear_down=self.gear_down,
        )
