"""Aircraft state representation for 6DOF flight simulation.

Frames:
    Earth: North-East-Down, origin on the runway. Altitude is -z.
    Body: X forward (nose), Y right wing, Z down

Attitude is carried as Euler angles (roll phi, pitch theta, yaw psi), each
kept in (-pi, pi]. Body velocity is relative to the air mass, so airspeed is
simply its norm; wind only enters when positions are integrated.

Example:
    >>> from jetsim.dynamics import RigidBodyState
    >>>
    >>> state = RigidBodyState.level_flight(altitude=3048.0, airspeed=150.0)
    >>> print(f"Alt: {state.altitude:.0f} m, TAS: {state.airspeed:.1f} m/s")
"""

import math
from dataclasses import dataclass, field

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from jetsim.dynamics.controls import ControlState

TWO_PI = 2.0 * math.pi

# Largest |theta| allowed in the Euler-rate equations [rad]
PITCH_LIMIT = math.pi / 2 - 0.01


# =============================================================================
# Angle Utilities
# =============================================================================


@beartype
def normalize_angle(angle: float) -> float:
    """Wrap an angle into (-pi, pi].

    Idempotent: values already in range are returned unchanged. A non-finite
    angle is reset to 0.

    Args:
        angle: Angle [rad]

    Returns:
        Equivalent angle in (-pi, pi]
    """
    if not math.isfinite(angle):
        return 0.0
    wrapped = math.remainder(angle, TWO_PI)
    if wrapped <= -math.pi:
        wrapped += TWO_PI
    return wrapped


@beartype
def heading_degrees(yaw: float) -> float:
    """Compass heading in [0, 360) for a yaw angle in radians."""
    heading = math.degrees(yaw) % 360.0
    return 0.0 if heading >= 360.0 else heading


@beartype
def body_to_earth(roll: float, pitch: float, yaw: float) -> NDArray[np.float64]:
    """Direction cosine matrix from body to North-East-Down axes.

    Args:
        roll: phi [rad]
        pitch: theta [rad]
        yaw: psi [rad]

    Returns:
        3x3 rotation matrix R such that v_earth = R @ v_body
    """
    cphi, sphi = np.cos(roll), np.sin(roll)
    cth, sth = np.cos(pitch), np.sin(pitch)
    cpsi, spsi = np.cos(yaw), np.sin(yaw)

    return np.array([
        [cth * cpsi, sphi * sth * cpsi - cphi * spsi, cphi * sth * cpsi + sphi * spsi],
        [cth * spsi, sphi * sth * spsi + cphi * cpsi, cphi * sth * spsi - sphi * cpsi],
        [-sth, sphi * cth, cphi * cth],
    ])


# =============================================================================
# Rigid Body State
# =============================================================================


@beartype
@dataclass
class RigidBodyState:
    """Complete aircraft state.

    Attributes:
        position: Position in the earth frame, North-East-Down [m]
        velocity: Air-relative velocity in the body frame (u, v, w) [m/s]
        orientation: Euler angles (roll, pitch, yaw) [rad]
        angular_rates: Body rates (p, q, r) [rad/s]
        controls: Applied control positions
        fuel: Fuel on board [kg]
        time: Simulation time [s]
    """
    position: NDArray[np.float64]
    velocity: NDArray[np.float64]
    orientation: NDArray[np.float64]
    angular_rates: NDArray[np.float64]
    controls: ControlState = field(default_factory=ControlState)
    fuel: float = 0.0
    time: float = 0.0

    def __post_init__(self) -> None:
        """Validate shapes."""
        self.position = np.asarray(self.position, dtype=np.float64)
        self.velocity = np.asarray(self.velocity, dtype=np.float64)
        self.orientation = np.asarray(self.orientation, dtype=np.float64)
        self.angular_rates = np.asarray(self.angular_rates, dtype=np.float64)

        for name in ("position", "velocity", "orientation", "angular_rates"):
            shape = getattr(self, name).shape
            if shape != (3,):
                raise ValueError(f"{name} must be shape (3,), got {shape}")

    @classmethod
    def on_runway(cls, heading: float = 0.0, fuel: float = 0.0) -> "RigidBodyState":
        """Parked at the origin, engines idle, gear down.

        Args:
            heading: Runway heading [deg]
            fuel: Fuel on board [kg]
        """
        return cls(
            position=np.zeros(3),
            velocity=np.zeros(3),
            orientation=np.array([0.0, 0.0, normalize_angle(math.radians(heading))]),
            angular_rates=np.zeros(3),
            fuel=fuel,
        )

    @classmethod
    def level_flight(
        cls,
        altitude: float,
        airspeed: float,
        heading: float = 0.0,
        angle_of_attack: float = 0.0,
        throttle: float = 0.0,
        fuel: float = 0.0,
    ) -> "RigidBodyState":
        """Wings level with zero flight path angle.

        Pitch equals the angle of attack so the velocity vector is horizontal.

        Args:
            altitude: Altitude [m]
            airspeed: True airspeed [m/s]
            heading: Heading [deg]
            angle_of_attack: Angle of attack [rad]
            throttle: Throttle setting (0-1)
            fuel: Fuel on board [kg]
        """
        return cls(
            position=np.array([0.0, 0.0, -altitude]),
            velocity=np.array([
                airspeed * np.cos(angle_of_attack),
                0.0,
                airspeed * np.sin(angle_of_attack),
            ]),
            orientation=np.array([
                0.0,
                normalize_angle(angle_of_attack),
                normalize_angle(math.radians(heading)),
            ]),
            angular_rates=np.zeros(3),
            controls=ControlState(throttle=throttle, gear_down=False),
            fuel=fuel,
        )

    @property
    def altitude(self) -> float:
        """Altitude above the runway [m]."""
        return float(-self.position[2])

    @property
    def airspeed(self) -> float:
        """True airspeed [m/s]."""
        return float(np.linalg.norm(self.velocity))

    @property
    def roll(self) -> float:
        """Roll angle phi [rad]."""
        return float(self.orientation[0])

    @property
    def pitch(self) -> float:
        """Pitch angle theta [rad]."""
        return float(self.orientation[1])

    @property
    def yaw(self) -> float:
        """Yaw angle psi [rad]."""
        return float(self.orientation[2])

    @property
    def heading(self) -> float:
        """Compass heading [deg]."""
        return heading_degrees(self.yaw)

    def dcm(self) -> NDArray[np.float64]:
        """Body-to-earth rotation matrix."""
        return body_to_earth(self.roll, self.pitch, self.yaw)

    def earth_velocity(
        self, wind: NDArray[np.float64] | None = None
    ) -> NDArray[np.float64]:
        """Ground-referenced velocity, North-East-Down [m/s]."""
        v = self.dcm() @ self.velocity
        if wind is not None:
            v = v + wind
        return v

    def vertical_speed(self, wind: NDArray[np.float64] | None = None) -> float:
        """Rate of climb, positive up [m/s]."""
        return float(-self.earth_velocity(wind)[2])

    def is_finite(self) -> bool:
        """True if every numeric component is finite."""
        arrays = (self.position, self.velocity, self.orientation, self.angular_rates)
        return bool(
            all(np.all(np.isfinite(a)) for a in arrays)
            and math.isfinite(self.fuel)
            and math.isfinite(self.time)
        )

    def copy(self) -> "RigidBodyState":
        """Create a deep copy of the state."""
        return RigidBodyState(
            position=self.position.copy(),
            velocity=self.velocity.copy(),
            orientation=self.orientation.copy(),
            angular_rates=self.angular_rates.copy(),
            controls=self.controls.copy(),
            fuel=self.fuel,
            time=self.time,
        )
