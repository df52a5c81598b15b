"""Aircraft configuration: static airframe, engine and mass parameters.

A configuration is fixed for the whole session. Direct construction is
strict (``ValueError`` on nonsense), while ``AircraftConfig.from_dict``
is forgiving: it merges a partial, possibly hand-written mapping over the
defaults and replaces anything unusable with the default value, so a
simulator can always be built from whatever a loader hands it.

Defaults describe a twin-engine narrow-body transport.

Example:
    >>> from jetsim.vehicle import AircraftConfig
    >>>
    >>> config = AircraftConfig.from_dict({"wingArea": 122.6, "fuelWeight": "oops"})
    >>> config.wing_area
    122.6
    >>> config.fuel_weight  # Garbage falls back to the default
    20000.0
    >>> config.mass
    63000.0
"""

import json
import logging
import math
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from pathlib import Path

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from jetsim.environment.atmosphere import G0

logger = logging.getLogger(__name__)


# =============================================================================
# Per-Axis Values
# =============================================================================


@beartype
@dataclass(frozen=True)
class AxisValues:
    """A value per body axis.

    Attributes:
        roll: About body X
        pitch: About body Y
        yaw: About body Z
    """
    roll: float
    pitch: float
    yaw: float

    def as_array(self) -> NDArray[np.float64]:
        """Values as [roll, pitch, yaw]."""
        return np.array([self.roll, self.pitch, self.yaw])


# =============================================================================
# Aircraft Configuration
# =============================================================================

# Validation rules per field
_POSITIVE = "positive"
_NON_NEGATIVE = "non-negative"
_FRACTION = "fraction"
_FINITE = "finite"

_RULES: dict[str, str] = {
    "wing_area": _POSITIVE,
    "wing_span": _POSITIVE,
    "max_lift_coefficient": _POSITIVE,
    "lift_curve_slope": _POSITIVE,
    "zero_lift_drag_coefficient": _POSITIVE,
    "induced_drag_factor": _NON_NEGATIVE,
    "max_thrust_per_engine": _NON_NEGATIVE,
    "empty_weight": _POSITIVE,
    "fuel_weight": _NON_NEGATIVE,
    "payload_weight": _NON_NEGATIVE,
    "side_force_coefficient": _NON_NEGATIVE,
    "lift_blend": _FRACTION,
    "trim_offset": _FINITE,
    "aerodynamic_center": _FRACTION,
    "center_of_gravity": _FRACTION,
    "trim_authority": _FRACTION,
    "elevator_effectiveness": _NON_NEGATIVE,
    "aileron_effectiveness": _NON_NEGATIVE,
    "rudder_effectiveness": _NON_NEGATIVE,
    "control_moment_coefficient": _NON_NEGATIVE,
    "gear_drag_coefficient": _NON_NEGATIVE,
    "thrust_lapse_exponent": _NON_NEGATIVE,
    "stall_speed": _POSITIVE,
    "specific_fuel_consumption": _NON_NEGATIVE,
    "max_angular_rate": _POSITIVE,
}


def _satisfies(value: float, rule: str) -> bool:
    if not math.isfinite(value):
        return False
    if rule == _POSITIVE:
        return value > 0
    if rule == _NON_NEGATIVE:
        return value >= 0
    if rule == _FRACTION:
        return 0.0 <= value <= 1.0
    return True


def _to_number(value: object) -> float | None:
    """Numeric reading of ``value``, or None if it has none."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float, np.integer, np.floating)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _lookup(partial: Mapping, name: str) -> object:
    if name in partial:
        return partial[name]
    return partial.get(_camel(name))


@beartype
@dataclass(frozen=True)
class AircraftConfig:
    """Static aircraft parameters.

    Attributes:
        wing_area: Reference wing area S [m^2]
        wing_span: Wing span b [m]
        max_lift_coefficient: CLmax, clean wing
        lift_curve_slope: dCL/dalpha [1/rad]
        zero_lift_drag_coefficient: CD0
        induced_drag_factor: k in CD = CD0 + k * CL^2
        engine_count: Number of engines
        max_thrust_per_engine: Sea-level static thrust per engine [N]
        control_power: Control moment scale per axis
        moment_of_inertia: Principal moments of inertia [kg*m^2]
        empty_weight: Operating empty mass [kg]
        fuel_weight: Fuel mass at start [kg]
        payload_weight: Payload mass [kg]
        side_force_coefficient: Side force per radian of sideslip
        lift_blend: Weight of the weight-balancing CL term (0-1)
        trim_offset: Incidence added to alpha in the lift curve [rad]
        aerodynamic_center: Aerodynamic center, fraction of mean chord
        center_of_gravity: Center of gravity, fraction of mean chord
        trim_authority: Fraction of the aerodynamic pitching moment
            cancelled by auto-trim (0-1)
        elevator_effectiveness: Z force per unit pitch input, per q*S
        aileron_effectiveness: Y force per unit roll input, per q*S
        rudder_effectiveness: Y force per unit yaw input, per q*S
        control_moment_coefficient: Control moment per unit input, per q*S*c
        gear_drag_coefficient: Delta CD with the gear down
        thrust_lapse_exponent: n in thrust ~ (rho/rho0)^n
        stall_speed: Clean stall speed, indicated [kt]
        specific_fuel_consumption: Fuel flow per unit thrust [kg/(N*s)]
        max_angular_rate: Body rate beyond which the airframe fails [rad/s]
    """
    wing_area: float = 125.0
    wing_span: float = 35.8
    max_lift_coefficient: float = 1.4
    lift_curve_slope: float = 5.7
    zero_lift_drag_coefficient: float = 0.025
    induced_drag_factor: float = 0.04
    engine_count: int = 2
    max_thrust_per_engine: float = 120000.0
    control_power: AxisValues = field(
        default_factory=lambda: AxisValues(roll=1.2, pitch=1.5, yaw=1.0)
    )
    moment_of_inertia: AxisValues = field(
        default_factory=lambda: AxisValues(roll=30000.0, pitch=50000.0, yaw=80000.0)
    )
    empty_weight: float = 35000.0
    fuel_weight: float = 20000.0
    payload_weight: float = 8000.0

    side_force_coefficient: float = 0.1
    lift_blend: float = 0.7
    trim_offset: float = math.radians(2.0)
    aerodynamic_center: float = 0.25
    center_of_gravity: float = 0.15
    trim_authority: float = 1.0
    elevator_effectiveness: float = 0.001
    aileron_effectiveness: float = 0.0005
    rudder_effectiveness: float = 0.0003
    control_moment_coefficient: float = 0.001
    gear_drag_coefficient: float = 0.02
    thrust_lapse_exponent: float = 0.7
    stall_speed: float = 125.0
    specific_fuel_consumption: float = 1.0e-5
    max_angular_rate: float = 3.0

    def __post_init__(self) -> None:
        """Validate parameters."""
        for name, rule in _RULES.items():
            value = getattr(self, name)
            if not _satisfies(value, rule):
                raise ValueError(f"{name} must be {rule}, got {value}")
        if self.engine_count < 1:
            raise ValueError(f"engine_count must be at least 1, got {self.engine_count}")
        for axis in ("roll", "pitch", "yaw"):
            if not _satisfies(getattr(self.moment_of_inertia, axis), _POSITIVE):
                raise ValueError(f"moment_of_inertia.{axis} must be positive")
            if not _satisfies(getattr(self.control_power, axis), _NON_NEGATIVE):
                raise ValueError(f"control_power.{axis} must be non-negative")

    # -------------------------------------------------------------------------
    # Derived quantities
    # -------------------------------------------------------------------------

    @property
    def mass(self) -> float:
        """Gross mass at start [kg]."""
        return self.empty_weight + self.fuel_weight + self.payload_weight

    @property
    def weight(self) -> float:
        """Gross weight at start [N]."""
        return self.mass * G0

    @property
    def mean_chord(self) -> float:
        """Mean aerodynamic chord S/b [m]."""
        return self.wing_area / self.wing_span

    @property
    def max_thrust(self) -> float:
        """Total sea-level static thrust [N]."""
        return self.engine_count * self.max_thrust_per_engine

    @property
    def moment_arm(self) -> float:
        """Distance from CG aft to the aerodynamic center [m]."""
        return (self.aerodynamic_center - self.center_of_gravity) * self.mean_chord

    @property
    def inertia(self) -> NDArray[np.float64]:
        """Principal moments of inertia [Ixx, Iyy, Izz]."""
        return self.moment_of_inertia.as_array()

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    @classmethod
    def from_dict(cls, partial: object = None) -> "AircraftConfig":
        """Build a configuration from a partial mapping.

        Keys may be snake_case or camelCase. Per-axis groups
        (``control_power``, ``moment_of_inertia``) accept ``roll/pitch/yaw``
        or ``x/y/z`` keys. Missing, non-numeric, non-finite and out-of-range
        values fall back to the default. Never raises.

        Args:
            partial: Mapping of overrides (anything else is treated as empty)

        Returns:
            A complete, valid configuration
        """
        if partial is None:
            partial = {}
        if not isinstance(partial, Mapping):
            logger.warning(
                "Aircraft configuration must be a mapping, got %s; using defaults",
                type(partial).__name__,
            )
            partial = {}

        defaults = cls()
        values: dict[str, object] = {}

        for name, rule in _RULES.items():
            default = getattr(defaults, name)
            raw = _lookup(partial, name)
            if raw is None:
                values[name] = default
                continue
            number = _to_number(raw)
            if number is None or not _satisfies(number, rule):
                logger.warning("Invalid %s=%r, using default %s", name, raw, default)
                values[name] = default
            else:
                values[name] = number

        values["engine_count"] = _coerce_engine_count(
            _lookup(partial, "engine_count"), defaults.engine_count
        )
        values["control_power"] = _coerce_axes(
            _lookup(partial, "control_power"), defaults.control_power, _NON_NEGATIVE
        )
        values["moment_of_inertia"] = _coerce_axes(
            _lookup(partial, "moment_of_inertia"), defaults.moment_of_inertia, _POSITIVE
        )
        return cls(**values)

    @classmethod
    def from_json(cls, path: str | Path) -> "AircraftConfig":
        """Load a configuration file written as a JSON object.

        Unreadable files raise (``OSError``, ``json.JSONDecodeError``); the
        contents are then coerced exactly like ``from_dict``.
        """
        with open(path) as f:
            data = json.load(f)
        logger.info("Loaded aircraft configuration from %s", path)
        return cls.from_dict(data)

    def to_dict(self) -> dict:
        """Plain-dict form, suitable for JSON."""
        return asdict(self)


def _coerce_engine_count(raw: object, default: int) -> int:
    if raw is None:
        return default
    number = _to_number(raw)
    if number is None or not math.isfinite(number) or round(number) < 1:
        logger.warning("Invalid engine_count=%r, using default %s", raw, default)
        return default
    return int(round(number))


_AXIS_ALIASES = {"roll": "x", "pitch": "y", "yaw": "z"}


def _coerce_axes(raw: object, default: AxisValues, rule: str) -> AxisValues:
    if raw is None:
        return default
    if not isinstance(raw, Mapping):
        logger.warning("Invalid per-axis value %r, using default %s", raw, default)
        return default

    axes: dict[str, float] = {}
    for axis, alias in _AXIS_ALIASES.items():
        fallback = getattr(default, axis)
        value = raw.get(axis, raw.get(alias))
        number = None if value is None else _to_number(value)
        if number is None or not _satisfies(number, rule):
            if value is not None:
                logger.warning("Invalid %s=%r, using default %s", axis, value, fallback)
            axes[axis] = fallback
        else:
            axes[axis] = number
    return AxisValues(**axes)
