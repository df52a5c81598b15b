"""Unit conversion for jetsim.

The physics core works in SI throughout (m, m/s, kg, N, rad). Cockpit-facing
values in the state snapshot are reported in aviation units (ft, kt, ft/min,
degrees), converted through the table in this module.

Example:
    >>> from jetsim.units import convert, meters_to_feet
    >>>
    >>> convert(250.0, "kt", "m/s")
    128.6111...
    >>> meters_to_feet(3048.0)
    10000.0...
"""

import math

from beartype import beartype

# =============================================================================
# Unit Table
# =============================================================================

FOOT = 0.3048        # [m], exact
NAUTICAL_MILE = 1852.0  # [m], exact
POUND_MASS = 0.45359237  # [kg], exact
POUND_FORCE = POUND_MASS * 9.80665  # [N]

# unit -> (quantity, size of one unit in SI)
UNITS: dict[str, tuple[str, float]] = {
    "m": ("length", 1.0),
    "km": ("length", 1000.0),
    "ft": ("length", FOOT),
    "nmi": ("length", NAUTICAL_MILE),
    "m/s": ("speed", 1.0),
    "km/h": ("speed", 1000.0 / 3600.0),
    "ft/s": ("speed", FOOT),
    "ft/min": ("speed", FOOT / 60.0),
    "kt": ("speed", NAUTICAL_MILE / 3600.0),
    "kg": ("mass", 1.0),
    "lbm": ("mass", POUND_MASS),
    "N": ("force", 1.0),
    "kN": ("force", 1000.0),
    "lbf": ("force", POUND_FORCE),
    "rad": ("angle", 1.0),
    "deg": ("angle", math.pi / 180.0),
    "s": ("time", 1.0),
    "min": ("time", 60.0),
}


def _lookup(unit: str) -> tuple[str, float]:
    try:
        return UNITS[unit]
    except KeyError:
        raise ValueError(f"Unknown unit: {unit!r}") from None


@beartype
def convert(value: float | int, from_unit: str, to_unit: str) -> float:
    """Convert a value between units of the same quantity.

    Args:
        value: Magnitude in ``from_unit``
        from_unit: Source unit, e.g. ``"kt"``
        to_unit: Target unit, e.g. ``"m/s"``

    Returns:
        Magnitude in ``to_unit``

    Raises:
        ValueError: If either unit is unknown or the quantities differ
    """
    source_kind, source_size = _lookup(from_unit)
    target_kind, target_size = _lookup(to_unit)
    if source_kind != target_kind:
        raise ValueError(
            f"Cannot convert between different dimensions: {source_kind} and {target_kind}"
        )
    return float(value) * source_size / target_size


# =============================================================================
# Shortcuts
# =============================================================================


@beartype
def meters_to_feet(value: float | int) -> float:
    return convert(value, "m", "ft")


@beartype
def feet_to_meters(value: float | int) -> float:
    return convert(value, "ft", "m")


@beartype
def mps_to_knots(value: float | int) -> float:
    return convert(value, "m/s", "kt")


@beartype
def knots_to_mps(value: float | int) -> float:
    return convert(value, "kt", "m/s")


@beartype
def mps_to_fpm(value: float | int) -> float:
    """Vertical speed in feet per minute."""
    return convert(value, "m/s", "ft/min")
