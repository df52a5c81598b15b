"""Standard atmosphere and the air data the force model reads each tick.

The 1976 standard is tabulated by geopotential height as seven layers, each
either isothermal or with a constant temperature gradient. Pressure at the
base of every layer is integrated once when the model is built; any altitude
is then one table lookup plus a closed-form expression.

Airliners never leave the first two layers (troposphere, tropopause), but
the table runs to 86 km so the model stays defined for whatever altitude
the integrator produces.

Example:
    >>> from jetsim.environment import Atmosphere
    >>>
    >>> atm = Atmosphere()
    >>> env = atm.at_altitude(10668.0)  # FL350
    >>> print(f"Density: {env.density:.4f} kg/m^3")
    >>> print(f"sigma: {env.density_ratio:.3f}")
"""

import math
from dataclasses import dataclass, field

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

# =============================================================================
# Constants
# =============================================================================

T0 = 288.15       # sea level temperature [K]
P0 = 101325.0     # sea level pressure [Pa]
RHO0 = 1.225      # sea level density [kg/m^3]

R_AIR = 287.05287   # dry air gas constant [J/(kg K)]
GAMMA_AIR = 1.4
G0 = 9.80665        # standard gravity [m/s^2]

# Earth radius used for geopotential height [m]
R_EARTH = 6356766.0

# Base geopotential height [m], base temperature [K], gradient [K/m]
LAYERS: tuple[tuple[float, float, float], ...] = (
    (0.0, 288.15, -0.0065),
    (11000.0, 216.65, 0.0),
    (20000.0, 216.65, 0.0010),
    (32000.0, 228.65, 0.0028),
    (47000.0, 270.65, 0.0),
    (51000.0, 270.65, -0.0028),
    (71000.0, 214.65, -0.0020),
)

# Top of the table [m] and the temperature assumed above it [K]
MAX_ALTITUDE = 86000.0
T_ABOVE_TABLE = 186.87


def _pressure_ratio(t_base: float, gradient: float, dh: float) -> float:
    """p / p_base after climbing dh metres through one layer."""
    if gradient == 0.0:
        return math.exp(-G0 * dh / (R_AIR * t_base))
    t_top = t_base + gradient * dh
    return (t_top / t_base) ** (-G0 / (R_AIR * gradient))


# =============================================================================
# Environment
# =============================================================================


@beartype
@dataclass(frozen=True)
class Environment:
    """Air data at the aircraft's position for one tick.

    Read by the force model, never mutated by it.

    Attributes:
        altitude: Geometric altitude [m]
        temperature: Static temperature [K]
        pressure: Static pressure [Pa]
        density: Air density [kg/m^3]
        speed_of_sound: Speed of sound [m/s]
        wind: Wind velocity in the North-East-Down frame [m/s]
    """
    altitude: float
    temperature: float
    pressure: float
    density: float
    speed_of_sound: float
    wind: NDArray[np.float64] = field(default_factory=lambda: np.zeros(3))

    @property
    def density_ratio(self) -> float:
        """Density relative to sea level (sigma)."""
        return self.density / RHO0

    @classmethod
    def sea_level(cls) -> "Environment":
        """Standard sea-level day, still air."""
        return cls(
            altitude=0.0,
            temperature=T0,
            pressure=P0,
            density=RHO0,
            speed_of_sound=math.sqrt(GAMMA_AIR * R_AIR * T0),
        )


# =============================================================================
# Atmosphere Model
# =============================================================================


@beartype
class Atmosphere:
    """1976 standard day, sea level to 86 km.

    Below the runway the sea-level values are returned; above the table the
    pressure is zero.

    Example:
        >>> atm = Atmosphere()
        >>> rho = atm.density(3048.0)  # 10,000 ft
        >>> env = atm.at_altitude(3048.0, wind=np.array([0.0, 10.0, 0.0]))
    """

    def __init__(self) -> None:
        base = [P0]
        for (h0, t_base, gradient), (h1, _, _) in zip(LAYERS, LAYERS[1:]):
            base.append(base[-1] * _pressure_ratio(t_base, gradient, h1 - h0))
        self._base_pressures = tuple(base)

    def _static(self, altitude: float) -> tuple[float, float]:
        """(temperature [K], pressure [Pa]) at a geometric altitude above 0."""
        if altitude > MAX_ALTITUDE:
            return T_ABOVE_TABLE, 0.0

        h = R_EARTH * altitude / (R_EARTH + altitude)
        index = next(i for i in reversed(range(len(LAYERS))) if h >= LAYERS[i][0])
        h0, t_base, gradient = LAYERS[index]
        dh = h - h0
        pressure = self._base_pressures[index] * _pressure_ratio(t_base, gradient, dh)
        return t_base + gradient * dh, pressure

    @beartype
    def temperature(self, altitude: float) -> float:
        """Static temperature [K] at a geometric altitude [m]."""
        if altitude <= 0:
            return T0
        return self._static(altitude)[0]

    @beartype
    def pressure(self, altitude: float) -> float:
        """Static pressure [Pa] at a geometric altitude [m]."""
        if altitude <= 0:
            return P0
        return self._static(altitude)[1]

    @beartype
    def density(self, altitude: float) -> float:
        """Air density [kg/m^3].

        Sea level returns exactly ``RHO0`` so that indicated airspeed equals
        true airspeed on the runway.
        """
        if altitude <= 0:
            return RHO0
        temperature, pressure = self._static(altitude)
        return pressure / (R_AIR * temperature)

    @beartype
    def speed_of_sound(self, altitude: float) -> float:
        """a = sqrt(gamma R T) [m/s]."""
        return math.sqrt(GAMMA_AIR * R_AIR * self.temperature(altitude))

    @beartype
    def at_altitude(
        self,
        altitude: float,
        wind: NDArray[np.float64] | None = None,
    ) -> Environment:
        """Bundle all air data at one altitude.

        Args:
            altitude: Geometric altitude [m]
            wind: Wind vector, North-East-Down [m/s]; still air if None

        Returns:
            Environment for this tick
        """
        if altitude <= 0:
            temperature, pressure, density = T0, P0, RHO0
        else:
            temperature, pressure = self._static(altitude)
            density = pressure / (R_AIR * temperature)
        return Environment(
            altitude=float(altitude),
            temperature=temperature,
            pressure=pressure,
            density=density,
            speed_of_sound=math.sqrt(GAMMA_AIR * R_AIR * temperature),
            wind=np.zeros(3) if wind is None else np.asarray(wind, dtype=np.float64),
        )


# One shared model; nothing changes after construction
_shared = Atmosphere()


@beartype
def get_atmosphere() -> Atmosphere:
    """The shared atmosphere instance."""
    return _shared
