"""
Derived environmental metrics computed from raw sensor values.

Pure functions, no state:
- heat index (feels-like temperature, Steadman regression)
- dew point (Magnus formula)
- wildfire risk score (0-100 composite of temperature, humidity and gas)

Inputs are not clamped. Callers are expected to pass physically plausible
values (humidity 0-100); dew point refuses humidity <= 0.
"""

import math

from src.core.exceptions import DomainError

# Magnus formula constants
MAGNUS_A = 17.27
MAGNUS_B = 237.7

# Risk factor caps; they sum to exactly 100
TEMP_FACTOR_MAX = 35.0
HUMIDITY_FACTOR_MAX = 35.0
GAS_FACTOR_MAX = 30.0


def celsius_to_fahrenheit(temp_c: float) -> float:
    return temp_c * 9.0 / 5.0 + 32.0


def fahrenheit_to_celsius(temp_f: float) -> float:
    return (temp_f - 32.0) * 5.0 / 9.0


def _clamp(low: float, high: float, value: float) -> float:
    return min(high, max(low, value))


def heat_index(temp_c: float, humidity_pct: float) -> float:
    """
    Heat index ("feels like") in Celsius.

    Converts to Fahrenheit, applies the Steadman regression polynomial and
    converts back. Outside warm, humid conditions the polynomial is only an
    approximation; no clamping is applied.

    Args:
        temp_c: Air temperature in Celsius
        humidity_pct: Relative humidity in percent

    Returns:
        Heat index in Celsius
    """
    t = celsius_to_fahrenheit(temp_c)
    rh = humidity_pct

    hi = (
        -42.379
        + 2.04901523 * t
        + 10.14333127 * rh
        - 0.22475541 * t * rh
        - 6.83783e-3 * t * t
        - 5.481717e-2 * rh * rh
        + 1.22874e-3 * t * t * rh
        + 8.5282e-4 * t * rh * rh
        - 1.99e-6 * t * t * rh * rh
    )

    return fahrenheit_to_celsius(hi)


def dew_point(temp_c: float, humidity_pct: float) -> float:
    """
    Dew point in Celsius using the Magnus formula (a=17.27, b=237.7).

    Raises:
        DomainError: If humidity <= 0 (logarithm undefined) or the
            temperature sits on the formula's singularity
    """
    if humidity_pct <= 0:
        raise DomainError(f"Dew point undefined for humidity {humidity_pct}%")
    if temp_c == -MAGNUS_B:
        raise DomainError(f"Dew point undefined for temperature {temp_c}C")

    alpha = (MAGNUS_A * temp_c) / (MAGNUS_B + temp_c) + math.log(humidity_pct / 100.0)
    denominator = MAGNUS_A - alpha
    if denominator == 0:
        raise DomainError(
            f"Dew point undefined for temperature {temp_c}C, humidity {humidity_pct}%"
        )

    return (MAGNUS_B * alpha) / denominator


def wildfire_risk(temp_c: float, humidity_pct: float, gas_ppm: float) -> int:
    """
    Composite wildfire risk score in [0, 100].

    Three independently clamped factors:
    - temperature: (temp - 20) * 1.75, capped at 35 (high above ~30C)
    - humidity: (80 - humidity) * 0.875, capped at 35 (high below ~40%)
    - gas: gas * 0.06, capped at 30 (high above ~500 ppm)

    The sum is rounded half-up to the nearest integer.
    """
    temp_factor = _clamp(0.0, TEMP_FACTOR_MAX, (temp_c - 20.0) * 1.75)
    humidity_factor = _clamp(0.0, HUMIDITY_FACTOR_MAX, (80.0 - humidity_pct) * 0.875)
    gas_factor = _clamp(0.0, GAS_FACTOR_MAX, gas_ppm * 0.06)

    score = int(math.floor(temp_factor + humidity_factor + gas_factor + 0.5))

    assert 0 <= score <= 100, f"risk score out of range: {score}"
    return score
