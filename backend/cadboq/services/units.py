"""Number rounding and rendering shared by the parser, generator and exporters."""
import math


def round2(value: float) -> float:
    """Round to 2 decimals, halves away from zero (not banker's rounding)."""
    if value < 0:
        return -round2(-value)
    return math.floor(value * 100 + 0.5) / 100


def format_number(value: float) -> str:
    """
    Render a number the way the front-end prints it: whole numbers without a
    trailing ``.0`` (3000.0 → "3000"), everything else in shortest repr.
    """
    value = float(value)
    if math.isfinite(value) and value.is_integer():
        return str(int(value))
    return repr(value)
