import math
from typing import Any, Literal, get_args

Unit = Literal["kg", "piece", "dozen", "liter", "pack"]

UNITS: tuple[str, ...] = get_args(Unit)

_FRACTIONAL_UNITS = ("kg", "liter")
_FRACTIONAL_PRECISION = 3


def step(unit: str) -> float:
    match unit:
        case "kg":
            return 0.25
        case _:
            # dozen-denominated quantities count dozens, not eggs
            return 1


def display_unit(unit: str) -> str:
    match unit:
        case "kg":
            return "kg"
        case "piece":
            return "pcs"
        case "dozen":
            return "dozen"
        case "liter":
            return "L"
        case _:
            return unit


def precision(unit: str) -> int:
    return _FRACTIONAL_PRECISION if unit in _FRACTIONAL_UNITS else 0


def is_fractional(unit: str) -> bool:
    return unit in _FRACTIONAL_UNITS


def normalize(quantity: float, unit: str) -> float:
    """
    Clamps a quantity at zero and rounds it to the unit's precision, so repeated
    stepping never accumulates floating point drift.
    """
    if not math.isfinite(quantity):
        return 0.0
    rounded = round(max(quantity, 0), precision(unit))
    return float(rounded) if is_fractional(unit) else float(int(rounded))


def parse_quantity(raw_value: Any) -> float | None:
    """Parses a typed quantity. Unparsable, non-finite and negative input gives None."""
    try:
        quantity = float(raw_value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(quantity) or quantity < 0:
        return None
    return quantity


def increment(quantity: float, unit: str) -> float:
    return normalize(quantity + step(unit), unit)


def decrement(quantity: float, unit: str) -> float:
    return normalize(quantity - step(unit), unit)


def quantity_text(quantity: float) -> str:
    # fixed point, trailing zeros dropped; never scientific notation
    return f"{quantity:.{_FRACTIONAL_PRECISION}f}".rstrip("0").rstrip(".")


def format_quantity(quantity: float, unit: str) -> str:
    return f"{quantity_text(quantity)} {display_unit(unit)}"
