"""Unit conversion and display formatting using pint.

All internal data is stored in metric (SI) units:
- Mass: kilograms (kg), for animal weights and feed quantities

Display units are controlled by settings.display_units:
- "metric": Display as stored (kg)
- "imperial": Convert to pounds (lb)

Money is stored as a plain number in the farm's currency (settings.currency).
"""

import pint

from porkyfarm.core.config import settings

# Create a unit registry (lazily initialized)
_ureg: pint.UnitRegistry | None = None


def get_ureg() -> pint.UnitRegistry:
    """Get the pint unit registry (lazily initialized)."""
    global _ureg
    if _ureg is None:
        _ureg = pint.UnitRegistry()
    return _ureg


# =============================================================================
# Mass Conversions
# =============================================================================


def kg_to_lb(kg: float) -> float:
    """Convert kilograms to pounds."""
    ureg = get_ureg()
    return (kg * ureg.kilogram).to(ureg.pound).magnitude


def kg_to_display(kg: float) -> tuple[float, str]:
    """Convert kilograms to display units.

    Args:
        kg: Mass in kilograms

    Returns:
        Tuple of (value, unit_symbol) in display units
    """
    if settings.display_units == "imperial":
        return (kg_to_lb(kg), "lb")
    return (kg, "kg")


def format_weight(kg: float | None, decimals: int = 0) -> str:
    """Format an animal weight for display.

    Args:
        kg: Weight in kilograms (None or 0 means not recorded)
        decimals: Number of decimal places

    Returns:
        Formatted string like "180 kg" or "397 lb", or "Not specified"
    """
    if not kg:
        return "Not specified"
    value, unit = kg_to_display(kg)
    return f"{value:.{decimals}f} {unit}"


def format_quantity(kg: float, decimals: int = 1) -> str:
    """Format a feed quantity, trimming a trailing .0."""
    value, unit = kg_to_display(kg)
    text = f"{value:.{decimals}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return f"{text} {unit}"


# =============================================================================
# Money
# =============================================================================


def format_currency(amount: float, currency: str | None = None) -> str:
    """Format a money amount with thousands separators.

    Returns:
        Formatted string like "25 000 FCFA"
    """
    label = currency or settings.currency
    grouped = f"{round(amount):,}".replace(",", " ")
    return f"{grouped} {label}"


def get_weight_unit() -> str:
    """Get the weight unit symbol for current display settings."""
    return "lb" if settings.display_units == "imperial" else "kg"


def is_imperial() -> bool:
    """Check if display units are imperial."""
    return settings.display_units == "imperial"
