"""
Formatting utilities.
"""

from typing import Union

Number = Union[int, float]


def format_currency(amount: Number, currency: str = "PKR") -> str:
    """
    Format an amount as currency.

    Whole amounts are shown without decimals; fractional amounts keep two.

    Args:
        amount: The amount in whole units (e.g., rupees, not paisa).
        currency: Currency code (default PKR).

    Returns:
        Formatted currency string.
    """
    symbols = {
        "GBP": "£",
        "USD": "$",
        "EUR": "€",
    }
    symbol = symbols.get(currency, currency + " ")
    sign = "-" if amount < 0 else ""
    magnitude = abs(amount)
    if float(magnitude).is_integer():
        return f"{sign}{symbol}{int(magnitude):,}"
    return f"{sign}{symbol}{magnitude:,.2f}"


def format_percent(value: float, decimals: int = 1) -> str:
    """
    Format a number as a percentage.

    Args:
        value: The percentage value.
        decimals: Number of decimal places.

    Returns:
        Formatted percentage string.
    """
    return f"{value:.{decimals}f}%"
