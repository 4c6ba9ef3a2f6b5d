"""Money and percentage formatting for answers."""

CURRENCY_SYMBOLS: dict[str, str] = {
    "USD": "$",
    "BDT": "৳",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "ALL": "L",
    "INR": "₹",
    "CAD": "$",
    "AUD": "$",
}


def format_currency(amount: float, currency: str = "USD") -> str:
    """
    Format an amount for display.

    The sign is dropped (templates say "spent" or "owe" instead), thousands
    are separated with commas and two decimals are always shown.
    Unknown currency codes are used verbatim as the prefix.

    >>> format_currency(-1234.5)
    '$1,234.50'
    >>> format_currency(10, "XYZ")
    'XYZ10.00'
    """
    symbol = CURRENCY_SYMBOLS.get(currency, currency)
    return f"{symbol}{abs(amount):,.2f}"


def format_percent(value: float) -> str:
    """One decimal place, e.g. 75.0%."""
    return f"{value:.1f}%"


def progress_bar(percent: float, width: int = 10) -> str:
    """Text progress bar, clamped to [0, 100]."""
    percent = max(0.0, min(100.0, percent))
    filled = int(percent / 100 * width)
    return "█" * filled + "░" * (width - filled)
