from decimal import Decimal

_CURRENCY_SYMBOLS = {
    "MYR": "RM",
    "USD": "$",
}


def format_amount(amount: Decimal | None, currency: str | None) -> str:
    """Render an amount with its currency symbol, e.g. 'RM 84.30'."""
    code = (currency or "").upper()
    symbol = _CURRENCY_SYMBOLS.get(code, code or "RM")
    value = amount if amount is not None else Decimal("0")
    return f"{symbol} {value:.2f}"
