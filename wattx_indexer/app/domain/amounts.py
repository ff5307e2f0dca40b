from __future__ import annotations

from decimal import Decimal, InvalidOperation

SATOSHIS_PER_COIN = 10**8


def format_token_amount(amount: str | int, decimals: int) -> str:
    """
    Render a raw integer token amount as a human-readable decimal string.

    Integer long division against 10**decimals; trailing zero fraction digits
    are stripped and a bare integer is returned when the fraction is zero.

        format_token_amount("1500000000000000000", 18) -> "1.5"
        format_token_amount("100", 0) -> "100"
    """
    value = int(amount)
    if decimals < 0:
        raise ValueError("decimals must be non-negative")

    sign = "-" if value < 0 else ""
    whole, frac = divmod(abs(value), 10**decimals)
    if decimals == 0 or frac == 0:
        return f"{sign}{whole}"

    frac_str = str(frac).rjust(decimals, "0").rstrip("0")
    return f"{sign}{whole}.{frac_str}"


def coins_to_satoshis(value: object) -> int:
    """
    Convert a node-reported coin amount (JSON number) into integer base units.

    Goes through str() so that float noise from JSON parsing never leaks into
    the integer result; unparseable input yields 0.
    """
    if value is None:
        return 0
    try:
        return int((Decimal(str(value)) * SATOSHIS_PER_COIN).to_integral_value())
    except (InvalidOperation, ValueError):
        return 0
