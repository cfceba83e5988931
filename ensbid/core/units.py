"""
Amount codec - human amount strings to integer base units (wei).

Accepts a decimal quantity with an optional, case-insensitive unit suffix:

    "0.01 Ether"  -> 10_000_000_000_000_000
    "4 GWei"      -> 4_000_000_000
    "1500"        -> 1_500            (no suffix means wei)

Unit names and their sizes are web3's (wei, gwei/shannon, finney, ether, ...).
Everything else (negative values, exponents, unknown suffixes, fractions of a
wei) is rejected with InvalidAmount.
"""

import re
from decimal import Decimal, localcontext

from web3 import Web3

from ensbid.core.errors import InvalidAmount

WEI_PER_GWEI = Web3.to_wei(1, "gwei")
WEI_PER_ETHER = Web3.to_wei(1, "ether")

_AMOUNT_RE = re.compile(r"^\s*(\d+(?:\.\d*)?|\.\d+)\s*([A-Za-z]*)\s*$")


def parse_amount(text: str) -> int:
    """
    Convert a human amount string to integer base units.

    Args:
        text: e.g. "0.01 Ether", "4 GWei", "1000"

    Returns:
        Amount in wei

    Raises:
        InvalidAmount: malformed number, unknown unit, negative value, or a
            value that is not a whole number of wei
    """
    if text is None:
        raise InvalidAmount("No amount supplied")

    match = _AMOUNT_RE.match(text)
    if match is None:
        raise InvalidAmount(f"Invalid amount {text!r}")

    number, unit = match.groups()
    unit = unit.lower() or "wei"
    try:
        factor = Web3.to_wei(1, unit)
    except ValueError:
        raise InvalidAmount(f"Unknown unit {match.group(2)!r} in amount {text!r}")

    # to_wei truncates, so fractions of a wei are caught first
    with localcontext() as ctx:
        ctx.prec = 999
        exact = Decimal(number) * factor
    if exact != exact.to_integral_value():
        raise InvalidAmount(f"Amount {text!r} is not a whole number of wei")

    try:
        return Web3.to_wei(Decimal(number), unit)
    except ValueError as e:
        raise InvalidAmount(f"Invalid amount {text!r}: {e}")


def format_amount(wei: int) -> str:
    """
    Render a base-unit amount for humans.

    Amounts of at least a milliether are shown in Ether, amounts of at least a
    million wei in GWei, everything else in Wei.
    """
    if wei >= Web3.to_wei(1, "milliether"):
        unit, name = "ether", "Ether"
    elif wei >= Web3.to_wei(1, "mwei"):
        unit, name = "gwei", "GWei"
    else:
        return f"{wei} Wei"

    value = Decimal(Web3.from_wei(wei, unit))
    return f"{format(value.normalize(), 'f')} {name}"
