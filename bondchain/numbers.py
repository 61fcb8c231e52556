"""
Ledger Number Conversions

The ledger stores every amount as an integer in the token's base unit.
Humans read decimals. This module is the only place that crosses that line.

RULES:
1. Raw amounts are int, always. Never float.
2. Decimal conversion is exact: a local context wide enough for uint256
   means no rounding ever happens on the way in or out.
3. Identifiers (question ids, answer ids, history hashes) are 0x-prefixed
   lowercase 32-byte hex strings.
"""

from decimal import Context, Decimal, localcontext
from typing import Union

# uint256 has 78 decimal digits; leave room for the fractional part
_EXACT = Context(prec=100)

DEFAULT_DECIMALS = 18

NULL_HASH = "0x" + "00" * 32


def null_hash() -> str:
    """The "no prior history" sentinel."""
    return NULL_HASH


def is_null_hash(value: Union[str, bytes, None]) -> bool:
    if value is None:
        return True
    return to_bytes32_hex(value) == NULL_HASH


def to_bytes32_hex(value: Union[str, bytes, int]) -> str:
    """
    Normalize a bytes32 value to 0x-prefixed lowercase hex.

    Accepts raw bytes (as returned by web3), hex strings with or without
    prefix, and ints (answers are often small integers).
    """
    if isinstance(value, (bytes, bytearray)):
        if len(value) > 32:
            raise ValueError(f"bytes32 value too long: {len(value)} bytes")
        return "0x" + bytes(value).rjust(32, b"\x00").hex()

    if isinstance(value, bool):
        raise ValueError("bool is not a bytes32 value")

    if isinstance(value, int):
        if value < 0 or value >= 1 << 256:
            raise ValueError(f"int out of bytes32 range: {value}")
        return "0x" + format(value, "064x")

    if isinstance(value, str):
        raw = value[2:] if value[:2].lower() == "0x" else value
        if len(raw) > 64:
            raise ValueError(f"bytes32 hex too long: {value}")
        int(raw or "0", 16)  # validates hex
        return "0x" + raw.lower().rjust(64, "0")

    raise ValueError(f"Cannot convert {type(value).__name__} to bytes32")


def from_decimals(amount: int, decimals: int = DEFAULT_DECIMALS) -> Decimal:
    """
    Convert a raw base-unit amount to a Decimal.

    from_decimals(10**18) == Decimal("1")
    """
    with localcontext(_EXACT):
        return Decimal(int(amount)) / (Decimal(10) ** decimals)


def to_smart_contract_decimals(
    amount: Union[Decimal, int, str],
    decimals: int = DEFAULT_DECIMALS,
) -> int:
    """
    Convert a human amount to the raw base unit the contract expects.

    Raises ValueError if the amount has more precision than the token
    supports or is negative.
    """
    if isinstance(amount, float):
        raise ValueError("Floats are not accepted for token amounts; use Decimal or str")

    with localcontext(_EXACT):
        scaled = Decimal(amount) * (Decimal(10) ** decimals)
        if scaled != scaled.to_integral_value():
            raise ValueError(
                f"Amount {amount} has more than {decimals} decimal places"
            )
        if scaled < 0:
            raise ValueError(f"Amount must be non-negative, got {amount}")
        return int(scaled)
