"""
Centralized parsing helpers for addresses, counts and key indexes.

The CLI must import these helpers rather than re-implement.
"""

from typing import Optional

from baofeng_ctrl.utils.crypto import KEY_COUNT


def parse_int_value(value: Optional[str], label: str = "value") -> Optional[int]:
    """
    Parse an integer from string, supporting multiple formats.

    Accepts:
        - Decimal: "4096"
        - Hex with 0x prefix: "0x1000" or "0X1000"
        - Hex with h suffix: "1000h" or "1000H"

    Returns:
        Parsed integer, or None if value is None or empty.

    Raises:
        ValueError: If value cannot be parsed.
    """
    if value is None:
        return None

    value = value.strip()
    if not value:
        return None

    try:
        if value.lower().startswith("0x"):
            return int(value, 16)
        if value.lower().endswith("h"):
            return int(value[:-1], 16)
        return int(value)
    except ValueError:
        raise ValueError(
            f"Invalid {label} '{value}'. Use decimal (4096), hex (0x1000), or suffix (1000h)."
        )


def parse_address(value: str) -> int:
    """Parse a 16-bit memory address."""
    address = parse_int_value(value, "address")
    if address is None:
        raise ValueError("Address is required")
    if not 0 <= address <= 0xFFFF:
        raise ValueError(f"Address 0x{address:X} out of range (0x0000-0xFFFF)")
    return address


def parse_count(value: str) -> int:
    """Parse a non-negative byte count."""
    count = parse_int_value(value, "count")
    if count is None:
        raise ValueError("Count is required")
    if count < 0:
        raise ValueError(f"Count must not be negative, got {count}")
    return count


def parse_key_index(value: int) -> int:
    """
    Validate a crypt key index.

    Negative values mean "no transform" and are normalized to -1.
    """
    if value < 0:
        return -1
    if value >= KEY_COUNT:
        raise ValueError(f"Key index {value} out of range (0..{KEY_COUNT - 1}, or -1)")
    return value
