"""Integer and string conversions used by the serial command line."""

from __future__ import annotations

TX_TIMEOUT = 0.1
"""Transmit timeout in seconds."""

_UINT32_MASK = 0xFFFFFFFF
_MAX_DIGITS = 10
_MAX_HEX_DIGITS = 9
_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")
_DEC_DIGITS = frozenset("0123456789")
_SUFFIX_SHIFTS = {"k": 10, "K": 10, "m": 20, "M": 20}


def int_to_str(value: int) -> str:
    """Render an unsigned 32-bit integer as decimal text without leading zeros."""
    if not 0 <= value <= _UINT32_MASK:
        raise ValueError(f"value {value} is not an unsigned 32-bit integer")
    return str(value)


def _terminated(text: str | bytes) -> str:
    if isinstance(text, (bytes, bytearray)):
        text = bytes(text).decode("latin-1")
    end = text.find("\0")
    return text if end < 0 else text[:end]


def str_to_int(text: str | bytes) -> int:
    """Parse decimal, ``0x``-prefixed hex, or decimal with a ``k``/``M`` suffix.

    Results wrap to 32 bits. Decimal input holds at most ten digits and hex
    input at most nine; anything else raises ``ValueError``.
    """
    text = _terminated(text)

    if text[:2] in ("0x", "0X"):
        digits = text[2:]
        if len(digits) > _MAX_HEX_DIGITS:
            raise ValueError(f"too many hex digits in {text!r}")
        value = 0
        for char in digits:
            if char not in _HEX_DIGITS:
                raise ValueError(f"invalid hex digit {char!r} in {text!r}")
            value = ((value << 4) + int(char, 16)) & _UINT32_MASK
        return value

    value = 0
    for position, char in enumerate(text[: _MAX_DIGITS + 1]):
        if position > 0 and char in _SUFFIX_SHIFTS:
            # Anything after the suffix is ignored.
            return (value << _SUFFIX_SHIFTS[char]) & _UINT32_MASK
        if char not in _DEC_DIGITS:
            raise ValueError(f"invalid decimal digit {char!r} in {text!r}")
        value = (value * 10 + int(char)) & _UINT32_MASK
    if len(text) > _MAX_DIGITS:
        raise ValueError(f"too many decimal digits in {text!r}")
    return value