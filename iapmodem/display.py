"""Digit conversion and current-reading layout for the segment LCD glass."""

from __future__ import annotations

DOT = 0x8000
"""Flag OR-ed into a character to light the decimal point after it."""
DOUBLE_DOT = 0x4000
"""Flag OR-ed into a character to light the colon after it."""

CURRENT_UNIT = " UA"
"""Unit text shown after a current reading in microamperes."""

_UINT16_MASK = 0xFFFF
_UINT32_MASK = 0xFFFFFFFF
_ZERO = ord("0")


def convert_into_char(number: int) -> tuple[int, ...]:
    """Split an unsigned 32-bit number into five ASCII digit codes.

    The last four codes are the thousands, hundreds, tens and units digits.
    The first holds everything above them; past 9 it is no longer a digit
    and, like the others, is a 16-bit display character.
    """
    if not 0 <= number <= _UINT32_MASK:
        raise ValueError(f"number {number} is not an unsigned 32-bit integer")
    rest, units = divmod(number, 10)
    rest, tens = divmod(rest, 10)
    rest, hundreds = divmod(rest, 10)
    misc, thousands = divmod(rest, 10)
    return tuple(
        ((digit & _UINT16_MASK) + _ZERO) & _UINT16_MASK
        for digit in (misc, thousands, hundreds, tens, units)
    )


def format_current(number: int) -> list[int]:
    """Lay out a current reading as the seven characters sent to the glass.

    With a significant leading digit the decimal point follows the second
    character; otherwise the leading zero is dropped and a colon follows the
    first character. The unit text fills the last three positions.
    """
    text = list(convert_into_char(number))
    if text[0] != _ZERO:
        text[1] |= DOT
    else:
        text[0:4] = [text[1] | DOUBLE_DOT, text[2], text[3], text[4]]
    return text[:4] + [ord(char) for char in CURRENT_UNIT]