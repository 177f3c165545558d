"""A small printf-style formatter with a fixed, predictable set of conversions.

Supported: flags ``0`` and ``-``, a field width, the length modifiers
``hh``, ``h``, ``l``, ``ll``, ``z`` and ``t``, and the conversions ``s``,
``c``, ``p``, ``d``, ``i``, ``o``, ``u``, ``x``, ``X`` and ``%``.
Integer arguments are cut to the width their length modifier names, the way
a 64-bit target passes them. A ``+`` or space flag, a precision or an
unknown conversion ends the output at that point.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

_END = "\0"

# Byte sizes of the integer types behind each length modifier (LP64 target).
_INT_SIZE = 4
_SIZES = {"hh": 1, "h": 2, "l": 8, "ll": 8, "z": 8, "t": 8}

_SIGNED = frozenset("dio")
_INTEGER = frozenset("diouxX")


class _Args:
    def __init__(self, args: tuple[Any, ...]) -> None:
        self._it = iter(args)

    def next(self) -> Any:
        try:
            return next(self._it)
        except StopIteration:
            raise TypeError("not enough arguments for format string") from None


def _digits(value: int, base: int, caps: bool) -> str:
    if base == 10:
        return str(value)
    if base == 16:
        return format(value, "X" if caps else "x")
    return format(value, "o")


def _format_integer(value: int, conversion: str) -> str:
    """Format a 64-bit two's complement value for one conversion."""
    value &= (1 << 64) - 1
    base = 16 if conversion in "xX" else 8 if conversion == "o" else 10
    caps = conversion == "X"
    if conversion in _SIGNED and value >= 1 << 63:
        return "-" + _digits((1 << 64) - value, base, caps)
    return _digits(value, base, caps)


def _read_integer(arg: Any, size: int, signed: bool) -> int:
    bits = 8 * size
    value = int(arg) & ((1 << bits) - 1)
    if signed and value >= 1 << (bits - 1):
        value -= 1 << bits
    return value


def _char(arg: Any) -> str:
    if isinstance(arg, str):
        return arg[:1]
    if isinstance(arg, (bytes, bytearray)):
        return chr(arg[0]) if arg else ""
    return chr(int(arg) & 0xFF)


def _parse_decimal(fmt: str, pos: int) -> tuple[int, int]:
    start = pos
    while pos < len(fmt) and fmt[pos].isdigit() and fmt[pos].isascii():
        pos += 1
    return (int(fmt[start:pos]) if pos > start else 0), pos


def _render(fmt: str, args: tuple[Any, ...]) -> Iterator[str]:
    """Yield the pieces of the formatted output, in order."""
    source = _Args(args)

    def at(index: int) -> str:
        return fmt[index] if index < len(fmt) else _END

    pos = 0
    while True:
        percent = fmt.find("%", pos)
        if percent < 0:
            if pos < len(fmt):
                yield fmt[pos:]
            return
        if percent > pos:
            yield fmt[pos:percent]
        pos = percent + 1

        pad_zero = False
        pad_left = False
        sign = ""
        width = -1
        precision = -1
        size = _INT_SIZE

        while True:
            c = at(pos)
            pos += 1
            if c == _END:
                yield "%"
                return
            if c == "0":
                pad_zero = True
            elif c == "-":
                pad_left = True
            elif c in " +":
                sign = c
            else:
                break

        if c.isdigit() and c.isascii():
            width, pos = _parse_decimal(fmt, pos - 1)
            c = at(pos)
            pos += 1

        if c == ".":
            precision, pos = _parse_decimal(fmt, pos)
            c = at(pos)
            pos += 1

        if c in "hl":
            modifier = c
            if at(pos) == c:
                modifier += c
                pos += 1
            size = _SIZES[modifier]
            c = at(pos)
            pos += 1
        elif c in "zt":
            size = _SIZES[c]
            c = at(pos)
            pos += 1

        if c == "s":
            arg = source.next()
            text = "(null)" if arg is None else str(arg)
        elif c == "c":
            text = _char(source.next())
        elif c == "p":
            arg = source.next()
            text = "0x" + _format_integer(0 if arg is None else int(arg), "x")
        elif c in _INTEGER:
            value = _read_integer(source.next(), size, c in _SIGNED)
            text = _format_integer(value, c)
        elif c == "%":
            text = "%"
        else:
            return

        if sign or precision != -1:
            return

        fill = (width - len(text)) * ("0" if pad_zero else " ")
        if fill and not pad_left:
            yield fill
        yield text
        if fill and pad_left:
            yield fill


def format_safe(fmt: str, *args: Any) -> str:
    """Format args according to fmt and return the whole result."""
    return "".join(_render(fmt, args))


def snprintf(buffer_size: int, fmt: str, *args: Any) -> tuple[str, int]:
    """Format into a buffer of buffer_size characters, terminator included.

    Returns the text that fits and the length the full output would have.
    """
    full = format_safe(fmt, *args)
    kept = full[: buffer_size - 1] if buffer_size > 1 else ""
    return kept, len(full)