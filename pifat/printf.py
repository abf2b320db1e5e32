"""A small printf: widths and the d, u, x, p, b, c, s and f conversions."""

from __future__ import annotations

import sys
from typing import Iterator, Optional, TextIO

_MASK32 = 0xFFFFFFFF
_MAX_WIDTH = 32
_PRINTF_BUFFER = 1024
_DIGITS = "0123456789"
_SPECS = "fduxpbsc"
_FRAC_DIGITS = 4


class PrintfError(ValueError):
    """Raised for a bad format string or argument."""


def _int32(value: int) -> int:
    value &= _MASK32
    return value - (1 << 32) if value & 0x80000000 else value


def _integer(arg, spec: str) -> int:
    if isinstance(arg, str) and spec == "c" and len(arg) == 1:
        return ord(arg)
    if not isinstance(arg, int):
        raise PrintfError(f"%{spec} needs an integer, got {type(arg).__name__}")
    return arg


def _emit_float(value: float, width: int) -> str:
    sign = ""
    if value < 0:
        sign = "-"
        value = -value
    frac = int(value * 10000.0) % 10000
    integral = _int32(int(value))
    whole = (f"-{-integral}" if integral < 0 else str(integral)).rjust(width)
    return f"{sign}{whole}.{str(frac).zfill(_FRAC_DIGITS)}"


def _convert(spec: str, arg, width: int) -> str:
    if spec == "f":
        if not isinstance(arg, (int, float)):
            raise PrintfError(f"%f needs a number, got {type(arg).__name__}")
        return _emit_float(float(arg), width)
    if spec == "s":
        if isinstance(arg, (bytes, bytearray)):
            return bytes(arg).split(b"\0", 1)[0].decode("latin-1")
        if not isinstance(arg, str):
            raise PrintfError(f"%s needs a string, got {type(arg).__name__}")
        return arg.split("\0", 1)[0]

    value = _integer(arg, spec)
    if spec == "d":
        signed = _int32(value)
        text = f"-{-signed}" if signed < 0 else str(signed)
    elif spec == "u":
        text = str(value & _MASK32)
    elif spec in "xp":
        text = f"{value & _MASK32:x}"
    elif spec == "b":
        text = f"{value & _MASK32:b}"
    else:  # "c"
        text = chr(value & 0xFF)
    return text.rjust(width)


def _render(fmt: str, args: tuple, limit: Optional[int]) -> str:
    pieces = []
    length = 0
    remaining: Iterator = iter(args)
    i = 0
    n = len(fmt)
    while i < n and (limit is None or length < limit):
        if fmt[i] != "%":
            piece = fmt[i]
            i += 1
        elif fmt[i + 1 : i + 2] == "%":
            piece = "%"
            i += 2
        else:
            i += 1
            start = i
            while i < n and fmt[i] in _DIGITS:
                i += 1
            width = int(fmt[start:i]) if i > start else 0
            if width >= _MAX_WIDTH:
                raise PrintfError(f"width {width} is too large")
            spec = fmt[i : i + 1]
            if not spec or spec not in _SPECS:
                raise PrintfError(f"printf: not handling specifier {spec!r}")
            try:
                arg = next(remaining)
            except StopIteration:
                raise PrintfError(f"missing argument for %{spec}") from None
            piece = _convert(spec, arg, width)
            i += 1
        pieces.append(piece)
        length += len(piece)
    text = "".join(pieces)
    return text if limit is None else text[:limit]


def format_string(fmt: str, *args) -> str:
    """Format ``args`` by ``fmt`` with no length limit."""
    return _render(fmt, args, None)


def snprintf(size: int, fmt: str, *args) -> str:
    """Format into a buffer of ``size`` bytes: at most ``size - 1`` characters."""
    if size < 1:
        raise ValueError(f"buffer size must be at least 1, got {size}")
    return _render(fmt, args, size - 1)


def printf(fmt: str, *args, file: Optional[TextIO] = None) -> int:
    """Format and write to ``file`` (standard output by default).

    Output is limited to what fits a 1024-byte buffer. Returns the number of
    characters written.
    """
    text = snprintf(_PRINTF_BUFFER, fmt, *args)
    (file if file is not None else sys.stdout).write(text)
    return len(text)