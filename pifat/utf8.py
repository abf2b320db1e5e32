"""Encoding and decoding of single code points as UTF-8 byte sequences."""

from __future__ import annotations

_CONT_MASK = 0x3F
_CONT_LEAD = 0x80
_CONT_BITS = 6

# (payload mask, lead bits, first code point, last code point) for 1..4 byte forms.
_FORMS = (
    (0x7F, 0x00, 0x0000, 0x007F),
    (0x1F, 0xC0, 0x0080, 0x07FF),
    (0x0F, 0xE0, 0x0800, 0xFFFF),
    (0x07, 0xF0, 0x10000, 0x10FFFF),
)


def codepoint_len(cp: int) -> int:
    """Return how many UTF-8 bytes encode ``cp``.

    The NUL code point has no encoded form in this scheme and reports 0.
    Raises ValueError for code points outside the Unicode range.
    """
    if cp == 0:
        return 0
    for length, (_mask, _lead, first, last) in enumerate(_FORMS, start=1):
        if first <= cp <= last:
            return length
    raise ValueError(f"code point out of range: {cp:#x}")


def utf8_len(ch: int) -> int:
    """Return the sequence length announced by the leading byte ``ch``.

    A continuation byte reports 0. Raises ValueError for a malformed byte.
    """
    if not 0 <= ch <= 0xFF:
        raise ValueError(f"not a byte: {ch!r}")
    if ch & ~_CONT_MASK & 0xFF == _CONT_LEAD:
        return 0
    for length, (mask, lead, _first, _last) in enumerate(_FORMS, start=1):
        if ch & ~mask & 0xFF == lead:
            return length
    raise ValueError(f"malformed leading byte: {ch:#x}")


def to_utf8(cp: int) -> bytes:
    """Encode one code point as UTF-8; NUL encodes to an empty string."""
    length = codepoint_len(cp)
    if length == 0:
        return b""
    mask, lead, _first, _last = _FORMS[length - 1]
    shift = _CONT_BITS * (length - 1)
    out = bytearray([(cp >> shift) & mask | lead])
    for _ in range(length - 1):
        shift -= _CONT_BITS
        out.append((cp >> shift) & _CONT_MASK | _CONT_LEAD)
    return bytes(out)


def to_cp(data: bytes) -> int:
    """Decode the code point at the start of ``data``."""
    if not data:
        raise ValueError("no bytes to decode")
    length = utf8_len(data[0])
    if length == 0:
        raise ValueError(f"sequence starts with a continuation byte: {data[0]:#x}")
    if len(data) < length:
        raise ValueError(f"truncated sequence: need {length} bytes, got {len(data)}")
    mask = _FORMS[length - 1][0]
    cp = data[0] & mask
    for byte in data[1:length]:
        cp = (cp << _CONT_BITS) | (byte & _CONT_MASK)
    return cp