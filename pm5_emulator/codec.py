from __future__ import annotations

import re

from .const import BASE_UUID_FMT

_HEX_RE = re.compile(r"[0-9A-Fa-f]*")


class DecodeError(ValueError):
    """Hex payload could not be turned into bytes."""


def c2_uuid(short: int) -> str:
    return BASE_UUID_FMT.format(short=short)


def encode_le(value: int, width: int) -> bytes:
    """
    Encode an integer as a little-endian field of `width` bytes (1, 2 or 3).

    Built by repeatedly taking value % 256 and dividing by 256, so anything
    outside the representable range wraps silently instead of raising.
    Callers rely on this: elapsed centiseconds roll over in long sessions the
    same way a real PM5 counter does.

      encode_le(12000, 2) -> b"\\xe0\\x2e"   (224 + 46 * 256 = 12000)
    """
    if width not in (1, 2, 3):
        raise ValueError(f"Unsupported field width: {width}")

    out = bytearray(width)
    for i in range(width):
        out[i] = value % 256
        value //= 256
    return bytes(out)


def decode_hex(text: str) -> bytes:
    """Decode an even-length hex string into raw bytes."""
    if len(text) % 2:
        raise DecodeError(f"Odd-length hex payload: {text!r}")
    if not _HEX_RE.fullmatch(text):
        raise DecodeError(f"Non-hex characters in payload: {text!r}")
    return bytes.fromhex(text)


def u16_le(b: bytes, off: int) -> int:
    return b[off] | (b[off + 1] << 8)


def u24_le(b: bytes, off: int) -> int:
    return b[off] | (b[off + 1] << 8) | (b[off + 2] << 16)
