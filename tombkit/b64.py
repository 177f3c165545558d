"""Base64 encoding and a lenient decoder that skips foreign characters."""

from __future__ import annotations

from .errors import ErrorCode, XccError

_TABLE = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
_DECODE = {ch: index for index, ch in enumerate(_TABLE)}
_DECODE["="] = 0


def encode_max_len(in_len: int) -> int:
    """Upper bound of the encoded length, including a terminator."""
    return in_len * 4 // 3 + 4 + 1


def decode_max_len(in_len: int) -> int:
    """Upper bound of the decoded length, including a terminator."""
    return in_len // 4 * 3 + 1


def encode(data: bytes) -> str:
    """Encode bytes as padded base64 text."""
    data = bytes(data)
    out = []
    full = len(data) - len(data) % 3
    for pos in range(0, full, 3):
        a, b, c = data[pos], data[pos + 1], data[pos + 2]
        out.append(_TABLE[a >> 2])
        out.append(_TABLE[((a & 0x03) << 4) | (b >> 4)])
        out.append(_TABLE[((b & 0x0F) << 2) | (c >> 6)])
        out.append(_TABLE[c & 0x3F])
    rest = data[full:]
    if len(rest) == 1:
        a = rest[0]
        out.append(_TABLE[a >> 2])
        out.append(_TABLE[(a & 0x03) << 4])
        out.append("==")
    elif len(rest) == 2:
        a, b = rest
        out.append(_TABLE[a >> 2])
        out.append(_TABLE[((a & 0x03) << 4) | (b >> 4)])
        out.append(_TABLE[(b & 0x0F) << 2])
        out.append("=")
    return "".join(out)


def decode(text) -> bytes:
    """Decode base64 text, ignoring characters outside the alphabet.

    Decoding stops after the first block that holds padding. Raises
    XccError when the number of usable characters is zero or not a multiple
    of four, or when a block holds more than two padding characters.
    """
    if isinstance(text, (bytes, bytearray)):
        text = bytes(text).decode("latin-1")

    valid = [ch for ch in text if ch in _DECODE]
    if not valid or len(valid) % 4:
        raise XccError(ErrorCode.FORMAT, "invalid base64 length")

    out = bytearray()
    pad = 0
    block = []
    for ch in valid:
        if ch == "=":
            pad += 1
        block.append(_DECODE[ch])
        if len(block) < 4:
            continue
        b0, b1, b2, b3 = block
        block = []
        out.append(((b0 << 2) | (b1 >> 4)) & 0xFF)
        out.append(((b1 << 4) | (b2 >> 2)) & 0xFF)
        out.append(((b2 << 6) | b3) & 0xFF)
        if pad:
            if pad > 2:
                raise XccError(ErrorCode.FORMAT, "too much base64 padding")
            del out[-pad:]
            break
    return bytes(out)