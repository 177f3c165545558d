"""Helpers for writing tombstone sections: text cleanup, file reading, headers."""

from __future__ import annotations

import os
import platform
from collections.abc import Iterable, Iterator
from typing import IO, Any

from .errors import ErrorCode, XccError
from .fmt import format_safe, snprintf
from .localtime import localtime

TOMB_HEAD = "*** *** *** *** *** *** *** *** *** *** *** *** *** *** *** ***\n"
THREAD_SEP = "--- --- --- --- --- --- --- --- --- --- --- --- --- --- --- ---\n"
THREAD_END = "+++ +++ +++ +++ +++ +++ +++ +++ +++ +++ +++ +++ +++ +++ +++ +++\n"

CRASH_TYPE_NATIVE = "native"
CRASH_TYPE_ANR = "anr"

DEFAULT_MAKER = "tombkit"
DEFAULT_PROC_ROOT = "/proc"

SU_PATHNAMES = (
    "/data/local/su",
    "/data/local/bin/su",
    "/data/local/xbin/su",
    "/system/xbin/su",
    "/system/bin/su",
    "/system/bin/.ext/su",
    "/system/bin/failsafe/su",
    "/system/sd/xbin/su",
    "/system/usr/we-need-root/su",
    "/sbin/su",
    "/su/bin/su",
)

_WHITESPACE = " \t\n\v\f\r"
_INT_MIN = -(2**31)
_INT_MAX = 2**31 - 1
_FORMAT_BUFFER = 1024
_LINE_BUFFER = 512
_NAME_BUFFER = 256

_root_cache: bool | None = None


def trim(text: str | None) -> str | None:
    """Strip leading and trailing ASCII whitespace."""
    if text is None:
        return None
    return text.strip(_WHITESPACE)


def atoi(text: str | None) -> int:
    """Parse a strict decimal integer that fits a 32-bit int.

    Only digits, with an optional leading minus, are accepted.
    Raises XccError(INVAL) for anything else.
    """
    if not text:
        raise XccError(ErrorCode.INVAL, f"not an integer: {text!r}")
    first, rest = text[0], text[1:]
    if not (first == "-" or ("0" <= first <= "9")):
        raise XccError(ErrorCode.INVAL, f"not an integer: {text!r}")
    if any(not ("0" <= ch <= "9") for ch in rest):
        raise XccError(ErrorCode.INVAL, f"not an integer: {text!r}")
    if text == "-":
        raise XccError(ErrorCode.INVAL, "no digits")
    value = int(text)
    if not _INT_MIN <= value <= _INT_MAX:
        raise XccError(ErrorCode.INVAL, f"integer out of range: {text}")
    return value


def write_str(out: IO[str], text: str) -> None:
    """Write text to out; an empty string writes nothing."""
    if out is None:
        raise XccError(ErrorCode.INVAL, "no output stream")
    if text:
        out.write(text)


def write_format_safe(out: IO[str], fmt: str, *args: Any) -> None:
    """Format with the safe formatter and write at most 1023 characters."""
    if out is None:
        raise XccError(ErrorCode.INVAL, "no output stream")
    text, _ = snprintf(_FORMAT_BUFFER, fmt, *args)
    if text:
        out.write(text)


def gets(stream, size: int):
    """Read one line of at most size - 1 characters, newline included.

    The result stops at the first NUL character. Returns None at end of
    input, when nothing usable was read, or when size is below 2.
    """
    if stream is None or size < 2:
        return None
    pieces = []
    for _ in range(size - 1):
        c = stream.read(1)
        if not c:
            break
        pieces.append(c)
        if c in ("\n", b"\n"):
            break
    if not pieces:
        return None
    line = pieces[0][:0].join(pieces)
    nul = "\0" if isinstance(line, str) else b"\0"
    line = line.split(nul, 1)[0]
    return line or None


def read_file_line(path, size: int = _FORMAT_BUFFER) -> str:
    """Return the first line of a file, read as gets() reads it.

    Raises XccError when the file cannot be opened or holds no line.
    """
    try:
        with open(path, encoding="utf-8", errors="replace", newline="") as stream:
            line = gets(stream, size)
    except OSError as exc:
        raise XccError(exc.errno or ErrorCode.UNKNOWN, f"cannot read {path}") from exc
    if line is None:
        raise XccError(ErrorCode.UNKNOWN, f"no line in {path}")
    return line


def _read_name(path: str) -> str:
    data = trim(read_file_line(path, _NAME_BUFFER))
    if not data:
        raise XccError(ErrorCode.MISSING, f"empty name in {path}")
    return data


def get_process_name(pid: int, proc_root: str = DEFAULT_PROC_ROOT) -> str:
    """Name of a process from its cmdline, or "unknown"."""
    try:
        return _read_name(os.path.join(proc_root, str(pid), "cmdline"))
    except XccError:
        return "unknown"


def get_thread_name(tid: int, proc_root: str = DEFAULT_PROC_ROOT) -> str:
    """Name of a thread from its comm file, or "unknown"."""
    try:
        return _read_name(os.path.join(proc_root, str(tid), "comm"))
    except XccError:
        return "unknown"


def _chunked_lines(stream: Iterable[str]) -> Iterator[str]:
    """Yield lines as a fixed line buffer would read them."""
    limit = _LINE_BUFFER - 1
    for line in stream:
        while line:
            yield line[:limit]
            line = line[limit:]


def record_sub_section_from(out: IO[str], path, title: str, limit: int = 0) -> None:
    """Copy the non-blank lines of a file, indented, under a title.

    A limit above zero keeps only that many lines and notes the total.
    Nothing is written when the file cannot be opened.
    """
    try:
        stream = open(path, encoding="utf-8", errors="replace", newline="")
    except OSError:
        return
    with stream:
        write_str(out, title)
        count = 0
        for chunk in _chunked_lines(stream):
            line = trim(chunk)
            if not line:
                continue
            count += 1
            if limit == 0 or count <= limit:
                write_format_safe(out, "  %s\n", line)
    if limit > 0 and count > limit:
        write_str(out, "  ......\n")
        write_format_safe(out, "  (number of records: %zu)\n", count)
    write_str(out, "-\n")


def is_root(su_paths: Iterable[str] | None = None) -> bool:
    """True when an su binary exists; the default check is remembered."""
    global _root_cache
    if su_paths is not None:
        return any(os.path.lexists(p) for p in su_paths)
    if _root_cache is None:
        _root_cache = any(os.path.lexists(p) for p in SU_PATHNAMES)
    return _root_cache


def format_timestamp(micros: int, time_zone: int) -> str:
    """Render microseconds since the epoch in the tombstone time format."""
    micros = int(micros)
    time_zone = int(time_zone)
    seconds, usec = divmod(micros, 1_000_000)
    t = localtime(seconds, time_zone)
    sign = "-" if time_zone < 0 else "+"
    hours, rest = divmod(abs(time_zone), 3600)
    return (
        f"{t.year:04d}-{t.month:02d}-{t.day:02d}T"
        f"{t.hour:02d}:{t.minute:02d}:{t.second:02d}.{usec // 1000:03d}"
        f"{sign}{hours:02d}{rest:02d}"
    )


def _abi_string() -> str:
    machine = platform.machine().lower()
    if machine in ("aarch64", "arm64", "armv8b", "armv8l"):
        return "arm64"
    if machine.startswith("arm"):
        return "arm"
    if machine in ("x86_64", "amd64"):
        return "x86_64"
    if machine in ("i386", "i486", "i586", "i686", "x86"):
        return "x86"
    return "unknown"


_HEADER_FORMAT = (
    "%s"
    "Tombstone maker: '%s'\n"
    "Crash type: '%s'\n"
    "Start time: '%s'\n"
    "Crash time: '%s'\n"
    "App ID: '%s'\n"
    "App version: '%s'\n"
    "Rooted: '%s'\n"
    "API level: '%d'\n"
    "OS version: '%s'\n"
    "Kernel version: '%s'\n"
    "ABI list: '%s'\n"
    "Manufacturer: '%s'\n"
    "Brand: '%s'\n"
    "Model: '%s'\n"
    "Build fingerprint: '%s'\n"
    "ABI: '%s'\n"
)


def get_dump_header(
    crash_type,
    time_zone,
    start_time,
    crash_time,
    app_id,
    app_version,
    api_level,
    os_version,
    kernel_version,
    abi_list,
    manufacturer,
    brand,
    model,
    build_fingerprint,
    maker=DEFAULT_MAKER,
    abi=None,
    rooted=None,
) -> str:
    """Build the header block that opens a tombstone.

    Times are microseconds since the epoch; time_zone is seconds east of UTC.
    """
    if abi is None:
        abi = _abi_string()
    if rooted is None:
        rooted = is_root()
    return format_safe(
        _HEADER_FORMAT,
        TOMB_HEAD,
        maker,
        crash_type,
        format_timestamp(start_time, time_zone),
        format_timestamp(crash_time, time_zone),
        app_id,
        app_version,
        "Yes" if rooted else "No",
        api_level,
        os_version,
        kernel_version,
        abi_list,
        manufacturer,
        brand,
        model,
        build_fingerprint,
        abi,
    )