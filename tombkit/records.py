"""Tombstone sections about a process's surroundings: logcat, open files, sockets."""

from __future__ import annotations

import os
import subprocess
from collections.abc import Iterator
from typing import IO

from .errors import XccError
from .fmt import snprintf
from .util import (
    DEFAULT_PROC_ROOT,
    atoi,
    record_sub_section_from,
    write_format_safe,
    write_str,
)

LOGCAT = "/system/bin/logcat"

_CMD_BUFFER = 128
_PID_FILTER_BUFFER = 64
_PID_LABEL_BUFFER = 32
_LOGCAT_LINE = 1024 - 1
_LINK_MAX = 512 - 1
_MAX_FDS = 1024

# Since API level 24 logcat filters by pid itself.
_PID_FILTER_API = 24
_NETWORK_UNSUPPORTED_API = 29

_NETWORK_SECTIONS = (
    ("tcp", " TCP over IPv4 (From: /proc/PID/net/tcp)\n", 1024),
    ("tcp6", " TCP over IPv6 (From: /proc/PID/net/tcp6)\n", 1024),
    ("udp", " UDP over IPv4 (From: /proc/PID/net/udp)\n", 1024),
    ("udp6", " UDP over IPv6 (From: /proc/PID/net/udp6)\n", 1024),
    ("icmp", " ICMP in IPv4 (From: /proc/PID/net/icmp)\n", 256),
    ("icmp6", " ICMP in IPv6 (From: /proc/PID/net/icmp6)\n", 256),
    ("unix", " UNIX domain (From: /proc/PID/net/unix)\n", 256),
)


def _uses_pid_filter(api_level: int) -> bool:
    return api_level >= _PID_FILTER_API


def _effective_lines(lines: int, api_level: int) -> int:
    # Without --pid the lines are filtered here, so more of them are read.
    if _uses_pid_filter(api_level):
        return lines
    return int(lines * 1.2)


def logcat_command(buffer: str, lines: int, pid: int, api_level: int, priority: str) -> str:
    """The logcat command line that dumps the tail of one log buffer."""
    if _uses_pid_filter(api_level):
        pid_filter, _ = snprintf(_PID_FILTER_BUFFER, "--pid %d ", pid)
    else:
        pid_filter = ""
    cmd, _ = snprintf(
        _CMD_BUFFER,
        LOGCAT + " -b %s -d -v threadtime -t %u %s*:%c",
        buffer,
        _effective_lines(lines, api_level),
        pid_filter,
        priority,
    )
    return cmd


def _command_output(cmd: str) -> Iterator[str]:
    """Yield the output of a shell command in pieces of at most 1023 characters."""
    try:
        proc = subprocess.Popen(
            cmd, shell=True, stdout=subprocess.PIPE, text=True, errors="replace"
        )
    except OSError:
        return
    try:
        for line in proc.stdout:
            while line:
                yield line[:_LOGCAT_LINE]
                line = line[_LOGCAT_LINE:]
    finally:
        proc.stdout.close()
        proc.wait()


def _record_logcat_buffer(
    out: IO[str], pid: int, api_level: int, buffer: str, lines: int, priority: str
) -> None:
    cmd = logcat_command(buffer, lines, pid, api_level, priority)
    with_pid = _uses_pid_filter(api_level)
    pid_label, _ = snprintf(_PID_LABEL_BUFFER, " %d ", pid)

    write_format_safe(out, "--------- tail end of log %s (%s)\n", buffer, cmd)
    for piece in _command_output(cmd):
        if with_pid or pid_label in piece:
            write_str(out, piece)


def record_logcat(
    out: IO[str],
    pid: int,
    api_level: int,
    system_lines: int,
    events_lines: int,
    main_lines: int,
) -> None:
    """Write the logcat section: the main, system and events buffers, in that order.

    Nothing is written when every line count is zero.
    """
    if system_lines == 0 and events_lines == 0 and main_lines == 0:
        return

    write_str(out, "logcat:\n")
    for buffer, lines, priority in (
        ("main", main_lines, "D"),
        ("system", system_lines, "W"),
        ("events", events_lines, "I"),
    ):
        if lines > 0:
            _record_logcat_buffer(out, pid, api_level, buffer, lines, priority)
    write_str(out, "\n")


def _fd_number(name: str) -> int | None:
    if not name or name.startswith("."):
        return None
    try:
        number = atoi(name)
    except XccError:
        return None
    return number if number >= 0 else None


def _link_target(path: str) -> str:
    try:
        target = os.readlink(path)
    except OSError:
        return "???"
    return target[:_LINK_MAX] if target else "???"


def record_fds(out: IO[str], pid: int, proc_root: str = DEFAULT_PROC_ROOT) -> None:
    """Write the open files section: each descriptor and what it points to.

    At most 1024 descriptors are listed; the total is always given.
    """
    write_str(out, "open files:\n")

    fd_dir = os.path.join(proc_root, str(pid), "fd")
    try:
        names = os.listdir(fd_dir)
    except OSError:
        names = []

    total = 0
    for name in names:
        number = _fd_number(name)
        if number is None:
            continue
        total += 1
        if total > _MAX_FDS:
            continue
        target = _link_target(os.path.join(fd_dir, name))
        write_format_safe(out, "    fd %d: %s\n", number, target)

    if total > _MAX_FDS:
        write_str(out, "    ......\n")
    write_format_safe(out, "    (number of FDs: %zu)\n", total)
    write_str(out, "\n")


def record_network_info(
    out: IO[str], pid: int, api_level: int, proc_root: str = DEFAULT_PROC_ROOT
) -> None:
    """Write the network info section from the process's socket tables."""
    write_str(out, "network info:\n")

    if api_level >= _NETWORK_UNSUPPORTED_API:
        write_str(out, "Not supported on Android Q (API level 29) and later.\n")
    else:
        net_dir = os.path.join(proc_root, str(pid), "net")
        for name, title, limit in _NETWORK_SECTIONS:
            record_sub_section_from(out, os.path.join(net_dir, name), title, limit)

    write_str(out, "\n")