"""Memory usage of a process, summarised from its smaps file."""

from __future__ import annotations

import enum
import os
import re
from collections.abc import Iterable
from dataclasses import dataclass, fields
from typing import IO

from .util import (
    DEFAULT_PROC_ROOT,
    record_sub_section_from,
    write_format_safe,
    write_str,
)

_DELETED = " (deleted)"
_WHITESPACE = " \t\n\v\f\r"

_HEAD_FMT = "%13s %8s %8s %8s %8s %8s %8s %8s\n"
_DATA_FMT = "%13s %8zu %8zu %8zu %8zu %8zu %8zu %8zu\n"
_SUM_HEAD_FMT = "%21s %8s\n"
_SUM_DATA_FMT = "%21s %8zu\n"
_SUM_DATA2_FMT = "%21s %8zu %21s %8zu\n"

_HEX = r"[+-]?(?:0[xX])?[0-9a-fA-F]+"
_RANGE = re.compile(rf"\s*({_HEX})-\s*({_HEX})")
_HEADER = re.compile(
    rf"\s*{_HEX}-\s*{_HEX}\s*\S+\s*{_HEX}\s*{_HEX}:\s*{_HEX}\s*[+-]?\d+"
)
_STAT = re.compile(
    r"(Pss|Shared_Clean|Shared_Dirty|Private_Clean|Private_Dirty|Swap|SwapPss):"
    r"\s*\+?(\d+)"
)
_MASK64 = (1 << 64) - 1


class Heap(enum.IntEnum):
    """Categories that mappings are counted under."""

    NATIVE = 0
    DALVIK = 1
    DALVIK_OTHER = 2
    STACK = 3
    CURSOR = 4
    ASHMEM = 5
    GL_DEV = 6
    UNKNOWN_DEV = 7
    SO = 8
    JAR = 9
    APK = 10
    TTF = 11
    DEX = 12
    OAT = 13
    ART = 14
    UNKNOWN_MAP = 15
    UNKNOWN = 16
    DALVIK_NORMAL = 17
    DALVIK_LARGE = 18
    DALVIK_ZYGOTE = 19
    DALVIK_NON_MOVING = 20
    DALVIK_OTHER_LINEARALLOC = 21
    DALVIK_OTHER_ACCOUNTING = 22
    DALVIK_OTHER_CODE_CACHE = 23
    DALVIK_OTHER_COMPILER_METADATA = 24
    DALVIK_OTHER_INDIRECT_REFERENCE_TABLE = 25
    DEX_BOOT_VDEX = 26
    DEX_APP_DEX = 27
    DEX_APP_VDEX = 28
    ART_APP = 29
    ART_BOOT = 30

    @property
    def label(self) -> str:
        """The name shown for this heap in reports."""
        return _LABELS[self.value]

    @property
    def is_exclusive(self) -> bool:
        """True for top-level heaps, False for the sub-heap details."""
        return self.value <= Heap.UNKNOWN


_LABELS = (
    "Native Heap",
    "Dalvik Heap",
    "Dalvik Other",
    "Stack",
    "Cursor",
    "Ashmem",
    "Gfx dev",
    "Other dev",
    ".so mmap",
    ".jar mmap",
    ".apk mmap",
    ".ttf mmap",
    ".dex mmap",
    ".oat mmap",
    ".art mmap",
    "Other mmap",
    "Unknown",
    ".Heap",
    ".LOS",
    ".Zygote",
    ".NonMoving",
    ".LinearAlloc",
    ".GC",
    ".JITCache",
    ".CompilerMetadata",
    ".IndirectRef",
    ".Boot vdex",
    ".App dex",
    ".App vdex",
    ".App art",
    ".Boot art",
)

_WITH_SUB_HEAP = frozenset({Heap.DALVIK, Heap.DALVIK_OTHER, Heap.DEX, Heap.ART})

_DALVIK_PREFIXES = (
    (("/dev/ashmem/dalvik-LinearAlloc",), Heap.DALVIK_OTHER, Heap.DALVIK_OTHER_LINEARALLOC),
    (
        ("/dev/ashmem/dalvik-alloc space", "/dev/ashmem/dalvik-main space"),
        Heap.DALVIK,
        Heap.DALVIK_NORMAL,
    ),
    (
        (
            "/dev/ashmem/dalvik-large object space",
            "/dev/ashmem/dalvik-free list large object space",
        ),
        Heap.DALVIK,
        Heap.DALVIK_LARGE,
    ),
    (("/dev/ashmem/dalvik-non moving space",), Heap.DALVIK, Heap.DALVIK_NON_MOVING),
    (("/dev/ashmem/dalvik-zygote space",), Heap.DALVIK, Heap.DALVIK_ZYGOTE),
    (
        ("/dev/ashmem/dalvik-indirect ref",),
        Heap.DALVIK_OTHER,
        Heap.DALVIK_OTHER_INDIRECT_REFERENCE_TABLE,
    ),
    (
        ("/dev/ashmem/dalvik-jit-code-cache", "/dev/ashmem/dalvik-data-code-cache"),
        Heap.DALVIK_OTHER,
        Heap.DALVIK_OTHER_CODE_CACHE,
    ),
    (
        ("/dev/ashmem/dalvik-CompilerMetadata",),
        Heap.DALVIK_OTHER,
        Heap.DALVIK_OTHER_COMPILER_METADATA,
    ),
)

_SUFFIX_HEAPS = (
    (".so", Heap.SO),
    (".jar", Heap.JAR),
    (".apk", Heap.APK),
    (".ttf", Heap.TTF),
)


@dataclass
class MemStats:
    """Memory counters in kB for one heap."""

    pss: int = 0
    swappable_pss: int = 0
    private_dirty: int = 0
    shared_dirty: int = 0
    private_clean: int = 0
    shared_clean: int = 0
    swapped_out: int = 0
    swapped_out_pss: int = 0

    def add(self, other: MemStats) -> MemStats:
        """Add other's counters to these, in place, and return self."""
        for field in fields(self):
            setattr(self, field.name, getattr(self, field.name) + getattr(other, field.name))
        return self

    def swap(self, found_swap_pss: bool) -> int:
        """The swap figure a report shows: swap PSS when known, else swap."""
        return self.swapped_out_pss if found_swap_pss else self.swapped_out

    def is_empty(self, found_swap_pss: bool) -> bool:
        """True when every counter a report shows is zero."""
        return not (
            self.pss
            or self.swappable_pss
            or self.shared_dirty
            or self.private_dirty
            or self.shared_clean
            or self.private_clean
            or self.swap(found_swap_pss)
        )


def _dev_heap(name: str) -> tuple[Heap, Heap]:
    if name.startswith("/dev/kgsl-3d0"):
        return Heap.GL_DEV, Heap.UNKNOWN
    if not name.startswith("/dev/ashmem"):
        return Heap.UNKNOWN_DEV, Heap.UNKNOWN
    if name.startswith("/dev/ashmem/dalvik-"):
        for prefixes, which, sub in _DALVIK_PREFIXES:
            if name.startswith(prefixes):
                return which, sub
        return Heap.DALVIK_OTHER, Heap.DALVIK_OTHER_ACCOUNTING
    if name.startswith("/dev/ashmem/CursorWindow"):
        return Heap.CURSOR, Heap.UNKNOWN
    if name.startswith("/dev/ashmem/libc malloc"):
        return Heap.NATIVE, Heap.UNKNOWN
    return Heap.ASHMEM, Heap.UNKNOWN


def classify_mapping(
    name: str,
    start: int = 0,
    prev_end: int = 0,
    prev_heap: Heap = Heap.UNKNOWN,
) -> tuple[Heap, Heap, bool]:
    """Return (heap, sub-heap, swappable) for a mapping's name.

    An unnamed mapping that starts where the previous one ended, after a
    shared library, counts as that library's bss.
    """
    if len(name) > len(_DELETED) and name.endswith(_DELETED):
        name = name[: -len(_DELETED)]
    size = len(name)
    is_boot = "@boot" in name or "/boot" in name

    if name.startswith(("[heap]", "[anon:libc_malloc]")):
        return Heap.NATIVE, Heap.UNKNOWN, False
    if name.startswith("[stack"):
        return Heap.STACK, Heap.UNKNOWN, False
    for suffix, heap in _SUFFIX_HEAPS:
        if size > len(suffix) and name.endswith(suffix):
            return heap, Heap.UNKNOWN, True
    if (size > 4 and ".dex" in name) or (size > 5 and name.endswith(".odex")):
        return Heap.DEX, Heap.DEX_APP_DEX, True
    if size > 5 and name.endswith(".vdex"):
        return Heap.DEX, Heap.DEX_BOOT_VDEX if is_boot else Heap.DEX_APP_VDEX, True
    if size > 4 and name.endswith(".oat"):
        return Heap.OAT, Heap.UNKNOWN, True
    if size > 4 and name.endswith(".art"):
        return Heap.ART, Heap.ART_BOOT if is_boot else Heap.ART_APP, True
    if name.startswith("/dev/"):
        which, sub = _dev_heap(name)
        return which, sub, False
    if name.startswith("[anon:"):
        return Heap.UNKNOWN, Heap.UNKNOWN, False
    if size > 0:
        return Heap.UNKNOWN_MAP, Heap.UNKNOWN, False
    if start == prev_end and prev_heap == Heap.SO:
        return Heap.SO, Heap.UNKNOWN, False
    return Heap.UNKNOWN, Heap.UNKNOWN, False


def _hex(text: str) -> int:
    return int(text, 16) & _MASK64


def _swappable_pss(stats: MemStats) -> int:
    if stats.pss <= 0:
        return 0
    proportion = 0.0
    shared = stats.shared_clean + stats.shared_dirty
    if shared > 0:
        private = stats.private_clean + stats.private_dirty
        proportion = float(max(stats.pss - private, 0) // shared)
    return int(proportion * stats.shared_clean + stats.private_clean)


def load_smaps(lines: Iterable[str]) -> tuple[list[MemStats], bool]:
    """Sum the smaps entries per heap.

    Returns one MemStats per Heap, indexed by its value, and whether any
    entry reported SwapPss.
    """
    stats = [MemStats() for _ in Heap]
    found_swap_pss = False
    it = iter(lines)
    line = next(it, None)
    if line is None:
        return stats, found_swap_pss

    start = end = 0
    pos = 0
    which = Heap.UNKNOWN
    done = False
    while not done:
        prev_heap = which
        prev_end = end
        which = sub = Heap.UNKNOWN
        swappable = False

        line = line[:-1] if line.endswith("\n") else line
        if not line:
            break

        span = _RANGE.match(line)
        skip = span is None
        if span is not None:
            start, end = _hex(span.group(1)), _hex(span.group(2))
            header = _HEADER.match(line)
            if header is not None:
                pos = header.end()
            name = line[pos:].lstrip(_WHITESPACE)
            which, sub, swappable = classify_mapping(name, start, prev_end, prev_heap)

        entry = MemStats()
        while True:
            line = next(it, None)
            if line is None:
                done = True
                break
            stat = _STAT.match(line)
            if stat is not None:
                key, value = stat.group(1), int(stat.group(2))
                if key == "Pss":
                    entry.pss = value
                elif key == "Shared_Clean":
                    entry.shared_clean = value
                elif key == "Shared_Dirty":
                    entry.shared_dirty = value
                elif key == "Private_Clean":
                    entry.private_clean = value
                elif key == "Private_Dirty":
                    entry.private_dirty = value
                elif key == "Swap":
                    entry.swapped_out = value
                else:
                    found_swap_pss = True
                    entry.swapped_out_pss = value
                continue
            span = _RANGE.match(line)
            if span is not None:
                start, end = _hex(span.group(1)), _hex(span.group(2))
                break

        if skip:
            continue
        entry.swappable_pss = _swappable_pss(entry) if swappable else 0
        stats[which].add(entry)
        if which in _WITH_SUB_HEAP:
            stats[sub].add(entry)

    return stats, found_swap_pss


def _write_row(out: IO[str], label: str, s: MemStats, found_swap_pss: bool) -> None:
    write_format_safe(
        out,
        _DATA_FMT,
        label,
        s.pss,
        s.swappable_pss,
        s.shared_dirty,
        s.private_dirty,
        s.shared_clean,
        s.private_clean,
        s.swap(found_swap_pss),
    )


def _private(stats: list[MemStats], *heaps: Heap) -> int:
    return sum(stats[h].private_dirty + stats[h].private_clean for h in heaps)


def record(out: IO[str], pid: int, proc_root: str = DEFAULT_PROC_ROOT) -> None:
    """Write the memory info section for a process.

    Nothing is written when the process's smaps file cannot be opened.
    """
    proc_dir = os.path.join(proc_root, str(pid))
    try:
        smaps = open(
            os.path.join(proc_dir, "smaps"), encoding="utf-8", errors="replace"
        )
    except OSError:
        return
    with smaps:
        stats, found = load_smaps(smaps)

    exclusive = [h for h in Heap if h.is_exclusive]
    details = [h for h in Heap if not h.is_exclusive]

    total = MemStats()
    for heap in exclusive:
        total.add(stats[heap])
        total.pss += stats[heap].swapped_out_pss

    write_str(out, "memory info:\n")
    record_sub_section_from(
        out, os.path.join(proc_root, "meminfo"), " System Summary (From: /proc/meminfo)\n", 0
    )
    record_sub_section_from(
        out, os.path.join(proc_dir, "status"), " Process Status (From: /proc/PID/status)\n", 0
    )
    record_sub_section_from(
        out, os.path.join(proc_dir, "limits"), " Process Limits (From: /proc/PID/limits)\n", 0
    )
    write_str(out, " Process Details (From: /proc/PID/smaps)\n")
    write_format_safe(
        out, _HEAD_FMT, "", "Pss", "Pss", "Shared", "Private", "Shared", "Private",
        "SwapPss" if found else "Swap",
    )
    write_format_safe(
        out, _HEAD_FMT, "", "Total", "Clean", "Dirty", "Dirty", "Clean", "Clean", "Dirty"
    )
    write_format_safe(out, _HEAD_FMT, "", *(["------"] * 7))
    for heap in exclusive:
        if heap in (Heap.NATIVE, Heap.DALVIK, Heap.UNKNOWN) or not stats[heap].is_empty(found):
            _write_row(out, heap.label, stats[heap], found)
    _write_row(out, "TOTAL", total, found)

    write_str(out, "-\n Process Dalvik Details (From: /proc/PID/smaps)\n")
    for heap in details:
        if not stats[heap].is_empty(found):
            _write_row(out, heap.label, stats[heap], found)

    write_str(out, "-\n Process Summary (From: /proc/PID/smaps)\n")
    write_format_safe(out, _SUM_HEAD_FMT, "", "Pss(KB)")
    write_format_safe(out, _SUM_HEAD_FMT, "", "------")
    write_format_safe(
        out,
        _SUM_DATA_FMT,
        "Java Heap:",
        stats[Heap.DALVIK].private_dirty + _private(stats, Heap.ART),
    )
    write_format_safe(out, _SUM_DATA_FMT, "Native Heap:", stats[Heap.NATIVE].private_dirty)
    write_format_safe(
        out,
        _SUM_DATA_FMT,
        "Code:",
        _private(stats, Heap.SO, Heap.JAR, Heap.APK, Heap.TTF, Heap.DEX, Heap.OAT),
    )
    write_format_safe(out, _SUM_DATA_FMT, "Stack:", stats[Heap.STACK].private_dirty)
    write_format_safe(
        out,
        _SUM_DATA_FMT,
        "Private Other:",
        _private(
            stats,
            Heap.DALVIK_OTHER,
            Heap.CURSOR,
            Heap.ASHMEM,
            Heap.GL_DEV,
            Heap.UNKNOWN_DEV,
            Heap.UNKNOWN_MAP,
            Heap.UNKNOWN,
        ),
    )
    write_format_safe(
        out,
        _SUM_DATA_FMT,
        "System:",
        total.pss - total.private_dirty - total.private_clean,
    )
    if found:
        write_format_safe(
            out, _SUM_DATA2_FMT, "TOTAL:", total.pss, "TOTAL SWAP PSS:", total.swapped_out_pss
        )
    else:
        write_format_safe(
            out, _SUM_DATA2_FMT, "TOTAL:", total.pss, "TOTAL SWAP:", total.swapped_out
        )
    write_str(out, "-\n\n")