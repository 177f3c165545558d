"""Names and properties of the signals a crash handler deals with."""

from __future__ import annotations

import enum
from dataclasses import dataclass


class Signal(enum.IntEnum):
    """Linux numbers of the crash signals."""

    SIGILL = 4
    SIGTRAP = 5
    SIGABRT = 6
    SIGBUS = 7
    SIGFPE = 8
    SIGSEGV = 11
    SIGSTKFLT = 16
    SIGSYS = 31


class SiCode(enum.IntEnum):
    """Signal codes that do not depend on the signal."""

    SI_USER = 0
    SI_KERNEL = 0x80
    SI_QUEUE = -1
    SI_TIMER = -2
    SI_MESGQ = -3
    SI_ASYNCIO = -4
    SI_SIGIO = -5
    SI_TKILL = -6
    SI_DETHREAD = -7


_SIGNAL_CODES: dict[int, dict[int, str]] = {
    Signal.SIGBUS: {
        1: "BUS_ADRALN",
        2: "BUS_ADRERR",
        3: "BUS_OBJERR",
        4: "BUS_MCEERR_AR",
        5: "BUS_MCEERR_AO",
    },
    Signal.SIGFPE: {
        1: "FPE_INTDIV",
        2: "FPE_INTOVF",
        3: "FPE_FLTDIV",
        4: "FPE_FLTOVF",
        5: "FPE_FLTUND",
        6: "FPE_FLTRES",
        7: "FPE_FLTINV",
        8: "FPE_FLTSUB",
    },
    Signal.SIGILL: {
        1: "ILL_ILLOPC",
        2: "ILL_ILLOPN",
        3: "ILL_ILLADR",
        4: "ILL_ILLTRP",
        5: "ILL_PRVOPC",
        6: "ILL_PRVREG",
        7: "ILL_COPROC",
        8: "ILL_BADSTK",
    },
    Signal.SIGSEGV: {
        1: "SEGV_MAPERR",
        2: "SEGV_ACCERR",
        3: "SEGV_BNDERR",
        4: "SEGV_PKUERR",
    },
    Signal.SIGTRAP: {
        1: "TRAP_BRKPT",
        2: "TRAP_TRACE",
        3: "TRAP_BRANCH",
        4: "TRAP_HWBKPT",
    },
    Signal.SIGSYS: {
        1: "SYS_SECCOMP",
    },
}

_PTRACE_EVENTS = {
    1: "PTRACE_EVENT_FORK",
    2: "PTRACE_EVENT_VFORK",
    3: "PTRACE_EVENT_CLONE",
    4: "PTRACE_EVENT_EXEC",
    5: "PTRACE_EVENT_VFORK_DONE",
    6: "PTRACE_EVENT_EXIT",
    7: "PTRACE_EVENT_SECCOMP",
    128: "PTRACE_EVENT_STOP",
}

_ADDRESS_SIGNALS = frozenset(
    {Signal.SIGBUS, Signal.SIGFPE, Signal.SIGILL, Signal.SIGSEGV, Signal.SIGTRAP}
)
_MANUAL_CODES = frozenset({SiCode.SI_USER, SiCode.SI_QUEUE, SiCode.SI_TKILL})


@dataclass(frozen=True)
class SigInfo:
    """The parts of a signal's information that the reports use."""

    signo: int
    code: int = 0
    pid: int = 0

    def is_from_user(self) -> bool:
        """True when the signal was sent by a process, not the kernel."""
        return self.code <= 0


def signal_name(si: SigInfo) -> str:
    """Name of a crash signal, or "?" for any other."""
    try:
        return Signal(si.signo).name
    except ValueError:
        return "?"


def signal_code_name(si: SigInfo) -> str:
    """Name of the signal's code, or "?" when it is not known."""
    name = _SIGNAL_CODES.get(si.signo, {}).get(si.code)
    if name is not None:
        return name
    if si.signo == Signal.SIGTRAP and (si.code & 0xFF) == Signal.SIGTRAP:
        name = _PTRACE_EVENTS.get((si.code >> 8) & 0xFF)
        if name is not None:
            return name
    try:
        return SiCode(si.code).name
    except ValueError:
        return "?"


def has_si_addr(si: SigInfo) -> bool:
    """True when the signal carries a meaningful fault address."""
    if si.code in _MANUAL_CODES:
        return False
    return si.signo in _ADDRESS_SIGNALS


def has_sender(si: SigInfo, caller_pid: int) -> bool:
    """True when another process sent the signal."""
    return si.is_from_user() and si.pid != 0 and si.pid != caller_pid