import pytest

from tombkit.siginfo import (
    SiCode,
    SigInfo,
    Signal,
    has_sender,
    has_si_addr,
    signal_code_name,
    signal_name,
)


@pytest.mark.parametrize("sig", list(Signal))
def test_signal_name_of_crash_signals(sig):
    assert signal_name(SigInfo(signo=sig)) == sig.name


def test_signal_name_unknown():
    assert signal_name(SigInfo(signo=2)) == "?"


@pytest.mark.parametrize(
    "signo, code, expected",
    [
        (Signal.SIGSEGV, 1, "SEGV_MAPERR"),
        (Signal.SIGSEGV, 2, "SEGV_ACCERR"),
        (Signal.SIGBUS, 1, "BUS_ADRALN"),
        (Signal.SIGFPE, 1, "FPE_INTDIV"),
        (Signal.SIGILL, 8, "ILL_BADSTK"),
        (Signal.SIGTRAP, 4, "TRAP_HWBKPT"),
        (Signal.SIGSYS, 1, "SYS_SECCOMP"),
    ],
)
def test_signal_specific_code_names(signo, code, expected):
    assert signal_code_name(SigInfo(signo=signo, code=code)) == expected


def test_ptrace_event_code_names():
    clone = SigInfo(signo=Signal.SIGTRAP, code=Signal.SIGTRAP | (3 << 8))
    stop = SigInfo(signo=Signal.SIGTRAP, code=Signal.SIGTRAP | (128 << 8))
    assert signal_code_name(clone) == "PTRACE_EVENT_CLONE"
    assert signal_code_name(stop) == "PTRACE_EVENT_STOP"


@pytest.mark.parametrize("code", list(SiCode))
def test_generic_code_names(code):
    assert signal_code_name(SigInfo(signo=Signal.SIGABRT, code=code)) == code.name


def test_generic_code_applies_when_specific_missing():
    si = SigInfo(signo=Signal.SIGSEGV, code=SiCode.SI_TKILL)
    assert signal_code_name(si) == "SI_TKILL"


def test_unknown_code_name():
    assert signal_code_name(SigInfo(signo=Signal.SIGABRT, code=42)) == "?"


@pytest.mark.parametrize(
    "sig", [Signal.SIGBUS, Signal.SIGFPE, Signal.SIGILL, Signal.SIGSEGV, Signal.SIGTRAP]
)
def test_fault_signals_have_address(sig):
    assert has_si_addr(SigInfo(signo=sig, code=1)) is True


@pytest.mark.parametrize("sig", [Signal.SIGABRT, Signal.SIGSYS, Signal.SIGSTKFLT])
def test_other_signals_have_no_address(sig):
    assert has_si_addr(SigInfo(signo=sig, code=1)) is False


@pytest.mark.parametrize("code", [SiCode.SI_USER, SiCode.SI_QUEUE, SiCode.SI_TKILL])
def test_manually_sent_signals_have_no_address(code):
    assert has_si_addr(SigInfo(signo=Signal.SIGSEGV, code=code)) is False


def test_is_from_user():
    assert SigInfo(signo=Signal.SIGABRT, code=SiCode.SI_TKILL).is_from_user() is True
    assert SigInfo(signo=Signal.SIGABRT, code=SiCode.SI_USER).is_from_user() is True
    assert SigInfo(signo=Signal.SIGSEGV, code=SiCode.SI_KERNEL).is_from_user() is False
    assert SigInfo(signo=Signal.SIGSEGV, code=1).is_from_user() is False


def test_has_sender_from_other_process():
    si = SigInfo(signo=Signal.SIGABRT, code=SiCode.SI_USER, pid=100)
    assert has_sender(si, 200) is True


def test_has_sender_false_for_self_zero_pid_or_kernel():
    assert has_sender(SigInfo(signo=Signal.SIGABRT, code=SiCode.SI_USER, pid=100), 100) is False
    assert has_sender(SigInfo(signo=Signal.SIGABRT, code=SiCode.SI_USER, pid=0), 100) is False
    assert has_sender(SigInfo(signo=Signal.SIGSEGV, code=1, pid=100), 200) is False