import io
import os
from unittest import mock

import pytest

from tombkit.records import (
    logcat_command,
    record_fds,
    record_logcat,
    record_network_info,
)


def _fake_popen(outputs, commands):
    def factory(cmd, *args, **kwargs):
        commands.append((cmd, kwargs))
        proc = mock.MagicMock()
        proc.stdout = io.StringIO(outputs.pop(0) if outputs else "")
        return proc

    return factory


def test_logcat_command_with_pid_filter():
    cmd = logcat_command("main", 100, 123, 24, "D")
    assert cmd == "/system/bin/logcat -b main -d -v threadtime -t 100 --pid 123 *:D"


def test_logcat_command_without_pid_filter_reads_more_lines():
    cmd = logcat_command("system", 100, 123, 23, "W")
    assert cmd == "/system/bin/logcat -b system -d -v threadtime -t 120 *:W"
    assert "--pid" not in cmd


def test_logcat_command_is_truncated_to_buffer():
    cmd = logcat_command("x" * 200, 10, 1, 30, "I")
    assert len(cmd) == 127
    assert cmd.startswith("/system/bin/logcat -b xxx")


def test_record_logcat_nothing_when_all_zero():
    out = io.StringIO()
    with mock.patch("subprocess.Popen") as popen:
        record_logcat(out, 123, 28, 0, 0, 0)
    assert out.getvalue() == ""
    assert popen.call_count == 0


def test_record_logcat_order_and_headers():
    commands = []
    outputs = ["main line\n", "system line\n", "events line\n"]
    out = io.StringIO()
    with mock.patch("subprocess.Popen", side_effect=_fake_popen(outputs, commands)):
        record_logcat(out, 123, 28, 50, 60, 70)

    buffers = [cmd.split(" -b ")[1].split(" ")[0] for cmd, _ in commands]
    assert buffers == ["main", "system", "events"]
    assert all(kwargs.get("shell") is True for _, kwargs in commands)

    text = out.getvalue()
    assert text.startswith("logcat:\n--------- tail end of log main (")
    assert text.endswith("events line\n\n")
    assert "main line\n" in text and "system line\n" in text
    first_cmd = commands[0][0]
    assert f"--------- tail end of log main ({first_cmd})\n" in text


def test_record_logcat_skips_zero_buffers():
    commands = []
    out = io.StringIO()
    with mock.patch("subprocess.Popen", side_effect=_fake_popen([], commands)):
        record_logcat(out, 5, 28, 10, 0, 0)
    assert len(commands) == 1
    assert " -b system " in commands[0][0]
    assert "log main" not in out.getvalue()


def test_record_logcat_filters_by_pid_label_on_old_api():
    commands = []
    outputs = ["01-01 00:00 123 124 D tag: mine\n01-01 00:00 999 999 D tag: other\n"]
    out = io.StringIO()
    with mock.patch("subprocess.Popen", side_effect=_fake_popen(outputs, commands)):
        record_logcat(out, 123, 23, 0, 0, 10)
    text = out.getvalue()
    assert "mine" in text
    assert "other" not in text


def test_record_logcat_no_filter_on_new_api():
    commands = []
    outputs = ["a 999 b\nc 888 d\n"]
    out = io.StringIO()
    with mock.patch("subprocess.Popen", side_effect=_fake_popen(outputs, commands)):
        record_logcat(out, 123, 24, 0, 0, 10)
    text = out.getvalue()
    assert "a 999 b\n" in text
    assert "c 888 d\n" in text


def test_record_logcat_survives_popen_failure():
    out = io.StringIO()
    with mock.patch("subprocess.Popen", side_effect=OSError("no shell")):
        record_logcat(out, 1, 28, 0, 5, 0)
    assert out.getvalue().startswith("logcat:\n--------- tail end of log events (")
    assert out.getvalue().endswith(")\n\n")


@pytest.fixture
def proc_root(tmp_path):
    return tmp_path


def _make_fds(proc_root, pid, entries):
    fd_dir = proc_root / str(pid) / "fd"
    fd_dir.mkdir(parents=True)
    for name, target in entries.items():
        os.symlink(target, fd_dir / name)
    return fd_dir


def test_record_fds_lists_descriptors(proc_root):
    _make_fds(
        proc_root,
        42,
        {"0": "/dev/null", "3": "socket:[1]", "abc": "/x", ".hidden": "/y", "-1": "/z"},
    )
    out = io.StringIO()
    record_fds(out, 42, str(proc_root))
    lines = out.getvalue().split("\n")
    assert lines[0] == "open files:"
    fd_lines = sorted(line for line in lines if line.startswith("    fd "))
    assert fd_lines == ["    fd 0: /dev/null", "    fd 3: socket:[1]"]
    assert "    (number of FDs: 2)" in lines
    assert out.getvalue().endswith("    (number of FDs: 2)\n\n")


def test_record_fds_missing_directory(proc_root):
    out = io.StringIO()
    record_fds(out, 7, str(proc_root))
    assert out.getvalue() == "open files:\n    (number of FDs: 0)\n\n"


def test_record_fds_limit(proc_root):
    _make_fds(proc_root, 9, {str(i): f"/f{i}" for i in range(1030)})
    out = io.StringIO()
    record_fds(out, 9, str(proc_root))
    text = out.getvalue()
    assert sum(1 for line in text.split("\n") if line.startswith("    fd ")) == 1024
    assert "    ......\n" in text
    assert text.endswith("    (number of FDs: 1030)\n\n")


def test_record_network_info_unsupported(proc_root):
    out = io.StringIO()
    record_network_info(out, 1, 29, str(proc_root))
    assert out.getvalue() == (
        "network info:\nNot supported on Android Q (API level 29) and later.\n\n"
    )


def test_record_network_info_missing_files(proc_root):
    out = io.StringIO()
    record_network_info(out, 1, 28, str(proc_root))
    assert out.getvalue() == "network info:\n\n"


def test_record_network_info_sections(proc_root):
    net = proc_root / "11" / "net"
    net.mkdir(parents=True)
    (net / "tcp").write_text("  sl local_address\n  0: 0100007F:1F90\n\n")
    (net / "unix").write_text("Num RefCount\n")
    out = io.StringIO()
    record_network_info(out, 11, 28, str(proc_root))
    text = out.getvalue()
    assert text == (
        "network info:\n"
        " TCP over IPv4 (From: /proc/PID/net/tcp)\n"
        "  sl local_address\n"
        "  0: 0100007F:1F90\n"
        "-\n"
        " UNIX domain (From: /proc/PID/net/unix)\n"
        "  Num RefCount\n"
        "-\n"
        "\n"
    )


def test_record_network_info_icmp_limit(proc_root):
    net = proc_root / "12" / "net"
    net.mkdir(parents=True)
    (net / "icmp").write_text("".join(f"row{i}\n" for i in range(300)))
    out = io.StringIO()
    record_network_info(out, 12, 20, str(proc_root))
    text = out.getvalue()
    assert "  row255\n" in text
    assert "  row256\n" not in text
    assert "  (number of records: 300)\n" in text