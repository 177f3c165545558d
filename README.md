# tombkit

Pieces for writing crash "tombstone" reports about a process on Linux or
Android: the header block, memory statistics taken from
`/proc/PID/smaps`, open file descriptors, network tables and logcat tails,
plus the formatting, base64, time and signal-name helpers they rest on.

## Installation

```
pip install .
```

To run the test suite:

```
pip install .[test]
pytest
```

## Modules

- `tombkit.errors`: `ErrorCode`, an `IntEnum` of numeric error codes, and
  `XccError(code, message)`, the exception the package raises. Its `code`
  is an `ErrorCode` when the number is one, otherwise a plain `int` (such as
  a system errno).
- `tombkit.b64`: `encode(data)` gives padded base64 text;
  `decode(text)` accepts `str` or bytes, skips characters outside the
  alphabet, stops after the first block holding padding, and raises
  `XccError(ErrorCode.FORMAT)` when the usable length is zero or not a
  multiple of four, or a block has more than two `=`. `encode_max_len` and
  `decode_max_len` give buffer-size bounds (terminator included).
- `tombkit.localtime`: `localtime(timestamp, gmtoff)` returns a frozen
  `BrokenDownTime` (`year`, `month` 1–12, `day`, `hour`, `minute`,
  `second`, `weekday` with 0 = Sunday, `yday` 0-based, `gmtoff`) for a fixed
  offset in seconds east of UTC; it raises `OverflowError` when the year
  does not fit a 32-bit int. `is_leap(year)` is also here.
- `tombkit.fmt`: `format_safe(fmt, *args)` is a small printf subset:
  conversions `%s %c %p %d %i %o %u %x %X %%`, a field width, the `0` and
  `-` flags and the `hh h l ll z t` length modifiers. Integers are cut to
  the width of their modifier. A `+` or space flag, a precision or an
  unknown conversion ends the output at that point. `snprintf(buffer_size,
  fmt, *args)` returns `(text_that_fits, full_length)`.
- `tombkit.siginfo`: `SigInfo(signo, code, pid)` with `is_from_user()`;
  `signal_name`, `signal_code_name`, `has_si_addr`, `has_sender`; and the
  `Signal` and `SiCode` enums of Linux numbers.
- `tombkit.util`: `trim`, `atoi` (strict decimal, 32-bit range, raises
  `XccError(ErrorCode.INVAL)`), `write_str`, `write_format_safe`, `gets`,
  `read_file_line`, `get_process_name`, `get_thread_name` (both fall back
  to `"unknown"`), `record_sub_section_from`, `is_root`,
  `format_timestamp` and `get_dump_header`. Constants such as `TOMB_HEAD`,
  `THREAD_SEP`, `THREAD_END` and `SU_PATHNAMES` live here too.
- `tombkit.meminfo`: `Heap` (with `label` and `is_exclusive`), `MemStats`
  (`add`, `swap`, `is_empty`), `classify_mapping(name, start, prev_end,
  prev_heap)`, `load_smaps(lines)` and `record(out, pid, proc_root)`, which
  writes the "memory info" section and writes nothing when the process's
  `smaps` cannot be opened.
- `tombkit.records`: `logcat_command`, `record_logcat` (runs
  `/system/bin/logcat` through the shell for the main, system and events
  buffers), `record_fds` and `record_network_info`.

## Example

```python
import io
from tombkit import meminfo, records, util

header = util.get_dump_header(
    "native", 8 * 3600, 1_550_000_000_000_000, 1_550_000_100_000_000,
    "com.example.app", "1.0", 28, "9", "4.9.0", "arm64-v8a",
    "ExampleMaker", "ExampleBrand", "ExampleModel", "example/fingerprint",
    "tombkit 0.1.0", "arm64", False,
)

out = io.StringIO()
out.write(header)
meminfo.record(out, 1234, "/proc")
records.record_fds(out, 1234, "/proc")
records.record_network_info(out, 1234, 28, "/proc")
print(out.getvalue())
```

Each function that writes takes a text stream; any object with a `write`
method will do. Functions that read from procfs accept a `proc_root`, so
they can run against a copy of `/proc` saved to disk.

## What it does not do

tombkit only builds report text from data it is given or can read from
files. It does not install crash or `SIGQUIT` handlers, does not unwind or
symbolise stacks, does not dump registers or threads, and has no
command-line tool: a program that wants a full crash report calls these
functions itself and decides where the output goes.