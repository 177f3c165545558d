import pytest

from tombkit.errors import ErrorCode, XccError


@pytest.mark.parametrize(
    "value, expected",
    [
        (1001, ErrorCode.UNKNOWN),
        (1002, ErrorCode.INVAL),
        (1004, ErrorCode.NOSPACE),
        (1006, ErrorCode.NOTFND),
        (1016, ErrorCode.FD),
    ],
)
def test_codes_match_header_values(value, expected):
    err = XccError(value, "message")
    assert err.code is expected
    assert int(err.code) == value


def test_codes_are_consecutive_and_unique():
    codes = [XccError(value, "message").code for value in range(1001, 1017)]
    assert codes == list(ErrorCode)
    assert len(set(codes)) == 16


def test_error_keeps_code_and_message():
    err = XccError(ErrorCode.NOSPACE, "buffer full")
    assert err.code is ErrorCode.NOSPACE
    assert err.message == "buffer full"
    assert "buffer full" in str(err)
    assert "NOSPACE" in str(err)


def test_plain_int_code_is_converted_to_enum():
    err = XccError(1006, "missing entry")
    assert err.code is ErrorCode.NOTFND


def test_unknown_code_kept_as_int():
    err = XccError(2, "no such file")
    assert err.code == 2
    assert not isinstance(err.code, ErrorCode)
    assert "no such file" in str(err)


def test_error_message_names_format_code():
    err = XccError(ErrorCode.FORMAT, "bad input")
    assert err.code is ErrorCode.FORMAT
    assert err.message == "bad input"
    assert "FORMAT" in str(err)
    assert "bad input" in str(err)