"""Error codes and the exception raised by tombkit."""

from __future__ import annotations

import enum


class ErrorCode(enum.IntEnum):
    """Error codes used in tombstone recording."""

    UNKNOWN = 1001
    INVAL = 1002
    NOMEM = 1003
    NOSPACE = 1004
    RANGE = 1005
    NOTFND = 1006
    MISSING = 1007
    MEM = 1008
    DEV = 1009
    PERM = 1010
    FORMAT = 1011
    ILLEGAL = 1012
    NOTSPT = 1013
    STATE = 1014
    JNI = 1015
    FD = 1016


class XccError(Exception):
    """An error carrying one of the ErrorCode values (or a system errno)."""

    def __init__(self, code, message):
        try:
            code = ErrorCode(code)
        except ValueError:
            code = int(code)
        super().__init__(code, message)
        self.code = code
        self.message = message

    def __str__(self) -> str:
        name = self.code.name if isinstance(self.code, ErrorCode) else "errno"
        return f"{self.message} ({name} {int(self.code)})"