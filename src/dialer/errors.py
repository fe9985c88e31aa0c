"""
Error taxonomy for outbound TCP dialing.

Resolver (EAI_*) and system (errno) failures are reported to callers through a
small set of stable codes. Every code except SYSTEM_ERROR has a fixed errno
equivalent, so callers that think in errno terms can still use the result.
"""

import errno as errno_codes
import socket
from enum import Enum
from typing import Optional


class DialErrorCode(str, Enum):
    PROTOCOL_UNAVAILABLE = "ProtocolUnavailable"
    PERMISSION_DENIED = "PermissionDenied"
    OUT_OF_MEMORY = "OutOfMemory"
    NETWORK_UNREACHABLE = "NetworkUnreachable"
    NETWORK_DOWN = "NetworkDown"
    INVALID_ARGUMENT = "InvalidArgument"
    NOT_CONNECTED = "NotConnected"
    SYSTEM_ERROR = "SystemError"

    @property
    def errno(self) -> Optional[int]:
        """The errno value equivalent to this code, None for pass-through errors."""
        return _CODE_TO_ERRNO.get(self)

    @classmethod
    def from_errno(cls, err: Optional[int]) -> "DialErrorCode":
        """Classifies a raw system errno without altering it."""
        return _ERRNO_TO_CODE.get(err, cls.SYSTEM_ERROR)


_CODE_TO_ERRNO = {
    DialErrorCode.PROTOCOL_UNAVAILABLE: errno_codes.ENOPROTOOPT,
    DialErrorCode.PERMISSION_DENIED: errno_codes.EACCES,
    DialErrorCode.OUT_OF_MEMORY: errno_codes.ENOMEM,
    DialErrorCode.NETWORK_UNREACHABLE: errno_codes.ENETUNREACH,
    DialErrorCode.NETWORK_DOWN: errno_codes.ENETDOWN,
    DialErrorCode.INVALID_ARGUMENT: errno_codes.EINVAL,
    DialErrorCode.NOT_CONNECTED: errno_codes.ENOTCONN,
}

_ERRNO_TO_CODE = {
    errno_codes.EACCES: DialErrorCode.PERMISSION_DENIED,
    errno_codes.EPERM: DialErrorCode.PERMISSION_DENIED,
    errno_codes.ENOMEM: DialErrorCode.OUT_OF_MEMORY,
    errno_codes.ENOBUFS: DialErrorCode.OUT_OF_MEMORY,
}

# EAI_NODATA is glibc-only ("no address associated with hostname").
_RESOLUTION_CODES = {
    socket.EAI_AGAIN: DialErrorCode.NETWORK_UNREACHABLE,
    socket.EAI_FAIL: DialErrorCode.NETWORK_DOWN,
    socket.EAI_MEMORY: DialErrorCode.OUT_OF_MEMORY,
    socket.EAI_NONAME: DialErrorCode.INVALID_ARGUMENT,
    socket.EAI_SERVICE: DialErrorCode.INVALID_ARGUMENT,
}
if hasattr(socket, "EAI_NODATA"):
    _RESOLUTION_CODES[socket.EAI_NODATA] = DialErrorCode.INVALID_ARGUMENT


class DialError(Exception):
    """Base class for every failure reported by the dialer."""

    code = DialErrorCode.SYSTEM_ERROR

    def __init__(self, message: str, code: Optional[DialErrorCode] = None,
                 errno: Optional[int] = None, host: Optional[str] = None,
                 port: Optional[str] = None):
        super().__init__(message)
        if code is not None:
            self.code = code
        self.errno = errno if errno is not None else self.code.errno
        self.host = host
        self.port = port

    def __str__(self):
        return f"{self.code.value}: {self.args[0]}"


class ProtocolUnavailableError(DialError):
    code = DialErrorCode.PROTOCOL_UNAVAILABLE


class EndpointCreationError(DialError):
    """Socket allocation failed; errno is the system's, unmodified."""


class ResolutionError(DialError):
    pass


class NotConnectedError(DialError):
    code = DialErrorCode.NOT_CONNECTED


def normalize_resolution_error(exc: BaseException) -> DialErrorCode:
    """
    Maps a resolution failure onto the dial taxonomy.

    gaierror codes from the table above are translated. A host that cannot be
    IDNA-encoded, or a host or port the resolver rejects outright (embedded
    NUL), counts as an invalid argument. Everything else passes through as
    SYSTEM_ERROR.
    """
    if isinstance(exc, ValueError):
        return DialErrorCode.INVALID_ARGUMENT
    if isinstance(exc, socket.gaierror):
        return _RESOLUTION_CODES.get(exc.errno, DialErrorCode.SYSTEM_ERROR)
    if isinstance(exc, OSError):
        return DialErrorCode.from_errno(exc.errno)
    return DialErrorCode.SYSTEM_ERROR


def resolution_errno(exc: BaseException, code: DialErrorCode) -> Optional[int]:
    """The errno reported for a resolution failure: mapped if known, else the original."""
    if code.errno is not None:
        return code.errno
    return getattr(exc, "errno", None)
