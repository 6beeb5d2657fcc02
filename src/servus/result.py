"""Operation result codes for service directories."""
import os
from typing import Dict


# DNS-SD error codes, passed through from the multicast-DNS transport
DNSSD_UNKNOWN = -65537
DNSSD_NO_SUCH_NAME = -65538
DNSSD_NO_MEMORY = -65539
DNSSD_BAD_PARAM = -65540
DNSSD_BAD_REFERENCE = -65541
DNSSD_BAD_STATE = -65542
DNSSD_BAD_FLAGS = -65543
DNSSD_UNSUPPORTED = -65544
DNSSD_NOT_INITIALIZED = -65545
DNSSD_ALREADY_REGISTERED = -65547
DNSSD_NAME_CONFLICT = -65548
DNSSD_INVALID = -65549
DNSSD_FIREWALL = -65550
DNSSD_INCOMPATIBLE = -65551
DNSSD_BAD_INTERFACE_INDEX = -65552
DNSSD_REFUSED = -65553
DNSSD_NO_SUCH_RECORD = -65554
DNSSD_NO_AUTH = -65555
DNSSD_NO_SUCH_KEY = -65556
DNSSD_NAT_TRAVERSAL = -65557
DNSSD_DOUBLE_NAT = -65558
DNSSD_BAD_TIME = -65559


class Result:
    """
    Outcome of a directory operation.

    The code is either one of the class constants below or a transport
    specific code. A result is truthy only when it represents success, and
    compares equal to its integer code.
    """

    SUCCESS = 0
    # operation did not complete, or was already in progress
    PENDING = -1
    # no usable transport
    NOT_SUPPORTED = -2
    # error while waiting for transport events
    POLL_ERROR = -3

    _MESSAGES: Dict[int, str] = {
        SUCCESS: "success",
        PENDING: "operation pending",
        NOT_SUPPORTED: "Servus compiled without ZeroConf support",
        POLL_ERROR: "Error polling for events",
        DNSSD_UNKNOWN: "unknown error",
        DNSSD_NO_SUCH_NAME: "name not found",
        DNSSD_NO_MEMORY: "out of memory",
        DNSSD_BAD_PARAM: "bad parameter",
        DNSSD_BAD_REFERENCE: "bad reference",
        DNSSD_BAD_STATE: "bad state",
        DNSSD_BAD_FLAGS: "bad flags",
        DNSSD_UNSUPPORTED: "unsupported",
        DNSSD_NOT_INITIALIZED: "not initialized",
        DNSSD_ALREADY_REGISTERED: "already registered",
        DNSSD_NAME_CONFLICT: "name conflict",
        DNSSD_INVALID: "invalid value",
        DNSSD_FIREWALL: "firewall",
        DNSSD_INCOMPATIBLE: "client library incompatible with daemon",
        DNSSD_BAD_INTERFACE_INDEX: "bad interface index",
        DNSSD_REFUSED: "refused",
        DNSSD_NO_SUCH_RECORD: "no such record",
        DNSSD_NO_AUTH: "no authentication",
        DNSSD_NO_SUCH_KEY: "no such key",
        DNSSD_NAT_TRAVERSAL: "NAT traversal",
        DNSSD_DOUBLE_NAT: "double NAT",
        DNSSD_BAD_TIME: "bad time",
    }

    def __init__(self, code: int = SUCCESS):
        self.code = int(code)

    @property
    def message(self) -> str:
        """Human-readable description of the code."""
        if self.code in self._MESSAGES:
            return self._MESSAGES[self.code]
        if self.code > 0:
            return os.strerror(self.code)
        return f"result code {self.code}"

    def __bool__(self) -> bool:
        return self.code == self.SUCCESS

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Result):
            return self.code == other.code
        if isinstance(other, int):
            return self.code == other
        return NotImplemented

    def __ne__(self, other: object) -> bool:
        equal = self.__eq__(other)
        if equal is NotImplemented:
            return equal
        return not equal

    def __hash__(self) -> int:
        return hash(self.code)

    def __int__(self) -> int:
        return self.code

    def __str__(self) -> str:
        return f"{self.message} ({self.code})"

    def __repr__(self) -> str:
        return f"Result({self.code})"
