"""No-op backend used when no transport is usable."""
from ..result import Result
from ..store import Scope
from .base import DiscoveryBackend


class DisabledBackend(DiscoveryBackend):
    """Backend answering NOT_SUPPORTED to every mutating operation."""

    kind = "none"

    def announce(self, port: int, instance: str) -> Result:
        return Result(Result.NOT_SUPPORTED)

    def withdraw(self) -> None:
        pass

    def is_announced(self) -> bool:
        return False

    def begin_browsing(self, scope: Scope) -> Result:
        return Result(Result.NOT_SUPPORTED)

    def browse(self, timeout_ms: int) -> Result:
        return Result(Result.NOT_SUPPORTED)

    def end_browsing(self) -> None:
        pass

    def is_browsing(self) -> bool:
        return False

    def republish(self) -> None:
        pass
