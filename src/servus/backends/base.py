"""Discovery backend interface."""
from abc import ABC, abstractmethod

from ..config import Config, get_hostname
from ..result import Result
from ..store import DirectoryState, Scope


class DiscoveryBackend(ABC):
    """
    Transport-specific announce and browse machinery behind a directory.

    A backend reads the record to announce from the shared state and
    writes discovered instances back into it. Every method is called with
    ``state.lock`` held by the directory.
    """

    kind = "abstract"

    def __init__(self, state: DirectoryState, config: Config):
        self.state = state
        self.config = config

    @abstractmethod
    def announce(self, port: int, instance: str) -> Result:
        """
        Publish the local record.

        Args:
            port: Service port in host byte order
            instance: Host-unique instance name, hostname if empty

        Returns:
            Result of the operation, PENDING if already announced
        """

    @abstractmethod
    def withdraw(self) -> None:
        """Stop publishing the local record."""

    @abstractmethod
    def is_announced(self) -> bool:
        """Whether a publication is currently held."""

    @abstractmethod
    def begin_browsing(self, scope: Scope) -> Result:
        """Open a browse session, PENDING if one is already open."""

    @abstractmethod
    def browse(self, timeout_ms: int) -> Result:
        """Process discovery events for up to timeout_ms milliseconds."""

    @abstractmethod
    def end_browsing(self) -> None:
        """Close the browse session, keeping discovered instances."""

    @abstractmethod
    def is_browsing(self) -> bool:
        """Whether a browse session is open."""

    @abstractmethod
    def republish(self) -> None:
        """Push the changed local record to the transport if announced."""

    def close(self) -> None:
        """Release the transport."""
        self.withdraw()
        self.end_browsing()

    @staticmethod
    def instance_name(instance: str) -> str:
        return instance or get_hostname()
