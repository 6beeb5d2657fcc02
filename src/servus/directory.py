"""Service directory: announce and discover key/value pairs of a named service."""
import logging
from typing import Dict, List, Optional

from .backends import DisabledBackend, DiscoveryBackend, InProcessBackend, MDNSBackend, SharedDirectory
from .config import BACKEND_NONE, DEFAULT_BROWSE_TIME_MS, HOST_KEY, PORT_KEY, TEST_DRIVER, Config
from .exceptions import TransportUnavailableError
from .result import Result
from .store import DirectoryState, Listener, Scope

logger = logging.getLogger(__name__)


class ServiceDirectory:
    """
    Announce and discover key/value pairs of one service over the network.

    The same directory can announce the local record and browse for other
    instances of the service. The backend is chosen once, at construction:
    the TEST_DRIVER service name selects the in-process test backend,
    otherwise multicast DNS is used unless disabled by configuration or
    unavailable, in which case every operation returns NOT_SUPPORTED.

    Public methods are meant to be called from one owning thread. Listener
    callbacks run synchronously on that thread inside browse() and
    discover(). No method raises; failures are reported as Result values or
    empty answers.
    """

    def __init__(self, name: str, config: Optional[Config] = None,
                 shared_directory: Optional[SharedDirectory] = None):
        """
        Create a directory for a service.

        Args:
            name: Service name, e.g. "_hwsd._tcp"
            config: Directory configuration, read from the environment if omitted
            shared_directory: Directory joining in-process test backends; only
                used with the TEST_DRIVER service name
        """
        self.config = config or Config()
        self._state = DirectoryState(name)
        self._backend = self._choose_backend(shared_directory)

    def _choose_backend(self, shared_directory: Optional[SharedDirectory]) -> DiscoveryBackend:
        if self._state.name == TEST_DRIVER:
            return InProcessBackend(self._state, self.config, shared_directory)
        if self.config.backend == BACKEND_NONE:
            return DisabledBackend(self._state, self.config)

        try:
            return MDNSBackend(self._state, self.config)
        except TransportUnavailableError as e:
            logger.warning(f"Error starting Servus client: {e}; announce and browse are disabled")
            return DisabledBackend(self._state, self.config)

    @staticmethod
    def is_available(config: Optional[Config] = None) -> bool:
        """Whether the configuration allows announcing and browsing on the network."""
        return (config or Config()).backend != BACKEND_NONE

    @property
    def name(self) -> str:
        return self._state.name

    @property
    def backend_kind(self) -> str:
        return self._backend.kind

    # Local record

    def set(self, key: str, value: str) -> None:
        """
        Set a key/value pair to be announced.

        Keys should be at most eight characters and values are cut to 255
        characters by the transport. The total length of all keys and values
        cannot exceed 65535 characters. Setting a value on an announced
        service updates the announcement, which takes some time to propagate.
        """
        with self._state.lock:
            self._state.record.set(key, value)
            self._backend.republish()

    def get_keys(self, instance: Optional[str] = None) -> List[str]:
        """Keys of the local record, or of a discovered instance if given."""
        with self._state.lock:
            if instance is None:
                return self._state.record.keys()
            values = self._state.instances.find(instance)
            return values.keys() if values is not None else []

    def get(self, instance_or_key: str, key: Optional[str] = None) -> str:
        """
        Look up a value.

        ``get(key)`` reads the local record, ``get(instance, key)`` a
        discovered instance. Unknown instances or keys yield "".
        """
        with self._state.lock:
            if key is None:
                return self._state.record.get(instance_or_key)
            values = self._state.instances.find(instance_or_key)
            return values.get(key) if values is not None else ""

    # Announcing

    def announce(self, port: int, instance: str = "") -> Result:
        """
        Start announcing the local record.

        Args:
            port: Service port in host byte order
            instance: Host-unique instance name, the hostname if empty

        Returns:
            SUCCESS once published, PENDING if already announced or if the
            transport did not confirm within the announce timeout
        """
        with self._state.lock:
            if self._backend.is_announced():
                return Result(Result.PENDING)
            result = self._backend.announce(port, instance)

        if not result and result != Result.PENDING and result != Result.NOT_SUPPORTED:
            logger.warning(f"Announcing {self.name} failed: {result}")
        return result

    def withdraw(self) -> None:
        """Stop announcing the local record."""
        with self._state.lock:
            self._backend.withdraw()

    def is_announced(self) -> bool:
        with self._state.lock:
            return self._backend.is_announced()

    # Browsing

    def begin_browsing(self, scope: Scope = Scope.ALL) -> Result:
        """Start discovering instances; PENDING if already browsing."""
        with self._state.lock:
            if self._backend.is_browsing():
                return Result(Result.PENDING)
            return self._backend.begin_browsing(scope)

    def browse(self, timeout_ms: int = 0) -> Result:
        """
        Process discovery events for up to timeout_ms milliseconds.

        Listeners are notified before this returns. A POLL_ERROR result
        also ends the browse session.
        """
        with self._state.lock:
            return self._backend.browse(max(timeout_ms, 0))

    def end_browsing(self) -> None:
        """Stop discovering; the discovered instances remain available."""
        with self._state.lock:
            self._backend.end_browsing()

    def is_browsing(self) -> bool:
        with self._state.lock:
            return self._backend.is_browsing()

    def discover(self, scope: Scope = Scope.ALL, browse_time_ms: int = DEFAULT_BROWSE_TIME_MS) -> List[str]:
        """
        Discover all announced instances.

        Reuses a browse session that is already open and leaves it open.

        Args:
            scope: Network scope of the discovery
            browse_time_ms: Time to wait for new records

        Returns:
            All instance names found
        """
        with self._state.lock:
            result = self.begin_browsing(scope)
            if result or result == Result.PENDING:
                self.browse(browse_time_ms)
                if result:
                    self.end_browsing()
            return self.get_instances()

    # Discovered instances

    def get_instances(self) -> List[str]:
        with self._state.lock:
            return self._state.instances.names()

    def contains_key(self, instance: str, key: str) -> bool:
        with self._state.lock:
            values = self._state.instances.find(instance)
            return values is not None and values.contains(key)

    def get_host(self, instance: str) -> str:
        return self.get(instance, HOST_KEY)

    def get_port(self, instance: str) -> int:
        """Announced port of an instance, 0 if unknown or invalid."""
        try:
            port = int(self.get(instance, PORT_KEY))
        except ValueError:
            return 0
        if port < 0 or port > 0xFFFF:
            return 0
        return port

    def get_data(self) -> Dict[str, Dict[str, str]]:
        """Copy of all discovered instances and their values."""
        with self._state.lock:
            return self._state.instances.snapshot()

    # Listeners

    def add_listener(self, listener: Optional[Listener]) -> None:
        with self._state.lock:
            self._state.listeners.add(listener)

    def remove_listener(self, listener: Optional[Listener]) -> None:
        with self._state.lock:
            self._state.listeners.remove(listener)

    # Lifecycle

    def close(self) -> None:
        """Withdraw, stop browsing and release the transport."""
        with self._state.lock:
            self._backend.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def __str__(self) -> str:
        lines = [
            f"Servus instance{' ' if self.is_announced() else ' not '}announced"
            f"{' ' if self.is_browsing() else ' not '}browsing, implementation {self.backend_kind}"
        ]
        for key in self.get_keys():
            lines.append(f"    {key} = {self.get(key)}")
        return "\n".join(lines)
