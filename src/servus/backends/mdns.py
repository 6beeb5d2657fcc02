"""Multicast-DNS backend on top of python-zeroconf."""
import asyncio
import functools
import logging
from concurrent.futures import Future
from typing import Any, Callable, Dict, Optional

from zeroconf import (
    BadTypeInNameException,
    Error as ZeroconfError,
    NamePartTooLongException,
    NonUniqueNameException,
    NotRunningException,
    ServiceBrowser,
    ServiceInfo,
    ServiceNameAlreadyRegistered,
    ServiceStateChange,
    Zeroconf,
)

from ..config import Config, HOST_KEY, MAX_VALUE_LENGTH, PORT_KEY, get_hostname
from ..exceptions import TransportUnavailableError
from ..result import (
    DNSSD_ALREADY_REGISTERED,
    DNSSD_BAD_PARAM,
    DNSSD_NAME_CONFLICT,
    DNSSD_NOT_INITIALIZED,
    DNSSD_UNKNOWN,
    Result,
)
from ..store import DirectoryState, Scope, ValueStore
from .base import DiscoveryBackend
from .pump import ADDED, REGISTERED, REMOVED, Event, EventPump

logger = logging.getLogger(__name__)


def service_type(name: str) -> str:
    """Fully qualified DNS-SD type for a service name, e.g. ``_hwsd._tcp.local.``"""
    if name.endswith(".local."):
        return name
    if name.endswith(".local"):
        return name + "."
    return f"{name.rstrip('.')}.local."


def error_code(error: BaseException) -> int:
    """Translate a transport exception into a result code."""
    if isinstance(error, NonUniqueNameException):
        return DNSSD_NAME_CONFLICT
    if isinstance(error, ServiceNameAlreadyRegistered):
        return DNSSD_ALREADY_REGISTERED
    if isinstance(error, (BadTypeInNameException, NamePartTooLongException)):
        return DNSSD_BAD_PARAM
    if isinstance(error, NotRunningException):
        return DNSSD_NOT_INITIALIZED
    if isinstance(error, OSError) and error.errno:
        return error.errno
    return DNSSD_UNKNOWN


def txt_properties(values: Dict[str, str]) -> Dict[str, str]:
    """Cut values so every ``key=value`` TXT item fits in MAX_VALUE_LENGTH bytes."""
    properties: Dict[str, str] = {}
    for key, value in values.items():
        budget = max(MAX_VALUE_LENGTH - len(key.encode("utf-8")) - 1, 0)
        properties[key] = value.encode("utf-8")[:budget].decode("utf-8", errors="ignore")
    return properties


def decode_properties(properties: Optional[Dict[Any, Any]]) -> Dict[str, str]:
    """Decode TXT properties delivered by the transport into strings."""
    if not properties:
        return {}
    decoded: Dict[str, str] = {}
    for raw_key, raw_value in properties.items():
        key = raw_key.decode("utf-8", errors="ignore") if isinstance(raw_key, (bytes, bytearray)) else str(raw_key)
        if raw_value is None:
            value = ""
        elif isinstance(raw_value, (bytes, bytearray)):
            value = raw_value.decode("utf-8", errors="ignore")
        else:
            value = str(raw_value)
        decoded[key] = value
    return decoded


def is_local_host(host: str, hostname: Optional[str] = None) -> bool:
    """
    Whether a resolved host name designates this machine.

    The host arrives as ``name.local``; its domain is dropped and the rest
    compared with the first label of the local hostname.
    """
    host = host.rstrip(".")
    host_name = host.rpartition(".")[0] or host
    local = (hostname or get_hostname()).split(".")[0]
    return host_name == local


class MDNSBackend(DiscoveryBackend):
    """
    Backend announcing and browsing with multicast DNS.

    Zeroconf delivers browse and registration callbacks on its own threads.
    Those callbacks only post events to an EventPump; the events are applied
    to the shared state when the owning thread calls browse() or announce().
    """

    kind = "zeroconf"

    def __init__(self, state: DirectoryState, config: Config,
                 zeroconf: Optional[Zeroconf] = None,
                 browser_factory: Callable[..., Any] = ServiceBrowser):
        super().__init__(state, config)
        self.service_type = service_type(state.name)
        self._owns_transport = zeroconf is None
        if zeroconf is None:
            try:
                zeroconf = Zeroconf()
            except (OSError, ZeroconfError) as e:
                raise TransportUnavailableError(f"Can't set up zeroconf: {e}", e) from e
        self._zeroconf = zeroconf
        self._browser_factory = browser_factory

        self._pump = EventPump()
        self._pump.on(REGISTERED, self._on_registered)
        self._pump.on(ADDED, self._on_added)
        self._pump.on(REMOVED, self._on_removed)

        # Announce state
        self._info: Optional[ServiceInfo] = None
        self._published: Optional[ServiceInfo] = None
        self._registration: Optional[Future] = None
        self._registering: Optional[ServiceInfo] = None
        self._announce_result = Result.PENDING
        self._port = 0
        self._instance = ""

        # Browse state
        self._browser: Optional[Any] = None
        self._session = 0
        self._scope = Scope.ALL

    # Announcing

    def announce(self, port: int, instance: str) -> Result:
        if self._info is not None:
            return Result(Result.PENDING)

        self._port = port
        self._instance = self.instance_name(instance)
        try:
            info = self._service_info()
        except (BadTypeInNameException, NamePartTooLongException) as e:
            logger.warning(f"Can't announce {self._instance} as {self.service_type}: {e}")
            return Result(error_code(e))

        self._announce_result = Result.PENDING
        registration = self._submit(self._zeroconf.async_register_service(info), log_failure=False)
        if registration is None:
            return Result(DNSSD_NOT_INITIALIZED)

        self._info = info
        self._registration = registration
        self._registering = info
        name = self._instance
        registration.add_done_callback(lambda future: self._pump.post(REGISTERED, name, (future, info)))

        self._pump.iterate(self.config.announce_timeout_ms,
                           until=lambda: self._announce_result != Result.PENDING)
        if self._announce_result == Result.PENDING:
            logger.info(f"Announcing {self._instance} still pending after "
                        f"{self.config.announce_timeout_ms} ms")
        return Result(self._announce_result)

    def withdraw(self) -> None:
        if self._info is None:
            return

        self._settle_registration()
        registration = self._registration
        if registration is not None and not registration.done():
            registration.cancel()
        elif self._published is not None:
            self._submit(self._zeroconf.async_unregister_service(self._published))

        self._info = None
        self._published = None
        self._registration = None
        self._registering = None
        self._port = 0
        self._instance = ""

    def is_announced(self) -> bool:
        return self._info is not None

    def republish(self) -> None:
        if self._info is None:
            return

        self._settle_registration()
        self._info = self._service_info()
        if self._published is not None:
            self._submit(self._zeroconf.async_update_service(self._info))
            self._published = self._info

    def _service_info(self) -> ServiceInfo:
        host = get_hostname().split(".")[0]
        return ServiceInfo(
            type_=self.service_type,
            name=f"{self._instance}.{self.service_type}",
            port=self._port,
            properties=txt_properties(self.state.record.to_dict()),
            server=f"{host}.local.",
            parsed_addresses=[self.config.get_local_ip()],
        )

    def _on_registered(self, event: Event) -> None:
        future, info = event.payload
        if future is not self._registration or future.cancelled():
            return

        error = future.exception()
        if error is not None:
            logger.warning(f"Register error for {event.name}: {error}")
            self._announce_result = error_code(error)
            self._info = None
            self._registration = None
            self._registering = None
            return

        self._announce_result = Result.SUCCESS
        if self._published is None:
            self._published = info
            if self._info is not info:
                # record changed while registering
                self.republish()
        logger.debug(f"Registered {event.name} as {self.service_type} on port {self._port}")

    def _settle_registration(self) -> None:
        """Take over a registration the transport finished before its event was pumped."""
        registration = self._registration
        if self._published is not None or registration is None or not registration.done():
            return
        if registration.cancelled() or registration.exception() is not None:
            return
        self._published = self._registering

    # Browsing

    def begin_browsing(self, scope: Scope) -> Result:
        if self._browser is not None:
            return Result(Result.PENDING)

        self.state.instances.clear()
        self._scope = scope
        self._session += 1
        handler = functools.partial(self._on_service_state_change, self._session)
        try:
            self._browser = self._browser_factory(self._zeroconf, self.service_type, handlers=[handler])
        except (ZeroconfError, OSError, RuntimeError) as e:
            logger.warning(f"Browse error for {self.service_type} on {scope} interfaces: {e}")
            self._browser = None
            return Result(error_code(e))
        return Result(Result.SUCCESS)

    def browse(self, timeout_ms: int) -> Result:
        if self._zeroconf.done:
            logger.warning(f"Error polling for {self.service_type} events: transport closed")
            self.end_browsing()
            return Result(Result.POLL_ERROR)

        self._pump.iterate(timeout_ms)
        return Result(Result.SUCCESS)

    def end_browsing(self) -> None:
        if self._browser is None:
            return

        browser = self._browser
        self._browser = None
        browser.cancel()

    def is_browsing(self) -> bool:
        return self._browser is not None

    def _on_service_state_change(self, session: int, zeroconf: Zeroconf, service_type: str,
                                 name: str, state_change: ServiceStateChange) -> None:
        # Runs on the browser thread
        if state_change is ServiceStateChange.Removed:
            self._pump.post(REMOVED, name, session)
            return

        info = zeroconf.get_service_info(service_type, name, timeout=self.config.resolve_timeout_ms)
        if info is None:
            logger.debug(f"Resolve timed out for {name}")
            return
        self._pump.post(ADDED, name, (session, info))

    def _on_added(self, event: Event) -> None:
        session, info = event.payload
        if not self._in_session(session):
            return

        host = (info.server or "").rstrip(".")
        if not host:
            logger.debug(f"Ignoring {event.name} without host")
            return
        if self._scope is Scope.LOCAL and not is_local_host(host):
            return

        instance = self._instance_of(event.name)
        values = ValueStore({HOST_KEY: host, PORT_KEY: str(info.port or 0)})
        for key, value in decode_properties(info.properties).items():
            values.set(key, value)

        known = instance in self.state.instances
        self.state.instances.put(instance, values)
        if not known:
            self.state.listeners.notify_added(instance)

    def _on_removed(self, event: Event) -> None:
        if not self._in_session(event.payload):
            return

        instance = self._instance_of(event.name)
        if self.state.instances.remove(instance):
            self.state.listeners.notify_removed(instance)

    def _in_session(self, session: int) -> bool:
        return self._browser is not None and session == self._session

    def _instance_of(self, name: str) -> str:
        suffix = "." + self.service_type
        if name.endswith(suffix):
            return name[:-len(suffix)]
        return name

    # Transport

    def _submit(self, coro, log_failure: bool = True) -> Optional[Future]:
        """Schedule a coroutine on the zeroconf event loop without waiting for it."""
        try:
            future = asyncio.run_coroutine_threadsafe(coro, self._zeroconf.loop)
        except RuntimeError as e:
            coro.close()
            logger.warning(f"Zeroconf event loop unavailable: {e}")
            return None
        if log_failure:
            future.add_done_callback(self._log_failure)
        return future

    @staticmethod
    def _log_failure(future: Future) -> None:
        if not future.cancelled() and future.exception() is not None:
            logger.warning(f"Zeroconf operation failed: {future.exception()}")

    def close(self) -> None:
        super().close()
        if self._owns_transport:
            self._zeroconf.close()
