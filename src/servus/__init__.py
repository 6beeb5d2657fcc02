"""Announce and discover key/value services on the local network."""

from .backends import SharedDirectory
from .config import HOST_KEY, PORT_KEY, TEST_DRIVER, Config, get_hostname
from .directory import ServiceDirectory
from .exceptions import BackendError, ServusError, TransportUnavailableError
from .result import Result
from .store import Listener, Scope, ValueStore

__all__ = [
    'ServiceDirectory',
    'SharedDirectory',
    'Listener',
    'Scope',
    'Result',
    'ValueStore',
    'Config',
    'TEST_DRIVER',
    'HOST_KEY',
    'PORT_KEY',
    'get_hostname',
    'ServusError',
    'BackendError',
    'TransportUnavailableError',
]
