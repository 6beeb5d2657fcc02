"""Discovery backends: multicast DNS, in-process test directory and disabled."""

from .base import DiscoveryBackend
from .disabled import DisabledBackend
from .inprocess import InProcessBackend, Publication, SharedDirectory
from .mdns import MDNSBackend

__all__ = [
    'DiscoveryBackend',
    'DisabledBackend',
    'InProcessBackend',
    'MDNSBackend',
    'Publication',
    'SharedDirectory',
]
