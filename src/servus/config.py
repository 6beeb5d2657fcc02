"""Configuration management for service directories."""
import os
import socket
from typing import Optional

# Service name that routes a directory to the in-process test backend
TEST_DRIVER = "servus::TEST_DRIVER"

# Backend selection
BACKEND_AUTO = "auto"
BACKEND_NONE = "none"
BACKENDS = (BACKEND_AUTO, BACKEND_NONE)

# Timeouts (milliseconds)
ANNOUNCE_TIMEOUT_MS = 1000
RESOLVE_TIMEOUT_MS = 1000
DEFAULT_BROWSE_TIME_MS = 2000

# Longest TXT string the transport carries, as key=value
MAX_VALUE_LENGTH = 255

# Keys filled in by the backend on every discovered instance
HOST_KEY = "servus_host"
PORT_KEY = "servus_port"

DEFAULT_LOG_LEVEL = "WARNING"


def get_hostname() -> str:
    """Return the local hostname."""
    return socket.gethostname()


class Config:
    """Directory configuration."""

    def __init__(self, backend: Optional[str] = None):
        self.backend: str = (backend or os.getenv("SERVUS_BACKEND", BACKEND_AUTO)).lower()
        if self.backend not in BACKENDS:
            self.backend = BACKEND_AUTO
        self.announce_timeout_ms: int = int(os.getenv("SERVUS_ANNOUNCE_TIMEOUT", ANNOUNCE_TIMEOUT_MS))
        self.resolve_timeout_ms: int = int(os.getenv("SERVUS_RESOLVE_TIMEOUT", RESOLVE_TIMEOUT_MS))
        self.log_level: str = os.getenv("SERVUS_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()

    def get_local_ip(self) -> Optional[str]:
        """Get local IP address for primary network interface."""
        import netifaces

        try:
            # Get default gateway interface
            gateways = netifaces.gateways()
            default_interface = gateways['default'][netifaces.AF_INET][1]

            # Get IP address for that interface
            addresses = netifaces.ifaddresses(default_interface)
            if netifaces.AF_INET in addresses:
                return addresses[netifaces.AF_INET][0]['addr']
        except (KeyError, IndexError, ValueError, OSError):
            pass

        # Fallback: the address the kernel would route external traffic from
        s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            s.connect(("10.255.255.255", 1))
            return s.getsockname()[0]
        except OSError:
            return "127.0.0.1"
        finally:
            s.close()
