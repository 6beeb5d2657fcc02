"""Key/value stores, instance tables and listeners shared by directories and backends."""
import logging
import threading
from enum import Enum
from typing import Dict, Iterator, List, Optional

logger = logging.getLogger(__name__)


class Scope(Enum):
    """Network scope of a discovery."""
    ALL = "all"  # all interfaces
    LOCAL = "local"  # only instances running on this host

    def __str__(self) -> str:
        return self.value


class ValueStore:
    """Ordered mapping of string keys to string values."""

    def __init__(self, values: Optional[Dict[str, str]] = None):
        self._values: Dict[str, str] = {}
        if values:
            for key, value in values.items():
                self.set(key, value)

    def set(self, key: str, value: str) -> None:
        self._values[str(key)] = str(value)

    def get(self, key: str) -> str:
        """Return the value for key, or an empty string if unknown."""
        return self._values.get(key, "")

    def contains(self, key: str) -> bool:
        return key in self._values

    def keys(self) -> List[str]:
        return list(self._values)

    def to_dict(self) -> Dict[str, str]:
        return dict(self._values)

    def clear(self) -> None:
        self._values.clear()

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._values))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ValueStore):
            return self._values == other._values
        if isinstance(other, dict):
            return self._values == other
        return NotImplemented

    def __repr__(self) -> str:
        return f"ValueStore({self._values!r})"


class InstanceTable:
    """Discovered instance names mapped to their resolved values."""

    def __init__(self):
        self._instances: Dict[str, ValueStore] = {}

    def put(self, instance: str, values: ValueStore) -> None:
        self._instances[instance] = values

    def remove(self, instance: str) -> bool:
        """Forget an instance. Returns whether it was known."""
        return self._instances.pop(instance, None) is not None

    def find(self, instance: str) -> Optional[ValueStore]:
        return self._instances.get(instance)

    def names(self) -> List[str]:
        return list(self._instances)

    def snapshot(self) -> Dict[str, Dict[str, str]]:
        return {name: values.to_dict() for name, values in self._instances.items()}

    def clear(self) -> None:
        self._instances.clear()

    def __contains__(self, instance: object) -> bool:
        return instance in self._instances

    def __len__(self) -> int:
        return len(self._instances)


class Listener:
    """
    Observer of discovered instances.

    Subclasses override the callbacks they are interested in. Callbacks run
    synchronously on the thread calling browse() or discover().
    """

    def instance_added(self, instance: str) -> None:
        pass

    def instance_removed(self, instance: str) -> None:
        pass


class ListenerRegistry:
    """Set of listeners notified about instance changes."""

    def __init__(self):
        self._listeners: Dict[int, Listener] = {}

    def add(self, listener: Optional[Listener]) -> None:
        if listener is not None:
            self._listeners[id(listener)] = listener

    def remove(self, listener: Optional[Listener]) -> None:
        if listener is not None:
            self._listeners.pop(id(listener), None)

    def notify_added(self, instance: str) -> None:
        for listener in list(self._listeners.values()):
            try:
                listener.instance_added(instance)
            except Exception as e:
                logger.error(f"Listener failed on added instance {instance}: {e}", exc_info=True)

    def notify_removed(self, instance: str) -> None:
        for listener in list(self._listeners.values()):
            try:
                listener.instance_removed(instance)
            except Exception as e:
                logger.error(f"Listener failed on removed instance {instance}: {e}", exc_info=True)

    def __contains__(self, listener: object) -> bool:
        return id(listener) in self._listeners

    def __len__(self) -> int:
        return len(self._listeners)


class DirectoryState:
    """
    State owned by one directory and shared with its backend.

    All fields are guarded by ``lock``; transport threads never touch them
    directly.
    """

    def __init__(self, name: str):
        self.name = name
        self.record = ValueStore()
        self.instances = InstanceTable()
        self.listeners = ListenerRegistry()
        self.lock = threading.RLock()
