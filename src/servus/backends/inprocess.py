"""In-process backend simulating a network of directories for tests."""
import itertools
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..config import Config, HOST_KEY, PORT_KEY
from ..result import Result
from ..store import DirectoryState, Scope, ValueStore
from .base import DiscoveryBackend


@dataclass(frozen=True)
class Publication:
    """
    One announced instance in a shared directory.

    The serial identifies one announcement: it survives republishing and
    changes when the owner withdraws and announces again.
    """
    serial: int
    owner: object
    instance: str
    port: int
    values: Dict[str, str] = field(default_factory=dict, compare=False)


class SharedDirectory:
    """
    Instances announced by all in-process backends of one test run.

    Pass the same directory to every ServiceDirectory that should see the
    others' announcements.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._publications: Dict[int, Publication] = {}
        self._serials = itertools.count(1)

    def publish(self, owner: object, instance: str, port: int, values: Dict[str, str]) -> None:
        with self._lock:
            previous = self._publications.get(id(owner))
            serial = previous.serial if previous is not None else next(self._serials)
            self._publications[id(owner)] = Publication(serial, owner, instance, port, dict(values))

    def unpublish(self, owner: object) -> None:
        with self._lock:
            self._publications.pop(id(owner), None)

    def publications(self) -> List[Publication]:
        with self._lock:
            return list(self._publications.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._publications)


class InProcessBackend(DiscoveryBackend):
    """
    Backend announcing into and browsing a SharedDirectory.

    Each browse() fires add/remove events for the symmetric difference
    between the published instances and the ones seen by the previous
    browse(), then rebuilds the instance table from the published set.
    """

    kind = "test"

    def __init__(self, state: DirectoryState, config: Config,
                 directory: Optional[SharedDirectory] = None):
        super().__init__(state, config)
        self.directory = directory if directory is not None else SharedDirectory()
        self._instance = ""
        self._port = 0
        self._announced = False
        self._browsing = False
        self._seen: Dict[int, str] = {}

    def announce(self, port: int, instance: str) -> Result:
        if self._announced:
            return Result(Result.PENDING)

        self._port = port
        self._instance = self.instance_name(instance)
        self.directory.publish(self, self._instance, self._port, self.state.record.to_dict())
        self._announced = True
        return Result(Result.SUCCESS)

    def withdraw(self) -> None:
        self.directory.unpublish(self)
        self._announced = False
        self._port = 0
        self._instance = ""

    def is_announced(self) -> bool:
        return self._announced

    def republish(self) -> None:
        if self._announced:
            self.directory.publish(self, self._instance, self._port, self.state.record.to_dict())

    def begin_browsing(self, scope: Scope) -> Result:
        if self._browsing:
            return Result(Result.PENDING)

        self.state.instances.clear()
        self._seen.clear()
        self._browsing = True
        return Result(Result.SUCCESS)

    def browse(self, timeout_ms: int) -> Result:
        publications = self.directory.publications()
        current = {publication.serial: publication for publication in publications}

        self.state.instances.clear()
        for publication in publications:
            values = ValueStore({HOST_KEY: "localhost", PORT_KEY: str(publication.port)})
            for key, value in publication.values.items():
                values.set(key, value)
            self.state.instances.put(publication.instance, values)

        for serial in [serial for serial in self._seen if serial not in current]:
            self.state.listeners.notify_removed(self._seen.pop(serial))
        for serial, publication in current.items():
            if serial not in self._seen:
                self._seen[serial] = publication.instance
                self.state.listeners.notify_added(publication.instance)
        return Result(Result.SUCCESS)

    def end_browsing(self) -> None:
        self._browsing = False
        self._seen.clear()

    def is_browsing(self) -> bool:
        return self._browsing
