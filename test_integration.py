"""Integration tests for announcing and browsing services end to end."""
import os
import random
import sys
import time

import pytest

from servus import (
    TEST_DRIVER,
    Config,
    Listener,
    Result,
    Scope,
    ServiceDirectory,
    SharedDirectory,
)

LIVE = bool(os.getenv("SERVUS_LIVE_TESTS"))


class CountingListener(Listener):
    def __init__(self):
        self.added = []
        self.removed = []

    def instance_added(self, instance):
        self.added.append(instance)

    def instance_removed(self, instance):
        self.removed.append(instance)


def _random_port():
    return random.randint(1024, 65534)


def test_in_process_lifecycle():
    """Test a full announce, discover and browse cycle between directories."""
    print("Testing in-process lifecycle...")
    shared = SharedDirectory()
    port = _random_port()

    service = ServiceDirectory(TEST_DRIVER, shared_directory=shared)
    assert service.name == TEST_DRIVER
    assert service.backend_kind == "test"

    assert service.announce(port, str(port))
    service.withdraw()
    assert not service.is_announced()

    service.set("foo", "bar")
    assert service.get("foo") == "bar"
    assert service.get("bar") == ""
    assert service.announce(port, str(port))

    hosts = service.discover(Scope.LOCAL, 10)
    assert hosts == [str(port)], f"Expected own instance, got {hosts}"
    assert service.contains_key(hosts[0], "foo")
    assert service.get(hosts[0], "foo") == "bar"
    assert service.get("bar", "foo") == ""
    assert service.get(hosts[0], "foobar") == ""
    assert service.get_port(hosts[0]) == port

    service.set("foobar", "42")
    hosts = service.discover(Scope.LOCAL, 10)
    assert service.get(hosts[0], "foobar") == "42"
    assert len(service.get_keys()) == 2

    # continuous browsing
    listener = CountingListener()
    service.add_listener(listener)
    assert not service.is_browsing()
    assert service.begin_browsing(Scope.LOCAL)
    assert service.is_browsing()
    assert service.begin_browsing(Scope.LOCAL) == Result.PENDING

    assert service.browse(0) == service.browse(0)
    assert service.get_instances() == [str(port)]
    assert listener.added == [str(port)]

    with ServiceDirectory(TEST_DRIVER, shared_directory=shared) as service2:
        assert service2.announce(port + 1, str(port + 1))
        assert service.browse(0)
        assert len(service.get_instances()) == 2
        assert listener.added == [str(port), str(port + 1)]

    assert service.browse(0)
    assert service.get_instances() == [str(port)]
    assert listener.removed == [str(port + 1)]

    service.end_browsing()
    assert not service.is_browsing()
    hosts = service.get_instances()
    assert hosts == [str(port)], "Instances survive the end of browsing"
    assert service.get(hosts[0], "foo") == "bar"

    service.close()
    assert not service.is_announced()
    assert len(shared) == 0
    print("  [OK] In-process lifecycle works")


@pytest.mark.skipif(not LIVE, reason="set SERVUS_LIVE_TESTS to use the network")
def test_zeroconf_lifecycle():
    """Test announcing and discovering over multicast DNS."""
    print("Testing zeroconf lifecycle...")
    port = _random_port()
    name = f"_servustest_{port}._tcp"

    with ServiceDirectory(name, Config(backend="auto")) as service:
        assert service.name == name
        if not ServiceDirectory.is_available() or service.backend_kind == "none":
            assert service.announce(port, str(port)) == Result.NOT_SUPPORTED
            print("  [SKIP] No zeroconf transport available")
            return

        service.set("foo", "bar")
        result = service.announce(port, str(port))
        if not result:
            print(f"  [SKIP] Got {result}: looks like a broken zeroconf setup")
            return

        hosts = service.discover(Scope.LOCAL, 2000)
        assert hosts == [str(port)], f"Expected own instance, got {hosts}"
        assert service.get(hosts[0], "foo") == "bar"

        service.set("foobar", "42")
        time.sleep(2)
        hosts = service.discover(Scope.LOCAL, 2000)
        assert service.get(hosts[0], "foobar") == "42"

        assert service.begin_browsing(Scope.LOCAL)
        with ServiceDirectory(name, Config(backend="auto")) as service2:
            assert service2.announce(port + 1, str(port + 1))
            assert service.browse(2000)
            assert len(service.get_instances()) == 2
        time.sleep(1)
        assert service.browse(2000)
        assert service.get_instances() == [str(port)]
        service.end_browsing()
    print("  [OK] Zeroconf lifecycle works")


def run_all_tests():
    """Run all integration tests."""
    print("=" * 60)
    print("Running Servus Integration Tests")
    print("=" * 60)
    print()

    tests_passed = 0
    tests_failed = 0

    # Test 1: In-process lifecycle
    try:
        test_in_process_lifecycle()
        tests_passed += 1
    except AssertionError as e:
        print(f"  [FAIL] {e}")
        tests_failed += 1

    print()

    # Test 2: Zeroconf lifecycle (network)
    if LIVE:
        try:
            test_zeroconf_lifecycle()
            tests_passed += 1
        except AssertionError as e:
            print(f"  [FAIL] {e}")
            tests_failed += 1
    else:
        print("  [SKIP] Zeroconf test skipped (set SERVUS_LIVE_TESTS)")

    print()
    print("=" * 60)
    print(f"Tests passed: {tests_passed}")
    print(f"Tests failed: {tests_failed}")
    print("=" * 60)

    return tests_failed == 0


if __name__ == "__main__":
    success = run_all_tests()
    sys.exit(0 if success else 1)
