"""Tests for result codes, value stores, listeners and the event pump."""
import logging
import sys
import threading
import time

from servus import Listener, Result, ValueStore
from servus.backends.pump import ADDED, REMOVED, Event, EventPump, coalesce
from servus.result import DNSSD_NAME_CONFLICT
from servus.store import InstanceTable, ListenerRegistry, Scope


def test_result_truthiness():
    """Test that only success is truthy."""
    print("Testing result truthiness...")
    assert Result(Result.SUCCESS)
    assert Result()
    assert not Result(Result.PENDING)
    assert not Result(Result.NOT_SUPPORTED)
    assert not Result(Result.POLL_ERROR)
    assert not Result(DNSSD_NAME_CONFLICT)
    print("  [OK] Result truthiness works")


def test_result_comparison():
    """Test comparing results with codes and other results."""
    print("Testing result comparison...")
    assert Result(Result.PENDING) == Result.PENDING
    assert Result(Result.PENDING) == Result(Result.PENDING)
    assert Result(Result.PENDING) != Result.SUCCESS
    assert Result(Result.PENDING) != Result(Result.POLL_ERROR)
    assert Result(Result.PENDING) != "pending"
    assert int(Result(DNSSD_NAME_CONFLICT)) == DNSSD_NAME_CONFLICT
    assert len({Result(0), Result(0), Result(-1)}) == 2
    print("  [OK] Result comparison works")


def test_result_messages():
    """Test the human-readable code table."""
    print("Testing result messages...")
    assert Result(Result.PENDING).message == "operation pending"
    assert Result(Result.NOT_SUPPORTED).message == "Servus compiled without ZeroConf support"
    assert Result(Result.POLL_ERROR).message == "Error polling for events"
    assert Result(DNSSD_NAME_CONFLICT).message == "name conflict"
    assert Result(-65559).message == "bad time"
    assert Result(-99).message == "result code -99"
    assert Result(2).message  # errno text from the platform
    assert str(Result(Result.PENDING)) == "operation pending (-1)"
    assert repr(Result(Result.PENDING)) == "Result(-1)"
    print("  [OK] Result messages work")


def test_scope():
    """Test scope names."""
    print("Testing scope...")
    assert str(Scope.ALL) == "all"
    assert str(Scope.LOCAL) == "local"
    print("  [OK] Scope works")


def test_value_store():
    """Test ordered overwrite semantics."""
    print("Testing value store...")
    values = ValueStore({"b": "1"})
    values.set("a", "2")
    values.set("b", "3")
    values.set("c", 4)

    assert values.keys() == ["b", "a", "c"]
    assert values.get("b") == "3"
    assert values.get("c") == "4", "Values are stored as strings"
    assert values.get("missing") == ""
    assert values.contains("a")
    assert not values.contains("missing")
    assert len(values) == 3
    assert values == {"b": "3", "a": "2", "c": "4"}

    copy = values.to_dict()
    copy["a"] = "changed"
    assert values.get("a") == "2", "to_dict returns a copy"

    values.clear()
    assert len(values) == 0
    print("  [OK] Value store works")


def test_instance_table():
    """Test instance bookkeeping."""
    print("Testing instance table...")
    table = InstanceTable()
    table.put("I1", ValueStore({"servus_host": "h1"}))
    table.put("I2", ValueStore({"servus_host": "h2"}))

    assert table.names() == ["I1", "I2"]
    assert "I1" in table
    assert table.find("I1").get("servus_host") == "h1"
    assert table.find("I3") is None
    assert table.remove("I1")
    assert not table.remove("I1")
    assert table.snapshot() == {"I2": {"servus_host": "h2"}}
    table.clear()
    assert len(table) == 0
    print("  [OK] Instance table works")


def test_listener_failure_is_logged(caplog):
    """Test that one failing listener does not stop the others."""
    print("Testing listener failure...")
    received = []

    class Failing(Listener):
        def instance_added(self, instance):
            raise RuntimeError("boom")

    class Recording(Listener):
        def instance_added(self, instance):
            received.append(instance)

    registry = ListenerRegistry()
    failing = Failing()
    registry.add(failing)
    registry.add(Recording())
    registry.add(failing)
    assert len(registry) == 2
    assert failing in registry

    with caplog.at_level(logging.ERROR, logger="servus.store"):
        registry.notify_added("I1")
        registry.notify_removed("I1")

    assert received == ["I1"]
    assert "Listener failed on added instance I1" in caplog.text
    print("  [OK] Listener failure is logged")


def test_coalesce():
    """Test that an add followed by a remove collapses to the remove."""
    print("Testing event coalescing...")
    events = [
        Event(ADDED, "I1"),
        Event(ADDED, "I2"),
        Event(REMOVED, "I1"),
        Event(ADDED, "I1"),
    ]
    result = coalesce(events)
    assert [(e.kind, e.name) for e in result] == [
        (ADDED, "I2"),
        (REMOVED, "I1"),
        (ADDED, "I1"),
    ]
    print("  [OK] Coalescing works")


def test_pump_dispatch_order():
    """Test that events are applied in the order they were posted."""
    print("Testing pump dispatch...")
    pump = EventPump()
    applied = []
    pump.on(ADDED, lambda event: applied.append(("added", event.name)))
    pump.on(REMOVED, lambda event: applied.append(("removed", event.name)))

    pump.post(ADDED, "I1")
    pump.post(ADDED, "I2")
    pump.post(REMOVED, "I2")
    pump.post("unknown", "I3")
    assert pump.pending() == 4

    count = pump.iterate(0)
    assert count == 3, "I2's add collapses into its removal"
    assert applied == [("added", "I1"), ("removed", "I2")]
    assert pump.pending() == 0
    print("  [OK] Pump dispatch works")


def test_pump_timeout_is_bounded():
    """Test that iterate() waits no longer than its timeout."""
    print("Testing pump timeout...")
    pump = EventPump()

    start = time.monotonic()
    assert pump.iterate(50) == 0
    elapsed = time.monotonic() - start
    assert 0.04 <= elapsed < 1.0, f"Unexpected wait of {elapsed:.3f}s"
    print("  [OK] Pump timeout works")


def test_pump_until():
    """Test that iterate() returns early once the predicate holds."""
    print("Testing pump early exit...")
    pump = EventPump()
    done = []
    pump.on(ADDED, lambda event: done.append(event.name))

    # post from another thread, like a transport callback
    threading.Timer(0.05, pump.post, args=(ADDED, "I1")).start()

    start = time.monotonic()
    pump.iterate(5000, until=lambda: bool(done))
    elapsed = time.monotonic() - start
    assert done == ["I1"]
    assert elapsed < 2.0, f"iterate() should stop early, took {elapsed:.3f}s"
    print("  [OK] Pump early exit works")


def run_all_tests():
    """Run all tests that need no fixtures."""
    print("=" * 60)
    print("Running Store Tests")
    print("=" * 60)
    print()

    tests = [
        test_result_truthiness,
        test_result_comparison,
        test_result_messages,
        test_scope,
        test_value_store,
        test_instance_table,
        test_coalesce,
        test_pump_dispatch_order,
        test_pump_timeout_is_bounded,
        test_pump_until,
    ]
    tests_passed = 0
    tests_failed = 0

    for test in tests:
        try:
            test()
            tests_passed += 1
        except AssertionError as e:
            print(f"  [FAIL] {e}")
            tests_failed += 1
        print()

    print("=" * 60)
    print(f"Tests passed: {tests_passed}")
    print(f"Tests failed: {tests_failed}")
    print("=" * 60)

    return tests_failed == 0


if __name__ == "__main__":
    success = run_all_tests()
    sys.exit(0 if success else 1)
