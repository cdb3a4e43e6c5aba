"""Tests for the per-device log buffer registry."""

import threading

from core.session_registry import SessionRegistry


def test_create_append_snapshot():
    registry = SessionRegistry()
    registry.create("A")
    assert registry.snapshot("A") == ()

    assert registry.append("A", "line1")
    assert registry.append("A", "line2")

    assert registry.snapshot("A") == ("line1", "line2")
    assert "A" in registry
    assert len(registry) == 1
    assert registry.identities() == ["A"]


def test_unknown_identity_reads_as_not_found():
    registry = SessionRegistry()
    assert registry.snapshot("missing") is None
    assert registry.append("missing", "line") is False
    assert registry.remove("missing") is False


def test_snapshot_is_detached_from_later_appends():
    registry = SessionRegistry()
    registry.create("A")
    registry.append("A", "first")

    before = registry.snapshot("A")
    registry.append("A", "second")

    assert before == ("first",)
    assert registry.snapshot("A")[:len(before)] == before


def test_remove_then_create_starts_empty():
    registry = SessionRegistry()
    registry.create("A")
    registry.append("A", "old")

    assert registry.remove("A")
    assert registry.snapshot("A") is None

    registry.create("A")
    assert registry.snapshot("A") == ()


def test_buffers_are_independent():
    registry = SessionRegistry()
    registry.create("A")
    registry.create("B")
    registry.append("A", "a1")
    registry.append("B", "b1")

    registry.remove("A")

    assert registry.snapshot("B") == ("b1",)


def test_listeners_are_notified_and_isolated():
    registry = SessionRegistry()
    seen = []

    def broken(serial):
        raise RuntimeError("listener bug")

    registry.add_listener(broken)
    registry.add_listener(seen.append)
    registry.create("A")
    registry.append("A", "x")
    registry.remove("A")
    registry.remove_listener(seen.append)
    registry.create("B")

    assert seen == ["A", "A", "A"]


def test_concurrent_appends_keep_every_line_in_order_per_writer():
    registry = SessionRegistry()
    registry.create("A")
    writers = 8
    per_writer = 500

    def write(index):
        for n in range(per_writer):
            registry.append("A", f"{index}:{n}")

    threads = [threading.Thread(target=write, args=(i,)) for i in range(writers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    lines = registry.snapshot("A")
    assert len(lines) == writers * per_writer
    for index in range(writers):
        own = [int(line.split(":")[1]) for line in lines if line.startswith(f"{index}:")]
        assert own == list(range(per_writer))
