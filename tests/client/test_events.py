"""Tests for event dispatch and buffering."""

from __future__ import annotations

from gcsuploader.client.events import EventDispatcher
from gcsuploader.core.types import EventKind


class TestEventDispatcher:
    """Tests for EventDispatcher."""

    def test_emit_with_listener_delivers_immediately(self) -> None:
        """Should call the listener synchronously."""
        events = EventDispatcher()
        received: list[int] = []
        events.on(EventKind.PROGRESS, received.append)

        events.emit(EventKind.PROGRESS, 10)

        assert received == [10]

    def test_emit_without_listener_buffers(self) -> None:
        """Should keep payload events in arrival order."""
        events = EventDispatcher()
        events.emit(EventKind.PROGRESS, 1)
        events.emit(EventKind.PROGRESS, 2)
        events.emit(EventKind.PROGRESS, 3)

        assert events.pending(EventKind.PROGRESS) == [1, 2, 3]

        received: list[int] = []
        events.on(EventKind.PROGRESS, received.append)

        assert received == [1, 2, 3]
        assert events.pending(EventKind.PROGRESS) == []

    def test_signal_events_keep_single_entry(self) -> None:
        """Done, cancel and pause should buffer at most one signal."""
        events = EventDispatcher()
        for _ in range(3):
            events.emit(EventKind.DONE)
            events.emit(EventKind.CANCEL)
            events.emit(EventKind.PAUSE)

        calls: list[str] = []
        events.on(EventKind.DONE, lambda: calls.append("done"))
        events.on(EventKind.CANCEL, lambda: calls.append("cancel"))
        events.on(EventKind.PAUSE, lambda: calls.append("pause"))

        assert calls == ["done", "cancel", "pause"]

    def test_errors_are_not_collapsed(self) -> None:
        """Every buffered error should be delivered."""
        events = EventDispatcher()
        first, second = ValueError("a"), ValueError("b")
        events.emit(EventKind.ERROR, first)
        events.emit(EventKind.ERROR, second)

        received: list[BaseException] = []
        events.on("error", received.append)

        assert received == [first, second]

    def test_last_registration_wins(self) -> None:
        """Only the most recent listener should receive new events."""
        events = EventDispatcher()
        old: list[int] = []
        new: list[int] = []
        events.on(EventKind.PROGRESS, old.append)
        events.on(EventKind.PROGRESS, new.append)

        events.emit(EventKind.PROGRESS, 5)

        assert old == []
        assert new == [5]

    def test_late_listener_sees_only_new_events(self) -> None:
        """A flushed queue should not be replayed to the next listener."""
        events = EventDispatcher()
        events.emit(EventKind.PROGRESS, 1)
        first: list[int] = []
        events.on(EventKind.PROGRESS, first.append)

        events.off(EventKind.PROGRESS)
        assert events.has_listener(EventKind.PROGRESS) is False
        events.emit(EventKind.PROGRESS, 2)

        second: list[int] = []
        events.on(EventKind.PROGRESS, second.append)

        assert first == [1]
        assert second == [2]

    def test_kinds_are_independent(self) -> None:
        """Registering one kind should not flush another."""
        events = EventDispatcher()
        events.emit(EventKind.ERROR, RuntimeError("x"))
        events.on(EventKind.PROGRESS, lambda _: None)

        assert len(events.pending(EventKind.ERROR)) == 1

    def test_failing_listener_is_contained(self, caplog) -> None:  # type: ignore[no-untyped-def]
        """A raising listener should be logged and keep receiving events."""
        events = EventDispatcher()
        calls: list[int] = []

        def listener(offset: int) -> None:
            calls.append(offset)
            raise RuntimeError("boom")

        events.emit(EventKind.PROGRESS, 1)
        events.on(EventKind.PROGRESS, listener)
        events.emit(EventKind.PROGRESS, 2)

        assert calls == [1, 2]
        assert events.pending(EventKind.PROGRESS) == []
        assert "boom" in caplog.text
