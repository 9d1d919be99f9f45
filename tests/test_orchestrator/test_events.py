"""Tests for the event dispatcher."""

from qtbuilder.models.build import BuildState, RunResult
from qtbuilder.orchestrator.events import CancellingEvent, CompletedEvent, EventDispatcher


class TestEventDispatcher:
    def test_dispatches_by_type(self):
        dispatcher = EventDispatcher()
        cancelling, completed = [], []
        dispatcher.subscribe(CancellingEvent, cancelling.append)
        dispatcher.subscribe(CompletedEvent, completed.append)

        event = CompletedEvent(RunResult(BuildState.success()))
        dispatcher.emit(event)

        assert completed == [event]
        assert cancelling == []

    def test_failing_handler_is_isolated(self):
        dispatcher = EventDispatcher()
        received = []

        def broken(event):
            raise RuntimeError("handler failure")

        dispatcher.subscribe(CancellingEvent, broken)
        dispatcher.subscribe(CancellingEvent, received.append)

        dispatcher.emit(CancellingEvent())

        assert len(received) == 1

    def test_unsubscribe(self):
        dispatcher = EventDispatcher()
        received = []
        dispatcher.subscribe(CancellingEvent, received.append)
        dispatcher.unsubscribe(CancellingEvent, received.append)
        dispatcher.unsubscribe(CancellingEvent, received.append)

        dispatcher.emit(CancellingEvent())

        assert received == []
