"""Notifier protocol: the sink for per-test lifecycle events."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from specnest.outcomes import HookFailure
from specnest.tree import TestIdentity


@runtime_checkable
class Notifier(Protocol):
    """Receives lifecycle events for one test identity at a time.

    For an executed test the sequence is ``test_started``, an optional
    ``test_failed``, any ``hook_failed`` calls for its ``after_each`` hooks,
    then ``test_finished``. A skipped test only receives ``test_ignored``.
    Group-level hook failures arrive through ``hook_failed`` with no identity.
    """

    def test_ignored(self, identity: TestIdentity, reason: str) -> None:
        ...

    def test_started(self, identity: TestIdentity) -> None:
        ...

    def test_failed(self, identity: TestIdentity, cause: BaseException) -> None:
        ...

    def test_finished(self, identity: TestIdentity) -> None:
        ...

    def hook_failed(self, failure: HookFailure) -> None:
        ...


class NullNotifier:
    """Discards every event."""

    def test_ignored(self, identity: TestIdentity, reason: str) -> None:
        pass

    def test_started(self, identity: TestIdentity) -> None:
        pass

    def test_failed(self, identity: TestIdentity, cause: BaseException) -> None:
        pass

    def test_finished(self, identity: TestIdentity) -> None:
        pass

    def hook_failed(self, failure: HookFailure) -> None:
        pass


class RecordingNotifier:
    """Records events as ``(event, identity, detail)`` tuples in call order."""

    def __init__(self) -> None:
        self.events: list[tuple[str, TestIdentity | None, object]] = []

    def test_ignored(self, identity: TestIdentity, reason: str) -> None:
        self.events.append(("ignored", identity, reason))

    def test_started(self, identity: TestIdentity) -> None:
        self.events.append(("started", identity, None))

    def test_failed(self, identity: TestIdentity, cause: BaseException) -> None:
        self.events.append(("failed", identity, cause))

    def test_finished(self, identity: TestIdentity) -> None:
        self.events.append(("finished", identity, None))

    def hook_failed(self, failure: HookFailure) -> None:
        self.events.append(("hook_failed", failure.identity, failure))

    def of_kind(self, event: str) -> list[tuple[str, TestIdentity | None, object]]:
        return [entry for entry in self.events if entry[0] == event]

    def started(self) -> list[TestIdentity]:
        """Identities in the order they were started."""
        return [identity for _, identity, _ in self.of_kind("started") if identity]
