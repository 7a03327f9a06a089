"""Suite tree model: groups, test cases and the flattened test plan."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Callable

from specnest.exceptions import SpecDeclarationError

Body = Callable[[], object]

IDENTITY_SEPARATOR = " > "


@dataclass(frozen=True)
class TestIdentity:
    """Identity of one test: its ancestor group descriptions plus its own."""

    __test__ = False

    path: tuple[str, ...]
    description: str

    @property
    def full_name(self) -> str:
        return IDENTITY_SEPARATOR.join((*self.path, self.description))

    def __str__(self) -> str:
        return self.full_name


@dataclass(frozen=True)
class TestCase:
    """A declared test with its deferred body."""

    __test__ = False

    description: str
    body: Body = field(repr=False, compare=False)
    ignored: bool = False


class SpecNode:
    """One declared group of hooks, tests and nested groups.

    Nodes are filled in through the ``add_*`` methods while the group's
    closure runs and sealed once it returns.
    """

    def __init__(
        self, description: str, path: tuple[str, ...] = (), *, root: bool = False
    ) -> None:
        if not description:
            raise SpecDeclarationError("Group description must not be empty", path)
        self.description = description
        self.path = path
        self.root = root
        self._before_all: list[Body] = []
        self._before_each: list[Body] = []
        self._after_each: list[Body] = []
        self._after_all: list[Body] = []
        self._members: list[TestCase | SpecNode] = []
        self._sealed = False

    def __repr__(self) -> str:
        return (
            f"SpecNode({self.description!r}, tests={len(self.tests)}, "
            f"children={len(self.children)})"
        )

    @property
    def sealed(self) -> bool:
        return self._sealed

    @property
    def before_all(self) -> tuple[Body, ...]:
        return tuple(self._before_all)

    @property
    def before_each(self) -> tuple[Body, ...]:
        return tuple(self._before_each)

    @property
    def after_each(self) -> tuple[Body, ...]:
        return tuple(self._after_each)

    @property
    def after_all(self) -> tuple[Body, ...]:
        return tuple(self._after_all)

    @property
    def members(self) -> tuple[TestCase | SpecNode, ...]:
        """Tests and child groups in declaration order."""
        return tuple(self._members)

    @property
    def tests(self) -> tuple[TestCase, ...]:
        return tuple(m for m in self._members if isinstance(m, TestCase))

    @property
    def children(self) -> tuple[SpecNode, ...]:
        return tuple(m for m in self._members if isinstance(m, SpecNode))

    def child_path(self) -> tuple[str, ...]:
        """Path that identifies tests declared directly in this node.

        The root node is named after the spec class and is not part of any path.
        """
        if self.root:
            return self.path
        return (*self.path, self.description)

    def add_before_all(self, body: Body) -> None:
        self._check_open()
        self._before_all.append(body)

    def add_before_each(self, body: Body) -> None:
        self._check_open()
        self._before_each.append(body)

    def add_after_each(self, body: Body) -> None:
        self._check_open()
        self._after_each.append(body)

    def add_after_all(self, body: Body) -> None:
        self._check_open()
        self._after_all.append(body)

    def add_test(self, test: TestCase) -> None:
        self._check_open()
        if not test.description:
            raise SpecDeclarationError("Test description must not be empty", self.path)
        self._members.append(test)

    def add_child(self, child: SpecNode) -> None:
        self._check_open()
        self._members.append(child)

    def seal(self) -> None:
        self._sealed = True

    def _check_open(self) -> None:
        if self._sealed:
            raise SpecDeclarationError(
                f"Group '{self.description}' is closed; declare hooks and tests "
                "inside its closure",
                self.path,
            )


@dataclass(frozen=True)
class PlannedTest:
    """Planning-phase projection of a test: identity only, no body."""

    identity: TestIdentity
    ignored: bool = False

    @property
    def path(self) -> tuple[str, ...]:
        return self.identity.path

    @property
    def description(self) -> str:
        return self.identity.description


@dataclass(frozen=True)
class LateHook:
    """A per-test hook registered after its group already declared tests or groups.

    Members declared before it run without the hook.
    """

    kind: str
    path: tuple[str, ...]
    preceding: int

    def describe(self) -> str:
        where = IDENTITY_SEPARATOR.join(self.path) or "<root>"
        return (
            f"{self.kind} hook in '{where}' is declared after {self.preceding} "
            "test(s) or group(s) and does not apply to them"
        )


@dataclass(frozen=True)
class TestPlan:
    """Ordered, read-only list of planned tests plus the group tree they came from."""

    __test__ = False

    root: SpecNode = field(compare=False)
    tests: tuple[PlannedTest, ...] = ()
    late_hooks: tuple[LateHook, ...] = ()

    def __iter__(self) -> Iterator[PlannedTest]:
        return iter(self.tests)

    def __len__(self) -> int:
        return len(self.tests)

    def identities(self) -> tuple[TestIdentity, ...]:
        return tuple(planned.identity for planned in self.tests)


def iter_groups(node: SpecNode, depth: int = 0) -> Iterator[tuple[SpecNode, int]]:
    """Yield ``(group, depth)`` for every group below ``node``, depth first."""
    for child in node.children:
        yield child, depth
        yield from iter_groups(child, depth + 1)
