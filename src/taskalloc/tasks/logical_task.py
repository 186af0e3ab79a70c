"""Named nodes of a task tree."""

from __future__ import annotations

import weakref
from collections.abc import Iterator


class LogicalTask:
    """A node in the task tree.

    Children are owned by their parent; the link back to the parent is a
    weak reference, so a subtree never keeps its ancestors alive.
    """

    def __init__(self, name: str, parent: LogicalTask | None = None) -> None:
        if not name:
            raise ValueError("Task name cannot be empty")
        self.name = name
        self._parent: weakref.ref[LogicalTask] | None = None
        self._children: list[LogicalTask] = []
        if parent is not None:
            parent.add_child(self)

    @property
    def parent(self) -> LogicalTask | None:
        return self._parent() if self._parent is not None else None

    @property
    def children(self) -> tuple[LogicalTask, ...]:
        return tuple(self._children)

    @property
    def is_root(self) -> bool:
        return self.parent is None

    @property
    def path(self) -> str:
        """Slash-separated names from the root down to this task."""
        names = [self.name]
        node = self.parent
        while node is not None:
            names.append(node.name)
            node = node.parent
        return "/".join(reversed(names))

    def add_child(self, child: LogicalTask) -> None:
        node: LogicalTask | None = self
        while node is not None:
            if node is child:
                raise ValueError(f"{child.name!r} is an ancestor of {self.name!r}")
            node = node.parent
        current = child.parent
        if current is not None:
            current._children.remove(child)
        child._parent = weakref.ref(self)
        self._children.append(child)

    def walk(self) -> Iterator[LogicalTask]:
        """Depth-first iteration over this task and its descendants."""
        yield self
        for child in self._children:
            yield from child.walk()

    def find(self, name: str) -> LogicalTask | None:
        for node in self.walk():
            if node.name == name:
                return node
        return None

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.path!r})"
