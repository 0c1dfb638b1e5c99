"""
Interval tree over DateTimeRange keys.

An unbalanced binary search tree ordered by range start and augmented with the
maximum end found in each subtree. Duplicate starts are allowed and are placed
in the right subtree. Each node carries an arbitrary payload.

Example usage:
    tree = IntervalTree()
    tree.insert(DateTimeRange(a, b), appointment)

    tree.find_all(DateTimeRange(x, y))                        # nodes containing [x, y]
    tree.find_all(DateTimeRange(x, y), IntervalTreeMatch.OVERLAP)
    tree.find_exact(DateTimeRange(a, b))                      # -> appointment
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Generic, Optional, TypeVar

from .date_range import DateTimeRange
from .enums import IntervalTreeMatch

T = TypeVar("T")


class IntervalNode(Generic[T]):
    __slots__ = ("interval", "max_end", "data", "left", "right")

    def __init__(self, interval: DateTimeRange, data: T):
        self.interval = interval
        self.max_end: datetime = interval.end
        self.data = data
        self.left: Optional[IntervalNode[T]] = None
        self.right: Optional[IntervalNode[T]] = None

    def __repr__(self) -> str:
        return f"IntervalNode({self.interval})"


def _matches(node: IntervalNode[Any], query: DateTimeRange, match: IntervalTreeMatch) -> bool:
    if match == IntervalTreeMatch.CONTAINED:
        return query.contains(node.interval)
    if match == IntervalTreeMatch.CONTAINED_BY:
        return node.interval.contains(query)
    if match == IntervalTreeMatch.OVERLAP:
        return query.overlaps(node.interval)
    if match == IntervalTreeMatch.EXACT:
        return query == node.interval
    raise ValueError(f"Unknown interval match mode: {match}")


def _descend_left(node: IntervalNode[Any], query: DateTimeRange) -> bool:
    return (
        node.left is not None
        and query.start < node.interval.start
        and query.start < node.left.max_end
    )


def _descend_right(node: IntervalNode[Any], query: DateTimeRange) -> bool:
    return (
        node.right is not None
        and query.end >= node.interval.start
        and query.start <= node.right.max_end
    )


class IntervalTree(Generic[T]):
    def __init__(self) -> None:
        self._root: Optional[IntervalNode[T]] = None
        self._num_nodes = 0
        self._depth = 0

    @property
    def num_nodes(self) -> int:
        return self._num_nodes

    @property
    def depth(self) -> int:
        """Height of the tree. An empty tree has depth 0."""
        return self._depth

    def __len__(self) -> int:
        return self._num_nodes

    def __bool__(self) -> bool:
        return self._root is not None

    def insert(self, interval: DateTimeRange, data: T) -> None:
        node = IntervalNode(interval, data)
        self._num_nodes += 1

        if self._root is None:
            self._root = node
            self._depth = 1
            return

        parent = self._root
        depth = 1
        while True:
            if parent.max_end < node.max_end:
                parent.max_end = node.max_end
            depth += 1
            if interval.start < parent.interval.start:
                if parent.left is None:
                    parent.left = node
                    break
                parent = parent.left
            else:
                if parent.right is None:
                    parent.right = node
                    break
                parent = parent.right

        if depth > self._depth:
            self._depth = depth

    def find_all(
        self,
        query: DateTimeRange,
        match: IntervalTreeMatch = IntervalTreeMatch.CONTAINED_BY,
    ) -> list[T]:
        """
        Return the payloads of every node matching ``query``, in pre-order.

        The default mode returns nodes whose interval contains the query.
        """
        result: list[T] = []
        stack: list[IntervalNode[T]] = [self._root] if self._root else []

        while stack:
            node = stack.pop()
            if _matches(node, query, match):
                result.append(node.data)
            # Right is pushed first so the left subtree is visited first.
            if _descend_right(node, query):
                stack.append(node.right)
            if _descend_left(node, query):
                stack.append(node.left)

        return result

    def find_exact(self, query: DateTimeRange) -> Optional[T]:
        """
        Return the payload of the first node equal to ``query`` on a single
        root-to-leaf descent, or None.

        Only one path is followed (left preferred), so an equal interval that
        sits in a pruned sibling subtree is not found.
        """
        node = self._root
        while node is not None:
            if node.interval == query:
                return node.data
            if _descend_left(node, query):
                node = node.left
            elif _descend_right(node, query):
                node = node.right
            else:
                node = None
        return None

    def get_node_list(self) -> list[T]:
        """In-order payloads, i.e. sorted by start with duplicates in insertion order."""
        result: list[T] = []
        stack: list[IntervalNode[T]] = []
        node = self._root

        while stack or node is not None:
            while node is not None:
                stack.append(node)
                node = node.left
            node = stack.pop()
            result.append(node.data)
            node = node.right

        return result
