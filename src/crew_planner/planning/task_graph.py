"""Index-addressed precedence graph built from task definitions."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence
from heapq import heapify, heappop, heappush

from crew_planner.domain.models import TaskDefinition


class PlanningError(ValueError):
    """Base class for unrecoverable schedule-evaluation failures."""


class DataError(PlanningError):
    """
    Raised when task definitions cannot be turned into a graph.

    Unresolved dependency identifiers always fail; edges are never dropped.
    ``missing`` maps each offending task code to the unknown identifiers it names.
    """

    missing: dict[str, tuple[str, ...]]
    duplicates: tuple[str, ...]

    def __init__(
        self,
        message: str,
        *,
        missing: Mapping[str, Sequence[str]] | None = None,
        duplicates: Sequence[str] = (),
    ) -> None:
        self.missing = {code: tuple(ids) for code, ids in sorted((missing or {}).items())}
        self.duplicates = tuple(duplicates)
        super().__init__(message)

    @classmethod
    def unresolved(cls, missing: Mapping[str, Sequence[str]]) -> DataError:
        ordered = sorted(missing.items())
        preview = "; ".join(f"{code} -> {', '.join(ids)}" for code, ids in ordered[:3])
        suffix = "..." if len(ordered) > 3 else ""
        return cls(f"Unknown dependency identifier(s): {preview}{suffix}", missing=missing)

    @classmethod
    def duplicate(cls, codes: Sequence[str]) -> DataError:
        ordered = sorted(set(codes))
        return cls(f"Duplicate task code(s): {', '.join(ordered)}", duplicates=ordered)


class CyclicDependencyError(PlanningError):
    """Raised when the precedence graph contains a cycle."""

    cycles: tuple[tuple[str, ...], ...]

    def __init__(self, cycles: Iterable[Sequence[str]]) -> None:
        normalized: tuple[tuple[str, ...], ...] = tuple(tuple(path) for path in cycles)
        self.cycles = normalized

        if not normalized:
            message = "Cyclic dependency detected; schedule cannot be evaluated."
        else:
            preview = ", ".join(" -> ".join(path) for path in normalized[:3])
            suffix = "..." if len(normalized) > 3 else ""
            message = f"Cyclic dependency detected: {preview}{suffix}"
        super().__init__(message)


class TaskGraph:
    """
    Precedence graph over an arena of task nodes.

    Nodes are addressed by their position in the input collection. Predecessor
    and successor relations are stored as index sets, so the graph holds no
    object references between nodes.
    """

    __slots__ = ("_codes", "_index", "_parents", "_children")

    def __init__(self, codes: Sequence[str], edges: Iterable[tuple[int, int]] = ()) -> None:
        self._codes: tuple[str, ...] = tuple(codes)
        self._index: dict[str, int] = {}
        duplicates: list[str] = []
        for position, code in enumerate(self._codes):
            if not code:
                raise DataError("Task code must be non-empty.")
            if code in self._index:
                duplicates.append(code)
                continue
            self._index[code] = position
        if duplicates:
            raise DataError.duplicate(duplicates)

        self._parents: list[set[int]] = [set() for _ in self._codes]
        self._children: list[set[int]] = [set() for _ in self._codes]
        for parent, child in edges:
            self._add_edge(parent, child)

    @classmethod
    def build(cls, definitions: Iterable[TaskDefinition]) -> TaskGraph:
        """
        Resolve dependency identifiers into predecessor indices.

        Raises ``DataError`` listing every task whose dependencies name an
        identifier that matches no task.
        """
        ordered = tuple(definitions)
        graph = cls(tuple(definition.task_code for definition in ordered))

        missing: dict[str, list[str]] = {}
        for child, definition in enumerate(ordered):
            for dependency in definition.dependencies:
                parent = graph._index.get(dependency)
                if parent is None:
                    missing.setdefault(definition.task_code, []).append(dependency)
                    continue
                graph._add_edge(parent, child)

        if missing:
            raise DataError.unresolved(missing)
        return graph

    def __len__(self) -> int:
        return len(self._codes)

    @property
    def nodes(self) -> tuple[str, ...]:
        """Task codes in input order."""
        return self._codes

    @property
    def edges(self) -> tuple[tuple[str, str], ...]:
        """All edges as ``(predecessor, successor)`` code pairs in deterministic order."""
        ordered_edges: list[tuple[str, str]] = []
        for parent in range(len(self._codes)):
            for child in sorted(self._children[parent]):
                ordered_edges.append((self._codes[parent], self._codes[child]))
        return tuple(ordered_edges)

    def index_of(self, code: str) -> int:
        try:
            return self._index[code]
        except KeyError:
            raise KeyError(f"Unknown task: {code}") from None

    def code_of(self, index: int) -> str:
        return self._codes[index]

    def predecessors(self, index: int) -> tuple[int, ...]:
        return tuple(sorted(self._parents[index]))

    def successors(self, index: int) -> tuple[int, ...]:
        return tuple(sorted(self._children[index]))

    def sources(self) -> tuple[int, ...]:
        """Indices of nodes without predecessors."""
        return tuple(index for index, parents in enumerate(self._parents) if not parents)

    def topological_order(self) -> tuple[int, ...]:
        """
        Return node indices in dependency order.

        Ready nodes are released smallest-index first, so the order is stable
        with respect to the input. Raises ``CyclicDependencyError`` when some
        nodes can never become ready.
        """
        indegree = [len(parents) for parents in self._parents]
        ready = [index for index, degree in enumerate(indegree) if degree == 0]
        heapify(ready)

        order: list[int] = []
        while ready:
            node = heappop(ready)
            order.append(node)
            for child in self._children[node]:
                indegree[child] -= 1
                if indegree[child] == 0:
                    heappush(ready, child)

        if len(order) != len(self._codes):
            raise CyclicDependencyError(self.detect_cycles())
        return tuple(order)

    def detect_cycles(self) -> tuple[tuple[str, ...], ...]:
        """
        Detect directed cycles.

        Returns cycle paths as closed code paths, e.g. ``("X", "Y", "X")``.
        """
        state: dict[int, int] = {}
        stack: list[int] = []
        stack_index: dict[int, int] = {}
        cycles: dict[tuple[str, ...], None] = {}

        for start in range(len(self._codes)):
            if state.get(start, 0) != 0:
                continue

            state[start] = 1
            stack.append(start)
            stack_index[start] = 0
            frames: list[tuple[int, Iterator[int]]] = [(start, iter(self.successors(start)))]

            while frames:
                node, child_iter = frames[-1]

                try:
                    child = next(child_iter)
                except StopIteration:
                    frames.pop()
                    state[node] = 2
                    stack.pop()
                    del stack_index[node]
                    continue

                child_state = state.get(child, 0)
                if child_state == 0:
                    state[child] = 1
                    stack_index[child] = len(stack)
                    stack.append(child)
                    frames.append((child, iter(self.successors(child))))
                elif child_state == 1:
                    loop = [self._codes[item] for item in stack[stack_index[child] :]]
                    cycles[_canonicalize_cycle(loop)] = None

        return tuple(sorted(cycles))

    def _add_edge(self, parent: int, child: int) -> None:
        if not 0 <= parent < len(self._codes) or not 0 <= child < len(self._codes):
            raise IndexError(f"Edge ({parent}, {child}) references a node outside the graph.")
        self._children[parent].add(child)
        self._parents[child].add(parent)


def _canonicalize_cycle(loop: Sequence[str]) -> tuple[str, ...]:
    core = tuple(loop)
    best = core
    for offset in range(1, len(core)):
        rotated = core[offset:] + core[:offset]
        if rotated < best:
            best = rotated
    return best + (best[0],)


__all__ = ["CyclicDependencyError", "DataError", "PlanningError", "TaskGraph"]
