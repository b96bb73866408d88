"""
Critical path method over a task precedence graph.

The engine derives, per task, the critical cost (longest duration-weighted
path ending at the task), the earliest interval reachable from the source
tasks and the late interval anchored on the project's total duration. Every
call to :meth:`CriticalPathEngine.evaluate` builds its own graph and result;
the engine itself only holds immutable settings.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

import structlog

from crew_planner.constants import (
    TIE_BREAK_INPUT_ORDER,
    TIE_BREAK_POLICIES,
    TIE_BREAK_TASK_CODE,
)
from crew_planner.domain.models import EvaluatedTask, Schedule, TaskDefinition
from crew_planner.planning.task_graph import CyclicDependencyError, TaskGraph


class CriticalPathEngine:
    """Evaluate task definitions into an execution-ordered schedule."""

    __slots__ = ("_tie_break", "_logger")

    def __init__(
        self,
        *,
        tie_break: str = TIE_BREAK_INPUT_ORDER,
        logger: Any | None = None,
    ) -> None:
        if tie_break not in TIE_BREAK_POLICIES:
            expected = ", ".join(TIE_BREAK_POLICIES)
            raise ValueError(f"invalid tie_break {tie_break!r}; expected one of: {expected}")
        self._tie_break = tie_break
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    @property
    def tie_break(self) -> str:
        return self._tie_break

    def evaluate(self, definitions: Iterable[TaskDefinition]) -> Schedule:
        """
        Compute the schedule for ``definitions``.

        Raises ``DataError`` for unresolved or duplicate identifiers and
        ``CyclicDependencyError`` when the dependencies form a cycle. Both abort
        the evaluation before any result is produced.
        """
        ordered = tuple(definitions)
        graph = TaskGraph.build(ordered)
        try:
            order = graph.topological_order()
        except CyclicDependencyError as exc:
            self._logger.error(
                "critical_path_cycle_detected",
                task_count=len(ordered),
                cycles=[list(cycle) for cycle in exc.cycles],
            )
            raise

        costs = [definition.duration for definition in ordered]
        critical_costs = _critical_costs(graph, order, costs)
        total_duration = max(critical_costs, default=0)
        early_starts = _early_starts(graph, order, costs)

        evaluated: list[EvaluatedTask] = []
        for index, definition in enumerate(ordered):
            late_start = total_duration - critical_costs[index]
            evaluated.append(
                EvaluatedTask(
                    definition=definition,
                    critical_cost=critical_costs[index],
                    early_start=early_starts[index],
                    early_finish=early_starts[index] + costs[index],
                    late_start=late_start,
                    late_finish=late_start + costs[index],
                    predecessors=tuple(graph.code_of(p) for p in graph.predecessors(index)),
                    successors=tuple(graph.code_of(s) for s in graph.successors(index)),
                )
            )

        schedule = Schedule(
            tasks=self._execution_order(evaluated),
            total_duration=total_duration,
        )
        self._logger.info(
            "critical_path_evaluated",
            task_count=len(schedule),
            source_count=len(graph.sources()),
            edge_count=len(graph.edges),
            total_duration=total_duration,
            tie_break=self._tie_break,
        )
        return schedule

    def _execution_order(self, tasks: Sequence[EvaluatedTask]) -> tuple[EvaluatedTask, ...]:
        if self._tie_break == TIE_BREAK_TASK_CODE:
            return tuple(sorted(tasks, key=lambda task: (task.early_start, task.task_code)))
        # sorted() is stable, so equal early starts keep input order.
        return tuple(sorted(tasks, key=lambda task: task.early_start))


def _critical_costs(graph: TaskGraph, order: Sequence[int], costs: Sequence[int]) -> list[int]:
    critical = [0] * len(costs)
    for node in order:
        longest = max((critical[parent] for parent in graph.predecessors(node)), default=0)
        critical[node] = costs[node] + longest
    return critical


def _early_starts(graph: TaskGraph, order: Sequence[int], costs: Sequence[int]) -> list[int]:
    """Forward pass: each node starts when its latest-finishing predecessor ends."""
    starts = [0] * len(costs)
    for node in order:
        starts[node] = max(
            (starts[parent] + costs[parent] for parent in graph.predecessors(node)),
            default=0,
        )
    return starts


__all__ = ["CriticalPathEngine"]
