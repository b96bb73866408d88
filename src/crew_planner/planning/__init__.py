"""
crew-planner — planning layer

File: src/crew_planner/planning/__init__.py

Purpose
- Graph construction, critical path evaluation and crew demand measurement.

Functional requirements
- Reject unresolved dependencies and cyclic graphs before producing any result.

Non-functional requirements
- Must produce identical schedules for identical inputs, independent of input order
  for every computed interval and aggregate.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from crew_planner.constants import TIE_BREAK_INPUT_ORDER
from crew_planner.domain.models import PlanEvaluation
from crew_planner.planning.critical_path import CriticalPathEngine
from crew_planner.planning.resource_leveling import ElementaryInterval, ResourceLevelingService
from crew_planner.planning.task_graph import (
    CyclicDependencyError,
    DataError,
    PlanningError,
    TaskGraph,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from crew_planner.domain.models import TaskDefinition


def evaluate_plan(
    definitions: Iterable[TaskDefinition],
    *,
    tie_break: str = TIE_BREAK_INPUT_ORDER,
    logger: Any | None = None,
) -> PlanEvaluation:
    """
    Evaluate ``definitions`` from scratch into an aggregate plan result.

    The schedule, its total duration and the peak crew demand are computed in
    one synchronous call; nothing is cached between calls.
    """

    schedule = CriticalPathEngine(tie_break=tie_break, logger=logger).evaluate(definitions)
    peak = ResourceLevelingService(logger=logger).peak_demand(schedule.tasks)
    return PlanEvaluation(schedule=schedule, peak_crew_demand=peak)


__all__ = [
    "CriticalPathEngine",
    "CyclicDependencyError",
    "DataError",
    "ElementaryInterval",
    "PlanningError",
    "ResourceLevelingService",
    "TaskGraph",
    "evaluate_plan",
]
