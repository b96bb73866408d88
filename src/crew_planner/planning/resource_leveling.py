"""Peak simultaneous crew demand over the early schedule."""

from __future__ import annotations

from bisect import bisect_left
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

import structlog

from crew_planner.domain.models import EvaluatedTask


@dataclass(frozen=True, slots=True)
class ElementaryInterval:
    """Half-open span ``[start, finish)`` between adjacent breakpoints."""

    start: int
    finish: int
    demand: int

    def __post_init__(self) -> None:
        if self.finish <= self.start:
            raise ValueError("ElementaryInterval: finish must be > start")
        if self.demand < 0:
            raise ValueError("ElementaryInterval: demand must be >= 0")


class ResourceLevelingService:
    """
    Measure crew demand by partitioning the timeline.

    Every task start and finish becomes a breakpoint. Adjacent breakpoints
    bound the elementary intervals; because task boundaries only fall on
    breakpoints, demand is constant inside each one, so the peak over these
    finitely many intervals is the true peak.
    """

    __slots__ = ("_logger",)

    def __init__(self, *, logger: Any | None = None) -> None:
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    def demand_profile(self, tasks: Iterable[EvaluatedTask]) -> tuple[ElementaryInterval, ...]:
        """Return crew demand for every elementary interval in time order."""
        materialized = tuple(tasks)
        breakpoints = sorted(
            {point for task in materialized for point in (task.early_start, task.early_finish)}
        )
        if len(breakpoints) < 2:
            return ()

        demand = [0] * (len(breakpoints) - 1)
        for task in materialized:
            assignment = task.crew_assignment
            if assignment == 0:
                continue
            # Intervals [b[i], b[i+1]) contained in [early_start, early_finish).
            first = bisect_left(breakpoints, task.early_start)
            last = bisect_left(breakpoints, task.early_finish)
            for slot in range(first, last):
                demand[slot] += assignment

        return tuple(
            ElementaryInterval(start=breakpoints[slot], finish=breakpoints[slot + 1], demand=total)
            for slot, total in enumerate(demand)
        )

    def peak_demand(self, tasks: Iterable[EvaluatedTask]) -> int:
        """Maximum simultaneous crew demand; 0 when no elementary interval exists."""
        profile = self.demand_profile(tasks)
        peak = max((interval.demand for interval in profile), default=0)
        self._logger.info(
            "resource_peak_computed",
            interval_count=len(profile),
            peak_crew_demand=peak,
        )
        return peak


__all__ = ["ElementaryInterval", "ResourceLevelingService"]
