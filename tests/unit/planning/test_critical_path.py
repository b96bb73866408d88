"""
crew-planner — unit tests for the critical path engine

File: tests/unit/planning/test_critical_path.py

Purpose
- Validate critical cost, early/late intervals, total duration and execution order.

What this test file should cover
- Reference chain and two-chain scenarios.
- Cycle and unresolved-dependency rejection without partial results.
- Deterministic tie-breaking policies.
- Property-based checks over random DAGs: interval invariants, longest-path
  total duration, idempotence and input-order independence.
"""

from __future__ import annotations

from collections.abc import Iterable

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st
from structlog.testing import capture_logs

from crew_planner.domain.models import CrewRequirement, EvaluatedTask, TaskDefinition
from crew_planner.planning import CriticalPathEngine, evaluate_plan
from crew_planner.planning.task_graph import CyclicDependencyError, DataError


def _task(code: str, duration: int, *deps: str, crew: int | None = 1) -> TaskDefinition:
    return TaskDefinition(
        task_code=code,
        duration=duration,
        operation_name="op",
        element_name=code.lower(),
        crew=None if crew is None else CrewRequirement(name="team", assignment=crew),
        dependencies=deps,
    )


def _chain() -> tuple[TaskDefinition, ...]:
    return (_task("A", 5), _task("B", 3, "A"), _task("C", 4, "B"))


def _two_chains() -> tuple[TaskDefinition, ...]:
    return (
        _task("C", 4, "B"),
        _task("B", 20, "A"),
        _task("A", 5),
        _task("D", 2, "E"),
        _task("E", 3),
    )


def _intervals(schedule: Iterable[EvaluatedTask]) -> dict[str, tuple[int, int]]:
    return {task.task_code: (task.early_start, task.early_finish) for task in schedule}


@pytest.mark.unit
def test_single_chain_schedule() -> None:
    schedule = CriticalPathEngine().evaluate(_chain())

    assert schedule.total_duration == 12
    assert schedule.task_codes == ("A", "B", "C")
    assert _intervals(schedule) == {"A": (0, 5), "B": (5, 8), "C": (8, 12)}
    assert [task.critical_cost for task in schedule] == [5, 8, 12]


@pytest.mark.unit
def test_late_interval_is_total_duration_minus_critical_cost() -> None:
    schedule = CriticalPathEngine().evaluate(_chain())

    late = {task.task_code: (task.late_start, task.late_finish) for task in schedule}
    assert late == {"A": (7, 12), "B": (4, 7), "C": (0, 4)}
    assert {task.task_code: task.slack for task in schedule} == {"A": 7, "B": -1, "C": -8}


@pytest.mark.unit
def test_two_independent_chains_schedule() -> None:
    schedule = CriticalPathEngine().evaluate(_two_chains())

    assert schedule.total_duration == 29
    assert schedule.task_codes == ("A", "E", "D", "B", "C")
    assert _intervals(schedule) == {
        "A": (0, 5),
        "E": (0, 3),
        "D": (3, 5),
        "B": (5, 25),
        "C": (25, 29),
    }
    assert [task.task_code for task in schedule.critical_path()] == ["A", "B", "C"]


@pytest.mark.unit
def test_predecessor_and_successor_codes_are_attached() -> None:
    schedule = CriticalPathEngine().evaluate(_two_chains())

    assert schedule.get("B").predecessors == ("A",)
    assert schedule.get("B").successors == ("C",)
    assert schedule.get("E").successors == ("D",)
    assert schedule.get("C").successors == ()


@pytest.mark.unit
def test_evaluate_plan_reports_total_duration_and_peak_crew() -> None:
    evaluation = evaluate_plan(_two_chains())

    assert evaluation.total_duration == 29
    assert evaluation.peak_crew_demand == 2
    assert evaluation.to_response() == {"totalDuration": 29, "maxCrewMembers": 2}

    chain = evaluate_plan(_chain())
    assert chain.to_response() == {"totalDuration": 12, "maxCrewMembers": 1}


@pytest.mark.unit
def test_empty_input_yields_empty_schedule() -> None:
    evaluation = evaluate_plan(())

    assert evaluation.total_duration == 0
    assert evaluation.peak_crew_demand == 0
    assert len(evaluation.schedule) == 0
    assert evaluation.schedule.critical_path() == ()


@pytest.mark.unit
def test_cycle_aborts_evaluation() -> None:
    with capture_logs() as events:
        with pytest.raises(CyclicDependencyError) as error:
            CriticalPathEngine().evaluate((_task("X", 1, "Y"), _task("Y", 1, "X")))

    assert error.value.cycles == (("X", "Y", "X"),)
    assert [event["event"] for event in events] == ["critical_path_cycle_detected"]
    assert events[0]["log_level"] == "error"


@pytest.mark.unit
def test_unresolved_dependency_aborts_evaluation() -> None:
    with pytest.raises(DataError) as error:
        evaluate_plan((_task("A", 1), _task("B", 1, "MISSING")))
    assert error.value.missing == {"B": ("MISSING",)}


@pytest.mark.unit
def test_tie_break_policies() -> None:
    definitions = (_task("Z", 2), _task("M", 1), _task("A", 1, "M"), _task("B", 3))

    by_input = CriticalPathEngine().evaluate(definitions)
    by_code = CriticalPathEngine(tie_break="task_code").evaluate(definitions)

    assert by_input.task_codes == ("Z", "M", "B", "A")
    assert by_code.task_codes == ("B", "M", "Z", "A")
    assert _intervals(by_input) == _intervals(by_code)


@pytest.mark.unit
def test_invalid_tie_break_is_rejected() -> None:
    with pytest.raises(ValueError, match="invalid tie_break"):
        CriticalPathEngine(tie_break="random")


@pytest.mark.unit
def test_zero_duration_tasks_are_scheduled() -> None:
    schedule = CriticalPathEngine().evaluate(
        (_task("start", 0), _task("work", 4, "start"), _task("done", 0, "work"))
    )

    assert _intervals(schedule) == {"start": (0, 0), "work": (0, 4), "done": (4, 4)}
    assert schedule.total_duration == 4


@pytest.mark.unit
def test_evaluation_emits_structured_event() -> None:
    with capture_logs() as events:
        CriticalPathEngine().evaluate(_two_chains())

    evaluated = [event for event in events if event["event"] == "critical_path_evaluated"]
    assert len(evaluated) == 1
    assert evaluated[0]["task_count"] == 5
    assert evaluated[0]["source_count"] == 2
    assert evaluated[0]["edge_count"] == 3
    assert evaluated[0]["total_duration"] == 29
    assert evaluated[0]["tie_break"] == "input_order"


# ---------------------------------------------------------------------------
# Property-based checks
# ---------------------------------------------------------------------------


@st.composite
def _random_dags(draw: st.DrawFn) -> tuple[TaskDefinition, ...]:
    size = draw(st.integers(min_value=0, max_value=12))
    definitions: list[TaskDefinition] = []
    for index in range(size):
        earlier = [f"T{item:02d}" for item in range(index)]
        deps = draw(st.lists(st.sampled_from(earlier), unique=True)) if earlier else []
        definitions.append(
            _task(
                f"T{index:02d}",
                draw(st.integers(min_value=0, max_value=20)),
                *deps,
                crew=draw(st.one_of(st.none(), st.integers(min_value=0, max_value=4))),
            )
        )
    return tuple(definitions)


def _longest_chain(definitions: tuple[TaskDefinition, ...]) -> int:
    # Dependencies only point at earlier definitions, so one ordered pass suffices.
    finish: dict[str, int] = {}
    for definition in definitions:
        start = max((finish[dep] for dep in definition.dependencies), default=0)
        finish[definition.task_code] = start + definition.duration
    return max(finish.values(), default=0)


@pytest.mark.unit
@settings(max_examples=75, deadline=None)
@given(definitions=_random_dags())
def test_interval_invariants_hold_for_random_dags(definitions: tuple[TaskDefinition, ...]) -> None:
    schedule = CriticalPathEngine().evaluate(definitions)

    assert schedule.total_duration == _longest_chain(definitions)
    assert schedule.total_duration == max((task.critical_cost for task in schedule), default=0)

    starts = [task.early_start for task in schedule]
    assert starts == sorted(starts)

    for task in schedule:
        assert task.early_finish == task.early_start + task.cost
        assert task.late_finish == task.late_start + task.cost
        assert task.late_start == schedule.total_duration - task.critical_cost
        finishes = [schedule.get(code).early_finish for code in task.predecessors]
        assert task.early_start == max(finishes, default=0)
        assert task.early_finish == task.critical_cost


@pytest.mark.unit
@settings(max_examples=50, deadline=None)
@given(data=st.data(), definitions=_random_dags())
def test_results_do_not_depend_on_input_order(
    data: st.DataObject, definitions: tuple[TaskDefinition, ...]
) -> None:
    shuffled = tuple(data.draw(st.permutations(definitions)))

    original = evaluate_plan(definitions)
    permuted = evaluate_plan(shuffled)

    assert permuted.total_duration == original.total_duration
    assert permuted.peak_crew_demand == original.peak_crew_demand
    assert _intervals(permuted.schedule) == _intervals(original.schedule)
    critical = {task.task_code: task.critical_cost for task in original.schedule}
    assert {task.task_code: task.critical_cost for task in permuted.schedule} == critical

    canonical = CriticalPathEngine(tie_break="task_code")
    assert canonical.evaluate(shuffled) == canonical.evaluate(definitions)


@pytest.mark.unit
@settings(max_examples=25, deadline=None)
@given(definitions=_random_dags())
def test_reevaluation_is_idempotent(definitions: tuple[TaskDefinition, ...]) -> None:
    engine = CriticalPathEngine()
    first = evaluate_plan(definitions)
    second = evaluate_plan(definitions)

    assert first == second
    assert first.to_json() == second.to_json()
    assert engine.evaluate(definitions) == engine.evaluate(definitions)
