"""Unit tests for core domain models."""

from __future__ import annotations

import json
from dataclasses import FrozenInstanceError

import pytest

from crew_planner.domain import models


def _definition(code: str = "A", duration: int = 5, *deps: str) -> models.TaskDefinition:
    return models.TaskDefinition(
        task_code=code,
        duration=duration,
        operation_name="Pour",
        element_name="Slab",
        crew=models.CrewRequirement(name="concrete", assignment=2),
        equipment=(models.EquipmentRequirement(name="Concrete pump", quantity=1),),
        dependencies=deps,
    )


def _evaluated(
    definition: models.TaskDefinition,
    *,
    start: int,
    critical_cost: int,
    total: int,
    predecessors: tuple[str, ...] = (),
    successors: tuple[str, ...] = (),
) -> models.EvaluatedTask:
    late_start = total - critical_cost
    return models.EvaluatedTask(
        definition=definition,
        critical_cost=critical_cost,
        early_start=start,
        early_finish=start + definition.duration,
        late_start=late_start,
        late_finish=late_start + definition.duration,
        predecessors=predecessors,
        successors=successors,
    )


def test_task_definition_normalizes_text_and_dependencies() -> None:
    definition = models.TaskDefinition(
        task_code="  T1 ",
        duration=3,
        dependencies=["B", "A", "B"],  # type: ignore[arg-type]
    )

    assert definition.task_code == "T1"
    assert definition.dependencies == ("A", "B")
    assert definition.crew_assignment == 0
    assert definition.name == ":"


def test_task_definition_rejects_invalid_values() -> None:
    with pytest.raises(ValueError, match="TaskDefinition.task_code"):
        models.TaskDefinition(task_code="  ", duration=1)
    with pytest.raises(ValueError, match="TaskDefinition.duration: must be >= 0"):
        models.TaskDefinition(task_code="A", duration=-1)
    with pytest.raises(ValueError, match="expected integer, got bool"):
        models.TaskDefinition(task_code="A", duration=True)
    with pytest.raises(ValueError, match="collection of task codes"):
        models.TaskDefinition(task_code="A", duration=1, dependencies="B")  # type: ignore[arg-type]
    with pytest.raises(ValueError, match="CrewRequirement.assignment: must be >= 0"):
        models.CrewRequirement(name="team", assignment=-2)


def test_models_are_frozen() -> None:
    definition = _definition()
    with pytest.raises(FrozenInstanceError):
        definition.duration = 9  # type: ignore[misc]


def test_task_definition_json_roundtrip_is_canonical() -> None:
    definition = _definition("B", 4, "A")

    encoded = definition.to_json()
    assert json.loads(encoded) == {
        "taskCode": "B",
        "operationName": "Pour",
        "elementName": "Slab",
        "duration": 4,
        "crew": {"name": "concrete", "assignment": 2},
        "equipment": [{"name": "Concrete pump", "quantity": 1}],
        "dependencies": ["A"],
    }
    assert models.TaskDefinition.from_json(encoded) == definition
    assert models.TaskDefinition.from_json(encoded).to_json() == encoded


def test_from_dict_accepts_minimal_records_and_null_optionals() -> None:
    definition = models.TaskDefinition.from_dict(
        {"taskCode": "A", "duration": 2, "crew": None, "operationName": None}
    )

    assert definition.crew is None
    assert definition.operation_name == ""
    assert definition.dependencies == ()

    crew_only = models.TaskDefinition.from_dict(
        {"taskCode": "B", "duration": 1, "crew": {"assignment": 3}}
    )
    assert crew_only.crew_assignment == 3


def test_from_dict_reports_structural_problems() -> None:
    with pytest.raises(ValueError, match="missing required fields: \\['duration'\\]"):
        models.TaskDefinition.from_dict({"taskCode": "A"})
    with pytest.raises(ValueError, match="unexpected fields: \\['colour'\\]"):
        models.TaskDefinition.from_dict({"taskCode": "A", "duration": 1, "colour": "red"})
    with pytest.raises(ValueError, match="TaskDefinition.dependencies: expected array"):
        models.TaskDefinition.from_dict({"taskCode": "A", "duration": 1, "dependencies": "B"})
    with pytest.raises(ValueError, match="TaskDefinition.crew: expected object"):
        models.TaskDefinition.from_dict({"taskCode": "A", "duration": 1, "crew": 3})
    with pytest.raises(ValueError, match="JSON root must be an object"):
        models.TaskDefinition.from_json("[]")
    with pytest.raises(ValueError, match="invalid JSON"):
        models.TaskDefinition.from_json("{")


def test_evaluated_task_interval_consistency() -> None:
    definition = _definition("A", 5)
    task = _evaluated(definition, start=0, critical_cost=5, total=12)

    assert task.cost == 5
    assert (task.late_start, task.late_finish) == (7, 12)
    assert task.slack == 7
    assert task.to_dict()["slack"] == 7

    with pytest.raises(ValueError, match="early_finish must equal early_start \\+ cost"):
        models.EvaluatedTask(
            definition=definition,
            critical_cost=5,
            early_start=0,
            early_finish=4,
            late_start=0,
            late_finish=5,
        )
    with pytest.raises(ValueError, match="critical_cost must be >= cost"):
        models.EvaluatedTask(
            definition=definition,
            critical_cost=4,
            early_start=0,
            early_finish=5,
            late_start=0,
            late_finish=5,
        )


def test_evaluated_task_response_adds_scheduled_interval() -> None:
    task = _evaluated(_definition("B", 3, "A"), start=5, critical_cost=8, total=12)

    response = task.to_response()

    assert response["taskCode"] == "B"
    assert response["startInterval"] == 5
    assert response["endInterval"] == 8
    assert response["dependencies"] == ["A"]


def _chain_schedule() -> models.Schedule:
    total = 12
    return models.Schedule(
        tasks=(
            _evaluated(
                _definition("A", 5), start=0, critical_cost=5, total=total, successors=("B",)
            ),
            _evaluated(
                _definition("B", 3, "A"),
                start=5,
                critical_cost=8,
                total=total,
                predecessors=("A",),
                successors=("C",),
            ),
            _evaluated(
                _definition("C", 4, "B"),
                start=8,
                critical_cost=12,
                total=total,
                predecessors=("B",),
            ),
        ),
        total_duration=total,
    )


def test_schedule_lookup_and_critical_path() -> None:
    schedule = _chain_schedule()

    assert len(schedule) == 3
    assert schedule.task_codes == ("A", "B", "C")
    assert schedule.get("B").early_start == 5
    assert [task.task_code for task in schedule.critical_path()] == ["A", "B", "C"]
    with pytest.raises(KeyError, match="Unknown task: Z"):
        schedule.get("Z")


def test_schedule_rejects_inconsistent_contents() -> None:
    task = _evaluated(_definition("A", 5), start=0, critical_cost=5, total=5)

    with pytest.raises(ValueError, match="must equal max critical cost \\(5\\)"):
        models.Schedule(tasks=(task,), total_duration=6)
    with pytest.raises(ValueError, match="duplicate task code 'A'"):
        models.Schedule(tasks=(task, task), total_duration=5)

    dangling = _evaluated(_definition("B", 1), start=0, critical_cost=1, total=5, successors=("Q",))
    with pytest.raises(ValueError, match="references unknown tasks"):
        models.Schedule(tasks=(task, dangling), total_duration=5)


def test_critical_path_prefers_smallest_code_among_equal_chains() -> None:
    total = 4
    schedule = models.Schedule(
        tasks=(
            _evaluated(
                _definition("Y", 2), start=0, critical_cost=2, total=total, successors=("Z",)
            ),
            _evaluated(
                _definition("X", 2), start=0, critical_cost=2, total=total, successors=("Z",)
            ),
            _evaluated(
                _definition("Z", 2, "X", "Y"),
                start=2,
                critical_cost=4,
                total=total,
                predecessors=("X", "Y"),
            ),
        ),
        total_duration=total,
    )

    assert [task.task_code for task in schedule.critical_path()] == ["X", "Z"]


def test_plan_evaluation_response() -> None:
    evaluation = models.PlanEvaluation(schedule=_chain_schedule(), peak_crew_demand=2)

    assert evaluation.total_duration == 12
    assert evaluation.to_response() == {"totalDuration": 12, "maxCrewMembers": 2}
    assert json.loads(evaluation.to_json())["peakCrewDemand"] == 2

    with pytest.raises(ValueError, match="PlanEvaluation.peak_crew_demand"):
        models.PlanEvaluation(schedule=_chain_schedule(), peak_crew_demand=-1)
