"""Dataclass domain models with strict validation and canonical serialization."""

from __future__ import annotations

import json
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import NoReturn, TypeVar

JSONScalar = str | int | float | bool | None
JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]

TModel = TypeVar("TModel", bound="CanonicalModel")

_MAX_TEXT = 1024
_INTERVAL_FIELDS = ("critical_cost", "early_start", "early_finish", "late_start", "late_finish")


class CanonicalModel:
    """Mixin for canonical dict/json serialization."""

    def to_dict(self) -> dict[str, JSONValue]:
        _fail(self.__class__.__name__, "to_dict is not implemented for this model type")

    def to_json(self) -> str:
        return _canonical_json(self.to_dict())

    @classmethod
    def from_json(cls: type[TModel], raw: str) -> TModel:
        if not isinstance(raw, str):
            _fail(cls.__name__, f"expected JSON string, got {type(raw).__name__}")
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as exc:
            _fail(cls.__name__, f"invalid JSON: {exc}")
        if not isinstance(parsed, dict):
            _fail(cls.__name__, "JSON root must be an object")
        return cls.from_dict(parsed)

    @classmethod
    def from_dict(cls: type[TModel], data: Mapping[str, object]) -> TModel:
        _fail(cls.__name__, "from_dict is not implemented for this model type")


@dataclass(frozen=True, slots=True)
class CrewRequirement(CanonicalModel):
    """Crew type and headcount allocated to a task for its whole duration."""

    name: str
    assignment: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", _as_str(self.name, "CrewRequirement.name", min_len=0))
        object.__setattr__(
            self,
            "assignment",
            _as_int(self.assignment, "CrewRequirement.assignment", minimum=0),
        )

    def to_dict(self) -> dict[str, JSONValue]:
        return {"name": self.name, "assignment": self.assignment}

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> CrewRequirement:
        parsed = _expect_object(
            data, "CrewRequirement", required={"assignment"}, optional={"name"}
        )
        return cls(
            name=_text_or_empty(parsed.get("name")),
            assignment=parsed["assignment"],  # type: ignore[arg-type]
        )


@dataclass(frozen=True, slots=True)
class EquipmentRequirement(CanonicalModel):
    name: str
    quantity: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", _as_str(self.name, "EquipmentRequirement.name"))
        object.__setattr__(
            self,
            "quantity",
            _as_int(self.quantity, "EquipmentRequirement.quantity", minimum=0),
        )

    def to_dict(self) -> dict[str, JSONValue]:
        return {"name": self.name, "quantity": self.quantity}

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> EquipmentRequirement:
        parsed = _expect_object(data, "EquipmentRequirement", required={"name", "quantity"})
        return cls(name=parsed["name"], quantity=parsed["quantity"])  # type: ignore[arg-type]


@dataclass(frozen=True, slots=True)
class TaskDefinition(CanonicalModel):
    """Immutable, externally supplied task definition.

    ``dependencies`` accepts any iterable of task codes and is normalized to a
    sorted, de-duplicated tuple so that equal definitions compare equal.
    """

    task_code: str
    duration: int
    operation_name: str = ""
    element_name: str = ""
    crew: CrewRequirement | None = None
    equipment: tuple[EquipmentRequirement, ...] = ()
    dependencies: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "task_code", _as_str(self.task_code, "TaskDefinition.task_code"))
        object.__setattr__(
            self, "duration", _as_int(self.duration, "TaskDefinition.duration", minimum=0)
        )
        object.__setattr__(
            self,
            "operation_name",
            _as_str(self.operation_name, "TaskDefinition.operation_name", min_len=0),
        )
        object.__setattr__(
            self,
            "element_name",
            _as_str(self.element_name, "TaskDefinition.element_name", min_len=0),
        )
        if self.crew is not None and not isinstance(self.crew, CrewRequirement):
            _fail(
                "TaskDefinition.crew",
                f"expected CrewRequirement, got {type(self.crew).__name__}",
            )
        equipment = tuple(self.equipment)
        for index, item in enumerate(equipment):
            if not isinstance(item, EquipmentRequirement):
                _fail(
                    f"TaskDefinition.equipment[{index}]",
                    f"expected EquipmentRequirement, got {type(item).__name__}",
                )
        object.__setattr__(self, "equipment", equipment)
        object.__setattr__(
            self,
            "dependencies",
            _as_code_set(self.dependencies, "TaskDefinition.dependencies"),
        )

    @property
    def name(self) -> str:
        return f"{self.operation_name}:{self.element_name}"

    @property
    def crew_assignment(self) -> int:
        """Headcount required while the task runs; 0 when no crew is specified."""
        if self.crew is None:
            return 0
        return self.crew.assignment

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "taskCode": self.task_code,
            "operationName": self.operation_name,
            "elementName": self.element_name,
            "duration": self.duration,
            "crew": None if self.crew is None else self.crew.to_dict(),
            "equipment": [item.to_dict() for item in self.equipment],
            "dependencies": list(self.dependencies),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> TaskDefinition:
        parsed = _expect_object(
            data,
            "TaskDefinition",
            required={"taskCode", "duration"},
            optional={"operationName", "elementName", "crew", "equipment", "dependencies"},
        )

        raw_crew = parsed.get("crew")
        crew = (
            None
            if raw_crew is None
            else CrewRequirement.from_dict(_as_mapping(raw_crew, "TaskDefinition.crew"))
        )

        raw_equipment = parsed.get("equipment")
        equipment: list[EquipmentRequirement] = []
        if raw_equipment is not None:
            for index, item in enumerate(_as_sequence(raw_equipment, "TaskDefinition.equipment")):
                path = f"TaskDefinition.equipment[{index}]"
                equipment.append(EquipmentRequirement.from_dict(_as_mapping(item, path)))

        raw_dependencies = parsed.get("dependencies")
        dependencies = (
            ()
            if raw_dependencies is None
            else tuple(_as_sequence(raw_dependencies, "TaskDefinition.dependencies"))
        )

        return cls(
            task_code=parsed["taskCode"],  # type: ignore[arg-type]
            duration=parsed["duration"],  # type: ignore[arg-type]
            operation_name=_text_or_empty(parsed.get("operationName")),
            element_name=_text_or_empty(parsed.get("elementName")),
            crew=crew,
            equipment=tuple(equipment),
            dependencies=dependencies,  # type: ignore[arg-type]
        )


@dataclass(frozen=True, slots=True)
class EvaluatedTask(CanonicalModel):
    """Task with computed critical cost and early/late intervals for one evaluation run."""

    definition: TaskDefinition
    critical_cost: int
    early_start: int
    early_finish: int
    late_start: int
    late_finish: int
    predecessors: tuple[str, ...] = ()
    successors: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.definition, TaskDefinition):
            _fail(
                "EvaluatedTask.definition",
                f"expected TaskDefinition, got {type(self.definition).__name__}",
            )
        path = f"EvaluatedTask[{self.definition.task_code}]"
        for field_name in _INTERVAL_FIELDS:
            _as_int(getattr(self, field_name), f"{path}.{field_name}", minimum=0)
        if self.early_finish != self.early_start + self.cost:
            _fail(path, "early_finish must equal early_start + cost")
        if self.late_finish != self.late_start + self.cost:
            _fail(path, "late_finish must equal late_start + cost")
        if self.critical_cost < self.cost:
            _fail(path, "critical_cost must be >= cost")
        object.__setattr__(
            self, "predecessors", _as_code_set(self.predecessors, f"{path}.predecessors")
        )
        object.__setattr__(self, "successors", _as_code_set(self.successors, f"{path}.successors"))

    @property
    def task_code(self) -> str:
        return self.definition.task_code

    @property
    def cost(self) -> int:
        return self.definition.duration

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def crew_assignment(self) -> int:
        return self.definition.crew_assignment

    @property
    def slack(self) -> int:
        """``late_start - early_start``.

        The late interval is anchored on the critical cost of the task itself
        (``total_duration - critical_cost``), so this value is not bounded below
        by zero and does not identify the critical chain on its own.
        """
        return self.late_start - self.early_start

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "taskCode": self.task_code,
            "criticalCost": self.critical_cost,
            "earlyStart": self.early_start,
            "earlyFinish": self.early_finish,
            "lateStart": self.late_start,
            "lateFinish": self.late_finish,
            "slack": self.slack,
            "predecessors": list(self.predecessors),
            "successors": list(self.successors),
        }

    def to_response(self) -> dict[str, JSONValue]:
        """Task listing record: definition fields plus the scheduled interval."""
        record = self.definition.to_dict()
        record["startInterval"] = self.early_start
        record["endInterval"] = self.early_finish
        return record


@dataclass(frozen=True, slots=True)
class Schedule(CanonicalModel):
    """Execution-ordered evaluated tasks plus the derived total duration."""

    tasks: tuple[EvaluatedTask, ...]
    total_duration: int

    def __post_init__(self) -> None:
        tasks = tuple(self.tasks)
        seen: set[str] = set()
        for index, task in enumerate(tasks):
            if not isinstance(task, EvaluatedTask):
                _fail(
                    f"Schedule.tasks[{index}]",
                    f"expected EvaluatedTask, got {type(task).__name__}",
                )
            if task.task_code in seen:
                _fail(f"Schedule.tasks[{index}]", f"duplicate task code {task.task_code!r}")
            seen.add(task.task_code)
        for task in tasks:
            dangling = sorted(
                code for code in (*task.predecessors, *task.successors) if code not in seen
            )
            if dangling:
                _fail(f"Schedule[{task.task_code}]", f"references unknown tasks: {dangling}")
        object.__setattr__(self, "tasks", tasks)

        _as_int(self.total_duration, "Schedule.total_duration", minimum=0)
        expected = max((task.critical_cost for task in tasks), default=0)
        if self.total_duration != expected:
            _fail("Schedule.total_duration", f"must equal max critical cost ({expected})")

    def __iter__(self) -> Iterator[EvaluatedTask]:
        return iter(self.tasks)

    def __len__(self) -> int:
        return len(self.tasks)

    @property
    def task_codes(self) -> tuple[str, ...]:
        return tuple(task.task_code for task in self.tasks)

    def get(self, task_code: str) -> EvaluatedTask:
        for task in self.tasks:
            if task.task_code == task_code:
                return task
        raise KeyError(f"Unknown task: {task_code}")

    def critical_path(self) -> tuple[EvaluatedTask, ...]:
        """
        Return one longest duration-weighted chain, source task first.

        Ties between equally long chains resolve to the lexicographically
        smallest task code at each step, independent of execution order.
        """
        if not self.tasks:
            return ()

        by_code = {task.task_code: task for task in self.tasks}
        cursor = min(
            (task for task in self.tasks if task.critical_cost == self.total_duration),
            key=lambda task: task.task_code,
        )

        path = [cursor]
        while cursor.predecessors:
            target = cursor.critical_cost - cursor.cost
            candidates = [
                code for code in cursor.predecessors if by_code[code].critical_cost == target
            ]
            if not candidates:
                break
            cursor = by_code[min(candidates)]
            path.append(cursor)
        path.reverse()
        return tuple(path)

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "totalDuration": self.total_duration,
            "tasks": [task.to_dict() for task in self.tasks],
        }


@dataclass(frozen=True, slots=True)
class PlanEvaluation(CanonicalModel):
    """Aggregate result of one evaluation run."""

    schedule: Schedule
    peak_crew_demand: int

    def __post_init__(self) -> None:
        if not isinstance(self.schedule, Schedule):
            _fail(
                "PlanEvaluation.schedule",
                f"expected Schedule, got {type(self.schedule).__name__}",
            )
        _as_int(self.peak_crew_demand, "PlanEvaluation.peak_crew_demand", minimum=0)

    @property
    def total_duration(self) -> int:
        return self.schedule.total_duration

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "totalDuration": self.total_duration,
            "peakCrewDemand": self.peak_crew_demand,
            "schedule": self.schedule.to_dict(),
        }

    def to_response(self) -> dict[str, JSONValue]:
        """Plan summary record."""
        return {"totalDuration": self.total_duration, "maxCrewMembers": self.peak_crew_demand}


def _fail(path: str, message: str) -> NoReturn:
    raise ValueError(f"{path}: {message}")


def _canonical_json(value: JSONValue) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _expect_object(
    value: object,
    path: str,
    *,
    required: set[str],
    optional: set[str] | None = None,
) -> dict[str, object]:
    if not isinstance(value, Mapping):
        _fail(path, f"expected object, got {type(value).__name__}")

    parsed: dict[str, object] = {}
    for key, item in value.items():
        if not isinstance(key, str):
            _fail(path, f"object keys must be strings, got {type(key).__name__}")
        parsed[key] = item

    allowed = required | (optional or set())
    unknown = sorted(key for key in parsed if key not in allowed)
    if unknown:
        _fail(path, f"unexpected fields: {unknown}")

    missing = sorted(key for key in required if key not in parsed)
    if missing:
        _fail(path, f"missing required fields: {missing}")

    return parsed


def _as_mapping(value: object, path: str) -> Mapping[str, object]:
    if not isinstance(value, Mapping):
        _fail(path, f"expected object, got {type(value).__name__}")
    return value


def _as_str(
    value: object,
    path: str,
    *,
    min_len: int = 1,
    max_len: int = _MAX_TEXT,
) -> str:
    if not isinstance(value, str):
        _fail(path, f"expected string, got {type(value).__name__}")
    normalized = value.strip()
    if len(normalized) < min_len:
        _fail(path, f"must be at least {min_len} character(s)")
    if len(normalized) > max_len:
        _fail(path, f"must be <= {max_len} characters")
    return normalized


def _text_or_empty(value: object) -> str:
    if value is None:
        return ""
    return value  # type: ignore[return-value]


def _as_int(value: object, path: str, *, minimum: int | None = None) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        _fail(path, f"expected integer, got {type(value).__name__}")
    if minimum is not None and value < minimum:
        _fail(path, f"must be >= {minimum}")
    return value


def _as_sequence(value: object, path: str) -> list[object]:
    if isinstance(value, (list, tuple)):
        return list(value)
    _fail(path, f"expected array, got {type(value).__name__}")


def _as_code_set(value: object, path: str) -> tuple[str, ...]:
    if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
        _fail(path, f"expected a collection of task codes, got {type(value).__name__}")
    codes: set[str] = set()
    for index, item in enumerate(value):
        codes.add(_as_str(item, f"{path}[{index}]"))
    return tuple(sorted(codes))


__all__ = [
    "CanonicalModel",
    "CrewRequirement",
    "EquipmentRequirement",
    "EvaluatedTask",
    "JSONScalar",
    "JSONValue",
    "PlanEvaluation",
    "Schedule",
    "TaskDefinition",
]
