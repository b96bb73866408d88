"""
crew-planner — domain layer

File: src/crew_planner/domain/__init__.py

Purpose
- Domain types shared across layers: task definitions, evaluated tasks, schedules.

Keep the domain layer free of IO side effects.
"""

from crew_planner.domain.ids import generate_run_id, validate_run_id
from crew_planner.domain.models import (
    CanonicalModel,
    CrewRequirement,
    EquipmentRequirement,
    EvaluatedTask,
    PlanEvaluation,
    Schedule,
    TaskDefinition,
)

__all__ = [
    "CanonicalModel",
    "CrewRequirement",
    "EquipmentRequirement",
    "EvaluatedTask",
    "PlanEvaluation",
    "Schedule",
    "TaskDefinition",
    "generate_run_id",
    "validate_run_id",
]
