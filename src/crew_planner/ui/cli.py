"""Command-line interface router for crew-planner."""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog

from crew_planner.config import (
    ConfigLoadError,
    ConfigValidationError,
    PlannerConfig,
    load_config,
)
from crew_planner.constants import TIE_BREAK_POLICIES
from crew_planner.domain import PlanEvaluation, TaskDefinition, generate_run_id
from crew_planner.observability import (
    ROOT_LOGGER_NAME,
    correlation_scope,
    shutdown_logging,
    start_run_logging,
)
from crew_planner.persistence import TaskRepository, TaskSourceError
from crew_planner.planning import (
    CyclicDependencyError,
    DataError,
    PlanningError,
    ResourceLevelingService,
    evaluate_plan,
)
from crew_planner.ui.render import CLIRenderer, create_renderer


class CLIError(RuntimeError):
    """Typed CLI failure with an explicit process exit code.

    Not a frozen dataclass: contextlib reassigns ``__traceback__`` when the
    error leaves a generator-based context manager.
    """

    def __init__(self, message: str, exit_code: int = 1) -> None:
        super().__init__(message)
        self.message = message
        self.exit_code = exit_code

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True, slots=True)
class _Run:
    """Outcome of one evaluated task file."""

    config: PlannerConfig
    tasks_path: Path
    evaluation: PlanEvaluation


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse command router."""

    parser = argparse.ArgumentParser(
        prog="crew-planner",
        description=(
            "Critical path scheduling and peak crew demand for interdependent tasks.\n\n"
            "Common workflows:\n"
            "  crew-planner plan --tasks tasks.json     Total duration and max crew members\n"
            "  crew-planner tasks --tasks tasks.json    Execution-ordered task intervals\n"
            "  crew-planner config                      Show effective configuration\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        dest="config_path",
        help="Path to crew_planner TOML config (default: ./crew_planner.toml if present).",
    )
    common.add_argument("--profile", help="Config profile overlay name.")
    common.add_argument("--json", action="store_true", help="Emit canonical JSON.")
    common.add_argument("--verbose", "-v", action="store_true", help="Show detailed output.")
    common.add_argument(
        "--no-color", action="store_true", help="Disable colored output (NO_COLOR also works)."
    )

    scheduling = argparse.ArgumentParser(add_help=False)
    scheduling.add_argument(
        "--tasks",
        dest="tasks_path",
        help="Task file (.json, .yaml, .yml); overrides paths.tasks_file.",
    )
    scheduling.add_argument(
        "--tie-break",
        choices=TIE_BREAK_POLICIES,
        help="Ordering of tasks with equal early start; overrides planning.tie_break.",
    )
    scheduling.add_argument(
        "--log-dir",
        help="Base directory for per-run logs; overrides observability.log_dir.",
    )

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser(
        "plan",
        parents=[common, scheduling],
        help="Compute total duration and peak crew demand",
        description=(
            "Report the project's total duration, the maximum number of crew members\n"
            "working at the same time and the critical path. --verbose adds the crew\n"
            "demand of every elementary interval.\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    ).set_defaults(handler=_cmd_plan)
    commands.add_parser(
        "tasks",
        parents=[common, scheduling],
        help="List tasks in execution order with their scheduled intervals",
        description=(
            "List every task ordered by early start. --verbose adds critical cost,\n"
            "late start, slack and predecessors.\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    ).set_defaults(handler=_cmd_tasks)
    commands.add_parser(
        "config",
        parents=[common],
        help="Show effective configuration",
        description="Print the configuration after every source and profile is applied.\n",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    ).set_defaults(handler=_cmd_config)

    return parser


def run_cli(argv: Sequence[str] | None = None) -> int:
    """Parse argv, run the selected command, and return its exit code."""

    args = build_parser().parse_args(argv)
    try:
        return int(args.handler(args))
    except CLIError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_code


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

_TEXT_HEADERS = frozenset({"CODE", "OPERATION", "ELEMENT", "DEPENDS ON"})


def _cmd_plan(args: argparse.Namespace) -> int:
    run = _run(args, command="plan")
    evaluation = run.evaluation
    critical_path = [task.task_code for task in evaluation.schedule.critical_path()]

    if args.json:
        _emit_json(
            {
                "command": "plan",
                "tasks_file": run.tasks_path.as_posix(),
                "tie_break": run.config.tie_break,
                "plan": evaluation.to_response(),
                "critical_path": critical_path,
            }
        )
        return 0

    renderer = _renderer(args)
    renderer.kv("Tasks file", run.tasks_path.as_posix())
    renderer.kv("Tasks", len(evaluation.schedule))
    renderer.kv("Total duration", evaluation.total_duration)
    renderer.kv("Max crew members", evaluation.peak_crew_demand)
    renderer.kv("Critical path", " -> ".join(critical_path) or "(none)")
    if renderer.verbose:
        profile = ResourceLevelingService().demand_profile(evaluation.schedule.tasks)
        renderer.table(
            ["START", "END", "CREW"],
            [[str(item.start), str(item.finish), str(item.demand)] for item in profile],
            title="Crew demand profile:",
            numeric_columns=(0, 1, 2),
        )
    return 0


def _cmd_tasks(args: argparse.Namespace) -> int:
    run = _run(args, command="tasks")
    schedule = run.evaluation.schedule

    if args.json:
        _emit_json(
            {
                "command": "tasks",
                "tasks_file": run.tasks_path.as_posix(),
                "tie_break": run.config.tie_break,
                "total_duration": schedule.total_duration,
                "tasks": [task.to_response() for task in schedule],
            }
        )
        return 0

    renderer = _renderer(args)
    renderer.kv("Total duration", schedule.total_duration)
    if not schedule.tasks:
        renderer.text("No tasks defined.")
        return 0

    headers = ["CODE", "OPERATION", "ELEMENT", "START", "END", "CREW"]
    if renderer.verbose:
        headers += ["CRITICAL COST", "LATE START", "SLACK", "DEPENDS ON"]
    rows = []
    for task in schedule:
        row = [
            task.task_code,
            task.definition.operation_name,
            task.definition.element_name,
            task.early_start,
            task.early_finish,
            task.crew_assignment,
        ]
        if renderer.verbose:
            row += [task.critical_cost, task.late_start, task.slack, ", ".join(task.predecessors)]
        rows.append([str(cell) for cell in row])
    numeric = [index for index, header in enumerate(headers) if header not in _TEXT_HEADERS]
    renderer.table(headers, rows, title="Execution order:", numeric_columns=numeric)
    return 0


def _cmd_config(args: argparse.Namespace) -> int:
    config = _load_config(args)
    settings = config.to_dict()

    if args.json:
        _emit_json(
            {"command": "config", "active_profile": config.active_profile, "config": settings}
        )
        return 0

    renderer = _renderer(args)
    renderer.kv("Active profile", config.active_profile or "(default)")
    profiles = settings.pop("profiles")
    for section, values in settings.items():
        renderer.section(f"[{section}]")
        for key, value in values.items():
            renderer.kv(key, json.dumps(value))
    renderer.section("[profiles]")
    for name, overlay in profiles.items():
        renderer.kv(name, json.dumps(overlay, sort_keys=True))
    return 0


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(args: argparse.Namespace, *, command: str) -> _Run:
    config = _load_config(args)
    tasks_path = (
        Path(args.tasks_path).expanduser().resolve() if args.tasks_path else Path(config.tasks_file)
    )
    with _run_logging(config, command=command, tasks_path=tasks_path) as log:
        definitions = _load_definitions(tasks_path)
        evaluation = _evaluate(definitions, tie_break=config.tie_break, log=log)
        log.info(
            "plan evaluated",
            task_count=len(definitions),
            total_duration=evaluation.total_duration,
            peak_crew_demand=evaluation.peak_crew_demand,
        )
    return _Run(config=config, tasks_path=tasks_path, evaluation=evaluation)


def _load_config(args: argparse.Namespace) -> PlannerConfig:
    overrides: dict[str, object] = {}
    if getattr(args, "tie_break", None):
        overrides["planning.tie_break"] = args.tie_break
    if getattr(args, "log_dir", None):
        overrides["observability.log_dir"] = str(Path(args.log_dir).expanduser().resolve())
    try:
        return load_config(args.config_path, profile=args.profile, overrides=overrides)
    except (ConfigLoadError, ConfigValidationError) as exc:
        raise CLIError(str(exc), exit_code=2) from exc


@contextmanager
def _run_logging(config: PlannerConfig, *, command: str, tasks_path: Path) -> Iterator[Any]:
    try:
        start_run_logging(
            generate_run_id(),
            log_dir=config.log_dir,
            level=config.log_level,
            log_format="text" if config.log_format == "text" else "json",
            to_stderr=config.log_to_stdout,
        )
    except OSError as exc:
        raise CLIError(f"cannot open run log under {config.log_dir}: {exc}", exit_code=2) from exc

    log = structlog.get_logger(ROOT_LOGGER_NAME)
    try:
        with correlation_scope(command=command, tasks_file=tasks_path.as_posix()):
            log.info("run started", tie_break=config.tie_break)
            yield log
    finally:
        shutdown_logging()


def _load_definitions(tasks_path: Path) -> tuple[TaskDefinition, ...]:
    try:
        return TaskRepository(tasks_path).tasks
    except TaskSourceError as exc:
        raise CLIError(str(exc), exit_code=2) from exc


def _evaluate(
    definitions: Sequence[TaskDefinition], *, tie_break: str, log: Any
) -> PlanEvaluation:
    try:
        return evaluate_plan(definitions, tie_break=tie_break, logger=log)
    except (DataError, CyclicDependencyError) as exc:
        log.error("schedule rejected", reason=type(exc).__name__)
        raise CLIError(f"schedule rejected: {exc}", exit_code=1) from exc
    except PlanningError as exc:
        raise CLIError(f"planning failed: {exc}", exit_code=1) from exc


def _emit_json(payload: Mapping[str, object]) -> None:
    print(json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False))


def _renderer(args: argparse.Namespace) -> CLIRenderer:
    return create_renderer(no_color=args.no_color, verbose=args.verbose)


__all__ = ["CLIError", "build_parser", "run_cli"]
