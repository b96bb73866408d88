"""Read-only task definition source backed by a JSON or YAML file."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Final, TypeAlias, cast

import yaml

from crew_planner.domain.models import TaskDefinition

PathLike: TypeAlias = str | os.PathLike[str]

_JSON_SUFFIXES: Final[frozenset[str]] = frozenset({".json"})
_YAML_SUFFIXES: Final[frozenset[str]] = frozenset({".yaml", ".yml"})


class TaskSourceError(ValueError):
    """Raised when a task file cannot be read or contains malformed records."""


class TaskRepository:
    """
    Task definitions loaded once from ``path``.

    The file holds a top-level array of task records (``taskCode``,
    ``operationName``, ``elementName``, ``duration``, ``crew``, ``equipment``,
    ``dependencies``). The format is chosen by file extension.
    """

    __slots__ = ("_path", "_tasks")

    def __init__(self, path: PathLike) -> None:
        self._path = Path(path)
        self._tasks: tuple[TaskDefinition, ...] = ()
        self.load_tasks(self._path)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def tasks(self) -> tuple[TaskDefinition, ...]:
        return self._tasks

    def load_tasks(self, path: PathLike) -> tuple[TaskDefinition, ...]:
        """Replace the loaded tasks with the contents of ``path`` and return them."""
        resolved = Path(path)
        self._tasks = load_task_file(resolved)
        self._path = resolved
        return self._tasks


def load_task_file(path: PathLike) -> tuple[TaskDefinition, ...]:
    """Parse every task record in ``path``; fails on the first malformed record."""
    resolved = Path(path)
    records = _read_records(resolved)

    definitions: list[TaskDefinition] = []
    for index, record in enumerate(records):
        try:
            definitions.append(TaskDefinition.from_dict(cast("dict[str, object]", record)))
        except ValueError as exc:
            raise TaskSourceError(f"{resolved}[{index}]: {exc}") from exc
    return tuple(definitions)


def dump_task_file(definitions: tuple[TaskDefinition, ...], path: PathLike) -> Path:
    """Write ``definitions`` to ``path`` in the format implied by its extension."""
    resolved = Path(path)
    payload = [definition.to_dict() for definition in definitions]
    suffix = resolved.suffix.lower()

    if suffix in _JSON_SUFFIXES:
        rendered = json.dumps(payload, indent=2, ensure_ascii=False)
    elif suffix in _YAML_SUFFIXES:
        rendered = yaml.safe_dump(
            payload,
            sort_keys=False,
            default_flow_style=False,
            allow_unicode=False,
            width=120,
        )
    else:
        raise TaskSourceError(f"{resolved}: unsupported task file extension {suffix!r}")

    if not rendered.endswith("\n"):
        rendered = rendered + "\n"
    resolved.parent.mkdir(parents=True, exist_ok=True)
    resolved.write_text(rendered, encoding="utf-8")
    return resolved


def _read_records(path: Path) -> list[object]:
    suffix = path.suffix.lower()
    if suffix not in _JSON_SUFFIXES | _YAML_SUFFIXES:
        raise TaskSourceError(f"{path}: unsupported task file extension {suffix!r}")

    try:
        with path.open("r", encoding="utf-8") as handle:
            if suffix in _JSON_SUFFIXES:
                loaded = cast("object", json.load(handle))
            else:
                loaded = cast("object", yaml.safe_load(handle))
    except FileNotFoundError as exc:
        raise TaskSourceError(f"task file not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise TaskSourceError(f"{path}: invalid JSON ({exc})") from exc
    except yaml.YAMLError as exc:
        raise TaskSourceError(f"{path}: invalid YAML ({exc})") from exc
    except OSError as exc:
        raise TaskSourceError(f"unable to read task file {path}: {exc}") from exc

    if loaded is None:
        return []
    if not isinstance(loaded, list):
        raise TaskSourceError(f"{path}: expected top-level array, got {type(loaded).__name__}")
    return loaded


__all__ = ["TaskRepository", "TaskSourceError", "dump_task_file", "load_task_file"]
