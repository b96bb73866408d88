"""
crew-planner — configuration settings and validation.

File: src/crew_planner/config/schema.py

Every setting is addressed as ``section.key`` and declared once in
``SETTINGS``. A config source (TOML table, profile overlay, environment,
command line) is reduced to a flat ``{"section.key": value}`` layer. Layers
are stacked by the loader and the result is checked here before it is frozen
into a ``PlannerConfig``.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Final, Literal, cast

from crew_planner.constants import (
    CONFIG_SCHEMA_VERSION,
    DEFAULT_LOG_DIR,
    DEFAULT_TASKS_FILE,
    TIE_BREAK_INPUT_ORDER,
    TIE_BREAK_POLICIES,
    TIE_BREAK_TASK_CODE,
)

SettingKind = Literal["version", "bool", "path", "choice"]

LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR")
LOG_FORMATS: Final[tuple[str, ...]] = ("json", "text")

_PROFILE_NAME = re.compile(r"^[a-z][a-z0-9_-]*$")


@dataclass(frozen=True, slots=True)
class Setting:
    """One configurable value.

    ``overridable`` settings may be changed by profile overlays, environment
    variables and command-line overrides; the others only by the config file.
    """

    section: str
    key: str
    kind: SettingKind
    default: object
    choices: tuple[str, ...] = ()
    overridable: bool = True

    @property
    def path(self) -> str:
        return f"{self.section}.{self.key}"


SETTINGS: Final[tuple[Setting, ...]] = (
    Setting("meta", "schema_version", "version", CONFIG_SCHEMA_VERSION, overridable=False),
    Setting("paths", "tasks_file", "path", DEFAULT_TASKS_FILE),
    Setting("planning", "tie_break", "choice", TIE_BREAK_INPUT_ORDER, TIE_BREAK_POLICIES),
    Setting("observability", "log_level", "choice", "INFO", LOG_LEVELS),
    Setting("observability", "log_format", "choice", "json", LOG_FORMATS),
    Setting("observability", "log_dir", "path", DEFAULT_LOG_DIR),
    Setting("observability", "log_to_stdout", "bool", False),
)
SETTINGS_BY_PATH: Final[Mapping[str, Setting]] = MappingProxyType(
    {setting.path: setting for setting in SETTINGS}
)
SECTIONS: Final[tuple[str, ...]] = tuple(dict.fromkeys(setting.section for setting in SETTINGS))
OVERLAY_SECTIONS: Final[tuple[str, ...]] = tuple(
    dict.fromkeys(setting.section for setting in SETTINGS if setting.overridable)
)

BUILTIN_PROFILES: Final[Mapping[str, Mapping[str, object]]] = MappingProxyType(
    {
        "canonical": MappingProxyType({"planning.tie_break": TIE_BREAK_TASK_CODE}),
        "debug": MappingProxyType(
            {
                "observability.log_level": "DEBUG",
                "observability.log_format": "text",
                "observability.log_to_stdout": True,
            }
        ),
    }
)
BUILTIN_PROFILE_NAMES: Final[tuple[str, ...]] = tuple(BUILTIN_PROFILES)


@dataclass(frozen=True, slots=True)
class ConfigValidationIssue:
    """Single structured validation failure."""

    path: str
    message: str


class ConfigValidationError(ValueError):
    """Raised when a config source or the merged result breaks a rule."""

    def __init__(self, issues: Sequence[ConfigValidationIssue]) -> None:
        self.issues = tuple(issues)
        rendered = "\n".join(f"- {issue.path}: {issue.message}" for issue in self.issues)
        super().__init__(f"invalid config:\n{rendered}")


@dataclass(frozen=True, slots=True)
class ConfigDocument:
    """A parsed TOML table reduced to flat settings and profile overlays."""

    values: Mapping[str, object]
    profiles: Mapping[str, Mapping[str, object]]


@dataclass(frozen=True, slots=True)
class PlannerConfig:
    """Effective runtime configuration after every source has been applied."""

    schema_version: int
    tasks_file: str
    tie_break: str
    log_level: str
    log_format: str
    log_dir: str
    log_to_stdout: bool
    active_profile: str | None = None
    profiles: Mapping[str, Mapping[str, object]] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Nested ``{section: {key: value}}`` view including the profile overlays."""

        out = _nest({setting.path: getattr(self, setting.key) for setting in SETTINGS})
        out["profiles"] = {name: _nest(self.profiles[name]) for name in sorted(self.profiles)}
        return out


def migration_guidance(found_version: int) -> str:
    """Return deterministic migration guidance for a schema version mismatch."""

    if found_version < CONFIG_SCHEMA_VERSION:
        return (
            f"schema version {found_version} is older than supported {CONFIG_SCHEMA_VERSION}; "
            "upgrade crew_planner.toml to the current schema"
        )
    if found_version > CONFIG_SCHEMA_VERSION:
        return (
            f"schema version {found_version} is newer than supported {CONFIG_SCHEMA_VERSION}; "
            "upgrade the crew-planner runtime"
        )
    return "schema version is current"


def normalize_value(setting: Setting, value: object) -> object:
    """Return ``value`` normalized for ``setting``; raise ``ValueError`` with the reason."""

    if setting.kind == "bool":
        if not isinstance(value, bool):
            raise ValueError(f"expected boolean, got {type(value).__name__}")
        return value
    if setting.kind == "version":
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"expected integer, got {type(value).__name__}")
        if value != CONFIG_SCHEMA_VERSION:
            raise ValueError(migration_guidance(value))
        return value

    if not isinstance(value, str):
        raise ValueError(f"expected string, got {type(value).__name__}")
    text = value.strip()
    if not text:
        raise ValueError("must not be empty")
    if setting.kind == "path" and "\x00" in text:
        raise ValueError("must not contain NUL bytes")
    if setting.choices and text not in setting.choices:
        expected = ", ".join(sorted(setting.choices))
        raise ValueError(f"invalid value {text!r}; expected one of: {expected}")
    return text


def read_document(table: object) -> ConfigDocument:
    """Flatten a parsed config table, raising ``ConfigValidationError`` on any issue."""

    if not isinstance(table, Mapping):
        raise ConfigValidationError(
            [ConfigValidationIssue("<root>", f"expected object, got {type(table).__name__}")]
        )

    issues: list[ConfigValidationIssue] = []
    body = {key: value for key, value in table.items() if key != "profiles"}
    values = _flatten(body, prefix="", allowed=SECTIONS, issues=issues)

    profiles: dict[str, dict[str, object]] = {}
    raw_profiles = table.get("profiles", {})
    if not isinstance(raw_profiles, Mapping):
        issues.append(
            ConfigValidationIssue("profiles", f"expected object, got {type(raw_profiles).__name__}")
        )
        raw_profiles = {}
    for name in sorted(raw_profiles):
        path = f"profiles.{name}"
        overlay = raw_profiles[name]
        if not _PROFILE_NAME.fullmatch(name):
            issues.append(ConfigValidationIssue(path, "profile name must match ^[a-z][a-z0-9_-]*$"))
        elif not isinstance(overlay, Mapping):
            issues.append(
                ConfigValidationIssue(path, f"expected object, got {type(overlay).__name__}")
            )
        else:
            profiles[name] = _flatten(overlay, prefix=path, allowed=OVERLAY_SECTIONS, issues=issues)

    if issues:
        raise ConfigValidationError(issues)
    return ConfigDocument(values=values, profiles=profiles)


def merge_profiles(
    overlays: Mapping[str, Mapping[str, object]],
) -> dict[str, dict[str, object]]:
    """Built-in profiles updated key by key with ``overlays`` of the same name."""

    merged = {name: dict(overlay) for name, overlay in BUILTIN_PROFILES.items()}
    for name in sorted(overlays):
        merged.setdefault(name, {}).update(overlays[name])
    return merged


def build_config(
    values: Mapping[str, object],
    *,
    profiles: Mapping[str, Mapping[str, object]] = BUILTIN_PROFILES,
    active_profile: str | None = None,
) -> PlannerConfig:
    """Check a merged flat layer over the defaults and freeze it."""

    issues: list[ConfigValidationIssue] = []
    merged: dict[str, object] = {setting.path: setting.default for setting in SETTINGS}
    for path in sorted(values):
        setting = SETTINGS_BY_PATH.get(path)
        if setting is None:
            issues.append(ConfigValidationIssue(path, "unknown field"))
            continue
        try:
            merged[path] = normalize_value(setting, values[path])
        except ValueError as exc:
            issues.append(ConfigValidationIssue(path, str(exc)))
    if active_profile is not None and active_profile not in profiles:
        issues.append(
            ConfigValidationIssue("profiles", f"profile {active_profile!r} is not defined")
        )
    if issues:
        raise ConfigValidationError(issues)

    return PlannerConfig(
        schema_version=cast(int, merged["meta.schema_version"]),
        tasks_file=cast(str, merged["paths.tasks_file"]),
        tie_break=cast(str, merged["planning.tie_break"]),
        log_level=cast(str, merged["observability.log_level"]),
        log_format=cast(str, merged["observability.log_format"]),
        log_dir=cast(str, merged["observability.log_dir"]),
        log_to_stdout=cast(bool, merged["observability.log_to_stdout"]),
        active_profile=active_profile,
        profiles={name: dict(profiles[name]) for name in sorted(profiles)},
    )


def default_config() -> PlannerConfig:
    """Built-in defaults with no file, profile or override applied."""

    return build_config({})


def _flatten(
    table: Mapping[str, object],
    *,
    prefix: str,
    allowed: tuple[str, ...],
    issues: list[ConfigValidationIssue],
) -> dict[str, object]:
    flat: dict[str, object] = {}
    for section in sorted(table):
        section_path = _join(prefix, section)
        body = table[section]
        if section not in allowed:
            issues.append(ConfigValidationIssue(section_path, "unknown field"))
            continue
        if not isinstance(body, Mapping):
            issues.append(
                ConfigValidationIssue(section_path, f"expected object, got {type(body).__name__}")
            )
            continue
        for key in sorted(body):
            setting = SETTINGS_BY_PATH.get(f"{section}.{key}")
            if setting is None:
                issues.append(ConfigValidationIssue(_join(section_path, key), "unknown field"))
                continue
            try:
                flat[setting.path] = normalize_value(setting, body[key])
            except ValueError as exc:
                issues.append(ConfigValidationIssue(_join(section_path, key), str(exc)))
    return flat


def _nest(flat: Mapping[str, object]) -> dict[str, Any]:
    nested: dict[str, Any] = {}
    for path in sorted(flat):
        section, key = path.split(".", 1)
        nested.setdefault(section, {})[key] = flat[path]
    return nested


def _join(prefix: str, key: str) -> str:
    return f"{prefix}.{key}" if prefix else key


__all__ = [
    "BUILTIN_PROFILES",
    "BUILTIN_PROFILE_NAMES",
    "ConfigDocument",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "LOG_FORMATS",
    "LOG_LEVELS",
    "OVERLAY_SECTIONS",
    "PlannerConfig",
    "SECTIONS",
    "SETTINGS",
    "SETTINGS_BY_PATH",
    "Setting",
    "build_config",
    "default_config",
    "merge_profiles",
    "migration_guidance",
    "normalize_value",
    "read_document",
]
