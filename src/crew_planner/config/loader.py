"""
crew-planner — config loading.

File: src/crew_planner/config/loader.py

Sources, lowest precedence first: built-in defaults, ``crew_planner.toml``,
the selected profile overlay, ``CREW_PLANNER_<SECTION>_<KEY>`` environment
variables, then explicit ``section.key`` overrides from the command line.
Relative paths resolve against the directory of the config file, or the
working directory when no file is given.
"""

from __future__ import annotations

import json
import os
import tomllib
from collections.abc import Mapping
from dataclasses import replace
from pathlib import Path
from typing import Any, Final

from crew_planner.config.schema import (
    SETTINGS,
    PlannerConfig,
    Setting,
    build_config,
    merge_profiles,
    read_document,
)

DEFAULT_CONFIG_FILE: Final[str] = "crew_planner.toml"
ENV_PREFIX: Final[str] = "CREW_PLANNER_"
PROFILE_ENV_VAR: Final[str] = f"{ENV_PREFIX}PROFILE"

_TRUE_WORDS: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on"})
_FALSE_WORDS: Final[frozenset[str]] = frozenset({"0", "false", "no", "off"})


class ConfigLoadError(ValueError):
    """Config file unreadable, or an environment value cannot be coerced."""


def load_config(
    config_path: str | Path | None = None,
    *,
    profile: str | None = None,
    overrides: Mapping[str, object] | None = None,
    environ: Mapping[str, str] | None = None,
) -> PlannerConfig:
    """Load the effective config; ``overrides`` maps ``section.key`` to a value."""

    path = (
        Path.cwd() / DEFAULT_CONFIG_FILE
        if config_path is None
        else Path(config_path).expanduser()
    ).resolve()
    document = read_document(_read_toml(path, required=config_path is not None))
    env = os.environ if environ is None else environ
    selected = _select_profile(profile, env)
    profiles = merge_profiles(document.profiles)

    layer: dict[str, Any] = dict(document.values)
    if selected is not None and selected in profiles:
        layer.update(profiles[selected])
    layer.update(_environment_layer(env))
    layer.update(overrides or {})

    config = build_config(layer, profiles=profiles, active_profile=selected)
    anchored = {
        setting.key: _anchor(getattr(config, setting.key), path.parent)
        for setting in SETTINGS
        if setting.kind == "path"
    }
    return replace(config, **anchored)


def env_var_name(setting: Setting) -> str:
    """Environment variable bound to ``setting``."""

    return f"{ENV_PREFIX}{setting.section}_{setting.key}".upper()


def dump_effective_config(config: PlannerConfig) -> str:
    """Return deterministic JSON dump of the effective config."""

    return json.dumps(config.to_dict(), sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _read_toml(path: Path, *, required: bool) -> dict[str, Any]:
    if not path.exists():
        if required:
            raise ConfigLoadError(f"config file not found: {path}")
        return {}
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigLoadError(f"invalid TOML in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigLoadError(f"unable to read config file {path}: {exc}") from exc


def _select_profile(profile: str | None, environ: Mapping[str, str]) -> str | None:
    for candidate in (profile, environ.get(PROFILE_ENV_VAR)):
        if candidate is not None:
            return candidate.strip() or None
    return None


def _environment_layer(environ: Mapping[str, str]) -> dict[str, object]:
    layer: dict[str, object] = {}
    for setting in SETTINGS:
        if not setting.overridable:
            continue
        name = env_var_name(setting)
        raw = environ.get(name)
        if raw is None:
            continue
        layer[setting.path] = _coerce(raw.strip(), setting, name)
    return layer


def _coerce(raw: str, setting: Setting, env_name: str) -> object:
    if setting.kind != "bool":
        return raw
    lowered = raw.lower()
    if lowered in _TRUE_WORDS:
        return True
    if lowered in _FALSE_WORDS:
        return False
    raise ConfigLoadError(
        f"{env_name} -> {setting.path} must be a boolean (true/false/1/0/yes/no/on/off)"
    )


def _anchor(raw: str, base_dir: Path) -> str:
    candidate = Path(os.path.expandvars(raw)).expanduser()
    if not candidate.is_absolute():
        candidate = base_dir / candidate
    return Path(os.path.normpath(candidate)).as_posix()


__all__ = [
    "ConfigLoadError",
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "PROFILE_ENV_VAR",
    "dump_effective_config",
    "env_var_name",
    "load_config",
]
