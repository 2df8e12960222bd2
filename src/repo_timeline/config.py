"""Configuration loading and management for repo-timeline.

Configuration sources are merged in priority order:
    1. Defaults (defined in TimelineConfig)
    2. Global config (~/.repo-timeline.toml)
    3. Project config (./repo-timeline.toml)
    4. Explicit config file
    5. Environment variables (REPO_TIMELINE_* prefix)
    6. Overrides passed as kwargs (typically CLI flags)

Example:
    >>> config = load_config(git_max_commits=200)
    >>> config.git_max_commits
    200
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal, Optional, get_type_hints

from .exceptions import InvalidConfigError

Verbosity = Literal["quiet", "normal", "verbose"]

ENV_PREFIX = "REPO_TIMELINE_"
GLOBAL_CONFIG_NAME = ".repo-timeline.toml"
PROJECT_CONFIG_NAME = "repo-timeline.toml"


@dataclass(frozen=True)
class TimelineConfig:
    """Configuration for extraction, caching and orchestration.

    Attributes:
        Extraction:
            git_max_commits: Upper bound on commits walked per extraction
            include_all_branches: Walk every branch tip instead of HEAD only
            git_timeout_seconds: Budget for each git subprocess

        Caching:
            cache_ttl_seconds: Lifetime of an orchestrator cache entry
            memo_ttl_seconds: Lifetime of an extraction memo entry
            session_cache_ttl_seconds: Lifetime of resolved repository info

        Orchestration:
            provider_timeout_seconds: Budget for one provider fetch
            max_workers: Thread pool size for provider fan-out (None = auto)

        Output control:
            verbosity: Logging verbosity level
    """

    git_max_commits: int = 1000
    include_all_branches: bool = True
    git_timeout_seconds: float = 30.0

    cache_ttl_seconds: float = 300.0
    memo_ttl_seconds: float = 300.0
    session_cache_ttl_seconds: float = 60.0

    provider_timeout_seconds: float = 60.0
    max_workers: Optional[int] = None

    verbosity: Verbosity = "normal"

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.git_max_commits < 1:
            raise InvalidConfigError("git_max_commits", self.git_max_commits, "must be at least 1")
        if self.git_timeout_seconds <= 0:
            raise InvalidConfigError(
                "git_timeout_seconds", self.git_timeout_seconds, "must be positive"
            )
        for name in ("cache_ttl_seconds", "memo_ttl_seconds", "session_cache_ttl_seconds"):
            if getattr(self, name) < 0:
                raise InvalidConfigError(name, getattr(self, name), "must be non-negative")
        if self.provider_timeout_seconds <= 0:
            raise InvalidConfigError(
                "provider_timeout_seconds", self.provider_timeout_seconds, "must be positive"
            )
        if self.max_workers is not None and self.max_workers < 1:
            raise InvalidConfigError("max_workers", self.max_workers, "must be at least 1")
        if self.verbosity not in ("quiet", "normal", "verbose"):
            raise InvalidConfigError(
                "verbosity", self.verbosity, "expected quiet, normal or verbose"
            )


DEFAULT_CONFIG = TimelineConfig()


def load_config(config_file: Optional[Path] = None, **overrides: Any) -> TimelineConfig:
    """Load configuration with auto-discovery and merging.

    Args:
        config_file: Optional explicit config file path
        **overrides: Direct overrides (typically from CLI flags). ``None``
            values are ignored so unset CLI options fall through.

    Returns:
        Validated TimelineConfig instance

    Raises:
        InvalidConfigError: If a config file is missing/invalid or a value
            fails validation
    """
    merged: dict[str, Any] = {}

    global_config = Path.home() / GLOBAL_CONFIG_NAME
    if global_config.exists():
        merged.update(_load_toml_file(global_config))

    project_config = Path.cwd() / PROJECT_CONFIG_NAME
    if project_config.exists():
        merged.update(_load_toml_file(project_config))

    if config_file is not None:
        if not config_file.exists():
            raise InvalidConfigError("config_file", config_file, "file not found")
        merged.update(_load_toml_file(config_file))

    merged.update(_load_env_vars())

    if overrides.pop("verbose", False):
        overrides["verbosity"] = "verbose"
    if overrides.pop("quiet", False):
        overrides["verbosity"] = "quiet"
    merged.update({k: v for k, v in overrides.items() if v is not None})

    unknown = sorted(set(merged) - set(TimelineConfig.__dataclass_fields__))
    if unknown:
        raise InvalidConfigError(unknown[0], merged[unknown[0]], "unknown configuration key")

    try:
        return TimelineConfig(**merged)
    except TypeError as e:
        # Wrong value types from TOML (e.g. a string where a number belongs)
        raise InvalidConfigError("config", merged, str(e))


def _load_env_vars() -> dict[str, Any]:
    """Load configuration from REPO_TIMELINE_* environment variables.

    Every TimelineConfig field can be set, e.g. REPO_TIMELINE_GIT_MAX_COMMITS=200
    or REPO_TIMELINE_INCLUDE_ALL_BRANCHES=false.
    """
    type_hints = get_type_hints(TimelineConfig)
    result: dict[str, Any] = {}

    for field_name in TimelineConfig.__dataclass_fields__:
        env_key = f"{ENV_PREFIX}{field_name.upper()}"
        env_value = os.environ.get(env_key)
        if env_value is None:
            continue

        type_hint = type_hints.get(field_name)
        if type_hint is None:
            continue

        try:
            parsed = _parse_env_value(env_value, type_hint)
        except ValueError as e:
            raise InvalidConfigError(env_key, env_value, str(e))
        if parsed is not None:
            result[field_name] = parsed

    return result


def _parse_env_value(value: str, type_hint: Any) -> Any:
    """Parse an environment variable string to the field's type.

    Raises:
        ValueError: If value can't be parsed to expected type
    """
    origin = getattr(type_hint, "__origin__", None)

    # Optional[X] is Union[X, None]
    args = getattr(type_hint, "__args__", ())
    if type(None) in args:
        non_none_types = [t for t in args if t is not type(None)]
        if non_none_types:
            type_hint = non_none_types[0]
            origin = getattr(type_hint, "__origin__", None)

    if type_hint is bool:
        lower = value.lower()
        if lower in ("true", "1", "yes", "on"):
            return True
        if lower in ("false", "0", "no", "off"):
            return False
        raise ValueError(f"expected true/false, got '{value}'")

    if type_hint is int:
        return int(value)

    if type_hint is float:
        return float(value)

    if type_hint is str or origin is Literal:
        return value

    return None


def _load_toml_file(path: Path) -> dict:
    """Load a TOML file and return the parsed dict.

    A ``[repo-timeline]`` table is used when present, otherwise top-level
    keys are read directly.
    """
    try:
        # Python 3.11+ has tomllib in stdlib
        import tomllib
    except ModuleNotFoundError:
        # Fallback to tomli for Python 3.9-3.10
        import tomli as tomllib  # type: ignore

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise InvalidConfigError("config_file", path, str(e))

    section = data.get("repo-timeline")
    if isinstance(section, dict):
        return dict(section)
    return data
