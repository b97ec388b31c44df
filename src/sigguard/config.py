"""Configuration management for sigguard.

Settings are layered, lowest priority first::

    Settings defaults
         |
         +---> FileConfigSource   (sigguard.yaml, or --config; YAML, JSON, TOML)
         +---> EnvConfigSource    (SIGGUARD_* variables)
         +---> GITHUB_TOKEN
         +---> CLI overrides
         |
         v
    Settings (frozen, passed explicitly to every component)

The process environment is only read here; nothing downstream looks at
``os.environ`` or modifies it.

Usage:
    >>> settings = load_settings(overrides={"base_ref": "origin/develop"})
    >>> settings = resolve_repository(settings)
    >>> settings.slug
    'octo/widgets'
"""

from __future__ import annotations

import json
import logging
import os
import tomllib
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Mapping

import yaml

from sigguard.ci import detect_ci_platform, detect_repository, read_origin_url
from sigguard.errors import ConfigurationError
from sigguard.observability import LOG_FORMATS

logger = logging.getLogger(__name__)

ENV_PREFIX = "SIGGUARD"
TOKEN_VARIABLE = "GITHUB_TOKEN"
DEFAULT_CONFIG_FILE = "sigguard.yaml"


# =============================================================================
# Settings
# =============================================================================


@dataclass(frozen=True)
class Settings:
    """Everything one verification run needs to know.

    Attributes:
        base_ref: Base reference of the range.
        head_ref: Head reference of the range.
        repo_owner: Repository owner on the hosting platform.
        repo_name: Repository name on the hosting platform.
        fetch_depth: Clone depth the CI checkout used. Informational only.
        fail_on_unsigned: Exit non-zero when any commit fails.
        token: Identity provider API token.
        api_url: Identity provider API base URL.
        repo_path: Working copy to inspect.
        git_program: ``git`` executable.
        gpg_program: ``gpg`` executable.
        gpg_homedir: GnuPG home directory, when not the default.
        http_timeout: Network timeout in seconds; None blocks indefinitely.
        log_level: Logging level name.
        log_format: ``console``, ``json`` or ``logfmt``.
    """

    base_ref: str = "origin/main"
    head_ref: str = "HEAD"
    repo_owner: str | None = None
    repo_name: str | None = None
    fetch_depth: int = 200
    fail_on_unsigned: bool = True
    token: str | None = field(default=None, repr=False)
    api_url: str = "https://api.github.com"
    repo_path: str = "."
    git_program: str = "git"
    gpg_program: str = "gpg"
    gpg_homedir: str | None = None
    http_timeout: float | None = None
    log_level: str = "WARNING"
    log_format: str = "console"

    @property
    def slug(self) -> str | None:
        if self.repo_owner and self.repo_name:
            return f"{self.repo_owner}/{self.repo_name}"
        return None

    @classmethod
    def field_names(cls) -> frozenset[str]:
        return frozenset(f.name for f in fields(cls))

    def merge(self, values: Mapping[str, Any]) -> "Settings":
        """Return a copy with ``values`` applied on top, type-checked."""
        if not values:
            return self
        unknown = sorted(set(values) - self.field_names())
        if unknown:
            raise ConfigurationError(f"Unknown setting(s): {', '.join(unknown)}")
        return replace(self, **{k: _coerce(k, v) for k, v in values.items()})


_INT_FIELDS = frozenset({"fetch_depth"})
_FLOAT_FIELDS = frozenset({"http_timeout"})
_BOOL_FIELDS = frozenset({"fail_on_unsigned"})
_OPTIONAL_FIELDS = frozenset(
    {"repo_owner", "repo_name", "token", "gpg_homedir", "http_timeout"}
)
_TRUE_STRINGS = frozenset({"true", "yes", "on", "1"})
_FALSE_STRINGS = frozenset({"false", "no", "off", "0"})
_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


def _coerce(name: str, value: Any) -> Any:
    if value is None:
        if name in _OPTIONAL_FIELDS:
            return None
        raise ConfigurationError(f"Setting '{name}' may not be empty")

    try:
        if name in _BOOL_FIELDS:
            if isinstance(value, bool):
                return value
            text = str(value).strip().lower()
            if text in _TRUE_STRINGS:
                return True
            if text in _FALSE_STRINGS:
                return False
            raise ValueError(f"not a boolean: {value!r}")
        if name in _INT_FIELDS:
            if isinstance(value, bool):
                raise ValueError(f"not an integer: {value!r}")
            number = int(value)
            if number < 0:
                raise ValueError("must not be negative")
            return number
        if name in _FLOAT_FIELDS:
            if isinstance(value, bool):
                raise ValueError(f"not a number: {value!r}")
            number = float(value)
            if number <= 0:
                raise ValueError("must be positive")
            return number
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid value for '{name}': {e}") from e

    if isinstance(value, (dict, list)):
        raise ConfigurationError(f"Invalid value for '{name}': expected a scalar")
    if name == "log_level":
        level = str(value).strip().upper()
        if level not in _LOG_LEVELS:
            raise ConfigurationError(f"Invalid value for 'log_level': {value!r}")
        return level
    if name == "log_format" and value not in LOG_FORMATS:
        raise ConfigurationError(
            f"Invalid value for 'log_format': {value!r} "
            f"(expected one of {', '.join(LOG_FORMATS)})"
        )
    return str(value)


# =============================================================================
# Configuration Sources
# =============================================================================


class ConfigSource(ABC):
    """A source of flat ``setting name -> value`` pairs."""

    @abstractmethod
    def load(self) -> dict[str, Any]:
        pass


class EnvConfigSource(ConfigSource):
    """Environment variable configuration source.

    Example:
        SIGGUARD_BASE_REF=origin/develop
        SIGGUARD_FETCH_DEPTH=50

        Will produce:
        {"base_ref": "origin/develop", "fetch_depth": 50}

    Variables with the prefix that name no setting are ignored.
    """

    def __init__(
        self,
        prefix: str = ENV_PREFIX,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._prefix = f"{prefix}_"
        self._environ = environ

    def load(self) -> dict[str, Any]:
        env = os.environ if self._environ is None else self._environ
        known = Settings.field_names()
        result: dict[str, Any] = {}

        for key, value in env.items():
            if not key.startswith(self._prefix):
                continue
            name = key[len(self._prefix) :].lower()
            if name not in known:
                logger.debug("Ignoring unknown environment setting %s", key)
                continue
            result[name] = self._parse_value(value)

        return result

    def _parse_value(self, value: str) -> Any:
        """Parse string value to appropriate type."""
        lowered = value.strip().lower()
        if lowered in ("true", "yes", "on"):
            return True
        if lowered in ("false", "no", "off"):
            return False
        if lowered in ("null", "none", ""):
            return None
        return value


class FileConfigSource(ConfigSource):
    """File-based configuration source.

    Supports YAML, JSON and TOML, detected from the file extension. A
    ``sigguard`` top-level table is used when present, so the settings can
    live in a shared file.
    """

    def __init__(self, path: str | Path, *, required: bool = False) -> None:
        self._path = Path(path)
        self._required = required

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> dict[str, Any]:
        if not self._path.exists():
            if self._required:
                raise ConfigurationError(f"Configuration file not found: {self._path}")
            return {}

        suffix = self._path.suffix.lower()
        try:
            content = self._path.read_text(encoding="utf-8")
            if suffix in (".yaml", ".yml"):
                data = yaml.safe_load(content) or {}
            elif suffix == ".json":
                data = json.loads(content)
            elif suffix == ".toml":
                data = tomllib.loads(content)
            else:
                raise ConfigurationError(f"Unsupported configuration format: {suffix}")
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to load {self._path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"{self._path} must contain a mapping")
        section = data.get("sigguard", data)
        if not isinstance(section, dict):
            raise ConfigurationError(f"'sigguard' in {self._path} must be a mapping")

        logger.debug("Loaded configuration from %s", self._path)
        return {str(k).replace("-", "_"): v for k, v in section.items()}


# =============================================================================
# Loading
# =============================================================================


def load_settings(
    config_path: str | Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Settings:
    """Load settings from all layers.

    Args:
        config_path: Explicit configuration file, which must exist. When
            omitted, ``sigguard.yaml`` in the current directory is used if
            present.
        environ: Environment to read (defaults to ``os.environ``).
        overrides: Highest priority values, typically CLI options. ``None``
            values are skipped.

    Raises:
        ConfigurationError: If a source cannot be read or a value is invalid.
    """
    env = os.environ if environ is None else environ

    if config_path is not None:
        file_source = FileConfigSource(config_path, required=True)
    else:
        file_source = FileConfigSource(DEFAULT_CONFIG_FILE)

    settings = Settings()
    settings = settings.merge(file_source.load())
    settings = settings.merge(EnvConfigSource(environ=env).load())

    token = env.get(TOKEN_VARIABLE)
    if token:
        settings = replace(settings, token=token)

    if overrides:
        settings = settings.merge({k: v for k, v in overrides.items() if v is not None})

    return settings


def resolve_repository(
    settings: Settings,
    environ: Mapping[str, str] | None = None,
    remote_url: str | None = None,
) -> Settings:
    """Fill in owner and name when they were not configured.

    Args:
        settings: Loaded settings.
        environ: Environment to read (defaults to ``os.environ``).
        remote_url: ``origin`` URL; read from ``settings.repo_path`` when
            omitted and the environment has no answer.

    Raises:
        ConfigurationError: If the repository cannot be determined.
    """
    if settings.repo_owner and settings.repo_name:
        return settings

    env = os.environ if environ is None else environ
    platform = detect_ci_platform(env)
    logger.debug("CI platform: %s", platform)

    slug = detect_repository(env)
    if slug is None:
        url = remote_url or read_origin_url(settings.repo_path, settings.git_program)
        slug = detect_repository({}, url)
    if slug is None:
        raise ConfigurationError(
            "Could not determine repository owner/name; "
            "pass --repo-owner and --repo-name or set GITHUB_REPOSITORY"
        )
    logger.info("Repository detected from %s on %s", slug.source, platform)

    return replace(
        settings,
        repo_owner=settings.repo_owner or slug.owner,
        repo_name=settings.repo_name or slug.name,
    )
