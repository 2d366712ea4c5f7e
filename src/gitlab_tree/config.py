"""gitlab-tree configuration management.

Settings come from the process environment (``GITLAB_*`` variables). The
environment is read through a callable so tests can pass ``dict.get``.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from platformdirs import user_cache_dir


EnvReader = Callable[[str], Optional[str]]

# Default configuration values
APP_NAME = "gitlab-tree"
DEFAULT_GITLAB_URL = "https://gitlab.com"
DEFAULT_PER_PAGE = 100
DEFAULT_CACHE_TTL_SECONDS = 300

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


class ConfigError(ValueError):
    """Raised when the environment holds a missing or malformed setting."""


def default_cache_dir() -> Path:
    """Directory holding the snapshot cache and the UI log file."""
    return Path(user_cache_dir(APP_NAME, appauthor=False))


def default_cache_path() -> Path:
    return default_cache_dir() / "cache.json"


def read_env_optional(reader: EnvReader, key: str) -> Optional[str]:
    """Return the variable's value, treating blank values as unset."""
    value = reader(key)
    if value is None or not value.strip():
        return None
    return value


def read_env_required(reader: EnvReader, key: str) -> str:
    value = read_env_optional(reader, key)
    if value is None:
        raise ConfigError(f"missing required environment variable: {key}")
    return value


def read_env_bool_optional(reader: EnvReader, key: str) -> Optional[bool]:
    value = read_env_optional(reader, key)
    if value is None:
        return None
    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise ConfigError(f"invalid boolean for {key}: {value}")


def read_env_int_optional(
    reader: EnvReader,
    key: str,
    maximum: Optional[int] = None,
) -> Optional[int]:
    """Parse a non-negative integer, optionally bounded by ``maximum``."""
    value = read_env_optional(reader, key)
    if value is None:
        return None
    try:
        parsed = int(value.strip())
    except ValueError:
        raise ConfigError(f"invalid integer for {key}: {value}") from None
    if parsed < 0 or (maximum is not None and parsed > maximum):
        raise ConfigError(f"invalid integer for {key}: {value}")
    return parsed


@dataclass
class ApiFilters:
    """Query filters forwarded to the GitLab listing endpoints."""

    all_available: Optional[bool] = None
    owned: Optional[bool] = None
    top_level_only: Optional[bool] = None
    include_subgroups: Optional[bool] = None
    visibility: Optional[str] = None
    per_page: int = DEFAULT_PER_PAGE

    @classmethod
    def from_env(cls, reader: EnvReader) -> "ApiFilters":
        per_page = read_env_int_optional(reader, "GITLAB_PER_PAGE", maximum=65535)
        return cls(
            all_available=read_env_bool_optional(reader, "GITLAB_ALL_AVAILABLE"),
            owned=read_env_bool_optional(reader, "GITLAB_OWNED"),
            top_level_only=read_env_bool_optional(reader, "GITLAB_TOP_LEVEL_ONLY"),
            include_subgroups=read_env_bool_optional(reader, "GITLAB_INCLUDE_SUBGROUPS"),
            visibility=read_env_optional(reader, "GITLAB_VISIBILITY"),
            per_page=DEFAULT_PER_PAGE if per_page is None else per_page,
        )


@dataclass
class TreeConfig:
    """gitlab-tree application configuration."""

    gitlab_token: str
    gitlab_url: str = DEFAULT_GITLAB_URL
    filters: ApiFilters = field(default_factory=ApiFilters)
    cache_path: Path = field(default_factory=default_cache_path)
    cache_ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS

    @property
    def base_url(self) -> str:
        """Instance URL without a trailing slash."""
        return self.gitlab_url.rstrip("/")

    @property
    def has_token(self) -> bool:
        return bool(self.gitlab_token)

    @classmethod
    def from_env(cls, reader: Optional[EnvReader] = None) -> "TreeConfig":
        """Load configuration from the environment.

        Raises:
            ConfigError: If ``GITLAB_TOKEN`` is missing or a numeric/boolean
                setting does not parse.
        """
        if reader is None:
            reader = os.environ.get

        gitlab_url = read_env_optional(reader, "GITLAB_URL") or DEFAULT_GITLAB_URL
        gitlab_token = read_env_required(reader, "GITLAB_TOKEN")
        filters = ApiFilters.from_env(reader)
        ttl = read_env_int_optional(reader, "GITLAB_CACHE_TTL_SECONDS")
        cache_path = read_env_optional(reader, "GITLAB_CACHE_PATH")

        return cls(
            gitlab_token=gitlab_token,
            gitlab_url=gitlab_url,
            filters=filters,
            cache_path=Path(cache_path).expanduser() if cache_path else default_cache_path(),
            cache_ttl_seconds=DEFAULT_CACHE_TTL_SECONDS if ttl is None else ttl,
        )
