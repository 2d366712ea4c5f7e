"""Tests for gitlab-tree configuration."""

from pathlib import Path

import pytest

from gitlab_tree.config import (
    DEFAULT_CACHE_TTL_SECONDS,
    DEFAULT_GITLAB_URL,
    DEFAULT_PER_PAGE,
    ApiFilters,
    ConfigError,
    TreeConfig,
    default_cache_path,
    read_env_bool_optional,
    read_env_int_optional,
    read_env_optional,
    read_env_required,
)


class TestEnvReaders:
    """Tests for the environment value parsers."""

    def test_optional_blank_is_unset(self) -> None:
        """Test that whitespace-only values count as unset."""
        env = {"GITLAB_URL": "   "}
        assert read_env_optional(env.get, "GITLAB_URL") is None

    def test_optional_present(self) -> None:
        """Test that present values are returned untouched."""
        env = {"GITLAB_URL": "https://gitlab.example.com"}
        assert read_env_optional(env.get, "GITLAB_URL") == "https://gitlab.example.com"

    def test_required_missing(self) -> None:
        """Test that a missing required variable names the key."""
        with pytest.raises(ConfigError, match="missing required environment variable: GITLAB_TOKEN"):
            read_env_required({}.get, "GITLAB_TOKEN")

    @pytest.mark.parametrize("raw", ["1", "true", "YES", " on "])
    def test_bool_truthy(self, raw: str) -> None:
        """Test accepted true spellings."""
        assert read_env_bool_optional({"FLAG": raw}.get, "FLAG") is True

    @pytest.mark.parametrize("raw", ["0", "false", "No", "off"])
    def test_bool_falsy(self, raw: str) -> None:
        """Test accepted false spellings."""
        assert read_env_bool_optional({"FLAG": raw}.get, "FLAG") is False

    def test_bool_invalid(self) -> None:
        """Test that an unknown boolean spelling is rejected."""
        with pytest.raises(ConfigError, match="invalid boolean for FLAG: maybe"):
            read_env_bool_optional({"FLAG": "maybe"}.get, "FLAG")

    def test_int_valid(self) -> None:
        """Test integer parsing."""
        assert read_env_int_optional({"N": "42"}.get, "N") == 42

    def test_int_invalid(self) -> None:
        """Test that non-numeric integers are rejected."""
        with pytest.raises(ConfigError, match="invalid integer for N: abc"):
            read_env_int_optional({"N": "abc"}.get, "N")

    def test_int_negative(self) -> None:
        """Test that negative integers are rejected."""
        with pytest.raises(ConfigError):
            read_env_int_optional({"N": "-1"}.get, "N")

    def test_int_above_maximum(self) -> None:
        """Test the upper bound."""
        with pytest.raises(ConfigError):
            read_env_int_optional({"N": "65536"}.get, "N", maximum=65535)
        assert read_env_int_optional({"N": "65535"}.get, "N", maximum=65535) == 65535


class TestApiFilters:
    """Tests for ApiFilters."""

    def test_defaults(self) -> None:
        """Test filters with an empty environment."""
        filters = ApiFilters.from_env({}.get)
        assert filters.all_available is None
        assert filters.owned is None
        assert filters.top_level_only is None
        assert filters.include_subgroups is None
        assert filters.visibility is None
        assert filters.per_page == DEFAULT_PER_PAGE

    def test_from_env(self) -> None:
        """Test every filter variable."""
        env = {
            "GITLAB_ALL_AVAILABLE": "true",
            "GITLAB_OWNED": "false",
            "GITLAB_TOP_LEVEL_ONLY": "1",
            "GITLAB_INCLUDE_SUBGROUPS": "yes",
            "GITLAB_VISIBILITY": "internal",
            "GITLAB_PER_PAGE": "20",
        }
        filters = ApiFilters.from_env(env.get)
        assert filters.all_available is True
        assert filters.owned is False
        assert filters.top_level_only is True
        assert filters.include_subgroups is True
        assert filters.visibility == "internal"
        assert filters.per_page == 20


class TestTreeConfig:
    """Tests for TreeConfig."""

    def test_requires_token(self) -> None:
        """Test that a missing token fails loading."""
        with pytest.raises(ConfigError, match="GITLAB_TOKEN"):
            TreeConfig.from_env({}.get)

    def test_defaults(self) -> None:
        """Test defaults with only a token set."""
        config = TreeConfig.from_env({"GITLAB_TOKEN": "secret"}.get)
        assert config.gitlab_token == "secret"
        assert config.gitlab_url == DEFAULT_GITLAB_URL
        assert config.cache_ttl_seconds == DEFAULT_CACHE_TTL_SECONDS
        assert config.cache_path == default_cache_path()
        assert config.has_token is True

    def test_overrides(self, tmp_path: Path) -> None:
        """Test URL, TTL and cache path overrides."""
        env = {
            "GITLAB_TOKEN": "secret",
            "GITLAB_URL": "https://gitlab.example.com/",
            "GITLAB_CACHE_TTL_SECONDS": "60",
            "GITLAB_CACHE_PATH": str(tmp_path / "cache.json"),
        }
        config = TreeConfig.from_env(env.get)
        assert config.base_url == "https://gitlab.example.com"
        assert config.cache_ttl_seconds == 60
        assert config.cache_path == tmp_path / "cache.json"

    def test_invalid_ttl(self) -> None:
        """Test that a malformed TTL is a configuration error."""
        env = {"GITLAB_TOKEN": "secret", "GITLAB_CACHE_TTL_SECONDS": "soon"}
        with pytest.raises(ConfigError, match="GITLAB_CACHE_TTL_SECONDS"):
            TreeConfig.from_env(env.get)

    def test_reads_process_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that the default reader is os.environ."""
        monkeypatch.setenv("GITLAB_TOKEN", "from-env")
        monkeypatch.delenv("GITLAB_URL", raising=False)
        config = TreeConfig.from_env()
        assert config.gitlab_token == "from-env"
