"""Tests for TOML config file loading and layered configuration."""

import json
import os
from pathlib import Path
from typing import Generator

import pytest
from click.testing import CliRunner

from citrace.cli.main import main as cli_main
from citrace.cli.utils.config import (
    Config,
    ConfigError,
    SOURCE_DEFAULT,
    SOURCE_GLOBAL,
    SOURCE_PROJECT,
    SOURCE_ENV,
)
from citrace.cli.utils.config_schema import (
    CONFIG_OPTIONS,
    get_categories,
    get_options_by_category,
    get_option_by_env,
    get_option_by_toml,
)
from citrace.cli.utils.profile import PROFILE_ENV_MAP, apply_env_profile

ALL_ENV_VARS = [opt.env_var for opt in CONFIG_OPTIONS] + [
    opt.fallback_env for opt in CONFIG_OPTIONS if opt.fallback_env
]


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Generator[Path, None, None]:
    """Clear citrace env vars and isolate config file lookup in tmp_path."""
    for var in ALL_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr(Config, "GLOBAL_CONFIG_PATH", tmp_path / "nonexistent" / "config.toml")
    workdir = tmp_path / "work"
    workdir.mkdir()
    monkeypatch.chdir(workdir)
    yield workdir


def write_global(monkeypatch: pytest.MonkeyPatch, tmp_path: Path, content: str) -> Path:
    global_dir = tmp_path / "global"
    global_dir.mkdir()
    global_config = global_dir / "config.toml"
    global_config.write_text(content)
    monkeypatch.setattr(Config, "GLOBAL_CONFIG_PATH", global_config)
    return global_config


def write_project(workdir: Path, content: str) -> Path:
    project_dir = workdir / ".citrace"
    project_dir.mkdir()
    project_config = project_dir / "config.toml"
    project_config.write_text(content)
    return project_config


# ===========================================================================
# Config Schema tests
# ===========================================================================


class TestConfigSchema:
    """Tests for config schema module."""

    def test_all_options_have_required_fields(self) -> None:
        for opt in CONFIG_OPTIONS:
            assert opt.env_var.startswith("CITRACE_"), opt
            assert opt.toml_key, f"Option missing toml_key: {opt}"
            assert opt.description, f"Option missing description: {opt}"
            assert opt.category in get_categories(), opt

    def test_every_option_maps_to_a_config_field(self) -> None:
        fields = Config.__dataclass_fields__
        for opt in CONFIG_OPTIONS:
            assert opt.field in fields, opt

    def test_get_option_by_env_and_toml(self) -> None:
        opt = get_option_by_env("CITRACE_POLL_INTERVAL")
        assert opt is not None
        assert opt.toml_key == "trace.poll_interval"
        assert get_option_by_toml("gitlab.token").secret is True

    def test_get_option_not_found(self) -> None:
        assert get_option_by_env("NONEXISTENT_VAR") is None
        assert get_option_by_toml("nonexistent.key") is None

    def test_categories_in_order(self) -> None:
        assert get_categories() == ["GitLab", "API", "Trace"]
        assert len(get_options_by_category("Trace")) == 4


# ===========================================================================
# Layered config tests
# ===========================================================================


class TestLayeredConfig:
    """Tests for layered configuration loading."""

    def test_defaults_only(self, clean_env: Path) -> None:
        cfg, sources = Config.from_files_and_env()

        assert cfg.base_url == "https://gitlab.com"
        assert cfg.token is None
        assert cfg.poll_interval == 2.0
        assert cfg.max_transient_retries == 5
        assert all(source == SOURCE_DEFAULT for source in sources.values())

    def test_global_config(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch, clean_env: Path) -> None:
        write_global(monkeypatch, tmp_path, """
[gitlab]
url = "https://gitlab.example.com"
token = "glpat-global"

[trace]
poll_interval = 5
""")

        cfg, sources = Config.from_files_and_env()

        assert cfg.base_url == "https://gitlab.example.com"
        assert cfg.token == "glpat-global"
        assert cfg.poll_interval == 5
        assert sources["base_url"] == SOURCE_GLOBAL
        assert sources["poll_interval"] == SOURCE_GLOBAL
        assert sources["project"] == SOURCE_DEFAULT

    def test_project_overrides_global(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch, clean_env: Path
    ) -> None:
        write_global(monkeypatch, tmp_path, """
[gitlab]
url = "https://gitlab.example.com"

[trace]
max_retries = 2
""")
        write_project(clean_env, """
[gitlab]
project = "group/app"

[trace]
max_retries = 8
""")

        cfg, sources = Config.from_files_and_env()

        assert cfg.base_url == "https://gitlab.example.com"
        assert sources["base_url"] == SOURCE_GLOBAL
        assert cfg.project == "group/app"
        assert cfg.max_transient_retries == 8
        assert sources["max_transient_retries"] == SOURCE_PROJECT

    def test_project_config_found_from_subdirectory(
        self, monkeypatch: pytest.MonkeyPatch, clean_env: Path
    ) -> None:
        write_project(clean_env, '[gitlab]\nproject = "group/app"\n')
        nested = clean_env / "src" / "pkg"
        nested.mkdir(parents=True)
        monkeypatch.chdir(nested)

        cfg, sources = Config.from_files_and_env()

        assert cfg.project == "group/app"
        assert sources["project"] == SOURCE_PROJECT

    def test_env_overrides_files(self, monkeypatch: pytest.MonkeyPatch, clean_env: Path) -> None:
        write_project(clean_env, "[trace]\npoll_interval = 5\n")
        monkeypatch.setenv("CITRACE_POLL_INTERVAL", "0.5")
        monkeypatch.setenv("CITRACE_SKIP_SSL_VERIFY", "yes")

        cfg, sources = Config.from_files_and_env()

        assert cfg.poll_interval == 0.5
        assert cfg.skip_ssl_verify is True
        assert sources["poll_interval"] == SOURCE_ENV

    def test_fallback_env_vars(self, monkeypatch: pytest.MonkeyPatch, clean_env: Path) -> None:
        monkeypatch.setenv("GITLAB_HOST", "https://git.internal")
        monkeypatch.setenv("GITLAB_TOKEN", "glpat-fallback")

        cfg, sources = Config.from_files_and_env()

        assert cfg.base_url == "https://git.internal"
        assert cfg.token == "glpat-fallback"
        assert sources["token"] == SOURCE_ENV

    def test_primary_env_beats_fallback(self, monkeypatch: pytest.MonkeyPatch, clean_env: Path) -> None:
        monkeypatch.setenv("GITLAB_TOKEN", "glpat-fallback")
        monkeypatch.setenv("CITRACE_TOKEN", "glpat-primary")

        assert Config.load().token == "glpat-primary"

    def test_unknown_toml_keys_are_ignored(self, clean_env: Path) -> None:
        write_project(clean_env, "[extras]\ncolor = true\n")

        cfg = Config.load()

        assert cfg.base_url == "https://gitlab.com"


class TestInvalidConfig:
    def test_invalid_toml(self, clean_env: Path) -> None:
        write_project(clean_env, "[gitlab\nurl = ")

        with pytest.raises(ConfigError, match="Invalid TOML"):
            Config.load()

    def test_invalid_env_number(self, monkeypatch: pytest.MonkeyPatch, clean_env: Path) -> None:
        monkeypatch.setenv("CITRACE_MAX_RETRIES", "many")

        with pytest.raises(ConfigError, match="CITRACE_MAX_RETRIES"):
            Config.load()

    def test_bool_for_numeric_option(self, clean_env: Path) -> None:
        write_project(clean_env, "[trace]\npoll_interval = true\n")

        with pytest.raises(ConfigError, match="trace.poll_interval"):
            Config.load()

    def test_non_positive_poll_interval(self, monkeypatch: pytest.MonkeyPatch, clean_env: Path) -> None:
        monkeypatch.setenv("CITRACE_POLL_INTERVAL", "0")

        with pytest.raises(ConfigError, match="Poll interval"):
            Config.load()

    def test_non_positive_timeout(self, monkeypatch: pytest.MonkeyPatch, clean_env: Path) -> None:
        monkeypatch.setenv("CITRACE_TIMEOUT", "-1")

        with pytest.raises(ConfigError, match="CITRACE_TIMEOUT"):
            Config.load()


def test_to_gitlab_config_and_trace_options(clean_env: Path) -> None:
    cfg = Config(
        base_url="https://gitlab.example.com",
        token="t",
        timeout=3.0,
        skip_ssl_verify=True,
        poll_interval=1.0,
        max_transient_retries=9,
    )

    gitlab = cfg.to_gitlab_config()
    assert gitlab.base_url == "https://gitlab.example.com"
    assert gitlab.token == "t"
    assert gitlab.timeout == 3.0
    assert gitlab.verify_ssl is False

    options = cfg.to_trace_options()
    assert options.poll_interval == 1.0
    assert options.max_transient_retries == 9


# ===========================================================================
# Profiles
# ===========================================================================


def test_apply_env_profile(monkeypatch: pytest.MonkeyPatch, clean_env: Path) -> None:
    # apply_env_profile writes os.environ directly
    monkeypatch.setattr(os, "environ", os.environ.copy())
    monkeypatch.setenv("CITRACE_PROFILE_WORK_SERVER_PROJECT", "team/service")
    monkeypatch.setenv("CITRACE_PROFILE_WORK_SERVER_TOKEN", "glpat-work")

    assert apply_env_profile("work-server") == "WORK_SERVER"

    cfg = Config.load()
    assert cfg.project == "team/service"
    assert cfg.token == "glpat-work"


@pytest.mark.parametrize(
    "suffix, raw, field, expected",
    [
        ("GITLAB_URL", "https://git.work.example", "base_url", "https://git.work.example"),
        ("TOKEN", "glpat-work", "token", "glpat-work"),
        ("PROJECT", "team/service", "project", "team/service"),
        ("TIMEOUT", "30", "timeout", 30.0),
        ("SKIP_SSL_VERIFY", "true", "skip_ssl_verify", True),
        ("POLL_INTERVAL", "5", "poll_interval", 5.0),
        ("MAX_RETRIES", "7", "max_transient_retries", 7),
        ("RETRY_DELAY", "0.5", "retry_delay", 0.5),
        ("MAX_RETRY_DELAY", "12", "max_retry_delay", 12.0),
    ],
)
def test_apply_env_profile_sets_each_option(
    monkeypatch: pytest.MonkeyPatch, clean_env: Path, suffix: str, raw: str, field: str, expected: object
) -> None:
    monkeypatch.setattr(os, "environ", os.environ.copy())
    monkeypatch.setenv(f"CITRACE_PROFILE_WORK_{suffix}", raw)

    apply_env_profile("work")

    assert getattr(Config.load(), field) == expected


def test_profile_map_covers_every_option() -> None:
    assert sorted(PROFILE_ENV_MAP.values()) == sorted(opt.env_var for opt in CONFIG_OPTIONS)


def test_profile_option_on_command_line(monkeypatch: pytest.MonkeyPatch, clean_env: Path) -> None:
    monkeypatch.setattr(os, "environ", os.environ.copy())
    monkeypatch.setenv("CITRACE_PROFILE_STAGING_PROJECT", "staging/app")

    result = CliRunner().invoke(cli_main, ["--profile", "staging", "config", "show", "--format", "env"])

    assert result.exit_code == 0
    assert "CITRACE_PROJECT=staging/app" in result.output


def test_apply_env_profile_does_not_override_explicit_env(
    monkeypatch: pytest.MonkeyPatch, clean_env: Path
) -> None:
    monkeypatch.setattr(os, "environ", os.environ.copy())
    monkeypatch.setenv("CITRACE_PROJECT", "explicit/project")
    monkeypatch.setenv("CITRACE_PROFILE_CI_PROJECT", "profile/project")

    apply_env_profile("ci")

    assert Config.load().project == "explicit/project"


# ===========================================================================
# config show command
# ===========================================================================


class TestConfigShow:
    def test_table_output_lists_sources(self, monkeypatch: pytest.MonkeyPatch, clean_env: Path) -> None:
        write_project(clean_env, '[gitlab]\nproject = "group/app"\n')
        monkeypatch.setenv("CITRACE_TOKEN", "glpat-secret")

        result = CliRunner().invoke(cli_main, ["config", "show"])

        assert result.exit_code == 0
        assert "CITRACE_PROJECT" in result.output
        assert "group/app" in result.output
        assert "[project]" in result.output
        assert "glpat-secret" not in result.output
        assert "********" in result.output

    def test_json_output(self, monkeypatch: pytest.MonkeyPatch, clean_env: Path) -> None:
        monkeypatch.setenv("CITRACE_POLL_INTERVAL", "3")

        result = CliRunner().invoke(cli_main, ["config", "show", "--format", "json"])

        assert result.exit_code == 0
        payload = json.loads(result.output)
        assert payload["config_files"] == {"global": None, "project": None}
        assert payload["values"]["CITRACE_POLL_INTERVAL"]["value"] == "3.0"
        assert payload["values"]["CITRACE_POLL_INTERVAL"]["source"] == SOURCE_ENV
        assert payload["values"]["CITRACE_PROJECT"]["value"] is None

    def test_env_output_hides_secrets(self, monkeypatch: pytest.MonkeyPatch, clean_env: Path) -> None:
        monkeypatch.setenv("CITRACE_TOKEN", "glpat-secret")
        monkeypatch.setenv("CITRACE_PROJECT", "group/app")

        result = CliRunner().invoke(cli_main, ["config", "show", "--format", "env"])

        assert result.exit_code == 0
        assert "CITRACE_PROJECT=group/app" in result.output
        assert "# CITRACE_TOKEN=<secret>" in result.output
        assert "glpat-secret" not in result.output

    def test_compact_hides_unset(self, clean_env: Path) -> None:
        result = CliRunner().invoke(cli_main, ["config", "show", "--compact", "--format", "env"])

        assert result.exit_code == 0
        assert "CITRACE_PROJECT" not in result.output
        assert "CITRACE_POLL_INTERVAL=2.0" in result.output

    def test_invalid_config_exits_with_config_error(
        self, monkeypatch: pytest.MonkeyPatch, clean_env: Path
    ) -> None:
        monkeypatch.setenv("CITRACE_MAX_RETRIES", "lots")

        result = CliRunner().invoke(cli_main, ["config", "show"])

        assert result.exit_code == 10
