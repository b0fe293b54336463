"""Tests for TOML run configuration loading and startup credentials."""

from pathlib import Path

import pytest

from configs.config import Config
from configs.run_config import RunConfig, load_run_config, require_token
from utils.errors import ConfigurationError

VALID = """
username = "octocat"
repo = "octocat/sandbox"
repo_path = "/tmp/sandbox"
cron_schedule = "0 */8 * * *"
min_files = 1
max_files = 4
min_lines = 2
max_lines = 6
debug = true
"""


def _write(tmp_path: Path, text: str) -> str:
    path = tmp_path / "config.toml"
    path.write_text(text, encoding="utf-8")
    return str(path)


def test_load_valid_config(tmp_path: Path):
    config = load_run_config(_write(tmp_path, VALID))
    assert config.owner == "octocat"
    assert config.name == "sandbox"
    assert config.file_range == (1, 4)
    assert config.line_range == (2, 6)
    assert config.debug is True


def test_config_is_frozen(tmp_path: Path):
    config = load_run_config(_write(tmp_path, VALID))
    with pytest.raises(Exception):
        config.min_files = 3


@pytest.mark.parametrize("repo", ["sandbox", "a/b/c", "/sandbox", "octocat/", " / "])
def test_malformed_repo_is_configuration_error(tmp_path: Path, repo: str):
    text = VALID.replace('repo = "octocat/sandbox"', f'repo = "{repo}"')
    with pytest.raises(ConfigurationError) as exc:
        load_run_config(_write(tmp_path, text))
    assert exc.value.code == "VALIDATION"
    assert "repo" in str(exc.value)


def test_inverted_ranges_rejected(tmp_path: Path):
    text = VALID.replace("min_files = 1", "min_files = 5")
    with pytest.raises(ConfigurationError, match="min_files"):
        load_run_config(_write(tmp_path, text))


def test_negative_counts_rejected():
    with pytest.raises(Exception):
        RunConfig(username="u", repo="o/r", repo_path=".", min_lines=-1)


def test_missing_file(tmp_path: Path):
    with pytest.raises(ConfigurationError) as exc:
        load_run_config(str(tmp_path / "absent.toml"))
    assert exc.value.code == "NOT_FOUND"


def test_invalid_toml(tmp_path: Path):
    with pytest.raises(ConfigurationError) as exc:
        load_run_config(_write(tmp_path, "username = \n"))
    assert exc.value.code == "PARSE"


def test_require_token_missing(monkeypatch):
    monkeypatch.setattr(Config, "GITHUB_TOKEN", None)
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    monkeypatch.delenv("GITHUB_PAT", raising=False)
    with pytest.raises(ConfigurationError) as exc:
        require_token()
    assert exc.value.code == "NO_TOKEN"


def test_require_token_from_env(monkeypatch):
    monkeypatch.setattr(Config, "GITHUB_TOKEN", None)
    monkeypatch.setenv("GITHUB_TOKEN", "ghp_test")
    assert require_token() == "ghp_test"
