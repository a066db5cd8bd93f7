"""Tests for configuration loading."""

import pytest

from budgetsync.config import Config, ConfigValidationError, load_config
from budgetsync.domain.rules import DEFAULT_RULES


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep environment overrides from leaking into tests."""
    for name in (
        "BUDGETSYNC_CONFIG",
        "BUDGETSYNC_DB_PATH",
        "BUDGETSYNC_MAX_WORKERS",
        "BUDGETSYNC_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults_without_file(tmp_path):
    """Test a missing file yields the default configuration."""
    config = load_config(tmp_path / "missing.yaml")

    assert config.pipeline.max_workers == 4
    assert config.log_level == "WARNING"
    assert config.categorization.rules == DEFAULT_RULES
    assert config.submission.destination_accounts == {}
    assert Config().validate() == []


def test_load_yaml(tmp_path):
    """Test values are read from the YAML file."""
    path = tmp_path / "config.yaml"
    path.write_text(
        """
database_path: /tmp/budget.db
log_level: DEBUG
pipeline:
  max_workers: 2
  lock_timeout_seconds: 1.5
categorization:
  min_category_confidence: 0.5
  default_confidence: 0.7
  rules:
    - keyword: lidl
      category: groceries
      payee: Lidl
    - keyword: shell
      category: fuel
      confidence: 0.95
submission:
  destination_accounts:
    fio-2100012345: ynab-checking
retry:
  max_attempts: 2
  jitter: false
""",
        encoding="utf-8",
    )

    config = load_config(path)

    assert config.database_path == "/tmp/budget.db"
    assert config.log_level == "DEBUG"
    assert config.pipeline.max_workers == 2
    assert config.pipeline.lock_timeout_seconds == 1.5
    assert config.categorization.min_category_confidence == 0.5
    lidl, shell = config.categorization.rules
    assert (lidl.keyword, lidl.category_id, lidl.payee_name, lidl.confidence) == (
        "lidl",
        "groceries",
        "Lidl",
        0.7,
    )
    assert shell.confidence == 0.95
    assert config.submission.destination_accounts == {"fio-2100012345": "ynab-checking"}
    assert config.retry.max_attempts == 2
    assert config.retry.jitter is False


def test_environment_overrides(tmp_path, monkeypatch):
    """Test environment variables win over file values."""
    path = tmp_path / "config.yaml"
    path.write_text("pipeline:\n  max_workers: 2\nlog_level: INFO\n", encoding="utf-8")
    monkeypatch.setenv("BUDGETSYNC_CONFIG", str(path))
    monkeypatch.setenv("BUDGETSYNC_MAX_WORKERS", "8")
    monkeypatch.setenv("BUDGETSYNC_LOG_LEVEL", "ERROR")
    monkeypatch.setenv("BUDGETSYNC_DB_PATH", "/tmp/other.db")

    config = load_config()

    assert config.pipeline.max_workers == 8
    assert config.log_level == "ERROR"
    assert config.database_path == "/tmp/other.db"


@pytest.mark.parametrize(
    "content",
    [
        "pipeline: [unclosed",
        "- just\n- a list\n",
        "pipeline:\n  max_workers: 0\n",
        "categorization:\n  min_category_confidence: 1.5\n",
        "retry:\n  base_delay: 5\n  max_delay: 1\n",
        "categorization:\n  rules:\n    - keyword: ''\n      category: food\n",
    ],
)
def test_invalid_config(tmp_path, content):
    """Test malformed files and bad values raise ConfigValidationError."""
    path = tmp_path / "config.yaml"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(ConfigValidationError):
        load_config(path)
