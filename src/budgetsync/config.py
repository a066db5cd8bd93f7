"""
Configuration management.

All configuration keys and their defaults are defined here. Configuration is
read from a YAML file (``--config`` or ``BUDGETSYNC_CONFIG``); a handful of
environment variables override file values:

- BUDGETSYNC_DB_PATH: database file
- BUDGETSYNC_MAX_WORKERS: worker threads per batch
- BUDGETSYNC_LOG_LEVEL: logging level name
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from budgetsync.domain.rules import DEFAULT_RULES, CategorizationRule
from budgetsync.utils.retry import RetryPolicy

CONFIG_ENV_VAR = "BUDGETSYNC_CONFIG"


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""

    pass


@dataclass
class PipelineConfig:
    """Batch execution settings."""

    # Worker threads used for a batch (1 = sequential)
    max_workers: int = 4
    # Seconds to wait for a per-transaction lock before giving up on that item
    lock_timeout_seconds: float = 10.0
    lock_shards: int = 64


@dataclass
class CategorizationConfig:
    """Automated categorization settings."""

    # Suggestions below this confidence leave the transaction uncategorized
    min_category_confidence: float = 0.3
    # Confidence reported for rules that do not set their own
    default_confidence: float = 0.9
    rules: list[CategorizationRule] = field(default_factory=lambda: list(DEFAULT_RULES))


@dataclass
class SubmissionConfig:
    """Destination system settings."""

    # Source account id -> destination account id, used when the account
    # record itself has no destination configured
    destination_accounts: dict[str, str] = field(default_factory=dict)


@dataclass
class Config:
    """Application configuration."""

    database_path: Optional[str] = None
    log_level: str = "WARNING"
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    categorization: CategorizationConfig = field(default_factory=CategorizationConfig)
    submission: SubmissionConfig = field(default_factory=SubmissionConfig)
    retry: RetryPolicy = field(default_factory=RetryPolicy)

    def validate(self) -> list[str]:
        """Validate configuration values.

        Returns:
            List of validation errors (empty if valid)
        """
        errors: list[str] = []
        if self.pipeline.max_workers < 1:
            errors.append("pipeline.max_workers must be >= 1")
        if self.pipeline.lock_timeout_seconds <= 0:
            errors.append("pipeline.lock_timeout_seconds must be > 0")
        if self.pipeline.lock_shards < 1:
            errors.append("pipeline.lock_shards must be >= 1")
        if not 0.0 <= self.categorization.min_category_confidence <= 1.0:
            errors.append("categorization.min_category_confidence must be between 0 and 1")
        if self.retry.max_attempts < 1:
            errors.append("retry.max_attempts must be >= 1")
        if self.retry.base_delay < 0 or self.retry.max_delay < self.retry.base_delay:
            errors.append("retry delays must satisfy 0 <= base_delay <= max_delay")
        for rule in self.categorization.rules:
            if not rule.keyword.strip() or not rule.category_id.strip():
                errors.append("categorization rules need a keyword and a category")
                break
        return errors


def _parse_rules(items: list[dict[str, Any]], default_confidence: float) -> list[CategorizationRule]:
    rules = []
    for item in items:
        rules.append(
            CategorizationRule(
                keyword=str(item.get("keyword", "")),
                category_id=str(item.get("category", "")),
                payee_name=item.get("payee"),
                confidence=float(item.get("confidence", default_confidence)),
            )
        )
    return rules


def load_config(config_path: Optional[Path] = None) -> Config:
    """
    Load configuration from a YAML file.

    A missing file yields the defaults. Environment variables override
    file values.

    Raises:
        ConfigValidationError: If the file is malformed or values are invalid
    """
    if config_path is None:
        env_path = os.environ.get(CONFIG_ENV_VAR)
        config_path = Path(env_path) if env_path else None

    data: dict[str, Any] = {}
    if config_path is not None and Path(config_path).exists():
        with open(config_path, encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigValidationError(f"Invalid YAML in {config_path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigValidationError(f"Config file {config_path} must contain a mapping")

    pipeline_data = data.get("pipeline", {}) or {}
    pipeline = PipelineConfig(
        max_workers=int(
            os.environ.get("BUDGETSYNC_MAX_WORKERS", pipeline_data.get("max_workers", 4))
        ),
        lock_timeout_seconds=float(pipeline_data.get("lock_timeout_seconds", 10.0)),
        lock_shards=int(pipeline_data.get("lock_shards", 64)),
    )

    cat_data = data.get("categorization", {}) or {}
    default_confidence = float(cat_data.get("default_confidence", 0.9))
    categorization = CategorizationConfig(
        min_category_confidence=float(cat_data.get("min_category_confidence", 0.3)),
        default_confidence=default_confidence,
    )
    if "rules" in cat_data:
        categorization.rules = _parse_rules(cat_data.get("rules") or [], default_confidence)

    submission_data = data.get("submission", {}) or {}
    submission = SubmissionConfig(
        destination_accounts={
            str(k): str(v)
            for k, v in (submission_data.get("destination_accounts") or {}).items()
        }
    )

    retry_data = data.get("retry", {}) or {}
    retry = RetryPolicy(
        max_attempts=int(retry_data.get("max_attempts", 4)),
        base_delay=float(retry_data.get("base_delay", 0.5)),
        max_delay=float(retry_data.get("max_delay", 30.0)),
        jitter=bool(retry_data.get("jitter", True)),
    )

    config = Config(
        database_path=os.environ.get("BUDGETSYNC_DB_PATH", data.get("database_path")),
        log_level=os.environ.get("BUDGETSYNC_LOG_LEVEL", data.get("log_level", "WARNING")),
        pipeline=pipeline,
        categorization=categorization,
        submission=submission,
        retry=retry,
    )

    errors = config.validate()
    if errors:
        raise ConfigValidationError("; ".join(errors))
    return config
