"""Configuration loader.

Settings come from the process environment, optionally seeded from a
key=value `.env` file. On first run without any configuration the
interactive setup writes that file.
"""

import json
import os
import sys
from pathlib import Path
from typing import Any, Callable, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ValidationError, field_validator

REQUIRED_ENV_VARS = ("JIRA_URL", "JIRA_EMAIL", "JIRA_API_TOKEN")

_TRUE_VALUES = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE_VALUES = {"0", "f", "F", "FALSE", "false", "False"}


class ConfigError(Exception):
    """Raised when configuration is missing or invalid."""
    pass


class HistoriadorConfig(BaseModel):
    """Importer configuration."""

    jira_url: str
    jira_email: str
    jira_api_token: str
    project_key: str = ""
    default_issue_type: str = "Story"
    subtask_issue_type: str = "Sub-task"
    feature_issue_type: str = "Feature"
    batch_size: int = 10
    dry_run: bool = False
    acceptance_criteria_field: str = ""
    feature_required_fields: str = ""
    input_directory: str = "entrada"
    logs_directory: str = "logs"
    processed_directory: str = "procesados"
    rollback_on_subtask_failure: bool = False

    @field_validator("feature_required_fields")
    @classmethod
    def check_feature_required_fields(cls, v: str) -> str:
        """Must be empty or a JSON object."""
        if not v.strip():
            return ""
        try:
            parsed = json.loads(v)
        except json.JSONDecodeError as e:
            raise ValueError(f"FEATURE_REQUIRED_FIELDS is not valid JSON: {e}") from e
        if not isinstance(parsed, dict):
            raise ValueError("FEATURE_REQUIRED_FIELDS must be a JSON object")
        return v

    @property
    def feature_required_fields_map(self) -> dict[str, Any]:
        if not self.feature_required_fields:
            return {}
        return json.loads(self.feature_required_fields)

    def missing_required(self) -> list[str]:
        missing = []
        if not self.jira_url:
            missing.append("JIRA_URL")
        if not self.jira_email:
            missing.append("JIRA_EMAIL")
        if not self.jira_api_token:
            missing.append("JIRA_API_TOKEN")
        return missing


def _get_env(key: str, default: str = "") -> str:
    value = os.getenv(key, "")
    return value if value != "" else default


def _get_env_int(key: str, default: int) -> int:
    value = os.getenv(key, "")
    if value:
        try:
            return int(value)
        except ValueError:
            pass
    return default


def _get_env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key, "")
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    return default


def has_required_env_vars() -> bool:
    return all(os.getenv(var) for var in REQUIRED_ENV_VARS)


def config_from_env() -> HistoriadorConfig:
    """
    Build configuration from the current process environment.

    Raises:
        ConfigError: If required variables are missing or a value is invalid
    """
    try:
        config = HistoriadorConfig(
            jira_url=_get_env("JIRA_URL"),
            jira_email=_get_env("JIRA_EMAIL"),
            jira_api_token=_get_env("JIRA_API_TOKEN"),
            project_key=_get_env("PROJECT_KEY"),
            default_issue_type=_get_env("DEFAULT_ISSUE_TYPE", "Story"),
            subtask_issue_type=_get_env("SUBTASK_ISSUE_TYPE", "Sub-task"),
            feature_issue_type=_get_env("FEATURE_ISSUE_TYPE", "Feature"),
            batch_size=_get_env_int("BATCH_SIZE", 10),
            dry_run=_get_env_bool("DRY_RUN", False),
            acceptance_criteria_field=_get_env("ACCEPTANCE_CRITERIA_FIELD"),
            feature_required_fields=_get_env("FEATURE_REQUIRED_FIELDS"),
            input_directory=_get_env("INPUT_DIRECTORY", "entrada"),
            logs_directory=_get_env("LOGS_DIRECTORY", "logs"),
            processed_directory=_get_env("PROCESSED_DIRECTORY", "procesados"),
            rollback_on_subtask_failure=_get_env_bool("ROLLBACK_ON_SUBTASK_FAILURE", False),
        )
    except ValidationError as e:
        messages = "; ".join(err["msg"] for err in e.errors())
        raise ConfigError(f"config validation failed: {messages}") from e

    missing = config.missing_required()
    if missing:
        raise ConfigError(
            f"config validation failed: missing required environment variables: {', '.join(missing)}"
        )
    return config


def load_config(
    env_file: str | Path = ".env",
    interactive: Optional[bool] = None,
    setup: Optional[Callable[[Path], None]] = None,
) -> HistoriadorConfig:
    """
    Load configuration from the env file and the process environment.

    Args:
        env_file: Path to the key=value file
        interactive: Allow the first-run setup; defaults to stdin being a TTY
        setup: Setup routine writing `env_file` (defaults to the interactive one)

    Returns:
        Loaded configuration

    Raises:
        ConfigError: If required configuration is missing or invalid
    """
    env_file = Path(env_file)

    if env_file.exists():
        load_dotenv(env_file, override=False)
    elif not has_required_env_vars():
        if interactive is None:
            interactive = sys.stdin.isatty()
        if interactive:
            if setup is None:
                from .interactive_setup import create_interactive_env_file
                setup = create_interactive_env_file
            try:
                setup(env_file)
            except (OSError, ValueError) as e:
                raise ConfigError(f"error creating .env file: {e}") from e
            load_dotenv(env_file, override=False)

    return config_from_env()
