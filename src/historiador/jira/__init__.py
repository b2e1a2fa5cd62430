"""Jira integration: ADF builders, REST client and feature resolution."""

from .adf import (
    create_description_adf,
    create_acceptance_criteria_adf,
    create_description_with_criteria_adf,
    split_criteria,
)
from .client import JiraClient, JiraClientError, is_jira_key
from .feature_manager import (
    FeatureManager,
    normalize_description,
    is_similar_description,
    escape_jql_string,
)
from .field_detection import AutoDetectedConfig, detect_jira_configuration, get_available_issue_types

__all__ = [
    "create_description_adf",
    "create_acceptance_criteria_adf",
    "create_description_with_criteria_adf",
    "split_criteria",
    "JiraClient",
    "JiraClientError",
    "is_jira_key",
    "FeatureManager",
    "normalize_description",
    "is_similar_description",
    "escape_jql_string",
    "AutoDetectedConfig",
    "detect_jira_configuration",
    "get_available_issue_types",
]
