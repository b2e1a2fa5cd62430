"""Domain models and decoded Jira payloads."""

from .user_story import UserStory, parse_subtasks, MAX_SUMMARY_LENGTH
from .results import (
    ProcessStatus,
    SubtaskResult,
    ProcessResult,
    FeatureResult,
    BatchResult,
)
from .jira_models import (
    JiraIssueType,
    JiraCreatedIssue,
    JiraErrorResponse,
    JiraSearchIssue,
    JiraSearchResponse,
    CreateMeta,
    CreateMetaProject,
    CreateMetaIssueType,
    CreateMetaField,
    CreateMetaAllowedValue,
)

__all__ = [
    # Domain
    "UserStory",
    "parse_subtasks",
    "MAX_SUMMARY_LENGTH",
    "ProcessStatus",
    "SubtaskResult",
    "ProcessResult",
    "FeatureResult",
    "BatchResult",
    # Jira payloads
    "JiraIssueType",
    "JiraCreatedIssue",
    "JiraErrorResponse",
    "JiraSearchIssue",
    "JiraSearchResponse",
    "CreateMeta",
    "CreateMetaProject",
    "CreateMetaIssueType",
    "CreateMetaField",
    "CreateMetaAllowedValue",
]
