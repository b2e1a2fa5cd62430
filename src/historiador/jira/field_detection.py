"""Auto-detection of project specific Jira fields via createmeta."""

import json
import logging
from dataclasses import dataclass

from .client import JiraClient, JiraClientError
from .feature_manager import BUILTIN_FIELDS
from ..models import JiraIssueType

logger = logging.getLogger(__name__)

ACCEPTANCE_PATTERNS = ("acceptance", "criterio", "criteria", "aceptacion")


@dataclass
class AutoDetectedConfig:
    """Field configuration discovered from the project."""
    acceptance_criteria_field: str = ""
    feature_required_fields: str = ""


def detect_acceptance_criteria_field(client: JiraClient, project_key: str, story_type: str) -> str:
    """
    Id of the story field whose name looks like acceptance criteria.

    Raises:
        JiraClientError: If createmeta fails or no such field exists
    """
    create_meta = client.get_create_meta(project_key, [story_type])
    if not create_meta.projects:
        raise JiraClientError("no projects found")

    issue_type = create_meta.find_issue_type(story_type)
    if issue_type is not None:
        for key, field in issue_type.fields.items():
            name = field.name.lower()
            if any(pattern in name for pattern in ACCEPTANCE_PATTERNS):
                return key

    raise JiraClientError("acceptance criteria field not found")


def detect_feature_required_fields(client: JiraClient, project_key: str, feature_type: str) -> str:
    """
    JSON object with a default value for every required select field of the
    feature type, e.g. {"customfield_10100": {"id": "10001"}}.

    Raises:
        JiraClientError: If createmeta fails or the feature type is absent
    """
    create_meta = client.get_create_meta(project_key, [feature_type])
    if not create_meta.projects:
        raise JiraClientError("no projects found")

    issue_type = create_meta.find_issue_type(feature_type)
    if issue_type is None:
        raise JiraClientError(f"feature issue type '{feature_type}' not found")

    required: dict[str, dict[str, str]] = {}
    for key, field in issue_type.fields.items():
        if not field.required or key in BUILTIN_FIELDS or not field.allowed_values:
            continue
        first = field.allowed_values[0]
        if first.id:
            required[key] = {"id": first.id}

    return json.dumps(required) if required else "{}"


def detect_jira_configuration(
    client: JiraClient, project_key: str, story_type: str, feature_type: str
) -> AutoDetectedConfig:
    """Run both probes; a failing probe leaves its value empty."""
    detected = AutoDetectedConfig()

    try:
        detected.acceptance_criteria_field = detect_acceptance_criteria_field(client, project_key, story_type)
    except JiraClientError as e:
        logger.warning(f"Acceptance criteria field not detected: {e}")

    try:
        detected.feature_required_fields = detect_feature_required_fields(client, project_key, feature_type)
    except JiraClientError as e:
        logger.warning(f"Feature required fields not detected: {e}")

    return detected


def get_available_issue_types(client: JiraClient, project_key: str) -> list[JiraIssueType]:
    """Issue types that can be created in the project."""
    create_meta = client.get_create_meta(project_key, expand="projects.issuetypes")
    if not create_meta.projects:
        raise JiraClientError("no projects found")
    return list(create_meta.issue_types())
