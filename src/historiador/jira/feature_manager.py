"""
Feature resolution for story parents.

A story's `parent` cell is either an issue key, which is validated, or a
free-text description. Descriptions are matched against existing features
of the project and a new feature is created only when none is similar.
"""

import logging
import re

from ..models import FeatureResult
from ..utils.config_loader import HistoriadorConfig
from .adf import create_description_adf
from .client import JiraClient, JiraClientError, is_jira_key

logger = logging.getLogger(__name__)

SIMILARITY_THRESHOLD = 0.7
MIN_SIGNIFICANT_WORD_LENGTH = 3
BUILTIN_FIELDS = {"project", "issuetype", "summary", "description"}

# ASCII classes: non-ASCII letters are dropped, so token length counts ASCII characters only
_NON_WORD = re.compile(r"[^\w\s]", re.ASCII)
_WHITESPACE = re.compile(r"\s+", re.ASCII)


def normalize_description(description: str) -> str:
    """Lower-case, trim, drop everything but ASCII word characters and whitespace, collapse whitespace."""
    desc = description.lower().strip()
    desc = _NON_WORD.sub("", desc)
    return _WHITESPACE.sub(" ", desc)


def is_similar_description(desc1: str, desc2: str) -> bool:
    """
    Word-overlap similarity between two normalized descriptions.

    Counts the words of `desc2` longer than two characters that also appear
    (longer than two characters) in `desc1`, and divides by the longer word
    list, duplicates included. Two empty descriptions match; an empty one
    never matches a non-empty one.
    """
    words1 = desc1.split()
    words2 = desc2.split()

    if not words1 or not words2:
        return desc1 == desc2

    significant = {w for w in words1 if len(w) >= MIN_SIGNIFICANT_WORD_LENGTH}
    common = sum(1 for w in words2 if len(w) >= MIN_SIGNIFICANT_WORD_LENGTH and w in significant)
    total = max(len(words1), len(words2))

    return common / total >= SIMILARITY_THRESHOLD


def escape_jql_string(value: str) -> str:
    """Escape a value for use inside a double-quoted JQL string."""
    return value.replace("\\", "\\\\").replace('"', '\\"')


class FeatureManager:
    """Create-or-get of parent features."""

    def __init__(self, jira_client: JiraClient, config: HistoriadorConfig):
        self.jira_client = jira_client
        self.config = config

    def create_or_get_feature(self, description: str, project_key: str) -> FeatureResult:
        """
        Resolve a parent description to a feature key.

        Never raises for Jira failures; they are reported through the
        result's `success`/`error_message`.
        """
        result = FeatureResult(description=description)

        if is_jira_key(description):
            try:
                self.jira_client.validate_parent_issue(description)
            except JiraClientError as e:
                result.set_error(f"Parent issue validation failed: {e}")
                return result
            result.set_existing(description)
            return result

        result.normalized_description = normalize_description(description)

        try:
            existing_key = self.search_existing_feature(description, project_key)
        except JiraClientError as e:
            result.set_error(f"Error searching existing features: {e}")
            return result

        if existing_key:
            logger.info(
                f"Feature found: {existing_key} for '{description}'",
                extra={"action": "feature_found", "issue_key": existing_key},
            )
            result.set_existing(existing_key)
            return result

        try:
            issue = self.jira_client.create_issue(self.build_feature_payload(description, project_key))
        except JiraClientError as e:
            result.set_error(f"Error creating feature: {e}")
            return result

        logger.info(
            f"Feature created: {issue.key} for '{description}'",
            extra={"action": "feature_created", "issue_key": issue.key},
        )
        result.set_success(issue.key, self.jira_client.browse_url(issue.key), was_created=True)
        return result

    def search_existing_feature(self, description: str, project_key: str) -> str:
        """
        Key of the first existing feature similar to `description`, or "".

        Raises:
            JiraClientError: If the search request fails
        """
        normalized = normalize_description(description)
        jql = (
            f'project = "{project_key}" AND issuetype = "{self.config.feature_issue_type}" '
            f'AND summary ~ "{escape_jql_string(normalized)}"'
        )

        for issue in self.jira_client.search_issues(jql, fields="key,summary"):
            if issue.summary is None:
                continue
            if is_similar_description(normalized, normalize_description(issue.summary)):
                return issue.key
        return ""

    def build_feature_payload(self, description: str, project_key: str) -> dict:
        fields = {
            "project": {"key": project_key},
            "summary": description,
            "description": create_description_adf(f"Feature creado automáticamente: {description}"),
            "issuetype": {"name": self.config.feature_issue_type},
        }
        fields.update(self.config.feature_required_fields_map)
        return {"fields": fields}

    def validate_feature_required_fields(self, project_key: str) -> list[str]:
        """
        Required, non built-in fields of the feature issue type.

        Returns:
            Entries formatted as "<field name> (<field key>)"

        Raises:
            JiraClientError: If createmeta fails or the feature type is absent
        """
        create_meta = self.jira_client.get_create_meta(project_key)
        if not create_meta.projects:
            raise JiraClientError("no projects found in create meta")

        issue_type = create_meta.find_issue_type(self.config.feature_issue_type)
        if issue_type is None:
            raise JiraClientError(f"feature issue type '{self.config.feature_issue_type}' not found")

        required = []
        for key, field in issue_type.fields.items():
            if not field.required or key in BUILTIN_FIELDS:
                continue
            required.append(f"{field.name} ({key})" if field.name else key)
        return required
