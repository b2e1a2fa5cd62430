"""
Jira REST API v3 client.

Thin transport used by the importer: connection and metadata checks,
issue creation, search and createmeta lookups. Non-success responses
raise JiraClientError; `create_user_story` instead records every outcome
in the returned ProcessResult.
"""

import logging
import re
import threading
from typing import Any, Optional

import requests
from pydantic import ValidationError
from requests.auth import HTTPBasicAuth

from ..models import (
    CreateMeta,
    JiraCreatedIssue,
    JiraErrorResponse,
    JiraIssueType,
    JiraSearchIssue,
    JiraSearchResponse,
    ProcessResult,
    UserStory,
)
from ..utils.config_loader import HistoriadorConfig
from .adf import (
    create_acceptance_criteria_adf,
    create_description_adf,
    create_description_with_criteria_adf,
)

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30
JIRA_KEY_PATTERN = re.compile(r"^[A-Z]+-\d+$")


def is_jira_key(value: str) -> bool:
    """True for issue keys such as PROJ-123 (upper-case project, numeric id)."""
    return bool(JIRA_KEY_PATTERN.match(value or ""))


class JiraClientError(Exception):
    """Raised when a Jira API call fails."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_messages: Optional[list[str]] = None,
        errors: Optional[dict[str, str]] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.error_messages = error_messages or []
        self.errors = errors or {}


class JiraClient:
    """Jira REST API client bound to the importer configuration."""

    def __init__(self, config: HistoriadorConfig, timeout: float = REQUEST_TIMEOUT):
        """
        Initialize Jira client.

        Args:
            config: Importer configuration (URL, credentials, issue types)
            timeout: Per-request timeout in seconds
        """
        self.config = config
        self.base_url = config.jira_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()
        self.session.auth = HTTPBasicAuth(config.jira_email, config.jira_api_token)
        self.session.headers.update({
            "Accept": "application/json",
            "Content-Type": "application/json",
        })

    def browse_url(self, issue_key: str) -> str:
        return f"{self.base_url}/browse/{issue_key}"

    def _request(self, method: str, endpoint: str, error_prefix: str, **kwargs) -> requests.Response:
        """Send a request; transport failures raise JiraClientError with `error_prefix`."""
        kwargs.setdefault("timeout", self.timeout)
        url = f"{self.base_url}{endpoint}"
        logger.debug(f"{method} {url}")
        try:
            return self.session.request(method, url, **kwargs)
        except requests.exceptions.RequestException as e:
            raise JiraClientError(f"{error_prefix}: {e}") from e

    @staticmethod
    def _decode(response: requests.Response, error_prefix: str) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise JiraClientError(f"{error_prefix}: error decoding response: {e}", response.status_code) from e

    # ------------------------------------------------------------------
    # Read-only checks
    # ------------------------------------------------------------------

    def test_connection(self) -> None:
        response = self._request("GET", "/rest/api/3/myself", "connection failed")
        if response.status_code != 200:
            raise JiraClientError(f"authentication failed: status {response.status_code}", response.status_code)

    def validate_project(self, project_key: str) -> None:
        response = self._request("GET", f"/rest/api/3/project/{project_key}", "error validating project")
        if response.status_code == 404:
            raise JiraClientError(f"project '{project_key}' not found", 404)
        if response.status_code != 200:
            raise JiraClientError(f"error validating project: status {response.status_code}", response.status_code)

    def validate_parent_issue(self, issue_key: str) -> None:
        response = self._request("GET", f"/rest/api/3/issue/{issue_key}", "error validating parent issue")
        if response.status_code == 404:
            raise JiraClientError(f"parent issue '{issue_key}' not found", 404)
        if response.status_code != 200:
            raise JiraClientError(
                f"error validating parent issue: status {response.status_code}", response.status_code
            )

    def get_issue_types(self) -> list[JiraIssueType]:
        response = self._request("GET", "/rest/api/3/issuetype", "error getting issue types")
        if response.status_code != 200:
            raise JiraClientError(f"error getting issue types: status {response.status_code}", response.status_code)
        data = self._decode(response, "error getting issue types")
        try:
            return [JiraIssueType.model_validate(item) for item in data]
        except (TypeError, ValidationError) as e:
            raise JiraClientError(f"error getting issue types: error decoding response: {e}") from e

    def validate_subtask_issue_type(self, project_key: str) -> None:
        issue_types = self.get_issue_types()
        wanted = self.config.subtask_issue_type
        if any(t.name == wanted and t.subtask for t in issue_types):
            return
        raise JiraClientError(f"subtask issue type '{wanted}' not found")

    def validate_feature_issue_type(self) -> None:
        issue_types = self.get_issue_types()
        wanted = self.config.feature_issue_type
        if any(t.name == wanted for t in issue_types):
            return
        raise JiraClientError(f"feature issue type '{wanted}' not found")

    def search_issues(self, jql: str, fields: str = "key,summary") -> list[JiraSearchIssue]:
        """Search issues with JQL."""
        response = self._request(
            "GET",
            "/rest/api/3/search",
            "error executing search",
            params={"jql": jql, "fields": fields},
        )
        if response.status_code != 200:
            raise JiraClientError(f"search failed with status: {response.status_code}", response.status_code)
        data = self._decode(response, "error decoding search response")
        try:
            return JiraSearchResponse.model_validate(data).issues
        except ValidationError as e:
            raise JiraClientError(f"error decoding search response: {e}") from e

    def get_create_meta(
        self,
        project_key: str,
        issue_type_names: Optional[list[str]] = None,
        expand: str = "projects.issuetypes.fields",
    ) -> CreateMeta:
        """Creation metadata for a project, optionally narrowed to some issue types."""
        params = {"projectKeys": project_key, "expand": expand}
        if issue_type_names:
            params["issuetypeNames"] = ",".join(issue_type_names)

        response = self._request("GET", "/rest/api/3/issue/createmeta", "error getting create meta", params=params)
        if response.status_code != 200:
            raise JiraClientError(f"error getting create meta: status {response.status_code}", response.status_code)
        data = self._decode(response, "error decoding create meta")
        try:
            return CreateMeta.model_validate(data)
        except ValidationError as e:
            raise JiraClientError(f"error decoding create meta: {e}") from e

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_issue(self, payload: dict) -> JiraCreatedIssue:
        """
        Create an issue.

        Args:
            payload: Request body ({"fields": {...}})

        Returns:
            Key, id and self link of the created issue

        Raises:
            JiraClientError: On transport failure or any non-201 response
        """
        response = self._request("POST", "/rest/api/3/issue", "error creating issue", json=payload)

        if response.status_code != 201:
            if 400 <= response.status_code < 500:
                try:
                    error_resp = JiraErrorResponse.model_validate(response.json())
                except (ValueError, ValidationError):
                    error_resp = None
                if error_resp is not None:
                    raise JiraClientError(
                        f"jira error: {error_resp.joined()}",
                        response.status_code,
                        error_resp.error_messages,
                        error_resp.errors,
                    )
            raise JiraClientError(
                f"error creating issue: status {response.status_code}, body: {response.text}",
                response.status_code,
            )

        data = self._decode(response, "error parsing response")
        try:
            return JiraCreatedIssue.model_validate(data)
        except ValidationError as e:
            raise JiraClientError(f"error parsing response: {e}", response.status_code) from e

    def delete_issue(self, issue_key: str) -> None:
        response = self._request("DELETE", f"/rest/api/3/issue/{issue_key}", "error deleting issue")
        if response.status_code != 204:
            raise JiraClientError(f"error deleting issue {issue_key}: status {response.status_code}", response.status_code)

    def build_issue_payload(self, story: UserStory, project_key: str) -> dict:
        """
        Story payload.

        Acceptance criteria go to the configured custom field when there is
        one, otherwise they are appended to the description. `parent` is
        only set for stories whose parent is already an issue key.
        """
        fields: dict[str, Any] = {
            "project": {"key": project_key},
            "summary": story.title,
            "issuetype": {"name": self.config.default_issue_type},
        }

        if self.config.acceptance_criteria_field:
            fields["description"] = create_description_adf(story.description)
            fields[self.config.acceptance_criteria_field] = create_acceptance_criteria_adf(
                story.acceptance_criteria
            )
        else:
            fields["description"] = create_description_with_criteria_adf(
                story.description, story.acceptance_criteria
            )

        if story.has_parent() and is_jira_key(story.parent):
            fields["parent"] = {"key": story.parent}

        return {"fields": fields}

    def build_subtask_payload(self, description: str, parent_key: str, project_key: str) -> dict:
        return {
            "fields": {
                "project": {"key": project_key},
                "summary": description,
                "description": create_description_adf(description),
                "issuetype": {"name": self.config.subtask_issue_type},
                "parent": {"key": parent_key},
            }
        }

    def create_user_story(
        self,
        story: UserStory,
        row_number: int,
        project_key: Optional[str] = None,
        cancel: Optional[threading.Event] = None,
    ) -> ProcessResult:
        """
        Create the story and its valid subtasks.

        Never raises for Jira failures: the story outcome and every subtask
        outcome are recorded in the returned result.
        """
        project_key = project_key or self.config.project_key
        result = ProcessResult(row_number=row_number)

        try:
            issue = self.create_issue(self.build_issue_payload(story, project_key))
        except JiraClientError as e:
            logger.error(
                f"Error creating story for row {row_number}: {e}",
                extra={"action": "issue_error", "row": row_number},
            )
            result.mark_error(str(e))
            return result

        result.mark_success(issue.key, self.browse_url(issue.key))
        logger.info(
            f"Story created: {issue.key}",
            extra={"action": "issue_created", "issue_key": issue.key, "row": row_number},
        )

        if story.has_subtasks():
            self._create_subtasks(story, issue.key, project_key, result, cancel)

        if self.config.rollback_on_subtask_failure and result.failed_subtasks:
            self._rollback(result)

        return result

    def _create_subtasks(
        self,
        story: UserStory,
        parent_key: str,
        project_key: str,
        result: ProcessResult,
        cancel: Optional[threading.Event],
    ) -> None:
        for description in story.get_valid_subtasks():
            if cancel is not None and cancel.is_set():
                result.add_subtask_result(description, False, error="cancelled")
                continue

            payload = self.build_subtask_payload(description, parent_key, project_key)
            try:
                subtask = self.create_issue(payload)
            except JiraClientError as e:
                logger.warning(
                    f"Error creating subtask '{description}' of {parent_key}: {e}",
                    extra={"action": "subtask_error", "issue_key": parent_key},
                )
                result.add_subtask_result(description, False, error=str(e))
                continue

            result.add_subtask_result(description, True, subtask.key, self.browse_url(subtask.key))
            logger.debug(
                f"Subtask created: {subtask.key}",
                extra={"action": "subtask_created", "issue_key": subtask.key},
            )

    def _rollback(self, result: ProcessResult) -> None:
        """Delete created subtasks and the story, best effort."""
        story_key = result.issue_key
        failures = []

        for subtask in result.successful_subtasks:
            try:
                self.delete_issue(subtask.issue_key)
            except JiraClientError as e:
                failures.append(str(e))
                continue
            subtask.mark_rolled_back()

        try:
            self.delete_issue(story_key)
        except JiraClientError as e:
            failures.append(str(e))

        message = f"subtask creation failed, story {story_key} rolled back"
        if failures:
            message += f" (rollback errors: {'; '.join(failures)})"
        logger.warning(message, extra={"action": "rollback", "issue_key": story_key})

        result.mark_error(message)
