"""Unit tests for the Jira REST client."""

import pytest
import requests

from historiador.jira import JiraClientError, is_jira_key
from historiador.models import ProcessStatus, UserStory


def story(**overrides) -> UserStory:
    values = {"title": "Login", "description": "As a user", "acceptance_criteria": "Works"}
    values.update(overrides)
    return UserStory.from_row(**values)


class TestIsJiraKey:
    """Tests for is_jira_key function."""

    @pytest.mark.parametrize("value", ["PROJ-1", "ABC-999", "X-1"])
    def test_keys(self, value):
        assert is_jira_key(value) is True

    @pytest.mark.parametrize("value", ["proj-1", "PROJ", "123-PROJ", "PROJ-", "PROJ-abc", "Login feature", ""])
    def test_not_keys(self, value):
        assert is_jira_key(value) is False


class TestReadOnlyChecks:
    """Tests for connection, project and issue type checks."""

    def test_connection_ok(self, jira_client, response):
        jira_client.session.request.return_value = response(200, {})

        jira_client.test_connection()

        method, url = jira_client.session.request.call_args.args
        assert method == "GET"
        assert url == "https://company.atlassian.net/rest/api/3/myself"

    def test_connection_unauthorized(self, jira_client, response):
        jira_client.session.request.return_value = response(401)

        with pytest.raises(JiraClientError, match="authentication failed: status 401"):
            jira_client.test_connection()

    def test_transport_failure(self, jira_client):
        jira_client.session.request.side_effect = requests.exceptions.ConnectionError("refused")

        with pytest.raises(JiraClientError, match="connection failed"):
            jira_client.test_connection()

    def test_project_not_found(self, jira_client, response):
        jira_client.session.request.return_value = response(404)

        with pytest.raises(JiraClientError, match="project 'NOPE' not found"):
            jira_client.validate_project("NOPE")

    def test_parent_issue_not_found(self, jira_client, response):
        jira_client.session.request.return_value = response(404)

        with pytest.raises(JiraClientError, match="parent issue 'PROJ-9' not found"):
            jira_client.validate_parent_issue("PROJ-9")

    def test_subtask_type_must_be_subtask(self, jira_client, response):
        """A type with the right name but subtask=false does not count."""
        jira_client.session.request.return_value = response(200, [
            {"id": "1", "name": "Sub-task", "subtask": False},
        ])

        with pytest.raises(JiraClientError, match="subtask issue type 'Sub-task' not found"):
            jira_client.validate_subtask_issue_type("PROJ")

    def test_subtask_type_found(self, jira_client, response):
        jira_client.session.request.return_value = response(200, [
            {"id": "1", "name": "Story", "subtask": False},
            {"id": "2", "name": "Sub-task", "subtask": True},
        ])

        jira_client.validate_subtask_issue_type("PROJ")

    def test_feature_type_missing(self, jira_client, response):
        jira_client.session.request.return_value = response(200, [{"id": "1", "name": "Story"}])

        with pytest.raises(JiraClientError, match="feature issue type 'Feature' not found"):
            jira_client.validate_feature_issue_type()

    def test_search_sends_jql(self, jira_client, response):
        jira_client.session.request.return_value = response(200, {
            "issues": [{"key": "PROJ-1", "fields": {"summary": "Login"}}],
        })

        issues = jira_client.search_issues('project = "PROJ"')

        assert [i.key for i in issues] == ["PROJ-1"]
        assert issues[0].summary == "Login"
        params = jira_client.session.request.call_args.kwargs["params"]
        assert params == {"jql": 'project = "PROJ"', "fields": "key,summary"}


class TestCreateIssue:
    """Tests for create_issue error handling."""

    def test_created(self, jira_client, response):
        jira_client.session.request.return_value = response(
            201, {"id": "10001", "key": "PROJ-1", "self": "https://x/rest/api/3/issue/10001"}
        )

        issue = jira_client.create_issue({"fields": {}})

        assert issue.key == "PROJ-1"
        assert issue.self_url.endswith("/10001")

    def test_jira_error_body(self, jira_client, response):
        jira_client.session.request.return_value = response(400, {
            "errorMessages": ["Bad request"],
            "errors": {"summary": "required"},
        })

        with pytest.raises(JiraClientError) as exc_info:
            jira_client.create_issue({"fields": {}})

        assert str(exc_info.value) == "jira error: Bad request; summary: required"
        assert exc_info.value.status_code == 400
        assert exc_info.value.errors == {"summary": "required"}

    def test_non_json_error_body(self, jira_client, response):
        jira_client.session.request.return_value = response(500, text="oops")

        with pytest.raises(JiraClientError, match="error creating issue: status 500, body: oops"):
            jira_client.create_issue({"fields": {}})


class TestPayloads:
    """Tests for story and subtask payloads."""

    def test_criteria_in_description_without_custom_field(self, jira_client):
        fields = jira_client.build_issue_payload(story(), "PROJ")["fields"]

        assert fields["project"] == {"key": "PROJ"}
        assert fields["summary"] == "Login"
        assert fields["issuetype"] == {"name": "Story"}
        assert len(fields["description"]["content"]) == 4
        assert "parent" not in fields

    def test_criteria_in_custom_field(self, jira_client):
        jira_client.config.acceptance_criteria_field = "customfield_10200"

        fields = jira_client.build_issue_payload(story(), "PROJ")["fields"]

        assert len(fields["description"]["content"]) == 1
        assert fields["customfield_10200"]["content"][0]["content"][0]["text"] == "Works"

    def test_parent_only_for_issue_keys(self, jira_client):
        with_key = jira_client.build_issue_payload(story(parent="PROJ-5"), "PROJ")["fields"]
        with_text = jira_client.build_issue_payload(story(parent="Login feature"), "PROJ")["fields"]

        assert with_key["parent"] == {"key": "PROJ-5"}
        assert "parent" not in with_text

    def test_subtask_payload(self, jira_client):
        fields = jira_client.build_subtask_payload("Write tests", "PROJ-1", "PROJ")["fields"]

        assert fields["issuetype"] == {"name": "Sub-task"}
        assert fields["parent"] == {"key": "PROJ-1"}
        assert fields["summary"] == "Write tests"


class TestCreateUserStory:
    """Tests for story plus subtask creation."""

    def test_story_and_subtasks(self, jira_client, response):
        jira_client.session.request.side_effect = [
            response(201, {"id": "1", "key": "PROJ-1"}),
            response(201, {"id": "2", "key": "PROJ-2"}),
            response(201, {"id": "3", "key": "PROJ-3"}),
        ]

        result = jira_client.create_user_story(story(subtasks_raw="a;b"), 2, "PROJ")

        assert result.success is True
        assert result.issue_key == "PROJ-1"
        assert result.issue_url == "https://company.atlassian.net/browse/PROJ-1"
        assert [s.issue_key for s in result.subtasks] == ["PROJ-2", "PROJ-3"]

    def test_story_failure_skips_subtasks(self, jira_client, response):
        jira_client.session.request.return_value = response(400, {"errorMessages": ["nope"]})

        result = jira_client.create_user_story(story(subtasks_raw="a;b"), 2, "PROJ")

        assert result.success is False
        assert result.error_message == "jira error: nope"
        assert result.subtasks == []
        assert jira_client.session.request.call_count == 1

    def test_subtask_failure_keeps_story(self, jira_client, response):
        jira_client.session.request.side_effect = [
            response(201, {"id": "1", "key": "PROJ-1"}),
            response(400, {"errors": {"summary": "too long"}}),
            response(201, {"id": "3", "key": "PROJ-3"}),
        ]

        result = jira_client.create_user_story(story(subtasks_raw="a;b"), 2, "PROJ")

        assert result.success is True
        assert result.subtasks[0].success is False
        assert result.subtasks[0].error == "jira error: summary: too long"
        assert result.subtasks[1].issue_key == "PROJ-3"

    def test_invalid_subtasks_are_not_sent(self, jira_client, response):
        jira_client.session.request.return_value = response(201, {"id": "1", "key": "PROJ-1"})
        long_story = story()
        long_story.subtasks = ["x" * 256]

        result = jira_client.create_user_story(long_story, 2, "PROJ")

        assert result.subtasks == []
        assert jira_client.session.request.call_count == 1

    def test_rollback_on_subtask_failure(self, jira_client, response):
        jira_client.config.rollback_on_subtask_failure = True
        jira_client.session.request.side_effect = [
            response(201, {"id": "1", "key": "PROJ-1"}),
            response(201, {"id": "2", "key": "PROJ-2"}),
            response(500, text="down"),
            response(204),
            response(204),
        ]

        result = jira_client.create_user_story(story(subtasks_raw="a;b"), 2, "PROJ")

        assert result.success is False
        assert result.error_message == "subtask creation failed, story PROJ-1 rolled back"
        deleted = [c.args[1] for c in jira_client.session.request.call_args_list if c.args[0] == "DELETE"]
        assert deleted == [
            "https://company.atlassian.net/rest/api/3/issue/PROJ-2",
            "https://company.atlassian.net/rest/api/3/issue/PROJ-1",
        ]

        rolled_back, failed = result.subtasks
        assert (rolled_back.success, rolled_back.status, rolled_back.error) == (False, ProcessStatus.ERROR, "rolled back")
        assert rolled_back.issue_key == ""
        assert rolled_back.issue_url == ""
        assert failed.success is False
        assert failed.error.startswith("error creating issue: status 500")

    def test_failed_rollback_keeps_subtask(self, jira_client, response):
        jira_client.config.rollback_on_subtask_failure = True
        jira_client.session.request.side_effect = [
            response(201, {"id": "1", "key": "PROJ-1"}),
            response(201, {"id": "2", "key": "PROJ-2"}),
            response(500, text="down"),
            response(403),
            response(204),
        ]

        result = jira_client.create_user_story(story(subtasks_raw="a;b"), 2, "PROJ")

        assert result.error_message == (
            "subtask creation failed, story PROJ-1 rolled back "
            "(rollback errors: error deleting issue PROJ-2: status 403)"
        )
        assert result.subtasks[0].success is True
        assert result.subtasks[0].issue_key == "PROJ-2"
