"""Unit tests for parent feature resolution."""

from unittest.mock import Mock

import pytest

from historiador.jira import FeatureManager, JiraClientError
from historiador.jira.feature_manager import escape_jql_string, is_similar_description, normalize_description
from historiador.models import CreateMeta, JiraCreatedIssue, JiraSearchIssue


@pytest.fixture
def client() -> Mock:
    client = Mock()
    client.browse_url.side_effect = lambda key: f"https://x/browse/{key}"
    return client


@pytest.fixture
def manager(client, config) -> FeatureManager:
    return FeatureManager(client, config)


class FakeJira:
    """In-memory feature store answering search and create."""

    def __init__(self):
        self.features: dict[str, str] = {}

    def search_issues(self, jql, fields="key,summary"):
        return [JiraSearchIssue(key=k, fields={"summary": s}) for k, s in self.features.items()]

    def create_issue(self, payload):
        key = f"PROJ-{len(self.features) + 100}"
        self.features[key] = payload["fields"]["summary"]
        return JiraCreatedIssue(id=key, key=key)

    def browse_url(self, key):
        return f"https://x/browse/{key}"


class TestNormalization:
    """Tests for description normalization and similarity."""

    def test_normalize(self):
        assert normalize_description("  Login, del  USUARIO!! ") == "login del usuario"

    def test_normalize_drops_non_ascii_letters(self):
        assert normalize_description("Gestión de Sesión") == "gestin de sesin"

    def test_dropped_letters_change_similarity(self):
        """'año' becomes 'ao', too short to count: 2 of 4 words match."""
        first = normalize_description("Plan del año")
        second = normalize_description("Plan del año 2")

        assert first == "plan del ao"
        assert is_similar_description(first, second) is False

    def test_similar_identical(self):
        assert is_similar_description("gestion de usuarios", "gestion de usuarios") is True

    def test_short_words_do_not_count(self):
        """Only 'gestion' matches ('de' is too short): 1 of 3 words."""
        assert is_similar_description("gestion de usuarios", "gestion de perfiles") is False

    def test_empty_descriptions(self):
        assert is_similar_description("", "") is True
        assert is_similar_description("", "login") is False

    def test_escape_jql(self):
        assert escape_jql_string('x"y\\z') == 'x\\"y\\\\z'


class TestCreateOrGetFeature:
    """Tests for create_or_get_feature."""

    def test_existing_key_is_validated(self, manager, client):
        result = manager.create_or_get_feature("PROJ-7", "PROJ")

        client.validate_parent_issue.assert_called_once_with("PROJ-7")
        assert result.success is True
        assert result.issue_key == "PROJ-7"
        assert result.was_created is False
        client.create_issue.assert_not_called()

    def test_invalid_key_reports_error(self, manager, client):
        client.validate_parent_issue.side_effect = JiraClientError("parent issue 'PROJ-7' not found")

        result = manager.create_or_get_feature("PROJ-7", "PROJ")

        assert result.success is False
        assert result.error_message == "Parent issue validation failed: parent issue 'PROJ-7' not found"

    def test_lowercase_key_is_treated_as_description(self, manager, client):
        client.search_issues.return_value = []
        client.create_issue.return_value = JiraCreatedIssue(id="1", key="PROJ-50")

        result = manager.create_or_get_feature("proj-7", "PROJ")

        client.validate_parent_issue.assert_not_called()
        assert result.issue_key == "PROJ-50"
        assert result.was_created is True

    def test_similar_feature_is_reused(self, manager, client):
        client.search_issues.return_value = [
            JiraSearchIssue(key="PROJ-3", fields={"summary": "Gestión de usuarios del sistema"}),
        ]

        result = manager.create_or_get_feature("gestión de usuarios del sistema!", "PROJ")

        assert result.issue_key == "PROJ-3"
        assert result.existing_key == "PROJ-3"
        client.create_issue.assert_not_called()

    def test_search_query(self, manager, client):
        client.search_issues.return_value = []
        client.create_issue.return_value = JiraCreatedIssue(id="1", key="PROJ-50")

        manager.create_or_get_feature('Pagos "online"', "PROJ")

        jql = client.search_issues.call_args.args[0]
        assert jql == 'project = "PROJ" AND issuetype = "Feature" AND summary ~ "pagos online"'

    def test_search_failure(self, manager, client):
        client.search_issues.side_effect = JiraClientError("search failed with status: 500")

        result = manager.create_or_get_feature("Pagos", "PROJ")

        assert result.success is False
        assert result.error_message.startswith("Error searching existing features:")

    def test_create_failure(self, manager, client):
        client.search_issues.return_value = []
        client.create_issue.side_effect = JiraClientError("jira error: customfield_1: required")

        result = manager.create_or_get_feature("Pagos", "PROJ")

        assert result.success is False
        assert result.error_message == "Error creating feature: jira error: customfield_1: required"

    def test_resolving_twice_creates_once(self, config):
        fake = FakeJira()
        manager = FeatureManager(fake, config)

        first = manager.create_or_get_feature("Gestión de pagos", "PROJ")
        second = manager.create_or_get_feature("Gestión de pagos", "PROJ")

        assert first.was_created is True
        assert second.was_created is False
        assert second.issue_key == first.issue_key
        assert len(fake.features) == 1


class TestFeaturePayload:
    """Tests for feature payloads and required field diagnosis."""

    def test_payload_merges_required_fields(self, client):
        from historiador.utils.config_loader import HistoriadorConfig

        config = HistoriadorConfig(
            jira_url="https://x",
            jira_email="a@b.c",
            jira_api_token="t",
            feature_required_fields='{"customfield_10100": {"id": "10001"}}',
        )
        fields = FeatureManager(client, config).build_feature_payload("Pagos", "PROJ")["fields"]

        assert fields["summary"] == "Pagos"
        assert fields["issuetype"] == {"name": "Feature"}
        assert fields["customfield_10100"] == {"id": "10001"}
        assert fields["description"]["content"][0]["content"][0]["text"] == "Feature creado automáticamente: Pagos"

    def test_required_fields_exclude_builtins(self, manager, client):
        client.get_create_meta.return_value = CreateMeta.model_validate({
            "projects": [{
                "key": "PROJ",
                "issuetypes": [{
                    "name": "Feature",
                    "fields": {
                        "summary": {"name": "Summary", "required": True},
                        "customfield_10100": {"name": "Team", "required": True},
                        "customfield_10200": {"name": "Notes", "required": False},
                    },
                }],
            }],
        })

        assert manager.validate_feature_required_fields("PROJ") == ["Team (customfield_10100)"]

    def test_required_fields_without_projects(self, manager, client):
        client.get_create_meta.return_value = CreateMeta()

        with pytest.raises(JiraClientError, match="no projects found"):
            manager.validate_feature_required_fields("PROJ")
