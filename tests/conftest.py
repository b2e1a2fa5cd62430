"""Shared fixtures for unit tests."""

from unittest.mock import Mock

import pytest

from historiador.jira import JiraClient
from historiador.utils.config_loader import HistoriadorConfig


def make_response(status_code: int, json_data=None, text: str = "") -> Mock:
    """Fake requests.Response."""
    response = Mock()
    response.status_code = status_code
    response.text = text
    if json_data is None:
        response.json.side_effect = ValueError("no json")
    else:
        response.json.return_value = json_data
    return response


@pytest.fixture
def config() -> HistoriadorConfig:
    return HistoriadorConfig(
        jira_url="https://company.atlassian.net",
        jira_email="user@company.com",
        jira_api_token="token",
        project_key="PROJ",
    )


@pytest.fixture
def jira_client(config) -> JiraClient:
    """Client whose HTTP session is a mock."""
    client = JiraClient(config)
    client.session = Mock()
    return client


@pytest.fixture
def write_csv(tmp_path):
    """Write a CSV file under tmp_path and return its path."""
    def _write(name: str, content: str):
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return path
    return _write


@pytest.fixture
def response():
    """Factory for fake HTTP responses."""
    return make_response
