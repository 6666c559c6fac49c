"""Tests for the JIRA metadata client and the concurrent taxonomy fetch."""

import time
from unittest.mock import MagicMock, patch

import pytest
from jira import JIRAError
from tenacity import wait_none

from jira_workflow.config import Config
from jira_workflow.exceptions import (
    JiraAuthError,
    JiraConnectionError,
    JiraRateLimitError,
    MetadataFetchError,
)
from jira_workflow.jira_client import (
    AuthenticationError,
    ConnectionError,
    JiraClient,
    RateLimitError,
)
from jira_workflow.models import JiraIssueType, JiraStatus
from jira_workflow.taxonomy import as_fetch_error, fetch_taxonomy


def _make_config():
    return Config(
        jira_url="https://jira.example.com",
        jira_email="me@example.com",
        jira_api_token="token",
        project_key="PROJ",
    )


def _make_link_type(raw):
    link_type = MagicMock()
    link_type.raw = raw
    return link_type


class TestJiraClient:
    """Tests for JiraClient."""

    @patch("jira_workflow.jira_client.JIRA")
    def test_list_issue_types(self, mock_jira_cls):
        project = MagicMock()
        project.raw = {"issueTypes": [
            {"id": "10000", "name": "Epic", "subtask": False, "description": "Big work"},
            {"id": "10003", "name": "Sub-task", "subtask": True, "description": ""},
        ]}
        mock_jira_cls.return_value.project.return_value = project

        result = JiraClient(_make_config()).list_issue_types()

        mock_jira_cls.return_value.project.assert_called_once_with("PROJ")
        assert result == [
            JiraIssueType(id="10000", name="Epic", is_subtask=False, description="Big work"),
            JiraIssueType(id="10003", name="Sub-task", is_subtask=True, description=None),
        ]

    @patch("jira_workflow.jira_client.JIRA")
    def test_list_statuses_by_issue_type(self, mock_jira_cls):
        mock_jira_cls.return_value._get_json.return_value = [
            {"name": "Story", "statuses": [
                {"name": "To Do", "untranslatedName": "To Do",
                 "statusCategory": {"key": "new"}},
                {"name": "В работе", "untranslatedName": "In Progress",
                 "statusCategory": {"key": "indeterminate"}},
                {"name": "Odd"},
            ]},
        ]

        [group] = JiraClient(_make_config()).list_statuses_by_issue_type()

        mock_jira_cls.return_value._get_json.assert_called_once_with("project/PROJ/statuses")
        assert group.issue_type_name == "Story"
        assert group.statuses == [
            JiraStatus(name="To Do", untranslated_name="To Do", tracker_category="new"),
            JiraStatus(name="В работе", untranslated_name="In Progress",
                       tracker_category="indeterminate"),
            JiraStatus(name="Odd"),
        ]

    @patch("jira_workflow.jira_client.JIRA")
    def test_list_link_types(self, mock_jira_cls):
        mock_jira_cls.return_value.issue_link_types.return_value = [
            _make_link_type({"id": "1", "name": "Blocks", "inward": "is blocked by",
                             "outward": "blocks"}),
        ]

        [link_type] = JiraClient(_make_config()).list_link_types()

        assert link_type.name == "Blocks"
        assert link_type.inward_phrase == "is blocked by"
        assert link_type.outward_phrase == "blocks"

    @patch("jira_workflow.jira_client.JIRA")
    def test_unauthorized_is_authentication_error(self, mock_jira_cls):
        mock_jira_cls.return_value.project.side_effect = JIRAError(status_code=401)
        with pytest.raises(AuthenticationError):
            JiraClient(_make_config()).list_issue_types()
        assert mock_jira_cls.return_value.project.call_count == 1

    @patch("jira_workflow.jira_client.JIRA")
    def test_rate_limit_is_retried(self, mock_jira_cls):
        mock_jira_cls.return_value.issue_link_types.side_effect = [
            JIRAError(status_code=429),
            [_make_link_type({"id": "1", "name": "Blocks"})],
        ]
        client = JiraClient(_make_config())

        result = JiraClient.list_link_types.retry_with(wait=wait_none())(client)

        assert [lt.name for lt in result] == ["Blocks"]
        assert mock_jira_cls.return_value.issue_link_types.call_count == 2

    @patch("jira_workflow.jira_client.JIRA")
    def test_client_is_created_once(self, mock_jira_cls):
        mock_jira_cls.return_value.issue_link_types.return_value = []
        client = JiraClient(_make_config())
        client.list_link_types()
        client.list_link_types()
        mock_jira_cls.assert_called_once_with(
            server="https://jira.example.com",
            basic_auth=("me@example.com", "token"),
            timeout=15,
        )

    @patch("jira_workflow.jira_client.JIRA")
    def test_concurrent_fetch_shares_one_connection(self, mock_jira_cls):
        jira = MagicMock()
        jira.project.return_value.raw = {"issueTypes": []}
        jira._get_json.return_value = []
        jira.issue_link_types.return_value = []

        def slow_connect(**kwargs):
            time.sleep(0.1)
            return jira

        mock_jira_cls.side_effect = slow_connect

        fetch_taxonomy(JiraClient(_make_config()))

        assert mock_jira_cls.call_count == 1

    @patch("jira_workflow.jira_client.JIRA")
    def test_other_errors_propagate_unchanged(self, mock_jira_cls):
        error = JIRAError(status_code=500, text="Internal error")
        mock_jira_cls.return_value._get_json.side_effect = error

        with pytest.raises(JIRAError) as exc_info:
            JiraClient(_make_config()).list_statuses_by_issue_type()

        assert exc_info.value is error
        assert exc_info.value.__cause__ is None

    @patch("jira_workflow.jira_client.JIRA", side_effect=Exception("Failed to resolve host"))
    def test_unreachable_server(self, mock_jira_cls):
        with pytest.raises(ConnectionError, match="Cannot connect"):
            JiraClient(_make_config()).list_link_types()


class TestAsFetchError:
    """Tests for as_fetch_error."""

    @pytest.mark.parametrize("error,expected", [
        (AuthenticationError("x"), JiraAuthError),
        (RateLimitError("x"), JiraRateLimitError),
        (ConnectionError("Cannot connect"), JiraConnectionError),
        (RuntimeError("x"), MetadataFetchError),
    ])
    def test_maps_client_errors(self, error, expected):
        assert type(as_fetch_error(error)) is expected


class TestFetchTaxonomy:
    """Tests for fetch_taxonomy."""

    def test_returns_all_three_lists(self, source, taxonomy):
        assert fetch_taxonomy(source) == taxonomy
        source.list_issue_types.assert_called_once_with()
        source.list_statuses_by_issue_type.assert_called_once_with()
        source.list_link_types.assert_called_once_with()

    def test_any_failure_fails_the_fetch(self, source):
        source.list_statuses_by_issue_type.side_effect = RateLimitError("slow down")
        with pytest.raises(JiraRateLimitError) as exc_info:
            fetch_taxonomy(source)
        assert isinstance(exc_info.value.__cause__, RateLimitError)

    def test_package_errors_pass_through(self, source):
        error = JiraConnectionError("unreachable")
        source.list_issue_types.side_effect = error
        with pytest.raises(JiraConnectionError) as exc_info:
            fetch_taxonomy(source)
        assert exc_info.value is error
