"""Shared fixtures: a small JIRA project taxonomy and a file-backed store."""

from unittest.mock import MagicMock

import pytest

from jira_workflow.models import (
    JiraIssueType,
    JiraLinkType,
    JiraStatus,
    JiraStatusesByType,
    Taxonomy,
)
from jira_workflow.store import ConfigurationStore


def _statuses(issue_type_name, *pairs):
    return JiraStatusesByType(
        issue_type_name=issue_type_name,
        statuses=[JiraStatus(name=name, untranslated_name=name, tracker_category=cat)
                  for name, cat in pairs],
    )


@pytest.fixture
def taxonomy():
    """Epic/Story/three subtasks/one ignored type, their statuses and three link types."""
    return Taxonomy(
        issue_types=[
            JiraIssueType(id="10000", name="Epic"),
            JiraIssueType(id="10001", name="Story"),
            JiraIssueType(id="10002", name="Sub-task Analytics", is_subtask=True),
            JiraIssueType(id="10003", name="Sub-task", is_subtask=True),
            JiraIssueType(id="10004", name="Testing Sub-task", is_subtask=True),
            JiraIssueType(id="10005", name="Wireframe"),
        ],
        statuses_by_type=[
            _statuses("Epic", ("To Do", "new"), ("In Progress", "indeterminate"), ("Done", "done")),
            _statuses("Story", ("To Do", "new"), ("In Review", "indeterminate"), ("Done", "done")),
            _statuses("Sub-task", ("To Do", "new"), ("In Development", "indeterminate"),
                      ("Done", "done")),
            _statuses("Wireframe", ("Draft", "new")),
        ],
        link_types=[
            JiraLinkType(id="1", name="Blocks", inward_phrase="is blocked by",
                         outward_phrase="blocks"),
            JiraLinkType(id="2", name="Cloners", inward_phrase="is cloned by",
                         outward_phrase="clones"),
            JiraLinkType(id="3", name="Relates", inward_phrase="relates to",
                         outward_phrase="relates to"),
        ],
    )


@pytest.fixture
def source(taxonomy):
    """A taxonomy source answering with the ``taxonomy`` fixture."""
    mock_source = MagicMock()
    mock_source.list_issue_types.return_value = taxonomy.issue_types
    mock_source.list_statuses_by_issue_type.return_value = taxonomy.statuses_by_type
    mock_source.list_link_types.return_value = taxonomy.link_types
    return mock_source


@pytest.fixture
def store(tmp_path):
    return ConfigurationStore(tmp_path / "workflow.toml")
