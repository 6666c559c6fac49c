"""Tests for the setup wizard."""

from unittest.mock import MagicMock

import pytest

from jira_workflow.exceptions import PersistError, WizardStateError
from jira_workflow.jira_client import AuthenticationError
from jira_workflow.models import (
    BoardCategory,
    Role,
    WorkflowConfiguration,
)
from jira_workflow.wizard import (
    WizardAction,
    WizardDraft,
    WizardSession,
    WizardStep,
    transition,
)


def _advance_to(session, step):
    while session.step != step:
        session.advance()


class TestTransition:
    """Tests for the transition table."""

    def test_forward_path(self):
        step = transition(WizardStep.FETCH, WizardAction.FETCHED)
        path = [step]
        while (step := transition(step, WizardAction.NEXT)) is not None:
            path.append(step)
        assert path == [
            WizardStep.ISSUE_TYPES,
            WizardStep.ROLES,
            WizardStep.STATUSES,
            WizardStep.LINK_TYPES,
            WizardStep.REVIEW,
        ]

    def test_no_back_from_first_steps(self):
        assert transition(WizardStep.FETCH, WizardAction.BACK) is None
        assert transition(WizardStep.ISSUE_TYPES, WizardAction.BACK) is None

    def test_save_only_from_review(self):
        assert transition(WizardStep.REVIEW, WizardAction.SAVE) == WizardStep.REVIEW
        for step in WizardStep:
            if step != WizardStep.REVIEW:
                assert transition(step, WizardAction.SAVE) is None


class TestWizardDraft:
    """Tests for WizardDraft."""

    def test_from_taxonomy_runs_all_suggestions(self, taxonomy):
        draft = WizardDraft.from_taxonomy(taxonomy)
        assert draft.counts() == {"roles": 3, "issueTypes": 6, "statuses": 10, "linkTypes": 3}
        assert [r.code for r in draft.roles] == ["SA", "DEV", "QA"]


class TestWizardFetch:
    """Tests for starting a session and fetching metadata."""

    def test_start_advances_to_issue_types(self, source, store):
        session = WizardSession(source, store)
        assert session.start() == WizardStep.ISSUE_TYPES
        assert session.active is True
        assert session.error is None
        assert len(session.draft.issue_types) == 6

    def test_start_does_not_write(self, source, store):
        WizardSession(source, store).start()
        assert not store.path.exists()

    def test_fetch_failure_stays_in_fetch(self, source, store):
        source.list_link_types.side_effect = AuthenticationError("bad token")
        session = WizardSession(source, store)

        assert session.start() == WizardStep.FETCH
        assert session.draft is None
        assert "authentication failed" in session.error.lower()

    def test_retry_after_failure(self, source, store, taxonomy):
        source.list_link_types.side_effect = OSError("timed out")
        session = WizardSession(source, store)
        session.start()
        assert session.error == "Failed to fetch JIRA metadata: timed out"

        source.list_link_types.side_effect = None
        source.list_link_types.return_value = taxonomy.link_types
        assert session.retry_fetch() == WizardStep.ISSUE_TYPES
        assert session.error is None

    def test_cannot_advance_out_of_failed_fetch(self, source, store):
        source.list_issue_types.side_effect = OSError("timed out")
        session = WizardSession(source, store)
        session.start()
        with pytest.raises(WizardStateError):
            session.advance()

    def test_retry_only_in_fetch(self, source, store):
        session = WizardSession(source, store)
        session.start()
        with pytest.raises(WizardStateError):
            session.retry_fetch()


class TestWizardNavigation:
    """Tests for advance, back and cancel."""

    def test_back_at_issue_types_is_noop(self, source, store):
        session = WizardSession(source, store)
        session.start()
        assert session.can_go_back is False
        assert session.back() == WizardStep.ISSUE_TYPES

    def test_back_from_roles(self, source, store):
        session = WizardSession(source, store)
        session.start()
        session.advance()
        assert session.can_go_back is True
        assert session.back() == WizardStep.ISSUE_TYPES

    def test_cannot_advance_past_review(self, source, store):
        session = WizardSession(source, store)
        session.start()
        _advance_to(session, WizardStep.REVIEW)
        with pytest.raises(WizardStateError):
            session.advance()

    def test_back_keeps_edits(self, source, store):
        session = WizardSession(source, store)
        session.start()
        session.update_row("issueTypes", 5, board_category="STORY")
        session.advance()
        session.back()
        assert session.draft.issue_types[5].board_category == BoardCategory.STORY

    @pytest.mark.parametrize("step", [
        WizardStep.ISSUE_TYPES,
        WizardStep.ROLES,
        WizardStep.STATUSES,
        WizardStep.LINK_TYPES,
        WizardStep.REVIEW,
    ])
    def test_cancel_leaves_store_unchanged(self, source, store, step):
        store.replace_roles([Role("PM", "Product", "#000000", 1, is_default=True)])
        before = store.get_configuration()

        session = WizardSession(source, store)
        session.start()
        _advance_to(session, step)
        session.cancel()

        assert store.get_configuration() == before
        assert session.draft is None
        assert session.active is False
        assert session.step == WizardStep.FETCH

    def test_operations_after_cancel(self, source, store):
        session = WizardSession(source, store)
        session.start()
        session.cancel()
        with pytest.raises(WizardStateError):
            session.advance()
        assert session.back() == WizardStep.FETCH


class TestWizardEditing:
    """Tests for editing draft rows."""

    def test_edit_only_current_table(self, source, store):
        session = WizardSession(source, store)
        session.start()
        with pytest.raises(WizardStateError):
            session.add_row("roles")
        session.advance()
        role = session.add_row("roles")
        assert role.sort_order == 4
        assert len(session.draft.roles) == 4

    def test_changing_category_clears_role(self, source, store):
        session = WizardSession(source, store)
        session.start()
        index = next(i for i, t in enumerate(session.draft.issue_types)
                     if t.jira_type_name == "Sub-task")
        row = session.update_row("issueTypes", index, board_category=BoardCategory.STORY)
        assert row.workflow_role_code is None

    def test_delete_row(self, source, store):
        session = WizardSession(source, store)
        session.start()
        _advance_to(session, WizardStep.LINK_TYPES)
        removed = session.delete_row("linkTypes", 1)
        assert removed.jira_link_type_name == "Cloners"
        assert session.summary()["linkTypes"] == 2


class TestWizardSave:
    """Tests for committing the draft."""

    def test_save_commits_all_tables(self, source, store):
        session = WizardSession(source, store)
        session.start()
        _advance_to(session, WizardStep.REVIEW)

        result = session.save()

        assert result.valid is True
        assert result.errors == []
        config = store.get_configuration()
        assert [r.code for r in config.roles] == ["SA", "DEV", "QA"]
        assert len(config.issue_types) == 6
        assert len(config.statuses) == 10
        assert len(config.link_types) == 3
        assert session.active is False
        assert session.draft is None
        assert session.validation is result

    def test_save_outside_review(self, source, store):
        session = WizardSession(source, store)
        session.start()
        with pytest.raises(WizardStateError):
            session.save()
        assert not store.path.exists()

    def test_save_persists_in_dependency_order(self, source):
        mock_store = MagicMock()
        mock_store.get_configuration.return_value = WorkflowConfiguration()
        session = WizardSession(source, mock_store)
        session.start()
        _advance_to(session, WizardStep.REVIEW)

        session.save()

        tables = [c.args[0] for c in mock_store.replace_table.call_args_list]
        assert tables == ["roles", "issueTypes", "statuses", "linkTypes"]

    def test_failed_table_stops_commit_and_stays_in_review(self, source):
        def replace_table(table, rows):
            if table == "statuses":
                raise OSError("disk full")
            return rows

        mock_store = MagicMock()
        mock_store.replace_table.side_effect = replace_table
        session = WizardSession(source, mock_store)
        session.start()
        _advance_to(session, WizardStep.REVIEW)

        with pytest.raises(PersistError) as exc_info:
            session.save()

        assert exc_info.value.table == "statuses"
        tables = [c.args[0] for c in mock_store.replace_table.call_args_list]
        assert tables == ["roles", "issueTypes", "statuses"]
        assert session.step == WizardStep.REVIEW
        assert session.active is True
        assert session.draft is not None
        assert "statuses" in session.error

    def test_to_dict(self, source, store):
        session = WizardSession(source, store)
        session.start()
        data = session.to_dict()
        assert data["step"] == "ISSUE_TYPES"
        assert data["canGoBack"] is False
        assert data["counts"]["statuses"] == 10
        assert data["draft"]["roles"][0]["code"] == "SA"
