"""Setup wizard: fetch metadata, edit suggested mappings, commit them together."""

import logging
from dataclasses import dataclass, field
from enum import StrEnum

from jira_workflow import editing
from jira_workflow.classification import (
    suggest_issue_types,
    suggest_link_types,
    suggest_roles_from_issue_types,
    suggest_statuses,
)
from jira_workflow.exceptions import (
    MetadataFetchError,
    PersistError,
    WizardStateError,
)
from jira_workflow.models import (
    TABLES,
    IssueTypeMapping,
    LinkTypeMapping,
    Role,
    StatusMapping,
    Taxonomy,
    ValidationResult,
    WorkflowConfiguration,
)
from jira_workflow.taxonomy import fetch_taxonomy
from jira_workflow.validation import safe_validate

logger = logging.getLogger(__name__)


class WizardStep(StrEnum):
    FETCH = "FETCH"
    ISSUE_TYPES = "ISSUE_TYPES"
    ROLES = "ROLES"
    STATUSES = "STATUSES"
    LINK_TYPES = "LINK_TYPES"
    REVIEW = "REVIEW"


class WizardAction(StrEnum):
    FETCHED = "FETCHED"
    NEXT = "NEXT"
    BACK = "BACK"
    SAVE = "SAVE"


# (step, action) -> step. Pairs missing here are not available.
TRANSITIONS: dict[tuple[WizardStep, WizardAction], WizardStep] = {
    (WizardStep.FETCH, WizardAction.FETCHED): WizardStep.ISSUE_TYPES,
    (WizardStep.ISSUE_TYPES, WizardAction.NEXT): WizardStep.ROLES,
    (WizardStep.ROLES, WizardAction.NEXT): WizardStep.STATUSES,
    (WizardStep.STATUSES, WizardAction.NEXT): WizardStep.LINK_TYPES,
    (WizardStep.LINK_TYPES, WizardAction.NEXT): WizardStep.REVIEW,
    (WizardStep.ROLES, WizardAction.BACK): WizardStep.ISSUE_TYPES,
    (WizardStep.STATUSES, WizardAction.BACK): WizardStep.ROLES,
    (WizardStep.LINK_TYPES, WizardAction.BACK): WizardStep.STATUSES,
    (WizardStep.REVIEW, WizardAction.BACK): WizardStep.LINK_TYPES,
    (WizardStep.REVIEW, WizardAction.SAVE): WizardStep.REVIEW,
}

# The one table each editing step may change
EDITABLE_TABLES: dict[WizardStep, str] = {
    WizardStep.ISSUE_TYPES: "issueTypes",
    WizardStep.ROLES: "roles",
    WizardStep.STATUSES: "statuses",
    WizardStep.LINK_TYPES: "linkTypes",
}


def transition(step: WizardStep, action: WizardAction) -> WizardStep | None:
    """Return the step reached by ``action`` from ``step``, or None if unavailable."""
    return TRANSITIONS.get((step, action))


@dataclass
class WizardDraft:
    """Uncommitted copy of the four tables plus the metadata they came from."""

    taxonomy: Taxonomy
    roles: list[Role] = field(default_factory=list)
    issue_types: list[IssueTypeMapping] = field(default_factory=list)
    statuses: list[StatusMapping] = field(default_factory=list)
    link_types: list[LinkTypeMapping] = field(default_factory=list)

    @classmethod
    def from_taxonomy(cls, taxonomy: Taxonomy) -> "WizardDraft":
        """Run the suggestions: issue types first, since roles and statuses depend on them."""
        issue_types = suggest_issue_types(taxonomy.issue_types)
        roles = suggest_roles_from_issue_types(issue_types)
        statuses = suggest_statuses(taxonomy.statuses_by_type, issue_types)
        link_types = suggest_link_types(taxonomy.link_types)
        return cls(
            taxonomy=taxonomy,
            roles=roles,
            issue_types=issue_types,
            statuses=statuses,
            link_types=link_types,
        )

    def rows(self, table: str) -> list:
        return getattr(self, TABLES[table][0])

    def configuration(self) -> WorkflowConfiguration:
        return WorkflowConfiguration(
            roles=list(self.roles),
            issue_types=list(self.issue_types),
            statuses=list(self.statuses),
            link_types=list(self.link_types),
        )

    def counts(self) -> dict[str, int]:
        return {table: len(self.rows(table)) for table in TABLES}


class WizardSession:
    """One run of the setup wizard.

    Steps run FETCH -> ISSUE_TYPES -> ROLES -> STATUSES -> LINK_TYPES -> REVIEW.
    The store is only written by ``save()``, from REVIEW; ``cancel()``
    drops the draft without touching it.
    """

    def __init__(self, source, store) -> None:
        self.source = source
        self.store = store
        self.step = WizardStep.FETCH
        self.draft: WizardDraft | None = None
        self.error: str | None = None
        self.validation: ValidationResult | None = None
        self.active = False

    # Lifecycle

    def start(self) -> WizardStep:
        """Begin a new session and fetch metadata (auto-advances on success)."""
        self.step = WizardStep.FETCH
        self.draft = None
        self.validation = None
        self.active = True
        return self._fetch()

    def retry_fetch(self) -> WizardStep:
        """Re-run a failed fetch. Only available while stuck in FETCH."""
        self._require_active()
        if self.step != WizardStep.FETCH:
            raise WizardStateError(f"Cannot retry fetch from {self.step}")
        return self._fetch()

    def _fetch(self) -> WizardStep:
        self.error = None
        try:
            taxonomy = fetch_taxonomy(self.source)
        except MetadataFetchError as e:
            logger.warning("Wizard fetch failed: %s", e)
            self.error = str(e)
            return self.step

        self.draft = WizardDraft.from_taxonomy(taxonomy)
        self._apply(WizardAction.FETCHED)
        return self.step

    def cancel(self) -> None:
        """Discard the draft. Nothing is written to the store."""
        self.step = WizardStep.FETCH
        self.draft = None
        self.error = None
        self.active = False

    # Navigation

    def _require_active(self) -> None:
        if not self.active:
            raise WizardStateError("No wizard session in progress")

    def _apply(self, action: WizardAction) -> None:
        target = transition(self.step, action)
        if target is None:
            raise WizardStateError(f"{action} is not available in step {self.step}")
        self.step = target

    @property
    def can_go_back(self) -> bool:
        return self.active and transition(self.step, WizardAction.BACK) is not None

    def advance(self) -> WizardStep:
        self._require_active()
        self._apply(WizardAction.NEXT)
        return self.step

    def back(self) -> WizardStep:
        """Go to the previous step. Does nothing where there is none."""
        if self.can_go_back:
            self._apply(WizardAction.BACK)
        return self.step

    # Draft editing

    def editable_rows(self, table: str) -> list:
        """The draft rows of ``table``, if the current step may edit them."""
        self._require_active()
        if EDITABLE_TABLES.get(self.step) != table:
            raise WizardStateError(f"Table {table} cannot be edited in step {self.step}")
        return self.draft.rows(table)

    def add_row(self, table: str, row=None):
        return editing.add_row(table, self.editable_rows(table), row)

    def update_row(self, table: str, index: int, **changes):
        return editing.update_row(table, self.editable_rows(table), index, **changes)

    def replace_row(self, table: str, index: int, new):
        return editing.replace_row(table, self.editable_rows(table), index, new)

    def delete_row(self, table: str, index: int):
        return editing.delete_row(table, self.editable_rows(table), index)

    # Commit

    def summary(self) -> dict[str, int]:
        """Row counts of the draft, as shown in REVIEW."""
        return self.draft.counts() if self.draft else {}

    def save(self) -> ValidationResult:
        """Persist the four draft tables in order, then validate the result.

        Tables are replaced roles -> issue types -> statuses -> link types so
        role codes exist before anything references them. A failing table
        stops the sequence; tables already written stay written.

        Raises:
            WizardStateError: If not in REVIEW
            PersistError: If a table could not be written
        """
        self._require_active()
        self._apply(WizardAction.SAVE)
        self.error = None

        for table in TABLES:
            try:
                self.store.replace_table(table, self.draft.rows(table))
            except Exception as e:
                failure = PersistError(table, str(e))
                logger.warning("Wizard commit stopped: %s", failure)
                self.error = str(failure)
                raise failure from e

        self.validation = safe_validate(self.store.get_configuration)
        logger.info(
            "Wizard configuration saved (%s); valid=%s",
            ", ".join(f"{n} {t}" for t, n in self.draft.counts().items()),
            self.validation.valid,
        )
        self.draft = None
        self.active = False
        return self.validation

    def to_dict(self) -> dict:
        data = {
            "step": self.step.value,
            "active": self.active,
            "canGoBack": self.can_go_back,
            "error": self.error,
            "validation": self.validation.to_dict() if self.validation else None,
            "draft": None,
            "counts": self.summary(),
        }
        if self.draft is not None:
            data["draft"] = self.draft.configuration().to_dict()
        return data
