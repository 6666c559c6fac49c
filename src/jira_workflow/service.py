"""Workflow configuration operations exposed to callers."""

import logging

from jira_workflow.classification import (
    CANONICAL_ROLES,
    subtask_role_codes,
    suggest_status_mapping,
)
from jira_workflow.config import config_exists, get_store_path, load_config
from jira_workflow.editing import TableEditor, enforce_invariants
from jira_workflow.exceptions import (
    ConfigNotFoundError,
    InvalidConfigError,
    InvalidMappingError,
    PersistError,
)
from jira_workflow.jira_client import JiraClient
from jira_workflow.models import (
    ISSUE_CATEGORIES,
    TABLES,
    AutoDetectResult,
    BoardCategory,
    IssueTypeMapping,
    JiraIssueType,
    JiraLinkType,
    JiraStatusesByType,
    LinkTypeMapping,
    Role,
    StatusMapping,
    ValidationResult,
    WorkflowConfiguration,
)
from jira_workflow.store import ConfigurationStore
from jira_workflow.taxonomy import TaxonomySource, as_fetch_error, fetch_taxonomy
from jira_workflow.validation import safe_validate
from jira_workflow.wizard import WizardDraft, WizardSession

logger = logging.getLogger(__name__)


class WorkflowConfigService:
    """Reads, replaces, validates and auto-detects the workflow configuration."""

    def __init__(self, source: TaxonomySource, store: ConfigurationStore) -> None:
        self.source = source
        self.store = store

    def get_configuration(self) -> WorkflowConfiguration:
        return self.store.get_configuration()

    def is_configured(self) -> bool:
        """True once at least one role or issue type mapping is committed."""
        config = self.store.get_configuration()
        return bool(config.roles or config.issue_types)

    def replace_table(self, table: str, rows: list) -> list:
        """Overwrite one committed table; the other three are untouched.

        Rows are stored with their single-row invariants applied.
        """
        if table not in TABLES:
            raise InvalidMappingError(f"Unknown table '{table}'")
        rows = [enforce_invariants(row) for row in rows]
        try:
            return self.store.replace_table(table, rows)
        except Exception as e:
            logger.warning("Replacing %s failed: %s", table, e)
            raise PersistError(table, str(e)) from e

    def replace_roles(self, roles: list[Role]) -> list[Role]:
        return self.replace_table("roles", roles)

    def replace_issue_types(self, issue_types: list[IssueTypeMapping]) -> list[IssueTypeMapping]:
        return self.replace_table("issueTypes", issue_types)

    def replace_statuses(self, statuses: list[StatusMapping]) -> list[StatusMapping]:
        return self.replace_table("statuses", statuses)

    def replace_link_types(self, link_types: list[LinkTypeMapping]) -> list[LinkTypeMapping]:
        return self.replace_table("linkTypes", link_types)

    def _read_source(self, query):
        try:
            return query()
        except Exception as e:
            raise as_fetch_error(e) from e

    def jira_issue_types(self) -> list[JiraIssueType]:
        return self._read_source(self.source.list_issue_types)

    def jira_statuses(self) -> list[JiraStatusesByType]:
        return self._read_source(self.source.list_statuses_by_issue_type)

    def jira_link_types(self) -> list[JiraLinkType]:
        return self._read_source(self.source.list_link_types)

    def validate(self) -> ValidationResult:
        """Validate the committed configuration. Never raises."""
        return safe_validate(self.store.get_configuration)

    def edit_table(self, table: str) -> TableEditor:
        """Open one committed table for local editing outside the wizard."""
        return TableEditor(self.store, table)

    def start_wizard(self) -> WizardSession:
        """Start a wizard session; check ``session.error`` for a failed fetch."""
        session = WizardSession(self.source, self.store)
        session.start()
        return session

    def run_auto_detect(self) -> AutoDetectResult:
        """Fetch metadata and commit the suggestions without human review.

        Tables are replaced in the same order as a wizard commit.

        Raises:
            MetadataFetchError: If the metadata could not be fetched
            PersistError: If a table could not be written
        """
        logger.info("Starting auto-detection of workflow configuration from JIRA")
        taxonomy = fetch_taxonomy(self.source)
        draft = WizardDraft.from_taxonomy(taxonomy)

        warnings: list[str] = []
        if not taxonomy.issue_types:
            warnings.append("No issue types returned from JIRA; check project configuration")
        if not subtask_role_codes(draft.issue_types):
            warnings.append(
                "No role-specific subtask types found; using default "
                f"{'/'.join(CANONICAL_ROLES)} roles"
            )

        for table in TABLES:
            self.replace_table(table, draft.rows(table))

        result = AutoDetectResult(
            issue_type_count=len(draft.issue_types),
            role_count=len(draft.roles),
            status_mapping_count=len(draft.statuses),
            link_type_count=len(draft.link_types),
            warnings=warnings,
        )
        logger.info(
            "Auto-detection complete: %d issue types, %d roles, %d status mappings, "
            "%d link types. Warnings: %d",
            result.issue_type_count,
            result.role_count,
            result.status_mapping_count,
            result.link_type_count,
            len(warnings),
        )
        return result

    def detect_statuses_for_issue_type(
        self, jira_type_name: str, board_category: BoardCategory
    ) -> int:
        """Add suggested mappings for the statuses of one issue type.

        Statuses already mapped under ``board_category`` are skipped; new
        rows are ordered after the category's current last row. Returns
        the number of rows added.
        """
        if board_category not in ISSUE_CATEGORIES:
            raise InvalidMappingError(f"Cannot detect statuses for category {board_category}")
        groups = self._read_source(self.source.list_statuses_by_issue_type)
        statuses = next(
            (g.statuses for g in groups if g.issue_type_name == jira_type_name), []
        )

        config = self.store.get_configuration()
        existing = [s for s in config.statuses if s.issue_category == board_category]
        mapped_names = {s.jira_status_name for s in existing}
        sort_order = max((s.sort_order for s in existing), default=0)

        added: list[StatusMapping] = []
        for status in statuses:
            if status.name in mapped_names:
                continue
            sort_order += 1
            added.append(suggest_status_mapping(status, board_category, sort_order))
            mapped_names.add(status.name)

        if added:
            self.replace_table("statuses", config.statuses + added)
            logger.info(
                "Detected %d new status mappings for type '%s' (category=%s)",
                len(added), jira_type_name, board_category,
            )
        return len(added)


def build_service() -> WorkflowConfigService:
    """Build a service from ~/.jira-workflow/config.toml.

    Raises:
        ConfigNotFoundError: If config file not found
        InvalidConfigError: If config is invalid
    """
    if not config_exists():
        raise ConfigNotFoundError(
            "Configuration not found. Create ~/.jira-workflow/config.toml to set up."
        )

    try:
        config = load_config()
    except ValueError as e:
        raise InvalidConfigError(f"Invalid configuration: {e}")

    return WorkflowConfigService(JiraClient(config), ConfigurationStore(get_store_path(config)))
