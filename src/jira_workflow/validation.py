"""Validation of workflow configurations for consistency and completeness."""

import logging
from collections import Counter

from jira_workflow.models import (
    ISSUE_CATEGORIES,
    BoardCategory,
    IssueTypeMapping,
    LinkTypeMapping,
    Role,
    StatusCategory,
    StatusMapping,
    ValidationResult,
    WorkflowConfiguration,
)

logger = logging.getLogger(__name__)


def _duplicates(keys) -> list:
    counts = Counter(keys)
    return [key for key, count in counts.items() if count > 1]


def _validate_roles(roles: list[Role], errors: list[str], warnings: list[str]) -> None:
    if not roles:
        errors.append("At least one workflow role is required")
        return

    default_count = sum(1 for role in roles if role.is_default)
    if default_count == 0:
        warnings.append("No role is marked as default")
    elif default_count > 1:
        warnings.append("Multiple roles are marked as default; only the first will be used")

    if any(not role.code or not role.code.strip() for role in roles):
        errors.append("Role code cannot be empty")

    for code in _duplicates(role.code.upper() for role in roles if role.code):
        errors.append(f"Duplicate role code: {code}")

    for order in _duplicates(role.sort_order for role in roles):
        warnings.append(f"Duplicate role sort order: {order}")


def _validate_issue_types(
    issue_types: list[IssueTypeMapping],
    role_codes: set[str],
    errors: list[str],
    warnings: list[str],
) -> None:
    if not issue_types:
        errors.append("At least one issue type mapping is required")
        return

    for name in _duplicates(t.jira_type_name for t in issue_types):
        errors.append(f"Duplicate issue type mapping: '{name}'")

    used = {t.board_category for t in issue_types}
    for category in (BoardCategory.EPIC, BoardCategory.STORY):
        if category not in used:
            warnings.append(f"No issue type is mapped to {category}")

    for mapping in issue_types:
        if mapping.board_category != BoardCategory.SUBTASK:
            continue
        if not mapping.workflow_role_code:
            errors.append(
                f"SUBTASK type '{mapping.jira_type_name}' has no workflow role assigned"
            )
        elif mapping.workflow_role_code not in role_codes:
            errors.append(
                f"SUBTASK type '{mapping.jira_type_name}' references unknown role: "
                f"{mapping.workflow_role_code}"
            )


def _validate_statuses(
    statuses: list[StatusMapping],
    issue_types: list[IssueTypeMapping],
    role_codes: set[str],
    errors: list[str],
    warnings: list[str],
) -> None:
    if not statuses:
        warnings.append("No status mappings configured")

    for name, category in _duplicates(s.key for s in statuses):
        errors.append(f"Duplicate status mapping: '{name}' for {category}")

    for status in statuses:
        if not 0 <= status.score_weight <= 100:
            errors.append(
                f"Status '{status.jira_status_name}' ({status.issue_category}) has score "
                f"weight {status.score_weight} outside 0..100"
            )
        if status.workflow_role_code and status.workflow_role_code not in role_codes:
            warnings.append(
                f"Status '{status.jira_status_name}' ({status.issue_category}) references "
                f"unknown role: {status.workflow_role_code}"
            )

    # A board category without a terminal status can never report completion
    mapped_categories = {t.board_category for t in issue_types}
    done_categories = {
        s.issue_category for s in statuses if s.status_category == StatusCategory.DONE
    }
    for category in ISSUE_CATEGORIES:
        if category in mapped_categories and category not in done_categories:
            warnings.append(f"Category {category} has no DONE status mapped")


def _validate_link_types(
    link_types: list[LinkTypeMapping], errors: list[str], warnings: list[str]
) -> None:
    if not link_types:
        warnings.append("No link type mappings configured")

    for name in _duplicates(lt.jira_link_type_name for lt in link_types):
        errors.append(f"Duplicate link type mapping: '{name}'")


def validate_configuration(config: WorkflowConfiguration) -> ValidationResult:
    """Check a configuration; never modifies it.

    The result is valid if and only if no errors were found; warnings
    alone do not invalidate a configuration.
    """
    errors: list[str] = []
    warnings: list[str] = []
    role_codes = {role.code for role in config.roles}

    _validate_roles(config.roles, errors, warnings)
    _validate_issue_types(config.issue_types, role_codes, errors, warnings)
    _validate_statuses(config.statuses, config.issue_types, role_codes, errors, warnings)
    _validate_link_types(config.link_types, errors, warnings)

    return ValidationResult.from_issues(errors, warnings)


def safe_validate(load_configuration) -> ValidationResult:
    """Load and validate a configuration, degrading any failure to an invalid result.

    Args:
        load_configuration: Zero-argument callable returning the
            ``WorkflowConfiguration`` to check
    """
    try:
        return validate_configuration(load_configuration())
    except Exception as e:
        logger.exception("Validation failed")
        return ValidationResult(valid=False, errors=[f"Validation failed: {e}"])
