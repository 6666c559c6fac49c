"""Suggesting workflow mappings from JIRA metadata.

Every suggestion is a case-insensitive keyword match against the ordered
rule tables below; the first matching rule wins. The functions are pure:
the same metadata always yields the same suggestions.
"""

from dataclasses import dataclass

from jira_workflow.models import (
    NEUTRAL_ROLE_COLOR,
    STATUS_CATEGORY_COLORS,
    BoardCategory,
    IssueTypeMapping,
    JiraIssueType,
    JiraLinkType,
    JiraStatus,
    JiraStatusesByType,
    LinkCategory,
    LinkTypeMapping,
    Role,
    StatusCategory,
    StatusMapping,
)


@dataclass(frozen=True)
class MatchRule:
    """Yields ``value`` for names containing any of ``contains`` or equal to any of ``equals``."""

    value: object
    contains: tuple[str, ...] = ()
    equals: tuple[str, ...] = ()

    def matches(self, lower_name: str) -> bool:
        return lower_name in self.equals or any(term in lower_name for term in self.contains)


def first_match(rules: tuple[MatchRule, ...], name: str, default=None):
    """Return the value of the first rule matching ``name``, else ``default``."""
    lower = name.lower()
    for rule in rules:
        if rule.matches(lower):
            return rule.value
    return default


# Roles

SUBTASK_ROLE_RULES = (
    MatchRule(
        "SA",
        contains=("аналитик", "анализ", "analy", "requirement", "требовани", "sa "),
        equals=("sa",),
    ),
    MatchRule(
        "QA",
        contains=("тестирован", "тест", "test", "qa ", "quality"),
        equals=("qa",),
    ),
)
FALLBACK_SUBTASK_ROLE = "DEV"

CANONICAL_ROLES = ("SA", "DEV", "QA")


@dataclass(frozen=True)
class RoleTemplate:
    display_name: str
    color: str
    sort_order: int
    is_default: bool = False


ROLE_TEMPLATES: dict[str, RoleTemplate] = {
    "SA": RoleTemplate("System Analysis", "#1868DB", 1),
    "DEV": RoleTemplate("Development", "#1F845A", 2, is_default=True),
    "QA": RoleTemplate("Quality Assurance", "#227D9B", 3),
}
UNKNOWN_ROLE_SORT_ORDER = 10

# Issue types (checked only for non-subtask types)

ISSUE_TYPE_RULES = (
    MatchRule(BoardCategory.EPIC, contains=("epic", "эпик")),
    MatchRule(
        BoardCategory.STORY,
        contains=("story", "bug", "task"),
        equals=("история", "баг", "задача"),
    ),
)

# Statuses

TRACKER_CATEGORIES: dict[str, StatusCategory] = {
    "new": StatusCategory.NEW,
    "indeterminate": StatusCategory.IN_PROGRESS,
    "in-progress": StatusCategory.IN_PROGRESS,
    "done": StatusCategory.DONE,
}

EPIC_STATUS_RULES = (
    MatchRule(StatusCategory.REQUIREMENTS, contains=("requirement", "требовани")),
    MatchRule(StatusCategory.PLANNED, contains=("plan", "заплан")),
)

EPIC_STATUS_WEIGHTS: dict[StatusCategory, int] = {
    StatusCategory.REQUIREMENTS: 25,
    StatusCategory.PLANNED: 50,
    StatusCategory.IN_PROGRESS: 75,
}

STATUS_ROLE_RULES = (
    MatchRule("SA", contains=("analy", "анализ", "requirement", "требовани")),
    MatchRule("DEV", contains=("develop", "разработ", "coding", "implement")),
    MatchRule("QA", contains=("test", "тестирован", "qa", "review")),
)

STATUS_ROLE_WEIGHTS: dict[str, int] = {"SA": 25, "DEV": 50, "QA": 75}
UNASSIGNED_STATUS_WEIGHT = 50

NEW_WEIGHT = 0
DONE_WEIGHT = 100

# Source issue-type category -> issue categories its statuses are mapped under.
# Stories host subtasks, so their statuses also seed the SUBTASK category.
STATUS_TARGETS: dict[BoardCategory, tuple[BoardCategory, ...]] = {
    BoardCategory.EPIC: (BoardCategory.EPIC,),
    BoardCategory.STORY: (BoardCategory.STORY, BoardCategory.SUBTASK),
    BoardCategory.SUBTASK: (BoardCategory.SUBTASK,),
}

# Link types

LINK_TYPE_RULES = (
    MatchRule(LinkCategory.BLOCKS, contains=("block",)),
    MatchRule(LinkCategory.RELATED, contains=("relat", "связ")),
)


def guess_role_from_subtask(name: str) -> str:
    """Guess the role code of a subtask type from its name. Falls back to DEV."""
    return first_match(SUBTASK_ROLE_RULES, name, FALLBACK_SUBTASK_ROLE)


def classify_issue_type(issue_type: JiraIssueType) -> IssueTypeMapping:
    """Suggest a board category (and role, for subtasks) for one issue type."""
    if issue_type.is_subtask:
        return IssueTypeMapping(
            jira_type_name=issue_type.name,
            board_category=BoardCategory.SUBTASK,
            workflow_role_code=guess_role_from_subtask(issue_type.name),
        )
    return IssueTypeMapping(
        jira_type_name=issue_type.name,
        board_category=first_match(ISSUE_TYPE_RULES, issue_type.name, BoardCategory.IGNORE),
    )


def suggest_issue_types(issue_types: list[JiraIssueType]) -> list[IssueTypeMapping]:
    """Suggest one mapping per tracker issue type, in input order."""
    return [classify_issue_type(issue_type) for issue_type in issue_types]


def build_role(code: str) -> Role:
    """Build a role from its template, or a generic one for unknown codes."""
    template = ROLE_TEMPLATES.get(code)
    if template is None:
        return Role(
            code=code,
            display_name=code,
            color=NEUTRAL_ROLE_COLOR,
            sort_order=UNKNOWN_ROLE_SORT_ORDER,
        )
    return Role(
        code=code,
        display_name=template.display_name,
        color=template.color,
        sort_order=template.sort_order,
        is_default=template.is_default,
    )


def subtask_role_codes(issue_types: list[IssueTypeMapping]) -> list[str]:
    """Distinct role codes used by SUBTASK mappings, in first-seen order."""
    codes: dict[str, None] = {}
    for mapping in issue_types:
        if mapping.board_category == BoardCategory.SUBTASK and mapping.workflow_role_code:
            codes.setdefault(mapping.workflow_role_code)
    return list(codes)


def suggest_roles_from_issue_types(suggested_types: list[IssueTypeMapping]) -> list[Role]:
    """Suggest roles for the subtask role codes in use.

    Never returns an empty list: without any subtask role the canonical
    SA/DEV/QA set is suggested.
    """
    codes = subtask_role_codes(suggested_types) or list(CANONICAL_ROLES)
    return sorted((build_role(code) for code in codes), key=lambda role: role.sort_order)


def classify_status(
    status_name: str, tracker_category: str | None, issue_category: BoardCategory
) -> tuple[StatusCategory, str | None, int]:
    """Infer ``(status category, role code, score weight)`` for one status row."""
    category = TRACKER_CATEGORIES.get((tracker_category or "").lower(), StatusCategory.NEW)

    if category == StatusCategory.NEW:
        return StatusCategory.NEW, None, NEW_WEIGHT
    if category == StatusCategory.DONE:
        return StatusCategory.DONE, None, DONE_WEIGHT

    if issue_category == BoardCategory.EPIC:
        epic_category = first_match(EPIC_STATUS_RULES, status_name, StatusCategory.IN_PROGRESS)
        return epic_category, None, EPIC_STATUS_WEIGHTS[epic_category]

    role = first_match(STATUS_ROLE_RULES, status_name)
    weight = STATUS_ROLE_WEIGHTS[role] if role else UNASSIGNED_STATUS_WEIGHT
    return StatusCategory.IN_PROGRESS, role, weight


def suggest_status_mapping(
    status: JiraStatus, issue_category: BoardCategory, sort_order: int
) -> StatusMapping:
    """Suggest the mapping of one tracker status under one issue category."""
    status_category, role, weight = classify_status(
        status.name, status.tracker_category, issue_category
    )
    return StatusMapping(
        jira_status_name=status.name,
        issue_category=issue_category,
        status_category=status_category,
        workflow_role_code=role,
        sort_order=sort_order,
        score_weight=weight,
        color=STATUS_CATEGORY_COLORS[status_category],
    )


def suggest_statuses(
    statuses_by_type: list[JiraStatusesByType],
    suggested_issue_types: list[IssueTypeMapping],
) -> list[StatusMapping]:
    """Suggest status mappings for every non-ignored issue type.

    Each ``(status name, issue category)`` pair is emitted at most once,
    even when several issue types share the status. ``sort_order`` is the
    1-based emission index.
    """
    category_by_type = {t.jira_type_name: t.board_category for t in suggested_issue_types}

    result: list[StatusMapping] = []
    seen: set[tuple[str, BoardCategory]] = set()
    for group in statuses_by_type:
        source_category = category_by_type.get(group.issue_type_name)
        if source_category is None or source_category == BoardCategory.IGNORE:
            continue
        for status in group.statuses:
            for issue_category in STATUS_TARGETS[source_category]:
                key = (status.name, issue_category)
                if key in seen:
                    continue
                seen.add(key)
                result.append(suggest_status_mapping(status, issue_category, len(result) + 1))
    return result


def suggest_link_types(link_types: list[JiraLinkType]) -> list[LinkTypeMapping]:
    """Suggest a dependency category for each link type."""
    return [
        LinkTypeMapping(
            jira_link_type_name=lt.name,
            link_category=first_match(LINK_TYPE_RULES, lt.name, LinkCategory.IGNORE),
        )
        for lt in link_types
    ]
