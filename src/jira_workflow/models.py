"""Data models for JIRA Workflow configuration."""

from dataclasses import asdict, dataclass, field
from enum import StrEnum

from jira_workflow.exceptions import InvalidMappingError


class BoardCategory(StrEnum):
    """How a tracker issue type participates in the board hierarchy."""

    EPIC = "EPIC"
    STORY = "STORY"
    SUBTASK = "SUBTASK"
    IGNORE = "IGNORE"


class StatusCategory(StrEnum):
    """Coarse lifecycle bucket of a status mapping."""

    NEW = "NEW"
    REQUIREMENTS = "REQUIREMENTS"
    PLANNED = "PLANNED"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"


class LinkCategory(StrEnum):
    """Dependency category of a tracker link type."""

    BLOCKS = "BLOCKS"
    RELATED = "RELATED"
    IGNORE = "IGNORE"


# Board categories that carry statuses (IGNORE never does)
ISSUE_CATEGORIES = (BoardCategory.EPIC, BoardCategory.STORY, BoardCategory.SUBTASK)

STATUS_CATEGORY_COLORS: dict[StatusCategory, str] = {
    StatusCategory.NEW: "#DFE1E6",
    StatusCategory.REQUIREMENTS: "#E6FCFF",
    StatusCategory.PLANNED: "#EAE6FF",
    StatusCategory.IN_PROGRESS: "#DEEBFF",
    StatusCategory.DONE: "#E3FCEF",
}

NEUTRAL_ROLE_COLOR = "#6B778C"


def parse_enum(enum_cls, value, field_name: str):
    """Coerce ``value`` to ``enum_cls``, raising InvalidMappingError if unknown."""
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise InvalidMappingError(
            f"Invalid {field_name} {value!r}; expected one of: {allowed}"
        ) from None


def _required(data: dict, key: str):
    if key not in data or data[key] is None:
        raise InvalidMappingError(f"Missing required field '{key}'")
    return data[key]


@dataclass
class Role:
    """A named phase of work (analysis, development, testing...)."""

    code: str
    display_name: str
    color: str
    sort_order: int
    is_default: bool = False
    id: int | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "displayName": self.display_name,
            "color": self.color,
            "sortOrder": self.sort_order,
            "isDefault": self.is_default,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Role":
        return cls(
            id=data.get("id"),
            code=str(_required(data, "code")),
            display_name=str(data.get("displayName", "")),
            color=str(data.get("color", NEUTRAL_ROLE_COLOR)),
            sort_order=int(data.get("sortOrder", 0)),
            is_default=bool(data.get("isDefault", False)),
        )


@dataclass
class IssueTypeMapping:
    """Maps a tracker issue type onto a board category."""

    jira_type_name: str
    board_category: BoardCategory
    workflow_role_code: str | None = None  # only meaningful for SUBTASK
    id: int | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "jiraTypeName": self.jira_type_name,
            "boardCategory": self.board_category.value,
            "workflowRoleCode": self.workflow_role_code,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "IssueTypeMapping":
        return cls(
            id=data.get("id"),
            jira_type_name=str(_required(data, "jiraTypeName")),
            board_category=parse_enum(
                BoardCategory, _required(data, "boardCategory"), "boardCategory"
            ),
            workflow_role_code=data.get("workflowRoleCode") or None,
        )


@dataclass
class StatusMapping:
    """Maps a tracker status, within one issue category, onto a status category.

    The key is ``(jira_status_name, issue_category)``: the same tracker
    status may be mapped once per issue category.
    """

    jira_status_name: str
    issue_category: BoardCategory
    status_category: StatusCategory
    workflow_role_code: str | None = None
    sort_order: int = 0
    score_weight: int = 0  # 0..100
    color: str | None = None
    id: int | None = None

    @property
    def key(self) -> tuple[str, BoardCategory]:
        return (self.jira_status_name, self.issue_category)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "jiraStatusName": self.jira_status_name,
            "issueCategory": self.issue_category.value,
            "statusCategory": self.status_category.value,
            "workflowRoleCode": self.workflow_role_code,
            "sortOrder": self.sort_order,
            "scoreWeight": self.score_weight,
            "color": self.color,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "StatusMapping":
        return cls(
            id=data.get("id"),
            jira_status_name=str(_required(data, "jiraStatusName")),
            issue_category=parse_enum(
                BoardCategory, _required(data, "issueCategory"), "issueCategory"
            ),
            status_category=parse_enum(
                StatusCategory, _required(data, "statusCategory"), "statusCategory"
            ),
            workflow_role_code=data.get("workflowRoleCode") or None,
            sort_order=int(data.get("sortOrder", 0)),
            score_weight=int(data.get("scoreWeight", 0)),
            color=data.get("color") or None,
        )


@dataclass
class LinkTypeMapping:
    """Maps a tracker link type onto a dependency category."""

    jira_link_type_name: str
    link_category: LinkCategory
    id: int | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "jiraLinkTypeName": self.jira_link_type_name,
            "linkCategory": self.link_category.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LinkTypeMapping":
        return cls(
            id=data.get("id"),
            jira_link_type_name=str(_required(data, "jiraLinkTypeName")),
            link_category=parse_enum(
                LinkCategory, _required(data, "linkCategory"), "linkCategory"
            ),
        )


@dataclass
class WorkflowConfiguration:
    """The four mapping tables, as committed or as drafted."""

    roles: list[Role] = field(default_factory=list)
    issue_types: list[IssueTypeMapping] = field(default_factory=list)
    statuses: list[StatusMapping] = field(default_factory=list)
    link_types: list[LinkTypeMapping] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "roles": [r.to_dict() for r in self.roles],
            "issueTypes": [t.to_dict() for t in self.issue_types],
            "statuses": [s.to_dict() for s in self.statuses],
            "linkTypes": [lt.to_dict() for lt in self.link_types],
        }


# Table name -> (attribute on WorkflowConfiguration, row class).
# Also the order in which a full commit must persist them.
TABLES: dict[str, tuple[str, type]] = {
    "roles": ("roles", Role),
    "issueTypes": ("issue_types", IssueTypeMapping),
    "statuses": ("statuses", StatusMapping),
    "linkTypes": ("link_types", LinkTypeMapping),
}


def rows_from_dicts(table: str, items: list) -> list:
    """Parse a list of JSON-style row dicts for ``table``."""
    if table not in TABLES:
        raise InvalidMappingError(f"Unknown table '{table}'")
    if not isinstance(items, list):
        raise InvalidMappingError(f"Expected a list of {table} rows")
    row_cls = TABLES[table][1]
    rows = []
    for item in items:
        if not isinstance(item, dict):
            raise InvalidMappingError(f"Expected an object for each {table} row")
        try:
            rows.append(row_cls.from_dict(item))
        except (TypeError, ValueError) as e:
            raise InvalidMappingError(f"Invalid {table} row: {e}") from e
    return rows


@dataclass
class ValidationResult:
    """Outcome of validating a configuration. ``valid`` iff no errors."""

    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @classmethod
    def from_issues(cls, errors: list[str], warnings: list[str]) -> "ValidationResult":
        return cls(valid=not errors, errors=list(errors), warnings=list(warnings))

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class AutoDetectResult:
    """Summary of a one-shot auto-detect run."""

    issue_type_count: int
    role_count: int
    status_mapping_count: int
    link_type_count: int
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "issueTypeCount": self.issue_type_count,
            "roleCount": self.role_count,
            "statusMappingCount": self.status_mapping_count,
            "linkTypeCount": self.link_type_count,
            "warnings": list(self.warnings),
        }


# Raw tracker metadata


@dataclass
class JiraIssueType:
    """An issue type as reported by the tracker."""

    id: str
    name: str
    is_subtask: bool = False
    description: str | None = None


@dataclass
class JiraStatus:
    """A status of an issue type, with the tracker's own category key."""

    name: str
    untranslated_name: str | None = None
    tracker_category: str | None = None  # "new" | "indeterminate" | "done" | None


@dataclass
class JiraStatusesByType:
    """The statuses reachable by one issue type."""

    issue_type_name: str
    statuses: list[JiraStatus] = field(default_factory=list)


@dataclass
class JiraLinkType:
    """A link type with its inward/outward phrasing."""

    id: str
    name: str
    inward_phrase: str = ""
    outward_phrase: str = ""


@dataclass
class Taxonomy:
    """The three metadata lists fetched from the tracker together."""

    issue_types: list[JiraIssueType]
    statuses_by_type: list[JiraStatusesByType]
    link_types: list[JiraLinkType]
