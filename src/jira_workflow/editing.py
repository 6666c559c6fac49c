"""Local editing of mapping tables, shared by the wizard and the table editor."""

import logging
from dataclasses import fields, replace

from jira_workflow.exceptions import InvalidMappingError, PersistError
from jira_workflow.models import (
    NEUTRAL_ROLE_COLOR,
    STATUS_CATEGORY_COLORS,
    TABLES,
    BoardCategory,
    IssueTypeMapping,
    LinkCategory,
    LinkTypeMapping,
    Role,
    StatusCategory,
    StatusMapping,
    parse_enum,
)

logger = logging.getLogger(__name__)

_ENUM_FIELDS = {
    "board_category": BoardCategory,
    "issue_category": BoardCategory,
    "status_category": StatusCategory,
    "link_category": LinkCategory,
}


def _next_sort_order(rows: list) -> int:
    return max((row.sort_order for row in rows), default=0) + 1


def blank_row(table: str, rows: list):
    """A new, empty row for ``table``, ordered after the existing rows."""
    if table == "roles":
        return Role(
            code="",
            display_name="",
            color=NEUTRAL_ROLE_COLOR,
            sort_order=_next_sort_order(rows),
        )
    if table == "issueTypes":
        return IssueTypeMapping(jira_type_name="", board_category=BoardCategory.IGNORE)
    if table == "statuses":
        return StatusMapping(
            jira_status_name="",
            issue_category=BoardCategory.STORY,
            status_category=StatusCategory.NEW,
            sort_order=_next_sort_order(rows),
            color=STATUS_CATEGORY_COLORS[StatusCategory.NEW],
        )
    if table == "linkTypes":
        return LinkTypeMapping(jira_link_type_name="", link_category=LinkCategory.IGNORE)
    raise InvalidMappingError(f"Unknown table '{table}'")


def enforce_invariants(row):
    """Return ``row`` with its single-row invariants applied.

    Only SUBTASK issue types may carry a workflow role.
    """
    if isinstance(row, IssueTypeMapping) and row.board_category != BoardCategory.SUBTASK:
        if row.workflow_role_code is not None:
            return replace(row, workflow_role_code=None)
    return row


def reconcile(old, new):
    """Apply the side effects of editing ``old`` into ``new``.

    A status whose color was unset or still the default of its old status
    category follows the new category's default color.
    """
    if (
        isinstance(old, StatusMapping)
        and new.status_category != old.status_category
        and new.color == old.color
        and (not old.color or old.color == STATUS_CATEGORY_COLORS[old.status_category])
    ):
        new = replace(new, color=STATUS_CATEGORY_COLORS[new.status_category])
    return enforce_invariants(new)


def coerce_changes(row, changes: dict) -> dict:
    """Validate field names of ``changes`` against ``row`` and coerce enum values."""
    names = {f.name for f in fields(row)}
    unknown = sorted(set(changes) - names)
    if unknown:
        raise InvalidMappingError(
            f"Unknown field(s) for {type(row).__name__}: {', '.join(unknown)}"
        )
    return {
        name: parse_enum(_ENUM_FIELDS[name], value, name) if name in _ENUM_FIELDS else value
        for name, value in changes.items()
    }


def _check_index(table: str, rows: list, index: int) -> None:
    if not 0 <= index < len(rows):
        raise InvalidMappingError(f"No {table} row at index {index}")


def add_row(table: str, rows: list, row=None):
    """Append ``row`` (or a blank row) to ``rows`` and return it."""
    row = enforce_invariants(row if row is not None else blank_row(table, rows))
    rows.append(row)
    return row


def update_row(table: str, rows: list, index: int, **changes):
    """Change fields of the row at ``index`` in place and return the new row."""
    _check_index(table, rows, index)
    old = rows[index]
    return replace_row(table, rows, index, replace(old, **coerce_changes(old, changes)))


def replace_row(table: str, rows: list, index: int, new):
    """Swap the row at ``index`` for ``new``, applying edit side effects."""
    _check_index(table, rows, index)
    rows[index] = reconcile(rows[index], new)
    return rows[index]


def delete_row(table: str, rows: list, index: int):
    """Remove and return the row at ``index``.

    Deleting a role leaves mappings that reference its code untouched.
    """
    _check_index(table, rows, index)
    return rows.pop(index)


class TableEditor:
    """Edits one committed table locally, then saves only that table.

    Example:
        editor = TableEditor(store, "roles")
        editor.update(0, display_name="Analysis")
        editor.save()
    """

    def __init__(self, store, table: str) -> None:
        if table not in TABLES:
            raise InvalidMappingError(f"Unknown table '{table}'")
        self.store = store
        self.table = table
        self.rows: list = []
        self.dirty = False
        self.reload()

    def reload(self) -> None:
        """Discard local edits and load the committed table."""
        attr = TABLES[self.table][0]
        self.rows = list(getattr(self.store.get_configuration(), attr))
        self.dirty = False

    def add(self, row=None):
        self.dirty = True
        return add_row(self.table, self.rows, row)

    def update(self, index: int, **changes):
        row = update_row(self.table, self.rows, index, **changes)
        self.dirty = True
        return row

    def replace(self, index: int, new):
        row = replace_row(self.table, self.rows, index, new)
        self.dirty = True
        return row

    def delete(self, index: int):
        row = delete_row(self.table, self.rows, index)
        self.dirty = True
        return row

    def save(self) -> list:
        """Overwrite the committed table with the local rows.

        Raises:
            PersistError: If the store rejects the write
        """
        try:
            self.rows = self.store.replace_table(self.table, self.rows)
        except Exception as e:
            logger.warning("Saving %s failed: %s", self.table, e)
            raise PersistError(self.table, str(e)) from e
        self.dirty = False
        return self.rows
