"""Persistence of the workflow mapping tables in a TOML file."""

import contextlib
import logging
import os
import threading
import tomllib
from dataclasses import replace
from pathlib import Path

import tomli_w

from jira_workflow.models import (
    TABLES,
    IssueTypeMapping,
    LinkTypeMapping,
    Role,
    StatusMapping,
    WorkflowConfiguration,
    rows_from_dicts,
)

logger = logging.getLogger(__name__)


def _toml_row(row) -> dict:
    # TOML has no null; absent keys read back as None
    return {key: value for key, value in row.to_dict().items() if value is not None}


class ConfigurationStore:
    """The committed configuration: four independently replaceable tables.

    Replacing a table rewrites the file through a temporary file and
    ``os.replace``, so a reader sees either the old table or the new one,
    never a mix. No atomicity is offered across tables.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read(self) -> dict:
        if not self.path.exists():
            return {}
        with open(self.path, "rb") as f:
            return tomllib.load(f)

    def _write(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            with open(tmp, "wb") as f:
                tomli_w.dump(data, f)
            os.replace(tmp, self.path)
        except BaseException:
            with contextlib.suppress(OSError):
                tmp.unlink()
            raise

    def get_configuration(self) -> WorkflowConfiguration:
        """Read all four tables."""
        with self._lock:
            data = self._read()
        tables = {
            attr: rows_from_dicts(table, data.get(table, []))
            for table, (attr, _) in TABLES.items()
        }
        return WorkflowConfiguration(**tables)

    def replace_table(self, table: str, rows: list) -> list:
        """Overwrite one table entirely and return the stored rows.

        Identities are reassigned as 1..n in row order; the other tables
        are left untouched.
        """
        if table not in TABLES:
            raise KeyError(f"Unknown table '{table}'")
        stored = [replace(row, id=index) for index, row in enumerate(rows, start=1)]
        with self._lock:
            data = self._read()
            data[table] = [_toml_row(row) for row in stored]
            self._write(data)
        logger.info("Replaced %s table with %d rows", table, len(stored))
        return stored

    def replace_roles(self, roles: list[Role]) -> list[Role]:
        return self.replace_table("roles", roles)

    def replace_issue_types(self, issue_types: list[IssueTypeMapping]) -> list[IssueTypeMapping]:
        return self.replace_table("issueTypes", issue_types)

    def replace_statuses(self, statuses: list[StatusMapping]) -> list[StatusMapping]:
        return self.replace_table("statuses", statuses)

    def replace_link_types(self, link_types: list[LinkTypeMapping]) -> list[LinkTypeMapping]:
        return self.replace_table("linkTypes", link_types)
