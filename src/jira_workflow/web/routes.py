"""HTTP route handlers for the JIRA Workflow configuration API."""

from dataclasses import asdict

from flask import Blueprint, abort, current_app, jsonify, request

from jira_workflow.config import config_exists
from jira_workflow.exceptions import (
    ConfigNotFoundError,
    InvalidConfigError,
    InvalidMappingError,
    JiraAuthError,
    JiraRateLimitError,
    MetadataFetchError,
    PersistError,
    WizardStateError,
    WorkflowConfigError,
)
from jira_workflow.models import BoardCategory, parse_enum, rows_from_dicts
from jira_workflow.service import WorkflowConfigService, build_service
from jira_workflow.wizard import WizardSession

bp = Blueprint("main", __name__)

# URL segment -> table name
TABLE_SLUGS = {
    "roles": "roles",
    "issue-types": "issueTypes",
    "statuses": "statuses",
    "link-types": "linkTypes",
}

# Checked in order, so subclasses come before their bases
ERROR_STATUS_CODES: list[tuple[type, int]] = [
    (ConfigNotFoundError, 503),
    (InvalidConfigError, 503),
    (InvalidMappingError, 400),
    (JiraAuthError, 401),
    (JiraRateLimitError, 429),
    (MetadataFetchError, 503),
    (WizardStateError, 409),
    (PersistError, 500),
]


def _state() -> dict:
    return current_app.extensions["jira_workflow"]


def _service() -> WorkflowConfigService:
    state = _state()
    if state["service"] is None:
        state["service"] = build_service()
    return state["service"]


def _wizard() -> WizardSession:
    wizard = _state()["wizard"]
    if wizard is None:
        raise WizardStateError("No wizard session in progress")
    return wizard


def _table(slug: str) -> str:
    if slug not in TABLE_SLUGS:
        abort(404)
    return TABLE_SLUGS[slug]


def _json_body(default=None):
    data = request.get_json(silent=True)
    if data is None:
        if default is not None:
            return default
        raise InvalidMappingError("Request body must be JSON")
    return data


@bp.errorhandler(WorkflowConfigError)
def handle_workflow_error(e: WorkflowConfigError):
    """Render package errors as JSON with a matching status code."""
    status = next(
        (code for exc_cls, code in ERROR_STATUS_CODES if isinstance(e, exc_cls)), 500
    )
    body = {"error": str(e)}
    if isinstance(e, PersistError):
        body["table"] = e.table
    return jsonify(body), status


@bp.route("/health")
def health():
    """Health check endpoint."""
    if _state()["service"] is not None or config_exists():
        return jsonify({"status": "ok", "config_loaded": True})
    return jsonify({
        "status": "error",
        "config_loaded": False,
        "message": "Configuration not found",
    }), 503


# Committed configuration


@bp.route("/api/workflow-config")
def get_config():
    return jsonify(_service().get_configuration().to_dict())


@bp.route("/api/workflow-config/status")
def config_status():
    return jsonify({"configured": _service().is_configured()})


@bp.route("/api/workflow-config/<slug>", methods=["PUT"])
def replace_table(slug):
    """Overwrite one table with the rows in the request body."""
    table = _table(slug)
    rows = rows_from_dicts(table, _json_body())
    stored = _service().replace_table(table, rows)
    return jsonify([row.to_dict() for row in stored])


@bp.route("/api/workflow-config/validate", methods=["POST"])
def validate():
    return jsonify(_service().validate().to_dict())


@bp.route("/api/workflow-config/auto-detect", methods=["POST"])
def auto_detect():
    return jsonify(_service().run_auto_detect().to_dict())


@bp.route("/api/workflow-config/issue-types/<path:type_name>/detect-statuses", methods=["POST"])
def detect_statuses(type_name):
    """Map the statuses of one issue type under its (or the given) board category."""
    service = _service()
    body = _json_body(default={})
    category = body.get("boardCategory")
    if category is None:
        mapping = next(
            (t for t in service.get_configuration().issue_types if t.jira_type_name == type_name),
            None,
        )
        if mapping is None:
            raise InvalidMappingError(f"Issue type '{type_name}' is not mapped")
        category = mapping.board_category
    board_category = parse_enum(BoardCategory, category, "boardCategory")

    added = service.detect_statuses_for_issue_type(type_name, board_category)
    return jsonify({"added": added, "boardCategory": board_category.value})


# Raw JIRA metadata


@bp.route("/api/jira-metadata/issue-types")
def jira_issue_types():
    return jsonify([asdict(t) for t in _service().jira_issue_types()])


@bp.route("/api/jira-metadata/statuses")
def jira_statuses():
    return jsonify([asdict(g) for g in _service().jira_statuses()])


@bp.route("/api/jira-metadata/link-types")
def jira_link_types():
    return jsonify([asdict(lt) for lt in _service().jira_link_types()])


# Wizard


@bp.route("/api/wizard", methods=["POST"])
def wizard_start():
    """Start a new wizard session, replacing any previous one."""
    wizard = _service().start_wizard()
    _state()["wizard"] = wizard
    return jsonify(wizard.to_dict())


@bp.route("/api/wizard")
def wizard_get():
    return jsonify(_wizard().to_dict())


@bp.route("/api/wizard/retry", methods=["POST"])
def wizard_retry():
    wizard = _wizard()
    wizard.retry_fetch()
    return jsonify(wizard.to_dict())


@bp.route("/api/wizard/advance", methods=["POST"])
def wizard_advance():
    wizard = _wizard()
    wizard.advance()
    return jsonify(wizard.to_dict())


@bp.route("/api/wizard/back", methods=["POST"])
def wizard_back():
    wizard = _wizard()
    wizard.back()
    return jsonify(wizard.to_dict())


@bp.route("/api/wizard/cancel", methods=["POST"])
def wizard_cancel():
    wizard = _wizard()
    wizard.cancel()
    _state()["wizard"] = None
    return jsonify(wizard.to_dict())


@bp.route("/api/wizard/save", methods=["POST"])
def wizard_save():
    wizard = _wizard()
    wizard.save()
    return jsonify(wizard.to_dict())


@bp.route("/api/wizard/<slug>", methods=["POST"])
def wizard_add_row(slug):
    """Append a row (blank, or from the request body) to the step's table."""
    table = _table(slug)
    body = request.get_json(silent=True)
    row = rows_from_dicts(table, [body])[0] if body else None
    return jsonify(_wizard().add_row(table, row).to_dict()), 201


@bp.route("/api/wizard/<slug>/<int:index>", methods=["PATCH"])
def wizard_update_row(slug, index):
    """Merge the fields in the request body into one draft row."""
    table = _table(slug)
    wizard = _wizard()
    rows = wizard.editable_rows(table)
    if not 0 <= index < len(rows):
        raise InvalidMappingError(f"No {table} row at index {index}")
    changes = _json_body()
    if not isinstance(changes, dict):
        raise InvalidMappingError(f"Expected an object of {table} fields")
    new = rows_from_dicts(table, [{**rows[index].to_dict(), **changes}])[0]
    return jsonify(wizard.replace_row(table, index, new).to_dict())


@bp.route("/api/wizard/<slug>/<int:index>", methods=["DELETE"])
def wizard_delete_row(slug, index):
    table = _table(slug)
    return jsonify(_wizard().delete_row(table, index).to_dict())
