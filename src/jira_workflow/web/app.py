"""Flask application factory for the JIRA Workflow configuration API."""

from flask import Flask


def create_app(service=None) -> Flask:
    """Create and configure the Flask application.

    Args:
        service: Optional ``WorkflowConfigService``; built from
            ~/.jira-workflow/config.toml on first use when omitted
    """
    app = Flask(__name__)

    app.config["SECRET_KEY"] = "jira-workflow-local-dev"
    app.extensions["jira_workflow"] = {"service": service, "wizard": None}

    from jira_workflow.web.routes import bp
    app.register_blueprint(bp)

    return app
