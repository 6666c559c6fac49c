"""Exception hierarchy for JIRA Workflow."""


class WorkflowConfigError(Exception):
    """Base exception for workflow configuration errors."""

    pass


class ConfigNotFoundError(WorkflowConfigError):
    """Configuration file not found."""

    pass


class InvalidConfigError(WorkflowConfigError):
    """Configuration is invalid."""

    pass


class InvalidMappingError(WorkflowConfigError):
    """A mapping row is malformed or uses an unknown category."""

    pass


class MetadataFetchError(WorkflowConfigError):
    """Fetching issue types, statuses or link types from JIRA failed."""

    pass


class JiraAuthError(MetadataFetchError):
    """JIRA authentication failed."""

    pass


class JiraConnectionError(MetadataFetchError):
    """Cannot connect to JIRA server."""

    pass


class JiraRateLimitError(MetadataFetchError):
    """JIRA rate limit exceeded."""

    pass


class PersistError(WorkflowConfigError):
    """Replacing one of the mapping tables failed."""

    def __init__(self, table: str, message: str) -> None:
        super().__init__(f"Failed to save {table}: {message}")
        self.table = table


class WizardStateError(WorkflowConfigError):
    """The requested wizard operation is not available in the current step."""

    pass
