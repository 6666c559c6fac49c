"""JIRA API client with retry logic."""

import logging
import threading

from jira import JIRA, JIRAError
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from jira_workflow.config import Config
from jira_workflow.models import (
    JiraIssueType,
    JiraLinkType,
    JiraStatus,
    JiraStatusesByType,
)

logger = logging.getLogger(__name__)


class RateLimitError(Exception):
    """Raised when JIRA API rate limit is hit."""

    pass


class AuthenticationError(Exception):
    """Raised when JIRA authentication fails."""

    pass


class ConnectionError(Exception):
    """Raised when JIRA server cannot be reached."""

    pass


def _raise_translated(e: JIRAError) -> None:
    """Raise the client error matching ``e``'s status code, if there is one."""
    if e.status_code == 429:
        raise RateLimitError("Rate limited by JIRA. Retrying with exponential backoff...") from e
    if e.status_code == 401:
        raise AuthenticationError("Authentication failed. Check your email and API token.") from e


class JiraClient:
    """Read-only client for the project metadata used to configure workflows.

    Safe to share between threads; the underlying JIRA session is created once.
    """

    def __init__(self, config: Config) -> None:
        """Initialize JIRA client with configuration."""
        self.config = config
        self._client: JIRA | None = None
        self._client_lock = threading.Lock()

    def _get_client(self) -> JIRA:
        """Get or create JIRA client instance."""
        if self._client is not None:
            return self._client
        with self._client_lock:
            if self._client is None:
                self._client = self._connect()
        return self._client

    def _connect(self) -> JIRA:
        try:
            return JIRA(
                server=self.config.jira_url,
                basic_auth=(self.config.jira_email, self.config.jira_api_token),
                timeout=15,
            )
        except JIRAError as e:
            if e.status_code == 401:
                raise AuthenticationError(
                    "Authentication failed. Check your email and API token."
                ) from e
            raise
        except Exception as e:
            error_msg = str(e).lower()
            if "connection" in error_msg or "resolve" in error_msg or "timeout" in error_msg:
                raise ConnectionError(
                    f"Cannot connect to JIRA server at {self.config.jira_url}. "
                    "Check the URL and your network connection."
                ) from e
            raise

    @retry(
        retry=retry_if_exception_type(RateLimitError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=4, max=60),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    def list_issue_types(self) -> list[JiraIssueType]:
        """Get the issue types available in the configured project.

        Raises:
            RateLimitError: If rate limited (will be retried)
            AuthenticationError: If authentication fails
            JIRAError: For other JIRA API errors
        """
        client = self._get_client()
        try:
            project = client.project(self.config.project_key)
        except JIRAError as e:
            _raise_translated(e)
            raise

        return [
            JiraIssueType(
                id=str(raw.get("id", "")),
                name=raw.get("name", ""),
                is_subtask=bool(raw.get("subtask", False)),
                description=raw.get("description") or None,
            )
            for raw in project.raw.get("issueTypes", [])
        ]

    @retry(
        retry=retry_if_exception_type(RateLimitError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=4, max=60),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    def list_statuses_by_issue_type(self) -> list[JiraStatusesByType]:
        """Get the statuses of the configured project, grouped by issue type.

        Raises:
            RateLimitError: If rate limited (will be retried)
            AuthenticationError: If authentication fails
            JIRAError: For other JIRA API errors
        """
        client = self._get_client()
        try:
            response = client._get_json(f"project/{self.config.project_key}/statuses")
        except JIRAError as e:
            _raise_translated(e)
            raise

        result: list[JiraStatusesByType] = []
        for type_statuses in response or []:
            statuses = []
            for status in type_statuses.get("statuses", []):
                category = status.get("statusCategory") or {}
                statuses.append(JiraStatus(
                    name=status.get("name", ""),
                    untranslated_name=status.get("untranslatedName"),
                    tracker_category=category.get("key"),
                ))
            result.append(JiraStatusesByType(
                issue_type_name=type_statuses.get("name", ""),
                statuses=statuses,
            ))
        return result

    @retry(
        retry=retry_if_exception_type(RateLimitError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=4, max=60),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    def list_link_types(self) -> list[JiraLinkType]:
        """Get available issue link types from JIRA.

        Raises:
            RateLimitError: If rate limited (will be retried)
            AuthenticationError: If authentication fails
        """
        client = self._get_client()
        try:
            link_types = client.issue_link_types()
        except JIRAError as e:
            _raise_translated(e)
            raise

        return [
            JiraLinkType(
                id=str(lt.raw.get("id", "")),
                name=lt.raw.get("name", ""),
                inward_phrase=lt.raw.get("inward", ""),
                outward_phrase=lt.raw.get("outward", ""),
            )
            for lt in link_types
        ]
