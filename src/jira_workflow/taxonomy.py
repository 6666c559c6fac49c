"""Fetching the tracker taxonomy (issue types, statuses, link types)."""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Protocol

from jira_workflow.exceptions import (
    JiraAuthError,
    JiraConnectionError,
    JiraRateLimitError,
    MetadataFetchError,
)
from jira_workflow.jira_client import AuthenticationError, RateLimitError
from jira_workflow.jira_client import ConnectionError as JiraClientConnectionError
from jira_workflow.models import (
    JiraIssueType,
    JiraLinkType,
    JiraStatusesByType,
    Taxonomy,
)

logger = logging.getLogger(__name__)


class TaxonomySource(Protocol):
    """Read-only provider of tracker metadata. ``JiraClient`` implements it."""

    def list_issue_types(self) -> list[JiraIssueType]: ...

    def list_statuses_by_issue_type(self) -> list[JiraStatusesByType]: ...

    def list_link_types(self) -> list[JiraLinkType]: ...


def as_fetch_error(e: Exception) -> MetadataFetchError:
    """Translate a client failure into the package exception hierarchy."""
    if isinstance(e, AuthenticationError):
        return JiraAuthError(
            "JIRA authentication failed. Check your credentials in "
            "~/.jira-workflow/config.toml."
        )
    if isinstance(e, RateLimitError):
        return JiraRateLimitError("JIRA rate limit exceeded. Please wait a moment and try again.")
    if isinstance(e, JiraClientConnectionError):
        return JiraConnectionError(str(e))
    return MetadataFetchError(f"Failed to fetch JIRA metadata: {e}")


def fetch_taxonomy(source: TaxonomySource) -> Taxonomy:
    """Query the three metadata lists concurrently and wait for all of them.

    There is no partial result: if any query fails the whole fetch fails.

    Raises:
        MetadataFetchError: Or one of its subclasses, chained to the cause
    """
    with ThreadPoolExecutor(max_workers=3) as executor:
        issue_types_future = executor.submit(source.list_issue_types)
        statuses_future = executor.submit(source.list_statuses_by_issue_type)
        link_types_future = executor.submit(source.list_link_types)

        try:
            taxonomy = Taxonomy(
                issue_types=issue_types_future.result(),
                statuses_by_type=statuses_future.result(),
                link_types=link_types_future.result(),
            )
        except MetadataFetchError:
            raise
        except Exception as e:
            logger.warning("Fetching JIRA metadata failed: %s", e)
            raise as_fetch_error(e) from e

    logger.debug(
        "Fetched %d issue types, %d status groups, %d link types",
        len(taxonomy.issue_types),
        len(taxonomy.statuses_by_type),
        len(taxonomy.link_types),
    )
    return taxonomy
