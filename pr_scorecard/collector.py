"""
Pull request collection from the GitHub GraphQL API.

Pages through a repository's pull requests ordered by most recent update,
maps each node to a canonical record, and stops as soon as it reaches a pull
request last updated before the ``since`` boundary. Collection can resume
from a checkpoint stored in a cache, and a failure after some records were
gathered surfaces as PartialResultsError carrying those records.
"""

import asyncio
import hashlib
import re
from datetime import datetime
from typing import Any, Awaitable, Callable, Iterable

from rich.console import Console

from pr_scorecard.auth import get_auth_provider
from pr_scorecard.cache import CacheStore
from pr_scorecard.config import get_checkpoint_ttl, is_quiet
from pr_scorecard.errors import PartialResultsError, TransportError
from pr_scorecard.models import (
    Checkpoint,
    PullRequest,
    map_pull_request,
    parse_timestamp,
)
from pr_scorecard.quota import QuotaGuard
from pr_scorecard.transport import GraphQLTransport

console = Console(stderr=True)

# Persist the checkpoint every N pages when resuming is enabled
CHECKPOINT_EVERY_PAGES = 5
MAX_PAGE_RETRIES = 5
PAGE_RETRY_BASE_DELAY = 1.0

_SECONDARY_RATE_PATTERN = re.compile(r"secondary rate", re.IGNORECASE)

PULL_REQUESTS_QUERY = """
query($owner: String!, $repo: String!, $cursor: String) {
  repository(owner: $owner, name: $repo) {
    pullRequests(first: 100, after: $cursor, orderBy: {field: UPDATED_AT, direction: DESC}) {
      pageInfo { hasNextPage endCursor }
      nodes {
        id number title state createdAt updatedAt mergedAt closedAt
        additions deletions changedFiles
        labels(first: 20) { nodes { name } }
        author { login }
        reviews(first: 100) { nodes { id state submittedAt author { login } } }
        comments(first: 100) { nodes { id body createdAt author { login } } }
        commits(last: 100) {
          nodes {
            commit {
              oid committedDate messageHeadline
              checkSuites(first: 100) { nodes { conclusion } }
            }
          }
        }
        checkSuites(first: 100) { nodes { id status conclusion startedAt completedAt } }
        timelineItems(first: 100, itemTypes: [READY_FOR_REVIEW, REVIEW_REQUESTED]) {
          nodes {
            __typename
            ... on ReadyForReviewEvent { createdAt }
            ... on ReviewRequestedEvent { createdAt }
          }
        }
      }
    }
  }
}
"""

EventSink = Callable[[str, dict[str, Any]], None]


def checkpoint_key(owner: str, repo: str) -> str:
    """Cache key of the resumable checkpoint for a repository."""
    return f"checkpoint:{owner}/{repo}"


def page_cache_key(owner: str, repo: str, cursor: str | None) -> str:
    """Cache key of a fetched page, scoped to the repository and cursor."""
    digest = hashlib.sha1(f"{owner}/{repo}:{cursor}".encode("utf-8")).hexdigest()
    return f"page:{digest}"


def is_retryable_page_error(error: Exception) -> bool:
    """Return True for 403 responses and secondary rate limit messages."""
    if isinstance(error, TransportError) and error.status == 403:
        return True
    return bool(_SECONDARY_RATE_PATTERN.search(str(error)))


def passes_label_filters(
    pr: PullRequest,
    include_labels: Iterable[str] | None = None,
    exclude_labels: Iterable[str] | None = None,
) -> bool:
    """
    Apply include/exclude label filters to a record.

    A record passes the include filter if any of its labels is included, and
    fails the exclude filter if any of its labels is excluded. Exclusion wins.
    """
    labels = set(pr.labels)
    if include_labels is not None and not labels & set(include_labels):
        return False
    if exclude_labels is not None and labels & set(exclude_labels):
        return False
    return True


def _as_datetime(value: str | datetime) -> datetime:
    if isinstance(value, datetime):
        return parse_timestamp(value.isoformat(), "since")
    return parse_timestamp(value, "since")


def _load_checkpoint(cache: CacheStore, key: str) -> Checkpoint | None:
    saved = cache.get(key)
    if not isinstance(saved, dict):
        return None
    return Checkpoint.from_dict(saved)


async def collect_pull_requests(
    owner: str,
    repo: str,
    since: str | datetime,
    auth: str | None = None,
    base_url: str | None = None,
    on_progress: Callable[[int], None] | None = None,
    include_labels: Iterable[str] | None = None,
    exclude_labels: Iterable[str] | None = None,
    cache: CacheStore | None = None,
    resume: bool = False,
    events: EventSink | None = None,
    transport: GraphQLTransport | None = None,
    checkpoint_ttl: int | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> list[PullRequest]:
    """
    Collect pull requests updated at or after ``since``.

    Args:
        owner: Repository owner.
        repo: Repository name.
        since: ISO-8601 timestamp (or datetime) lower bound on ``updatedAt``.
        auth: Static token; ignored when GitHub App credentials are set or a
            transport is given.
        base_url: GitHub API base URL (GitHub Enterprise).
        on_progress: Called with the running record count after each record.
        include_labels: Keep only records carrying at least one of these labels.
        exclude_labels: Drop records carrying any of these labels.
        cache: Page cache and checkpoint store.
        resume: Resume from, and persist, a checkpoint in ``cache``.
        events: Called as ``events("progress", {"cursor", "updated_at"})``
            after each page and before raising.
        transport: Preconfigured transport (built from ``auth`` if omitted).
        checkpoint_ttl: TTL of the checkpoint written after a completed run
            (default: configured checkpoint TTL, 1 second).
        sleep: Async sleep used for page retry backoff.

    Returns:
        Canonical records sorted ascending by ``created_at``.

    Raises:
        PartialResultsError: If collection failed after gathering records.
        Exception: The original error if it failed before any record.
    """
    if transport is None:
        transport = GraphQLTransport(
            get_auth_provider(owner, token=auth, base_url=base_url),
            quota=QuotaGuard(),
            base_url=base_url,
        )
    since_at = _as_datetime(since)
    include = list(include_labels) if include_labels is not None else None
    exclude = list(exclude_labels) if exclude_labels is not None else None
    resumable = resume and cache is not None
    cursor_key = checkpoint_key(owner, repo)

    prs: list[PullRequest] = []
    cursor: str | None = None
    last_updated = ""
    pages = 0

    if resumable:
        saved = _load_checkpoint(cache, cursor_key)
        if saved is not None:
            if saved.cursor:
                cursor = saved.cursor
            if saved.updated_at:
                last_updated = saved.updated_at
            if not is_quiet():
                console.print(
                    f"[dim]Resuming {owner}/{repo} from cursor {cursor}[/dim]"
                )

    def emit_progress() -> None:
        if events is not None:
            events("progress", {"cursor": cursor, "updated_at": last_updated})

    def save_checkpoint(ttl_seconds: int | None = None) -> None:
        cache.set(
            cursor_key,
            Checkpoint(cursor=cursor, updated_at=last_updated).to_dict(),
            ttl_seconds,
        )

    has_next_page = True
    retries = 0
    while has_next_page:
        try:
            key = page_cache_key(owner, repo, cursor)
            data = cache.get(key) if cache is not None else None
            if data is None:
                data = await transport.send(
                    PULL_REQUESTS_QUERY,
                    {"owner": owner, "repo": repo, "cursor": cursor},
                )
                if cache is not None:
                    cache.set(key, data)

            connection = data["repository"]["pullRequests"]
            nodes = connection.get("nodes") or []
            pages += 1

            for node in nodes:
                if parse_timestamp(node.get("updatedAt"), "updatedAt") < since_at:
                    has_next_page = False
                    break
                pr = map_pull_request(node)
                if not passes_label_filters(pr, include, exclude):
                    continue
                prs.append(pr)
                if on_progress is not None:
                    on_progress(len(prs))

            if has_next_page:
                page_info = connection.get("pageInfo") or {}
                has_next_page = bool(page_info.get("hasNextPage"))
                cursor = page_info.get("endCursor")
            if nodes:
                last_updated = nodes[-1].get("updatedAt") or last_updated
            emit_progress()
            if resumable and pages % CHECKPOINT_EVERY_PAGES == 0:
                save_checkpoint()
            retries = 0
        except Exception as e:
            if retries < MAX_PAGE_RETRIES and is_retryable_page_error(e):
                delay = PAGE_RETRY_BASE_DELAY * 2**retries
                if not is_quiet():
                    console.print(
                        f"[yellow]Retrying page after {delay:.0f}s: {e}[/yellow]"
                    )
                await sleep(delay)
                retries += 1
                continue
            if resumable:
                save_checkpoint()
            emit_progress()
            if prs:
                raise PartialResultsError(str(e), list(prs)) from e
            raise

    prs.sort(key=lambda pr: parse_timestamp(pr.created_at, "createdAt"))
    if resumable:
        cursor = None
        save_checkpoint(
            get_checkpoint_ttl() if checkpoint_ttl is None else checkpoint_ttl
        )
    return prs
