"""
Canonical pull request records and the mapping from raw GraphQL nodes.
"""

from datetime import datetime, timezone
from typing import Any, NamedTuple

from pr_scorecard.errors import (
    InvalidTimestampError,
    MalformedNodeError,
    MissingTimestampError,
)


class Review(NamedTuple):
    """A single review on a pull request."""

    id: str
    state: str
    submitted_at: str | None
    author: str | None = None


class Comment(NamedTuple):
    """Comment left on a pull request."""

    id: str
    body: str
    created_at: str
    author: str | None = None


class Commit(NamedTuple):
    """Commit associated with a pull request."""

    oid: str
    message_headline: str
    committed_date: str | None
    check_suite_conclusions: tuple[str | None, ...] = ()


class CheckSuite(NamedTuple):
    """Result of a CI check suite on the pull request."""

    id: str
    status: str
    conclusion: str | None
    started_at: str | None
    completed_at: str | None


class TimelineItem(NamedTuple):
    """A timeline event such as ReadyForReviewEvent."""

    type: str
    created_at: str | None


class PullRequest(NamedTuple):
    """Normalized pull request record, independent of the API response shape."""

    id: str
    number: int
    title: str
    state: str  # "OPEN", "CLOSED", "MERGED"
    created_at: str
    updated_at: str
    merged_at: str | None = None
    closed_at: str | None = None
    additions: int = 0
    deletions: int = 0
    changed_files: int = 0
    labels: tuple[str, ...] = ()
    author: str | None = None
    reviews: tuple[Review, ...] = ()
    comments: tuple[Comment, ...] = ()
    commits: tuple[Commit, ...] = ()
    check_suites: tuple[CheckSuite, ...] = ()
    timeline_items: tuple[TimelineItem, ...] = ()

    @property
    def lines_changed(self) -> int:
        return self.additions + self.deletions


class Checkpoint(NamedTuple):
    """Pagination state needed to resume an interrupted collection."""

    cursor: str | None
    updated_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"cursor": self.cursor, "updatedAt": self.updated_at}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Checkpoint":
        return cls(cursor=data.get("cursor"), updated_at=data.get("updatedAt") or "")


# --- Timestamp helpers ---


def parse_timestamp(value: str | None, field: str = "timestamp") -> datetime:
    """
    Parse an ISO-8601 timestamp into an aware datetime (UTC if naive).

    Raises:
        MissingTimestampError: If the value is empty.
        InvalidTimestampError: If the value cannot be parsed.
    """
    if not value:
        raise MissingTimestampError(f"Missing {field}")
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (ValueError, AttributeError, TypeError) as e:
        raise InvalidTimestampError(f"Invalid {field}: {value!r}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def try_parse_timestamp(value: str | None) -> datetime | None:
    """Parse a timestamp, returning None when it is absent or invalid."""
    try:
        return parse_timestamp(value)
    except (MissingTimestampError, InvalidTimestampError):
        return None


def hours_between(start: datetime, end: datetime) -> float:
    """Return hours from start to end rounded to one decimal."""
    return round((end - start).total_seconds() / 3600, 1)


# --- Raw node mapping ---

_REQUIRED_FIELDS = ("id", "number", "state", "createdAt", "updatedAt")


def _nodes(connection: dict[str, Any] | None) -> list[dict[str, Any]]:
    if not connection:
        return []
    return [node for node in connection.get("nodes") or [] if node]


def _login(actor: dict[str, Any] | None) -> str | None:
    if not actor:
        return None
    return actor.get("login")


def map_pull_request(node: dict[str, Any]) -> PullRequest:
    """
    Map a raw GraphQL pull request node into a canonical record.

    Args:
        node: ``pullRequests.nodes[]`` entry from the GraphQL response.

    Returns:
        Canonical PullRequest.

    Raises:
        MalformedNodeError: If a required field is missing, a timestamp is not
            ISO-8601, or a merged pull request is reported as open.
    """
    if not isinstance(node, dict):
        raise MalformedNodeError(f"Expected a pull request node, got {node!r}")

    missing = [field for field in _REQUIRED_FIELDS if node.get(field) is None]
    if missing:
        raise MalformedNodeError(
            f"Pull request node {node.get('id', '?')} is missing: {', '.join(missing)}"
        )

    for field in ("createdAt", "updatedAt", "mergedAt", "closedAt"):
        value = node.get(field)
        if value is not None and try_parse_timestamp(value) is None:
            raise MalformedNodeError(
                f"Pull request #{node['number']} has an invalid {field}: {value!r}"
            )

    if node.get("mergedAt") and node["state"] == "OPEN":
        raise MalformedNodeError(
            f"Pull request #{node['number']} is open but has mergedAt set"
        )

    reviews = tuple(
        Review(
            id=r.get("id", ""),
            state=r.get("state", ""),
            submitted_at=r.get("submittedAt"),
            author=_login(r.get("author")),
        )
        for r in _nodes(node.get("reviews"))
    )
    comments = tuple(
        Comment(
            id=c.get("id", ""),
            body=c.get("body") or "",
            created_at=c.get("createdAt", ""),
            author=_login(c.get("author")),
        )
        for c in _nodes(node.get("comments"))
    )
    commits = []
    for entry in _nodes(node.get("commits")):
        commit = entry.get("commit") or {}
        commits.append(
            Commit(
                oid=commit.get("oid", ""),
                message_headline=commit.get("messageHeadline") or "",
                committed_date=commit.get("committedDate"),
                check_suite_conclusions=tuple(
                    cs.get("conclusion") for cs in _nodes(commit.get("checkSuites"))
                ),
            )
        )
    check_suites = tuple(
        CheckSuite(
            id=cs.get("id", ""),
            status=cs.get("status", ""),
            conclusion=cs.get("conclusion"),
            started_at=cs.get("startedAt"),
            completed_at=cs.get("completedAt"),
        )
        for cs in _nodes(node.get("checkSuites"))
    )
    timeline_items = tuple(
        TimelineItem(type=t.get("__typename", ""), created_at=t.get("createdAt"))
        for t in _nodes(node.get("timelineItems"))
    )
    labels = tuple(
        label["name"] for label in _nodes(node.get("labels")) if label.get("name")
    )

    return PullRequest(
        id=node["id"],
        number=int(node["number"]),
        title=node.get("title") or "",
        state=node["state"],
        created_at=node["createdAt"],
        updated_at=node["updatedAt"],
        merged_at=node.get("mergedAt"),
        closed_at=node.get("closedAt"),
        additions=node.get("additions") or 0,
        deletions=node.get("deletions") or 0,
        changed_files=node.get("changedFiles") or 0,
        labels=labels,
        author=_login(node.get("author")),
        reviews=reviews,
        comments=comments,
        commits=tuple(commits),
        check_suites=check_suites,
        timeline_items=timeline_items,
    )
