"""
Command-line interface for PR Scorecard.
"""

import asyncio
import re
from datetime import datetime, timedelta, timezone
from pathlib import Path

import httpx
import typer
from rich.console import Console
from rich.table import Table

from pr_scorecard.aggregate import calculate_metrics, to_dict
from pr_scorecard.auth import get_auth_provider
from pr_scorecard.cache import FileCache, clear_cache, get_cache_stats
from pr_scorecard.collector import collect_pull_requests
from pr_scorecard.config import (
    get_github_token,
    get_score_ranges,
    get_score_weights,
    set_cache_dir,
    set_quiet,
    set_verify_ssl,
)
from pr_scorecard.errors import PartialResultsError, ScorecardError
from pr_scorecard.http_client import close_async_http_client
from pr_scorecard.metrics import create_registry
from pr_scorecard.models import PullRequest
from pr_scorecard.output import write_output
from pr_scorecard.quota import QuotaGuard
from pr_scorecard.scorecard import score_pull_requests, summarize_records
from pr_scorecard.transport import GraphQLTransport

# --- Typer App ---
app = typer.Typer(help="Calculate GitHub pull request metrics and scores.")
console = Console(stderr=True)

_DURATION_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h|d|w|y)?\s*$")
_DURATION_UNITS = {
    "ms": 0.001,
    "s": 1,
    "m": 60,
    "h": 3600,
    "d": 86400,
    "w": 7 * 86400,
    "y": 365.25 * 86400,
}

# --- Helper Functions ---


def parse_duration(value: str) -> timedelta:
    """
    Parse a look-back period such as ``90d``, ``12h`` or ``2w``.

    A bare number is read as milliseconds.

    Raises:
        ValueError: If the value is not a recognized duration.
    """
    match = _DURATION_PATTERN.match(value)
    if not match:
        raise ValueError(f"Invalid duration: {value}")
    amount, unit = match.groups()
    return timedelta(seconds=float(amount) * _DURATION_UNITS[unit or "ms"])


def split_labels(value: str | None) -> list[str] | None:
    """Split a comma separated label list, dropping blanks."""
    if not value:
        return None
    labels = [label.strip() for label in value.split(",")]
    return [label for label in labels if label] or None


def parse_repository(value: str) -> tuple[str, str]:
    """Split ``owner/repo``.

    Raises:
        ValueError: If the value is not in owner/repo form.
    """
    owner, _, repo = value.partition("/")
    if not owner or not repo or "/" in repo:
        raise ValueError("Repository must be in <owner>/<repo> format")
    return owner, repo


async def _collect(**kwargs) -> list[PullRequest]:
    try:
        return await collect_pull_requests(**kwargs)
    finally:
        await close_async_http_client()


# --- Commands ---


@app.command()
def collect(
    repository: str = typer.Argument(..., help="Repository in owner/repo format."),
    since: str = typer.Option("90d", "--since", help="Look-back period (e.g. 90d, 12h)."),
    format: str = typer.Option("json", "--format", help="Output format: json or csv."),
    output: str = typer.Option(
        "stdout", "--output", help="Write to stdout, stderr or a file path."
    ),
    token: str | None = typer.Option(
        None, "--token", help="GitHub token (default: GH_TOKEN or GITHUB_TOKEN)."
    ),
    base_url: str | None = typer.Option(
        None, "--base-url", help="GitHub API base URL (GitHub Enterprise)."
    ),
    include_labels: str | None = typer.Option(
        None,
        "--include-labels",
        help="Only include PRs with any of these labels (comma separated).",
    ),
    exclude_labels: str | None = typer.Option(
        None,
        "--exclude-labels",
        help="Exclude PRs with any of these labels (comma separated).",
    ),
    use_cache: bool = typer.Option(
        False, "--use-cache", help="Cache fetched pages on disk."
    ),
    resume: bool = typer.Option(
        False, "--resume", help="Resume a previous interrupted run (implies --use-cache)."
    ),
    cache_dir: Path | None = typer.Option(
        None, "--cache-dir", help="Cache directory path (default: ~/.cache/pr-scorecard)."
    ),
    app_id: str | None = typer.Option(None, "--app-id", help="GitHub App ID."),
    app_private_key: Path | None = typer.Option(
        None, "--app-private-key", help="Path to the GitHub App private key file."
    ),
    progress: bool = typer.Option(
        False, "--progress", help="Show progress while fetching."
    ),
    score: bool = typer.Option(
        False, "--score", help="Include repository aggregates and the weighted score."
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print options and exit."),
    insecure: bool = typer.Option(
        False, "--insecure", help="Disable SSL certificate verification."
    ),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress diagnostics."),
):
    """Collect pull requests of a repository and report their metrics."""
    set_verify_ssl(not insecure)
    set_quiet(quiet)
    if cache_dir:
        set_cache_dir(cache_dir)

    try:
        owner, repo = parse_repository(repository)
        lookback = parse_duration(since)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1) from None

    if format not in ("json", "csv"):
        console.print(f"[red]Unsupported output format: {format}[/red]")
        raise typer.Exit(code=1)

    private_key = None
    if app_private_key is not None:
        try:
            private_key = app_private_key.read_text(encoding="utf-8")
        except OSError as e:
            console.print(f"[red]Cannot read private key: {e}[/red]")
            raise typer.Exit(code=1) from None

    token = token or get_github_token()
    try:
        transport = GraphQLTransport(
            get_auth_provider(
                owner,
                token=token,
                app_id=app_id,
                private_key=private_key,
                base_url=base_url,
            ),
            quota=QuotaGuard(),
            base_url=base_url,
        )
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1) from None

    since_at = datetime.now(timezone.utc) - lookback
    if dry_run:
        console.print(f"Would fetch metrics for {owner}/{repo} since {since}")
        return

    def show_progress(count: int) -> None:
        console.print(f"Fetched {count} PRs", end="\r")

    on_progress = show_progress if progress and not quiet else None

    cache = FileCache() if (use_cache or resume) else None

    partial = False
    try:
        prs = asyncio.run(
            _collect(
                owner=owner,
                repo=repo,
                since=since_at,
                auth=token,
                base_url=base_url,
                on_progress=on_progress,
                include_labels=split_labels(include_labels),
                exclude_labels=split_labels(exclude_labels),
                cache=cache,
                resume=resume,
                transport=transport,
            )
        )
        if on_progress is not None:
            console.print()
    except PartialResultsError as e:
        console.print(f"[red]Encountered error after {len(e.partial)} PRs: {e}[/red]")
        prs = e.partial
        partial = True
    except (ScorecardError, httpx.HTTPError, ValueError) as e:
        console.print(f"[red]Failed to fetch pull requests: {e}[/red]")
        raise typer.Exit(code=1) from None

    registry = create_registry()
    report: dict = {
        "repository": f"{owner}/{repo}",
        "since": since_at.isoformat(),
        "pull_requests": len(prs),
        "partial": partial,
        "metrics": {
            slug: stats._asdict()
            for slug, stats in summarize_records(prs, registry).items()
        },
    }

    if score:
        try:
            ranges = get_score_ranges()
            weights = get_score_weights()
        except ValueError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(code=1) from None
        result = score_pull_requests(
            prs,
            ranges=ranges,
            weights=weights or None,
            registry=registry,
            partial=partial,
        )
        report["aggregate"] = to_dict(calculate_metrics(prs))
        report["score"] = {
            "overall": result.overall,
            "scores": result.scores,
            "normalized": result.normalized,
        }

    write_output(report, format=format, destination=output)


@app.command()
def plugins():
    """List registered metric plugins."""
    registry = create_registry()
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Slug", style="cyan")
    table.add_column("Description")
    for plugin in registry.get_all():
        table.add_row(plugin.slug, plugin.description)
    Console().print(table)


@app.command()
def cache_stats(
    cache_dir: Path | None = typer.Option(None, "--cache-dir", help="Cache directory path."),
):
    """Display cache statistics."""
    stats = get_cache_stats(cache_dir)

    if not stats["exists"]:
        console.print(
            f"[yellow]Cache does not exist in: {stats['cache_dir']}[/yellow]"
        )
        return

    console.print("[bold cyan]Cache Statistics[/bold cyan]")
    console.print(f"  Directory: {stats['cache_dir']}")
    console.print(f"  Total entries: {stats['total_entries']}")
    console.print(f"  Valid entries: [green]{stats['valid_entries']}[/green]")
    console.print(f"  Expired entries: [yellow]{stats['expired_entries']}[/yellow]")


@app.command("clear-cache")
def clear_cache_command(
    cache_dir: Path | None = typer.Option(None, "--cache-dir", help="Cache directory path."),
):
    """Remove cached pages and checkpoints."""
    cleared = clear_cache(cache_dir)
    console.print(f"Cleared {cleared} cache file(s).")


if __name__ == "__main__":
    app()
