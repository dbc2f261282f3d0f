"""
Command-line interface for Competitor Watch.

Usage:
    python -m competitor_watch check URL                 # Check one URL now
    python -m competitor_watch check URL --previous ID   # Compare with a stored identity
    python -m competitor_watch classify URL              # Show how a URL is treated
    python -m competitor_watch summarize TEXT            # Summarize a piece of text
    python -m competitor_watch add NAME URL [URL...]     # Track a competitor
    python -m competitor_watch remove URL_ID             # Stop tracking a URL
    python -m competitor_watch list                      # Show tracked URLs
    python -m competitor_watch refresh                   # Check every tracked URL
    python -m competitor_watch config                    # Show current configuration
"""

import asyncio
import json

import click
from rich.console import Console
from rich.table import Table
from rich.panel import Panel

from .checker import ChangeChecker
from .classifier import classify_url
from .config import get_settings
from .db import COMPETITOR_TYPES, get_database
from .logging_conf import setup_logging, get_logger
from .models import CheckStatus, FetchOutcome
from .runner import run_refresh
from .store import display_summary
from .summarizer import summarize as summarize_text

console = Console()
logger = get_logger(__name__)

STATUS_STYLES = {
    CheckStatus.PENDING.value: "dim",
    CheckStatus.NEW_UPDATE.value: "green",
    CheckStatus.NO_UPDATES.value: "white",
    CheckStatus.LIMITED.value: "yellow",
    CheckStatus.ERROR.value: "red",
}


def _styled_status(status: str) -> str:
    style = STATUS_STYLES.get(status, "white")
    return f"[{style}]{status}[/{style}]"


def _print_outcome(outcome: FetchOutcome) -> None:
    table = Table(title="Check Result")
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    table.add_row("status", _styled_status(outcome.status.value))
    table.add_row("has_new_content", str(outcome.has_new_content))
    table.add_row("content_identity", outcome.content_identity or "")
    table.add_row("summary", outcome.summary or "")
    table.add_row("error_kind", outcome.error_kind.value if outcome.error_kind else "")
    table.add_row("message", outcome.message or "")
    table.add_row("content_text", (outcome.content_text or "")[:300])

    console.print(table)


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def cli(debug: bool):
    """Competitor Watch CLI."""
    settings = get_settings()
    level = "DEBUG" if debug else settings.log_level
    setup_logging(level=level, json_output=settings.log_json)


@cli.command()
@click.argument("url")
@click.option("--previous", "-p", default=None, help="Content identity from the last check")
@click.option("--summarize", "always_summarize", is_flag=True, help="Summarize even without new content")
@click.option("--feed-only", is_flag=True, help="Treat the URL strictly as a feed")
@click.option("--json-output", "-j", is_flag=True, help="Output result as JSON")
def check(url: str, previous: str, always_summarize: bool, feed_only: bool, json_output: bool):
    """
    Check a single URL for new content.

    Examples:
      python -m competitor_watch check https://example.com/blog
      python -m competitor_watch check https://example.com/feed.xml -p https://example.com/p1
    """
    checker = ChangeChecker()
    if feed_only:
        outcome = asyncio.run(checker.check_feed(url, previous, always_summarize=always_summarize))
    else:
        outcome = asyncio.run(checker.check(url, previous, always_summarize=always_summarize))

    if json_output:
        click.echo(json.dumps(outcome.to_dict(), indent=2))
    else:
        _print_outcome(outcome)


@cli.command()
@click.argument("url")
def classify(url: str):
    """Show how a URL is classified before fetching."""
    url_class = classify_url(url)
    console.print(f"kind:        [cyan]{url_class.kind.value}[/cyan]")
    console.print(f"platform:    {url_class.platform.value if url_class.platform else '-'}")
    console.print(f"source_type: {url_class.source_type}")


@cli.command()
@click.argument("text")
def summarize(text: str):
    """Print the extractive summary of TEXT."""
    console.print(summarize_text(text))


@cli.command()
@click.argument("name")
@click.argument("urls", nargs=-1, required=True)
@click.option(
    "--type", "-t", "competitor_type",
    type=click.Choice(COMPETITOR_TYPES),
    default="competitor",
    help="Relationship to the company",
)
def add(name: str, urls: tuple, competitor_type: str):
    """Track a competitor and its URLs."""
    db = get_database()
    session = db.get_session()

    try:
        competitor = db.add_competitor(session, name, urls, type=competitor_type)
        session.commit()

        for row in competitor.urls:
            console.print(f"[green]Added[/green] #{row.id} {row.url} ({row.source_type})")

    except ValueError as e:
        session.rollback()
        console.print(f"[bold red]Error: {e}[/bold red]")
        raise click.Abort()
    finally:
        session.close()


@cli.command()
@click.argument("url_id", type=int)
def remove(url_id: int):
    """Stop tracking a URL."""
    db = get_database()
    session = db.get_session()

    try:
        if not db.delete_url(session, url_id):
            console.print(f"[red]URL {url_id} not found[/red]")
            raise click.Abort()
        session.commit()
        console.print(f"[green]Removed URL {url_id}[/green]")
    finally:
        session.close()


@cli.command("list")
def list_urls():
    """List tracked URLs with their last status."""
    db = get_database()
    session = db.get_session()

    try:
        rows = db.get_urls(session)

        if not rows:
            console.print("[yellow]No URLs tracked yet[/yellow]")
            return

        table = Table(title="Tracked Sources")
        table.add_column("ID", style="cyan")
        table.add_column("Competitor")
        table.add_column("Type", style="yellow")
        table.add_column("URL")
        table.add_column("Status")
        table.add_column("Last Checked")
        table.add_column("Summary")

        for row in rows:
            last_checked = row.last_checked.strftime("%Y-%m-%d %H:%M") if row.last_checked else "-"
            table.add_row(
                str(row.id),
                row.competitor.name,
                row.source_type,
                row.url,
                _styled_status(row.status),
                last_checked,
                display_summary(row.to_state()) or "",
            )

        console.print(table)

        stats = db.get_stats(session)
        console.print(f"\nCompetitors: {stats['total_competitors']} | URLs: {stats['total_urls']}")
        console.print(f"By status: {stats['by_status']}")

    finally:
        session.close()


@cli.command()
@click.option("--id", "url_id", type=int, help="Refresh a single URL")
@click.option("--concurrency", "-c", type=int, default=1, help="Sources checked at once")
def refresh(url_id: int, concurrency: int):
    """
    Check tracked URLs and record the results.

    Examples:
      python -m competitor_watch refresh
      python -m competitor_watch refresh --id 3
      python -m competitor_watch refresh -c 4
    """
    console.print(Panel("[bold green]Refreshing Sources[/bold green]"))

    try:
        stats = asyncio.run(run_refresh(url_id=url_id, concurrency=concurrency))
    except Exception as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        raise click.Abort()

    table = Table(title="Refresh Results")
    table.add_column("ID", style="cyan")
    table.add_column("URL")
    table.add_column("Status")
    table.add_column("Summary")

    for result in stats["results"]:
        table.add_row(
            str(result["id"]),
            result["url"],
            _styled_status(result["status"]),
            result["summary"] or "",
        )

    console.print(table)
    console.print(
        f"\nChecked: {stats['checked']} | New: {stats['new_updates']} | "
        f"No updates: {stats['no_updates']} | Limited: {stats['limited']} | "
        f"Errors: {stats['errors']}"
    )


@cli.command()
def config():
    """Show current configuration."""
    settings = get_settings()

    console.print(Panel("[bold blue]Current Configuration[/bold blue]"))

    console.print("\n[cyan]HTTP:[/cyan]")
    console.print(f"  user_agent:              {settings.user_agent}")
    console.print(f"  feed_timeout:            {settings.feed_timeout}")
    console.print(f"  discovered_feed_timeout: {settings.discovered_feed_timeout}")
    console.print(f"  page_timeout:            {settings.page_timeout}")

    console.print("\n[cyan]Extraction:[/cyan]")
    console.print(f"  max_feed_text_chars: {settings.max_feed_text_chars}")
    console.print(f"  max_context_chars:   {settings.max_context_chars}")
    console.print(f"  max_concurrent_checks: {settings.max_concurrent_checks}")

    console.print("\n[cyan]Storage:[/cyan]")
    console.print(f"  database: {settings.database_url or settings.database_path}")

    console.print("\n[cyan]Logging:[/cyan]")
    console.print(f"  log_level: {settings.log_level}")
    console.print(f"  log_json:  {settings.log_json}")


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
