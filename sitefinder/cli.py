"""Entrypoint for the command line interface."""

import asyncio
import logging
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from sitefinder.client.aggregator import ResultAggregator
from sitefinder.client.merge import DomainResult
from sitefinder.client.stream_client import SearchStreamClient
from sitefinder.client.view import ViewFilters
from sitefinder.configs import settings
from sitefinder.configs.app_configs.config_logging import configure_logging
from sitefinder.exceptions import StreamRequestError, WordListError
from sitefinder.probe.models import DomainStatus
from sitefinder.words import random_word

logger = logging.getLogger(__name__)

cli = typer.Typer(
    name="sitefinder",
    help="Find live websites and possibly available domains for a keyword.",
    no_args_is_help=True,
    add_completion=False,
)

STATUS_STYLES: dict[DomainStatus, str] = {
    DomainStatus.SUCCESS: "green",
    DomainStatus.LOADING: "cyan",
    DomainStatus.DNS_ERROR: "bold magenta",
    DomainStatus.TIMEOUT: "yellow",
}

BaseUrlOption = Annotated[
    str, typer.Option("--base-url", help="Base URL of a running sitefinder service.")
]
OnlyLiveOption = Annotated[bool, typer.Option("--only-live", help="Only show live sites.")]
OnlyErrorsOption = Annotated[bool, typer.Option("--only-errors", help="Only show failures.")]
PurchasableOption = Annotated[
    bool,
    typer.Option(
        "--purchasable",
        help="Only show domains that don't resolve. Overrides the other filters.",
    ),
]


def render_results(results: list[DomainResult], console: Console | None = None) -> None:
    """Print results as a table, in the given order."""
    console = console or Console()
    table = Table(title=f"{len(results)} domains")
    table.add_column("Domain", no_wrap=True)
    table.add_column("Status")
    table.add_column("Title", overflow="fold")
    table.add_column("Time", justify="right")
    table.add_column("Error")

    for result in results:
        status = result.status.value
        if result.status is DomainStatus.DNS_ERROR:
            status = f"{status} (possibly available)"
        domain = f"{result.domain} *" if result.is_high_priority else result.domain
        table.add_row(
            domain,
            f"[{STATUS_STYLES.get(result.status, 'red')}]{status}[/]",
            result.title,
            f"{result.response_time} ms" if result.response_time is not None else "",
            result.error_code or "",
        )
    console.print(table)


async def collect_search(keyword: str, base_url: str) -> ResultAggregator:
    """Consume a keyword search stream into a fresh aggregator."""
    client = SearchStreamClient(base_url=base_url)
    aggregator = ResultAggregator(client)
    try:
        async with aggregator:
            await aggregator.search(keyword)
    finally:
        await client.aclose()
    # Only records idle past the watchdog timeout are expired. Records the stream left
    # loading more recently are reported as loading.
    aggregator.sweep()
    return aggregator


async def collect_recheck(domain: str, base_url: str) -> ResultAggregator:
    """Consume a single-domain recheck stream into a fresh aggregator."""
    client = SearchStreamClient(base_url=base_url)
    aggregator = ResultAggregator(client)
    try:
        async with aggregator:
            await aggregator.recheck(domain)
    finally:
        await client.aclose()
    return aggregator


@cli.callback()
def setup():
    """CLI Entrypoint"""
    configure_logging()


@cli.command()
def search(
    keyword: Annotated[str, typer.Argument(help="Keyword combined with every TLD.")],
    base_url: BaseUrlOption = settings.client.base_url,
    only_live: OnlyLiveOption = False,
    only_errors: OnlyErrorsOption = False,
    purchasable: PurchasableOption = False,
):
    """Probe KEYWORD across all TLDs and print the ranked results."""
    filters = ViewFilters(only_live=only_live, only_errors=only_errors, only_purchasable=purchasable)
    try:
        aggregator = asyncio.run(collect_search(keyword, base_url))
    except StreamRequestError as e:
        logger.error(f"Search failed: {e}")
        raise typer.Exit(code=1)
    render_results(aggregator.view(filters))


@cli.command()
def recheck(
    domain: Annotated[str, typer.Argument(help="Domain to probe again.")],
    base_url: BaseUrlOption = settings.client.base_url,
    only_live: OnlyLiveOption = False,
    only_errors: OnlyErrorsOption = False,
    purchasable: PurchasableOption = False,
):
    """Probe a single DOMAIN and print its result."""
    filters = ViewFilters(only_live=only_live, only_errors=only_errors, only_purchasable=purchasable)
    aggregator = asyncio.run(collect_recheck(domain.strip().lower(), base_url))
    render_results(aggregator.view(filters))


@cli.command("random-word")
def random_word_cmd():
    """Print a random keyword from the configured word list."""
    try:
        typer.echo(random_word())
    except WordListError as e:
        logger.error(f"Failed to get random word: {e}")
        raise typer.Exit(code=1)


@cli.command()
def serve(
    host: Annotated[str, typer.Option(help="Interface to bind.")] = "127.0.0.1",
    port: Annotated[int, typer.Option(help="Port to bind.")] = 8000,
):
    """Run the HTTP service."""
    import uvicorn

    uvicorn.run("sitefinder.main:app", host=host, port=port, proxy_headers=True)


if __name__ == "__main__":
    cli()
