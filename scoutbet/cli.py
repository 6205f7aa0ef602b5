"""Command-line interface for ScoutBet value-bet discovery."""
import asyncio
import json
import logging
import sys
from typing import Optional

import typer
import uvicorn

from .api import app
from .assistant import build_assistant
from .config import Settings
from .models import SourceCategory
from .orchestrator import build_orchestrator
from .sources import SourceSelector, build_default_catalog

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)

cli = typer.Typer(help="ScoutBet - value-bet discovery across sports data sources")


def _warn_missing(settings: Settings) -> None:
    missing_vars = settings.validate_required()
    if missing_vars:
        logger.warning(f"Missing environment variables: {', '.join(missing_vars)}")
        logger.warning("Discovery will use fallback data and template summaries where needed")


async def _run_api(settings: Settings) -> None:
    """Run the FastAPI server."""
    port = settings.get_port()
    config = uvicorn.Config(
        app,
        host=settings.api_host,
        port=port,
        log_level="info",
        access_log=False,
    )
    server = uvicorn.Server(config)
    await server.serve()


@cli.command()
def discover(
    query: Optional[str] = typer.Argument(None, help="Free-text query, e.g. 'Flamengo vs Palmeiras value bets'"),
    as_json: bool = typer.Option(False, "--json", help="Print the full result envelope as JSON"),
):
    """Run one discovery and print the ranked value bets."""
    settings = Settings()
    _warn_missing(settings)

    async def main():
        orchestrator = build_orchestrator(settings)
        try:
            return await orchestrator.discover(query)
        finally:
            await orchestrator.close()

    result = asyncio.run(main())

    if as_json:
        typer.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    else:
        typer.echo(result.message)
        for item in result.opportunities:
            opp, analysis = item.opportunity, item.analysis
            typer.echo(
                f"  {opp.match} | {opp.market} @ {opp.best_odd:.2f} ({opp.bookmaker}) "
                f"value {analysis.value_score * 100:.1f}% {analysis.recommendation.value}"
            )
        if result.fallback_used:
            typer.echo("  (fallback data)")

    if not result.success:
        sys.exit(1)


@cli.command()
def ask(message: str = typer.Argument(..., help="Question for the assistant")):
    """Ask the assistant a question and print its answer."""
    settings = Settings()
    _warn_missing(settings)

    async def main():
        assistant = build_assistant(settings)
        try:
            return await assistant.ask(message)
        finally:
            await assistant.close()

    reply = asyncio.run(main())
    typer.echo(reply.summary)


@cli.command()
def sources(
    query: Optional[str] = typer.Option(None, "--query", "-q", help="Show the sources selected for this query"),
    category: Optional[SourceCategory] = typer.Option(None, "--category", "-c", help="Filter by category"),
    stats: bool = typer.Option(False, "--stats", help="Print catalog statistics"),
):
    """List catalog sources."""
    settings = Settings()
    catalog = build_default_catalog()

    if stats:
        typer.echo(json.dumps(catalog.stats(), indent=2, ensure_ascii=False))
        return

    if query is not None:
        selector = SourceSelector(catalog, settings.min_source_reliability, settings.max_sources)
        selected = selector.select(query)
    elif category is not None:
        selected = catalog.by_category(category)
    else:
        selected = catalog.all()

    for source in selected:
        typer.echo(f"{source.reliability:.2f}  {source.category.value:<16} {source.name} ({source.url})")


@cli.command()
def run_api():
    """Run the API server."""
    settings = Settings()
    _warn_missing(settings)

    port = settings.get_port()
    logger.info(f"Starting API server on http://{settings.api_host}:{port}")
    logger.info(f"Health check: http://{settings.api_host}:{port}/health")

    async def main():
        try:
            await _run_api(settings)
        except KeyboardInterrupt:
            logger.info("Shutting down gracefully...")

    asyncio.run(main())


if __name__ == "__main__":
    cli()
