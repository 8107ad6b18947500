"""
Command-line interface for the NFL briefing aggregator.

Uses Typer to expose one aggregation run with overrides for the most
common settings. Loads a .env file for API key configuration.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
import typer

from .adapters import available_adapters
from .aggregator import build_enhancer, get_categorized_results
from .config import CATEGORIES, load_config
from .llm import available_providers
from .logging_utils import setup_llm_logger, setup_logging
from .types import CategorizedResults

app = typer.Typer(add_completion=False)
console = Console()

_HEADINGS = {
    "injury": "Injuries",
    "roster": "Roster Moves",
    "breaking": "Breaking",
}


@app.command()
def run(
    config: Path | None = typer.Option(None, "--config", "-c", exists=True, readable=True),
    run_label: str = typer.Option("morning", "--run-label", "-r", help="morning, afternoon or evening."),
    lookback: int | None = typer.Option(None, "--lookback", help="Override the base lookback in hours."),
    as_json: bool = typer.Option(False, "--json/--no-json", help="Print the raw result as JSON."),
    log_level: str | None = typer.Option(None, "--log-level", help="Logging level."),
    log_dir: Path | None = typer.Option(
        None, "--log-dir", help="Directory for JSONL run and LLM logs (enables file logging)."
    ),
    no_enhance: bool = typer.Option(False, "--no-enhance", help="Disable LLM enhancement for this run."),
    api_key: str | None = typer.Option(
        None,
        "--api-key",
        help="Override provider API key (or set GOOGLE_API_KEY / .env).",
    ),
):
    """Aggregate the current injury, roster and breaking news.

    Args:
        config: Optional path to YAML config file
        run_label: Schedule slot selecting the lookback windows
        lookback: Base lookback override in hours
        as_json: Print JSON instead of the formatted briefing
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_dir: Directory for log files
        no_enhance: Skip the enhancement collaborator entirely
        api_key: Override LLM provider API key
    """
    load_dotenv()

    cfg = load_config(str(config) if config else None)

    if api_key:
        cfg.provider.api_key = api_key
    if log_level:
        cfg.logging.level = log_level
    if log_dir is not None:
        cfg.logging.file = True
    if no_enhance:
        cfg.enhancement.enabled = False
    if as_json:
        # Keep stdout clean for the JSON document.
        cfg.logging.console = False

    setup_logging(cfg.logging, log_dir)
    llm_logger = setup_llm_logger(cfg.logging, log_dir)
    enhancer = build_enhancer(cfg, llm_logger)

    results = asyncio.run(
        get_categorized_results(
            lookback_hours_override=lookback,
            run_label=run_label,
            cfg=cfg,
            enhancer=enhancer,
        )
    )

    if as_json:
        typer.echo(json.dumps(results.as_dict(), ensure_ascii=False, indent=2))
    else:
        print_results(results)


@app.command()
def sources():
    """List the registered source adapters and enhancement providers."""
    console.print("Adapters: " + ", ".join(available_adapters()))
    console.print("Providers: " + ", ".join(available_providers()))


def print_results(results: CategorizedResults) -> None:
    for category in CATEGORIES:
        result = results.get(category)
        console.print(f"[bold]{_HEADINGS.get(category, category)}[/bold] [dim](source: {escape(result.source)})[/dim]")
        if not result.bullets:
            console.print("  [dim]No updates.[/dim]")
        for bullet in result.bullets:
            console.print(f"  • {escape(bullet)}")
        if result.overflow:
            console.print(f"  [dim]+{result.overflow} more[/dim]")
        console.print()
    if results.fallbacks_used:
        console.print("[dim]Fallbacks: " + escape("; ".join(results.fallbacks_used)) + "[/dim]")


if __name__ == "__main__":
    app()
