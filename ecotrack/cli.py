# -*- coding: utf-8 -*-
"""
EcoTrack CLI
====================

Command line access to the EcoTrack core: parse activity messages, list
emission factors, and check badges or summarise an exported activity log.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ecotrack import __version__
from ecotrack.clock import as_aware
from ecotrack.exceptions import EcoTrackException
from ecotrack.models import ActivityCategory, AnalysisStatus
from ecotrack.service import EcoTrackService, InMemoryLogRepository

app = typer.Typer(
    name="ecotrack",
    help="EcoTrack: carbon footprint tracking from plain-language activity logs",
    no_args_is_help=True,
    add_completion=False,
)
console = Console()


@app.callback()
def _root(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
):
    """
    EcoTrack - carbon footprint tracking core
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _service() -> EcoTrackService:
    try:
        return EcoTrackService()
    except EcoTrackException as e:
        console.print(f"[red][FAIL][/red] {e.message}")
        raise typer.Exit(1)


def _load_log(log_file: Path) -> InMemoryLogRepository:
    try:
        return InMemoryLogRepository.from_file(log_file)
    except EcoTrackException as e:
        console.print(f"[red][FAIL][/red] {e.message}")
        raise typer.Exit(1)


@app.command()
def version():
    """Show EcoTrack version"""
    console.print(f"[bold green]EcoTrack v{__version__}[/bold green]")


@app.command()
def parse(
    text: str = typer.Argument(..., help="Activity message, e.g. 'I drove 10 km to work'"),
    as_json: bool = typer.Option(False, "--json", help="Print the full result as JSON"),
):
    """Parse an activity message and calculate its emission"""
    result = _service().analyze(text)

    if as_json:
        console.print_json(result.model_dump_json())
        if result.status != AnalysisStatus.CALCULATED:
            raise typer.Exit(1)
        return

    if result.status == AnalysisStatus.NO_MATCH:
        console.print(f"[yellow][WARN][/yellow] {result.message}")
        for suggestion in result.suggestions:
            console.print(f"  - {suggestion}")
        raise typer.Exit(1)

    if result.status != AnalysisStatus.CALCULATED:
        console.print(f"[red][FAIL][/red] {result.message}")
        raise typer.Exit(1)

    analysis = result.analysis
    console.print(f"[bold]{analysis.formatted_text}[/bold]")
    console.print(
        f"[blue][INFO][/blue] {analysis.category.value}/{analysis.activity}: "
        f"{analysis.amount:g} {analysis.unit} "
        f"(impact {analysis.impact_tier.value}, confidence {analysis.confidence:.2f})"
    )
    for comparison in analysis.comparisons:
        console.print(f"  ≈ {comparison}")
    if analysis.suggestion_text:
        console.print(analysis.suggestion_text)


@app.command()
def factors(
    category: Optional[ActivityCategory] = typer.Option(
        None, "--category", "-c", help="Only list one category",
    ),
):
    """List emission factors"""
    service = _service()

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Category", style="cyan")
    table.add_column("Activity", style="green")
    table.add_column("kg CO2e / unit", justify="right")
    table.add_column("Unit")
    table.add_column("Impact")

    for factor in service.table.activities(category):
        table.add_row(
            factor.category.value,
            factor.activity,
            f"{factor.factor_per_unit:g}",
            factor.canonical_unit,
            service.table.impact_tier(factor.activity).value,
        )

    console.print(table)
    console.print(f"[blue][INFO][/blue] Table version: {service.table.version}")


@app.command()
def badges(
    log_file: Path = typer.Argument(..., help="YAML/JSON list of activity log entries"),
    user: Optional[str] = typer.Option(None, "--user", "-u", help="Only check one user"),
    as_of: Optional[datetime] = typer.Option(
        None, "--as-of", help="Evaluation time (UTC when no offset is given)",
    ),
):
    """Check badge progress for the users in an activity log"""
    service = _service()
    repository = _load_log(log_file)
    now = as_aware(as_of) if as_of else None

    users = [user] if user else repository.user_ids()
    if not users:
        console.print("[yellow][WARN][/yellow] No log entries found")
        return

    for user_id in users:
        result = service.check_badges(user_id, repository, now=now)

        table = Table(title=f"Badges for {user_id}", show_header=True, header_style="bold magenta")
        table.add_column("Badge", style="cyan")
        table.add_column("Progress", justify="right")
        table.add_column("%", justify="right")
        table.add_column("Status")

        for badge in service.badges.catalogue.active():
            record = result.progress[badge.badge_id]
            status = "[green]unlocked[/green]" if record.unlocked else "locked"
            table.add_row(
                f"{badge.icon} {badge.name}",
                f"{record.current:g}/{record.target:g}",
                f"{record.percentage:.0f}",
                status,
            )

        console.print(table)
        points = service.badges.total_points(result.progress)
        console.print(f"[blue][INFO][/blue] Total points: {points}")


@app.command()
def summary(
    log_file: Path = typer.Argument(..., help="YAML/JSON list of activity log entries"),
    user: Optional[str] = typer.Option(None, "--user", "-u", help="Only summarise one user"),
):
    """Summarise emissions and savings in an activity log"""
    service = _service()
    repository = _load_log(log_file)

    for user_id in ([user] if user else repository.user_ids()):
        result = service.summarize(user_id, repository)
        console.print(f"[bold]{user_id}[/bold]: {result.entry_count} entries")
        console.print(f"  Emitted: {result.total_emissions:.1f} kg CO₂")
        console.print(f"  Saved:   {result.total_savings:.1f} kg CO₂")
        for category, value in sorted(result.category_breakdown.items()):
            console.print(f"  {category}: {value:.1f} kg")
        if result.top_emitters:
            console.print(f"  Top emitters: {', '.join(result.top_emitters)}")
        for achievement in result.achievements:
            console.print(f"  {achievement.icon} {achievement.name} - {achievement.description}")


def main():
    """Main entry point for the CLI"""
    app()


if __name__ == "__main__":
    main()
