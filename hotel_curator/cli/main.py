"""Command line entry point for operating Hotel_Curator."""
import asyncio
import json
from typing import Any

import click

from hotel_curator.curation.runs import SeedRunTracker, default_request, execute_seed_run
from hotel_curator.exceptions import CuratorError
from hotel_curator.schemas.curation import SeedRunView
from hotel_curator.schemas.search import SearchResult
from hotel_curator.search.orchestrator import SearchOrchestrator
from hotel_curator.utils.config import ensure_runtime_configuration, get_settings
from hotel_curator.vendor.gateway import VendorGateway


def print_run(run: SeedRunView) -> None:
    """Print formatted summary of a seed run."""
    click.echo("\n" + "=" * 60)
    click.echo(f"SEED RUN {run.id}")
    click.echo("=" * 60)
    click.echo(f"  Mode:          {run.mode}")
    click.echo(f"  Status:        {run.status}")
    click.echo(f"  Stage:         {run.stage}")
    click.echo(f"  Seeded:        {run.seeded_count}")
    if run.inserted_count is not None:
        click.echo(f"  Inserted:      {run.inserted_count}")
        click.echo(f"  Updated:       {run.updated_count}")
    if run.aborted_early is not None:
        click.echo(f"  Aborted early: {run.aborted_early}")
    if run.per_group_counts:
        click.echo("\n  Per group:")
        for group, count in sorted(run.per_group_counts.items()):
            click.echo(f"    {group:<16} {count}")
    if run.last_error:
        click.echo("\n  Error:")
        for key, value in run.last_error.items():
            click.echo(f"    {key}: {value}")
    click.echo("=" * 60 + "\n")


def print_search(result: SearchResult) -> None:
    """Print the nationality attempts and the result count of a search."""
    click.echo(f"\nRequested nationality: {result.nationality_requested}")
    click.echo(f"Used nationality:      {result.nationality_used or '-'}")
    click.echo(f"Fallback hit:          {result.fallback_hit}")
    click.echo("\nAttempts:")
    for attempt in result.attempts:
        click.echo(
            f"  {attempt.nationality_code}: status={attempt.upstream_status} "
            f"results={attempt.result_count} elapsed={attempt.elapsed_ms}ms"
            + (f" error={attempt.error_code}" if attempt.error_code is not None else "")
        )
    click.echo(f"\n{result.count} hotels returned\n")


def _emit(payload: Any, output_json: bool, printer: Any) -> None:
    if output_json:
        click.echo(json.dumps(payload.model_dump(mode="json"), indent=2))
    else:
        printer(payload)


@click.group()
def cli() -> None:
    """Hotel_Curator operator commands."""


@cli.command()
@click.option(
    "--mode",
    type=click.Choice(["fast_stream", "from_hotellist"]),
    default="fast_stream",
    show_default=True,
    help="Stream the catalog with caps, or fetch it whole and sample per city",
)
@click.option(
    "--countries",
    default=None,
    help="Comma-separated country codes overriding the configured list",
)
@click.option("--json", "output_json", is_flag=True, help="Output the run as JSON")
def seed(mode: str, countries: str | None, output_json: bool) -> None:
    """
    Run one curated seed in this process and print its summary.

    Examples:

        # Stream the catalog with the configured caps
        hotel-curator seed

        # Buffered seed limited to two countries
        hotel-curator seed --mode from_hotellist --countries AE,GB
    """
    try:
        settings = ensure_runtime_configuration(get_settings())
    except CuratorError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise click.Abort()

    overrides: dict[str, Any] = {}
    if countries:
        overrides["countries"] = [code.strip().upper() for code in countries.split(",") if code.strip()]

    async def run() -> SeedRunView | None:
        tracker = SeedRunTracker(stale_after_seconds=settings.curation.run_stale_seconds)
        created = await tracker.create(mode, default_request(mode, settings, **overrides))  # type: ignore[arg-type]
        return await execute_seed_run(created.id, settings=settings)

    view = asyncio.run(run())
    if view is None:
        click.echo("Error: seed run disappeared before it finished", err=True)
        raise click.Abort()
    _emit(view, output_json, print_run)
    if view.status == "error":
        raise SystemExit(1)


@cli.command()
@click.option("--hotel-id", "hotel_ids", multiple=True, required=True, help="Vendor hotel id (repeatable)")
@click.option("--checkin", required=True, type=click.DateTime(formats=["%Y-%m-%d"]))
@click.option("--checkout", required=True, type=click.DateTime(formats=["%Y-%m-%d"]))
@click.option("--nationality", required=True, help="Two-letter nationality code")
@click.option("--adults", default=2, show_default=True, type=int)
@click.option("--children", default=0, show_default=True, type=int)
@click.option("--sweep/--no-sweep", default=None, help="Try fallback nationalities on no results")
@click.option("--json", "output_json", is_flag=True, help="Output the result as JSON")
def search(
    hotel_ids: tuple[str, ...],
    checkin: Any,
    checkout: Any,
    nationality: str,
    adults: int,
    children: int,
    sweep: bool | None,
    output_json: bool,
) -> None:
    """Search availability for one room and print the attempts."""

    async def run() -> SearchResult:
        orchestrator = SearchOrchestrator(VendorGateway())
        try:
            return await orchestrator.search(
                list(hotel_ids),
                checkin.date(),
                checkout.date(),
                [{"adt": adults, "chd": children}],
                nationality,
                sweep_enabled=sweep,
            )
        finally:
            await orchestrator.drain()

    try:
        result = asyncio.run(run())
    except CuratorError as exc:
        click.echo(f"Error ({exc.code}): {exc}", err=True)
        raise click.Abort()
    _emit(result, output_json, print_search)


@cli.command()
@click.option("--json", "output_json", is_flag=True, help="Output the run as JSON")
def runs(output_json: bool) -> None:
    """Show the most recent seed run."""

    view = asyncio.run(SeedRunTracker().latest())
    if view is None:
        click.echo("No seed runs recorded.")
        return
    _emit(view, output_json, print_run)


if __name__ == "__main__":
    cli()
