"""
cli.py — Click CLI entrypoint for the budget pipeline.

Usage:
    frbudget run --year 2025 --out public/data
    frbudget discover --year 2025
    frbudget --log-format json run --year 2024 --page-pause-ms 0
"""

from __future__ import annotations

import asyncio
import json

import click

from frbudget_pipeline.utils.logging import configure_logging, get_logger
from frbudget_shared.config import settings

log = get_logger(__name__)

_STATUS_MARK = {"live": "✓", "fallback": "⚠", "omitted": "✗"}


@click.group()
@click.option(
    "--log-level",
    default=settings.log_level,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Log level",
)
@click.option(
    "--log-format",
    default=settings.log_format,
    type=click.Choice(["json", "console"]),
    help="Log renderer",
)
def main(log_level: str, log_format: str) -> None:
    """French state budget pipeline (data.economie.gouv.fr)."""
    configure_logging(log_level, log_format)


@main.command()
@click.option("--year", required=True, type=click.IntRange(2000, 2100), help="Fiscal year")
@click.option("--out", "out_dir", default=settings.output_dir, show_default=True, help="Artifact directory")
@click.option("--domain", default=None, help="Opendatasoft portal root")
@click.option("--page-pause-ms", default=None, type=click.IntRange(min=0), help="Pause between record pages")
def run(year: int, out_dir: str, domain: str | None, page_pause_ms: int | None) -> None:
    """Discover, fetch, normalize and write every artifact of a fiscal year."""
    from frbudget_pipeline.pipelines import budget

    log.info("cli_run", year=year, out_dir=out_dir, domain=domain)
    try:
        result = asyncio.run(
            budget.run(year, out_dir=out_dir, domain=domain, pause_ms=page_pause_ms)
        )
    except OSError as exc:
        raise click.ClickException(f"cannot write artifacts to {out_dir}: {exc}") from exc

    click.echo(f"Budget {year} → {out_dir} ({result.status})")
    for track, status in result.tracks.items():
        click.echo(f"  {_STATUS_MARK[status]} {track:12s} {status}")
    for filename in result.outputs:
        click.echo(f"  wrote {filename}")


@main.command()
@click.option("--year", required=True, type=click.IntRange(2000, 2100), help="Fiscal year")
@click.option("--domain", default=None, help="Opendatasoft portal root")
def discover(year: int, domain: str | None) -> None:
    """Run catalog discovery only and print the trace as JSON."""
    from frbudget_pipeline.errors import DiscoveryFailure
    from frbudget_pipeline.pipelines.discovery import discover_datasets
    from frbudget_pipeline.sources.opendatasoft import OpendatasoftSource

    try:
        trace = asyncio.run(discover_datasets(year, OpendatasoftSource(domain)))
    except DiscoveryFailure as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(json.dumps(trace.to_json_dict(), ensure_ascii=False, indent=2))


if __name__ == "__main__":
    main()
