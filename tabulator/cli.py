"""
Command line interface.

Usage:
    tabulator watch --competition-id 1
    tabulator rankings --competition-id 1 --segment-id swimsuit
    tabulator serve --port 8000
"""

import asyncio
import logging
import sys
from typing import Optional

import click

from tabulator.config import settings


def _setup_logging():
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout),
        ]
    )


@click.group()
def cli():
    """Judging tabulator tools."""
    pass


# =============================================================================
# watch
# =============================================================================

@cli.command()
@click.option("--competition-id", required=True, type=int, help="Competition to follow")
@click.option("--base-url", default=None, help="Tabulator API base URL")
@click.option("--interval", default=None, type=float, help="Seconds between polls")
def watch(competition_id, base_url, interval):
    """
    Follow a competition's scores live.

    Polls the scores API and prints every changed score.
    """
    _setup_logging()
    try:
        asyncio.run(_run_watch(competition_id, base_url, interval))
    except KeyboardInterrupt:
        click.echo("Stopped.")


async def _run_watch(competition_id: int, base_url: Optional[str], interval: Optional[float]):
    """Async implementation of watch command."""
    from tabulator.features.sync import LedgerPoller, ScoresClient, SyncOutcome

    client = ScoresClient(base_url=base_url)

    def on_sync(outcome: SyncOutcome):
        click.echo(f"[{outcome.mode.value}] {len(outcome.changes)} changes")
        for change in outcome.changes:
            old = "-" if change.old_score is None else f"{change.old_score:g}"
            click.echo(
                f"  {change.segment_id} / {change.contestant_id} / {change.judge_id} / "
                f"{change.criterion_id}: {old} → {change.new_score:g}"
            )

    poller = LedgerPoller(competition_id, fetcher=client.fetch_snapshot, interval=interval, on_sync=on_sync)
    click.echo(f"Watching competition {competition_id} at {client.base_url} (Ctrl+C to stop)")

    await poller.start()
    try:
        await asyncio.Event().wait()
    finally:
        await poller.stop()
        await client.close()


# =============================================================================
# rankings
# =============================================================================

@cli.command()
@click.option("--competition-id", default=None, type=int, help="Competition ID (default: the active one)")
@click.option("--segment-id", required=True, help="Segment to rank")
def rankings(competition_id, segment_id):
    """Print the ranking table of a segment from the local database."""
    _setup_logging()
    asyncio.run(_run_rankings(competition_id, segment_id))


async def _run_rankings(competition_id: Optional[int], segment_id: str):
    """Async implementation of rankings command."""
    from tabulator.db.session import AsyncSessionLocal, dispose_db
    from tabulator.features.competitions.repository import CompetitionRepository
    from tabulator.features.rankings import compute_rankings
    from tabulator.features.scores.service import ScoreService
    from tabulator.shared.exceptions import CompetitionNotFoundError

    try:
        async with AsyncSessionLocal() as session:
            repo = CompetitionRepository(session)
            if competition_id is None:
                active = await repo.get_active()
                if active is None:
                    raise click.ClickException("No active competition, pass --competition-id")
                competition_id = active.id
            try:
                roster = await repo.load_roster(competition_id)
            except CompetitionNotFoundError as e:
                raise click.ClickException(str(e))
            snapshot = await ScoreService(session).load_snapshot(competition_id)
    finally:
        await dispose_db()

    segment = roster.config.get_segment(segment_id)
    if segment is None:
        raise click.ClickException(f"Segment not found: {segment_id}")

    table = compute_rankings(roster.contestants, roster.judges, snapshot, segment_id, roster.config)
    names = {c.id: c.name for c in roster.contestants}

    click.echo(f"{roster.name} - {segment.name or segment.id} ({len(snapshot)} scores)")
    click.echo()
    if not table:
        click.echo("No contestants to rank.")
        return

    click.echo(f"{'Rank':>4}  {'Score':>8}  {'Group':<12} Contestant")
    click.echo("-" * 48)
    for entry in table.values():
        name = names.get(entry.contestant_id) or entry.contestant_id
        click.echo(f"{entry.rank:>4}  {entry.aggregate_score:>8.2f}  {entry.group:<12} {name}")


# =============================================================================
# serve
# =============================================================================

@cli.command()
@click.option("--host", default="127.0.0.1", help="Bind address")
@click.option("--port", default=8000, type=int, help="Port")
@click.option("--reload", is_flag=True, help="Reload on code changes")
def serve(host, port, reload):
    """Run the API server."""
    import uvicorn

    uvicorn.run("tabulator.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    cli()
