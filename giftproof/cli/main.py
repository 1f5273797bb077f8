"""
GiftProof Command Line Interface

Provides commands for committing a season's gifts, producing daily reveals,
and verifying them against the published commitment.
"""

import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import click
from dateutil import parser as date_parser

from giftproof.core.db import CommitmentStore
from giftproof.core.errors import GiftProofError
from giftproof.core.canonicalization import verify_canonical_equivalence
from giftproof.core.models import DEFAULT_BATCH_SIZE, Commitment
from giftproof.core.publisher import Publisher
from giftproof.core.schedule import RevealSchedule
from giftproof.core.verifier import Verifier
from giftproof.gifts import generate_sample_gift_list, load_gift_list

logger = logging.getLogger(__name__)

# Configure click
CONTEXT_SETTINGS = dict(help_option_names=['-h', '--help'])

db_option = click.option(
    '--db', 'db_path', envvar='GIFTPROOF_DB', default='giftproof.db', show_default=True,
    help='Path to the SQLite commitment store'
)
season_option = click.option(
    '--season', envvar='GIFTPROOF_SEASON', default='2025-season-1', show_default=True,
    help='Season identifier'
)
season_start_option = click.option(
    '--season-start', envvar='GIFTPROOF_SEASON_START', default='2025-12-01',
    show_default=True, help='Calendar date of day 1 (UTC)'
)


# Helper functions
def load_json(file_path: str) -> Any:
    """Load a JSON document from a file."""
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise click.ClickException(f"Error loading {file_path}: {e}")


def write_json(data: Dict[str, Any], file_path: Path) -> None:
    """Write a JSON document, creating parent directories."""
    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        with open(file_path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
    except OSError as e:
        raise click.ClickException(f"Error writing {file_path}: {e}")


def load_publisher(db_path: str, season: str) -> Publisher:
    return CommitmentStore(db_path).load_publisher(season)


def reveal_filename(day: int) -> str:
    return f"day-{day:02d}.json"


class GiftProofGroup(click.Group):
    """Turns domain errors into clean CLI failures."""

    def invoke(self, ctx):
        try:
            return super().invoke(ctx)
        except GiftProofError as e:
            logger.debug("Command failed", exc_info=True)
            raise click.ClickException(f"{type(e).__name__}: {e}")


# Command groups
@click.group(cls=GiftProofGroup, context_settings=CONTEXT_SETTINGS)
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
def cli(verbose: bool):
    """GiftProof - Commit-reveal Merkle commitments for daily gifts."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )


@cli.command()
@click.option('--output', '-o', required=True, help='Output file for the gift list')
@click.option('--days', default=DEFAULT_BATCH_SIZE, show_default=True, help='Number of days')
def sample(output: str, days: int):
    """Write a sample gift list."""
    write_json({'gifts': generate_sample_gift_list(days)}, Path(output))
    click.echo(f"Sample gift list with {days} gifts saved to {output}")


@cli.command()
@click.argument('gifts_file', type=click.Path(exists=True, dir_okay=False))
@db_option
@season_option
@click.option('--batch-size', default=DEFAULT_BATCH_SIZE, show_default=True,
              help='Fixed number of gifts in the season')
@click.option('--out-dir', '-o', default='data', show_default=True,
              help='Directory for the public commitment file')
@click.option('--private-out', help='Also write the private backup (records, salts) here')
@click.option('--created-at', help='Commitment timestamp (ISO-8601, default now)')
def commit(gifts_file: str, db_path: str, season: str, batch_size: int, out_dir: str,
           private_out: Optional[str], created_at: Optional[str]):
    """Commit a gift list: generate salts, build the tree, publish the root."""
    gifts = load_gift_list(gifts_file, batch_size)
    publisher = Publisher.commit(
        [gift.to_record() for gift in gifts],
        season=season,
        batch_size=batch_size,
        created_at=date_parser.isoparse(created_at) if created_at else None,
    )
    CommitmentStore(db_path).save_publisher(publisher)

    commitment_path = Path(out_dir) / 'commitment.json'
    write_json(publisher.commitment.to_public_dict(), commitment_path)
    if private_out:
        write_json(publisher.to_private_dict(), Path(private_out))
        click.echo(f"Private backup saved to {private_out}. Keep it offline until reveals.")

    click.echo(f"Saved public commitment to {commitment_path}")
    click.echo(f"Merkle root: {publisher.commitment.root}")


@cli.command()
@click.argument('day', type=int)
@db_option
@season_option
@click.option('--output', '-o', help='Write the reveal here instead of stdout')
def reveal(day: int, db_path: str, season: str, output: Optional[str]):
    """Publish the reveal for DAY and record it as disclosed."""
    store = CommitmentStore(db_path)
    publisher = store.load_publisher(season)
    day_reveal = publisher.reveal_day(day)
    store.mark_revealed(season, day_reveal.index)

    data = day_reveal.model_dump(mode='json')
    if output:
        write_json(data, Path(output))
        click.echo(f"Reveal for day {day} saved to {output}")
    else:
        click.echo(json.dumps(data, indent=2, ensure_ascii=False))


@cli.command('export-reveals')
@db_option
@season_option
@click.option('--out-dir', '-o', required=True, help='Private directory for the reveal files')
def export_reveals(db_path: str, season: str, out_dir: str):
    """Pre-generate every day's reveal file without marking any as disclosed."""
    publisher = load_publisher(db_path, season)
    for day_reveal in publisher.prepare_reveals():
        write_json(day_reveal.model_dump(mode='json'), Path(out_dir) / reveal_filename(day_reveal.day))
    click.echo(f"Generated {publisher.batch_size} reveal files in {out_dir}")


@cli.command()
@click.argument('reveal_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--commitment', '-c', 'commitment_file', required=True,
              type=click.Path(exists=True, dir_okay=False),
              help='The previously published commitment file')
def verify(reveal_file: str, commitment_file: str):
    """Verify a reveal against a published commitment."""
    commitment = Commitment.model_validate(load_json(commitment_file))
    result = Verifier(commitment).verify_reveal(load_json(reveal_file))

    click.echo(f"  Leaf recomputes:  {'✅' if result.leaf_matches else '❌'}")
    click.echo(f"  Proof folds:      {'✅' if result.proof_valid else '❌'}")
    click.echo(f"  Root matches:     {'✅' if result.root_matches else '❌'}")
    if result.valid:
        click.echo("✅ Reveal is part of the original commitment")
        sys.exit(0)
    click.echo(f"❌ {result.details}", err=True)
    sys.exit(1)


@cli.command('self-check')
@db_option
@season_option
def self_check(db_path: str, season: str):
    """Rebuild the stored tree and verify every index against it."""
    publisher = load_publisher(db_path, season)
    publisher.self_check()
    click.echo(f"✅ All {publisher.batch_size} proofs verify against {publisher.commitment.root}")


@cli.command()
@db_option
@season_option
@season_start_option
def status(db_path: str, season: str, season_start: str):
    """Show the commitment, which days have been revealed and which are due."""
    store = CommitmentStore(db_path)
    publisher = store.load_publisher(season)
    commitment = publisher.commitment

    click.echo(f"Season: {commitment.season}")
    click.echo(f"Root: {commitment.root}")
    click.echo(f"Created: {commitment.created_at.isoformat()}")
    click.echo(f"Batch size: {commitment.batch_size}")
    click.echo(f"State: {publisher.state.value}")
    revealed_days = sorted(index + 1 for index in publisher.revealed)
    click.echo(f"Revealed days: {', '.join(map(str, revealed_days)) or 'none'}")
    schedule = RevealSchedule(season_start, batch_size=commitment.batch_size)
    due_days = [day for day in schedule.revealable_days() if day not in revealed_days]
    click.echo(f"Due for reveal: {', '.join(map(str, due_days)) or 'none'}")


@cli.command()
@click.argument('gifts_file', type=click.Path(exists=True, dir_okay=False))
@db_option
@season_option
def align(gifts_file: str, db_path: str, season: str):
    """Check that a gift list file matches the committed records."""
    publisher = load_publisher(db_path, season)
    gifts = load_gift_list(gifts_file, publisher.batch_size)
    store = CommitmentStore(db_path)

    mismatched = []
    for gift in gifts:
        row = store.get_gift_row(season, gift.day - 1)
        if row is None:
            click.echo(f"Day {gift.day:02d}: ❌ missing in store")
            mismatched.append(gift.day)
            continue
        if verify_canonical_equivalence(gift.to_record(), row['record']):
            click.echo(f"Day {gift.day:02d}: ✅ aligned")
        else:
            click.echo(f"Day {gift.day:02d}: ❌ differs from committed record")
            mismatched.append(gift.day)

    if mismatched:
        raise click.ClickException(f"{len(mismatched)} day(s) out of alignment: {mismatched}")
    click.echo(f"All {len(gifts)} gifts aligned with the commitment")


@cli.command()
@db_option
@season_option
@click.option('--host', default='0.0.0.0', show_default=True, help='Host to bind to')
@click.option('--port', default=3001, show_default=True, help='Port to listen on')
@season_start_option
@click.option('--debug', is_flag=True, help='Enable debug mode')
def serve(db_path: str, season: str, host: str, port: int, season_start: str, debug: bool):
    """Run the reveal server."""
    from reveal_server import run_server

    click.echo(f"Starting reveal server on {host}:{port} for season {season}")
    run_server(host=host, port=port, debug=debug, test_config={
        'DATABASE': db_path,
        'SEASON': season,
        'SEASON_START': season_start,
    })


# Main entry point
if __name__ == '__main__':
    cli()
