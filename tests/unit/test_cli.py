"""Tests for the giftproof command line interface."""

import json

import pytest
from click.testing import CliRunner

from giftproof.cli.main import cli


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def workspace(tmp_path, runner):
    """A committed season in a file-backed store."""
    gifts = tmp_path / 'gifts.json'
    db = tmp_path / 'giftproof.db'
    result = runner.invoke(cli, ['sample', '-o', str(gifts)])
    assert result.exit_code == 0, result.output

    result = runner.invoke(cli, [
        'commit', str(gifts),
        '--db', str(db),
        '--season', 's1',
        '--out-dir', str(tmp_path / 'data'),
        '--private-out', str(tmp_path / 'secrets' / 'private.json'),
        '--created-at', '2025-11-30T00:00:00Z',
    ])
    assert result.exit_code == 0, result.output
    return tmp_path


def base_args(workspace):
    return ['--db', str(workspace / 'giftproof.db'), '--season', 's1']


def test_commit_outputs(workspace) -> None:
    commitment = json.loads((workspace / 'data' / 'commitment.json').read_text(encoding='utf-8'))
    private = json.loads((workspace / 'secrets' / 'private.json').read_text(encoding='utf-8'))
    assert commitment['root'] == private['root']
    assert commitment['created_at'] == '2025-11-30T00:00:00Z'
    assert 'salts' not in commitment
    assert len(private['salts']) == 24


def test_commit_twice_fails(workspace, runner) -> None:
    result = runner.invoke(cli, ['commit', str(workspace / 'gifts.json'), *base_args(workspace),
                                 '--out-dir', str(workspace / 'data')])
    assert result.exit_code == 1
    assert 'CommitmentExists' in result.output


def test_reveal_and_verify(workspace, runner) -> None:
    reveal_path = workspace / 'reveals' / 'day-03.json'
    result = runner.invoke(cli, ['reveal', '3', *base_args(workspace), '-o', str(reveal_path)])
    assert result.exit_code == 0, result.output

    result = runner.invoke(cli, ['verify', str(reveal_path),
                                 '--commitment', str(workspace / 'data' / 'commitment.json')])
    assert result.exit_code == 0, result.output
    assert 'part of the original commitment' in result.output

    result = runner.invoke(cli, ['status', *base_args(workspace)])
    assert 'partially_revealed' in result.output
    assert 'Revealed days: 3' in result.output


def test_verify_detects_tampering(workspace, runner) -> None:
    reveal_path = workspace / 'day-01.json'
    runner.invoke(cli, ['reveal', '1', *base_args(workspace), '-o', str(reveal_path)])
    data = json.loads(reveal_path.read_text(encoding='utf-8'))
    data['record']['params']['min_balance'] = 1
    reveal_path.write_text(json.dumps(data), encoding='utf-8')

    result = runner.invoke(cli, ['verify', str(reveal_path),
                                 '--commitment', str(workspace / 'data' / 'commitment.json')])
    assert result.exit_code == 1
    assert 'Leaf hash does not match' in result.output


def test_reveal_out_of_range(workspace, runner) -> None:
    result = runner.invoke(cli, ['reveal', '25', *base_args(workspace)])
    assert result.exit_code == 1
    assert 'IndexOutOfRange' in result.output


def test_export_reveals(workspace, runner) -> None:
    out_dir = workspace / 'private-reveals'
    result = runner.invoke(cli, ['export-reveals', *base_args(workspace), '-o', str(out_dir)])
    assert result.exit_code == 0, result.output
    assert len(list(out_dir.glob('day-*.json'))) == 24
    assert (out_dir / 'day-24.json').exists()

    result = runner.invoke(cli, ['status', *base_args(workspace)])
    assert 'Revealed days: none' in result.output


def test_self_check(workspace, runner) -> None:
    result = runner.invoke(cli, ['self-check', *base_args(workspace)])
    assert result.exit_code == 0, result.output
    assert 'All 24 proofs verify' in result.output


def test_align(workspace, runner) -> None:
    gifts_path = workspace / 'gifts.json'
    result = runner.invoke(cli, ['align', str(gifts_path), *base_args(workspace)])
    assert result.exit_code == 0, result.output

    gifts = json.loads(gifts_path.read_text(encoding='utf-8'))
    gifts['gifts'][9]['notes'] = 'edited after commit'
    gifts_path.write_text(json.dumps(gifts), encoding='utf-8')
    result = runner.invoke(cli, ['align', str(gifts_path), *base_args(workspace)])
    assert result.exit_code == 1
    assert 'Day 10: ❌' in result.output


def test_env_config(workspace, runner) -> None:
    result = runner.invoke(cli, ['status'], env={
        'GIFTPROOF_DB': str(workspace / 'giftproof.db'),
        'GIFTPROOF_SEASON': 's1',
    })
    assert result.exit_code == 0, result.output
    assert 'Season: s1' in result.output


def test_unknown_season(workspace, runner) -> None:
    result = runner.invoke(cli, ['status', '--db', str(workspace / 'giftproof.db'), '--season', 'nope'])
    assert result.exit_code == 1
    assert 'CommitmentNotFound' in result.output


def test_status_lists_days_due(workspace, runner) -> None:
    runner.invoke(cli, ['reveal', '2', *base_args(workspace)])

    result = runner.invoke(cli, ['status', *base_args(workspace), '--season-start', '2000-01-01'])
    assert result.exit_code == 0, result.output
    due = ', '.join(str(day) for day in range(1, 25) if day != 2)
    assert f'Due for reveal: {due}' in result.output

    result = runner.invoke(cli, ['status', *base_args(workspace), '--season-start', '2999-01-01'])
    assert 'Due for reveal: none' in result.output
