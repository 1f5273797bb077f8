"""Tests for the reveal server."""

from datetime import datetime, timezone

import pytest

from giftproof.core.models import Commitment
from giftproof.core.verifier import Verifier
from reveal_server import create_app

NOW = datetime(2025, 12, 5, 12, 0, tzinfo=timezone.utc)


def make_app(store, **overrides):
    config = {
        'TESTING': True,
        'STORE': store,
        'SEASON': 'test-season',
        'SEASON_START': '2025-12-01',
        'BATCH_SIZE': 24,
        'ALLOW_FUTURE_REVEALS': False,
        'MERKLE_ROOT': None,
        'CLOCK': lambda: NOW,
    }
    config.update(overrides)
    return create_app(config)


@pytest.fixture
def client(store, stored_publisher):
    return make_app(store).test_client()


def test_health(client) -> None:
    response = client.get('/health')
    assert response.status_code == 200
    assert response.json['status'] == 'healthy'
    assert response.json['timestamp'] == '2025-12-05T12:00:00Z'


def test_commitment(client, stored_publisher) -> None:
    response = client.get('/commitment')
    assert response.status_code == 200
    assert response.json['commitment']['root'] == stored_publisher.commitment.root
    assert response.json['state'] == 'committed'
    assert response.json['revealed_days'] == []


def test_past_day_is_revealed(client, stored_publisher) -> None:
    response = client.get('/reveals/day-04')
    assert response.status_code == 200
    data = response.json
    assert data['day'] == 4 and data['index'] == 3
    assert Verifier(stored_publisher.commitment).verify_reveal(data).valid

    commitment = client.get('/commitment').json
    assert commitment['state'] == 'partially_revealed'
    assert commitment['revealed_days'] == [4]


def test_current_day_shows_hint(client) -> None:
    response = client.get('/reveals/day-05')
    assert response.status_code == 200
    assert response.json['hint_only'] is True
    assert response.json['hint'] == 'Mystery Gift'
    assert 'salt' not in response.json


def test_future_day_is_locked(client) -> None:
    response = client.get('/reveals/day-06')
    assert response.status_code == 403
    assert response.json['error'] == 'not_revealed'


def test_allow_future_reveals(store, stored_publisher) -> None:
    client = make_app(store, ALLOW_FUTURE_REVEALS=True).test_client()
    assert client.get('/reveals/day-24').status_code == 200


@pytest.mark.parametrize('day', ['5', '005', 'ab', '00', '25'])
def test_bad_day(client, day) -> None:
    response = client.get(f'/reveals/day-{day}')
    assert response.status_code == 400
    assert response.json['error'] == 'bad_request'


def test_verify_endpoint(client, stored_publisher) -> None:
    reveal = client.get('/reveals/day-02').json
    response = client.post('/verify', json=reveal)
    assert response.status_code == 200
    assert response.json['valid'] is True

    reveal['record']['notes'] = 'changed'
    response = client.post('/verify', json=reveal)
    assert response.json['valid'] is False
    assert response.json['failed_checks'] == ['leaf']


def test_verify_requires_json_object(client) -> None:
    response = client.post('/verify', data='nope', content_type='text/plain')
    assert response.status_code == 400


def test_unknown_season(store) -> None:
    client = make_app(store, SEASON='missing').test_client()
    response = client.get('/commitment')
    assert response.status_code == 404
    assert response.json['error'] == 'CommitmentNotFound'


def test_pinned_root_mismatch(store, stored_publisher) -> None:
    client = make_app(store, MERKLE_ROOT='f' * 64).test_client()
    assert client.get('/commitment').status_code == 500

    client = make_app(store, MERKLE_ROOT=stored_publisher.commitment.root).test_client()
    commitment = Commitment.model_validate(client.get('/commitment').json['commitment'])
    assert commitment.root == stored_publisher.commitment.root


def test_commitment_state_matches_publisher(store, stored_publisher) -> None:
    client = make_app(store, ALLOW_FUTURE_REVEALS=True).test_client()
    for day in range(1, 25):
        assert client.get(f'/reveals/day-{day:02d}').status_code == 200
    data = client.get('/commitment').json
    assert data['state'] == store.load_publisher('test-season').state.value == 'fully_revealed'
    assert data['revealed_days'] == list(range(1, 25))
