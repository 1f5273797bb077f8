"""Shared fixtures for the giftproof test suite."""

from datetime import datetime, timezone

import pytest

from giftproof.core.db import CommitmentStore
from giftproof.core.publisher import Publisher
from giftproof.gifts import generate_sample_gift_list

SEASON = "test-season"
CREATED_AT = datetime(2025, 11, 30, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def records():
    """Twenty-four sample gift records in committed order."""
    return generate_sample_gift_list(24)


@pytest.fixture
def publisher(records):
    return Publisher.commit(records, season=SEASON, created_at=CREATED_AT)


@pytest.fixture
def store():
    store = CommitmentStore(":memory:")
    yield store
    store.close()


@pytest.fixture
def stored_publisher(store, publisher):
    store.save_publisher(publisher)
    return publisher
