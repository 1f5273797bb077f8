"""Tests for the SQLite commitment store."""

import pytest

from giftproof.core.db import CommitmentStore
from giftproof.core.errors import CommitmentExists, CommitmentMismatch, CommitmentNotFound
from giftproof.core.models import BatchState


def test_save_and_load(store, stored_publisher) -> None:
    assert store.list_seasons() == ["test-season"]
    assert store.get_commitment("test-season") == stored_publisher.commitment

    loaded = store.load_publisher("test-season")
    assert loaded.commitment.root == stored_publisher.commitment.root
    assert loaded.reveal(7) == stored_publisher.reveal(7)


def test_save_twice_rejected(store, stored_publisher) -> None:
    with pytest.raises(CommitmentExists):
        store.save_publisher(stored_publisher)


def test_missing_season(store) -> None:
    with pytest.raises(CommitmentNotFound):
        store.get_commitment("nope")
    with pytest.raises(CommitmentNotFound):
        store.load_publisher("nope")


def test_gift_row(store, stored_publisher, records) -> None:
    row = store.get_gift_row("test-season", 3)
    assert row["day"] == 4
    assert row["record"] == records[3]
    assert row["proof"] == stored_publisher.reveal(3).proof
    assert store.get_gift_row("test-season", 24) is None


def test_mark_revealed(store, stored_publisher) -> None:
    assert store.mark_revealed("test-season", 2)
    assert not store.mark_revealed("test-season", 2)
    assert store.revealed_indices("test-season") == {2}
    assert store.load_publisher("test-season").state is BatchState.PARTIALLY_REVEALED


def test_revealed_indices_saved_with_publisher(store, publisher) -> None:
    publisher.reveal(0)
    store.save_publisher(publisher)
    assert store.revealed_indices("test-season") == {0}


def test_tampered_row_detected(store, stored_publisher) -> None:
    with store._get_connection() as conn:
        conn.execute(
            "UPDATE gift_spec SET salt = ? WHERE season = ? AND idx = 0",
            ("ab" * 32, "test-season"),
        )
    with pytest.raises(CommitmentMismatch):
        store.load_publisher("test-season")


def test_file_backed_store(tmp_path, publisher) -> None:
    path = tmp_path / "giftproof.db"
    CommitmentStore(path).save_publisher(publisher)
    reopened = CommitmentStore(path)
    assert reopened.load_publisher("test-season").commitment.root == publisher.commitment.root
