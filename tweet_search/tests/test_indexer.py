"""
Tests for index management and bulk upserts.
"""
from datetime import datetime, timezone

import pytest
from unittest.mock import Mock, patch
from opensearchpy.exceptions import OpenSearchException

from tweet_search.errors import StoreUnavailable
from tweet_search.indexer import TweetIndexer, index_body
from tweet_search.schemas import TweetRecord
from tweet_search.store import TEXT_ANALYZER


@pytest.fixture
def mock_settings():
    """Mock settings."""
    settings = Mock()
    settings.OPENSEARCH_INDEX = "tweets"
    settings.STORE_TIMEOUT_S = 30
    settings.EMBED_DIM = 1536
    return settings


@pytest.fixture
def client():
    return Mock()


@pytest.fixture
def indexer(mock_settings, client):
    return TweetIndexer(mock_settings, client=client)


def make_record(tweet_id):
    return TweetRecord(
        tweet_id=tweet_id,
        created_at=datetime(2024, 3, 1, 12, tzinfo=timezone.utc),
        text=f"texto {tweet_id}",
        lang="es",
    )


def test_index_body():
    body = index_body(1536)
    props = body["mappings"]["properties"]

    assert props["embedding"]["dimension"] == 1536
    assert props["embedding"]["method"]["space_type"] == "cosinesimil"
    assert props["text"]["analyzer"] == TEXT_ANALYZER
    assert "asciifolding" in body["settings"]["analysis"]["analyzer"][TEXT_ANALYZER]["filter"]


def test_create_index_when_missing(indexer, client):
    client.indices.exists.return_value = False

    assert indexer.create_index() is True
    client.indices.create.assert_called_once()
    assert client.indices.create.call_args[1]["index"] == "tweets"
    client.indices.delete.assert_not_called()


def test_create_index_existing(indexer, client):
    client.indices.exists.return_value = True

    assert indexer.create_index() is False
    client.indices.create.assert_not_called()


def test_create_index_force(indexer, client):
    client.indices.exists.return_value = True

    assert indexer.create_index(force=True) is True
    client.indices.delete.assert_called_once_with(index="tweets")
    client.indices.create.assert_called_once()


def test_create_index_failure(indexer, client):
    client.indices.exists.side_effect = OpenSearchException("cluster down")

    with pytest.raises(StoreUnavailable):
        indexer.create_index()


@patch("tweet_search.indexer.helpers.bulk")
def test_bulk_upsert_actions(mock_bulk, indexer, client):
    captured = []

    def fake_bulk(os_client, actions, **kwargs):
        captured.extend(actions)
        return len(captured), []

    mock_bulk.side_effect = fake_bulk

    written = indexer.bulk_upsert([make_record("1"), make_record("2")], [[0.1], [0.2]])

    assert written == 2
    assert mock_bulk.call_args[0][0] is client
    assert [a["_id"] for a in captured] == ["1", "2"]
    assert captured[0]["_index"] == "tweets"
    assert captured[0]["_source"]["embedding"] == [0.1]
    assert captured[0]["_source"]["created_at"] == "2024-03-01T12:00:00.000Z"


@patch("tweet_search.indexer.helpers.bulk")
def test_bulk_upsert_item_errors(mock_bulk, indexer):
    mock_bulk.return_value = (0, [{"index": {"_id": "1", "error": {"type": "mapper_parsing_exception"}}}])

    with pytest.raises(StoreUnavailable):
        indexer.bulk_upsert([make_record("1")])


@patch("tweet_search.indexer.helpers.bulk")
def test_bulk_upsert_transport_error(mock_bulk, indexer):
    mock_bulk.side_effect = OpenSearchException("timeout")

    with pytest.raises(StoreUnavailable):
        indexer.bulk_upsert([make_record("1")])


def test_bulk_upsert_length_mismatch(indexer):
    with pytest.raises(ValueError):
        indexer.bulk_upsert([make_record("1")], [[0.1], [0.2]])


@patch("tweet_search.indexer.helpers.bulk")
def test_bulk_upsert_empty(mock_bulk, indexer):
    assert indexer.bulk_upsert([]) == 0
    mock_bulk.assert_not_called()
