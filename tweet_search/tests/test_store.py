"""
Tests for the OpenSearch tweet store.
"""
import pytest
import requests
from unittest.mock import Mock

from tweet_search.errors import StoreUnavailable
from tweet_search.store import OpenSearchTweetStore


@pytest.fixture
def mock_settings():
    """Mock settings."""
    settings = Mock()
    settings.OPENSEARCH_URL = "http://localhost:9200"
    settings.OPENSEARCH_INDEX = "tweets"
    settings.OPENSEARCH_USERNAME = None
    settings.OPENSEARCH_PASSWORD = None
    settings.OPENSEARCH_VERIFY_CERTS = False
    settings.STORE_TIMEOUT_S = 30
    settings.EMBED_DIM = 1536
    return settings


def json_response(data, status_code=200):
    response = Mock()
    response.status_code = status_code
    response.raise_for_status = Mock()
    response.json.return_value = data
    return response


def hit(doc_id, score, **source):
    src = {
        "tweet_id": doc_id,
        "created_at": "2024-03-01T12:00:00.000Z",
        "text": f"tweet {doc_id}",
        "is_retweet": False,
        "has_media": False,
    }
    src.update(source)
    return {"_id": doc_id, "_score": score, "_source": src}


@pytest.fixture
def session():
    return Mock()


@pytest.fixture
def store(mock_settings, session):
    return OpenSearchTweetStore(mock_settings, session=session)


def test_auth_configured(mock_settings, session):
    mock_settings.OPENSEARCH_USERNAME = "admin"
    mock_settings.OPENSEARCH_PASSWORD = "secret"

    OpenSearchTweetStore(mock_settings, session=session)

    assert session.auth == ("admin", "secret")


def test_lexical_search_query(store, session):
    session.request.return_value = json_response({"hits": {"hits": [hit("1", 3.2), hit("2", 1.1, is_retweet=True)]}})

    rows = store.lexical_search("suba de tasas", 150)

    method, url = session.request.call_args[0]
    body = session.request.call_args[1]["json"]
    assert method == "POST"
    assert url == "http://localhost:9200/tweets/_search"
    assert body["size"] == 150
    assert body["query"]["simple_query_string"]["query"] == "suba de tasas"
    assert body["query"]["simple_query_string"]["default_operator"] == "and"
    assert body["sort"] == [{"_score": {"order": "desc"}}, {"created_at": {"order": "asc"}}]

    assert [r["id"] for r in rows] == ["1", "2"]
    assert rows[0]["rank"] == 3.2
    assert rows[1]["is_retweet"] is True


def test_vector_search_similarity(store, session):
    session.request.return_value = json_response({"hits": {"hits": [hit("1", 0.975), hit("2", 0.5), hit("3", None)]}})

    rows = store.vector_search([0.1, 0.2], 10)

    body = session.request.call_args[1]["json"]
    assert body["query"]["knn"]["embedding"] == {"vector": [0.1, 0.2], "k": 10}
    assert "embedding" not in body["_source"]
    assert rows[0]["similarity"] == pytest.approx(0.95)
    assert rows[1]["similarity"] == pytest.approx(0.0)
    assert rows[2]["similarity"] == 0.0


def test_empty_result(store, session):
    session.request.return_value = json_response({"hits": {"hits": []}})

    assert store.lexical_search("nada", 10) == []


@pytest.mark.parametrize("body", [["oops"], {"hits": ["oops"]}, {"hits": {"hits": {"1": "x"}}}])
def test_malformed_body(store, session, body):
    session.request.return_value = json_response(body)

    with pytest.raises(StoreUnavailable):
        store.lexical_search("q", 10)


def test_non_object_hits_skipped(store, session):
    session.request.return_value = json_response({"hits": {"hits": ["oops", hit("1", 2.0)]}})

    assert [row["id"] for row in store.lexical_search("q", 10)] == ["1"]


def test_transport_failure(store, session):
    session.request.side_effect = requests.ConnectionError("refused")

    with pytest.raises(StoreUnavailable):
        store.lexical_search("q", 10)


def test_http_error(store, session):
    response = Mock()
    response.raise_for_status.side_effect = requests.HTTPError("400 Bad Request")
    session.request.return_value = response

    with pytest.raises(StoreUnavailable):
        store.vector_search([0.1], 10)

