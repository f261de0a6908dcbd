"""
Tweet index management and bulk writes through opensearch-py.

The search path talks to OpenSearch over a plain requests session (see
store.py); index creation and bulk ingestion use the official client and
its bulk helper.
"""
import logging
from typing import Any, Dict, Iterator, List, Optional, Sequence

import urllib3
from opensearchpy import OpenSearch, RequestsHttpConnection, helpers
from opensearchpy.exceptions import OpenSearchException

from .errors import StoreUnavailable
from .schemas import TweetRecord
from .store import TEXT_ANALYZER

logger = logging.getLogger(__name__)


def make_opensearch(settings) -> OpenSearch:
    """Build an OpenSearch client from settings."""
    url = settings.OPENSEARCH_URL
    verify = settings.OPENSEARCH_VERIFY_CERTS

    if not verify:
        urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    http_auth = None
    if settings.OPENSEARCH_USERNAME and settings.OPENSEARCH_PASSWORD:
        http_auth = (settings.OPENSEARCH_USERNAME, settings.OPENSEARCH_PASSWORD)

    return OpenSearch(
        hosts=[url],
        http_auth=http_auth,
        use_ssl=url.startswith("https"),
        verify_certs=verify,
        ssl_assert_hostname=verify,
        ssl_show_warn=verify,
        connection_class=RequestsHttpConnection,
        timeout=settings.STORE_TIMEOUT_S,
    )


def index_body(embed_dim: int) -> Dict[str, Any]:
    """Index settings and mapping for the tweet corpus."""
    return {
        "settings": {
            "index.knn": True,
            "analysis": {
                "filter": {
                    "spanish_stop": {"type": "stop", "stopwords": "_spanish_"},
                    "spanish_stemmer": {"type": "stemmer", "language": "light_spanish"},
                },
                "analyzer": {
                    TEXT_ANALYZER: {
                        "type": "custom",
                        "tokenizer": "standard",
                        "filter": ["lowercase", "asciifolding", "spanish_stop", "spanish_stemmer"],
                    }
                },
            },
        },
        "mappings": {
            "properties": {
                "tweet_id": {"type": "keyword"},
                "created_at": {"type": "date"},
                "text": {"type": "text", "analyzer": TEXT_ANALYZER},
                "lang": {"type": "keyword"},
                "is_retweet": {"type": "boolean"},
                "has_media": {"type": "boolean"},
                "embedding": {
                    "type": "knn_vector",
                    "dimension": embed_dim,
                    "method": {
                        "name": "hnsw",
                        "space_type": "cosinesimil",
                        "engine": "lucene",
                    },
                },
            }
        },
    }


class TweetIndexer:
    """Creates the tweet index and upserts tweets by tweet_id."""

    def __init__(self, settings, client: Optional[OpenSearch] = None):
        """
        Initialize indexer.

        Args:
            settings: Configuration settings
            client: Optional OpenSearch client (built from settings if not provided)
        """
        self.settings = settings
        self.index_name = settings.OPENSEARCH_INDEX
        self.client = client or make_opensearch(settings)

    def create_index(self, force: bool = False) -> bool:
        """
        Create the tweet index if missing.

        Args:
            force: Delete and recreate an existing index

        Returns:
            True if a new index was created

        Raises:
            StoreUnavailable: If OpenSearch rejects the request
        """
        try:
            if self.client.indices.exists(index=self.index_name):
                if not force:
                    logger.info(f"Index {self.index_name} already exists")
                    return False
                logger.info(f"Deleting existing index {self.index_name}")
                self.client.indices.delete(index=self.index_name)

            self.client.indices.create(index=self.index_name, body=index_body(self.settings.EMBED_DIM))
        except OpenSearchException as e:
            logger.error(f"Index setup failed for {self.index_name}: {e}")
            raise StoreUnavailable(f"Index setup failed: {e}") from e

        logger.info(f"Created index {self.index_name}")
        return True

    def _actions(
        self,
        records: Sequence[TweetRecord],
        embeddings: Optional[Sequence[List[float]]],
    ) -> Iterator[Dict[str, Any]]:
        for i, record in enumerate(records):
            emb = embeddings[i] if embeddings is not None else None
            yield {
                "_op_type": "index",
                "_index": self.index_name,
                "_id": record.tweet_id,
                "_source": record.to_document(emb),
            }

    def bulk_upsert(
        self,
        records: Sequence[TweetRecord],
        embeddings: Optional[Sequence[List[float]]] = None,
    ) -> int:
        """
        Index tweets by tweet_id, overwriting existing documents.

        Args:
            records: Tweets to write
            embeddings: Optional vectors aligned with records

        Returns:
            Number of documents written

        Raises:
            StoreUnavailable: On transport failure or item-level errors
        """
        if not records:
            return 0
        if embeddings is not None and len(embeddings) != len(records):
            raise ValueError(f"{len(embeddings)} embeddings for {len(records)} records")

        try:
            success, errors = helpers.bulk(
                self.client,
                self._actions(records, embeddings),
                chunk_size=len(records),
                request_timeout=self.settings.STORE_TIMEOUT_S,
                raise_on_error=False,
                refresh=False,
            )
        except OpenSearchException as e:
            logger.error(f"Bulk upsert failed: {e}")
            raise StoreUnavailable(f"Bulk upsert failed: {e}") from e

        if errors:
            logger.error(f"Bulk upsert failed with {len(errors)} errors, first: {errors[0]}")
            raise StoreUnavailable(f"Bulk upsert failed with {len(errors)} item errors")

        logger.debug(f"Upserted {success} documents into {self.index_name}")
        return success
