"""
Tweet ingestion: raw JSONL export -> embeddings -> store upsert.

Each line of the export is one raw tweet object as returned by the
scraping API (id_str, full_text, tweet_created_at, retweeted_status, ...).
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from tqdm import tqdm

from .embeddings import EmbeddingProvider
from .indexer import TweetIndexer
from .schemas import TweetRecord, parse_timestamp

logger = logging.getLogger(__name__)


def extract_has_media(entities: Any) -> bool:
    """True when entities.media is a non-empty list."""
    if not isinstance(entities, dict):
        return False
    media = entities.get("media")
    return isinstance(media, list) and len(media) > 0


def record_from_raw(obj: Dict[str, Any]) -> Optional[TweetRecord]:
    """
    Build a TweetRecord from a raw tweet, or None if it is unusable.

    Tweets without full_text, id_str or a parseable tweet_created_at are skipped.
    """
    if not isinstance(obj, dict):
        return None
    text = obj.get("full_text")
    tweet_id = obj.get("id_str")
    if not text or not tweet_id:
        return None

    raw_created = obj.get("tweet_created_at")
    if not raw_created:
        return None
    try:
        created_at = parse_timestamp(raw_created)
    except ValueError:
        logger.debug(f"Skipping tweet {tweet_id}: bad timestamp {raw_created!r}")
        return None

    return TweetRecord(
        tweet_id=str(tweet_id),
        created_at=created_at,
        text=text,
        lang=obj.get("lang"),
        is_retweet=bool(obj.get("retweeted_status")),
        has_media=extract_has_media(obj.get("entities")),
    )


def iter_records(file_path: str) -> Iterator[TweetRecord]:
    """Stream usable TweetRecords from a JSONL file, skipping bad lines."""
    with open(file_path, "r", encoding="utf-8") as f:
        for line_num, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            try:
                obj = json.loads(line)
            except json.JSONDecodeError as e:
                logger.warning(f"Skipping invalid JSON on line {line_num}: {e}")
                continue
            record = record_from_raw(obj)
            if record is not None:
                yield record


def upsert_batch(indexer: TweetIndexer, embedder: EmbeddingProvider, records: List[TweetRecord]) -> int:
    """Embed a batch of tweets and write them to the store."""
    if not records:
        return 0
    embeddings = embedder.embed([r.text for r in records])
    return indexer.bulk_upsert(records, embeddings)


def ingest_jsonl(
    file_path: str,
    indexer: TweetIndexer,
    embedder: EmbeddingProvider,
    batch_size: int = 5000,
) -> int:
    """
    Ingest a JSONL tweet export.

    Args:
        file_path: Path to the JSONL file
        indexer: Target index
        embedder: Embedding provider for tweet texts
        batch_size: Rows per upsert batch

    Returns:
        Total rows written

    Raises:
        FileNotFoundError: If file_path does not exist
    """
    if not Path(file_path).exists():
        raise FileNotFoundError(f"File not found: {file_path}")

    total = 0
    batch: List[TweetRecord] = []
    for record in tqdm(iter_records(file_path), desc="Ingesting tweets", unit="tweet"):
        batch.append(record)
        if len(batch) >= batch_size:
            total += upsert_batch(indexer, embedder, batch)
            batch = []
            logger.info(f"Ingested {total} tweets...")

    total += upsert_batch(indexer, embedder, batch)
    logger.info(f"Ingest complete. Total rows processed: {total}")
    return total
