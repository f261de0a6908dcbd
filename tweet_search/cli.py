"""
CLI for tweet search: index setup, ingestion, search and serving.

Usage:
    python -m tweet_search.cli init
    python -m tweet_search.cli ingest tweets.jsonl
    python -m tweet_search.cli search "inflación" --k 10
    python -m tweet_search.cli serve --port 3000
"""
import sys
import argparse
import logging

from .config import get_settings
from .embeddings import get_embedding_provider
from .errors import TweetSearchError
from .ingest import ingest_jsonl
from .pipeline import TweetSearchPipeline
from .indexer import TweetIndexer

logger = logging.getLogger(__name__)


def cmd_init(args, settings) -> int:
    indexer = TweetIndexer(settings)
    indexer.create_index(force=args.force)
    print("Init complete.")
    return 0


def cmd_ingest(args, settings) -> int:
    indexer = TweetIndexer(settings)
    indexer.create_index()
    embedder = get_embedding_provider(settings)
    try:
        total = ingest_jsonl(args.file, indexer, embedder, batch_size=args.batch_size or settings.INGEST_BATCH_SIZE)
    except FileNotFoundError as e:
        logger.error(str(e))
        return 1
    print(f"Ingested {total} tweets.")
    return 0


def cmd_search(args, settings) -> int:
    query = " ".join(args.query).strip()
    if not query:
        logger.error('Usage: tweet-search search "query text" [--k 10]')
        return 1

    pipeline = TweetSearchPipeline(settings)
    results = pipeline.search(query, args.k or settings.DEFAULT_K)
    if not results:
        print("No results.")
        return 0

    for r in results:
        print(f"{r.created_at[:10]} | {r.final_score:.3f} | {r.document_id} | {r.text}")
    return 0


def cmd_serve(args, settings) -> int:
    import uvicorn
    from .server import create_app

    uvicorn.run(
        create_app(settings),
        host=args.host or settings.SERVER_HOST,
        port=args.port or settings.SERVER_PORT,
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Hybrid tweet search: full-text + semantic retrieval with LLM relevance ranking",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Create the index
  python -m tweet_search.cli init

  # Ingest a JSONL export
  python -m tweet_search.cli ingest tweets.jsonl

  # Search
  python -m tweet_search.cli search "suba de tasas" --k 5
        """,
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p_init = sub.add_parser("init", help="Create the tweet index")
    p_init.add_argument("--force", action="store_true", help="Recreate the index if it exists")
    p_init.set_defaults(func=cmd_init)

    p_ingest = sub.add_parser("ingest", help="Ingest a JSONL tweet export")
    p_ingest.add_argument("file", help="Path to tweets.jsonl")
    p_ingest.add_argument("--batch-size", type=int, default=None, help="Rows per upsert batch")
    p_ingest.set_defaults(func=cmd_ingest)

    p_search = sub.add_parser("search", help="Search tweets")
    p_search.add_argument("query", nargs="+", help="Query text")
    p_search.add_argument("--k", "-k", type=int, default=None, help="Number of results (default from config)")
    p_search.set_defaults(func=cmd_search)

    p_serve = sub.add_parser("serve", help="Run the HTTP API")
    p_serve.add_argument("--host", default=None)
    p_serve.add_argument("--port", type=int, default=None)
    p_serve.set_defaults(func=cmd_serve)

    return parser


def main(argv=None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        settings = get_settings()
    except Exception as e:
        logger.error(f"Failed to load settings: {e}")
        return 1

    try:
        return args.func(args, settings)
    except TweetSearchError as e:
        logger.error(f"{args.command} failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
