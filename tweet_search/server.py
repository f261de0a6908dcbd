#!/usr/bin/env python3
"""
FastAPI backend for tweet search.

Serves the hybrid search pipeline, a tweet detail proxy and example
headings. Collaborators are injected through create_app so tests can stub them.
"""
import logging
from typing import Optional

import requests
from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import get_settings
from .headings import scrape_headings
from .pipeline import TweetSearchPipeline
from .ratelimit import TokenBucketRateLimiter
from .schemas import SearchResponse, SearchResultItem

logger = logging.getLogger(__name__)

USER_AGENT = "BusqueBusqued/1.0"


def get_client_identifier(request: Request) -> str:
    """Client identity for rate limiting: proxy headers first, then 'local'."""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip() or "unknown"
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    return "local"


def create_app(
    settings=None,
    pipeline: Optional[TweetSearchPipeline] = None,
    rate_limiter: Optional[TokenBucketRateLimiter] = None,
    http_session: Optional[requests.Session] = None,
) -> FastAPI:
    """
    Build the API application.

    Args:
        settings: Configuration settings (global settings if not provided)
        pipeline: Search pipeline (built from settings if not provided)
        rate_limiter: Per-client limiter for /api/search
        http_session: Session for outbound calls (tweet proxy, headings)
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Tweet Search API",
        description="Hybrid lexical + semantic tweet search with LLM relevance judging",
        version="1.0.0",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.pipeline = pipeline or TweetSearchPipeline(settings)
    app.state.rate_limiter = rate_limiter or TokenBucketRateLimiter.from_settings(settings)
    app.state.http = http_session or requests.Session()
    app.state.headings = None

    @app.get("/health")
    def health_check():
        return {"status": "healthy"}

    @app.get("/api/search")
    def search(request: Request, q: Optional[str] = Query(None), k: Optional[int] = Query(None)):
        client_id = get_client_identifier(request)
        retry_after = app.state.rate_limiter.acquire(client_id)
        if retry_after > 0:
            return JSONResponse(
                {"error": "Too many requests, please slow down."},
                status_code=429,
                headers={"Retry-After": str(retry_after)},
            )

        query = (q or "").strip()
        if not query:
            return JSONResponse({"error": "Missing query parameter 'q'"}, status_code=400)

        try:
            results = app.state.pipeline.search(query, k if k is not None else settings.HTTP_DEFAULT_K)
        except Exception:
            logger.exception("Search error")
            return JSONResponse({"error": "Internal server error"}, status_code=500)

        response = SearchResponse(
            query=query,
            results=[SearchResultItem.from_ranked(r) for r in results],
        )
        return response.model_dump()

    @app.get("/api/tweet/{tweet_id}")
    def tweet_detail(tweet_id: str):
        url = f"{settings.TWEET_EMBED_API_URL.rstrip('/')}/{tweet_id}"
        try:
            upstream = app.state.http.get(
                url,
                headers={"User-Agent": USER_AGENT},
                timeout=settings.TWEET_EMBED_TIMEOUT_S,
            )
            if not upstream.ok:
                return JSONResponse(
                    {
                        "code": upstream.status_code,
                        "message": "NOT_FOUND" if upstream.status_code == 404 else "API_FAIL",
                    },
                    status_code=upstream.status_code,
                )
            return JSONResponse(upstream.json())
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Tweet fetch error: {e}")
            return JSONResponse({"code": 500, "message": "API_FAIL"}, status_code=500)

    @app.get("/api/headings")
    def headings():
        if app.state.headings is None:
            try:
                app.state.headings = scrape_headings(
                    settings.HEADINGS_URL,
                    timeout=settings.TWEET_EMBED_TIMEOUT_S,
                    session=app.state.http,
                )
            except RuntimeError as e:
                logger.error(str(e))
                return JSONResponse({"error": "Failed to load headings"}, status_code=502)
        return [h.model_dump() for h in app.state.headings]

    return app


def main():
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )
    settings = get_settings()
    uvicorn.run(create_app(settings), host=settings.SERVER_HOST, port=settings.SERVER_PORT)


if __name__ == "__main__":
    main()
