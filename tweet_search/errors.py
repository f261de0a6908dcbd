"""
Error kinds raised by the search pipeline.

All of them are fatal for the request that triggered them; the request
boundary (HTTP handler or CLI) decides how to report the failure.
"""


class TweetSearchError(Exception):
    """Base class for pipeline failures."""


class StoreUnavailable(TweetSearchError):
    """The document store could not be reached or rejected the query."""


class EmbeddingProviderError(TweetSearchError):
    """The embedding provider failed or returned an unusable payload."""


class JudgeUnavailable(TweetSearchError):
    """Transport or non-success HTTP response from the relevance judge."""


class JudgeParseError(TweetSearchError):
    """The judge answered but its payload could not be interpreted."""

    def __init__(self, message: str, content: str = ""):
        super().__init__(message)
        self.content = content
