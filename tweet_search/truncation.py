"""
Text truncation for judge prompts.
"""

TRUNCATION_MARKER = "…"


def truncate_text(text: str, max_chars: int) -> str:
    """
    Cut text to at most max_chars characters.

    When cut, the last kept character is replaced by TRUNCATION_MARKER so the
    judge can tell the tweet continues.

    Args:
        text: Text to truncate
        max_chars: Maximum characters, marker included

    Returns:
        Original text if short enough, otherwise the truncated text
    """
    if len(text) <= max_chars:
        return text
    if max_chars <= 0:
        return ""
    return text[:max_chars - 1] + TRUNCATION_MARKER
