"""
Plain-text sanitization for customer-authored content.

Job messages are rendered by the web frontend as text, so every HTML tag,
attribute and comment is removed. Uses the nh3 library (maintained by
Cloudflare) rather than hand-written stripping.
"""

import html
from typing import Optional

import nh3


def strip_html(content: str) -> str:
    """
    Remove all HTML from content, keeping the text between tags.

    nh3 escapes the text it keeps; the entities are decoded again so the
    result is the plain text the customer typed.

    Example:
        >>> strip_html('<b>Hello</b><script>alert("x")</script>')
        'Hello'

        >>> strip_html('Tom & Jerry, 3 < 5')
        'Tom & Jerry, 3 < 5'
    """
    if not content:
        return ""

    cleaned = nh3.clean(
        content,
        tags=set(),
        attributes={},
        link_rel=None,
        strip_comments=True,
    )
    return html.unescape(cleaned)


def sanitize_message_content(content: Optional[str], max_length: int) -> str:
    """
    Sanitize message content for storage.

    HTML is stripped first and the result is trimmed, so the length limit
    applies to what is actually stored.

    Args:
        content: Raw message content (may be None)
        max_length: Maximum allowed length after sanitization

    Returns:
        Sanitized, trimmed content; empty when nothing remains

    Raises:
        ValueError: content exceeds max_length
    """
    if not content:
        return ""

    sanitized = strip_html(content).strip()

    if len(sanitized) > max_length:
        raise ValueError(f"Message must be at most {max_length} characters")

    return sanitized
