"""
Free-text input sanitising.

Notes, ticket subjects and descriptions are stored by the backend and shown
to other users, so markup is stripped before anything is sent. The result is
plain text: characters such as '&' and '<' come back exactly as typed, and
length limits apply to that text rather than to an HTML-escaped form.
"""

import html
from typing import Optional

import bleach


def sanitize_text(text: str, max_length: Optional[int] = None) -> str:
    """
    Strip markup from user input, keeping the typed characters.

    Args:
        text: Raw input text
        max_length: Optional maximum length to enforce

    Returns:
        Plain text without tags, truncated to max_length
    """
    if not text:
        return ""

    # Strip whitespace
    text = text.strip()

    # Drop tags; bleach escapes what is left, so undo that for plain text
    text = html.unescape(bleach.clean(text, tags=[], strip=True))

    # Truncate after unescaping so no entity is cut in half
    if max_length and len(text) > max_length:
        text = text[:max_length]

    return text
