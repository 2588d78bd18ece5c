import html
import re
from typing import Optional

import bleach

_BLOCK_TAGS = re.compile(r"(?i)<\s*(br|/p|/div|/li|/h[1-6])\s*/?\s*>")
_BLANK_LINES = re.compile(r"\n\s*\n+")
_SPACES = re.compile(r"[ \t\r\f\v]+")


def html_to_text(value: Optional[str], max_length: int = 1000) -> Optional[str]:
    """
    Convert an HTML fragment (e.g. a calendar event description) to plain text.

    Line-breaking tags become newlines, every other tag is stripped, entities
    are unescaped and the result is truncated to max_length characters.
    Returns None for empty input.
    """
    if not value:
        return None

    text = _BLOCK_TAGS.sub("\n", value)
    text = bleach.clean(text, tags=[], attributes={}, strip=True)
    # bleach re-escapes entities; plain text wants them decoded
    text = html.unescape(text).replace("\xa0", " ")
    text = _SPACES.sub(" ", text)
    text = _BLANK_LINES.sub("\n", text)
    text = "\n".join(line.strip() for line in text.split("\n")).strip()

    if not text:
        return None
    if len(text) > max_length:
        text = text[: max_length - 1].rstrip() + "…"
    return text
