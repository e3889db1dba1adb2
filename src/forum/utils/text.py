"""
String transforms used when rendering conversations.

- escape_for_html(): makes a name/description safe to drop into an HTML attribute or
  inline JavaScript string, and turns line breaks into <br /> tags.
- parameterize(): URL slug used by Conversation.to_param() ("Hello World!" -> "hello-world").
"""

import re
import unicodedata

_LINE_BREAK_RE = re.compile(r"(\r\n|\n|\r)")
_NON_SLUG_RE = re.compile(r"[^a-z0-9\-_]+")


def escape_for_html(value: str | None) -> str:
    """
    Escape a value for embedding in markup.

    Rules, applied in order:
      - `"` becomes `&quot;`
      - `'` becomes `.` (lossy, but existing rendered content depends on it)
      - every `\\r\\n`, `\\n` or `\\r` becomes ` <br />`

    None is rendered as an empty string.
    """
    if value is None:
        return ""
    escaped = value.replace('"', "&quot;").replace("'", ".")
    return _LINE_BREAK_RE.sub(" <br />", escaped)


def parameterize(value: str | None, separator: str = "-") -> str:
    """
    Turn arbitrary text into a lowercase ASCII slug.

    Accented characters are transliterated to their ASCII base ("Café" -> "cafe"),
    anything that is not a letter, digit, dash or underscore collapses into a single
    separator, and leading/trailing separators are dropped.
    """
    if not value:
        return ""

    normalized = unicodedata.normalize("NFKD", value)
    ascii_text = normalized.encode("ascii", "ignore").decode("ascii").lower()

    slug = _NON_SLUG_RE.sub(separator, ascii_text)
    slug = re.sub(f"{re.escape(separator)}{{2,}}", separator, slug)
    return slug.strip(separator)
