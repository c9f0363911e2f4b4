"""Plain-text cleanup for model replies before they are spoken by the client."""

import re

_MARKUP_RE = re.compile(r"\n|#+|\*|_")
_WHITESPACE_RUN_RE = re.compile(r"\s{2,}")


def sanitize(text: str) -> str:
    """Strip markdown markers and newlines, collapse whitespace runs, trim.

    Idempotent: sanitize(sanitize(x)) == sanitize(x).
    """
    if not text:
        return ""
    cleaned = _MARKUP_RE.sub(" ", text)
    cleaned = _WHITESPACE_RUN_RE.sub(" ", cleaned)
    return cleaned.strip()
