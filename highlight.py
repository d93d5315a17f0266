from __future__ import annotations

import re
from typing import Callable, List, Optional

from markupsafe import Markup, escape

MARK_OPEN = '<mark class="search-highlight">'
MARK_CLOSE = "</mark>"


def query_tokens(query: Optional[str]) -> List[str]:
    """Lowercase whitespace tokens of at least 2 chars, first occurrence order."""
    tokens = [t.strip() for t in str(query or "").lower().split()]
    return list(dict.fromkeys(t for t in tokens if len(t) >= 2))


def build_highlighter(query: Optional[str], escape_html: bool = False) -> Callable[[Optional[str]], str]:
    """
    Build a text decorator that wraps every case-insensitive occurrence of a query
    token in <mark class="search-highlight">...</mark>.
    - tokens shorter than 2 chars are ignored; no tokens -> identity
    - tokens are matched literally (regex metacharacters escaped)
    - escape_html=True HTML-escapes the text around and inside the marks and
      returns Markup, for values that end up in innerHTML / templates

    Apply once to unmarked text; running it over its own output can double-wrap.
    """
    tokens = query_tokens(query)

    if not tokens:
        if escape_html:
            return lambda text: escape(text or "")
        return lambda text: text or ""

    regex = re.compile("(" + "|".join(re.escape(t) for t in tokens) + ")", re.IGNORECASE)

    if not escape_html:
        def highlight(text: Optional[str]) -> str:
            if not text:
                return ""
            return regex.sub(MARK_OPEN + r"\1" + MARK_CLOSE, text)

        return highlight

    def highlight_html(text: Optional[str]) -> Markup:
        if not text:
            return Markup("")
        # split() with a capture group alternates plain / matched segments
        parts = regex.split(str(text))
        out = []
        for i, part in enumerate(parts):
            if i % 2:
                out.append(f"{MARK_OPEN}{escape(part)}{MARK_CLOSE}")
            else:
                out.append(str(escape(part)))
        return Markup("".join(out))

    return highlight_html
