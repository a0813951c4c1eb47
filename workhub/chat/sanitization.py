from __future__ import annotations

import nh3

ALLOWED_TAGS = frozenset({"b", "i", "em", "strong", "u"})


def sanitize_content(content: str | None) -> str:
    """Strip all markup except a few inline tags, and every attribute.

    Applying it to its own output returns the same string.
    """
    if not content:
        return ""
    text = content.strip()
    if not text:
        return ""
    return nh3.clean(
        text,
        tags=set(ALLOWED_TAGS),
        attributes={},
        strip_comments=True,
        link_rel=None,
    ).strip()
