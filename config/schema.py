"""drf-spectacular post-processing: one navigation group per API area."""

from __future__ import annotations

from typing import Any

_HTTP_METHODS = frozenset({"get", "post", "put", "patch", "delete", "options", "head"})

# First matching prefix wins, so specific prefixes come first.
PATTERN_TAGS = [
    ("/api/v1/chat-rooms", "Chat"),
    ("/api/v1/chat/", "Chat"),
    ("/api/v1/auth/jwt", "JWT Authentication"),
    ("/api/v1/auth/", "Authentication"),
    ("/api/v1/users", "Users"),
]

TAG_DESCRIPTIONS = {
    "Chat": "Chat rooms, membership, message history and attachments.",
    "JWT Authentication": "Obtain, refresh and verify access tokens.",
    "Authentication": "Session based authentication.",
    "Users": "Colleague directory and the current user's profile.",
}


def assign_group_tag(path: str) -> str | None:
    return next((tag for prefix, tag in PATTERN_TAGS if path.startswith(prefix)), None)


def group_tags(result: dict[str, Any], **kwargs: Any) -> dict[str, Any]:
    """Replace each operation's tags with the single group of its path.

    Groups used by at least one path are appended to the top-level ``tags``
    list with their description, keeping tags already declared there.
    """
    used: list[str] = []
    for path, path_item in result.get("paths", {}).items():
        tag = assign_group_tag(path)
        if tag is None:
            continue
        for method, operation in path_item.items():
            if method.lower() in _HTTP_METHODS and isinstance(operation, dict):
                operation["tags"] = [tag]
        if tag not in used:
            used.append(tag)

    declared = result.setdefault("tags", [])
    known = {t.get("name") for t in declared}
    declared.extend(
        {"name": tag, "description": TAG_DESCRIPTIONS[tag]}
        for tag in used
        if tag not in known
    )
    return result
