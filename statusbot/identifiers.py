from __future__ import annotations

import re

_NAME = r"[A-Za-z0-9_]+"
_LINK_RE = re.compile(rf"^(?:https?://)?(?:www\.)?(?:t|telegram)\.me/({_NAME})/?$", re.IGNORECASE)
_MENTION_RE = re.compile(rf"^@({_NAME})$")
_BARE_RE = re.compile(rf"^({_NAME})$")


def normalize_identifier(text: str | None) -> str | None:
    """Canonicalize a link, @mention or bare username to ``@name``.

    Returns None when the input matches none of the accepted shapes.
    """
    if not text:
        return None

    candidate = text.strip()
    for pattern in (_LINK_RE, _MENTION_RE, _BARE_RE):
        match = pattern.match(candidate)
        if match:
            return f"@{match.group(1)}"
    return None


def profile_url(reference: str, base_url: str = "https://t.me") -> str:
    return f"{base_url.rstrip('/')}/{reference.lstrip('@')}"
