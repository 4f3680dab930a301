from __future__ import annotations

import re

_TOKEN_RE = re.compile(r"[\w\-]+")


def normalize_tag(value: str | None, *, default: str) -> str:
    """Fold a categorical label such as a namespace or search mode.

    "Semantic" and " semantic " collapse to "semantic"; "My Project" becomes
    "my_project"; letters outside ASCII are kept ("Исследование" becomes
    "исследование"). Only blank input yields *default*.
    """
    if value is None:
        return default
    cleaned = value.strip().casefold()
    if not cleaned:
        return default
    tokens = _TOKEN_RE.findall(cleaned)
    return "_".join(tokens) or cleaned


def has_searchable_text(value: str | None) -> bool:
    return bool(value and value.strip())
