from __future__ import annotations

from collections.abc import Iterable


def tag_key(tag: str) -> str:
    return tag.strip().casefold()


def normalize_tags(tags: Iterable[str] | None) -> tuple[str, ...]:
    """Trim, drop blanks and case-insensitive duplicates, keep first-seen order."""
    if not tags:
        return ()
    seen: set[str] = set()
    result: list[str] = []
    for raw in tags:
        tag = raw.strip()
        if not tag:
            continue
        key = tag.casefold()
        if key in seen:
            continue
        seen.add(key)
        result.append(tag)
    return tuple(result)
