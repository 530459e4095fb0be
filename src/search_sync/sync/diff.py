"""Field-level diffing between two versions of a document."""

from collections.abc import Iterable, Mapping
from typing import Any

_MISSING = object()


def lookup(data: Mapping[str, Any] | None, field_path: str) -> Any:
    """Resolve a possibly dotted field path; returns None when absent."""
    if data is None:
        return None
    if field_path in data:
        return data[field_path]

    current: Any = data
    for part in field_path.split("."):
        if not isinstance(current, Mapping):
            return None
        current = current.get(part, _MISSING)
        if current is _MISSING:
            return None
    return current


def fields_updated(
    tracked_fields: Iterable[str] | None,
    before: Mapping[str, Any] | None,
    after: Mapping[str, Any] | None,
) -> bool:
    """Return True if any tracked field differs between ``before`` and ``after``.

    Values are compared by equality, so nested maps and lists are compared
    deeply. With no tracked fields configured, the whole document is compared.
    """
    fields = [f for f in (tracked_fields or []) if f]
    if not fields:
        return dict(before or {}) != dict(after or {})

    return any(lookup(before, field) != lookup(after, field) for field in fields)


def removed_fields(
    before: Mapping[str, Any] | None,
    after: Mapping[str, Any] | None,
) -> set[str]:
    """Top-level fields of ``before`` that are missing or null in ``after``.

    A partial merge cannot drop a key from an indexed record, so callers use a
    non-empty result to switch to a full save.
    """
    if not before:
        return set()
    after = after or {}
    return {key for key in before if after.get(key) is None}
