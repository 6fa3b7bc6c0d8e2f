"""Per-screen filter state for list queries."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any


def is_inactive(value: Any) -> bool:
    """Whether a filter value counts as unset.

    ``None``, ``""`` and empty lists are unset; ``0`` and ``False`` are real
    values (a zero weight or price is a meaningful lower bound).
    """
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (list, tuple, set, frozenset)):
        return len(value) == 0
    return False


def clean_filters(filters: Mapping[str, Any]) -> dict[str, Any]:
    """Copy of ``filters`` without unset values."""
    cleaned: dict[str, Any] = {}
    for key, value in filters.items():
        if is_inactive(value):
            continue
        cleaned[key] = list(value) if isinstance(value, (tuple, set, frozenset)) else value
    return cleaned


class FilterState:
    """Filter field -> value mapping, changed only by merge or reset."""

    def __init__(self, initial: Mapping[str, Any] | None = None) -> None:
        self._filters: dict[str, Any] = dict(initial or {})

    @property
    def filters(self) -> dict[str, Any]:
        return dict(self._filters)

    @property
    def clean_filters(self) -> dict[str, Any]:
        return clean_filters(self._filters)

    @property
    def has_active_filters(self) -> bool:
        return bool(self.clean_filters)

    def update_filters(self, partial: Mapping[str, Any]) -> None:
        """Merge ``partial`` into the current filters."""
        self._filters.update(partial)

    def reset_filters(self) -> None:
        self._filters.clear()

    def __repr__(self) -> str:
        return f"FilterState({self._filters!r})"
