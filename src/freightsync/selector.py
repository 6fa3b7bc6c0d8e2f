"""Filtered-or-all list queries.

Every list screen has an unfiltered query and a filtered one; exactly one of
them is fetched for any filter snapshot, the other is skipped.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from freightsync.engine import QueryEngine, QuerySubscription, ResultListener
from freightsync.filters import FilterState
from freightsync.types import QueryDescriptor, QueryResult


class FilteredListQuery:
    """Conditional query selector for one list screen.

    Usage:
        screen = FilteredListQuery(
            engine,
            all_query=orders.get_all_orders(),
            filtered_query=orders.filter_orders,
        )
        screen.update_filters({"minWeight": 0})  # filtered query now active
        rows = screen.result.data
        screen.close()
    """

    def __init__(
        self,
        engine: QueryEngine,
        *,
        all_query: QueryDescriptor,
        filtered_query: Callable[..., QueryDescriptor],
        filters: Mapping[str, Any] | None = None,
        listener: ResultListener | None = None,
    ) -> None:
        self._engine = engine
        self._all_query = all_query
        self._filtered_query = filtered_query
        self._listener = listener
        self.filters = FilterState(filters)
        self._all: QuerySubscription[Any] | None = None
        self._filtered: QuerySubscription[Any] | None = None
        self._closed = False
        self._refresh()

    @property
    def has_active_filters(self) -> bool:
        return self.filters.has_active_filters

    @property
    def clean_filters(self) -> dict[str, Any]:
        return self.filters.clean_filters

    @property
    def all_result(self) -> QueryResult[Any]:
        return self._all.result if self._all is not None else QueryResult.skipped_result()

    @property
    def filtered_result(self) -> QueryResult[Any]:
        if self._filtered is None:
            return QueryResult.skipped_result()
        return self._filtered.result

    @property
    def result(self) -> QueryResult[Any]:
        """Result of whichever query is active."""
        return self.filtered_result if self.has_active_filters else self.all_result

    def update_filters(self, partial: Mapping[str, Any]) -> None:
        self.filters.update_filters(partial)
        self._refresh()

    def reset_filters(self) -> None:
        self.filters.reset_filters()
        self._refresh()

    async def wait(self) -> QueryResult[Any]:
        active = self._filtered if self.has_active_filters else self._all
        if active is None:
            return QueryResult.skipped_result()
        return await active.wait()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for subscription in (self._all, self._filtered):
            if subscription is not None:
                subscription.close()

    def _refresh(self) -> None:
        if self._closed:
            return
        active = self.filters.has_active_filters
        filtered = self._filtered_query(**self.filters.clean_filters)
        # Replacements open before the old subscriptions close.
        new_filtered = self._swap(self._filtered, filtered, skip=not active)
        new_all = self._swap(self._all, self._all_query, skip=active)
        old = [
            s
            for s in (self._filtered, self._all)
            if s is not None and s is not new_filtered and s is not new_all
        ]
        self._filtered, self._all = new_filtered, new_all
        for subscription in old:
            subscription.close()

    def _swap(
        self,
        current: QuerySubscription[Any] | None,
        descriptor: QueryDescriptor,
        *,
        skip: bool,
    ) -> QuerySubscription[Any]:
        if (
            current is not None
            and current.skip == skip
            and (skip or current.key == descriptor.cache_key())
        ):
            return current
        return self._engine.subscribe(descriptor, self._listener, skip=skip)

    def __enter__(self) -> FilteredListQuery:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
