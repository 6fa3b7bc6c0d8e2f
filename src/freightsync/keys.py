"""Deterministic cache keys for query descriptors."""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any


def canonicalize(value: Any) -> Any:
    """Normalize params into a JSON-ready structure.

    Mappings are rebuilt with string keys (sorted on dump), tuples become
    lists and keep their order, sets become sorted lists.
    """
    if isinstance(value, Mapping):
        return {str(k): canonicalize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [canonicalize(v) for v in value]
    if isinstance(value, (set, frozenset)):
        return sorted((canonicalize(v) for v in value), key=repr)
    return value


def canonical_params(params: Mapping[str, Any] | None) -> str:
    """Serialize params with sorted object keys and order-preserving arrays."""
    return json.dumps(
        canonicalize(params or {}),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    )


def make_cache_key(
    resource_type: str,
    operation_name: str,
    params: Mapping[str, Any] | None = None,
) -> str:
    """Generate a cache key from resource, operation and params.

    Example:
        make_cache_key("Order", "filter_orders", {"minWeight": 0})
        # 'Order.filter_orders({"minWeight":0})'
    """
    return f"{resource_type}.{operation_name}({canonical_params(params)})"
