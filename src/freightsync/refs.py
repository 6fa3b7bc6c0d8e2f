"""Referenced documents: bare id or populated object.

The backend sends references (an order's ``loadType``, ``owner``,
``pricing.pricingType`` ...) either as an id string or as the populated
document. ``resolve_ref`` turns both shapes into one tagged union at the
boundary so callers never re-check the raw value.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

ID_FIELDS = ("_id", "id")


@dataclass(frozen=True, slots=True)
class Ref:
    """Unpopulated reference."""

    id: str


@dataclass(frozen=True, slots=True)
class Populated:
    """Populated reference carrying the referenced document."""

    id: str | None
    document: Mapping[str, Any]


Reference = Ref | Populated


def resolve_ref(value: Any) -> Reference | None:
    """Normalize a raw reference value.

    Returns None for missing values, ``Ref`` for id strings and
    ``Populated`` for objects.
    """
    if value is None or isinstance(value, (Ref, Populated)):
        return value
    if isinstance(value, str):
        return Ref(value)
    if isinstance(value, Mapping):
        ref_id = next((value[f] for f in ID_FIELDS if value.get(f) is not None), None)
        return Populated(id=str(ref_id) if ref_id is not None else None, document=dict(value))
    raise TypeError(f"Cannot resolve reference from {type(value).__name__}")


def ref_id(value: Any) -> str | None:
    """Id of a reference in either shape."""
    ref = resolve_ref(value)
    return ref.id if ref is not None else None


def resolve_refs(document: Mapping[str, Any], fields: Iterable[str]) -> dict[str, Any]:
    """Copy ``document`` with the named fields resolved.

    Dotted names reach into nested objects (``"pricing.pricingType"``); list
    values are resolved element-wise. Missing fields are left alone.
    """
    result = dict(document)
    for name in fields:
        head, _, rest = name.partition(".")
        if head not in result:
            continue
        value = result[head]
        if rest:
            if isinstance(value, Mapping):
                result[head] = resolve_refs(value, [rest])
        elif isinstance(value, list):
            result[head] = [resolve_ref(v) for v in value]
        else:
            result[head] = resolve_ref(value)
    return result
