"""Tag construction and matching.

Tags are plain strings: ``"Order"`` names every list of a resource type,
``"Order:<id>"`` names a single instance.
"""

from collections.abc import Iterable

from freightsync.types import Tag

_ESCAPE_MAP = {"\\": "\\\\", ":": "\\:"}
_UNESCAPE_MAP = {"\\\\": "\\", "\\:": ":"}


def _escape(part: str) -> str:
    result = part
    for char, escaped in _ESCAPE_MAP.items():
        result = result.replace(char, escaped)
    return result


def resource_tag(resource_type: str) -> Tag:
    """Tag covering any list of ``resource_type``."""
    if not resource_type or ":" in resource_type:
        raise ValueError(f"Invalid resource type: {resource_type!r}")
    return Tag(resource_type)


def instance_tag(resource_type: str, id: object) -> Tag:
    """Tag for a single instance; colons and backslashes in the id are escaped."""
    return Tag(f"{resource_tag(resource_type)}:{_escape(str(id))}")


def parse_tag(tag: Tag) -> tuple[str, str | None]:
    """Split a tag into ``(resource_type, id)``; id is None for type tags."""
    resource_type, sep, raw_id = tag.partition(":")
    if not sep:
        return resource_type, None

    current = ""
    i = 0
    while i < len(raw_id):
        if raw_id[i] == "\\" and i + 1 < len(raw_id):
            escaped = raw_id[i : i + 2]
            if escaped in _UNESCAPE_MAP:
                current += _UNESCAPE_MAP[escaped]
                i += 2
                continue
        current += raw_id[i]
        i += 1
    return resource_type, current


def tag_covers(invalidated: Tag, registered: Tag) -> bool:
    """Check if invalidating ``invalidated`` reaches entries tagged ``registered``.

    A type tag covers every instance tag of the same type; an instance tag
    only covers itself.
    """
    if invalidated == registered:
        return True
    inv_type, inv_id = parse_tag(invalidated)
    if inv_id is not None:
        return False
    reg_type, _ = parse_tag(registered)
    return reg_type == inv_type


def provided_tags(resource_type: str, *ids: object) -> list[Tag]:
    """Type tag followed by one instance tag per id."""
    return [resource_tag(resource_type), *(instance_tag(resource_type, i) for i in ids)]


def dedupe_tags(tags: Iterable[Tag]) -> tuple[Tag, ...]:
    """Drop repeated tags, keeping first-seen order."""
    return tuple(dict.fromkeys(tags))
