"""Standardized API response helpers.

List endpoints return the collection under a named key plus its size:
    {"orders": [...], "count": <int>}

Single-entity endpoints return the entity under its own key:
    {"order": {...}}

Errors are rendered by the exception handlers in main.py as:
    {"success": false, "msg": "..."}
"""

from typing import Any, Optional


def list_response(key: str, items: list, count: Optional[int] = None) -> dict:
    """Wrap a list in the standard envelope.

    Args:
        key: Collection name, e.g. "orders".
        items: The serialized items.
        count: Total count (defaults to len(items)).
    """
    return {
        key: items,
        "count": count if count is not None else len(items),
    }


def entity_response(key: str, entity: Any, **extra: Any) -> dict:
    """Wrap a single entity as ``{key: entity}`` plus any extra fields."""
    body = {key: entity}
    body.update(extra)
    return body


def message_response(msg: str, success: bool = True) -> dict:
    return {"success": success, "msg": msg}


def error_body(msg: str) -> dict:
    return message_response(msg, success=False)
