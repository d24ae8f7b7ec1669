"""
Helpers shared by the document models.
"""
from typing import Any

from bson import ObjectId


def stringify_ids(value: Any) -> Any:
    """Recursively convert ObjectId values of a Mongo document to strings."""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return {k: stringify_ids(v) for k, v in value.items()}
    if isinstance(value, list):
        return [stringify_ids(v) for v in value]
    return value
