"""
ObjectId parsing helpers.
"""
from bson import ObjectId
from bson.errors import InvalidId

from bookshare.core.errors import ValidationError


def to_object_id(value: str | ObjectId, label: str = "id") -> ObjectId:
    """
    Parse a client-supplied identifier.

    Raises:
        ValidationError: If the value is not a valid ObjectId
    """
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise ValidationError(f"Invalid {label} format")
