"""
Core module - Security, typed errors and identifier helpers.
"""
from bookshare.core.errors import (
    ServiceError,
    ValidationError,
    BadRequestError,
    NotFoundError,
    ForbiddenError,
    InternalError,
)
from bookshare.core.ids import to_object_id
from bookshare.core.security import (
    hash_password,
    verify_password,
    create_access_token,
    decode_token,
    read_subject,
    token_lifetime,
)

__all__ = [
    "ServiceError",
    "ValidationError",
    "BadRequestError",
    "NotFoundError",
    "ForbiddenError",
    "InternalError",
    "to_object_id",
    "hash_password",
    "verify_password",
    "create_access_token",
    "decode_token",
    "read_subject",
    "token_lifetime",
]
