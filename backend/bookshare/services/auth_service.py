"""
Authentication service for registration and login.
"""
from datetime import datetime, timezone

from pymongo.errors import DuplicateKeyError

from bookshare.core.errors import BadRequestError, ValidationError
from bookshare.core.security import (
    create_access_token,
    hash_password,
    token_lifetime,
    verify_password,
)
from bookshare.database.transactions import DocumentStore
from bookshare.schemas.auth import AuthResult, LoginRequest, RegisterRequest
from bookshare.services.user_service import user_to_profile


class InvalidCredentialsError(Exception):
    """Raised when an email/password pair does not match an account."""


class AuthService:
    """Service for authentication operations."""

    def __init__(self, store: DocumentStore):
        """Initialize with the transactional document store."""
        self.store = store

    async def register_user(self, request: RegisterRequest) -> AuthResult:
        """
        Register a new user and issue an access token.

        Raises:
            ValidationError: If passwords don't match or the name is blank
            BadRequestError: If the email is already registered
        """
        if not request.passwords_match():
            raise ValidationError("Passwords do not match")

        name = request.name.strip()
        if not name:
            raise ValidationError("Name, email and password are all required")

        now = datetime.now(timezone.utc)
        user_doc = {
            "name": name,
            "email": request.email,
            "hashed_password": hash_password(request.password),
            "owned_books": [],
            "joined_forums": [],
            "created_at": now,
            "updated_at": now,
        }

        async with self.store.transaction() as tx:
            existing = await tx.users.find_one({"email": request.email}, {"_id": 1})
            if existing:
                raise BadRequestError("Email already registered")
            try:
                result = await tx.users.insert_one(user_doc)
            except DuplicateKeyError:
                raise BadRequestError("Email already registered")

        user_doc["_id"] = result.inserted_id
        return self._issue(user_doc)

    async def login(self, request: LoginRequest) -> AuthResult:
        """
        Authenticate user and return a JWT token.

        Raises:
            InvalidCredentialsError: If the email or password is wrong
        """
        async with self.store.transaction() as tx:
            user_doc = await tx.users.find_one({"email": request.email})

        if not user_doc or not verify_password(request.password, user_doc["hashed_password"]):
            raise InvalidCredentialsError("Invalid credentials")

        return self._issue(user_doc)

    def _issue(self, user_doc: dict) -> AuthResult:
        return AuthResult(
            user=user_to_profile(user_doc),
            access_token=create_access_token(str(user_doc["_id"])),
            expires_in=int(token_lifetime().total_seconds()),
        )
