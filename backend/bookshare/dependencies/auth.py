"""
Authentication dependencies for route protection.
"""
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from bookshare.config import get_settings
from bookshare.core.security import JWTError, read_subject
from bookshare.database.transactions import DocumentStore
from bookshare.dependencies.store import get_document_store
from bookshare.models.user import User
from bookshare.services.user_service import UserService

bearer_scheme = HTTPBearer(auto_error=False)


def _extract_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials],
) -> Optional[str]:
    """Bearer header first, then the session cookie."""
    if credentials is not None and credentials.scheme.lower() == "bearer":
        return credentials.credentials
    return request.cookies.get(get_settings().session_cookie_name)


async def get_current_user(
    request: Request,
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
    store: Annotated[DocumentStore, Depends(get_document_store)],
) -> User:
    """
    Dependency to get the current authenticated user from a JWT.

    The token is read from ``Authorization: Bearer <token>`` or from the
    session cookie set at login.

    Raises:
        HTTPException 401: If the token is missing, invalid or expired
        HTTPException 401: If the user no longer exists
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    token = _extract_token(request, credentials)
    if not token:
        raise credentials_exception

    try:
        user_id = read_subject(token)
    except JWTError:
        raise credentials_exception

    user = await UserService(store).get_user_by_id(user_id)
    if user is None:
        raise credentials_exception

    return user


# Type alias for cleaner route signatures
CurrentUser = Annotated[User, Depends(get_current_user)]
