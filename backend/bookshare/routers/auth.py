"""
Authentication router for registration, login and logout.
"""
from fastapi import APIRouter, Depends, HTTPException, Response, status

from bookshare.config import get_settings
from bookshare.database.transactions import DocumentStore
from bookshare.dependencies.store import get_document_store
from bookshare.schemas.auth import AuthResult, LoginRequest, RegisterRequest
from bookshare.schemas.common import ApiResponse
from bookshare.services.auth_service import AuthService, InvalidCredentialsError

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


async def get_auth_service(
    store: DocumentStore = Depends(get_document_store),
) -> AuthService:
    """Dependency to get AuthService instance."""
    return AuthService(store)


def set_session_cookie(response: Response, result: AuthResult) -> None:
    """Store the access token in an http-only cookie."""
    settings = get_settings()
    response.set_cookie(
        key=settings.session_cookie_name,
        value=result.access_token,
        max_age=result.expires_in,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )


def clear_session_cookie(response: Response) -> None:
    settings = get_settings()
    response.delete_cookie(
        key=settings.session_cookie_name,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )


@router.post(
    "/register",
    response_model=ApiResponse[AuthResult],
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
)
async def register(
    body: RegisterRequest,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Register a new user account.

    - **name**: Display name
    - **email**: Valid email address (must be unique)
    - **password**: Password (minimum 6 characters)
    - **password_confirm**: Must match password
    """
    result = await auth_service.register_user(body)
    set_session_cookie(response, result)
    return ApiResponse(message="User created successfully", data=result)


@router.post(
    "/login",
    response_model=ApiResponse[AuthResult],
    summary="Login and get access token",
)
async def login(
    body: LoginRequest,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Authenticate with email and password.

    The token is returned in the body and also set as an http-only cookie.
    """
    try:
        result = await auth_service.login(body)
    except InvalidCredentialsError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )

    set_session_cookie(response, result)
    return ApiResponse(message="Logged in successfully", data=result)


@router.post(
    "/logout",
    response_model=ApiResponse[None],
    summary="Clear the session cookie",
)
async def logout(response: Response):
    """Clear the session cookie. Bearer tokens expire on their own."""
    clear_session_cookie(response)
    return ApiResponse(message="Logged out")
