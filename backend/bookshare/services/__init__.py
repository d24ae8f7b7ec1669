"""
Service layer for business logic.
"""
from bookshare.services.auth_service import AuthService, InvalidCredentialsError
from bookshare.services.user_service import UserService
from bookshare.services.catalog_service import CatalogService
from bookshare.services.membership_service import MembershipService
from bookshare.services.account_service import AccountService

__all__ = [
    "AuthService",
    "InvalidCredentialsError",
    "UserService",
    "CatalogService",
    "MembershipService",
    "AccountService",
]
