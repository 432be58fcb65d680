# /app/core/errors.py

"""
Error taxonomy for the dashboard.

Providers report expected failures as values (see `ProviderError`), and the
session/record components wrap them in one of these types before handing
them to `OperationResult.fail`. The result keeps the type's `kind` and the
provider's `code`, which is what the router layer maps onto HTTP statuses.
"""

from typing import Optional


class AppError(Exception):
    """Base class for all dashboard errors."""

    kind = "app"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code


class AuthError(AppError):
    """Bad credentials, duplicate account, or an expired session."""

    kind = "auth"


class DataAccessError(AppError):
    """The provider rejected a query or mutation (permission, validation, connectivity)."""

    kind = "data_access"


class UserCancelled(AppError):
    """The user declined a confirmation step. Not shown to the user."""

    kind = "cancelled"

    def __init__(self, message: str = "cancelled"):
        super().__init__(message, code="cancelled")
