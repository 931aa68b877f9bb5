from __future__ import annotations


class AppError(Exception):
    """Base application error."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class NotFoundError(AppError):
    pass


class ForbiddenError(AppError):
    pass


class ValidationError(AppError):
    pass


class TransientStoreError(AppError):
    """The database was unreachable or timed out."""


class AuthenticationError(AppError):
    MISSING_TOKEN = "missing_token"
    INVALID_OR_EXPIRED_TOKEN = "invalid_or_expired_token"
    ACCOUNT_NOT_FOUND = "account_not_found"
    ACCOUNT_INACTIVE = "account_inactive"

    _DETAILS = {
        MISSING_TOKEN: "Token not provided",
        INVALID_OR_EXPIRED_TOKEN: "Invalid or expired token",
        ACCOUNT_NOT_FOUND: "User not found",
        ACCOUNT_INACTIVE: "User account is not active",
    }

    def __init__(self, code: str) -> None:
        self.code = code
        super().__init__(self._DETAILS.get(code, code))
