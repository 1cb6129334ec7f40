# backend/app/core/errors.py
"""
Domain errors raised by the security core and the services.

Each error carries the HTTP status it maps to; the handler registered in
backend.app.main renders every StrongboxError as {"code": ..., "message": ...}.
"""
from fastapi import status

GENERIC_LOGIN_ERROR = "incorrect email, password or verification code"
WRONG_CREDENTIALS_ERROR = (
    "Wrong credentials. Please check the email and password are correct!"
)


class StrongboxError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: str = ""):
        self.message = message or self.default_message
        super().__init__(self.message)


class ConfigurationError(StrongboxError):
    default_message = "Invalid configuration"


# ─────────────────────────────────────────────────────────────────────────────
# 400: surfaced verbatim to the client
# ─────────────────────────────────────────────────────────────────────────────
class ValidationError(StrongboxError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class InvalidEmailError(ValidationError):
    default_message = "invalid email"


class InvalidPasswordFormatError(ValidationError):
    default_message = "password input is not SHA-512 hashed"


class DuplicateUserError(ValidationError):
    default_message = "user already exists"


# ─────────────────────────────────────────────────────────────────────────────
# 401: credential, code and token mismatches
# ─────────────────────────────────────────────────────────────────────────────
class AuthError(StrongboxError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = GENERIC_LOGIN_ERROR


class TokenMalformedError(AuthError):
    default_message = "token is malformed"


class BadSignatureError(AuthError):
    default_message = "token signature is invalid"


class TokenExpiredError(AuthError):
    default_message = "token is expired"


class OutsideRefreshWindowError(AuthError):
    default_message = "token is outside the refresh window"


class ForbiddenError(StrongboxError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "You don't have permission to access this resource"


class NotFoundError(StrongboxError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class LockoutError(StrongboxError):
    status_code = status.HTTP_423_LOCKED
    default_message = "too many unsuccessful login attempts"


# ─────────────────────────────────────────────────────────────────────────────
# 500: internal failures, logged with context
# ─────────────────────────────────────────────────────────────────────────────
class PersistenceError(StrongboxError):
    default_message = "Unable to access the data store"


class CipherError(StrongboxError):
    default_message = "Unable to process encrypted data"


class DecodeFailure(CipherError):
    default_message = "Unable to decode encrypted data"


class MailError(StrongboxError):
    default_message = "Error sending email"
