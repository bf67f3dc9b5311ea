class LibraryError(Exception):
    """Base of every error the API reports to its callers.

    :param message: human readable message, safe to send to clients
    :type message: str
    """

    code = "INTERNAL_ERROR"
    status_code = 500
    default_message = "Something went wrong"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class MissingField(LibraryError):
    code = "MISSING_FIELD"
    status_code = 400
    default_message = "Required field missing"


class InvalidRequest(LibraryError):
    """Request body does not have the expected shape"""

    code = "INVALID_REQUEST"
    status_code = 400
    default_message = "Invalid request"


class InvalidCredentials(LibraryError):
    code = "INVALID_CREDENTIALS"
    status_code = 401
    default_message = "Invalid credentials"


class AuthRequired(LibraryError):
    """No bearer token was presented"""

    code = "AUTH_REQUIRED"
    status_code = 401
    default_message = "Access denied"


class DuplicateEmail(LibraryError):
    code = "DUPLICATE_EMAIL"
    status_code = 409
    default_message = "Email already registered"


class InvalidToken(LibraryError):
    code = "INVALID_TOKEN"
    status_code = 403
    default_message = "Invalid token"


class TokenExpired(InvalidToken):
    code = "TOKEN_EXPIRED"
    default_message = "Token expired"


class NotFound(LibraryError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "Not found"


class InternalFailure(LibraryError):
    pass
