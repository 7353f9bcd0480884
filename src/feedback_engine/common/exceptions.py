"""Feedback-Engine exception hierarchy.

Every error carries the machine-readable code returned to callers and the
HTTP status it maps to.
"""


class FeedbackError(Exception):
    """Base exception for all Feedback-Engine errors."""

    status_code = 400

    def __init__(
        self,
        message: str = "",
        code: str = "error",
        status_code: int | None = None,
        headers: dict[str, str] | None = None,
    ):
        self.message = message
        self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.headers = headers or {}
        super().__init__(message or code)


class MissingApiKeyError(FeedbackError):
    """No credential was supplied on a game-scoped request."""

    status_code = 401

    def __init__(self, message: str = ""):
        super().__init__(message, code="missing_api_key")


class InvalidApiKeyError(FeedbackError):
    """The credential is unknown or revoked."""

    status_code = 401

    def __init__(self, message: str = ""):
        super().__init__(message, code="invalid_api_key")


class AuthBackendError(FeedbackError):
    """Credential storage could not be reached."""

    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message, code="auth_error")


class UnauthorizedError(FeedbackError):
    """Dashboard bearer token missing or wrong."""

    status_code = 401

    def __init__(self, message: str = ""):
        super().__init__(message, code="unauthorized")


class RateLimitedError(FeedbackError):
    status_code = 429

    def __init__(self, retry_after_seconds: int, headers: dict[str, str] | None = None):
        self.retry_after_seconds = retry_after_seconds
        super().__init__("", code="rate_limited", headers=headers)


class BetaAccessRequiredError(FeedbackError):
    """Beta key missing, unknown, expired or exhausted."""

    status_code = 403

    def __init__(self, message: str = "A valid beta access key is required to add an experience."):
        super().__init__(message, code="beta_access_required")


class NotFoundError(FeedbackError):
    status_code = 404

    def __init__(self, code: str = "not_found", message: str = ""):
        super().__init__(message, code=code)


class InvalidRequestError(FeedbackError):
    """Semantically invalid request (bad status, disabled feature, ...)."""

    status_code = 400

    def __init__(self, code: str, message: str = ""):
        super().__init__(message, code=code)
