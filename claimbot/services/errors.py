"""Error taxonomy for the webhook pipeline.

Errors deriving from ``WebhookError`` are terminal for a request and carry
the HTTP status and the public message the caller sees. Collaborator errors
(``DependencyError``) never leave a transition function.
"""

from typing import Optional


class WebhookError(Exception):
    status_code = 500
    error = "Internal Server Error"
    public_message = "An internal error occurred. Please try again later."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.public_message)

    @property
    def client_message(self) -> str:
        return self.public_message


class AuthenticationError(WebhookError):
    status_code = 401
    error = "Unauthorized"
    public_message = "Request signature could not be verified"


class ValidationError(WebhookError):
    status_code = 400
    error = "Bad Request"
    public_message = "Missing required field"

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Missing required field: {field}")

    @property
    def client_message(self) -> str:
        return str(self)


class RateLimitError(WebhookError):
    status_code = 429
    error = "Rate limit exceeded"
    public_message = "Too many requests. Please try again later."

    def __init__(self, retry_after: int):
        self.retry_after = retry_after
        super().__init__(f"Too many requests. Retry after {retry_after} seconds.")

    @property
    def client_message(self) -> str:
        return str(self)


class StoreUnavailableError(WebhookError):
    status_code = 503
    error = "Service temporarily unavailable"
    public_message = "Service temporarily unavailable"

    def __init__(self, store: str, message: Optional[str] = None):
        self.store = store
        super().__init__(message or f"{store} store unavailable")


class ConfigurationError(Exception):
    """Raised at startup when the application cannot be wired."""


class DependencyError(Exception):
    """A collaborator call failed."""

    def __init__(self, dependency: str, message: str):
        self.dependency = dependency
        super().__init__(f"{dependency}: {message}")


class DependencyTimeoutError(DependencyError):
    """A collaborator call exceeded its time bound."""


class UnhandledHandlerError(Exception):
    """A transition function raised something other than a handled outcome."""

    def __init__(self, state: str, cause: BaseException):
        self.state = state
        self.cause = cause
        super().__init__(f"Handler for {state} failed: {type(cause).__name__}")
