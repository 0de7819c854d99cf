"""
Backend error taxonomy.

Backends raise these; the escalation controller converts them into state
transitions and never lets them reach the caller.
"""


class BackendError(Exception):
    """Base class for parser backend failures."""

    transient = False

    def __init__(self, message: str, backend: str = ""):
        super().__init__(message)
        self.backend = backend


class BackendUnavailableError(BackendError):
    """Backend could not be reached (connection refused, 5xx, rate limited)."""

    transient = True


class BackendTimeoutError(BackendError):
    """Backend call exceeded its time bound."""

    transient = True


class MalformedResponseError(BackendError):
    """Backend answered but the payload could not be turned into a recipe."""

    transient = True


class BackendAuthError(BackendError):
    """Backend rejected our credentials."""
