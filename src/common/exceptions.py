"""Domain errors shared by the flag, role and pass subsystems.

Each error carries a machine-readable ``reason`` that is returned to API clients
next to the human-readable message. HTTP mapping lives in ``api.exception_handlers``.
"""


class DomainError(Exception):
    """Base class for expected, user-visible failures."""

    default_reason = "Error"

    def __init__(self, reason: str | None = None, message: str | None = None) -> None:
        """Store the reason code and message."""
        self.reason = reason or self.default_reason
        self.message = message or self.reason
        super().__init__(self.message)


class ValidationError(DomainError):
    """Malformed input or a disallowed role vocabulary at write time."""

    default_reason = "Invalid"


class ExpiredError(ValidationError):
    """The pass validity window has passed."""

    default_reason = "Expired"


class NotFoundError(DomainError):
    """A lookup that requires an existing pass, venue, actor or flag found nothing."""

    default_reason = "NotFound"


class ConflictError(DomainError):
    """The redemption precondition failed. Terminal, never retried."""

    default_reason = "AlreadyRedeemed"


class AuthorizationError(DomainError):
    """The actor does not satisfy the required role, even after equivalence."""

    default_reason = "Forbidden"
