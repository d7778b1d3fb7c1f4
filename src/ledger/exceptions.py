class ImmutableEventError(Exception):
    """Raised when code tries to change or delete a recorded lifecycle event."""
