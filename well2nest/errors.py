"""
Error taxonomy shared by the gateway, the auth manager and the workflows.
"""


class AuthError(Exception):
    """Base class for login failures surfaced to the caller."""


class InvalidRole(AuthError):
    def __init__(self, role):
        self.role = role
        super().__init__("Invalid user type")


class InvalidCredentials(AuthError):
    """No such user, inactive user and wrong password all look the same."""

    def __init__(self):
        super().__init__("Invalid credentials")


class AccessDenied(Exception):
    """The session's role has no scoping rule for the requested collection."""

    def __init__(self, role, collection: str):
        self.role = role
        self.collection = collection
        super().__init__(f"Role '{role}' may not access '{collection}'.")


class DataAccessError(Exception):
    """Any gateway failure; carries the underlying message."""

    def __init__(self, message: str, collection: str = None):
        self.collection = collection
        super().__init__(message)


class PartialWriteFailure(Exception):
    """
    A later step of a multi-step write failed after an earlier step committed.
    ``committed`` names the collection that was written and ``committed_id``
    the id of the row that now exists without its follow-up.
    """

    def __init__(self, committed: str, committed_id, failed_step: str, cause: Exception):
        self.committed = committed
        self.committed_id = committed_id
        self.failed_step = failed_step
        self.cause = cause
        super().__init__(
            f"{committed} {committed_id} was saved but {failed_step} failed: {cause}"
        )
