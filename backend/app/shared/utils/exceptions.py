"""
Custom Exceptions for the Column Trigger Application.

These exceptions provide clear, specific error handling for business logic scenarios.
"""
from typing import Optional


class ValidationError(Exception):
    """
    Raised when a trigger definition is malformed.

    Examples: empty title, empty message content, negative delay,
    unknown trigger condition. Never retried automatically.
    """
    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class EntityNotFoundError(Exception):
    """
    Raised when a requested entity does not exist in the database.
    """
    def __init__(self, entity_type: str, entity_id):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.message = f"{entity_type} with ID {entity_id} not found."
        super().__init__(self.message)


# Short alias used across the trigger module
NotFoundError = EntityNotFoundError


class PersistenceError(Exception):
    """
    Raised when the underlying store is unreachable or rejects an operation.

    Wraps the original SQLAlchemy error in `cause`.
    """
    def __init__(self, operation: str, cause: Optional[Exception] = None):
        self.operation = operation
        self.cause = cause
        self.message = f"Persistence failure during {operation}"
        if cause is not None:
            self.message += f": {cause}"
        super().__init__(self.message)


class InvalidStateError(Exception):
    """
    Raised when a ledger transition is attempted from a non-pending state.

    Example:
        Poller A marks entry #7 as sent
        Poller B tries to mark entry #7 as failed -> InvalidStateError

    The entry keeps its first terminal state.
    """
    def __init__(self, entity_type: str, entity_id, current_status: str, attempted: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.current_status = current_status
        self.attempted = attempted
        self.message = (
            f"{entity_type} with ID {entity_id} is '{current_status}', "
            f"cannot transition to '{attempted}'."
        )
        super().__init__(self.message)
