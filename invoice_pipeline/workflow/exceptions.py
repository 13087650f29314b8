class WorkflowError(Exception):
    """Base exception for invoice workflow errors."""


class InvalidInputError(WorkflowError):
    """Raised synchronously when an upload request is unusable."""


class InvoiceNotFoundError(WorkflowError):
    """Raised when an invoice cannot be found in the database."""


class TagNotFoundError(WorkflowError):
    """Raised when a tag does not exist or belongs to another user."""


class MessageFormatError(WorkflowError):
    """Raised when a broker payload does not match its message contract."""


class InvalidTransitionError(WorkflowError):
    """Raised when an event is not allowed from the invoice's current status."""

    def __init__(self, current: str, event: str) -> None:
        super().__init__(f"Event '{event}' is not allowed from status '{current}'")
        self.current = current
        self.event = event
