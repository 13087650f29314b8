"""Invoice status state machine.

UPLOADED -> PROCESSING -> COMPLETED, with ERROR reachable from every state.
Status values are persisted verbatim as strings.
"""

from enum import StrEnum

from invoice_pipeline.workflow.exceptions import InvalidTransitionError


class InvoiceStatus(StrEnum):
    UPLOADED = "UPLOADED"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    ERROR = "ERROR"


class InvoiceEvent(StrEnum):
    DISPATCHED = "DISPATCHED"
    ANALYSIS_STORED = "ANALYSIS_STORED"
    FAILED = "FAILED"


TRANSITIONS: dict[tuple[InvoiceStatus, InvoiceEvent], InvoiceStatus] = {
    (InvoiceStatus.UPLOADED, InvoiceEvent.DISPATCHED): InvoiceStatus.PROCESSING,
    (InvoiceStatus.PROCESSING, InvoiceEvent.ANALYSIS_STORED): InvoiceStatus.COMPLETED,
    (InvoiceStatus.UPLOADED, InvoiceEvent.FAILED): InvoiceStatus.ERROR,
    (InvoiceStatus.PROCESSING, InvoiceEvent.FAILED): InvoiceStatus.ERROR,
    (InvoiceStatus.COMPLETED, InvoiceEvent.FAILED): InvoiceStatus.ERROR,
    (InvoiceStatus.ERROR, InvoiceEvent.FAILED): InvoiceStatus.ERROR,
}

TERMINAL_STATUSES = frozenset({InvoiceStatus.COMPLETED, InvoiceStatus.ERROR})


def transition(current: InvoiceStatus | str, event: InvoiceEvent) -> InvoiceStatus:
    """Return the status reached by applying ``event`` to ``current``.

    Raises:
        InvalidTransitionError: if the pair is not in the transition table.
    """
    try:
        status = InvoiceStatus(current)
    except ValueError as exc:
        raise InvalidTransitionError(str(current), event.value) from exc
    target = TRANSITIONS.get((status, event))
    if target is None:
        raise InvalidTransitionError(status.value, event.value)
    return target


def is_terminal(status: InvoiceStatus | str) -> bool:
    return InvoiceStatus(status) in TERMINAL_STATUSES
