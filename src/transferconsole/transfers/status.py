"""Transfer status vocabulary: labels and severity classes."""

from enum import Enum


class TransferStatus(str, Enum):
    """Status codes emitted by the transfer server."""

    PREPARING = "preparing"
    FORCING_FAILURE = "forcing-failure"
    SUBMITTED = "submitted"
    MONITORING = "monitoring"
    PENDING = "pending"
    NOTFOUND = "notfound"
    CONFIRMED = "confirmed"
    REVERTED = "reverted"
    ERROR = "error"
    INVALID_BATCH = "invalid-batch"


class Severity(str, Enum):
    """Severity bucket driving the session badge."""

    IN_PROGRESS = "in-progress"
    FAILED = "failed"
    SUCCEEDED = "succeeded"
    UNRECOGNIZED = "unrecognized"


STATUS_LABELS = {
    TransferStatus.PREPARING: "Preparing",
    TransferStatus.FORCING_FAILURE: "Forcing failure",
    TransferStatus.SUBMITTED: "Submitted",
    TransferStatus.MONITORING: "Monitoring",
    TransferStatus.PENDING: "Pending",
    TransferStatus.NOTFOUND: "Not yet in mempool",
    TransferStatus.CONFIRMED: "Confirmed",
    TransferStatus.REVERTED: "Reverted",
    TransferStatus.ERROR: "Error",
    TransferStatus.INVALID_BATCH: "Invalid batch size",
}

STATUS_SEVERITY = {
    TransferStatus.PREPARING: Severity.IN_PROGRESS,
    TransferStatus.FORCING_FAILURE: Severity.IN_PROGRESS,
    TransferStatus.SUBMITTED: Severity.IN_PROGRESS,
    TransferStatus.MONITORING: Severity.IN_PROGRESS,
    TransferStatus.PENDING: Severity.IN_PROGRESS,
    TransferStatus.NOTFOUND: Severity.IN_PROGRESS,
    TransferStatus.REVERTED: Severity.FAILED,
    TransferStatus.ERROR: Severity.FAILED,
    TransferStatus.INVALID_BATCH: Severity.FAILED,
    TransferStatus.CONFIRMED: Severity.SUCCEEDED,
}


def parse_status(code: str | None) -> TransferStatus | None:
    """Return the known status for a code, or None."""
    if not code:
        return None
    try:
        return TransferStatus(code)
    except ValueError:
        return None


def status_label(code: str | None) -> str:
    """Human label for a status code.

    Unknown codes are shown verbatim; missing codes read "Unknown".
    """
    status = parse_status(code)
    if status is not None:
        return STATUS_LABELS[status]
    return code if code else "Unknown"


def classify(code: str | None) -> Severity:
    """Severity bucket for a status code."""
    status = parse_status(code)
    if status is None:
        return Severity.UNRECOGNIZED
    return STATUS_SEVERITY[status]
