"""Transfer registry - merge per-transfer updates into ordered records."""

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from pydantic import BaseModel

from transferconsole.transfers.status import Severity, classify, status_label

if TYPE_CHECKING:
    from transferconsole.session.models import TransferMeta


class TransferRecord(BaseModel):
    """Everything known about one transfer attempt."""

    id: str
    label: Optional[str] = None
    tx_index: Optional[int] = None
    tx_hash: Optional[str] = None
    status: Optional[str] = None
    last_message: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @property
    def display_label(self) -> str:
        if self.label:
            return self.label
        if self.tx_index is not None:
            return f"Tx {self.tx_index + 1}"
        return self.id

    @property
    def status_label(self) -> str:
        return status_label(self.status)

    @property
    def severity(self) -> Severity:
        return classify(self.status)


class TransferRegistry:
    """In-memory store of transfer records keyed by transfer id.

    Updates for the same id are applied last-write-wins in arrival order.
    The registry does not reorder or reject status regressions; a late
    ``submitted`` after ``monitoring`` simply becomes the current status.
    """

    def __init__(self) -> None:
        self._records: dict[str, TransferRecord] = {}
        self._snapshot: tuple[TransferRecord, ...] = ()

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, transfer_id: object) -> bool:
        return transfer_id in self._records

    def get(self, transfer_id: str) -> TransferRecord | None:
        record = self._records.get(transfer_id)
        return record.model_copy() if record else None

    def upsert(
        self,
        meta: "TransferMeta | None",
        message: str | None = None,
        timestamp: datetime | None = None,
    ) -> TransferRecord | None:
        """Merge a transfer update. Returns the updated record, or None if ignored."""
        if meta is None or not meta.id:
            return None

        now = timestamp or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        record = self._records.get(meta.id)
        if record is None:
            record = TransferRecord(
                id=meta.id,
                tx_index=meta.tx_index,
                created_at=now,
                updated_at=now,
            )
            self._records[meta.id] = record

        # Only non-empty values overwrite
        if meta.label:
            record.label = meta.label
        if meta.tx_index is not None:
            record.tx_index = meta.tx_index
        if meta.tx_hash:
            record.tx_hash = meta.tx_hash
        if meta.status:
            record.status = meta.status
        if message:
            record.last_message = message
        record.updated_at = now

        self._refresh()
        return record.model_copy()

    def snapshot(self) -> tuple[TransferRecord, ...]:
        """Records ordered by creation time, ties in insertion order."""
        return self._snapshot

    def reset(self) -> None:
        self._records.clear()
        self._refresh()

    def _refresh(self) -> None:
        # sorted() is stable and dicts keep insertion order
        ordered = sorted(self._records.values(), key=lambda r: r.created_at)
        self._snapshot = tuple(r.model_copy() for r in ordered)
