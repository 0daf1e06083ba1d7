"""Session, log entry and stream event models."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from transferconsole.transfers.registry import TransferRegistry
from transferconsole.transfers.status import Severity


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: Any) -> Optional[datetime]:
    # Unparsable producer timestamps fall back to receipt time
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    # Dates at the ends of the calendar cannot be shown in every local zone
    try:
        parsed.astimezone()
    except (OverflowError, ValueError):
        return None
    return parsed


class LogLevel(str, Enum):
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


def _coerce_level(value: Any) -> "LogLevel":
    text = str(value or "").strip().lower()
    if text == "warning":
        return LogLevel.WARN
    try:
        return LogLevel(text)
    except ValueError:
        return LogLevel.INFO


def _coerce_message(value: Any) -> str:
    return "" if value is None else str(value)


class LogEntry(BaseModel):
    """One immutable line in the session log."""

    model_config = ConfigDict(frozen=True)

    level: LogLevel = LogLevel.INFO
    message: str = ""
    timestamp: datetime = Field(default_factory=utcnow)

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, value: Any) -> LogLevel:
        return _coerce_level(value)

    @field_validator("message", mode="before")
    @classmethod
    def stringify_message(cls, value: Any) -> str:
        return _coerce_message(value)

    @field_validator("timestamp", mode="before")
    @classmethod
    def default_timestamp(cls, value: Any) -> datetime:
        return _parse_timestamp(value) or utcnow()


class TransferMeta(BaseModel):
    """Per-transfer update carried by a stream event."""

    model_config = ConfigDict(
        populate_by_name=True, extra="ignore", coerce_numbers_to_str=True
    )

    id: Optional[str] = None
    label: Optional[str] = None
    tx_index: Optional[int] = Field(default=None, alias="txIndex")
    tx_hash: Optional[str] = Field(default=None, alias="txHash")
    status: Optional[str] = None

    @field_validator("tx_index", mode="before")
    @classmethod
    def integer_index(cls, value: Any) -> Optional[int]:
        if isinstance(value, bool) or not isinstance(value, int):
            return None
        return value


class StreamEvent(BaseModel):
    """A decoded default message from the event stream."""

    model_config = ConfigDict(extra="ignore")

    level: LogLevel = LogLevel.INFO
    message: str = ""
    timestamp: Optional[datetime] = None
    meta: Optional[TransferMeta] = None

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, value: Any) -> LogLevel:
        return _coerce_level(value)

    @field_validator("message", mode="before")
    @classmethod
    def stringify_message(cls, value: Any) -> str:
        return _coerce_message(value)

    @field_validator("timestamp", mode="before")
    @classmethod
    def lenient_timestamp(cls, value: Any) -> Optional[datetime]:
        return _parse_timestamp(value)

    @property
    def status(self) -> Optional[str]:
        return self.meta.status if self.meta else None

    def to_log_entry(self, received_at: Optional[datetime] = None) -> LogEntry:
        return LogEntry(
            level=self.level,
            message=self.message,
            timestamp=self.timestamp or received_at or utcnow(),
        )


class EventParseError(ValueError):
    """A stream payload could not be decoded into a StreamEvent."""


def parse_event(data: str) -> StreamEvent:
    """Decode one stream message payload."""
    try:
        return StreamEvent.model_validate_json(data)
    except ValidationError as exc:
        errors = exc.errors()
        reason = errors[0]["msg"] if errors else str(exc)
        raise EventParseError(reason) from exc


class SessionState(str, Enum):
    IDLE = "idle"
    SENDING = "sending"
    RUNNING = "running"
    CONFIRMED = "confirmed"
    DISCONNECTED = "disconnected"
    ERROR = "error"


class BadgeVariant(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    ERROR = "error"


@dataclass(frozen=True)
class Badge:
    """Session status badge shown to the operator."""

    label: str
    variant: BadgeVariant


IDLE_BADGE = Badge("Idle", BadgeVariant.IDLE)
SENDING_BADGE = Badge("Sending…", BadgeVariant.RUNNING)
RUNNING_BADGE = Badge("Running…", BadgeVariant.RUNNING)
FAILED_BADGE = Badge("Failed", BadgeVariant.ERROR)
CONFIRMED_BADGE = Badge("Confirmed", BadgeVariant.SUCCEEDED)
ERROR_BADGE = Badge("Error", BadgeVariant.ERROR)
DISCONNECTED_BADGE = Badge("Disconnected", BadgeVariant.ERROR)


@dataclass
class Session:
    """One submission and everything observed on its event stream."""

    id: Optional[str] = None
    state: SessionState = SessionState.IDLE
    badge: Badge = IDLE_BADGE
    registry: TransferRegistry = field(default_factory=TransferRegistry)
    log: list[LogEntry] = field(default_factory=list)
    # Most recent failed/succeeded severity seen on the stream
    outcome: Optional[Severity] = None
    subscription: Any = None

    @property
    def live(self) -> bool:
        return self.subscription is not None and not self.subscription.closed

    def close(self) -> None:
        """Close the stream subscription, if any."""
        if self.subscription is not None:
            self.subscription.close()
            self.subscription = None

    def discard(self) -> None:
        """Tear the session down: close its stream and drop its records."""
        self.close()
        self.registry.reset()
        self.log.clear()
