"""Session controller - one live submission and its event stream."""

import logging
from functools import partial
from typing import Optional, Protocol, Sequence

from transferconsole.api.client import SubmissionError, SubmissionRejected
from transferconsole.config import build_payload
from transferconsole.session.models import (
    CONFIRMED_BADGE,
    DISCONNECTED_BADGE,
    ERROR_BADGE,
    FAILED_BADGE,
    IDLE_BADGE,
    RUNNING_BADGE,
    SENDING_BADGE,
    Badge,
    EventParseError,
    LogEntry,
    LogLevel,
    Session,
    SessionState,
    parse_event,
)
from transferconsole.transfers.registry import TransferRecord
from transferconsole.transfers.status import Severity, classify

logger = logging.getLogger(__name__)

DISCONNECT_MESSAGE = "Lost connection to server. Check the terminal for details."


class ConsoleSink(Protocol):
    """Where the controller sends everything the operator sees."""

    def append_log(self, entry: LogEntry) -> None: ...

    def clear_log(self) -> None: ...

    def set_badge(self, badge: Badge) -> None: ...

    def render_transfers(self, snapshot: Sequence[TransferRecord]) -> None: ...

    def set_submit_enabled(self, enabled: bool) -> None: ...


class SessionController:
    """Drive a session through send -> stream -> end.

    ``api`` provides ``submit(payload) -> session_id`` and
    ``open_events(session_id, on_message=, on_end=, on_error=, on_open=)``
    returning a subscription with ``run()``, ``close()`` and ``closed``.
    Event handlers receive the session they were opened for; events for a
    session that has since been replaced are dropped.
    """

    def __init__(self, api, sink: ConsoleSink):
        self.api = api
        self.sink = sink
        self.session = Session()
        self.submit_enabled = True

    # ── Operator controls ───────────────────────────────────────

    def announce_ready(self, message: str) -> None:
        self._log(self.session, LogLevel.INFO, message)
        self._set_badge(self.session, IDLE_BADGE)
        self._render(self.session)

    def submit(self, fields: dict[str, Optional[str]]) -> Session:
        """Start a new session, superseding whatever is running."""
        session = self._replace_session()
        session.state = SessionState.SENDING
        self._set_badge(session, SENDING_BADGE)
        self._set_submit_enabled(False)

        payload = build_payload(fields)
        try:
            session_id = self.api.submit(payload)
        except SubmissionRejected as exc:
            self._submission_failed(session, f"Failed to start session: {exc.body}")
            return session
        except SubmissionError as exc:
            self._submission_failed(session, f"Failed to submit request: {exc}")
            return session

        self._open(session, session_id)
        return session

    def attach(self, session_id: str) -> Session:
        """Follow an already running session without submitting."""
        session = self._replace_session()
        self._set_submit_enabled(False)
        self._open(session, session_id)
        return session

    def clear_log(self) -> None:
        self.session.log.clear()
        self.sink.clear_log()
        self._log(self.session, LogLevel.INFO, "Console cleared.")

    def run(self) -> Session:
        """Pump the live stream until the current session stops streaming.

        A handler may call ``submit`` mid-stream; the loop then carries on
        with the replacement session's stream.
        """
        while True:
            session = self.session
            subscription = session.subscription
            if subscription is None or subscription.closed:
                return session
            subscription.run()
            if self.session is session and session.subscription is subscription:
                # run() returned without a terminal callback closing it
                session.close()

    def shutdown(self) -> None:
        """Close the live stream, keeping what was received."""
        self.session.close()
        self._set_submit_enabled(True)

    # ── Stream handlers ─────────────────────────────────────────

    def handle_open(self, session: Session) -> None:
        if session is not self.session:
            return
        logger.debug("Event stream open for session %s", session.id)

    def handle_message(self, session: Session, data: str) -> None:
        if session is not self.session:
            logger.debug("Dropping event for superseded session %s", session.id)
            return

        try:
            event = parse_event(data)
        except EventParseError as exc:
            self._log(
                session, LogLevel.ERROR, f"Failed to parse server message: {exc}"
            )
            session.state = SessionState.ERROR
            self._set_badge(session, ERROR_BADGE)
            return

        entry = event.to_log_entry()
        self._append(session, entry)

        if event.meta is not None:
            updated = session.registry.upsert(
                event.meta, event.message, entry.timestamp
            )
            if updated is not None:
                self._render(session)

        severity = classify(event.status)
        if severity is Severity.IN_PROGRESS:
            session.state = SessionState.RUNNING
            self._set_badge(session, RUNNING_BADGE)
        elif severity is Severity.FAILED:
            session.state = SessionState.ERROR
            session.outcome = Severity.FAILED
            self._set_badge(session, FAILED_BADGE)
        elif severity is Severity.SUCCEEDED:
            session.outcome = Severity.SUCCEEDED
            self._set_badge(session, CONFIRMED_BADGE)

    def handle_end(self, session: Session) -> None:
        if session is not self.session:
            return
        self._log(session, LogLevel.INFO, "Session complete.")
        session.state = SessionState.CONFIRMED
        if session.outcome is Severity.FAILED:
            self._set_badge(session, FAILED_BADGE)
        elif session.outcome is Severity.SUCCEEDED:
            self._set_badge(session, CONFIRMED_BADGE)
        else:
            self._set_badge(session, IDLE_BADGE)
        self._set_submit_enabled(True)
        session.close()

    def handle_transport_error(self, session: Session, reason: str) -> None:
        if session is not self.session:
            return
        logger.warning("Session %s disconnected: %s", session.id, reason)
        self._log(session, LogLevel.WARN, DISCONNECT_MESSAGE)
        session.state = SessionState.DISCONNECTED
        self._set_badge(session, DISCONNECTED_BADGE)
        self._set_submit_enabled(True)
        session.close()

    # ── Internals ───────────────────────────────────────────────

    def _replace_session(self) -> Session:
        previous = self.session
        previous.discard()
        self.sink.clear_log()
        session = Session()
        self.session = session
        self._render(session)
        return session

    def _open(self, session: Session, session_id: str) -> None:
        session.id = session_id
        session.state = SessionState.RUNNING
        self._log(session, LogLevel.INFO, f"Session started. ID: {session_id}")
        session.subscription = self.api.open_events(
            session_id,
            on_message=partial(self.handle_message, session),
            on_end=partial(self.handle_end, session),
            on_error=partial(self.handle_transport_error, session),
            on_open=partial(self.handle_open, session),
        )

    def _submission_failed(self, session: Session, message: str) -> None:
        logger.error(message)
        self._log(session, LogLevel.ERROR, message)
        session.state = SessionState.ERROR
        self._set_badge(session, ERROR_BADGE)
        self._set_submit_enabled(True)

    def _log(self, session: Session, level: LogLevel, message: str) -> None:
        self._append(session, LogEntry(level=level, message=message))

    def _append(self, session: Session, entry: LogEntry) -> None:
        session.log.append(entry)
        self.sink.append_log(entry)

    def _set_badge(self, session: Session, badge: Badge) -> None:
        session.badge = badge
        self.sink.set_badge(badge)

    def _set_submit_enabled(self, enabled: bool) -> None:
        self.submit_enabled = enabled
        self.sink.set_submit_enabled(enabled)

    def _render(self, session: Session) -> None:
        self.sink.render_transfers(session.registry.snapshot())
