"""HTTP client for the transfer server's submission and event APIs."""

import logging
from typing import Optional
from urllib.parse import quote

import httpx

from transferconsole.api.sse import (
    ErrorHandler,
    EventSubscription,
    LifecycleHandler,
    MessageHandler,
)
from transferconsole.config import (
    CONNECT_TIMEOUT,
    EVENTS_PATH,
    REQUEST_TIMEOUT,
    SEND_PATH,
    SERVER_URL,
)

logger = logging.getLogger(__name__)


class SubmissionError(Exception):
    """The submission request could not be completed."""


class SubmissionRejected(SubmissionError):
    """The server answered the submission without starting a session."""

    def __init__(self, body: str, status_code: Optional[int] = None):
        super().__init__(body)
        self.body = body
        self.status_code = status_code


class TransferApiClient:
    """Talks to ``/api/send`` and ``/api/events/<session>``."""

    def __init__(
        self,
        base_url: str | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
        connect_timeout: float = CONNECT_TIMEOUT,
        request_timeout: float = REQUEST_TIMEOUT,
    ):
        self.base_url = (base_url or SERVER_URL).rstrip("/")
        self.connect_timeout = connect_timeout
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=httpx.Timeout(request_timeout, connect=connect_timeout),
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "TransferApiClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def submit(self, payload: dict[str, str]) -> str:
        """Post a transfer job and return the new session id."""
        try:
            response = self._client.post(SEND_PATH, json=payload)
        except httpx.HTTPError as exc:
            raise SubmissionError(str(exc) or exc.__class__.__name__) from exc

        if not response.is_success:
            raise SubmissionRejected(response.text, status_code=response.status_code)

        try:
            session_id = response.json().get("sessionId")
        except (ValueError, AttributeError):
            session_id = None
        if not session_id:
            raise SubmissionRejected(
                f"response did not include a session id: {response.text}",
                status_code=response.status_code,
            )

        logger.info("Submitted %d field(s), session %s", len(payload), session_id)
        return str(session_id)

    def events_url(self, session_id: str) -> str:
        return EVENTS_PATH.format(session_id=quote(session_id, safe=""))

    def open_events(
        self,
        session_id: str,
        *,
        on_message: MessageHandler,
        on_end: LifecycleHandler,
        on_error: ErrorHandler,
        on_open: Optional[LifecycleHandler] = None,
    ) -> EventSubscription:
        """Create a subscription to a session's event stream.

        The stream is not read until ``run()`` is called on the result.
        Monitoring has no read timeout; only connecting is bounded.
        """
        return EventSubscription(
            self._client,
            self.events_url(session_id),
            on_message=on_message,
            on_end=on_end,
            on_error=on_error,
            on_open=on_open,
            timeout=httpx.Timeout(None, connect=self.connect_timeout),
        )
