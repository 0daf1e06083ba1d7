"""Server-sent event parsing and a cancellable stream subscription."""

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, Optional

import httpx

from transferconsole.config import END_EVENT

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServerSentEvent:
    """One dispatched event from a text/event-stream body."""

    event: str = "message"
    data: str = ""


def iter_sse(lines: Iterable[str]) -> Iterator[ServerSentEvent]:
    """Parse decoded stream lines into events.

    A blank line dispatches the pending event. Named events are dispatched
    even without data lines; unnamed events need at least one data line.
    """
    event_type = ""
    data: list[str] = []
    pending = False

    for line in lines:
        line = line.rstrip("\r\n")
        if not line:
            if data or event_type:
                yield ServerSentEvent(event=event_type or "message", data="\n".join(data))
            event_type, data, pending = "", [], False
            continue
        if line.startswith(":"):
            continue

        name, sep, value = line.partition(":")
        if sep and value.startswith(" "):
            value = value[1:]

        if name == "event":
            event_type = value
        elif name == "data":
            data.append(value)
        else:
            # id and retry fields are not used for reconnection
            continue
        pending = True

    # Streams that end without a trailing blank line drop the partial event
    if pending:
        logger.debug("Discarding incomplete event at end of stream")


MessageHandler = Callable[[str], None]
LifecycleHandler = Callable[[], None]
ErrorHandler = Callable[[str], None]


class EventSubscription:
    """A push subscription to one event stream.

    ``run()`` blocks, reading the stream and invoking ``on_message`` for
    each default message, until the ``end`` event arrives, the transport
    fails, or ``close()`` is called. ``on_end`` and ``on_error`` fire at
    most once and never after ``close()``.
    """

    def __init__(
        self,
        client: httpx.Client,
        url: str,
        *,
        on_message: MessageHandler,
        on_end: LifecycleHandler,
        on_error: ErrorHandler,
        on_open: Optional[LifecycleHandler] = None,
        end_event: str = END_EVENT,
        timeout: Optional[httpx.Timeout] = None,
    ):
        self.client = client
        self.url = url
        self.on_message = on_message
        self.on_end = on_end
        self.on_error = on_error
        self.on_open = on_open
        self.end_event = end_event
        self.timeout = timeout
        self._closed = False
        self._response: Optional[httpx.Response] = None

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Stop the subscription. Safe to call from inside a callback."""
        if self._closed:
            return
        self._closed = True
        if self._response is not None:
            self._response.close()
        logger.debug("Closed event stream %s", self.url)

    def run(self) -> None:
        if self._closed:
            return

        request_args = {"headers": {"Accept": "text/event-stream"}}
        if self.timeout is not None:
            request_args["timeout"] = self.timeout

        try:
            with self.client.stream("GET", self.url, **request_args) as response:
                self._response = response
                if response.status_code != 200:
                    self._fail(f"event stream returned HTTP {response.status_code}")
                    return
                logger.debug("Opened event stream %s", self.url)
                if self.on_open is not None:
                    self.on_open()
                for event in iter_sse(response.iter_lines()):
                    if self._closed:
                        return
                    self._dispatch(event)
                    if self._closed:
                        return
        except httpx.HTTPError as exc:
            if self._closed:
                return
            self._fail(str(exc) or exc.__class__.__name__)
            return
        finally:
            self._response = None

        if not self._closed:
            self._fail("event stream closed by server")

    def _dispatch(self, event: ServerSentEvent) -> None:
        if event.event == self.end_event:
            self.on_end()
            self.close()
        elif event.event == "message":
            self.on_message(event.data)
        else:
            logger.debug("Ignoring %r event on %s", event.event, self.url)

    def _fail(self, reason: str) -> None:
        logger.warning("Event stream %s failed: %s", self.url, reason)
        self.on_error(reason)
        self.close()
