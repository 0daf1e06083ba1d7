"""Tests for server-sent event parsing and the stream subscription."""

import httpx
import pytest

from transferconsole.api.sse import EventSubscription, ServerSentEvent, iter_sse


def _lines(body):
    return body.split("\n")


class TestIterSse:
    def test_default_message(self):
        events = list(iter_sse(_lines('data: {"message": "hi"}\n\n')))
        assert events == [ServerSentEvent(data='{"message": "hi"}')]

    def test_named_event_without_data(self):
        events = list(iter_sse(_lines("event: end\n\n")))
        assert events == [ServerSentEvent(event="end")]

    def test_multiline_data_skips_comments_and_ids(self):
        body = ": keep-alive\ndata: first\ndata:second\nid: 7\nretry: 3000\n\n"
        events = list(iter_sse(_lines(body)))
        assert events == [ServerSentEvent(data="first\nsecond")]

    def test_several_events(self):
        body = "data: a\n\nevent: progress\ndata: b\n\ndata: c\n\n"
        events = list(iter_sse(_lines(body)))
        assert [(e.event, e.data) for e in events] == [
            ("message", "a"),
            ("progress", "b"),
            ("message", "c"),
        ]

    def test_crlf_lines(self):
        events = list(iter_sse(["data: x\r", "\r"]))
        assert events == [ServerSentEvent(data="x")]

    def test_incomplete_trailing_event_dropped(self):
        assert list(iter_sse(_lines("data: a\n\ndata: partial"))) == [
            ServerSentEvent(data="a")
        ]

    def test_blank_lines_alone_dispatch_nothing(self):
        assert list(iter_sse(["", "", ""])) == []


class Recorder:
    def __init__(self):
        self.messages = []
        self.ended = 0
        self.errors = []
        self.opened = 0

    def subscribe(self, client, url="/api/events/s1", **kwargs):
        return EventSubscription(
            client,
            url,
            on_message=self.messages.append,
            on_end=self._end,
            on_error=self.errors.append,
            on_open=self._open,
            **kwargs,
        )

    def _end(self):
        self.ended += 1

    def _open(self):
        self.opened += 1


def _client(handler):
    return httpx.Client(transport=httpx.MockTransport(handler), base_url="http://server")


def _stream_response(body, status_code=200):
    return httpx.Response(
        status_code,
        content=body,
        headers={"content-type": "text/event-stream"},
    )


@pytest.fixture
def recorder():
    return Recorder()


class TestEventSubscription:
    def test_messages_then_end(self, recorder):
        seen = {}

        def handler(request):
            seen["accept"] = request.headers["accept"]
            seen["path"] = request.url.path
            return _stream_response(b"data: one\n\ndata: two\n\nevent: end\ndata: {}\n\n")

        sub = recorder.subscribe(_client(handler))
        sub.run()

        assert seen == {"accept": "text/event-stream", "path": "/api/events/s1"}
        assert recorder.opened == 1
        assert recorder.messages == ["one", "two"]
        assert recorder.ended == 1
        assert recorder.errors == []
        assert sub.closed

    def test_events_after_end_are_ignored(self, recorder):
        sub = recorder.subscribe(
            _client(lambda r: _stream_response(b"event: end\n\ndata: late\n\n"))
        )
        sub.run()

        assert recorder.ended == 1
        assert recorder.messages == []

    def test_unknown_named_events_ignored(self, recorder):
        sub = recorder.subscribe(
            _client(lambda r: _stream_response(b"event: ping\ndata: x\n\nevent: end\n\n"))
        )
        sub.run()

        assert recorder.messages == []
        assert recorder.ended == 1

    def test_server_closing_stream_is_transport_error(self, recorder):
        sub = recorder.subscribe(_client(lambda r: _stream_response(b"data: one\n\n")))
        sub.run()

        assert recorder.messages == ["one"]
        assert recorder.errors == ["event stream closed by server"]
        assert recorder.ended == 0
        assert sub.closed

    def test_connect_failure(self, recorder):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        sub = recorder.subscribe(_client(handler))
        sub.run()

        assert recorder.errors == ["connection refused"]
        assert recorder.opened == 0
        assert sub.closed

    def test_http_error_status(self, recorder):
        sub = recorder.subscribe(_client(lambda r: _stream_response(b"gone", status_code=404)))
        sub.run()

        assert recorder.errors == ["event stream returned HTTP 404"]
        assert recorder.opened == 0

    def test_read_failure_mid_stream(self, recorder):
        def body():
            yield b"data: one\n\n"
            raise httpx.ReadError("connection reset")

        sub = recorder.subscribe(_client(lambda r: _stream_response(body())))
        sub.run()

        assert recorder.messages == ["one"]
        assert recorder.errors == ["connection reset"]

    def test_close_from_callback_stops_silently(self, recorder):
        client = _client(lambda r: _stream_response(b"data: one\n\ndata: two\n\n"))
        sub = EventSubscription(
            client,
            "/api/events/s1",
            on_message=lambda data: (recorder.messages.append(data), sub.close()),
            on_end=recorder._end,
            on_error=recorder.errors.append,
        )

        sub.run()

        assert recorder.messages == ["one"]
        assert recorder.errors == []
        assert recorder.ended == 0

    def test_run_after_close_does_nothing(self, recorder):
        calls = []

        def handler(request):
            calls.append(request)
            return _stream_response(b"")

        sub = recorder.subscribe(_client(handler))
        sub.close()
        sub.run()

        assert calls == []
        assert recorder.errors == []
