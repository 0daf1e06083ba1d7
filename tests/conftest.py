"""Shared fakes for session tests."""

import json
import os
import time

import pytest

from transferconsole.api.client import SubmissionError, SubmissionRejected


class RecordingSink:
    """ConsoleSink that remembers everything it was told."""

    def __init__(self):
        self.entries = []
        self.badges = []
        self.snapshots = []
        self.submit_states = []
        self.clears = 0

    def append_log(self, entry):
        self.entries.append(entry)

    def clear_log(self):
        self.entries.clear()
        self.clears += 1

    def set_badge(self, badge):
        self.badges.append(badge)

    def render_transfers(self, snapshot):
        self.snapshots.append(snapshot)

    def set_submit_enabled(self, enabled):
        self.submit_states.append(enabled)

    @property
    def badge(self):
        return self.badges[-1] if self.badges else None

    @property
    def messages(self):
        return [e.message for e in self.entries]


class ScriptedSubscription:
    """Subscription that replays a script of stream events on run()."""

    def __init__(self, session_id, script, on_message, on_end, on_error, on_open):
        self.session_id = session_id
        self.script = list(script)
        self.on_message = on_message
        self.on_end = on_end
        self.on_error = on_error
        self.on_open = on_open
        self.closed = False
        self.runs = 0

    def close(self):
        self.closed = True

    def run(self):
        self.runs += 1
        if self.on_open is not None:
            self.on_open()
        while self.script and not self.closed:
            kind, *args = self.script.pop(0)
            if kind == "message":
                data = args[0]
                self.on_message(data if isinstance(data, str) else json.dumps(data))
            elif kind == "end":
                self.on_end()
            elif kind == "error":
                self.on_error(args[0])
            elif kind == "call":
                args[0]()


class FakeApi:
    """Stands in for TransferApiClient."""

    def __init__(self):
        self.payloads = []
        self.session_ids = []
        self.failure = None
        self.scripts = {}
        self.subscriptions = []

    def submit(self, payload):
        self.payloads.append(payload)
        if self.failure is not None:
            raise self.failure
        session_id = f"s{len(self.payloads)}"
        self.session_ids.append(session_id)
        return session_id

    def open_events(self, session_id, *, on_message, on_end, on_error, on_open=None):
        sub = ScriptedSubscription(
            session_id, self.scripts.get(session_id, []), on_message, on_end, on_error, on_open
        )
        self.subscriptions.append(sub)
        return sub

    def reject(self, body, status_code=400):
        self.failure = SubmissionRejected(body, status_code=status_code)

    def break_network(self, reason):
        self.failure = SubmissionError(reason)


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def api():
    return FakeApi()


@pytest.fixture
def controller(api, sink):
    from transferconsole.session.controller import SessionController

    return SessionController(api, sink)


@pytest.fixture
def tokyo_tz():
    """Run with a local zone east of UTC."""
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is not available")
    previous = os.environ.get("TZ")
    os.environ["TZ"] = "Asia/Tokyo"
    time.tzset()
    yield
    if previous is None:
        del os.environ["TZ"]
    else:
        os.environ["TZ"] = previous
    time.tzset()
