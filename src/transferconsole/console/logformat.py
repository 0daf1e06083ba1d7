"""Render log entries as rich text with clickable links."""

import re
from dataclasses import dataclass

from rich.style import Style
from rich.text import Text

from transferconsole.session.models import LogEntry, LogLevel

URL_PATTERN = re.compile(r"https?://[^\s]+")

LEVEL_STYLES = {
    LogLevel.INFO: "",
    LogLevel.WARN: "yellow",
    LogLevel.ERROR: "bold red",
}

TIMESTAMP_STYLE = "dim"
LINK_STYLE = "underline cyan"


@dataclass(frozen=True)
class Segment:
    """A run of message text, either plain or a hyperlink."""

    text: str
    is_link: bool = False


def split_message(message: str) -> list[Segment]:
    """Split a message into plain-text and URL segments, in order."""
    segments = []
    last = 0
    for match in URL_PATTERN.finditer(message):
        if match.start() > last:
            segments.append(Segment(message[last : match.start()]))
        segments.append(Segment(match.group(0), is_link=True))
        last = match.end()
    if last < len(message):
        segments.append(Segment(message[last:]))
    return segments


def format_time(entry: LogEntry) -> str:
    """Short local time, e.g. 14:03:27."""
    return entry.timestamp.astimezone().strftime("%X")


def format_entry(entry: LogEntry) -> Text:
    """Render a log entry.

    Message content is appended as literal text, so console markup or
    angle brackets in producer messages are shown as-is.
    """
    line = Text()
    line.append(format_time(entry), style=TIMESTAMP_STYLE)
    line.append(" ")
    level_style = LEVEL_STYLES.get(entry.level, "")
    for segment in split_message(entry.message):
        if segment.is_link:
            line.append(
                segment.text, style=Style.parse(LINK_STYLE) + Style(link=segment.text)
            )
        else:
            line.append(segment.text, style=level_style)
    return line
