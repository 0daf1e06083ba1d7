"""Rich console rendering of the session badge, log and transfer table."""

from collections import deque
from typing import Optional, Sequence

from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.style import Style
from rich.table import Table
from rich.text import Text

from transferconsole.config import explorer_tx_link
from transferconsole.console.logformat import format_entry
from transferconsole.session.models import Badge, BadgeVariant, LogEntry
from transferconsole.transfers.registry import TransferRecord
from transferconsole.transfers.status import Severity

BADGE_STYLES = {
    BadgeVariant.IDLE: "bold white on grey30",
    BadgeVariant.RUNNING: "bold black on yellow",
    BadgeVariant.SUCCEEDED: "bold black on green",
    BadgeVariant.ERROR: "bold white on red",
}

PILL_STYLES = {
    Severity.IN_PROGRESS: "black on yellow",
    Severity.FAILED: "white on red",
    Severity.SUCCEEDED: "black on green",
    Severity.UNRECOGNIZED: "white on grey30",
}

EMPTY_TABLE_MESSAGE = "No transfers yet."
NO_HASH = "—"


def render_badge(badge: Badge) -> Text:
    return Text(f" {badge.label} ", style=BADGE_STYLES.get(badge.variant, ""))


def render_status_pill(record: TransferRecord) -> Text:
    return Text(f" {record.status_label} ", style=PILL_STYLES[record.severity])


def build_transfer_table(
    snapshot: Sequence[TransferRecord], explorer_url: Optional[str] = None
) -> Table:
    """One row per transfer, or a single placeholder row when empty."""
    table = Table(title="Transfers", expand=True)
    table.add_column("Transfer", style="cyan", no_wrap=True)
    table.add_column("Tx hash")
    table.add_column("Status")
    table.add_column("Updated", style="dim", no_wrap=True)

    if not snapshot:
        table.add_row(Text(EMPTY_TABLE_MESSAGE, style="dim"), "", "", "")
        return table

    for record in snapshot:
        if record.tx_hash:
            link = explorer_tx_link(record.tx_hash, explorer_url)
            hash_cell = Text(record.tx_hash, style=Style(underline=True, link=link))
        else:
            hash_cell = Text(NO_HASH)
        table.add_row(
            Text(record.display_label),
            hash_cell,
            render_status_pill(record),
            record.updated_at.astimezone().strftime("%X"),
        )
    return table


class ConsoleView:
    """Console sink for a session.

    In live mode the badge, the tail of the log and the table are redrawn
    in place. In plain mode log lines are printed as they arrive and the
    table is printed by ``print_summary``.
    """

    def __init__(
        self,
        console: Optional[Console] = None,
        *,
        live: bool = True,
        explorer_url: Optional[str] = None,
        max_log_lines: int = 200,
    ):
        self.console = console or Console()
        self.explorer_url = explorer_url
        self.badge = Badge("Idle", BadgeVariant.IDLE)
        self.submit_enabled = True
        self.log_lines: deque[Text] = deque(maxlen=max_log_lines)
        self.snapshot: Sequence[TransferRecord] = ()
        self._live: Optional[Live] = None
        if live:
            self._live = Live(
                self._renderable(), console=self.console, auto_refresh=False
            )

    def __enter__(self) -> "ConsoleView":
        if self._live is not None:
            self._live.start()
        return self

    def __exit__(self, *exc_info) -> None:
        if self._live is not None:
            self._live.stop()

    # ConsoleSink

    def append_log(self, entry: LogEntry) -> None:
        line = format_entry(entry)
        self.log_lines.append(line)
        if self._live is None:
            self.console.print(line)
        self._refresh()

    def clear_log(self) -> None:
        self.log_lines.clear()
        self._refresh()

    def set_badge(self, badge: Badge) -> None:
        self.badge = badge
        self._refresh()

    def render_transfers(self, snapshot: Sequence[TransferRecord]) -> None:
        self.snapshot = snapshot
        self._refresh()

    def set_submit_enabled(self, enabled: bool) -> None:
        self.submit_enabled = enabled
        self._refresh()

    def print_summary(self) -> None:
        self.console.print(Text.assemble("Session: ", render_badge(self.badge)))
        self.console.print(build_transfer_table(self.snapshot, self.explorer_url))

    def _renderable(self) -> Group:
        height = max(5, self.console.height - 12)
        log_tail = list(self.log_lines)[-height:]
        return Group(
            Text.assemble("Session: ", render_badge(self.badge)),
            Panel(Group(*log_tail), title="Log", border_style="dim"),
            build_transfer_table(self.snapshot, self.explorer_url),
        )

    def _refresh(self) -> None:
        if self._live is not None:
            self._live.update(self._renderable(), refresh=True)
