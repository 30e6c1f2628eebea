#!/usr/bin/env python3
"""
Shared utilities for the tartly CLI.
"""

import sys
from typing import Iterable, Optional

import questionary
from questionary import Style
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from tartly.status import AgentStatus, StatusRow, VMStatus

# Custom questionary style
custom_style = Style(
    [
        ("qmark", "fg:cyan bold"),
        ("question", "bold"),
        ("answer", "fg:green"),
        ("instruction", "fg:gray italic"),
    ]
)

console = Console()
err_console = Console(stderr=True)

_STATUS_STYLES = {
    AgentStatus.RUNNING: "green",
    AgentStatus.STOPPED: "yellow",
    VMStatus.RUNNING: "green",
    VMStatus.STOPPED: "yellow",
    VMStatus.NOT_FOUND: "red",
}


def confirm(question: str) -> Optional[bool]:
    """Ask a yes/no question, defaulting to no.

    Returns None when stdin is not a terminal, so callers can tell "no
    answer possible" apart from "answered no".
    """
    if not sys.stdin.isatty():
        return None
    answer = questionary.confirm(question, default=False, style=custom_style).ask()
    # ask() returns None on Ctrl-C
    return bool(answer)


def _styled(status) -> str:
    style = _STATUS_STYLES[status]
    return f"[{style}]{status.value}[/{style}]"


def render_status_table(rows: Iterable[StatusRow], verbose: bool = False) -> Table:
    """Build the ``list`` table.

    Verbose output adds the Label column and highlights rows where the agent
    and the VM disagree about whether it is up.
    """
    table = Table(title="Managed VMs")
    table.add_column("VM Name", style="cyan")
    table.add_column("Launch Agent")
    table.add_column("VM Status")
    if verbose:
        table.add_column("Label", style="dim")

    for row in rows:
        vm_name = escape(row.vm_name)
        if not row.name_recovered:
            vm_name += " [dim](from label)[/]"
        cells = [vm_name, _styled(row.agent), _styled(row.vm)]
        if verbose:
            cells.append(escape(row.label))
            table.add_row(*cells, style=None if row.consistent else "yellow")
        else:
            table.add_row(*cells)
    return table
