#!/usr/bin/env python3
"""
VM lifecycle commands for the tartly CLI.
"""

from rich.markup import escape

from tartly.cli.utils import console, render_status_table
from tartly.lifecycle import InstallOutcome, LifecycleManager, StartOutcome, StopOutcome
from tartly.naming import label


def cmd_list(args, manager: LifecycleManager) -> int:
    """List managed VMs."""
    rows = manager.status()
    if not rows:
        console.print("No managed VMs found.")
        return 0
    console.print(render_status_table(rows, verbose=args.verbose))
    return 0


def cmd_install(args, manager: LifecycleManager) -> int:
    """Install a VM as a launch agent."""
    name = escape(args.vm_name)
    outcome = manager.install(args.vm_name, force=args.force)
    if outcome is InstallOutcome.CANCELLED:
        console.print("Installation cancelled.")
        return 0

    verb = "reinstalled" if outcome is InstallOutcome.REINSTALLED else "installed"
    console.print(f"[green]VM '{name}' {verb} successfully.[/]", highlight=False)
    plist_path = manager.store.path_for(label(args.vm_name, manager.settings))
    console.print(f"Plist file: {escape(str(plist_path))}", highlight=False)
    return 0


def cmd_start(args, manager: LifecycleManager) -> int:
    """Start an installed VM."""
    name = escape(args.vm_name)
    outcome = manager.start(args.vm_name)
    if outcome is StartOutcome.UNCONFIRMED:
        console.print(
            f"[yellow]Start requested for VM '{name}', but it was not reported running "
            f"within {manager.settings.start_timeout:g}s.[/]",
            highlight=False,
        )
    else:
        console.print(f"[green]VM '{name}' started successfully.[/]", highlight=False)
    return 0


def cmd_stop(args, manager: LifecycleManager) -> int:
    """Stop a running VM."""
    name = escape(args.vm_name)
    outcome = manager.stop(args.vm_name)
    if outcome is StopOutcome.SUPERVISOR:
        console.print("VM already stopped via launch agent.", highlight=False)
    console.print(f"[green]VM '{name}' stopped successfully.[/]", highlight=False)
    return 0


def cmd_uninstall(args, manager: LifecycleManager) -> int:
    """Uninstall a VM and remove its launch agent."""
    name = escape(args.vm_name)
    result = manager.uninstall(args.vm_name, cleanup_logs=args.clean_logs)
    for path in result.removed_logs:
        console.print(f"Removed log file: {escape(str(path))}", highlight=False)
    if result.kept_logs:
        console.print("Log files preserved.")
        for path in result.kept_logs:
            console.print(f"Log file: {escape(str(path))}", highlight=False)
    console.print(f"[green]VM '{name}' uninstalled successfully.[/]", highlight=False)
    return 0
