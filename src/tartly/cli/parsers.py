#!/usr/bin/env python3
"""
Argument parsers for the tartly CLI.
"""

import argparse
import sys
from typing import List, Optional

from tartly import __version__
from tartly.cli.utils import confirm, console, err_console
from tartly.cli.vm_commands import cmd_install, cmd_list, cmd_start, cmd_stop, cmd_uninstall
from tartly.config import Settings, load_settings
from tartly.errors import TartlyError
from tartly.lifecycle import LifecycleManager
from tartly.logging import configure_logging, get_logger
from tartly.prerequisites import check_prerequisites

log = get_logger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

EPILOG = """\
examples:
  tartly list
  tartly list --verbose
  tartly install macos-sonoma-xcode:16.1
  tartly start macos-sonoma-xcode:16.1
  tartly stop macos-sonoma-xcode:16.1
  tartly uninstall macos-sonoma-xcode:16.1 --clean-logs
  tartly install macos-ventura-xcode:15.0 --force
"""


def _vm_name(value: str) -> str:
    if not value.strip():
        raise argparse.ArgumentTypeError("VM name cannot be empty")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tartly",
        description="Run tart VMs in the background as macOS launch agents",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"tartly {__version__}")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=None,
        help="Log verbosity (default: TARTLY_LOG_LEVEL or INFO)",
    )
    parser.add_argument("--json-logs", action="store_true", help="Emit logs as JSON lines")

    subparsers = parser.add_subparsers(dest="command", metavar="<command>")

    # List command
    list_parser = subparsers.add_parser(
        "list", help="List managed VMs with launch agent and VM status"
    )
    list_parser.add_argument(
        "-v", "--verbose", action="store_true", help="Also show launch agent labels"
    )
    list_parser.set_defaults(func=cmd_list)

    # Install command
    install_parser = subparsers.add_parser("install", help="Install a VM as a launch agent")
    install_parser.add_argument("vm_name", metavar="vm-name", type=_vm_name, help="tart VM name")
    install_parser.add_argument(
        "-f", "--force", action="store_true", help="Overwrite an existing agent without asking"
    )
    install_parser.set_defaults(func=cmd_install)

    # Start command
    start_parser = subparsers.add_parser("start", help="Start an installed VM")
    start_parser.add_argument("vm_name", metavar="vm-name", type=_vm_name, help="tart VM name")
    start_parser.set_defaults(func=cmd_start)

    # Stop command
    stop_parser = subparsers.add_parser("stop", help="Stop a running VM")
    stop_parser.add_argument("vm_name", metavar="vm-name", type=_vm_name, help="tart VM name")
    stop_parser.set_defaults(func=cmd_stop)

    # Uninstall command
    uninstall_parser = subparsers.add_parser(
        "uninstall", help="Uninstall a VM and remove its launch agent"
    )
    uninstall_parser.add_argument(
        "vm_name", metavar="vm-name", type=_vm_name, help="tart VM name"
    )
    uninstall_parser.add_argument(
        "-c", "--clean-logs", action="store_true", help="Remove log files without asking"
    )
    uninstall_parser.set_defaults(func=cmd_uninstall)

    subparsers.add_parser("help", help="Show this help message")

    return parser


def create_manager(settings: Settings) -> LifecycleManager:
    """Build the production lifecycle manager."""
    return LifecycleManager(settings=settings, confirm=confirm)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point. Returns the process exit code."""
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        # argparse exits 2 on usage errors and 0 for --help/--version
        return e.code if isinstance(e.code, int) else 0

    if args.command is None:
        parser.print_help(sys.stderr)
        return 2
    if args.command == "help":
        parser.print_help()
        return 0

    try:
        settings = load_settings()
        configure_logging(level=args.log_level or settings.log_level, json_output=args.json_logs)
        settings = check_prerequisites(settings)
        manager = create_manager(settings)
        return args.func(args, manager)
    except TartlyError as e:
        log.debug("command_failed", command=args.command, error_type=type(e).__name__)
        err_console.print(f"Error: {e}", style="red", markup=False, highlight=False)
        return e.exit_code
    except KeyboardInterrupt:
        err_console.print("\nInterrupted.", style="yellow")
        return 130
    except Exception as e:
        log.debug("unexpected_error", command=args.command, exc_info=True)
        err_console.print(f"Error: {e}", style="red", markup=False, highlight=False)
        return 1


def run() -> None:
    """Console script entry point."""
    sys.exit(main())
