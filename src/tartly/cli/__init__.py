#!/usr/bin/env python3
"""
tartly CLI package.
"""

from .parsers import build_parser, create_manager, main, run
from .utils import confirm, console, custom_style, err_console

__all__ = [
    "build_parser",
    "confirm",
    "console",
    "create_manager",
    "custom_style",
    "err_console",
    "main",
    "run",
]
