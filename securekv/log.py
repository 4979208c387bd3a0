"""
SecureKV - Console Logger

Two levels, nothing more:
- display(): user-facing output, always printed
- debug(): diagnostics, printed only with --debug=true
plus error() for failures, which goes to stderr.
"""

import sys


class Logger:
    """Leveled console logger. Pass one to core functions, or pass None for silence."""

    def __init__(self, debug: bool = False):
        self.is_debug = debug

    def toggle_debug(self, enabled: bool) -> None:
        self.is_debug = enabled

    def debug(self, message: str) -> None:
        if self.is_debug:
            print(f"DEBUG:\t{message}")

    def display(self, message: str) -> None:
        print(message)

    def error(self, message: str) -> None:
        print(message, file=sys.stderr)
