"""Plain-text progress and level logger writing to a text stream."""

from __future__ import annotations

import sys
from typing import Any, TextIO


def _sprintf(fmt: str, args: tuple[Any, ...]) -> str:
    return fmt % args if args else fmt


class Logger:
    """Writes tagged log lines to ``out``; nothing is written when ``out`` is None."""

    def __init__(self, out: TextIO | None = None) -> None:
        self.out = out

    def run(self, fmt: str, *args: Any) -> None:
        """Print a message announcing a process, without a line break."""
        text = _sprintf(fmt, args)
        if text.endswith("\n"):
            text = text[:-1]
        self._output("[ ] " + text)

    def ok(self) -> None:
        """Mark the last run() as successful."""
        self._outputln("\r[✓]")

    def nok(self) -> None:
        """Mark the last run() as failed."""
        self._outputln("\r[✗]")

    def printf(self, fmt: str, *args: Any) -> None:
        """Print plain text."""
        self._output(_sprintf(fmt, args))

    def trace(self, fmt: str, *args: Any) -> None:
        self._outputln("[TRACE] " + _sprintf(fmt, args))

    def debug(self, fmt: str, *args: Any) -> None:
        self._outputln("[DEBUG] " + _sprintf(fmt, args))

    def info(self, fmt: str, *args: Any) -> None:
        self._outputln("[INFO]  " + _sprintf(fmt, args))

    def warn(self, fmt: str, *args: Any) -> None:
        self._outputln("[WARN]  " + _sprintf(fmt, args))

    def error(self, fmt: str, *args: Any) -> None:
        """Print an error message, always to standard error."""
        self._write_line(sys.stderr, "[ERRO]  " + _sprintf(fmt, args))

    def _output(self, text: str) -> None:
        if self.out is not None:
            self.out.write(text)

    def _outputln(self, text: str) -> None:
        if self.out is not None:
            self._write_line(self.out, text)

    @staticmethod
    def _write_line(stream: TextIO, text: str) -> None:
        if not text.endswith("\n"):
            text += "\n"
        stream.write(text)