# Copyright (c) 2017-2019, Stefan Grönke
# Copyright (c) 2014-2018, iocage
# All rights reserved.
#
# Redistribution and use in source and binary forms, with or without
# modification, are permitted providing that the following conditions
# are met:
# 1. Redistributions of source code must retain the above copyright
#    notice, this list of conditions and the following disclaimer.
# 2. Redistributions in binary form must reproduce the above copyright
#    notice, this list of conditions and the following disclaimer in the
#    documentation and/or other materials provided with the distribution.
#
# THIS SOFTWARE IS PROVIDED BY THE AUTHOR ``AS IS'' AND ANY EXPRESS OR
# IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO, THE IMPLIED
# WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE
# ARE DISCLAIMED.  IN NO EVENT SHALL THE AUTHOR BE LIABLE FOR ANY
# DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR CONSEQUENTIAL
# DAMAGES (INCLUDING, BUT NOT LIMITED TO, PROCUREMENT OF SUBSTITUTE GOODS
# OR SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS INTERRUPTION)
# HOWEVER CAUSED AND ON ANY THEORY OF LIABILITY, WHETHER IN CONTRACT,
# STRICT LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE) ARISING
# IN ANY WAY OUT OF THE USE OF THIS SOFTWARE, EVEN IF ADVISED OF THE
# POSSIBILITY OF SUCH DAMAGE.
"""libjailnet logging module."""
import collections
import sys
import typing

import libjailnet.errors


class LogEntry:
    """A single log entry."""

    def __init__(
        self,
        message: str,
        level: str,
        indent: int=0
    ) -> None:
        self.message = message
        self.level = level
        self.indent = indent

    def __len__(self) -> int:
        """Return the number of lines of the log entry."""
        return len(self.message.splitlines())

    def __str__(self) -> str:
        """Return the plain log message."""
        return self.message


class Logger:
    """
    Print libjailnet log messages to the terminal.

    Messages up to the print level are written to stdout, errors and
    warnings to stderr so that they never mix with machine readable
    output. Output is only colorized on terminals. The most recent
    printed entries are kept in a bounded history.
    """

    COLOR_CODES: typing.Dict[str, int] = {
        "red": 31,
        "green": 32,
        "yellow": 33,
        "blue": 34,
        "magenta": 35
    }

    LOG_LEVEL_COLORS: typing.Dict[str, typing.Optional[str]] = {
        "critical": "red",
        "error": "red",
        "warn": "yellow",
        "info": None,
        "notice": "magenta",
        "verbose": "blue",
        "debug": "green",
        "spam": "green",
        "screen": None
    }

    LOG_LEVELS = (
        "critical",
        "error",
        "warn",
        "info",
        "notice",
        "verbose",
        "debug",
        "spam",
        "screen"
    )

    STDERR_LEVELS = ("critical", "error", "warn")

    HISTORY_LENGTH = 1000

    INDENT_PREFIX = "  "

    history: typing.Deque[LogEntry]

    def __init__(
        self,
        print_level: typing.Optional[str]=None,
        history_length: int=HISTORY_LENGTH
    ) -> None:
        self._print_level: typing.Optional[str] = None
        self.print_level = print_level
        self.history = collections.deque(maxlen=history_length)

    @property
    def default_print_level(self) -> str:
        """Return the static default print level."""
        return "info"

    @property
    def print_level(self) -> str:
        """Return the configured or default print level."""
        if self._print_level is None:
            return self.default_print_level
        return self._print_level

    @print_level.setter
    def print_level(self, value: typing.Optional[str]) -> None:
        """Set a custom print level to override the default."""
        if (value is not None) and (value not in Logger.LOG_LEVELS):
            raise libjailnet.errors.InvalidLogLevel(log_level=value)
        self._print_level = value

    def log(
        self,
        message: str,
        level: str="info",
        indent: int=0
    ) -> LogEntry:
        """Add a log entry and print it when its level is enabled."""
        log_entry = LogEntry(message=message, level=level, indent=indent)
        if self.is_enabled(level) is True:
            self._print_log_entry(log_entry)
            self.history.append(log_entry)
        return log_entry

    def is_enabled(self, level: str) -> bool:
        """Return True when messages of the level are printed."""
        if level == "screen":
            return True
        print_level = Logger.LOG_LEVELS.index(self.print_level)
        return Logger.LOG_LEVELS.index(level) <= print_level

    def critical(self, message: str, indent: int=0) -> LogEntry:
        """Add a critical log entry."""
        return self.log(message, level="critical", indent=indent)

    def error(self, message: str, indent: int=0) -> LogEntry:
        """Add an error log entry."""
        return self.log(message, level="error", indent=indent)

    def warn(self, message: str, indent: int=0) -> LogEntry:
        """Add a warning log entry."""
        return self.log(message, level="warn", indent=indent)

    def info(self, message: str, indent: int=0) -> LogEntry:
        """Add an info log entry."""
        return self.log(message, level="info", indent=indent)

    def notice(self, message: str, indent: int=0) -> LogEntry:
        """Add a notice log entry."""
        return self.log(message, level="notice", indent=indent)

    def verbose(self, message: str, indent: int=0) -> LogEntry:
        """Add a verbose log entry."""
        return self.log(message, level="verbose", indent=indent)

    def debug(self, message: str, indent: int=0) -> LogEntry:
        """Add a debug log entry."""
        return self.log(message, level="debug", indent=indent)

    def spam(self, message: str, indent: int=0) -> LogEntry:
        """Add a spam log entry."""
        return self.log(message, level="spam", indent=indent)

    def screen(self, message: str, indent: int=0) -> LogEntry:
        """Print CLI output regardless of the print level."""
        return self.log(message, level="screen", indent=indent)

    def _print_log_entry(self, log_entry: LogEntry) -> None:
        if log_entry.level in Logger.STDERR_LEVELS:
            stream = sys.stderr
        else:
            stream = sys.stdout
        message = self._indent(log_entry.message, log_entry.indent)
        if stream.isatty() is True:
            message = self._colorize(message, log_entry.level)
        print(message, file=stream)

    def _indent(self, message: str, level: int) -> str:
        prefix = Logger.INDENT_PREFIX * level
        return "\n".join([f"{prefix}{x}" for x in message.splitlines()])

    def _colorize(self, message: str, level: str) -> str:
        color = Logger.LOG_LEVEL_COLORS.get(level)
        if color is None:
            return message
        bold = 1 if (level == "critical") else 0
        return f"\033[{bold};{Logger.COLOR_CODES[color]}m{message}\033[0m"
