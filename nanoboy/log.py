"""Levelled, coloured console logging."""

import enum
import sys


class Level(enum.IntFlag):
    TRACE = 1
    DEBUG = 2
    INFO = 4
    WARN = 8
    ERROR = 16
    FATAL = 32

    ALL = TRACE | DEBUG | INFO | WARN | ERROR | FATAL


class FatalError(RuntimeError):
    """Raised when a checked condition does not hold."""


if __debug__:
    LOG_MASK = Level.ALL
else:
    LOG_MASK = Level.INFO | Level.WARN | Level.ERROR | Level.FATAL

_PREFIX = {
    Level.TRACE: "[T]",
    Level.DEBUG: "[D]",
    Level.INFO: "[I]",
    Level.WARN: "[W]",
    Level.ERROR: "[E]",
    Level.FATAL: "[F]",
}

_STYLE = {
    Level.TRACE: "\x1b[36m",
    Level.DEBUG: "\x1b[34m",
    Level.WARN: "\x1b[33m",
    Level.ERROR: "\x1b[35m",
    Level.FATAL: "\x1b[31m",
}

_RESET = "\x1b[0m"


def log(level: Level, message: str, *args) -> None:
    """Format ``message`` with ``args`` and print it with the level's prefix."""
    if not (LOG_MASK & level):
        return
    prefix = _PREFIX.get(level, "[?]")
    text = f"{prefix} {message.format(*args)}\n"
    style = _STYLE.get(level)
    if style is not None:
        text = f"{style}{text}{_RESET}"
    sys.stdout.write(text)
    sys.stdout.flush()


def check(condition, message: str, *args) -> None:
    """Log a fatal message and raise FatalError when ``condition`` is false."""
    if not condition:
        log(Level.FATAL, message, *args)
        raise FatalError(message.format(*args))