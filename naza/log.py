"""Levelled logger writing to the console, a rotating file and an optional hook."""

from __future__ import annotations

import dataclasses
import inspect
import os
import sys
import threading
from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum
from typing import Callable, Optional

from naza.color import (
    SIMPLE_PREFIX_BLUE,
    SIMPLE_PREFIX_CYAN,
    SIMPLE_PREFIX_GREEN,
    SIMPLE_PREFIX_RED,
    SIMPLE_PREFIX_YELLOW,
    SIMPLE_SUFFIX,
)
from naza.values import equal

__all__ = [
    "LogError",
    "LogPanic",
    "Level",
    "AssertBehavior",
    "Option",
    "Logger",
    "new",
    "set_clock",
]


class LogError(ValueError):
    """Raised when a logger is configured with invalid options."""


class LogPanic(RuntimeError):
    """Raised by panic-level logging and by failed assertions set to panic."""


class Level(IntEnum):
    TRACE = 0
    DEBUG = 1
    INFO = 2
    WARN = 3
    ERROR = 4
    FATAL = 5
    PANIC = 6
    LOG_NOTHING = 7

    def readable_string(self) -> str:
        return _LEVEL_READABLE.get(self, "unknown")


_LEVEL_READABLE = {
    Level.TRACE: "LevelTrace",
    Level.DEBUG: "LevelDebug",
    Level.INFO: "LevelInfo",
    Level.WARN: "LevelWarn",
    Level.ERROR: "LevelError",
    Level.FATAL: "LevelFatal",
    Level.PANIC: "LevelPanic",
    Level.LOG_NOTHING: "LevelLogNothing",
}


class AssertBehavior(IntEnum):
    ERROR = 1
    FATAL = 2
    PANIC = 3

    def readable_string(self) -> str:
        return _ASSERT_READABLE.get(self, "unknown")


_ASSERT_READABLE = {
    AssertBehavior.ERROR: "AssertError",
    AssertBehavior.FATAL: "AssertFatal",
    AssertBehavior.PANIC: "AssertPanic",
}


HookBackendOutFn = Callable[[Level, str], None]


@dataclass
class Option:
    """Logger configuration; unset fields take these defaults."""

    level: Level = Level.DEBUG
    filename: str = ""
    is_to_stdout: bool = True
    is_rotate_daily: bool = False
    is_rotate_hourly: bool = False
    short_file_flag: bool = True
    timestamp_flag: bool = True
    timestamp_with_ms_flag: bool = True
    level_flag: bool = True
    assert_behavior: AssertBehavior = AssertBehavior.ERROR
    hook_backend_out_fn: Optional[HookBackendOutFn] = None


_LEVEL_STRINGS = {
    Level.TRACE: "TRACE ",
    Level.DEBUG: "DEBUG ",
    Level.INFO: " INFO ",
    Level.WARN: " WARN ",
    Level.ERROR: "ERROR ",
    Level.FATAL: "FATAL ",
    Level.PANIC: "PANIC ",
}

_LEVEL_COLORS = {
    Level.TRACE: SIMPLE_PREFIX_GREEN,
    Level.DEBUG: SIMPLE_PREFIX_BLUE,
    Level.INFO: SIMPLE_PREFIX_CYAN,
    Level.WARN: SIMPLE_PREFIX_YELLOW,
    Level.ERROR: SIMPLE_PREFIX_RED,
    Level.FATAL: SIMPLE_PREFIX_RED,
    Level.PANIC: SIMPLE_PREFIX_RED,
}

_LEVEL_COLOR_STRINGS = {
    level: _LEVEL_COLORS[level] + text + SIMPLE_SUFFIX for level, text in _LEVEL_STRINGS.items()
}

_clock: Callable[[], datetime] = datetime.now


def set_clock(clock: Optional[Callable[[], datetime]]) -> None:
    """Replace the time source used by all loggers; None restores the system clock."""
    global _clock
    _clock = clock if clock is not None else datetime.now


def _format_time(t: datetime, with_ms: bool) -> str:
    text = f"{t.year:04d}/{t.month:02d}/{t.day:02d} {t.hour:02d}:{t.minute:02d}:{t.second:02d}"
    if with_ms:
        text += f".{t.microsecond:06d}"
    return text + " "


def _format_message(msg, args) -> str:
    return msg % args if args else str(msg)


def _validated(option: Option) -> Option:
    try:
        level = Level(int(option.level))
        behavior = AssertBehavior(int(option.assert_behavior))
    except (ValueError, TypeError) as exc:
        raise LogError(f"invalid log option: {exc}") from exc
    return dataclasses.replace(option, level=level, assert_behavior=behavior)


class _Core:
    """State shared by a logger and all loggers derived from it with with_prefix()."""

    def __init__(self) -> None:
        self.option = Option()
        self.lock = threading.RLock()
        self.fp = None
        self.to_console = False
        self.curr_round_time = _clock()


class Logger:
    """A levelled logger. Create one with new()."""

    def __init__(self, prefixes: tuple = (), core: Optional[_Core] = None) -> None:
        self._prefixes = tuple(prefixes)
        self._core = core if core is not None else _Core()

    # ----- levelled output ----------------------------------------------

    def trace(self, msg, *args) -> None:
        self.out(Level.TRACE, 2, _format_message(msg, args))

    def debug(self, msg, *args) -> None:
        self.out(Level.DEBUG, 2, _format_message(msg, args))

    def info(self, msg, *args) -> None:
        self.out(Level.INFO, 2, _format_message(msg, args))

    def warn(self, msg, *args) -> None:
        self.out(Level.WARN, 2, _format_message(msg, args))

    def error(self, msg, *args) -> None:
        self.out(Level.ERROR, 2, _format_message(msg, args))

    def fatal(self, msg, *args) -> None:
        """Log at FATAL level, then exit with status 1."""
        self.out(Level.FATAL, 2, _format_message(msg, args))
        raise SystemExit(1)

    def panic(self, msg, *args) -> None:
        """Log at PANIC level, then raise LogPanic."""
        text = _format_message(msg, args)
        self.out(Level.PANIC, 2, text)
        raise LogPanic(text)

    def output(self, calldepth: int, s: str) -> None:
        """Log `s` at INFO level, attributing it to the frame `calldepth` levels up."""
        self.out(Level.INFO, calldepth, s)

    def assert_equal(self, expected, actual, *args) -> None:
        """Report a mismatch according to the configured AssertBehavior."""
        if equal(expected, actual):
            return
        text = f"assert failed. expected={expected!r}, but actual={actual!r}"
        if args:
            text += f", extInfo=[{' '.join(str(a) for a in args)}]"
        behavior = self._core.option.assert_behavior
        if behavior == AssertBehavior.ERROR:
            self.out(Level.ERROR, 2, text)
        elif behavior == AssertBehavior.FATAL:
            self.out(Level.FATAL, 2, text)
            raise SystemExit(1)
        elif behavior == AssertBehavior.PANIC:
            self.out(Level.PANIC, 2, text)
            raise LogPanic(text)

    def out(self, level: Level, calldepth: int, s: str) -> None:
        """Format and emit one line; `calldepth` frames up names the source location."""
        core = self._core
        option = core.option
        if option.level > level:
            return

        now = _clock()

        location = ""
        if option.short_file_flag:
            frame = inspect.currentframe()
            for _ in range(calldepth):
                if frame is None:
                    break
                frame = frame.f_back
            if frame is not None and frame.f_lineno > 0:
                location = f" - {os.path.basename(frame.f_code.co_filename)}:{frame.f_lineno}"
            del frame

        with core.lock:
            parts = []
            if option.timestamp_flag:
                parts.append(_format_time(now, option.timestamp_with_ms_flag))
            if option.level_flag:
                if core.to_console and os.name != "nt":
                    parts.append(_LEVEL_COLOR_STRINGS.get(level, ""))
                else:
                    parts.append(_LEVEL_STRINGS.get(level, ""))
            parts.extend(f"[{p}] " for p in self._prefixes)
            parts.append(s)
            parts.append(location)
            line = "".join(parts)
            if not line.endswith("\n"):
                line += "\n"

            critical = level in (Level.FATAL, Level.PANIC)

            if core.to_console:
                sys.stdout.write(line)
                if critical:
                    sys.stdout.flush()

            if core.fp is not None:
                if not self._rotate_if_needed(now):
                    return
                core.fp.write(line.encode("utf-8"))
                if critical:
                    core.fp.flush()
                    os.fsync(core.fp.fileno())

            if option.hook_backend_out_fn is not None:
                option.hook_backend_out_fn(level, line)

    def _rotate_if_needed(self, now: datetime) -> bool:
        core = self._core
        option = core.option
        curr = core.curr_round_time
        backup_name = None
        if option.is_rotate_hourly and now.hour != curr.hour:
            backup_name = f"{option.filename}.{curr:%Y%m%d%H}"
        elif option.is_rotate_daily and now.day != curr.day:
            backup_name = f"{option.filename}.{curr:%Y%m%d}"
        if backup_name is None:
            return True

        try:
            core.fp.close()
        except OSError:
            pass
        try:
            try:
                os.replace(option.filename, backup_name)
            except OSError:
                core.fp = open(option.filename, "ab")
            else:
                core.fp = open(option.filename, "wb")
        except OSError as exc:
            core.fp = None
            sys.stderr.write(
                f"reopen error. err={exc!r}, filename={option.filename}, "
                f"backupName={backup_name}, now={now}, curr={curr}\n"
            )
            return False
        core.curr_round_time = now
        return True

    # ----- management ----------------------------------------------------

    def sync(self) -> None:
        """Flush the console and the log file."""
        core = self._core
        with core.lock:
            if core.to_console:
                sys.stdout.flush()
            if core.fp is not None:
                core.fp.flush()
                os.fsync(core.fp.fileno())

    def with_prefix(self, s: str) -> Logger:
        """A new logger sharing this one's output that adds `[s] ` after existing prefixes."""
        return Logger(self._prefixes + (s,), self._core)

    def get_option(self) -> Option:
        """A copy of the current configuration."""
        return dataclasses.replace(self._core.option)

    def init(self, **kwargs) -> None:
        """Reset to default options, then apply `kwargs` (Option field names).

        Raises LogError on invalid levels, TypeError on unknown names and
        OSError when the log file cannot be opened.
        """
        option = _validated(dataclasses.replace(Option(), **kwargs))
        fp = None
        if option.filename:
            directory = os.path.dirname(option.filename)
            if directory:
                os.makedirs(directory, exist_ok=True)
            fp = open(option.filename, "ab")

        core = self._core
        with core.lock:
            if core.fp is not None and core.fp is not fp:
                try:
                    core.fp.close()
                except OSError:
                    pass
            core.option = option
            core.fp = fp
            core.to_console = option.is_to_stdout
            core.curr_round_time = _clock()


def new(**kwargs) -> Logger:
    """Create a logger configured by `kwargs` (Option field names)."""
    logger = Logger()
    logger.init(**kwargs)
    return logger