"""Process-wide logger and module-level shortcuts to it."""

from __future__ import annotations

from naza.log import AssertBehavior, Level, Logger, LogPanic, Option, new
from naza.values import equal

__all__ = [
    "trace",
    "debug",
    "info",
    "warn",
    "error",
    "fatal",
    "panic",
    "out",
    "output",
    "assert_equal",
    "sync",
    "with_prefix",
    "get_option",
    "get_global_logger",
    "set_global_logger",
    "init",
    "dummy_logger",
]

_global: Logger = new()
_dummy: Logger = new(level=Level.LOG_NOTHING)


def _format(msg, args) -> str:
    return msg % args if args else str(msg)


def trace(msg, *args) -> None:
    _global.out(Level.TRACE, 2, _format(msg, args))


def debug(msg, *args) -> None:
    _global.out(Level.DEBUG, 2, _format(msg, args))


def info(msg, *args) -> None:
    _global.out(Level.INFO, 2, _format(msg, args))


def warn(msg, *args) -> None:
    _global.out(Level.WARN, 2, _format(msg, args))


def error(msg, *args) -> None:
    _global.out(Level.ERROR, 2, _format(msg, args))


def fatal(msg, *args) -> None:
    """Log at FATAL level, then exit with status 1."""
    _global.out(Level.FATAL, 2, _format(msg, args))
    raise SystemExit(1)


def panic(msg, *args) -> None:
    """Log at PANIC level, then raise LogPanic."""
    text = _format(msg, args)
    _global.out(Level.PANIC, 2, text)
    raise LogPanic(text)


def out(level: Level, calldepth: int, s: str) -> None:
    _global.out(level, calldepth, s)


def output(calldepth: int, s: str) -> None:
    """Log `s` at INFO level."""
    _global.out(Level.INFO, calldepth, s)


def assert_equal(expected, actual, *args) -> None:
    """Report a mismatch according to the global logger's AssertBehavior."""
    if equal(expected, actual):
        return
    text = f"assert failed. expected={expected!r}, but actual={actual!r}"
    if args:
        text += f", extInfo=[{' '.join(str(a) for a in args)}]"
    behavior = _global.get_option().assert_behavior
    if behavior == AssertBehavior.ERROR:
        _global.out(Level.ERROR, 2, text)
    elif behavior == AssertBehavior.FATAL:
        _global.out(Level.FATAL, 2, text)
        raise SystemExit(1)
    elif behavior == AssertBehavior.PANIC:
        _global.out(Level.PANIC, 2, text)
        raise LogPanic(text)


def sync() -> None:
    _global.sync()


def with_prefix(s: str) -> Logger:
    return _global.with_prefix(s)


def get_option() -> Option:
    return _global.get_option()


def get_global_logger() -> Logger:
    """The logger the module-level functions write to."""
    return _global


def set_global_logger(logger: Logger) -> None:
    """Replace the global logger; loggers fetched earlier are no longer it."""
    global _global
    _global = logger


def init(**kwargs) -> None:
    """Reconfigure the current global logger in place."""
    _global.init(**kwargs)


def dummy_logger() -> Logger:
    """A shared logger that outputs nothing."""
    return _dummy