"""Levelled logger that prints to stdout and appends to a dated log file."""

from __future__ import annotations

import inspect
import os
import sys
from datetime import date, datetime
from enum import IntEnum
from pathlib import Path
from typing import Any

from .config import AppConfig


class LogLevel(IntEnum):
    UNKNOWN = 0
    DEBUG = 1
    TRACE = 2
    INFO = 3
    WARNING = 4
    ERROR = 5
    FATAL = 6

    @property
    def label(self) -> str:
        return self.name.lower()


_LEVELS_BY_NAME = {level.label: level for level in LogLevel if level is not LogLevel.UNKNOWN}


def parse_log_level(text: str) -> LogLevel:
    """Return the level named by ``text``, case-insensitively."""
    try:
        return _LEVELS_BY_NAME[text.lower()]
    except KeyError:
        raise ValueError(f"invalid log level: {text!r}") from None


def log_file_name(
    base_path: str | os.PathLike[str], name: str, today: date | None = None
) -> str:
    """Return ``base/YYYY-MM/YYYY-MM-DD-name``, creating the month folder."""
    today = today or date.today()
    month = f"{today.year}-{today.month:02d}"
    folder = Path(base_path) / month
    if not folder.exists():
        try:
            folder.mkdir(mode=0o777)
        except OSError:
            print("log_file_name: failed to create folder", file=sys.stderr)
        try:
            os.chmod(folder, 0o777)
        except OSError:
            print("log_file_name: failed to change folder permissions", file=sys.stderr)
    return str(folder / f"{month}-{today.day:02d}-{name}")


class Logger:
    """Writes messages at or above ``level``; also to a file when a path is given."""

    def __init__(
        self, level: str | LogLevel, path: str | os.PathLike[str] | None = None
    ) -> None:
        self.level = level if isinstance(level, LogLevel) else parse_log_level(level)
        self.file_name = None if path is None else log_file_name(path, "log")

    def enabled(self, level: LogLevel) -> bool:
        return level >= self.level

    def debug(self, msg: Any) -> None:
        self._log(LogLevel.DEBUG, msg)

    def trace(self, msg: Any) -> None:
        self._log(LogLevel.TRACE, msg)

    def info(self, msg: Any) -> None:
        self._log(LogLevel.INFO, msg)

    def warning(self, msg: Any) -> None:
        self._log(LogLevel.WARNING, msg)

    def error(self, msg: Any) -> None:
        self._log(LogLevel.ERROR, msg)

    def fatal(self, msg: Any) -> None:
        self._log(LogLevel.FATAL, msg)

    def _log(self, level: LogLevel, msg: Any) -> None:
        if not self.enabled(level):
            return
        frame = inspect.currentframe()
        caller = frame.f_back.f_back if frame is not None and frame.f_back is not None else None
        if caller is not None:
            path = caller.f_code.co_filename
            file_name = os.path.basename(path)
            module = inspect.getmodulename(path) or ""
            func_name = f"{module}.{caller.f_code.co_name}"
            line_no = caller.f_lineno
        else:
            file_name, func_name, line_no = "", "", 0
        del frame, caller

        now = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        line = f"[{now}] [{level.label}] [{file_name}:{func_name}:{line_no}] {msg}"
        print(line)
        if self.file_name is None:
            return
        try:
            with open(self.file_name, "a", encoding="utf-8") as handle:
                handle.write(line + "\n")
        except OSError as exc:
            print("write log file failed, err:", exc)


def init_logger(level: str | LogLevel, path: str | os.PathLike[str] | None = None) -> Logger:
    """Build a logger at ``level``, writing under ``path`` when given."""
    return Logger(level, path)


def init_logger_default(config: AppConfig | None = None) -> Logger:
    """Build a logger from the configured level and log path."""
    if config is None:
        from .config import conf as config
    return Logger(config.log_level, config.log_path)