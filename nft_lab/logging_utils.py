from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, TextIO, Union

from rich.console import Console
from rich.theme import Theme

_LOG_LEVELS = {"DEBUG": 10, "INFO": 20, "WARN": 30, "ERROR": 40}
_LEVEL_ALIASES = {"WARNING": "WARN", "CRITICAL": "ERROR", "FATAL": "ERROR"}
_STYLES = {
    "DEBUG": "dim",
    "INFO": "white",
    "WARN": "yellow",
    "ERROR": "red",
}

LIBRARY_LOGGER = "nft_lab"


def _normalize_level(level: str) -> str:
    normalized = level.upper().strip()
    return _LEVEL_ALIASES.get(normalized, normalized)


def _should_emit(configured: str, requested: str) -> bool:
    return _LOG_LEVELS.get(requested, 100) >= _LOG_LEVELS.get(configured, 20)


def format_line(
    step: str,
    level: str,
    message: str,
    elapsed_ms: Optional[float] = None,
    *,
    now: Optional[datetime] = None,
) -> str:
    """``[HH:MM:SS.mmm] [LEVEL] [STEP    ] message (ms=N)``"""

    stamp = (now or datetime.now()).strftime("%H:%M:%S.%f")[:-3]
    line = f"[{stamp}] [{level:<5}] [{step.upper():<8}] {message}"
    if elapsed_ms is not None:
        line += f" (ms={elapsed_ms:.0f})"
    return line


def _describe(message: Union[str, Callable[[object], str]], result: object) -> str:
    if not callable(message):
        return message
    try:
        return message(result)
    except Exception:
        return "<failed to render message>"


@dataclass(slots=True)
class RunLogger:
    """Console and logfile sink for one CLI run, filtered by level."""

    console: Optional[Console]
    level: str = "INFO"
    logfile: Optional[Path] = None
    _plain_file: Optional[TextIO] = field(init=False, repr=False, default=None)
    _handler: Optional[logging.Handler] = field(init=False, repr=False, default=None)

    def __post_init__(self) -> None:
        self.level = _normalize_level(self.level)
        if self.logfile:
            self.logfile.parent.mkdir(parents=True, exist_ok=True)
            self._plain_file = self.logfile.open("a", encoding="utf-8")

    def __enter__(self) -> "RunLogger":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        if self._handler is not None:
            library = logging.getLogger(LIBRARY_LOGGER)
            library.removeHandler(self._handler)
            library.setLevel(logging.NOTSET)
            self._handler = None
        if self._plain_file:
            self._plain_file.close()
            self._plain_file = None

    def log(
        self,
        step: str,
        message: str,
        level: str = "INFO",
        elapsed_ms: Optional[float] = None,
    ) -> None:
        level = _normalize_level(level)
        if _should_emit(self.level, level):
            self._write(format_line(step, level, message, elapsed_ms), level)

    def _write(self, line: str, level: str) -> None:
        if self.console is not None:
            self.console.print(line, style=_STYLES.get(level, "white"), highlight=False, soft_wrap=True)
        if self._plain_file:
            self._plain_file.write(f"{line}\n")
            self._plain_file.flush()

    def timed(
        self,
        step: str,
        message: Union[str, Callable[[object], str]],
        func: Callable[..., object],
        *args,
        level: str = "INFO",
        **kwargs,
    ) -> object:
        """Run ``func`` and log its wall time under ``step``; failures log at ERROR and re-raise."""

        start = time.perf_counter()
        try:
            result = func(*args, **kwargs)
        except Exception as exc:
            self.log(step, f"error: {exc}", level="ERROR", elapsed_ms=_since(start))
            raise
        self.log(step, _describe(message, result), level=level, elapsed_ms=_since(start))
        return result


def _since(start: float) -> float:
    return (time.perf_counter() - start) * 1000.0


class RunLoggerHandler(logging.Handler):
    """Route ``nft_lab.*`` library records through a :class:`RunLogger`."""

    def __init__(self, run_logger: RunLogger) -> None:
        super().__init__()
        self.run_logger = run_logger

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = record.getMessage()
            if record.exc_info and record.exc_info[0] is not None:
                message = f"{message}: {record.exc_info[1]}"
            step = record.name.rsplit(".", 1)[-1]
            self.run_logger.log(step, message, level=record.levelname)
        except Exception:  # pragma: no cover - logging must never raise
            self.handleError(record)


def create_logger(
    level: str,
    logfile: Optional[Path],
    *,
    console: Optional[Console] = None,
    capture_library: bool = True,
) -> RunLogger:
    if console is None:
        console = Console(theme=Theme({"repr.number": "cyan"}), stderr=True)
    run_logger = RunLogger(console=console, level=level, logfile=logfile)
    if capture_library:
        library = logging.getLogger(LIBRARY_LOGGER)
        for handler in list(library.handlers):
            if isinstance(handler, RunLoggerHandler):
                library.removeHandler(handler)
        handler = RunLoggerHandler(run_logger)
        library.addHandler(handler)
        library.setLevel(_LOG_LEVELS.get(run_logger.level, logging.INFO))
        run_logger._handler = handler
    return run_logger


__all__ = ["LIBRARY_LOGGER", "RunLogger", "RunLoggerHandler", "create_logger", "format_line"]
