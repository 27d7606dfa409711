"""Run logging for hosts driving suitetree suites.

`run_logging` installs everything a host needs to watch a run through
`LoggingReporter`:

- a Rich console handler on stderr, so the report never mixes with what
  the code under test prints to stdout;
- optionally, a flight recorder that keeps engine and reporter chatter in
  memory and writes it to a file only when a test fails.

Records from loggers outside suitetree are assumed to come from the code
under test and are tagged with their top-level package, e.g. ``[stackapp]``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from logging.handlers import MemoryHandler
from pathlib import Path
from typing import Literal, TypeAlias

from rich.console import Console
from rich.logging import RichHandler

# pylint: disable=too-few-public-methods

SUITETREE_LOGGER = "suitetree"

ColorSystem: TypeAlias = Literal["auto", "standard", "256", "truecolor", "windows"]


class CodeUnderTestFilter(logging.Filter):
    """Set ``record.origin`` to ``"[pkg]"`` for loggers outside suitetree.

    suitetree's own records (engine, reporters) get an empty origin. Never
    drops a record.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name == SUITETREE_LOGGER or record.name.startswith(
            SUITETREE_LOGGER + "."
        ):
            record.origin = ""
        else:
            record.origin = f"[{record.name.split('.')[0]}]"
        return True


def report_console_handler(
    level: int = logging.INFO, debug_mode: bool = False, color: bool = True
) -> RichHandler:
    """Console handler for `LoggingReporter` output.

    In debug mode the engine's DEBUG records (registrations, filtered-out
    tests) are shown with logger names and source paths.
    """
    color_system: ColorSystem | None = "auto" if color else None
    handler = RichHandler(
        level=logging.DEBUG if debug_mode else level,
        console=Console(color_system=color_system, stderr=True),
        rich_tracebacks=True,
        show_time=False,
        show_level=debug_mode,
        show_path=debug_mode,
        markup=False,
    )
    fmt = "%(name)s: %(message)s" if debug_mode else "%(origin)s %(message)s"
    handler.setFormatter(logging.Formatter(fmt=fmt))
    handler.addFilter(CodeUnderTestFilter())
    return handler


def failure_flight_recorder(
    path: Path, capacity: int = 5000, flush_level: int = logging.ERROR
) -> MemoryHandler:
    """Buffer every record of a run; write the buffer to ``path`` on a failure.

    `LoggingReporter` logs failed tests at ERROR, so with the default
    ``flush_level`` the file holds the history leading up to each failure.
    The buffer is also written when it fills up. Records still buffered when
    the handler is closed are discarded.
    """
    file_handler = logging.FileHandler(path, mode="w", encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.addFilter(CodeUnderTestFilter())
    file_handler.setFormatter(
        logging.Formatter(
            "[%(asctime)s] [%(threadName)s] %(levelname)s %(name)s %(origin)s "
            "%(message)s"
        )
    )
    recorder = MemoryHandler(
        capacity=capacity,
        flushLevel=flush_level,
        target=file_handler,
        flushOnClose=False,
    )
    recorder.setLevel(logging.DEBUG)
    return recorder


@dataclass
class RunLogging:
    """Handlers installed by `run_logging`."""

    console: RichHandler
    flight_recorder: MemoryHandler | None = None
    handlers: list[logging.Handler] = field(default_factory=list)


@contextmanager
def run_logging(
    reporter_level: int = logging.INFO,
    flight_recorder_path: Path | None = None,
    *,
    debug_mode: bool = False,
    color: bool = True,
) -> Iterator[RunLogging]:
    """Attach run logging handlers to the root logger for the ``with`` block.

    Usage::

        with run_logging(flight_recorder_path=Path("failures.log")):
            suite.run(LoggingReporter())

    Args:
        reporter_level: Minimum level shown on the console.
        flight_recorder_path: If given, buffer DEBUG and above and write the
            buffer there whenever an ERROR (a failed test) is logged.
        debug_mode: Show DEBUG records with logger names on the console.
        color: Enable color output.

    Yields:
        RunLogging: The installed handlers; removed and closed on exit, and
        the root level restored.
    """
    root = logging.getLogger()
    installed = RunLogging(
        console=report_console_handler(reporter_level, debug_mode, color)
    )
    installed.handlers.append(installed.console)
    if flight_recorder_path is not None:
        installed.flight_recorder = failure_flight_recorder(flight_recorder_path)
        installed.handlers.append(installed.flight_recorder)

    levels = [h.level for h in installed.handlers]
    previous_level = root.level
    root.setLevel(min(levels + [previous_level or logging.WARNING]))
    for handler in installed.handlers:
        root.addHandler(handler)
    try:
        yield installed
    finally:
        for handler in installed.handlers:
            root.removeHandler(handler)
        root.setLevel(previous_level)
        if installed.flight_recorder is not None:
            target = installed.flight_recorder.target
            installed.flight_recorder.close()
            if target is not None:
                target.close()
