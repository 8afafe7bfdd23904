"""Log formatting helpers and root logger setup.

Multi-field events are rendered as small labelled blocks so that a run's log
reads as a sequence of stages (submission fetched, revisions resolved, builds
finished, replay exited) instead of a stream of one-line messages.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, MutableSequence, Sequence
from pathlib import Path
from textwrap import wrap
from typing import Union

from rich.console import Console
from rich.logging import RichHandler

DEFAULT_WRAP_WIDTH = 110
DEFAULT_LABEL_WIDTH = 22
DEFAULT_INDENT = "    "

FILE_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
NOISY_LOGGERS = ("urllib3", "requests")

FieldMapping = Union[Mapping[str, object], Sequence[tuple[str, object]]]
MIN_LABEL_WIDTH = 8
MIN_VALUE_WIDTH = 32


def _stringify(value: object) -> str:
    if value is None:
        return "(none)"
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, bool):
        return "yes" if value else "no"
    if isinstance(value, (list, tuple, set)):
        return " ".join(_stringify(item) for item in value)
    return str(value)


def _wrap_text(text: str, width: int) -> list[str]:
    if not text:
        return [""]
    lines: list[str] = []
    for raw_line in text.splitlines() or [""]:
        lines.extend(wrap(raw_line, width=width, break_on_hyphens=False) or [""])
    return lines


class LogBlockBuilder:
    """Accumulates a titled block of aligned ``label: value`` rows and bullet sections."""

    def __init__(
        self,
        title: str,
        *,
        wrap_width: int = DEFAULT_WRAP_WIDTH,
        label_width: int = DEFAULT_LABEL_WIDTH,
        indent: str = DEFAULT_INDENT,
        pad_top: bool = True,
    ) -> None:
        self.wrap_width = wrap_width
        self.label_width = label_width
        self.indent = indent
        self.lines: MutableSequence[str] = [""] if pad_top else []
        self.lines.extend([title, "-" * len(title)])

    def _separate(self) -> None:
        if self.lines and self.lines[-1]:
            self.lines.append("")

    def add_fields(self, fields: FieldMapping | None) -> None:
        rows = [(str(key), value) for key, value in (fields.items() if isinstance(fields, Mapping) else fields or ())]
        if not rows:
            return

        width = max(MIN_LABEL_WIDTH, min(self.label_width, max(len(label) for label, _ in rows)))
        value_width = max(MIN_VALUE_WIDTH, self.wrap_width - len(self.indent) - width - 4)
        continuation = f"{self.indent}{'':<{width}}  "

        for label, value in rows:
            first, *rest = _wrap_text(_stringify(value), value_width)
            self.lines.append(f"{self.indent}{label:<{width}}: {first}")
            self.lines.extend(continuation + line for line in rest)

    def add_section(self, heading: str, items: Iterable[str], *, empty_label: str = "(none)") -> None:
        self._separate()
        self.lines.append(f"{heading}:")
        bullets = [f"{self.indent}- {_stringify(item)}" for item in items if item is not None]
        self.lines.extend(bullets or [f"{self.indent}{empty_label}"])

    def render(self) -> str:
        return "\n".join(self.lines).rstrip()


def render_fields_block(title: str, fields: FieldMapping, *, pad_top: bool = True) -> str:
    builder = LogBlockBuilder(title, pad_top=pad_top)
    builder.add_fields(fields)
    return builder.render()


def render_section_block(
    title: str,
    sections: Sequence[tuple[str, Sequence[str]]],
    *,
    pad_top: bool = True,
) -> str:
    builder = LogBlockBuilder(title, pad_top=pad_top)
    for heading, items in sections:
        builder.add_section(heading, items)
    return builder.render()


def configure_logging(
    level: str | int = logging.INFO,
    *,
    log_file: Path | None = None,
    console: Console | None = None,
) -> None:
    """Install a Rich console handler (and optionally a file handler) on the root logger.

    Any handlers from a previous call are replaced, so the CLI can call this
    again after the config file has been read.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    console_handler = RichHandler(
        console=console,
        show_path=False,
        rich_tracebacks=True,
        markup=False,
    )
    console_handler.setLevel(level)
    root.addHandler(console_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        file_handler.setLevel(logging.DEBUG)
        root.addHandler(file_handler)

    root.setLevel(logging.DEBUG if log_file is not None else level)

    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)
