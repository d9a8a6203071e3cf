"""Shared CLI helpers."""

import collections.abc
import json as _json
import logging
import sys
import typing
from enum import StrEnum

import better_exceptions
import pydantic
import structlog
from rich import console as rich_console
from rich.table import Table
from rich.text import Text

from octoprint_bridge import consts
from octoprint_bridge.config import Settings, get_config_path

if typing.TYPE_CHECKING:
    from structlog.typing import Processor

# Setup
better_exceptions.hook()
console = rich_console.Console()
err_console = rich_console.Console(stderr=True)
logger = structlog.get_logger(consts.APP_NAME)


class OutputFormat(StrEnum):
    """Output formats of table commands."""

    RICH = "rich"
    PLAIN = "plain"
    JSON = "json"


_output_format: OutputFormat | None = None  # None means "resolve lazily from TTY"


def set_output_format(fmt: str | None) -> None:
    """Set the output format (called from --format CLI flag).

    Calls `sys.exit` if an invalid format is specified.
    """
    global _output_format
    try:
        _output_format = OutputFormat(fmt) if fmt is not None else None
    except ValueError:
        output_message(
            (
                f"[bold][red]Error[/red][/bold]: `{fmt}` is not a valid output "
                f"format. Valid formats are: {', '.join(OutputFormat.__members__.values())}"
            ),
            error=True,
        )
        sys.exit(1)


def get_output_format() -> OutputFormat:
    """Resolve the active output format: CLI flag > TTY auto-detect."""
    if _output_format is not None:
        return _output_format
    return OutputFormat.RICH if sys.stdout.isatty() else OutputFormat.PLAIN


def _strip_markup(text: str) -> str:
    """Remove Rich markup tags from a string."""
    return Text.from_markup(str(text)).plain


def output_message(msg: str, *, error: bool = False) -> None:
    """Print a status/error message respecting the current output format.

    - rich: renders markup with color to stdout (or stderr for errors)
    - plain: strips markup, writes to stdout (errors to stderr)
    - json: strips markup, always writes to stderr (stdout reserved for JSON)
    """
    fmt = get_output_format()
    if fmt in ("plain", "json"):
        plain = _strip_markup(msg)
        to_stderr = error or fmt == "json"
        print(plain, file=sys.stderr if to_stderr else sys.stdout)
    else:
        target = err_console if error else console
        target.print(msg)


def output_table(
    title: str,
    columns: list[str],
    rows: list[list[str]],
    *,
    column_styles: collections.abc.Sequence[str | None] | None = None,
) -> None:
    """Print tabular data respecting the current output format.

    Args:
        title: Table title (used as rich title; as ``# title`` comment in plain).
        columns: Column header names.
        rows: Row data as lists of strings.
        column_styles: Optional per-column Rich style names (ignored in plain/json).
    """
    fmt = get_output_format()

    if fmt == "json":
        keys = [c.lower().replace(" ", "_") for c in columns]
        data = [dict(zip(keys, row, strict=False)) for row in rows]
        print(_json.dumps(data))
    elif fmt == "plain":
        print(f"# {title}")
        print("\t".join(columns))
        for row in rows:
            print("\t".join(row))
    else:
        table = Table(title=title)
        styles = column_styles or []
        for i, col in enumerate(columns):
            style = styles[i] if i < len(styles) else None
            table.add_column(col, style=style)
        for row in rows:
            # values come from the printer and must not be read as markup
            table.add_row(*[Text(c) for c in row])
        console.print(table)


def format_value(value: typing.Any) -> str:
    """Render a state value for display."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def parse_value(raw: str) -> typing.Any:
    """Interpret a command line value as JSON (numbers, booleans), falling back to the raw string.

    Usage Example:
    ```python
        >>> parse_value("210")
        210
        >>> parse_value("pause")
        'pause'
    ```
    """
    try:
        return _json.loads(raw)
    except ValueError:
        return raw


_LOGGING_INITIALIZED = False


def configure_logging(verbose: bool | None, debug: bool | None):
    """Sets up structlog/logging based on verbosity."""
    global _LOGGING_INITIALIZED
    global logger

    # If no flags provided and we are already initialized, do nothing (inherit state)
    if verbose is None and debug is None:
        if _LOGGING_INITIALIZED:
            return
        verbose = False
        debug = False

    _LOGGING_INITIALIZED = True

    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="%H:%M:%S", utc=False),
    ]

    if not sys.stderr.isatty():
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
    )
    logger = structlog.get_logger(consts.APP_NAME)


def get_settings(require_printer: bool = True) -> Settings:
    """Load settings (Env > .env > config.json).

    Args:
        require_printer: Exit with an error if host or API key are not configured.
    """
    try:
        settings = Settings()
    except pydantic.ValidationError as e:
        output_message(f"[bold][red]Invalid configuration[/red][/bold]: {e}", error=True)
        sys.exit(1)

    missing = settings.missing_required()
    if missing and require_printer:
        output_message(f"Missing required settings: {', '.join(missing)}", error=True)
        output_message(
            f"Set OCTOPRINT_HOST and OCTOPRINT_API_KEY or add them to {get_config_path()}.",
            error=True,
        )
        sys.exit(1)
    return settings
