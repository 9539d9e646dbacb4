from __future__ import annotations

import logging
import os
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

_EVENT_LOG = logging.getLogger("checkout_nav.events")


def _resolve_log_dir(settings: object) -> Path:
    """Resolve the log directory.

    - If CHECKOUT_LOG_DIR is absolute, use it directly.
    - Otherwise, treat it as relative to the project root.
    """

    raw = getattr(settings, "CHECKOUT_LOG_DIR", Path("_logs"))
    p = raw if isinstance(raw, Path) else Path(str(raw))
    if p.is_absolute():
        return p

    project_root = Path(__file__).resolve().parents[1]  # .../checkout_nav -> project root
    return project_root / p


def setup_logging(settings: object, *, console: bool = True) -> Path:
    """Configure Python logging to write to a rotating diagnostic log file.

    Returns the resolved log file path.

    Rotation:
      - Daily rotation at midnight.
      - Keep the last `CHECKOUT_LOG_BACKUP_COUNT` rotated files.

    Notes:
      - Structured navigation events are controlled via CHECKOUT_LOG_EVENTS.
      - This function is safe to call multiple times (it resets handlers).
      - `console=False` keeps log lines off the terminal (interactive commands).
    """

    log_dir = _resolve_log_dir(settings)
    log_dir.mkdir(parents=True, exist_ok=True)

    log_file = log_dir / "checkout_nav.log"

    level_name = str(getattr(settings, "CHECKOUT_LOG_LEVEL", "INFO") or "INFO").upper().strip()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

    file_handler = TimedRotatingFileHandler(
        filename=str(log_file),
        when="midnight",
        interval=1,
        backupCount=max(0, int(getattr(settings, "CHECKOUT_LOG_BACKUP_COUNT", 14) or 0)),
        encoding="utf-8",
        utc=False,
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(fmt))

    console_handler = logging.StreamHandler() if console else None
    if console_handler is not None:
        console_handler.setLevel(level)
        console_handler.setFormatter(logging.Formatter(fmt))

    # Reset root handlers so we don't duplicate logs on repeated starts.
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(level)
    root.addHandler(file_handler)
    if console_handler is not None:
        root.addHandler(console_handler)

    events = bool(getattr(settings, "CHECKOUT_LOG_EVENTS", True))
    _EVENT_LOG.disabled = not events

    logging.getLogger("checkout_nav").info(
        "checkout_nav logging enabled (file=%s, level=%s, events=%s)",
        os.fspath(log_file),
        level_name,
        events,
    )

    return log_file


class LoggingEventSink:
    """Event sink that writes `event key=value ...` lines to `checkout_nav.events`."""

    def __init__(self, logger: logging.Logger | None = None):
        self.logger = logger or _EVENT_LOG

    def emit(self, event: str, **fields: object) -> None:
        parts = " ".join(f"{key}={_format_value(value)}" for key, value in fields.items())
        if parts:
            self.logger.info("%s %s", event, parts)
        else:
            self.logger.info("%s", event)


def _format_value(value: object) -> str:
    if value is None:
        return "none"
    text = str(getattr(value, "value", value))
    return f'"{text}"' if " " in text else text
