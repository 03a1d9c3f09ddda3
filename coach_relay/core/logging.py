"""Logging setup and access-log line formats."""
import sys
from datetime import datetime, timezone

from loguru import logger

from coach_relay.core.config import Settings


_stderr_handler_id = 0  # loguru's default sink


def configure_logging(settings: Settings) -> None:
    """Replace the stderr sink with one at the configured level.

    Other sinks are left alone, so calling this again only swaps ours.
    """
    global _stderr_handler_id
    try:
        logger.remove(_stderr_handler_id)
    except ValueError:
        pass  # already removed
    _stderr_handler_id = logger.add(
        sys.stderr,
        level=settings.LOG_LEVEL,
        format="<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | {message}",
        colorize=not settings.is_production,
        backtrace=settings.DEBUG,
        diagnose=settings.DEBUG,
    )


def format_dev_line(
    method: str, path: str, status: int, duration_ms: float, size: str | None
) -> str:
    return f"{method} {path} {status} {duration_ms:.3f} ms - {size or '-'}"


def format_combined_line(
    remote_addr: str,
    method: str,
    path: str,
    http_version: str,
    status: int,
    size: str | None,
    referrer: str | None,
    user_agent: str | None,
    when: datetime | None = None,
) -> str:
    """Apache combined log format."""
    when = when or datetime.now(timezone.utc)
    stamp = when.strftime("%d/%b/%Y:%H:%M:%S %z")
    return (
        f'{remote_addr} - - [{stamp}] "{method} {path} HTTP/{http_version}" '
        f'{status} {size or "-"} "{referrer or "-"}" "{user_agent or "-"}"'
    )
