"""Logging setup: correlation ids, secret masking, JSON or compact console output."""

import contextvars
import logging
import re
import sys
import traceback
import uuid
from pathlib import Path
from typing import Any

from pythonjsonlogger import jsonlogger

# Hey future me, one OAuth callback fans out into three provider calls and a DB write. The
# correlation id is what ties those log lines back to the request. contextvars keeps it
# per-task, and "" is what startup code and background work see.
_correlation_id: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default=""
)

# Extras that must never reach a log sink in clear text
SECRET_FIELDS = frozenset(
    {"access_token", "refresh_token", "client_secret", "code", "verify_token"}
)
_SECRET_IN_TEXT = re.compile(
    r"(?<![\w.])((?:access_token|refresh_token|client_secret|code)=)[^&\s\"']+"
)
MASK = "***"


def get_correlation_id() -> str:
    """Correlation id of the current request, or "" outside one."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Bind a correlation id to the current context.

    Called once per request by the middleware with the incoming X-Correlation-ID
    header. None means the caller sent no header, so a fresh UUID4 is minted.

    Returns:
        The id now bound to the context
    """
    value = correlation_id or str(uuid.uuid4())
    _correlation_id.set(value)
    return value


def mask_secrets(text: str) -> str:
    """Mask token-bearing query parameters inside a free-text log message."""
    return _SECRET_IN_TEXT.sub(rf"\1{MASK}", text)


class CorrelationIdFilter(logging.Filter):
    """Stamp every record with the current correlation id."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id()
        return True


# Yo, provider clients log error bodies and URLs at WARNING. Those can echo a code or token
# back at us, so the handler scrubs both the message and any secret-named extra.
class SecretMaskingFilter(logging.Filter):
    """Mask OAuth secrets in record messages and extras."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = mask_secrets(record.msg)
        if isinstance(record.args, tuple):
            record.args = tuple(
                mask_secrets(arg) if isinstance(arg, str) else arg for arg in record.args
            )
        for name in SECRET_FIELDS:
            if getattr(record, name, None):
                setattr(record, name, MASK)
        return True


class CompactExceptionFormatter(logging.Formatter):
    """Console formatter that prints exception chains root cause first.

    Only frames from the artistlink package are shown, e.g.

    WARNING │ artistlink.application.services.media_sync_service:88 │ Sync failed
    ╰─► httpx.ConnectTimeout: timed out
    ╰─► RemoteFetchFailed: YouTube playlist listing failed: ConnectTimeout
        File "youtube_client.py", line 268, in list_items
          payload = await self._request_json(
    """

    package_marker = "artistlink"

    @staticmethod
    def _chain(exc: BaseException) -> list[BaseException]:
        chain: list[BaseException] = []
        current: BaseException | None = exc
        while current is not None and current not in chain:
            chain.append(current)
            current = current.__cause__ or current.__context__
        return chain[::-1]

    def _own_frames(self, exc: BaseException) -> list[str]:
        lines: list[str] = []
        for frame in traceback.extract_tb(exc.__traceback__):
            if "/site-packages/" in frame.filename or self.package_marker not in frame.filename:
                continue
            lines.append(
                f'    File "{Path(frame.filename).name}", line {frame.lineno}, in {frame.name}'
            )
            if frame.line:
                lines.append(f"      {frame.line.strip()}")
        return lines

    def formatException(self, ei: Any) -> str:
        exc_value = ei[1]
        if exc_value is None:
            return ""
        lines: list[str] = []
        for exc in self._chain(exc_value):
            lines.append(f"╰─► {exc.__class__.__name__}: {exc}")
            lines.extend(self._own_frames(exc))
        return "\n".join(lines)


class CustomJsonFormatter(jsonlogger.JsonFormatter):  # type: ignore[name-defined,misc]
    """JSON formatter for log shippers.

    Adds level, logger and source location, plus the service name and the
    correlation id when one is bound.
    """

    def __init__(self, *args: Any, service: str = "artistlink", **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.service = service

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record.update(
            timestamp=self.formatTime(record, self.datefmt),
            level=record.levelname,
            logger=record.name,
            service=self.service,
            location=f"{record.module}.{record.funcName}:{record.lineno}",
        )
        correlation_id = getattr(record, "correlation_id", "")
        if correlation_id:
            log_record["correlation_id"] = correlation_id
        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)


# Listen future me, create_app calls this once. It REPLACES the root handlers, so calling it
# again (tests do) never stacks handlers.
def configure_logging(
    log_level: str = "INFO",
    json_format: bool = False,
    app_name: str = "artistlink",
) -> None:
    """Install a single stdout handler on the root logger.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL (unknown names mean INFO)
        json_format: JSON lines for production, compact console output otherwise
        app_name: Service name written into JSON records
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.addFilter(CorrelationIdFilter())
    handler.addFilter(SecretMaskingFilter())
    if json_format:
        handler.setFormatter(
            CustomJsonFormatter(
                "%(timestamp)s %(level)s %(name)s %(message)s",
                datefmt="%Y-%m-%dT%H:%M:%S",
                service=app_name,
            )
        )
    else:
        handler.setFormatter(
            CompactExceptionFormatter(
                fmt="%(asctime)s │ %(levelname)-7s │ %(name)s:%(lineno)d │ %(message)s",
                datefmt="%H:%M:%S",
            )
        )

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.setLevel(level)
    root.addHandler(handler)

    # httpx logs every request URL at INFO, and Graph API URLs carry access_token
    for noisy in ("httpx", "httpcore", "asyncio", "aiosqlite", "uvicorn.access"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        "Logging configured",
        extra={"app_name": app_name, "log_level": log_level, "json_format": json_format},
    )
