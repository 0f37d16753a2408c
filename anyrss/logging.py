"""
Structured logging for anyrss.

Events from anyrss and from uvicorn go through one structlog pipeline and are
rendered as JSON outside development. Request-scoped fields (request id,
method, path, channel, feed id) are kept in structlog's context variables, so
storage and service events logged while serving a request carry them too.
"""

import logging
import sys
from collections.abc import Iterable
from typing import Any

import structlog
from structlog.typing import EventDict, Processor, WrappedLogger

# uvicorn.access passes (client_addr, method, full_path, http_version, status_code)
_ACCESS_ARGS_LEN = 5


def _json_default(obj: Any) -> str:
    """Render bucket names and keys as text; anything else as its repr."""
    if isinstance(obj, bytes):
        return obj.decode("utf-8", errors="backslashreplace")
    return repr(obj)


def _drop_color_message(
    _logger: WrappedLogger, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Remove uvicorn's ANSI-colored duplicate of the event text."""
    event_dict.pop("color_message", None)
    return event_dict


def make_service_fields_processor(**fields: str) -> Processor:
    """
    Create a processor that stamps static fields on every event.

    Parameters
    ----------
    **fields : str
        Fields such as ``component="server"`` or ``environment="production"``.
        Values already present in the event win.
    """

    def add_service_fields(
        _logger: WrappedLogger, _method_name: str, event_dict: EventDict
    ) -> EventDict:
        for key, value in fields.items():
            event_dict.setdefault(key, value)
        return event_dict

    return add_service_fields


def bind_request_context(**fields: Any) -> None:
    """Attach fields to every event logged in the current request context."""
    structlog.contextvars.bind_contextvars(**fields)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()


class AccessLogFilter(logging.Filter):
    """
    Drop uvicorn access lines for successful requests to quiet paths.

    Failed requests to those paths are still logged, so a failing health check
    shows up in the access log.

    Parameters
    ----------
    quiet_paths : Iterable[str]
        Request paths (without query string) to keep out of the access log.
    """

    def __init__(self, quiet_paths: Iterable[str]) -> None:
        super().__init__()
        self.quiet_paths = frozenset(quiet_paths)

    def filter(self, record: logging.LogRecord) -> bool:
        args = record.args
        if not isinstance(args, tuple) or len(args) != _ACCESS_ARGS_LEN:
            return True
        full_path, status = args[2], args[4]
        path = str(full_path).split("?", 1)[0]
        if path not in self.quiet_paths:
            return True
        return not (isinstance(status, int) and status < 400)


def configure_logging(
    json_logs: bool = True,
    log_level: str = "INFO",
    component: str | None = None,
    environment: str | None = None,
    quiet_paths: Iterable[str] = (),
) -> None:
    """
    Configure structlog and route the anyrss and uvicorn loggers through it.

    Parameters
    ----------
    json_logs : bool
        If True, render JSON lines. If False, use the colored console renderer.
    log_level : str
        Level for the anyrss and uvicorn loggers. Other libraries log at WARNING.
    component : str | None
        Value of the ``component`` field on every event.
    environment : str | None
        Value of the ``environment`` field on every event.
    quiet_paths : Iterable[str]
        Paths whose successful requests are left out of the access log.
    """
    service_fields = {
        key: value
        for key, value in (("component", component), ("environment", environment))
        if value
    }
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        make_service_fields_processor(**service_fields),
    ]

    renderer: Processor
    if json_logs:
        renderer = structlog.processors.JSONRenderer(default=_json_default)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=[
                structlog.stdlib.ExtraAdder(),
                _drop_color_message,
                *shared_processors,
            ],
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.WARNING)

    level = logging.getLevelName(log_level)
    for name in ("anyrss", "uvicorn"):
        logging.getLogger(name).setLevel(level)

    access = logging.getLogger("uvicorn.access")
    for existing in [f for f in access.filters if isinstance(f, AccessLogFilter)]:
        access.removeFilter(existing)
    if quiet_paths:
        access.addFilter(AccessLogFilter(quiet_paths))


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger named after the calling module."""
    return structlog.get_logger(name)
