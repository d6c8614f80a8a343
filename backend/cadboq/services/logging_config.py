"""
Structured logging for the CAD-to-BOQ service.

One stdout handler on the root logger, JSON by default (LOG_FORMAT=text for
local runs). The id of the HTTP request being served lives in a context
variable, so parser/generator log lines can be traced back to the upload
that caused them without threading the id through every call.
"""
import logging
import json
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Optional

# Bound by RequestTimingMiddleware for the duration of a request
request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# Record attributes copied into the JSON payload when a caller passes them via extra=
_EXTRA_FIELDS = (
    "duration_ms",
    "source_file",
    "upload_bytes",
    "http_method",
    "http_path",
    "http_status",
)


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        request_id = getattr(record, "request_id", None) or request_id_ctx.get()
        if request_id:
            log_entry["request_id"] = request_id
        for name in _EXTRA_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                log_entry[name] = value
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


class _RequestIdFilter(logging.Filter):
    """Expose the current request id to the plain-text format string."""

    def filter(self, record):
        if not getattr(record, "request_id", None):
            record.request_id = request_id_ctx.get() or "-"
        return True


def setup_logging(level: str = "INFO", json_output: bool = True):
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stdout)
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        handler.addFilter(_RequestIdFilter())
        handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(name)s] %(levelname)s (%(request_id)s): %(message)s"
        ))

    root.handlers = [handler]

    # ezdxf reports every recoverable structure issue at INFO
    for name in ["uvicorn.access", "httpx", "ezdxf"]:
        logging.getLogger(name).setLevel(logging.WARNING)
