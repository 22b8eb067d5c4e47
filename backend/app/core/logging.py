import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

SERVICE_NAME = "annuaire_backend"

# Attributes passed through ``extra=`` that end up as top-level JSON keys
CONTEXT_FIELDS = (
    "request_id",
    "tenant",
    "host",
    "company_id",
    "review_id",
    "connector",
    "step",
)

_configured = False


class JsonFormatter(logging.Formatter):
    """
    One JSON object per line.

    Tenant, host and company context travel through ``extra=`` on the
    logging call and are copied onto the output here.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc)
            .isoformat()
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": SERVICE_NAME,
        }
        payload.update(
            {field: getattr(record, field) for field in CONTEXT_FIELDS if hasattr(record, field)}
        )
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


def configure_logging(level: int | str = logging.INFO) -> None:
    """Route the root logger to stdout as JSON. Only the first call has an effect."""
    global _configured
    if _configured:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)

    _configured = True
