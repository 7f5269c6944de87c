# keeper/logging_config.py

import json
import logging
import sys

from keeper.config import LOG_LEVEL


# Custom formatter that outputs logs as structured JSON
class JsonFormatter(logging.Formatter):
    def format(self, record):
        payload = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
        }

        # Present when a request handler passed extra={"request_id": ...}
        if hasattr(record, "request_id"):
            payload["request_id"] = record.request_id

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload)


def setup_logging(level=None):
    # A single stdout handler (container platforms collect stdout)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())

    root = logging.getLogger()
    root.setLevel(level or LOG_LEVEL)

    # Clear any existing handlers to avoid duplicate logs
    root.handlers.clear()
    root.addHandler(handler)
