"""
Centralized Logging

Architectural Intent:
- Provides human-readable or structured JSON logging for all nixdeploy components
- Human output mirrors a deploy transcript: "> step" lines, full records under --debug
- JSON entries carry the external command (argv) and the remote host when a
  record was logged with them, so deploys can be audited from the log alone
"""

import json
import logging
import sys
from datetime import datetime, UTC

# record attributes copied into JSON entries when present
CONTEXT_FIELDS = ("command", "host")

HUMAN_FORMAT = "> %(message)s"
DEBUG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class JSONFormatter(logging.Formatter):
    """Structured JSON log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                log_entry[name] = list(value) if name == "command" else value
        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry)


def configure_logging(level: int = logging.INFO, json_format: bool = False) -> None:
    """Configure the ``nixdeploy`` logger hierarchy, replacing earlier handlers."""
    root = logging.getLogger("nixdeploy")
    root.setLevel(level)
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    if json_format:
        handler.setFormatter(JSONFormatter())
    elif level <= logging.DEBUG:
        handler.setFormatter(logging.Formatter(DEBUG_FORMAT))
    else:
        handler.setFormatter(logging.Formatter(HUMAN_FORMAT))

    root.addHandler(handler)
