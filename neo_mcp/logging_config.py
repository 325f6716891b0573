"""Process-wide logging setup driven by NEO_MCP_LOG_LEVEL / NEO_MCP_LOG_FORMAT."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict

from neo_mcp.config import NeoConfig

EXTRA_FIELDS = ("tool", "request_id", "error", "network", "txid", "client_id")


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "level": record.levelname,
            "message": record.getMessage(),
            "name": record.name,
        }
        for key in EXTRA_FIELDS:
            if hasattr(record, key):
                payload[key] = getattr(record, key)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(config: NeoConfig) -> None:
    """Install a root handler once; later calls only adjust the level."""
    level = getattr(logging, config.log_level.upper(), logging.INFO)
    root = logging.getLogger()
    if getattr(configure_logging, "_configured", False):
        root.setLevel(level)
        return

    if config.log_format.lower() == "json":
        handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter())
        logging.basicConfig(level=level, handlers=[handler])
    else:
        logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    configure_logging._configured = True  # type: ignore[attr-defined]
