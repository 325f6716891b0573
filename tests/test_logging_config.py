import json
import logging
import sys

from neo_mcp.config import default_config
from neo_mcp.logging_config import JsonFormatter


def test_logging_level_config():
    level = getattr(logging, default_config.log_level.upper(), logging.INFO)
    assert level in (
        logging.DEBUG,
        logging.INFO,
        logging.WARNING,
        logging.ERROR,
        logging.CRITICAL,
    )


def test_json_formatter_includes_extras():
    record = logging.LogRecord("neo_mcp.mcp", logging.WARNING, __file__, 1, "tool=%s failed", ("get_block",), None)
    record.tool = "get_block"
    record.network = "testnet"
    payload = json.loads(JsonFormatter().format(record))
    assert payload["level"] == "WARNING"
    assert payload["message"] == "tool=get_block failed"
    assert payload["tool"] == "get_block"
    assert payload["network"] == "testnet"
    assert "txid" not in payload


def test_json_formatter_renders_exceptions():
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = logging.LogRecord("neo_mcp", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())
    payload = json.loads(JsonFormatter().format(record))
    assert "RuntimeError: boom" in payload["exc_info"]
