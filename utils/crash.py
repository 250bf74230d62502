"""Last-resort crash recording for the CLI and the HTTP server."""

import json
import os
import sys
import traceback

from utils.ids import format_timestamp, generate_ksuid

# Overridden from LoggingConfig.crash_file by configure().
_crash_log = "logs/crash.log"


def configure(crash_file):
    """Set crash log file path from config."""
    global _crash_log
    _crash_log = crash_file


def _write_crash(record):
    """Append one JSON line to the crash log. Never raises."""
    try:
        log_dir = os.path.dirname(_crash_log)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        with open(_crash_log, "a") as f:
            f.write(json.dumps(record, default=str) + "\n")
    except OSError:
        pass


def _record(exc_type, exc_value, tb_text, context=None):
    # Errors that already carry a tracking ID keep it.
    record = {
        "id": getattr(exc_value, "error_id", None) or generate_ksuid(),
        "timestamp": format_timestamp(),
        "type": exc_type.__name__ if exc_type else "Unknown",
        "msg": str(exc_value) if exc_value else "",
        "traceback": tb_text,
    }
    if context:
        record["context"] = context
    return record


def log_crash(exc_type, exc_value, exc_tb):
    """sys.excepthook replacement: banner on stderr plus a crash log line."""
    tb_text = "".join(traceback.format_exception(exc_type, exc_value, exc_tb))
    record = _record(exc_type, exc_value, tb_text)
    bar = "=" * 60
    sys.stderr.write(f"\n{bar}\nCRASH [{record['id']}] {record['timestamp']}\n{bar}\n")
    sys.stderr.write(f"{record['type']}: {record['msg']}\n{'-' * 60}\n{tb_text}{bar}\n\n")
    _write_crash(record)
    return record["id"]


def create_async_handler(logger=None):
    """Event loop exception handler that records unhandled task errors."""
    def handler(loop, context):
        exc = context.get("exception")
        tb_text = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)) if exc else None
        record = _record(type(exc) if exc else None, exc or context.get("message", "Unknown"), tb_text, str(context))
        if logger:
            logger.error("Async exception", error=record["msg"], crash_id=record["id"])
        _write_crash(record)
    return handler


def install_crash_handler():
    """Install global sync exception handler."""
    sys.excepthook = log_crash
