# backend/app/logging_config.py
import datetime
import json
import logging
import os
import traceback
import uuid
from contextvars import ContextVar
from typing import Any, Optional

# request id of the HTTP request currently being served
_request_id: ContextVar[str] = ContextVar("request_id", default="GLOBAL")


class JSONFormatter(logging.Formatter):
    """
    Formatter that renders every record as one JSON object per line.
    """
    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "request_id": _request_id.get(),
        }

        if hasattr(record, "extra_fields") and isinstance(record.extra_fields, dict):
            log_data.update(record.extra_fields)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
            log_data["stack_trace"] = "".join(traceback.format_exception(*record.exc_info))

        return json.dumps(log_data, ensure_ascii=False, default=str)


def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None):
    """
    Configure the root logger with JSON output to stderr and, optionally, a file.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level.upper())

    if root_logger.handlers:
        root_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(JSONFormatter())
    root_logger.addHandler(console_handler)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(file_handler)

    logging.info("Logging infrastructure initialized.", extra={"extra_fields": {"status": "ready"}})


def new_request_id() -> str:
    request_id = str(uuid.uuid4())
    _request_id.set(request_id)
    return request_id


class LedgerLoggerAdapter(logging.LoggerAdapter):
    """
    Adapter that moves arbitrary keyword arguments into ``extra_fields``.

        logger.info("Transaction created", transaction_id=7, owner_id=3)
    """
    def process(self, msg: Any, kwargs: Any) -> tuple[Any, Any]:
        extra = kwargs.get("extra", {})
        if "extra_fields" not in extra:
            extra["extra_fields"] = {}

        standard_args = {"exc_info", "stack_info", "stacklevel", "extra"}
        new_kwargs = {}
        for key, value in kwargs.items():
            if key in standard_args:
                new_kwargs[key] = value
            else:
                extra["extra_fields"][key] = value

        new_kwargs["extra"] = extra
        return msg, new_kwargs


def get_logger(name: str) -> LedgerLoggerAdapter:
    return LedgerLoggerAdapter(logging.getLogger(name), {})
