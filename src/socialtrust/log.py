"""socialtrust.log — Structured logging setup.

Library modules only call logging.getLogger(__name__). Applications (and the
CLI) call setup_logging() once to attach a handler to the "socialtrust"
logger. Each record carries the operation id bound by the reputation engine
around a mutation.
"""

import logging
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Optional

operation_id_var: ContextVar[str] = ContextVar("operation_id", default="")

LOGGER_NAME = "socialtrust"


class OperationIdFilter(logging.Filter):
    def filter(self, record):
        record.operation_id = operation_id_var.get("")
        return True


@contextmanager
def bind_operation(operation_id: Optional[str] = None):
    """Tag every log record emitted inside the block with one operation id."""
    token = operation_id_var.set(operation_id or uuid.uuid4().hex[:12])
    try:
        yield operation_id_var.get()
    finally:
        operation_id_var.reset(token)


def setup_logging(level: str = "INFO", json_output: bool = True) -> logging.Logger:
    """Configure the socialtrust logger. JSON lines by default."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    if not logger.handlers:
        handler = logging.StreamHandler()
        if json_output:
            from pythonjsonlogger.json import JsonFormatter
            formatter = JsonFormatter(
                fmt="%(asctime)s %(levelname)s %(name)s %(message)s %(operation_id)s",
                rename_fields={"asctime": "timestamp", "levelname": "level"},
            )
        else:
            formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        handler.setFormatter(formatter)
        handler.addFilter(OperationIdFilter())
        logger.addHandler(handler)

    return logger


__all__ = ["setup_logging", "bind_operation", "operation_id_var", "OperationIdFilter", "LOGGER_NAME"]
