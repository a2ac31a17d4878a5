"""Tests for structured logging setup."""

import json
import logging

from socialtrust.log import LOGGER_NAME, OperationIdFilter, bind_operation, operation_id_var, setup_logging


def test_bind_operation_sets_and_resets():
    assert operation_id_var.get() == ""
    with bind_operation("op-1") as op:
        assert op == "op-1"
        assert operation_id_var.get() == "op-1"
    assert operation_id_var.get() == ""


def test_generated_operation_id():
    with bind_operation() as op:
        assert len(op) == 12


def test_filter_injects_operation_id():
    record = logging.LogRecord("socialtrust.x", logging.INFO, __file__, 1, "msg", (), None)
    with bind_operation("op-2"):
        OperationIdFilter().filter(record)
    assert record.operation_id == "op-2"


def test_json_output(capsys):
    logger = logging.getLogger(LOGGER_NAME)
    saved = logger.handlers[:]
    logger.handlers.clear()
    try:
        setup_logging("DEBUG")
        with bind_operation("op-3"):
            logging.getLogger("socialtrust.engine").info("hello %s", "world")
        line = capsys.readouterr().err.strip().splitlines()[-1]
        payload = json.loads(line)
        assert payload["message"] == "hello world"
        assert payload["level"] == "INFO"
        assert payload["operation_id"] == "op-3"
    finally:
        logger.handlers[:] = saved
