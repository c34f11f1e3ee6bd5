import logging

from timetravel.utils.logging import CorrelationIdFilter, correlation_id_var, get_logger


def _record() -> logging.LogRecord:
    return logging.LogRecord("timetravel.test", logging.INFO, __file__, 1, "hello", None, None)


def test_records_outside_a_request_get_placeholder():
    record = _record()
    assert CorrelationIdFilter().filter(record)
    assert record.correlation_id == "-"


def test_records_carry_current_correlation_id():
    token = correlation_id_var.set("req-42")
    try:
        record = _record()
        CorrelationIdFilter().filter(record)
    finally:
        correlation_id_var.reset(token)

    assert record.correlation_id == "req-42"


def test_get_logger_installs_one_handler():
    logger = get_logger("timetravel.test.handlers", level="debug")
    get_logger("timetravel.test.handlers")

    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0].filters[0], CorrelationIdFilter)
