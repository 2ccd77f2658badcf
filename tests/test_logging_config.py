import io
import logging

from coingains.logging.config import ProfessionalFormatter, configure_logging


def test_professional_formatter_short_levels():
    formatter = ProfessionalFormatter()
    record = logging.LogRecord(
        "coingains.reporting.fifo", logging.WARNING, __file__, 1, "shortfall", None, None
    )
    line = formatter.format(record)
    assert line.endswith(" | WRN | coingains.reporting.fifo | shortfall")


def test_configure_logging_installs_handler_once(monkeypatch):
    root = logging.getLogger()
    monkeypatch.setattr(root, "handlers", [])
    level = root.level
    try:
        stream = io.StringIO()
        assert configure_logging(logging.INFO, stream=stream) is root
        configure_logging(logging.DEBUG, stream=stream)
        assert len(root.handlers) == 1
        assert root.level == logging.DEBUG

        logging.getLogger("coingains.test").info("hello")
        assert "| INF | coingains.test | hello" in stream.getvalue()
    finally:
        root.setLevel(level)
