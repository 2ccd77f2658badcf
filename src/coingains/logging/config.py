import logging

SHORT_LEVELS = {
    "DEBUG": "DBG",
    "INFO": "INF",
    "WARNING": "WRN",
    "ERROR": "ERR",
    "CRITICAL": "CRT",
}


class ProfessionalFormatter(logging.Formatter):
    """``2024-01-02 10:00:00 | WRN | coingains.reporting.fifo | message``"""

    def __init__(self, datefmt: str = "%Y-%m-%d %H:%M:%S"):
        super().__init__(
            fmt="%(asctime)s | %(shortlevel)-3s | %(name)s | %(message)s",
            datefmt=datefmt,
        )

    def format(self, record) -> str:
        record.shortlevel = SHORT_LEVELS.get(record.levelname, "???")
        return super().format(record)


def configure_logging(level=logging.WARNING, stream=None) -> logging.Logger:
    """Install the console handler on the root logger once and return it.

    Calling again only adjusts the level.
    """
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        handler = logging.StreamHandler(stream)
        handler.setFormatter(ProfessionalFormatter())
        root_logger.addHandler(handler)
    root_logger.setLevel(level)
    return root_logger
