import logging
from collections import deque
from typing import Deque, List, Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class BufferHandler(logging.Handler):
    """Logging handler that keeps the most recent formatted records in memory."""

    def __init__(self, maxlen: int = 1000):
        super().__init__()
        self.buffer: Deque[str] = deque(maxlen=maxlen)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.buffer.append(self.format(record))
        except Exception:
            self.handleError(record)

    def lines(self, tag: Optional[str] = None) -> List[str]:
        """Buffered lines, optionally only those carrying a [TAG]."""
        if tag is None:
            return list(self.buffer)
        marker = f"[{tag}]"
        return [line for line in self.buffer if marker in line]


def setup_logging(level: int = logging.INFO, buffer: Optional[BufferHandler] = None) -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=DATE_FORMAT)
    logging.getLogger().setLevel(level)
    if buffer is not None:
        buffer.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        buffer.setLevel(logging.DEBUG)
        logging.getLogger().addHandler(buffer)
