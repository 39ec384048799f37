"""
Logging setup for flashy.

Human-readable console output; extra context passed as
``logger.info("msg", extra={...})`` is appended as ``key=value`` pairs.
"""
import logging
import sys

_RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime", "taskName"}


class ContextFormatter(logging.Formatter):
    """Formatter that colours the level and renders structured extras.

    Format: timestamp [LEVEL] logger_name: message | key1=value1 key2=value2
    """

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
        'RESET': '\033[0m',
        'GRAY': '\033[90m',
    }

    def __init__(self, fmt=None, datefmt=None, use_color: bool = True) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.use_color = use_color

    def _paint(self, text: str, color: str) -> str:
        if not self.use_color:
            return text
        return f"{self.COLORS[color]}{text}{self.COLORS['RESET']}"

    def format(self, record: logging.LogRecord) -> str:
        base_msg = super().format(record)

        levelname = record.levelname
        if levelname in self.COLORS:
            base_msg = base_msg.replace(f"[{levelname}]", self._paint(f"[{levelname}]", levelname), 1)

        extra_fields = [
            f"{key}={value}"
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS and value is not None
        ]
        if extra_fields:
            return f"{base_msg}{self._paint(' | ' + ' '.join(extra_fields), 'GRAY')}"
        return base_msg


def setup_logging(level: str = "INFO") -> None:
    """Configure the ``flashy`` logger namespace.

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL. DEBUG also prints the
               beginning of every raw model completion.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    formatter = ContextFormatter(
        fmt='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        use_color=sys.stderr.isatty(),
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger('flashy')
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.propagate = False
