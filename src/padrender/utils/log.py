import logging
import os
import sys

from tqdm import tqdm

LOG_LEVEL_ENV = "PADRENDER_LOG_LEVEL"
DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s: %(message)s"


class TqdmLoggingHandler(logging.StreamHandler):
    """Stream handler that writes through ``tqdm.write`` so batch progress bars stay intact."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            tqdm.write(self.format(record), file=self.stream)
            self.flush()
        except Exception:
            self.handleError(record)


def _resolve_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {level}")
    return numeric_level


def setup_logging(
    level: str | int = "INFO",
    use_tqdm_handler: bool = False,
    format: str = DEFAULT_FORMAT,
    datefmt: str = "%Y-%m-%d %H:%M:%S",
) -> None:
    """Configure the root logger for a command-line entry point.

    Call once from ``render.py`` / ``remove_bg.py``. Library modules only create module loggers.

    Args:
        level: Logging level name or number. ``PADRENDER_LOG_LEVEL`` overrides it when set.
        use_tqdm_handler: Route records through :class:`TqdmLoggingHandler`.
        format: Log record format.
        datefmt: Timestamp format.
    """
    level = _resolve_level(os.environ.get(LOG_LEVEL_ENV) or level)

    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
    root_logger.setLevel(level)

    handler = TqdmLoggingHandler(sys.stdout) if use_tqdm_handler else logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(fmt=format, datefmt=datefmt))
    root_logger.addHandler(handler)

    # Pillow logs every PNG chunk at DEBUG.
    logging.getLogger("PIL").setLevel(max(level, logging.INFO))
