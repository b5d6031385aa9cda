import logging
import sys
from pathlib import Path

from .config import LogConfig

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(threadName)s - %(name)s - %(message)s"

# Third-party loggers that are too chatty below WARNING
NOISY_LOGGERS = ("paramiko",)


def setup_logging(config: LogConfig) -> None:
    """
    Configure the root logger.

    Args:
        config: LogConfig object containing settings.

    Note:
        - A FileHandler is added if config.file is set (parent dirs are created).
        - A StreamHandler (stderr) is added if config.console is True.
        - paramiko is kept at WARNING unless the level is DEBUG.
    """
    level = getattr(logging, config.level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Clear any existing handlers to avoid duplicates
    root_logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT)

    if config.file:
        log_path = Path(config.file)
        if not log_path.parent.exists():
            log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    if config.console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if level <= logging.DEBUG else logging.WARNING)
