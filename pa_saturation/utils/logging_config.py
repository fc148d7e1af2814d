"""
Centralized logging configuration for the photoacoustic unmixing pipeline.

Library modules only ask for loggers; handlers are installed explicitly by
the caller (an example script, a notebook, a test) through
``SimulationLogger.setup_logging``:

- Console output with a single shared format
- Optional rotating file output under ``log_dir``
- scipy logger held at WARNING
"""

import logging
import logging.handlers
from pathlib import Path
from typing import Dict, Optional


LOG_FORMAT = '%(asctime)s | %(name)-32s | %(levelname)-8s | %(funcName)-20s | %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'
LOG_FILE_NAME = "pa_saturation.log"


class SimulationLogger:
    """
    Central registry for pipeline loggers.

    Features:
    - One-time handler setup, safe to call repeatedly
    - Cached per-module loggers
    - Optional size-based file rotation
    """

    _loggers: Dict[str, logging.Logger] = {}
    _initialized = False

    @classmethod
    def setup_logging(cls,
                      log_level: str = "INFO",
                      log_dir: Optional[str] = None,
                      max_file_size: int = 10 * 1024 * 1024,  # 10MB
                      backup_count: int = 5):
        """
        Install console (and optionally file) handlers on the package logger.

        Parameters
        ----------
        log_level : str
            DEBUG, INFO, WARNING or ERROR.
        log_dir : str, optional
            Directory for a rotating log file. Console only when None.
        max_file_size : int
            Size in bytes before the log file rotates.
        backup_count : int
            Number of rotated files to keep.
        """
        if cls._initialized:
            return

        level = getattr(logging, log_level.upper())
        package_logger = logging.getLogger("pa_saturation")
        package_logger.setLevel(level)

        for handler in package_logger.handlers[:]:
            package_logger.removeHandler(handler)

        for logger_name in ('scipy',):
            logging.getLogger(logger_name).setLevel(logging.WARNING)

        formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        package_logger.addHandler(console_handler)

        if log_dir is not None:
            log_path = Path(log_dir)
            log_path.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                log_path / LOG_FILE_NAME,
                maxBytes=max_file_size,
                backupCount=backup_count
            )
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(formatter)
            package_logger.addHandler(file_handler)

        cls._initialized = True
        package_logger.info(f"Logging initialized (level={log_level.upper()}, "
                            f"file={'off' if log_dir is None else log_dir})")

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """
        Get a cached logger for a pipeline component.

        Parameters
        ----------
        name : str
            Logger name, usually ``__name__`` of the calling module.

        Returns
        -------
        logging.Logger
        """
        if name not in cls._loggers:
            cls._loggers[name] = logging.getLogger(name)
        return cls._loggers[name]

    @classmethod
    def reset(cls):
        """Remove installed handlers so ``setup_logging`` can run again."""
        package_logger = logging.getLogger("pa_saturation")
        for handler in package_logger.handlers[:]:
            package_logger.removeHandler(handler)
            handler.close()
        cls._initialized = False


def get_logger(name: str) -> logging.Logger:
    """Get the logger for a simulation or analysis module."""
    return SimulationLogger.get_logger(name)
