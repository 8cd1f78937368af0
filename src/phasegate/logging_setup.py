"""Logging configuration for phasegate."""

from __future__ import annotations

import logging
import os


def setup_logging(
    logger_name: str = "phasegate",
    log_file: str | None = None,
    verbose: bool = False,
    child_loggers: list[str] | None = None,
) -> logging.Logger:
    """
    Configure dual-handler logging (console + file).

    Args:
        logger_name: Name for the logger; "phasegate" covers every module
        log_file: Path to log file (None for no file logging)
        verbose: Enable DEBUG level on console (default INFO)
        child_loggers: Additional loggers to configure with same handlers

    Returns:
        Configured logger instance
    """
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    console_handler.setFormatter(
        logging.Formatter("%(levelname)-8s | %(name)s | %(message)s")
    )

    file_handler = None
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )

    for name in [logger_name, *(child_loggers or [])]:
        logger = logging.getLogger(name)
        logger.setLevel(logging.DEBUG)
        # Re-running setup must not duplicate output
        for handler in list(logger.handlers):
            if getattr(handler, "_phasegate", False):
                logger.removeHandler(handler)
                handler.close()
        for handler in (console_handler, file_handler):
            if handler is not None:
                handler._phasegate = True  # type: ignore[attr-defined]
                logger.addHandler(handler)

    return logging.getLogger(logger_name)
