# utils/logging_setup.py

from __future__ import annotations
import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
APP_LOGGER = "email_printer"

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


def resolve_level(level: str | None, debug: bool = False) -> int:
    if debug:
        return logging.DEBUG
    return _LEVELS.get((level or "").strip().upper(), logging.INFO)


def setup_logging(level: str | None = "INFO", log_dir: Path | None = None, *, debug: bool = False) -> logging.Logger:
    """
    Configura el log una sola vez al arrancar: stderr + fichero rotado a medianoche
    en `log_dir`. Si el directorio no se puede crear, solo stderr.
    Devuelve el logger de la aplicación, que se pasa a cada componente.
    """
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    file_error: OSError | None = None
    if log_dir is not None:
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            handlers.append(TimedRotatingFileHandler(
                log_dir / "email-printer.log",
                when="midnight",
                backupCount=30,
                encoding="utf-8",
            ))
        except OSError as exc:
            file_error = exc

    logging.basicConfig(level=resolve_level(level, debug), format=LOG_FORMAT, handlers=handlers, force=True)
    logger = logging.getLogger(APP_LOGGER)
    if file_error is not None:
        logger.warning("No se pudo abrir el log en %s (%s); solo stderr", log_dir, file_error)
    return logger
