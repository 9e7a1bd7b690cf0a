# main.py
# Punto de entrada: IMAP (UNSEEN) -> adjuntos a staging -> lp
from __future__ import annotations
import logging
import sys
import time
from config.settings import Settings
from domain.errors import ConfigError, FatalMailboxError
from interface_adapters.controllers.polling_controller import PollingController
from utils.logging_setup import setup_logging


def run_once(controller: PollingController, logger: logging.Logger) -> int:
    try:
        controller.run_once()
    except FatalMailboxError as exc:
        logger.error("No se pudieron obtener los correos: %s", exc)
        return 1
    return 0


def main() -> int:
    settings = Settings()
    logger = setup_logging(settings.LOG_LEVEL, settings.log_dir_path(), debug=settings.DEBUG)

    logger.info("=== Email to printer ===")
    logger.debug("Configuración cargada: %s", settings.redacted())
    try:
        settings.validate()
    except ConfigError as exc:
        logger.error("Configuración inválida: %s", exc)
        return 2

    controller = PollingController(settings=settings, logger=logger)
    logger.info(
        "IMAP host=%s inbox=%s printer=%s",
        settings.IMAP_HOST, settings.IMAP_FOLDER_INBOX, settings.PRINTER_NAME or "(por defecto)",
    )
    if settings.POLL_INTERVAL <= 0:
        return run_once(controller, logger)

    while True:
        try:
            controller.run_once()
        except Exception:
            logger.exception("Error en ciclo de polling")
        time.sleep(settings.POLL_INTERVAL)


if __name__ == "__main__":
    sys.exit(main())
