# config/settings.py
from __future__ import annotations
from dataclasses import dataclass, replace
from datetime import timedelta
from pathlib import Path
import os
import tempfile
from dotenv import load_dotenv

from domain.errors import ConfigError
from domain.models import MailboxCredentials

load_dotenv()


def _default_log_dir() -> str:
    # root -> /var/log; resto de usuarios -> ~/.local/share
    if hasattr(os, "getuid") and os.getuid() == 0:
        return "/var/log/email-printer"
    return str(Path.home() / ".local" / "share" / "email-printer" / "logs")


@dataclass(frozen=True)
class Settings:
    # IMAP
    IMAP_HOST: str = os.getenv("IMAP_HOST", "")
    IMAP_PORT: int = int(os.getenv("IMAP_PORT", 993))
    IMAP_USERNAME: str = os.getenv("IMAP_USERNAME", "")
    IMAP_PASSWORD: str = os.getenv("IMAP_PASSWORD", "")
    IMAP_SSL: bool = os.getenv("IMAP_SSL", "true").lower() == "true"
    IMAP_FOLDER_INBOX: str = os.getenv("IMAP_FOLDER_INBOX", "INBOX")
    IMAP_TIMEOUT: float = float(os.getenv("IMAP_TIMEOUT", 0))  # 0 = sin timeout

    # Impresión
    PRINTER_NAME: str = os.getenv("PRINTER_NAME", "")
    PRINT_CMD: str = os.getenv("PRINT_CMD", "lp")
    PRINT_TIMEOUT: int = int(os.getenv("PRINT_TIMEOUT", 0))

    # Adjuntos / staging
    ALLOWED_FILE_TYPES: str = os.getenv("ALLOWED_FILE_TYPES", "")  # vacío = todos
    STAGING_DIR: str = os.getenv("STAGING_DIR", str(Path(tempfile.gettempdir()) / "email-attachments"))
    STAGING_MAX_AGE_HOURS: float = float(os.getenv("STAGING_MAX_AGE_HOURS", 24))
    PROCESSED_LEDGER: str = os.getenv("PROCESSED_LEDGER", "")  # vacío = deshabilitado

    # Polling (0 = una sola pasada, para cron/systemd timer)
    POLL_INTERVAL: int = int(os.getenv("POLL_INTERVAL", 0))

    # Logging
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    LOG_DIR: str = os.getenv("LOG_DIR", _default_log_dir())

    # ───────── helpers ─────────
    def allowed_exts(self) -> set[str]:
        exts = set()
        for raw in (self.ALLOWED_FILE_TYPES or "").split(","):
            e = raw.strip().lower()
            if not e:
                continue
            exts.add(e if e.startswith(".") else f".{e}")
        return exts

    def credentials(self) -> MailboxCredentials:
        return MailboxCredentials(
            host=self.IMAP_HOST,
            port=self.IMAP_PORT,
            username=self.IMAP_USERNAME,
            password=self.IMAP_PASSWORD,
            mailbox=self.IMAP_FOLDER_INBOX,
        )

    def staging_dir_path(self) -> Path:
        return Path(self.STAGING_DIR).expanduser().resolve()

    def staging_max_age(self) -> timedelta:
        return timedelta(hours=self.STAGING_MAX_AGE_HOURS)

    def ledger_path(self) -> Path | None:
        if not self.PROCESSED_LEDGER.strip():
            return None
        return Path(self.PROCESSED_LEDGER).expanduser().resolve()

    def log_dir_path(self) -> Path:
        return Path(self.LOG_DIR).expanduser()

    def redacted(self) -> "Settings":
        """Copia apta para log (sin contraseña)."""
        return replace(self, IMAP_PASSWORD="***" if self.IMAP_PASSWORD else "")

    def validate(self) -> None:
        missing = [
            name for name in ("IMAP_HOST", "IMAP_USERNAME", "IMAP_PASSWORD")
            if not str(getattr(self, name) or "").strip()
        ]
        if missing:
            raise ConfigError(f"Faltan variables de configuración: {', '.join(missing)}")
        if self.IMAP_PORT <= 0:
            raise ConfigError(f"IMAP_PORT inválido: {self.IMAP_PORT}")
        if self.STAGING_MAX_AGE_HOURS <= 0:
            raise ConfigError(f"STAGING_MAX_AGE_HOURS debe ser > 0: {self.STAGING_MAX_AGE_HOURS}")
