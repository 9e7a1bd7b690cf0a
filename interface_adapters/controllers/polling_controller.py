# interface_adapters/controllers/polling_controller.py
from __future__ import annotations
import logging
from config.settings import Settings
from application.services.print_runner import run_print
from application.use_cases.fetch_attachments_usecase import FetchAttachmentsUseCase
from domain.models import PersistedAttachment, PrintResult, RunSummary
from infrastructure.email.imap_client import IMAPInbox
from infrastructure.email.mime_parser import MimeParser
from infrastructure.filesystem.ledger import ProcessedLedger
from infrastructure.filesystem.storage import AttachmentStore


class PollingController:
    def __init__(self, settings: Settings, logger: logging.Logger | None = None) -> None:
        self.settings = settings
        self.log = logger or logging.getLogger(__name__)
        self.store = AttachmentStore(settings.staging_dir_path(), logger=self.log.getChild("storage"))

        ledger_path = settings.ledger_path()
        self.ledger = ProcessedLedger(ledger_path, logger=self.log.getChild("ledger")) if ledger_path else None

        self.uc = FetchAttachmentsUseCase(
            session_factory=self._open_inbox,
            parser=MimeParser(logger=self.log.getChild("mime")),
            store=self.store,
            allowed_exts=settings.allowed_exts(),
            ledger=self.ledger,
            max_age=settings.staging_max_age(),
            logger=self.log.getChild("pipeline"),
        )

    def _open_inbox(self) -> IMAPInbox:
        st = self.settings
        return IMAPInbox(
            st.credentials(),
            ssl=st.IMAP_SSL,
            timeout=st.IMAP_TIMEOUT,
            logger=self.log.getChild("imap"),
        )

    # ───────────────────────── impresión ─────────────────────────
    def _print(self, att: PersistedAttachment) -> PrintResult:
        st = self.settings
        code, output = run_print(att.storage_path, st.PRINTER_NAME, cmd=st.PRINT_CMD, timeout=st.PRINT_TIMEOUT)
        result = PrintResult(attachment=att, returncode=code, output=output.strip())
        if result.ok:
            self.log.info("Impreso: %s", att.storage_path)
        else:
            self.log.error("Fallo imprimiendo %s (code=%s): %s", att.filename, code, result.output)
        return result

    # ───────────────────────── ejecución ─────────────────────────
    def run_once(self) -> RunSummary:
        """Los errores fatales de buzón (FatalMailboxError) se propagan al llamador."""
        report = self.uc.execute()
        if report.attachments:
            self.log.info("Descargados %d adjuntos", len(report.attachments))

        summary = RunSummary(report=report)
        for att in report.attachments:
            self.log.debug("Procesando adjunto: %s", att.filename)
            summary.results.append(self._print(att))

        self.log.info(
            "Ejecución completada con %d impresiones correctas y %d fallos",
            summary.printed, summary.failed,
        )
        return summary
