# application/use_cases/fetch_attachments_usecase.py
from __future__ import annotations
import logging
import queue
import threading
from datetime import timedelta
from typing import Callable, Iterable, Iterator, Sequence

from domain.errors import FetchError, FlagUpdateError, ParseError, PurgeError, StorageError
from domain.models import RawMessage, RunReport
from infrastructure.email.imap_client import IMAPInbox, MAX_BATCH_SIZE
from infrastructure.email.mime_parser import MimeParser
from infrastructure.filesystem.ledger import ProcessedLedger
from infrastructure.filesystem.storage import AttachmentStore, validate_type

BATCH_SIZE = MAX_BATCH_SIZE

_END = object()  # fin de lote en el canal productor -> consumidor


def batched(uids: Sequence[int], size: int = BATCH_SIZE) -> Iterator[list[int]]:
    """Trozos contiguos de como mucho `size`, en el orden de la búsqueda."""
    if size <= 0:
        raise ValueError(f"Tamaño de lote inválido: {size}")
    for start in range(0, len(uids), size):
        yield list(uids[start:start + size])


class FetchAttachmentsUseCase:
    """
    purge -> connect/login/select -> UNSEEN -> por lote: FETCH -> parse -> guardar -> \\Seen.

    Errores de conexión/login/select/search se propagan (ejecución abortada).
    Un FETCH fallido descarta solo su lote, que no se marca como leído.
    """

    def __init__(
        self,
        *,
        session_factory: Callable[[], IMAPInbox],
        parser: MimeParser,
        store: AttachmentStore,
        allowed_exts: Iterable[str] = (),
        ledger: ProcessedLedger | None = None,
        max_age: timedelta = timedelta(hours=24),
        batch_size: int = BATCH_SIZE,
        logger: logging.Logger | None = None,
    ) -> None:
        if not 0 < batch_size <= MAX_BATCH_SIZE:
            raise ValueError(f"batch_size debe estar entre 1 y {MAX_BATCH_SIZE}")
        self.session_factory = session_factory
        self.parser = parser
        self.store = store
        self.allowed_exts = set(allowed_exts)
        self.ledger = ledger
        self.max_age = max_age
        self.batch_size = batch_size
        self.log = logger or logging.getLogger(__name__)

    def execute(self) -> RunReport:
        report = RunReport()
        # siempre antes de escribir nada: nunca borra adjuntos de esta ejecución
        self._purge()

        with self.session_factory() as inbox:
            uids = inbox.search_unseen()
            if not uids:
                self.log.info("Sin correos nuevos (IMAP).")
                return report

            total = (len(uids) + self.batch_size - 1) // self.batch_size
            self.log.info("Encontrados %d correos nuevos; procesando en %d lotes", len(uids), total)
            for index, batch in enumerate(batched(uids, self.batch_size), start=1):
                report.batches += 1
                first = (index - 1) * self.batch_size + 1
                self.log.debug(
                    "Lote %d/%d (correos %d-%d de %d)",
                    index, total, first, first + len(batch) - 1, len(uids),
                )
                try:
                    handled = self._process_batch(inbox, batch, report)
                except FetchError as exc:
                    report.failed_batches += 1
                    self.log.error("Lote %d/%d descartado (no se marca como leído): %s", index, total, exc)
                    continue
                self.log.debug("Lote %d/%d: %d correos procesados", index, total, handled)

                try:
                    inbox.mark_seen(batch)
                    self.log.debug("Marcados %d correos como leídos", len(batch))
                except FlagUpdateError as exc:
                    # se volverán a ver en la próxima ejecución
                    self.log.error("%s", exc)

        self.log.info(
            "Procesamiento de correo completo: %d correos, %d adjuntos guardados",
            report.messages_processed, len(report.attachments),
        )
        return report

    # ───────── internos ─────────
    def _purge(self) -> None:
        try:
            removed = self.store.purge_older_than(self.max_age)
            if removed:
                self.log.info("Eliminados %d adjuntos temporales antiguos", removed)
        except PurgeError as exc:
            self.log.warning("Limpieza de temporales fallida: %s", exc)

    def _process_batch(self, inbox: IMAPInbox, batch: list[int], report: RunReport) -> int:
        channel: queue.Queue = queue.Queue(maxsize=self.batch_size)
        failure: list[Exception] = []
        producer = threading.Thread(
            target=self._produce,
            args=(inbox, batch, channel, failure),
            name="imap-fetch",
            daemon=True,
        )
        producer.start()

        handled = 0
        while True:
            raw = channel.get()
            if raw is _END:
                break
            handled += 1
            report.messages_processed += 1
            self._process_message(raw, report)
        producer.join()

        if failure:
            raise failure[0]
        return handled

    @staticmethod
    def _produce(inbox: IMAPInbox, batch: list[int], channel: queue.Queue, failure: list[Exception]) -> None:
        try:
            for raw in inbox.fetch_batch(batch):
                channel.put(raw)
        except Exception as exc:  # se relanza en el hilo consumidor
            failure.append(exc)
        finally:
            channel.put(_END)

    def _process_message(self, raw: RawMessage, report: RunReport) -> None:
        digest = self.ledger.digest(raw.data) if self.ledger is not None else None
        if digest and self._already_processed(raw.uid, digest):
            report.duplicates_skipped += 1
            return

        try:
            parsed = self.parser.parse(raw)
        except ParseError as exc:
            self.log.error("Correo descartado: %s", exc)
            return
        self.log.debug("UID=%s de %s, asunto: %s", parsed.uid, parsed.from_addr, parsed.subject)

        complete = True
        for part in self.parser.iter_attachments(parsed):
            report.attachments_found += 1
            if not validate_type(part.filename, self.allowed_exts):
                report.attachments_skipped += 1
                self.log.info("Adjunto %s omitido: tipo no permitido", part.filename)
                continue
            try:
                report.attachments.append(self.store.persist(part, message_uid=raw.uid))
            except StorageError as exc:
                complete = False
                self.log.error("Fallo guardando adjunto de UID=%s: %s", raw.uid, exc)

        if digest and complete:
            try:
                self.ledger.add(digest)
            except StorageError as exc:
                self.log.error("%s", exc)

    def _already_processed(self, uid: int, digest: str) -> bool:
        try:
            if self.ledger.contains(digest):
                self.log.info("UID=%s ya procesado en una ejecución anterior; se omite", uid)
                return True
        except StorageError as exc:
            self.log.error("%s", exc)
        return False
