# infrastructure/email/imap_client.py
from __future__ import annotations
import logging
from typing import Sequence
from imapclient import IMAPClient, SEEN
from imapclient.exceptions import IMAPClientError, LoginError

from domain.errors import (
    AuthError,
    FetchError,
    FlagUpdateError,
    ImapConnectionError,
    MailboxError,
    SearchError,
)
from domain.models import MailboxCredentials, MailboxInfo, RawMessage


MAX_BATCH_SIZE = 10


class IMAPInbox:
    """
    Sesión IMAP de una ejecución: connect -> login -> select al entrar,
    LOGOUT (una sola vez) al salir, también si algo falla por el camino.

    Uso:
        with IMAPInbox(creds) as inbox:
            uids = inbox.search_unseen()
    """

    def __init__(
        self,
        credentials: MailboxCredentials,
        *,
        ssl: bool = True,
        timeout: float | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.credentials = credentials
        self.ssl = ssl
        self.timeout = timeout or None
        self.log = logger or logging.getLogger(__name__)
        self.client: IMAPClient | None = None
        self.info: MailboxInfo | None = None

    def __enter__(self) -> "IMAPInbox":
        self.connect()
        try:
            self.login()
            self.info = self.select_folder(self.credentials.mailbox)
        except BaseException:
            self.close()
            raise
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ───────── ciclo de vida ─────────
    def connect(self) -> None:
        creds = self.credentials
        self.log.info("Conectando a IMAP %s:%s", creds.host, creds.port)
        try:
            self.client = IMAPClient(creds.host, port=creds.port, ssl=self.ssl, timeout=self.timeout)
        except (OSError, IMAPClientError) as exc:
            raise ImapConnectionError(f"Conexión IMAP fallida ({creds.host}:{creds.port}): {exc}") from exc

    def login(self) -> None:
        client = self._require_client()
        try:
            client.login(self.credentials.username, self.credentials.password)
        except (LoginError, IMAPClientError, OSError) as exc:
            raise AuthError(f"Login IMAP fallido para {self.credentials.username}: {exc}") from exc

    def close(self) -> None:
        if self.client is None:
            return
        client, self.client = self.client, None
        try:
            client.logout()
            self.log.debug("Sesión IMAP cerrada")
        except (IMAPClientError, OSError):
            self.log.exception("Error cerrando IMAP")

    # ───────── operaciones ─────────
    def select_folder(self, folder: str) -> MailboxInfo:
        client = self._require_client()
        try:
            resp = client.select_folder(folder, readonly=False)
        except (IMAPClientError, OSError) as exc:
            raise MailboxError(f"No se pudo seleccionar la carpeta {folder!r}: {exc}") from exc
        return MailboxInfo(
            name=folder,
            exists=int(resp.get(b"EXISTS", 0) or 0),
            uidvalidity=resp.get(b"UIDVALIDITY"),
            flags=tuple(resp.get(b"FLAGS", ()) or ()),
        )

    def search_unseen(self) -> list[int]:
        client = self._require_client()
        try:
            uids = client.search(["UNSEEN"])
        except (IMAPClientError, OSError) as exc:
            raise SearchError(f"Búsqueda UNSEEN fallida: {exc}") from exc
        # orden del servidor
        return list(uids)

    def fetch_batch(self, uids: Sequence[int]) -> list[RawMessage]:
        if len(uids) > MAX_BATCH_SIZE:
            raise ValueError(f"Lote de {len(uids)} mensajes; máximo {MAX_BATCH_SIZE}")
        if not uids:
            return []
        client = self._require_client()
        try:
            resp = client.fetch(list(uids), ["RFC822"])
        except (IMAPClientError, OSError) as exc:
            raise FetchError(f"FETCH fallido para {list(uids)}: {exc}") from exc

        messages: list[RawMessage] = []
        for uid, data in resp.items():
            raw = data.get(b"RFC822")
            if raw is None:
                self.log.warning("UID=%s sin cuerpo RFC822 en la respuesta", uid)
                continue
            messages.append(RawMessage(uid=uid, data=raw))
        return messages

    def mark_seen(self, uids: Sequence[int]) -> None:
        if not uids:
            return
        client = self._require_client()
        try:
            client.add_flags(list(uids), [SEEN])
        except (IMAPClientError, OSError) as exc:
            raise FlagUpdateError(f"No se pudo marcar como leídos {list(uids)}: {exc}") from exc

    def _require_client(self) -> IMAPClient:
        if self.client is None:
            raise ImapConnectionError("Sesión IMAP no conectada")
        return self.client
