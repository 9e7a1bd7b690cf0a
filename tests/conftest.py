"""Fixtures compartidas: constructores de EML y un buzón IMAP falso."""

from __future__ import annotations

from email.mime.application import MIMEApplication
from email.mime.image import MIMEImage
from email.mime.message import MIMEMessage
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from pathlib import Path

import pytest

from domain.errors import FetchError, FlagUpdateError, SearchError
from domain.models import MailboxCredentials, MailboxInfo, RawMessage
from infrastructure.filesystem.storage import AttachmentStore

PDF_BYTES = b"%PDF-1.4\n1 0 obj\n<< /Type /Catalog >>\nendobj\n%%EOF\n"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32
FIXED_NOW = 1_700_000_000.0


# ------------------------------------------------------------------
# EML
# ------------------------------------------------------------------


def build_plain_email(*, subject: str = "Hola", body: str = "Sin adjuntos") -> bytes:
    msg = MIMEText(body, "plain", "utf-8")
    msg["Subject"] = subject
    msg["From"] = "Cliente <cliente@example.com>"
    msg["To"] = "impresora@example.com"
    return msg.as_bytes()


def build_email_with_parts(parts: list, *, subject: str = "Factura") -> bytes:
    msg = MIMEMultipart("mixed")
    msg["Subject"] = subject
    msg["From"] = "Cliente <cliente@example.com>"
    msg["To"] = "impresora@example.com"
    msg.attach(MIMEText("Adjunto la factura.", "plain", "utf-8"))
    for part in parts:
        msg.attach(part)
    return msg.as_bytes()


def pdf_attachment(filename: str = "invoice.pdf", data: bytes = PDF_BYTES) -> MIMEApplication:
    part = MIMEApplication(data, _subtype="pdf")
    part.add_header("Content-Disposition", "attachment", filename=filename)
    return part


def nameless_attachment(data: bytes = PDF_BYTES) -> MIMEApplication:
    part = MIMEApplication(data, _subtype="pdf")
    part.add_header("Content-Disposition", "attachment")
    return part


def inline_image(data: bytes = PNG_BYTES) -> MIMEImage:
    part = MIMEImage(data, _subtype="png")
    part.add_header("Content-Disposition", "inline")
    part.add_header("Content-ID", "<logo@example.com>")
    return part


def forwarded_email(filename: str = "fwd.eml", *, subject: str = "Reenviado") -> MIMEMessage:
    inner = MIMEText("Mensaje original.", "plain", "utf-8")
    inner["Subject"] = subject
    inner["From"] = "Proveedor <proveedor@example.com>"
    part = MIMEMessage(inner)
    part.add_header("Content-Disposition", "attachment", filename=filename)
    return part


def named_part_without_disposition(name: str = "albaran.pdf", data: bytes = PDF_BYTES) -> MIMEApplication:
    part = MIMEApplication(data, _subtype="pdf")
    part.set_param("name", name)
    return part


# ------------------------------------------------------------------
# Buzón falso (misma interfaz que IMAPInbox)
# ------------------------------------------------------------------


class FakeInbox:
    def __init__(
        self,
        messages: dict[int, bytes],
        *,
        fail_fetch_for: set[int] | None = None,
        fail_mark_for: set[int] | None = None,
        search_error: bool = False,
    ) -> None:
        self.messages = messages
        self.fail_fetch_for = fail_fetch_for or set()
        self.fail_mark_for = fail_mark_for or set()
        self.search_error = search_error
        self.fetch_calls: list[list[int]] = []
        self.mark_calls: list[list[int]] = []
        self.enter_count = 0
        self.close_count = 0

    def __enter__(self) -> "FakeInbox":
        self.enter_count += 1
        self.info = MailboxInfo(name="INBOX", exists=len(self.messages))
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close_count += 1

    def search_unseen(self) -> list[int]:
        if self.search_error:
            raise SearchError("SEARCH rechazado")
        return list(self.messages)

    def fetch_batch(self, uids):
        self.fetch_calls.append(list(uids))
        if self.fail_fetch_for & set(uids):
            raise FetchError(f"conexión caída durante FETCH {list(uids)}")
        # orden inverso: el servidor no garantiza el orden pedido
        return [RawMessage(uid=u, data=self.messages[u]) for u in reversed(list(uids))]

    def mark_seen(self, uids) -> None:
        self.mark_calls.append(list(uids))
        if self.fail_mark_for & set(uids):
            raise FlagUpdateError(f"STORE rechazado {list(uids)}")


@pytest.fixture
def credentials() -> MailboxCredentials:
    return MailboxCredentials(
        host="imap.test.com",
        port=993,
        username="testuser",
        password="testpass",
        mailbox="INBOX",
    )


@pytest.fixture
def staging_dir(tmp_path: Path) -> Path:
    return tmp_path / "email-attachments"


@pytest.fixture
def store(staging_dir: Path) -> AttachmentStore:
    return AttachmentStore(staging_dir, clock=lambda: FIXED_NOW)
