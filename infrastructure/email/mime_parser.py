# infrastructure/email/mime_parser.py
from __future__ import annotations
import logging
from typing import Iterator
import pyzmail

from domain.errors import ParseError, PartReadError
from domain.models import MessagePart, ParsedMessage, PartKind, RawMessage


def _disposition(mailpart) -> str | None:
    if mailpart.disposition:
        return mailpart.disposition
    # pyzmail no rellena disposition en las partes message/* (p. ej. un .eml adjunto)
    part = getattr(mailpart, "part", None)
    return part.get_content_disposition() if part is not None else None


def classify(mailpart) -> PartKind:
    """Se decide una sola vez por parte: attachment > inline/cuerpo > otro."""
    disposition = _disposition(mailpart)
    if disposition == "attachment":
        return PartKind.ATTACHMENT
    if disposition == "inline" or mailpart.is_body:
        return PartKind.INLINE
    return PartKind.OTHER


class MimeParser:
    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.log = logger or logging.getLogger(__name__)

    def parse(self, raw: RawMessage) -> ParsedMessage:
        if not raw.data:
            raise ParseError(f"UID={raw.uid}: mensaje vacío")
        try:
            msg = pyzmail.PyzMessage.factory(raw.data)
            subject = msg.get_subject() or ""
            from_addrs = msg.get_addresses("from")
            mailparts = list(msg.mailparts)
        except Exception as exc:  # pyzmail/email lanzan de todo ante MIME roto
            raise ParseError(f"UID={raw.uid}: MIME ilegible: {exc}") from exc

        from_addr = from_addrs[0][1] if from_addrs else ""
        return ParsedMessage(uid=raw.uid, subject=subject, from_addr=from_addr, mailparts=mailparts)

    def read_part(self, mailpart) -> MessagePart:
        kind = classify(mailpart)
        try:
            filename = (mailpart.filename or "").strip()
        except (AttributeError, TypeError, UnicodeError):
            # nombre ilegible -> como si no tuviera
            filename = ""
        payload = mailpart.get_payload()
        if isinstance(payload, str):
            try:
                payload = payload.encode(mailpart.charset or "utf-8", errors="replace")
            except LookupError as exc:
                raise PartReadError(f"Charset desconocido {mailpart.charset!r}") from exc
        if not isinstance(payload, bytes):
            raise PartReadError(f"Parte {mailpart.type!r} sin contenido legible")
        return MessagePart(
            kind=kind,
            filename=filename,
            content_type=mailpart.type or "application/octet-stream",
            payload=payload,
        )

    def iter_parts(self, parsed: ParsedMessage) -> Iterator[MessagePart]:
        for index, mailpart in enumerate(parsed.mailparts):
            try:
                yield self.read_part(mailpart)
            except PartReadError as exc:
                # una parte rota no invalida el resto del mensaje
                self.log.error("UID=%s parte %d: %s", parsed.uid, index, exc)

    def iter_attachments(self, parsed: ParsedMessage) -> Iterator[MessagePart]:
        for part in self.iter_parts(parsed):
            if part.is_attachment:
                yield part
