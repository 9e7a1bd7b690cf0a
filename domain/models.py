# domain/models.py
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


@dataclass(frozen=True)
class MailboxCredentials:
    host: str
    username: str
    password: str = field(repr=False)
    mailbox: str = "INBOX"
    port: int = 993


@dataclass(frozen=True)
class MailboxInfo:
    name: str
    exists: int = 0
    uidvalidity: int | None = None
    flags: tuple[bytes, ...] = ()


@dataclass
class RawMessage:
    uid: int
    data: bytes


class PartKind(str, Enum):
    ATTACHMENT = "attachment"
    INLINE = "inline"
    OTHER = "other"


@dataclass
class MessagePart:
    kind: PartKind
    filename: str
    content_type: str
    payload: bytes

    @property
    def is_attachment(self) -> bool:
        # Adjunto "útil": disposición attachment y nombre no vacío
        return self.kind is PartKind.ATTACHMENT and bool(self.filename)


@dataclass
class ParsedMessage:
    uid: int
    subject: str
    from_addr: str
    mailparts: list = field(default_factory=list)  # pyzmail.parse.MailPart


@dataclass(frozen=True)
class PersistedAttachment:
    filename: str
    storage_path: Path
    message_uid: int


@dataclass
class RunReport:
    attachments: list[PersistedAttachment] = field(default_factory=list)
    messages_processed: int = 0
    attachments_found: int = 0
    attachments_skipped: int = 0
    duplicates_skipped: int = 0
    batches: int = 0
    failed_batches: int = 0


@dataclass
class PrintResult:
    attachment: PersistedAttachment
    returncode: int
    output: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


@dataclass
class RunSummary:
    report: RunReport
    results: list[PrintResult] = field(default_factory=list)

    @property
    def printed(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.ok)
