# infrastructure/filesystem/ledger.py
# Registro local de mensajes ya procesados (sha256 del RFC822), independiente
# del flag \Seen del servidor: si el STORE falla, no se vuelve a imprimir.
from __future__ import annotations
import hashlib
import logging
from pathlib import Path

from domain.errors import StorageError


class ProcessedLedger:
    def __init__(self, path: Path, logger: logging.Logger | None = None) -> None:
        self.path = path
        self.log = logger or logging.getLogger(__name__)
        self._digests: set[str] | None = None

    @staticmethod
    def digest(data: bytes) -> str:
        return hashlib.sha256(data).hexdigest()

    def contains(self, digest: str) -> bool:
        return digest in self._load()

    def add(self, digest: str) -> None:
        digests = self._load()
        if digest in digests:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="ascii") as fh:
                fh.write(digest + "\n")
        except OSError as exc:
            raise StorageError(f"No se pudo escribir el ledger {self.path}: {exc}") from exc
        digests.add(digest)

    def _load(self) -> set[str]:
        if self._digests is None:
            try:
                lines = self.path.read_text(encoding="ascii").splitlines() if self.path.exists() else []
            except OSError as exc:
                raise StorageError(f"No se pudo leer el ledger {self.path}: {exc}") from exc
            self._digests = {line.strip() for line in lines if line.strip()}
            self.log.debug("Ledger %s: %d mensajes registrados", self.path, len(self._digests))
        return self._digests
