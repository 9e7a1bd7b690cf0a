# infrastructure/filesystem/storage.py
from __future__ import annotations
import logging
import os
import tempfile
import time
from datetime import timedelta
from pathlib import Path
from typing import Callable, Iterable

from domain.errors import PurgeError, StorageError
from domain.models import MessagePart, PersistedAttachment


def validate_type(filename: str, allowed_exts: Iterable[str]) -> bool:
    """Conjunto vacío = se permite todo. Compara la extensión con su punto, sin mayúsculas."""
    allowed = {e.strip().lower() for e in allowed_exts if e.strip()}
    if not allowed:
        return True
    return Path(filename).suffix.lower() in allowed


def _safe_name(filename: str) -> str:
    # nunca escribir fuera del staging: solo el último componente
    name = Path((filename or "").replace("\\", "/").replace("\x00", "")).name.strip()
    return "" if name in ("", ".", "..") else name


class AttachmentStore:
    def __init__(
        self,
        base: Path,
        *,
        clock: Callable[[], float] = time.time,
        logger: logging.Logger | None = None,
    ) -> None:
        self.base = base.resolve()
        self.clock = clock
        self.log = logger or logging.getLogger(__name__)

    def persist(self, part: MessagePart, message_uid: int = 0) -> PersistedAttachment:
        safe = _safe_name(part.filename)
        if not safe:
            raise StorageError(f"Nombre de adjunto no válido: {part.filename!r}")
        try:
            self.base.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.base, prefix=".", suffix=".part")
        except OSError as exc:
            raise StorageError(f"No se pudo preparar {self.base}: {exc}") from exc

        # se escribe en un .part oculto y luego se enlaza: nunca queda a medias un fichero visible
        tmp = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(part.payload)
            target = self._claim(tmp, safe)
        except OSError as exc:
            tmp.unlink(missing_ok=True)
            raise StorageError(f"No se pudo guardar {part.filename!r}: {exc}") from exc
        try:
            tmp.unlink()
        except OSError:
            # el adjunto ya es visible; el .part huérfano lo acabará borrando la purga
            self.log.warning("No se pudo borrar el temporal %s", tmp)

        self.log.debug("Adjunto guardado: %s", target)
        return PersistedAttachment(filename=part.filename, storage_path=target, message_uid=message_uid)

    def purge_older_than(self, max_age: timedelta) -> int:
        if not self.base.exists():
            return 0
        try:
            entries = list(self.base.iterdir())
        except OSError as exc:
            raise PurgeError(f"No se pudo leer {self.base}: {exc}") from exc

        cutoff = self.clock() - max_age.total_seconds()
        removed = 0
        for entry in entries:
            try:
                if not entry.is_file() or entry.stat().st_mtime >= cutoff:
                    continue
                entry.unlink()
                removed += 1
                self.log.debug("Eliminado temporal antiguo: %s", entry)
            except OSError:
                self.log.exception("No se pudo eliminar %s", entry)
        return removed

    def _claim(self, tmp: Path, safe: str) -> Path:
        # {unixSeconds}_{nombre}; os.link no pisa un nombre existente (ni de otra ejecución),
        # así que ante FileExistsError se avanza al siguiente segundo
        ts = int(self.clock())
        while True:
            target = self.base / f"{ts}_{safe}"
            try:
                os.link(tmp, target)
            except FileExistsError:
                ts += 1
                continue
            return target
