# domain/errors.py
# Taxonomía de errores: los "fatales" abortan la ejecución completa,
# los "recuperables" se registran y se sigue con la siguiente unidad
# (parte -> mensaje -> lote).
from __future__ import annotations


class MailPrinterError(Exception):
    """Base de todos los errores del proyecto."""


class ConfigError(MailPrinterError):
    pass


# ───────── fatales (abortan la ejecución) ─────────
class FatalMailboxError(MailPrinterError):
    """No se pudo alcanzar, autenticar, seleccionar o buscar en el buzón."""


class ImapConnectionError(FatalMailboxError):
    pass


class AuthError(FatalMailboxError):
    pass


class MailboxError(FatalMailboxError):
    pass


class SearchError(FatalMailboxError):
    pass


# ───────── recuperables ─────────
class RecoverableError(MailPrinterError):
    pass


class FetchError(RecoverableError):
    """Falla el FETCH del lote completo: se salta el lote sin marcarlo."""


class ParseError(RecoverableError):
    pass


class PartReadError(RecoverableError):
    pass


class StorageError(RecoverableError):
    pass


class FlagUpdateError(RecoverableError):
    pass


class PurgeError(RecoverableError):
    pass
