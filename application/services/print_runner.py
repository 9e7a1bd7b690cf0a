# application/services/print_runner.py

from __future__ import annotations
import subprocess
from pathlib import Path


def build_print_cmd(path: Path, printer_name: str, cmd: str = "lp") -> list[str]:
    parts = [cmd]
    if printer_name:
        parts += ["-d", printer_name]  # sin -d: destino por defecto de CUPS
    parts.append(str(path))
    return parts


def run_print(path: Path, printer_name: str, cmd: str = "lp", timeout: int = 0) -> tuple[int, str]:
    """Envía un fichero al spooler. Devuelve (returncode, salida stdout+stderr)."""
    try:
        proc = subprocess.Popen(
            build_print_cmd(path, printer_name, cmd),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
        )
    except FileNotFoundError as exc:
        return 127, f"Comando de impresión no encontrado: {exc}"
    try:
        out, _ = proc.communicate(timeout=timeout if timeout and timeout > 0 else None)
    except subprocess.TimeoutExpired:
        proc.kill()
        out, _ = proc.communicate()
        return 124, (out.decode("utf-8", "replace") or "PRINT TIMEOUT")
    return proc.returncode, out.decode("utf-8", errors="replace")
