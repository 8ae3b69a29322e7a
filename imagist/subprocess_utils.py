from __future__ import annotations

import locale
import logging
import shlex
import subprocess

from imagist.errors import BackendFailureError

LOGGER = logging.getLogger(__name__)


def decode_subprocess_output(data: bytes | None) -> str:
    if not data:
        return ""

    preferred = locale.getpreferredencoding(False) or "utf-8"
    encodings = ["utf-8", preferred, "latin-1"]
    seen: set[str] = set()
    for encoding in encodings:
        normalized = encoding.lower().strip()
        if not normalized or normalized in seen:
            continue
        seen.add(normalized)
        try:
            return data.decode(normalized)
        except UnicodeDecodeError:
            continue

    return data.decode("utf-8", errors="replace")


def command_str(argv: list[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)


def run_command(cmd: list[str], *, tool: str) -> bytes:
    """Run ``cmd`` and return its stdout; any failure raises BackendFailureError."""
    LOGGER.debug("run %s", command_str(cmd))
    try:
        result = subprocess.run(cmd, capture_output=True, check=False)
    except FileNotFoundError as exc:
        raise BackendFailureError(f"{tool} is not installed or not available in PATH", command=cmd) from exc
    if result.returncode != 0:
        stderr_text = decode_subprocess_output(result.stderr).strip()
        stdout_text = decode_subprocess_output(result.stdout).strip()
        raise BackendFailureError(
            f"{tool} failed with exit status {result.returncode} ({command_str(cmd)})",
            command=cmd,
            diagnostic=stderr_text or stdout_text,
        )
    return result.stdout or b""
