from __future__ import annotations

import os
import ssl
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from .config import FileTLS, InlineTLS, NoTLS
from .domain.errors import ConfigurationError
from .logging_conf import get_logger

__all__ = ["TLSFiles", "validate_key_pair", "materialize"]

logger = get_logger("agent.tls")


@dataclass(frozen=True)
class TLSFiles:
    """Key/cert paths in the form uvicorn loads them."""

    keyfile: str
    certfile: str


def validate_key_pair(keyfile: str | Path, certfile: str | Path) -> None:
    """Load the pair into a server context so a bad pair fails at startup."""
    ctx = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    try:
        ctx.load_cert_chain(certfile=str(certfile), keyfile=str(keyfile))
    except (ssl.SSLError, OSError) as e:
        raise ConfigurationError(f"invalid TLS key pair: {e}") from e


def _write_private(path: Path, content: str) -> None:
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write(content)


@contextmanager
def materialize(tls: NoTLS | FileTLS | InlineTLS) -> Iterator[TLSFiles | None]:
    """Yield validated key/cert paths for the server, or None for plain HTTP.

    Inline PEM strings are written to a private temporary directory that is
    removed when the context exits.
    """
    if isinstance(tls, FileTLS):
        validate_key_pair(tls.keyfile, tls.certfile)
        logger.info("tls.files", extra={"event": "tls_mode", "mode": "file"})
        yield TLSFiles(keyfile=str(tls.keyfile), certfile=str(tls.certfile))
        return

    if isinstance(tls, InlineTLS):
        with tempfile.TemporaryDirectory(prefix="koth-agent-tls-") as tmp:
            keyfile = Path(tmp) / "key.pem"
            certfile = Path(tmp) / "cert.pem"
            _write_private(keyfile, tls.key_pem)
            _write_private(certfile, tls.cert_pem)
            validate_key_pair(keyfile, certfile)
            logger.info("tls.inline", extra={"event": "tls_mode", "mode": "inline"})
            yield TLSFiles(keyfile=str(keyfile), certfile=str(certfile))
        return

    logger.info("tls.disabled", extra={"event": "tls_mode", "mode": "none"})
    yield None
