"""Startup configuration.

Everything the agent needs is resolved once, before the server starts, into a
frozen `AgentSettings` that the application carries on `app.state`. Nothing in
request handling mutates it.
"""
from __future__ import annotations

import argparse
import ipaddress
from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .domain.auth import IPNetwork
from .domain.errors import ConfigurationError
from .logging_conf import get_logger

__all__ = [
    "DEFAULT_HOST",
    "DEFAULT_PORT",
    "DEFAULT_OWNER_FILE",
    "DEFAULT_HEALTH_CMD",
    "DEFAULT_ORIGIN",
    "NoTLS",
    "FileTLS",
    "InlineTLS",
    "TLSMaterial",
    "AgentSettings",
    "parse_origins",
    "resolve_tls",
    "settings_from_args",
]

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 31337
DEFAULT_OWNER_FILE = "owner.txt"
DEFAULT_HEALTH_CMD = "true"
DEFAULT_ORIGIN = "0.0.0.0/0,::/0"

logger = get_logger("agent.config")


# ------------------------
# TLS choice
# ------------------------
class NoTLS(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["none"] = "none"


class FileTLS(BaseModel):
    """Key and certificate read from PEM files on disk."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["file"] = "file"
    keyfile: Path
    certfile: Path


class InlineTLS(BaseModel):
    """Key and certificate handed over as PEM strings."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["inline"] = "inline"
    key_pem: str = Field(..., repr=False)
    cert_pem: str = Field(..., repr=False)


TLSMaterial = Annotated[NoTLS | FileTLS | InlineTLS, Field(discriminator="kind")]


# ------------------------
# Settings
# ------------------------
class AgentSettings(BaseModel):
    """Immutable process-wide configuration."""

    model_config = ConfigDict(frozen=True)

    host: str = DEFAULT_HOST
    port: int = Field(DEFAULT_PORT, ge=0, le=65535)
    owner_file: Path = Path(DEFAULT_OWNER_FILE)
    health_cmd: str = DEFAULT_HEALTH_CMD
    owner_cmd: str = ""  # empty -> owner comes from owner_file
    origins: tuple[IPNetwork, ...] = ()
    token: str = Field("", repr=False)  # empty -> token auth disabled
    tls: TLSMaterial = NoTLS()
    command_timeout: float | None = Field(None, gt=0)  # None -> unbounded

    @property
    def auth_enabled(self) -> bool:
        return bool(self.token)


def parse_origins(raw: str) -> tuple[IPNetwork, ...]:
    """Parse a comma-separated list of CIDR ranges.

    Host bits are allowed and masked off (`10.1.2.3/8` means `10.0.0.0/8`).
    Blank entries are skipped; an invalid entry is a startup error.
    """
    networks: list[IPNetwork] = []
    for item in raw.split(","):
        item = item.strip()
        if not item:
            continue
        try:
            networks.append(ipaddress.ip_network(item, strict=False))
        except ValueError as e:
            raise ConfigurationError(f"invalid CIDR range in origin list: {item!r}") from e
    return tuple(networks)


def resolve_tls(
    *, keyfile: str = "", certfile: str = "", keystring: str = "", certstring: str = ""
) -> NoTLS | FileTLS | InlineTLS:
    """Pick the TLS mode. Files win over inline PEM strings; half pairs are ignored."""
    if keyfile and certfile:
        return FileTLS(keyfile=Path(keyfile), certfile=Path(certfile))
    if keystring and certstring:
        return InlineTLS(key_pem=keystring, cert_pem=certstring)

    if keyfile or certfile:
        logger.warning("tls.partial", extra={"event": "tls_partial", "source": "file"})
    if keystring or certstring:
        logger.warning("tls.partial", extra={"event": "tls_partial", "source": "inline"})
    return NoTLS()


def settings_from_args(args: argparse.Namespace) -> AgentSettings:
    """Build settings from the parsed command line (see `koth_agent.cli`).

    Raises:
        ConfigurationError: on an invalid CIDR range or out-of-range value.
    """
    origins = parse_origins(args.origin)
    tls = resolve_tls(
        keyfile=args.keyfile,
        certfile=args.certfile,
        keystring=args.keystring,
        certstring=args.certstring,
    )
    try:
        return AgentSettings(
            host=args.host,
            port=args.port,
            owner_file=Path(args.file),
            health_cmd=args.health_cmd,
            owner_cmd=args.owner_cmd,
            origins=origins,
            token=args.apikey,
            tls=tls,
            command_timeout=args.cmd_timeout,
        )
    except ValidationError as e:
        raise ConfigurationError(f"invalid settings: {e}") from e
