from __future__ import annotations

import argparse
import os
import sys

from . import __version__
from .config import (
    DEFAULT_HEALTH_CMD,
    DEFAULT_HOST,
    DEFAULT_ORIGIN,
    DEFAULT_OWNER_FILE,
    DEFAULT_PORT,
    AgentSettings,
    settings_from_args,
)
from .domain.errors import ConfigurationError
from .logging_conf import get_logger, setup_logging

logger = get_logger("agent.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="koth-agent",
        description="HTTP agent that scoring servers poll for box ownership and health.",
    )
    parser.add_argument("--host", default=os.getenv("KOTH_HOST", DEFAULT_HOST),
                        help="host address to listen on")
    parser.add_argument("--port", type=int, default=os.getenv("KOTH_PORT", DEFAULT_PORT),
                        help="port number to listen on")
    parser.add_argument("--file", default=os.getenv("KOTH_FILE", DEFAULT_OWNER_FILE),
                        help="text file holding the current owner (used without --owner-cmd)")
    parser.add_argument("--health-cmd", default=os.getenv("KOTH_HEALTH_CMD", DEFAULT_HEALTH_CMD),
                        help="command to run when asked for a healthcheck")
    parser.add_argument("--owner-cmd", default=os.getenv("KOTH_OWNER_CMD", ""),
                        help="command to run when asked for an owner")
    parser.add_argument("--origin", default=os.getenv("KOTH_ORIGIN", DEFAULT_ORIGIN),
                        help="CIDR ranges to allow connections from; IPv4 and IPv6 "
                             "networks must be specified separately")
    parser.add_argument("--keystring", default=os.getenv("KOTH_KEYSTRING", ""),
                        help="TLS key as a PEM string")
    parser.add_argument("--certstring", default=os.getenv("KOTH_CERTSTRING", ""),
                        help="TLS certificate as a PEM string")
    parser.add_argument("--keyfile", default=os.getenv("KOTH_KEYFILE", ""),
                        help="TLS key file (takes precedence over --keystring)")
    parser.add_argument("--certfile", default=os.getenv("KOTH_CERTFILE", ""),
                        help="TLS certificate file (takes precedence over --certstring)")
    parser.add_argument("--apikey", default=os.getenv("KOTH_APIKEY", ""),
                        help="API key clients must present; empty disables token auth")
    parser.add_argument("--cmd-timeout", type=float,
                        default=os.getenv("KOTH_CMD_TIMEOUT") or None,
                        help="kill commands running longer than this many seconds "
                             "(default: unbounded)")
    parser.add_argument("--log-level", default=os.getenv("LOG_LEVEL", "INFO"),
                        help="log level (DEBUG, INFO, WARNING, ...)")
    parser.add_argument("--version", action="version", version=__version__,
                        help="print current version and exit")
    return parser


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse CLI arguments for the agent."""
    return build_parser().parse_args(argv)


def serve(settings: AgentSettings) -> None:
    """Run the agent until interrupted. TLS problems abort before binding."""
    import uvicorn

    from .main import create_app
    from .tls import materialize

    app = create_app(settings)
    with materialize(settings.tls) as tls_files:
        scheme = "https" if tls_files else "http"
        logger.info(
            "agent.listening",
            extra={"event": "listening", "address": f"{scheme}://{settings.host}:{settings.port}"},
        )
        uvicorn.run(
            app,
            host=settings.host,
            port=settings.port,
            ssl_keyfile=tls_files.keyfile if tls_files else None,
            ssl_certfile=tls_files.certfile if tls_files else None,
            log_config=None,
            access_log=False,
        )


def main(argv: list[str] | None = None) -> None:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    setup_logging(args.log_level)
    try:
        settings = settings_from_args(args)
        serve(settings)
    except ConfigurationError as e:
        logger.error("agent.misconfigured", extra={"event": "configuration_error", "error": str(e)})
        raise SystemExit(1) from e


if __name__ == "__main__":
    main()
