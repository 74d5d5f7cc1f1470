#!/usr/bin/env python3
"""Poll one agent and report.

Steps:
- fetch /healthcheck and /status concurrently
- emit a compact JSON summary
- exit 0 only if both endpoints answered 200 with success=true
"""
from __future__ import annotations

import asyncio
import sys

import httpx

from koth_agent.logging_conf import get_logger, setup_logging
from koth_poller.cli import parse_args
from koth_poller.client import poll_agent
from koth_poller.types import PollError
from koth_poller.utils import summarize

logger = get_logger("poller")


async def run_poll(
    *, base_url: str, token: str | None = None, timeout_s: float = 10.0, verify: bool = True,
    transport: httpx.AsyncBaseTransport | None = None,
) -> int:
    try:
        health, status = await poll_agent(
            base_url, token=token, timeout_s=timeout_s, verify=verify, transport=transport
        )
    except PollError as e:
        logger.error("poller.failed", extra={"event": "poll_failed", "error": str(e)})
        return 1
    summary, exit_code = summarize(health, status)
    logger.info("poller.summary", extra=summary)
    return exit_code


def main(argv: list[str] | None = None) -> None:
    setup_logging()
    args = parse_args(sys.argv[1:] if argv is None else argv)
    code = asyncio.run(
        run_poll(
            base_url=args.base_url,
            token=args.token or None,
            timeout_s=args.timeout,
            verify=not args.insecure,
        )
    )
    raise SystemExit(code)


if __name__ == "__main__":
    main()
