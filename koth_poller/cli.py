from __future__ import annotations

import argparse
import os


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse CLI arguments for the poller."""
    parser = argparse.ArgumentParser(prog="koth-poll", description="Poll a King of the Hill agent once")
    parser.add_argument("--base-url", default=os.getenv("KOTH_BASE_URL", "http://127.0.0.1:31337"))
    parser.add_argument("--token", default=os.getenv("KOTH_APIKEY", ""))
    parser.add_argument("--timeout", type=float, default=10.0)
    parser.add_argument(
        "--insecure",
        action="store_true",
        help="skip TLS certificate verification (self-signed agents)",
    )
    return parser.parse_args(argv)
