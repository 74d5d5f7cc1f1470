from __future__ import annotations

import hmac
import ipaddress
from collections.abc import Iterable

__all__ = [
    "IPNetwork",
    "TOKEN_SCHEME",
    "token_authorized",
    "parse_peer_ip",
    "origin_allowed",
]

IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address
IPNetwork = ipaddress.IPv4Network | ipaddress.IPv6Network

TOKEN_SCHEME = b"Token"


def _same(provided: bytes, expected: str) -> bool:
    return hmac.compare_digest(provided, expected.encode())


def token_authorized(expected: str, header: bytes | str | None) -> bool:
    """Check an Authorization header against the shared secret.

    Accepted forms are `Token <secret>` and a bare `<secret>`. The header is
    compared as raw bytes; a str header is taken as UTF-8. An empty
    `expected` disables the check entirely.
    """
    if not expected:
        return True
    if header is None:
        return False
    if isinstance(header, str):
        header = header.encode()

    if b" " in header:
        parts = header.split(b" ", 1)
        if len(parts) != 2 or parts[0] != TOKEN_SCHEME:
            return False
        return _same(parts[1], expected)
    return _same(header, expected)


def parse_peer_ip(host: str | None) -> IPAddress | None:
    """Parse the connection's peer host into an address, or None.

    IPv4-mapped IPv6 addresses are unwrapped so they match IPv4 ranges.
    """
    if not host:
        return None
    token = host.strip()
    if token.startswith("[") and token.endswith("]"):
        token = token[1:-1]
    try:
        ip = ipaddress.ip_address(token)
    except ValueError:
        return None
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped:
        return ip.ipv4_mapped
    return ip


def origin_allowed(host: str | None, networks: Iterable[IPNetwork]) -> bool:
    """True iff the peer host lies inside at least one allowed network."""
    ip = parse_peer_ip(host)
    if ip is None:
        return False
    # `in` is False across address families, so ::/0 never admits IPv4 peers.
    return any(ip in network for network in networks)
