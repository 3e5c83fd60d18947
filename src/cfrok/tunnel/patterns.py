"""Text patterns for cloudflared output.

cloudflared offers no structured status, so session decisions rest on its
log wording. Every match lives here behind one named predicate.
"""

import re
from re import Pattern

READY_MARKER = "Registered tunnel connection"

_ALREADY_EXISTS = re.compile(r"already exists|already.*CNAME", re.IGNORECASE)

_NOISE_PATTERNS: tuple[Pattern[str], ...] = tuple(
    re.compile(p)
    for p in (
        r"ICMP proxy",
        r"ping_group_range",
        r"receive buffer size",
        r"Tunnel connection curve preferences",
        r"Generated Connector ID",
        r"Initial protocol",
        r"Starting metrics server",
        r"Autoupdate frequency",
        r"Settings:",
        r"Version \d",
        r"GOOS:",
    )
)

_ERROR = re.compile(r"(?i:error|fail)|\bERR\b")
_WARNING = re.compile(r"(?i:warn)|\bWRN\b")
_CONNECTION = re.compile(re.escape(READY_MARKER), re.IGNORECASE)
_TUNNEL_STARTING = re.compile(r"Starting tunnel", re.IGNORECASE)
_DNS_ROUTE_ADDED = re.compile(r"Added CNAME", re.IGNORECASE)


def is_route_already_exists(output: str) -> bool:
    """True if a failed ``route dns`` only complained the record exists."""
    return bool(_ALREADY_EXISTS.search(output))


def is_noise(line: str) -> bool:
    """True for startup chatter nobody needs to see."""
    return any(pattern.search(line) for pattern in _NOISE_PATTERNS)


def is_error(line: str) -> bool:
    return bool(_ERROR.search(line))


def is_warning(line: str) -> bool:
    return bool(_WARNING.search(line))


def is_connection_registered(line: str) -> bool:
    return bool(_CONNECTION.search(line))


def is_tunnel_starting(line: str) -> bool:
    return bool(_TUNNEL_STARTING.search(line))


def is_dns_route_added(line: str) -> bool:
    return bool(_DNS_ROUTE_ADDED.search(line))
