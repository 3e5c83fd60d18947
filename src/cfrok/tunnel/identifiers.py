"""Subdomain label generation."""

import random
import re

from ..common.exceptions import InvalidArgumentError

_INVALID_LABEL_CHARS = re.compile(r"[^a-z0-9-]")
_EDGE_HYPHENS = re.compile(r"^-+|-+$")


def sanitize_prefix(prefix: str) -> str:
    """Turn an arbitrary string into a DNS-label-safe prefix.

    Lower-cases, replaces anything outside ``[a-z0-9-]`` with ``-`` and
    strips leading and trailing hyphens. Idempotent.

    >>> sanitize_prefix("API Test!")
    'api-test'
    """
    label = _INVALID_LABEL_CHARS.sub("-", prefix.lower())
    return _EDGE_HYPHENS.sub("", label)


def random_digits(length: int, rng: random.Random | None = None) -> str:
    """Draw one integer uniformly from ``[0, 10**length)``, zero-padded.

    Not suitable for anything security related.

    Args:
        length: Number of digits; 0 gives an empty string
        rng: Random source, the module-level one when omitted
    """
    if length < 0:
        raise InvalidArgumentError("Digit count cannot be negative")
    if length == 0:
        return ""

    source = rng if rng is not None else random
    return str(source.randrange(10**length)).zfill(length)


def build_subdomain(
    prefix: str,
    domain: str,
    *,
    static: bool = False,
    digits: int = 4,
    rng: random.Random | None = None,
) -> str:
    """Build the public hostname for a session.

    Static mode gives ``<prefix>.<domain>``; otherwise a random suffix is
    appended: ``<prefix>-<digits>.<domain>``.
    """
    label = sanitize_prefix(prefix)
    if static:
        return f"{label}.{domain}"
    return f"{label}-{random_digits(digits, rng)}.{domain}"
