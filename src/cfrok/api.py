"""High-level API for cfrok.

This module provides simple, user-friendly functions for exposing a local
port through a cloudflared named tunnel.
"""

import random
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from pydantic import ValidationError

from .common.exceptions import InvalidArgumentError
from .common.logging import get_logger
from .tunnel.models import SessionConfig
from .tunnel.reporter import SessionReporter
from .tunnel.session import StartedTunnel, TunnelSession

logger = get_logger(__name__)


def build_config(**options: Any) -> SessionConfig:
    """Build a SessionConfig from keyword options.

    Raises:
        InvalidArgumentError: If any option fails validation
    """
    try:
        return SessionConfig(**options)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'options'}: {error['msg']}"
            for error in e.errors()
        )
        raise InvalidArgumentError(f"Invalid tunnel options: {problems}") from e


def start_tunnel(
    config: SessionConfig | None = None,
    *,
    reporter: SessionReporter | None = None,
    rng: random.Random | None = None,
    **options: Any,
) -> StartedTunnel:
    """Expose a local port and return once the tunnel is running.

    Pass either a ready SessionConfig or its fields as keyword options.

    Args:
        config: Session options
        reporter: Presentation hooks for phases and daemon logs
        rng: Random source for the subdomain suffix
        **options: SessionConfig fields when ``config`` is omitted

    Returns:
        StartedTunnel: Handle with the public URL and a ``stop()`` method

    Example:
        >>> tunnel = start_tunnel(port=3000, subdomain_prefix="api")
        >>> print(f"Your app is live at: {tunnel.url}")
        https://api-0421.dreamteamit.xyz
        >>> tunnel.stop()
    """
    if config is None:
        config = build_config(**options)
    elif options:
        raise TypeError("Pass either a SessionConfig or keyword options, not both")

    started = TunnelSession(config, reporter=reporter, rng=rng).start()
    logger.info("Tunnel created", url=started.url, local_port=config.port)
    return started


@contextmanager
def managed_tunnel(
    config: SessionConfig | None = None,
    *,
    reporter: SessionReporter | None = None,
    rng: random.Random | None = None,
    **options: Any,
) -> Iterator[StartedTunnel]:
    """Context manager that starts a tunnel and always stops it.

    Example:
        >>> with managed_tunnel(port=3000, subdomain_prefix="api") as tunnel:
        ...     print(tunnel.url)
    """
    started = start_tunnel(config, reporter=reporter, rng=rng, **options)
    try:
        yield started
    finally:
        started.stop()
