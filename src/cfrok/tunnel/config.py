"""Ingress configuration builder for cloudflared."""

from pathlib import Path

from ..common.exceptions import IoFailureError
from ..common.logging import get_logger
from ..common.utils import ensure_directory
from .identifiers import sanitize_prefix
from .models import Protocol

logger = get_logger(__name__)

LOCAL_HOST = "127.0.0.1"
CATCH_ALL_SERVICE = "http_status:404"


class IngressConfigBuilder:
    """Builder for cloudflared tunnel configuration documents."""

    def __init__(self) -> None:
        """Initialize IngressConfigBuilder with empty state."""
        self._tunnel_id: str | None = None
        self._credentials_file: str | None = None
        self._rules: list[tuple[str, str]] = []

    def set_tunnel(self, tunnel_id: str, credentials_file: str) -> "IngressConfigBuilder":
        """Set the named tunnel and its credentials file.

        Args:
            tunnel_id: Named tunnel identifier
            credentials_file: Path to the tunnel credentials JSON

        Returns:
            Self for method chaining

        Raises:
            ValueError: If the tunnel identifier is empty
        """
        if not tunnel_id or not tunnel_id.strip():
            raise ValueError("Tunnel ID cannot be empty")

        self._tunnel_id = tunnel_id.strip()
        self._credentials_file = credentials_file
        return self

    def add_ingress(
        self, hostname: str, port: int, protocol: Protocol = Protocol.HTTP
    ) -> "IngressConfigBuilder":
        """Route a public hostname to a local port.

        Args:
            hostname: Public hostname
            port: Local port
            protocol: Scheme of the local service

        Returns:
            Self for method chaining
        """
        service = f"{Protocol(protocol).value}://{LOCAL_HOST}:{port}"
        self._rules.append((hostname, service))
        logger.debug("Added ingress rule", hostname=hostname, service=service)
        return self

    def build(self) -> str:
        """Render the configuration document.

        The catch-all 404 rule is always appended last.

        Raises:
            ValueError: If the tunnel is not set or no rule was added
        """
        if self._tunnel_id is None:
            raise ValueError("Tunnel not set. Call set_tunnel() first.")
        if not self._rules:
            raise ValueError("No ingress rules. Call add_ingress() first.")

        lines = [
            f"tunnel: {self._tunnel_id}",
            f"credentials-file: {self._credentials_file}",
            "",
            "ingress:",
        ]
        for hostname, service in self._rules:
            lines.append(f"  - hostname: {hostname}")
            lines.append(f"    service: {service}")
        lines.append(f"  - service: {CATCH_ALL_SERVICE}")
        return "\n".join(lines) + "\n"


def render_config(
    tunnel_id: str,
    credentials_file: str,
    subdomain: str,
    port: int,
    protocol: Protocol = Protocol.HTTP,
) -> str:
    """Render a single-hostname ingress document."""
    return (
        IngressConfigBuilder()
        .set_tunnel(tunnel_id, credentials_file)
        .add_ingress(subdomain, port, protocol)
        .build()
    )


def config_file_name(prefix: str, port: int) -> str:
    """File name for a session's config, keyed by sanitized prefix and port."""
    return f"config_{sanitize_prefix(prefix)}_{port}.yml"


def materialize(dir_path: str | Path, file_name: str, content: str) -> Path:
    """Write a config document, replacing any previous file.

    Args:
        dir_path: Target directory, created with parents if missing
        file_name: Name of the file inside dir_path
        content: Document to write

    Returns:
        Path of the written file

    Raises:
        IoFailureError: If the directory or the file cannot be written
    """
    try:
        directory = ensure_directory(dir_path)
        path = directory / file_name
        path.write_text(content, encoding="utf-8", newline="\n")
    except OSError as e:
        logger.error("Failed to write config", dir=str(dir_path), error=str(e))
        raise IoFailureError(f"Cannot write config to {dir_path}: {e}") from e

    logger.info("Configuration file written", path=str(path))
    return path
