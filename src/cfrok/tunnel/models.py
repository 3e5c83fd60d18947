"""Session models for cfrok.

This module defines the session configuration, its lifecycle states and the
summary document produced once a tunnel is running.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..common.utils import validate_non_empty_string, validate_port

DEFAULT_DOMAIN = "dreamteamit.xyz"
DEFAULT_TUNNEL_ID = "my-tunnel"
DEFAULT_CONFIG_DIR = "~/.cloudflared"
DEFAULT_CREDENTIALS_FILE = (
    "~/.cloudflared/c656547d-1502-4922-995f-3bac3bc58b07.json"
)
DEFAULT_CLOUDFLARED_BIN = "cloudflared"
DEFAULT_DNS_WAIT_SECONDS = 2.0
DEFAULT_RANDOM_DIGITS = 4
MAX_RANDOM_DIGITS = 12


class Protocol(str, Enum):
    """Scheme of the local service behind the tunnel."""

    HTTP = "http"
    TCP = "tcp"


class SessionState(str, Enum):
    """Tunnel session lifecycle states."""

    INITIALIZING = "initializing"
    CONFIGURING_DNS = "configuring_dns"
    AWAITING_PROPAGATION = "awaiting_propagation"
    LAUNCHING_DAEMON = "launching_daemon"
    AWAITING_READINESS = "awaiting_readiness"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


class SessionConfig(BaseModel):
    """Immutable options for one tunnel session."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True, extra="forbid")

    port: int = Field(description="Local port to expose")
    subdomain_prefix: str = Field(description="Subdomain prefix before sanitizing")
    domain: str = Field(default=DEFAULT_DOMAIN, min_length=1, description="Base domain")
    tunnel_id: str = Field(
        default=DEFAULT_TUNNEL_ID, min_length=1, description="Named tunnel identifier"
    )
    credentials_file: str = Field(
        default=DEFAULT_CREDENTIALS_FILE, min_length=1, description="Tunnel credentials"
    )
    config_dir: str = Field(
        default=DEFAULT_CONFIG_DIR, min_length=1, description="Config file directory"
    )
    cloudflared_bin: str = Field(
        default=DEFAULT_CLOUDFLARED_BIN, min_length=1, description="cloudflared binary"
    )
    dns_wait_seconds: float = Field(
        default=DEFAULT_DNS_WAIT_SECONDS, description="Pause after routing DNS"
    )
    protocol: Protocol = Field(default=Protocol.HTTP)
    static_subdomain: bool = Field(
        default=False, description="Skip the random subdomain suffix"
    )
    random_digits: int = Field(
        default=DEFAULT_RANDOM_DIGITS, ge=0, le=MAX_RANDOM_DIGITS
    )
    shutdown_timeout: float = Field(
        default=5.0, gt=0, description="Seconds to wait for a graceful stop"
    )

    @field_validator("port", mode="before")
    @classmethod
    def validate_local_port(cls, v: object) -> int:
        """Accept only finite integral ports in range."""
        return validate_port(v, "Port")  # type: ignore[arg-type]

    @field_validator("subdomain_prefix")
    @classmethod
    def validate_prefix(cls, v: str) -> str:
        """Prefix must not be blank."""
        return validate_non_empty_string(v, "subdomain_prefix")


class TunnelSummary(BaseModel):
    """Machine-readable description of a running tunnel."""

    model_config = ConfigDict(frozen=True)

    url: str
    subdomain: str
    config_file: str = Field(serialization_alias="configFile")
    pid: int | None = None
