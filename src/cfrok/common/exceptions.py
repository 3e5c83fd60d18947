"""Custom exceptions for cfrok."""


class CfrokError(Exception):
    """Base exception for all cfrok errors."""

    pass


class InvalidArgumentError(CfrokError, ValueError):
    """Raised when a session option is missing or invalid."""

    pass


class IoFailureError(CfrokError):
    """Raised when the tunnel config directory or file cannot be written."""

    pass


class DnsRouteFailedError(CfrokError):
    """Raised when cloudflared refuses to register the DNS route."""

    def __init__(self, message: str, exit_code: int | None = None, output: str = ""):
        super().__init__(message)
        self.exit_code = exit_code
        self.output = output


class DaemonSpawnFailedError(CfrokError):
    """Raised when the long-lived cloudflared process cannot be spawned."""

    pass


class ProcessError(CfrokError):
    """Raised when subprocess operations fail."""

    pass


class ProcessSpawnError(ProcessError):
    """Raised when a subprocess cannot be started at all."""

    pass


class BinaryNotFoundError(ProcessSpawnError):
    """Raised when the cloudflared binary is not found or not executable."""

    pass


class SessionStoppedError(CfrokError):
    """Raised by start() when stop() was requested before the tunnel came up."""

    pass
