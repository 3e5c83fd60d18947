"""Command line interface for cfrok."""

import argparse
import signal
import threading
from collections.abc import Sequence
from types import FrameType

from . import __version__
from .api import start_tunnel
from .common.exceptions import CfrokError
from .common.logging import LOG_LEVELS, get_logger, setup_logging
from .display.console import ConsoleReporter
from .tunnel.models import (
    DEFAULT_CLOUDFLARED_BIN,
    DEFAULT_DNS_WAIT_SECONDS,
    DEFAULT_DOMAIN,
    DEFAULT_RANDOM_DIGITS,
    DEFAULT_TUNNEL_ID,
    Protocol,
)
from .tunnel.session import StartedTunnel

logger = get_logger(__name__)

POLL_INTERVAL = 0.5

USAGE = """\
cfrok http <port> --prefix <name> [options]
       cfrok tcp <port> <name> [options]
       cfrok <port> [<name>] [options]"""

EPILOG = """\
examples:
  cfrok http 3000 --prefix api                 # api-1234.dreamteamit.xyz
  cfrok 3000 api --static                      # api.dreamteamit.xyz
  cfrok 5173 -p ui --domain dreamteamit.xyz    # ui-5678.dreamteamit.xyz
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cfrok",
        usage=USAGE,
        description="Expose a local port through a cloudflared named tunnel.",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "targets",
        nargs="*",
        metavar="[http|tcp] <port> [<name>]",
        help="Optional protocol, the local port and optionally the prefix",
    )
    parser.add_argument("-p", "--prefix", help="Subdomain prefix (required)")
    parser.add_argument(
        "-d",
        "--domain",
        default=DEFAULT_DOMAIN,
        help=f"Base domain (default: {DEFAULT_DOMAIN})",
    )
    parser.add_argument(
        "--tunnel",
        default=DEFAULT_TUNNEL_ID,
        help=f"Named tunnel ID (default: {DEFAULT_TUNNEL_ID})",
    )
    parser.add_argument("--cred", help="Credentials file path (~/.cloudflared/xxx.json)")
    parser.add_argument(
        "--config-dir",
        "--configDir",
        dest="config_dir",
        help="Config directory (default: ~/.cloudflared)",
    )
    parser.add_argument(
        "--bin",
        default=DEFAULT_CLOUDFLARED_BIN,
        help=f"cloudflared binary (default: {DEFAULT_CLOUDFLARED_BIN})",
    )
    parser.add_argument(
        "--dns-wait",
        type=float,
        default=DEFAULT_DNS_WAIT_SECONDS,
        help="Seconds to wait after DNS route (default: 2)",
    )
    parser.add_argument(
        "--static",
        action="store_true",
        help="Use static subdomain without random suffix",
    )
    parser.add_argument(
        "--digits",
        type=int,
        default=DEFAULT_RANDOM_DIGITS,
        help=f"Random suffix length (default: {DEFAULT_RANDOM_DIGITS})",
    )
    parser.add_argument(
        "--json", action="store_true", help="Print machine-readable JSON output"
    )
    parser.add_argument(
        "--quiet", action="store_true", help="Suppress cloudflared logs (still runs)"
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=LOG_LEVELS,
        type=str.upper,
        help="Diagnostic log level on stderr (default: WARNING)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def split_targets(targets: Sequence[str]) -> tuple[Protocol, str | None, str | None]:
    """Split positionals into protocol, port and prefix.

    Accepts ``[http|tcp] <port> [<prefix>]``.
    """
    protocol = Protocol.HTTP
    rest = list(targets)
    if len(rest) >= 2 and rest[0] in (Protocol.HTTP.value, Protocol.TCP.value):
        protocol = Protocol(rest.pop(0))

    port = rest[0] if rest else None
    prefix = rest[1] if len(rest) >= 2 else None
    return protocol, port, prefix


def main(argv: Sequence[str] | None = None) -> int:
    """Run the CLI; returns the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(level=args.log_level)

    reporter = ConsoleReporter(quiet=args.quiet, json=args.json)

    protocol, port_text, positional_prefix = split_targets(args.targets)
    if port_text is None:
        parser.print_help()
        return 1

    try:
        port = int(port_text)
    except ValueError:
        reporter.error("Invalid port")
        return 1

    prefix = args.prefix or positional_prefix
    if not prefix:
        reporter.error("Missing required prefix. Pass --prefix or as positional argument.")
        parser.print_help()
        return 1

    options: dict[str, object] = {
        "port": port,
        "subdomain_prefix": prefix,
        "domain": args.domain,
        "tunnel_id": args.tunnel,
        "cloudflared_bin": args.bin,
        "dns_wait_seconds": args.dns_wait,
        "protocol": protocol,
        "static_subdomain": args.static,
        "random_digits": args.digits,
    }
    if args.cred:
        options["credentials_file"] = args.cred
    if args.config_dir:
        options["config_dir"] = args.config_dir

    try:
        started = start_tunnel(reporter=reporter, **options)
    except CfrokError as e:
        reporter.error(str(e))
        return 1
    except KeyboardInterrupt:
        reporter.warn("Interrupted")
        return 130

    if args.json:
        reporter.json_output(started.summary())
    else:
        reporter.url(started.url)
        reporter.config(str(started.config_file))
        reporter.ready()

    return serve(started, reporter)


def serve(started: StartedTunnel, reporter: ConsoleReporter) -> int:
    """Keep the tunnel up until SIGINT/SIGTERM or the daemon exits."""
    stop_requested = threading.Event()

    def request_stop(signum: int, frame: FrameType | None) -> None:
        logger.debug("Stop requested", signal=signum)
        stop_requested.set()

    handled = [signal.SIGINT, signal.SIGTERM]
    previous = {sig: signal.signal(sig, request_stop) for sig in handled}
    try:
        while not stop_requested.is_set():
            if started.wait(timeout=POLL_INTERVAL) is not None:
                break
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)

    if stop_requested.is_set():
        reporter.info("Stopping tunnel...")
        started.stop()
        reporter.success("Tunnel stopped")
        return 0

    code = started.process.returncode
    started.stop()
    reporter.error(f"cloudflared exited unexpectedly (code {code})")
    return 1
