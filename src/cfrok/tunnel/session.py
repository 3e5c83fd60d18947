"""Tunnel session orchestration.

A TunnelSession drives one cloudflared tunnel through its whole life:

    INITIALIZING -> CONFIGURING_DNS -> AWAITING_PROPAGATION -> LAUNCHING_DAEMON
    -> AWAITING_READINESS -> RUNNING -> STOPPING -> STOPPED

Any fatal error during start-up ends in STOPPED with no daemon left running.
Once RUNNING, problems are reported through the process handle and the
reporter instead of being raised.
"""

import random
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from types import TracebackType
from typing import Literal

from ..common.exceptions import (
    CfrokError,
    DaemonSpawnFailedError,
    DnsRouteFailedError,
    InvalidArgumentError,
    ProcessError,
    SessionStoppedError,
)
from ..common.logging import get_logger
from ..common.process import DaemonProcess, resolve_binary, run_once
from ..common.utils import expand_tilde, validate_non_empty_string, validate_port
from .classifier import LogClassifier
from .config import config_file_name, materialize, render_config
from .identifiers import build_subdomain, sanitize_prefix
from .models import SessionConfig, SessionState, TunnelSummary
from .patterns import READY_MARKER, is_route_already_exists
from .readiness import READINESS_TIMEOUT, ReadinessDetector, ReadinessOutcome
from .reporter import NullReporter, SessionReporter

logger = get_logger(__name__)

_LIVE_STATES = frozenset({SessionState.AWAITING_READINESS, SessionState.RUNNING})


class TunnelSession:
    """State machine for a single cloudflared tunnel session."""

    def __init__(
        self,
        config: SessionConfig,
        reporter: SessionReporter | None = None,
        rng: random.Random | None = None,
        readiness_timeout: float = READINESS_TIMEOUT,
    ):
        """Initialize TunnelSession.

        Args:
            config: Session options
            reporter: Presentation hooks (phases and daemon log events)
            rng: Random source for the subdomain suffix
            readiness_timeout: Seconds to wait for the first registered connection
        """
        self.config = config
        self.reporter: SessionReporter = reporter or NullReporter()
        self.readiness_timeout = readiness_timeout
        self._rng = rng

        self.subdomain: str | None = None
        self.url: str | None = None
        self.config_file: Path | None = None
        self.process: DaemonProcess | None = None
        self.readiness: ReadinessOutcome | None = None
        self.exit_code: int | None = None

        self._state = SessionState.INITIALIZING
        self._state_lock = threading.Lock()
        self._stop_lock = threading.Lock()
        self._stop_requested = threading.Event()
        self._classifier = LogClassifier()
        self._log_lock = threading.Lock()
        self._binary = config.cloudflared_bin

    @property
    def state(self) -> SessionState:
        return self._state

    def start(self) -> "StartedTunnel":
        """Run the start-up sequence up to RUNNING.

        Returns:
            Handle on the running tunnel

        Raises:
            InvalidArgumentError: If port or prefix are invalid
            IoFailureError: If the config file cannot be written
            DnsRouteFailedError: If cloudflared rejects the DNS route
            DaemonSpawnFailedError: If cloudflared cannot be launched
            SessionStoppedError: If stop() was called before start-up finished
        """
        if self._state is not SessionState.INITIALIZING:
            raise CfrokError(f"Session already started (state: {self._state.value})")

        try:
            self._validate()

            self._advance(SessionState.CONFIGURING_DNS)
            self._configure()

            self._advance(SessionState.AWAITING_PROPAGATION)
            self._await_propagation()

            with self._phase("Starting cloudflared tunnel..."):
                self._advance(SessionState.LAUNCHING_DAEMON)
                self._launch()

                self._advance(SessionState.AWAITING_READINESS)
                self._await_readiness()

            if self._stop_requested.is_set():
                raise SessionStoppedError("Tunnel stopped during start-up")
        except BaseException:
            self._abort()
            raise

        self._transition(
            frozenset({SessionState.AWAITING_READINESS}), SessionState.RUNNING
        )
        logger.info(
            "Tunnel session started",
            url=self.url,
            config_file=str(self.config_file),
            readiness=self.readiness.value if self.readiness else None,
        )
        return StartedTunnel(self)

    def stop(self) -> None:
        """Stop the daemon and wait for it to exit.

        Sends an interrupt, escalates to a kill after ``shutdown_timeout``.
        Idempotent and never raises. During start-up it makes start() abort.
        """
        self._stop_requested.set()
        with self._stop_lock:
            if self._state is SessionState.STOPPED and not self._daemon_alive():
                return

            self._set_state(SessionState.STOPPING)
            if self.process is not None:
                code = self.process.terminate(self.config.shutdown_timeout)
                if code is not None:
                    self.exit_code = code
            self._set_state(SessionState.STOPPED)

        logger.info("Tunnel session stopped", url=self.url, exit_code=self.exit_code)

    def _validate(self) -> None:
        try:
            validate_port(self.config.port, "Port")
            prefix = validate_non_empty_string(
                self.config.subdomain_prefix, "subdomain_prefix"
            )
        except ValueError as e:
            raise InvalidArgumentError(str(e)) from e

        if not sanitize_prefix(prefix):
            raise InvalidArgumentError(
                f"subdomain_prefix {prefix!r} has no usable characters"
            )

    def _configure(self) -> None:
        cfg = self.config
        self.subdomain = build_subdomain(
            cfg.subdomain_prefix,
            cfg.domain,
            static=cfg.static_subdomain,
            digits=cfg.random_digits,
            rng=self._rng,
        )
        self.url = f"https://{self.subdomain}"
        self._binary = resolve_binary(cfg.cloudflared_bin)

        with self._phase("Creating configuration..."):
            content = render_config(
                cfg.tunnel_id,
                str(expand_tilde(cfg.credentials_file)),
                self.subdomain,
                cfg.port,
                cfg.protocol,
            )
            self.config_file = materialize(
                expand_tilde(cfg.config_dir),
                config_file_name(cfg.subdomain_prefix, cfg.port),
                content,
            )

        with self._phase("Setting up DNS route..."):
            self._route_dns()

    def _route_dns(self) -> None:
        assert self.subdomain is not None
        command = [
            self._binary,
            "tunnel",
            "route",
            "dns",
            self.config.tunnel_id,
            self.subdomain,
        ]
        try:
            result = run_once(command)
        except ProcessError as e:
            raise DnsRouteFailedError(f"cloudflared route dns could not run: {e}") from e

        if result.ok:
            logger.info("DNS route added", subdomain=self.subdomain)
            return

        if is_route_already_exists(result.combined_output):
            logger.info("DNS route already exists", subdomain=self.subdomain)
            return

        detail = (result.stderr or result.stdout).strip()
        raise DnsRouteFailedError(
            f"cloudflared route dns failed (code {result.exit_code}): {detail}",
            exit_code=result.exit_code,
            output=result.combined_output,
        )

    def _await_propagation(self) -> None:
        wait = self.config.dns_wait_seconds
        if wait <= 0:
            return
        with self._phase("Waiting for DNS propagation..."):
            time.sleep(wait)

    def _launch(self) -> None:
        command = [
            self._binary,
            "tunnel",
            "--config",
            str(self.config_file),
            "run",
            self.config.tunnel_id,
        ]
        try:
            self.process = DaemonProcess.spawn(command)
        except ProcessError as e:
            raise DaemonSpawnFailedError(f"Failed to start cloudflared: {e}") from e

    def _await_readiness(self) -> None:
        process = self.process
        assert process is not None

        detector = ReadinessDetector(READY_MARKER, self.readiness_timeout)
        detector.attach(process.stdout)
        process.stdout.subscribe(self._on_daemon_line)
        process.stderr.subscribe(self._on_daemon_line)
        process.add_exit_callback(self._on_daemon_exit)
        process.start_streaming()

        self.readiness = detector.wait()
        if self.readiness is not ReadinessOutcome.MARKER:
            logger.warning(
                "Tunnel connection not confirmed, continuing anyway",
                outcome=self.readiness.value,
                timeout=self.readiness_timeout,
            )

    def _on_daemon_line(self, line: str) -> None:
        with self._log_lock:
            event = self._classifier.classify(line)
            if event is not None:
                self.reporter.log_event(event)

    def _on_daemon_exit(self, code: int) -> None:
        self.exit_code = code
        if self._transition(_LIVE_STATES, SessionState.STOPPED):
            logger.warning("cloudflared exited unexpectedly", exit_code=code)

    def _abort(self) -> None:
        if self._daemon_alive():
            assert self.process is not None
            self.process.terminate(self.config.shutdown_timeout)
        self._set_state(SessionState.STOPPED)

    def _daemon_alive(self) -> bool:
        return self.process is not None and self.process.is_alive()

    def _advance(self, state: SessionState) -> None:
        """Move start-up forward unless stop() was requested."""
        with self._state_lock:
            if self._stop_requested.is_set():
                raise SessionStoppedError("Tunnel stopped during start-up")
            self._log_transition(state)
            self._state = state

    def _set_state(self, state: SessionState) -> None:
        with self._state_lock:
            self._log_transition(state)
            self._state = state

    def _transition(
        self, expected: frozenset[SessionState], state: SessionState
    ) -> bool:
        """Move to ``state`` only from one of ``expected``."""
        with self._state_lock:
            if self._state not in expected:
                return False
            self._log_transition(state)
            self._state = state
            return True

    def _log_transition(self, state: SessionState) -> None:
        if state is not self._state:
            logger.debug(
                "Session state changed", previous=self._state.value, state=state.value
            )

    @contextmanager
    def _phase(self, message: str) -> Iterator[None]:
        self.reporter.begin_phase(message)
        try:
            yield
        finally:
            self.reporter.end_phase()


class StartedTunnel:
    """Handle on a running tunnel returned by TunnelSession.start()."""

    def __init__(self, session: TunnelSession):
        assert session.url is not None and session.subdomain is not None
        assert session.config_file is not None and session.process is not None
        self.session = session
        self.url: str = session.url
        self.subdomain: str = session.subdomain
        self.config_file: Path = session.config_file
        self.process: DaemonProcess = session.process

    @property
    def state(self) -> SessionState:
        return self.session.state

    def is_running(self) -> bool:
        """True while the session is RUNNING and the daemon is alive."""
        return self.session.state is SessionState.RUNNING and self.process.is_alive()

    def wait(self, timeout: float | None = None) -> int | None:
        """Wait for the daemon to exit; returns its exit code or None on timeout."""
        return self.process.wait(timeout)

    def stop(self) -> None:
        self.session.stop()

    def summary(self) -> TunnelSummary:
        return TunnelSummary(
            url=self.url,
            subdomain=self.subdomain,
            config_file=str(self.config_file),
            pid=self.process.pid,
        )

    def __enter__(self) -> "StartedTunnel":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> Literal[False]:
        """Context manager exit - automatically stop the tunnel"""
        self.stop()
        return False
