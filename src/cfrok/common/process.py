"""Process management for the cloudflared binary."""

import os
import shutil
import signal
import subprocess
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from types import TracebackType
from typing import Literal

from .exceptions import BinaryNotFoundError, ProcessSpawnError
from .logging import get_logger
from .streams import LineBroadcaster

logger = get_logger(__name__)

DEFAULT_SHUTDOWN_TIMEOUT = 5.0

ExitCallback = Callable[[int], None]


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a one-shot command."""

    exit_code: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @property
    def combined_output(self) -> str:
        """stderr and stdout joined, stderr first."""
        return f"{self.stderr}\n{self.stdout}"


def resolve_binary(binary: str) -> str:
    """Resolve the cloudflared executable.

    Explicit paths are tilde-expanded; bare names are looked up on PATH.
    An unresolved name is returned unchanged so that the spawn reports it.
    """
    if binary.startswith("~") or os.sep in binary or (os.altsep and os.altsep in binary):
        return os.path.expanduser(binary)

    found = shutil.which(binary)
    if found is None:
        logger.debug("Binary not found on PATH", binary=binary)
        return binary
    return found


def _spawn_error(command: Sequence[str], error: OSError) -> ProcessSpawnError:
    if isinstance(error, (FileNotFoundError, PermissionError)):
        return BinaryNotFoundError(f"Cannot execute {command[0]}: {error}")
    return ProcessSpawnError(f"Failed to start {command[0]}: {error}")


def run_once(command: Sequence[str], cwd: str | None = None) -> CommandResult:
    """Run a command to completion and collect its output.

    There is no timeout; callers wanting a deadline must impose one.

    Args:
        command: Executable followed by its arguments
        cwd: Optional working directory

    Returns:
        CommandResult with the exit code and captured output

    Raises:
        BinaryNotFoundError: If the executable is missing or not executable
        ProcessSpawnError: If the process cannot be started for another reason
    """
    logger.debug("Running command", command=list(command))
    try:
        completed = subprocess.run(
            list(command),
            cwd=cwd,
            stdin=subprocess.DEVNULL,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            check=False,
        )
    except OSError as e:
        logger.error("Failed to run command", command=list(command), error=str(e))
        raise _spawn_error(command, e) from e

    result = CommandResult(
        exit_code=completed.returncode,
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
    )
    logger.debug("Command finished", command=list(command), exit_code=result.exit_code)
    return result


class DaemonProcess:
    """Handle on a long-lived subprocess with streamed output.

    stdout and stderr are exposed as LineBroadcasters. Listeners should be
    attached before start_streaming() so that no early line is missed.
    """

    def __init__(self, process: subprocess.Popen[str], command: Sequence[str]):
        self.command = list(command)
        self._process = process
        assert process.stdout is not None and process.stderr is not None
        self.stdout = LineBroadcaster(process.stdout, name="stdout")
        self.stderr = LineBroadcaster(process.stderr, name="stderr")
        self._exit_callbacks: list[ExitCallback] = []
        self._lock = threading.Lock()
        self._exited = threading.Event()
        self._watcher = threading.Thread(
            target=self._watch, name="cfrok-exit-watcher", daemon=True
        )
        self._watcher.start()

    @classmethod
    def spawn(cls, command: Sequence[str], cwd: str | None = None) -> "DaemonProcess":
        """Start a long-lived process with piped output.

        On POSIX the child gets its own session so terminal interrupts reach
        it only through terminate().

        Raises:
            BinaryNotFoundError: If the executable is missing or not executable
            ProcessSpawnError: If the process cannot be started for another reason
        """
        kwargs: dict[str, object] = {}
        if os.name == "nt":
            kwargs["creationflags"] = subprocess.CREATE_NEW_PROCESS_GROUP  # type: ignore[attr-defined]
        else:
            kwargs["start_new_session"] = True

        logger.info("Starting process", command=list(command))
        try:
            process = subprocess.Popen(
                list(command),
                cwd=cwd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                **kwargs,  # type: ignore[call-overload]
            )
        except OSError as e:
            logger.error("Failed to start process", command=list(command), error=str(e))
            raise _spawn_error(command, e) from e

        logger.info("Process started", pid=process.pid)
        return cls(process, command)

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def returncode(self) -> int | None:
        """Exit code, or None while the process is alive."""
        return self._process.poll()

    def is_alive(self) -> bool:
        """Check if the process is still running"""
        return self._process.poll() is None

    def start_streaming(self) -> None:
        """Start draining stdout and stderr."""
        self.stdout.start()
        self.stderr.start()

    def add_exit_callback(self, callback: ExitCallback) -> None:
        """Call ``callback(exit_code)`` once the process has exited.

        Runs immediately if the process already exited.
        """
        with self._lock:
            if not self._exited.is_set():
                self._exit_callbacks.append(callback)
                return
        code = self._process.returncode
        callback(code if code is not None else -1)

    def wait(self, timeout: float | None = None) -> int | None:
        """Wait for the process to exit.

        Returns:
            The exit code, or None if the timeout elapsed first
        """
        try:
            return self._process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            return None

    def terminate(self, timeout: float = DEFAULT_SHUTDOWN_TIMEOUT) -> int | None:
        """Interrupt the process and wait for it, killing it if it lingers.

        Never raises; returns the final exit code when known.
        """
        if not self.is_alive():
            logger.debug("Process not running, nothing to stop")
            return self._finish_streams()

        logger.info("Stopping process", pid=self.pid)
        try:
            if os.name == "nt":
                self._process.send_signal(signal.CTRL_BREAK_EVENT)  # type: ignore[attr-defined]
            else:
                self._process.send_signal(signal.SIGINT)
        except OSError as e:
            logger.debug("Interrupt not delivered", pid=self.pid, error=str(e))

        try:
            self._process.wait(timeout=timeout)
            logger.info("Process terminated gracefully", pid=self.pid)
        except subprocess.TimeoutExpired:
            logger.warning(
                "Process did not terminate gracefully, force killing", pid=self.pid
            )
            try:
                self._process.kill()
            except OSError as e:
                logger.debug("Kill not delivered", pid=self.pid, error=str(e))
            try:
                self._process.wait(timeout=timeout)
            except subprocess.TimeoutExpired:
                logger.error("Failed to kill process", pid=self.pid)

        return self._finish_streams()

    def _finish_streams(self) -> int | None:
        for stream in (self.stdout, self.stderr):
            stream.join(timeout=1.0)
            stream.close()
        self._watcher.join(timeout=1.0)
        return self._process.poll()

    def _watch(self) -> None:
        code = self._process.wait()
        with self._lock:
            self._exited.set()
            callbacks = list(self._exit_callbacks)
            self._exit_callbacks.clear()

        logger.debug("Process exited", pid=self._process.pid, exit_code=code)
        for callback in callbacks:
            try:
                callback(code)
            except Exception:
                logger.exception("Exit callback failed", pid=self._process.pid)

    def __enter__(self) -> "DaemonProcess":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> Literal[False]:
        """Context manager exit - automatically stop process"""
        self.terminate()
        return False
