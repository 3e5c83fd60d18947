"""Shared pytest fixtures for cfrok tests."""

import io
import json
import os
import stat
import sys
import threading
import time
from unittest.mock import Mock

import pytest

from cfrok.common.streams import LineBroadcaster

FAKE_CLOUDFLARED = '''\
#!{python}
import json
import signal
import sys
import time

ROUTE_EXIT = {route_exit!r}
ROUTE_STDERR = {route_stderr!r}
RUN_MODE = {run_mode!r}
CALLS = {calls!r}

with open(CALLS, "a", encoding="utf-8") as f:
    f.write(json.dumps(sys.argv[1:]) + "\\n")

args = sys.argv[1:]
if args[:3] == ["tunnel", "route", "dns"]:
    if ROUTE_STDERR:
        sys.stderr.write(ROUTE_STDERR + "\\n")
    sys.exit(ROUTE_EXIT)

if RUN_MODE == "crash":
    print("ERR failed to connect to the edge", file=sys.stderr, flush=True)
    sys.exit(3)

stopping = False


def handle(signum, frame):
    global stopping
    stopping = True


signal.signal(signal.SIGINT, signal.SIG_IGN if RUN_MODE == "stubborn" else handle)

print("INF Starting tunnel tunnelID=test", flush=True)
print("INF Version 2024.1.0", flush=True)
if RUN_MODE != "silent":
    for index in range(4):
        print(f"INF Registered tunnel connection connIndex={{index}}", flush=True)

while not stopping:
    time.sleep(0.05)

print("INF Initiating graceful shutdown", flush=True)
sys.exit(0)
'''


class FakeCloudflared:
    """Executable stand-in for cloudflared written to a temp directory."""

    def __init__(self, path, calls_path):
        self.path = path
        self.calls_path = calls_path

    @property
    def calls(self) -> list[list[str]]:
        if not self.calls_path.exists():
            return []
        return [
            json.loads(line)
            for line in self.calls_path.read_text(encoding="utf-8").splitlines()
        ]


@pytest.fixture
def fake_cloudflared(tmp_path):
    """Factory writing a fake cloudflared script.

    Returns:
        Callable: make(route_exit=0, route_stderr="", run_mode="normal")
        returning a FakeCloudflared
    """
    if os.name == "nt":
        pytest.skip("fake cloudflared relies on a POSIX shebang")

    def make(route_exit=0, route_stderr="", run_mode="normal"):
        path = tmp_path / "cloudflared"
        calls_path = tmp_path / "calls.jsonl"
        path.write_text(
            FAKE_CLOUDFLARED.format(
                python=sys.executable,
                route_exit=route_exit,
                route_stderr=route_stderr,
                run_mode=run_mode,
                calls=str(calls_path),
            ),
            encoding="utf-8",
        )
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return FakeCloudflared(path, calls_path)

    return make


class BlockingStream:
    """Text stream whose readline blocks until released, then reports EOF."""

    def __init__(self):
        self._released = threading.Event()
        self.closed = False

    def readline(self):
        self._released.wait()
        return ""

    def release(self):
        self._released.set()

    def close(self):
        self.closed = True


class FakeDaemon:
    """In-memory stand-in for DaemonProcess."""

    def __init__(self, stdout="", stderr="", block=False):
        self.pid = 4242
        self.alive = True
        self.exit_callbacks = []
        self.terminate_calls = []
        self._blocking = [BlockingStream(), BlockingStream()] if block else []
        if block:
            self.stdout = LineBroadcaster(self._blocking[0], name="stdout")
            self.stderr = LineBroadcaster(self._blocking[1], name="stderr")
        else:
            self.stdout = LineBroadcaster(io.StringIO(stdout), name="stdout")
            self.stderr = LineBroadcaster(io.StringIO(stderr), name="stderr")

    @property
    def returncode(self):
        return None if self.alive else 0

    def is_alive(self):
        return self.alive

    def start_streaming(self):
        self.stdout.start()
        self.stderr.start()

    def add_exit_callback(self, callback):
        self.exit_callbacks.append(callback)

    def wait(self, timeout=None):
        return self.returncode

    def terminate(self, timeout=5.0):
        self.terminate_calls.append(timeout)
        self.alive = False
        for stream in self._blocking:
            stream.release()
        return 0

    def exit(self, code):
        """Simulate the daemon dying on its own."""
        self.alive = False
        for callback in self.exit_callbacks:
            callback(code)


@pytest.fixture
def mock_reporter():
    """Mock reporter recording phases and log events.

    Returns:
        Mock: Reporter with begin_phase, end_phase and log_event
    """
    return Mock(spec=["begin_phase", "end_phase", "log_event"])


def wait_for(predicate, timeout=5.0, interval=0.01):
    """Poll ``predicate`` until it is true or ``timeout`` elapses."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()
