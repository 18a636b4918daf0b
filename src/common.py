"""Common utilities and types for the getting-started driver."""

import logging
import subprocess
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class InstallMode(str, Enum):
    """Operator installation front-end used by the tutorial."""
    HELM = 'helm'
    STACKABLECTL = 'stackablectl'

    @classmethod
    def parse(cls, token: Optional[str]) -> 'InstallMode':
        """Return the mode for a CLI token, raising InvalidArgumentError otherwise."""
        for mode in cls:
            if mode.value == token:
                return mode
        choices = "' or '".join(m.value for m in cls)
        raise InvalidArgumentError(
            f"Need to provide '{choices}' as an argument for which installation method to use!"
        )


class TutorialError(Exception):
    """Base class for failures that abort a tutorial run."""
    exit_code = 1

    def __init__(self, message: str = '', phase: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.phase = phase

    def __str__(self):
        if self.phase:
            return f"{self.phase}: {self.message}"
        return self.message


class InvalidArgumentError(TutorialError):
    """Missing or unknown installation mode."""
    exit_code = 1


class InstallationError(TutorialError):
    """Operator installation failed."""
    exit_code = 2


class ApplyError(TutorialError):
    """kubectl apply of a manifest failed."""
    exit_code = 3


class RolloutError(TutorialError):
    """Workload rollout did not complete."""
    exit_code = 4


class PortForwardError(TutorialError):
    """Port-forward process could not be started."""
    exit_code = 5


class ProduceError(TutorialError):
    """Writing test data to the topic failed."""
    exit_code = 6


class ConsumeError(TutorialError):
    """Reading test data from the topic failed."""
    exit_code = 7


class DataAssertionError(TutorialError):
    """Consumed data does not contain the written payload."""
    exit_code = 8


@dataclass
class ActionResult:
    """Result returned by an action."""
    success: bool
    message: str = ''
    duration: float = 0.0
    context_updates: dict = field(default_factory=dict)


def run_command(
    cmd: list[str],
    cwd: Optional[Path] = None,
    timeout: Optional[int] = 600,
    capture: bool = True,
    env: Optional[dict] = None,
    encoding: Optional[str] = None,
    errors: Optional[str] = None
) -> tuple[int, str, str]:
    """Run a command and return (returncode, stdout, stderr).

    A timeout of None blocks until the command exits. encoding and errors
    are handed to subprocess for decoding the output.
    """
    logger.debug(f"Running: {' '.join(cmd)}")
    try:
        result = subprocess.run(
            cmd,
            cwd=cwd,
            capture_output=capture,
            text=True,
            timeout=timeout,
            env=env,
            encoding=encoding,
            errors=errors,
            check=False  # We handle return codes explicitly
        )
        return result.returncode, result.stdout or '', result.stderr or ''
    except subprocess.TimeoutExpired:
        return -1, '', f'Command timed out after {timeout}s'
    except Exception as e:
        return -1, '', str(e)


def start_background(cmd: list[str], cwd: Optional[Path] = None) -> subprocess.Popen:
    """Spawn a long-running command with stdout discarded.

    stderr is inherited so the collaborator's own diagnostics stay visible.
    """
    logger.debug(f"Starting background: {' '.join(cmd)}")
    return subprocess.Popen(
        cmd,
        cwd=cwd,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.DEVNULL,
    )


def terminate_process(process: subprocess.Popen, timeout: float = 5.0) -> bool:
    """Stop a child process: SIGTERM then SIGKILL after timeout.

    Returns True if the process is no longer running.
    """
    if process.poll() is not None:
        return True

    process.terminate()
    try:
        process.wait(timeout=timeout)
        return True
    except subprocess.TimeoutExpired:
        logger.warning(f"Process {process.pid} ignored SIGTERM, sending SIGKILL")

    process.kill()
    try:
        process.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        return False
    return True


def wait_for_port(host: str, port: int, timeout: float = 30.0,
                  initial_interval: float = 0.5, max_interval: float = 5.0) -> bool:
    """Poll a TCP port with exponential back-off until it accepts connections."""
    from readiness import validate_host_reachable

    logger.debug(f"Waiting for {host}:{port}...")
    deadline = time.monotonic() + timeout
    interval = initial_interval
    while True:
        ok, message = validate_host_reachable(host, port=port, timeout=min(interval, 2.0))
        if ok:
            logger.debug(message)
            return True
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            logger.debug(f"Gave up on {host}:{port}: {message}")
            return False
        time.sleep(min(interval, remaining))
        interval = min(interval * 2, max_interval)
