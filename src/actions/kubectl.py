"""kubectl actions: manifest apply, rollout wait and port-forwarding."""

import logging
import subprocess
import time
from dataclasses import dataclass
from typing import ClassVar, Optional

from common import (
    ActionResult,
    ApplyError,
    PortForwardError,
    RolloutError,
    run_command,
    start_background,
    terminate_process,
    wait_for_port,
)
from config import TutorialConfig

logger = logging.getLogger(__name__)


@dataclass
class KubectlApplyAction:
    """Declaratively apply one of the guide's manifests."""
    name: str
    manifest_attr: str  # TutorialConfig attribute holding the manifest filename
    timeout: int = 120

    error_class: ClassVar[type] = ApplyError

    def command(self, config: TutorialConfig) -> list[str]:
        manifest = config.manifest_path(getattr(config, self.manifest_attr))
        return config.kubectl('apply', '-f', str(manifest))

    def run(self, config: TutorialConfig, _context: dict) -> ActionResult:
        """Run kubectl apply -f <manifest>."""
        start = time.time()

        manifest = config.manifest_path(getattr(config, self.manifest_attr))
        if not manifest.exists():
            return ActionResult(
                success=False,
                message=f"Manifest not found: {manifest}",
                duration=time.time() - start
            )

        logger.info(f"[{self.name}] Applying {manifest.name}...")
        rc, out, err = run_command(self.command(config), timeout=self.timeout)
        if rc != 0:
            return ActionResult(
                success=False,
                message=f"kubectl apply -f {manifest.name} failed: {err.strip() or out.strip()}",
                duration=time.time() - start
            )

        return ActionResult(
            success=True,
            message=out.strip() or f"Applied {manifest.name}",
            duration=time.time() - start
        )


@dataclass
class RolloutStatusAction:
    """Block until a workload finishes rolling out.

    The wait loop belongs to kubectl. Without a configured rollout_timeout,
    kubectl's own behaviour decides how long to wait.
    """
    name: str
    workload_attr: str  # TutorialConfig attribute holding e.g. statefulset/simple-zk-server-default

    error_class: ClassVar[type] = RolloutError

    def command(self, config: TutorialConfig) -> list[str]:
        cmd = config.kubectl('rollout', 'status', '--watch', getattr(config, self.workload_attr))
        if config.rollout_timeout:
            cmd.append(f'--timeout={config.rollout_timeout}s')
        return cmd

    def run(self, config: TutorialConfig, _context: dict) -> ActionResult:
        """Run kubectl rollout status --watch."""
        start = time.time()
        workload = getattr(config, self.workload_attr)

        # Leave headroom so kubectl reports its own timeout first
        timeout = config.rollout_timeout + 30 if config.rollout_timeout else None

        logger.info(f"[{self.name}] Awaiting {workload} rollout finish")
        rc, out, err = run_command(self.command(config), timeout=timeout)
        if rc != 0:
            return ActionResult(
                success=False,
                message=f"Rollout of {workload} failed: {err.strip() or out.strip()}",
                duration=time.time() - start
            )

        return ActionResult(
            success=True,
            message=out.strip().splitlines()[-1] if out.strip() else f"{workload} rolled out",
            duration=time.time() - start
        )


@dataclass
class PortForwardAction:
    """Forward the Kafka client port to localhost for the rest of the run.

    The process is registered with the run's cleanup stack as soon as it is
    spawned, so it is terminated however the run ends.
    """
    name: str
    service_attr: str = 'kafka_service'
    startup_grace: float = 1.0
    stop_timeout: float = 5.0

    error_class: ClassVar[type] = PortForwardError

    def command(self, config: TutorialConfig) -> list[str]:
        service = getattr(config, self.service_attr)
        return config.kubectl('port-forward', f'svc/{service}', str(config.kafka_port))

    def _stop(self, process: subprocess.Popen) -> None:
        logger.info(f"[{self.name}] Stopping port-forward (PID {process.pid})")
        if not terminate_process(process, timeout=self.stop_timeout):
            logger.warning(f"[{self.name}] Port-forward (PID {process.pid}) did not exit")

    def run(self, config: TutorialConfig, context: dict) -> ActionResult:
        """Start kubectl port-forward in the background."""
        start = time.time()

        stack = context.get('_cleanup')
        if stack is None:
            return ActionResult(
                success=False,
                message="No cleanup stack in context",
                duration=time.time() - start
            )

        service = getattr(config, self.service_attr)
        logger.info(f"[{self.name}] Starting port-forwarding of port {config.kafka_port}")
        try:
            process = start_background(self.command(config), cwd=config.work_dir)
        except OSError as e:
            return ActionResult(
                success=False,
                message=f"Failed to start port-forward: {e}",
                duration=time.time() - start
            )
        stack.callback(self._stop, process)

        # A forward that dies straight away (unknown service, no cluster) exits here
        exit_code: Optional[int]
        try:
            exit_code = process.wait(timeout=self.startup_grace)
        except subprocess.TimeoutExpired:
            exit_code = None
        if exit_code is not None:
            return ActionResult(
                success=False,
                message=f"kubectl port-forward svc/{service} exited with code {exit_code}",
                duration=time.time() - start
            )

        if config.port_forward_probe:
            if not wait_for_port('localhost', config.kafka_port,
                                 timeout=config.port_forward_probe_timeout):
                return ActionResult(
                    success=False,
                    message=(f"localhost:{config.kafka_port} not reachable after "
                             f"{config.port_forward_probe_timeout}s"),
                    duration=time.time() - start
                )

        return ActionResult(
            success=True,
            message=f"Forwarding {config.broker_address} to svc/{service} (PID {process.pid})",
            duration=time.time() - start,
            context_updates={'port_forward_pid': process.pid}
        )
