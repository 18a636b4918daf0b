"""Scenario definitions and orchestration."""

import logging
import time
from contextlib import ExitStack
from pathlib import Path
from typing import Any, Optional, Protocol, runtime_checkable

from common import InstallMode, TutorialError
from config import TutorialConfig
from reporting import RunReport

logger = logging.getLogger(__name__)

INTERRUPTED_EXIT_CODE = 130


@runtime_checkable
class Scenario(Protocol):
    """Protocol for scenario definitions.

    Class attributes:
        name: Scenario identifier (e.g., 'getting-started')
        description: Human-readable description
        mode: Operator installation front-end the phases are built for
    """
    name: str
    description: str
    mode: InstallMode

    def get_phases(self, config: TutorialConfig) -> list[tuple[str, Any, str]]:
        """Return list of (phase_name, action, description) tuples."""
        ...


class Orchestrator:
    """Runs a scenario's phases in order and stops at the first failure.

    Actions that acquire resources (the port-forward process, temporary
    files) register their release on the ExitStack at context['_cleanup'].
    The stack unwinds in reverse order however the run ends, interrupts
    included.
    """

    def __init__(
        self,
        scenario: Scenario,
        config: TutorialConfig,
        report_dir: Path,
        skip_phases: Optional[list[str]] = None,
        timeout: Optional[int] = None,
        dry_run: bool = False
    ):
        self.scenario = scenario
        self.config = config
        self.skip_phases = set(skip_phases or [])
        self.timeout = timeout  # Overall budget in seconds, checked between phases
        self.dry_run = dry_run
        self.report = RunReport(mode=scenario.mode.value, report_dir=report_dir, scenario=scenario.name)
        self.context: dict[str, Any] = {}
        self.error: Optional[TutorialError] = None
        self.interrupted = False

    @property
    def exit_code(self) -> int:
        """Process exit code for the last run."""
        if self.interrupted:
            return INTERRUPTED_EXIT_CODE
        if self.error is not None:
            return self.error.exit_code
        return 0

    def preview(self) -> bool:
        """Print the commands a run would issue. Returns True."""
        rule = '=' * 64
        print(f"\n{rule}")
        print(f"  DRY-RUN: {self.scenario.name} ({self.scenario.mode.value})")
        print(rule)

        to_run = skipped = 0
        for number, (phase_name, action, description) in enumerate(self.scenario.get_phases(self.config), 1):
            if phase_name in self.skip_phases:
                print(f"{number:>3}. [skip] {phase_name}: {description}")
                skipped += 1
                continue
            to_run += 1
            print(f"{number:>3}. {phase_name}: {description}")
            print(f"       $ {' '.join(action.command(self.config))}")

        print(rule)
        print(f"  {to_run} phases, {skipped} skipped, nothing executed")
        if self.timeout:
            print(f"  Overall timeout: {self.timeout}s")
        print(f"{rule}\n")
        return True

    def _fail(self, phase_name: str, action: Any, message: str, duration: float = 0.0) -> None:
        """Record a failed phase as the action's error kind."""
        error_class = getattr(action, 'error_class', None) or TutorialError
        if self.error is None:
            self.error = error_class(message, phase=phase_name)
        self.report.fail_phase(phase_name, message, duration)

    def _release(self, cleanup: ExitStack) -> None:
        """Unwind the cleanup stack without masking the phase outcome."""
        try:
            cleanup.close()
        except Exception:
            logger.exception("Cleanup failed")

    def _run_phase(self, phase_name: str, action: Any, description: str) -> bool:
        logger.info(f"Running phase: {phase_name} - {description}")
        self.report.start_phase(phase_name, description)
        try:
            result = action.run(self.config, self.context)
        except KeyboardInterrupt:
            logger.error(f"Interrupted during phase {phase_name}")
            self.report.fail_phase(phase_name, 'Interrupted')
            self.interrupted = True
            return False
        except Exception as e:
            logger.exception(f"Phase {phase_name} raised exception")
            self._fail(phase_name, action, str(e))
            return False

        if not result.success:
            logger.error(f"Phase {phase_name} failed: {result.message}")
            self._fail(phase_name, action, result.message, result.duration)
            return False

        logger.info(f"Phase {phase_name} passed")
        self.report.pass_phase(phase_name, result.message, result.duration)
        self.context.update(result.context_updates)
        return True

    def run(self) -> bool:
        """Run all phases. Returns True if every phase passed."""
        if self.dry_run:
            return self.preview()

        timeout_msg = f" (timeout: {self.timeout}s)" if self.timeout else ""
        logger.info(f"Starting scenario '{self.scenario.name}' with {self.scenario.mode.value}{timeout_msg}")
        self.report.start()
        start_time = time.time()

        cleanup = ExitStack()
        self.context['_cleanup'] = cleanup
        try:
            for phase_name, action, description in self.scenario.get_phases(self.config):
                elapsed = time.time() - start_time
                if self.timeout and elapsed >= self.timeout:
                    logger.error(f"Scenario timeout ({self.timeout}s) exceeded after {elapsed:.1f}s")
                    self.error = TutorialError(f"Timeout exceeded ({elapsed:.1f}s >= {self.timeout}s)",
                                               phase=phase_name)
                    self.report.fail_phase(phase_name, self.error.message)
                    break

                if phase_name in self.skip_phases:
                    logger.info(f"Skipping phase: {phase_name}")
                    self.report.skip_phase(phase_name, description)
                    continue

                if not self._run_phase(phase_name, action, description):
                    break
        except KeyboardInterrupt:
            # Signal between phases, outside any action
            logger.error("Interrupted")
            self.interrupted = True
        finally:
            self._release(cleanup)
            self.context.pop('_cleanup', None)

        success = self.error is None and not self.interrupted
        logger.info(f"Scenario completed in {time.time() - start_time:.1f}s")
        self.report.finish(success, self.error, self.exit_code)
        return success


# Registry of available scenarios
_scenarios: dict[str, type] = {}


def register_scenario(cls: type) -> type:
    """Decorator to register a scenario class."""
    _scenarios[cls.name] = cls
    return cls


def get_scenario(name: str, mode: InstallMode) -> Scenario:
    """Get a scenario instance by name for an installation mode."""
    if name not in _scenarios:
        available = sorted(_scenarios.keys())
        raise ValueError(f"Unknown scenario: {name}. Available: {available}")
    scenario: Scenario = _scenarios[name](mode)
    return scenario


# Import scenarios to trigger registration
from scenarios import getting_started  # noqa: E402, F401
