"""Helm actions for operator installation."""

import logging
import time
from dataclasses import dataclass
from typing import ClassVar

from common import ActionResult, InstallationError, run_command
from config import TutorialConfig

logger = logging.getLogger(__name__)


def chart_name(operator: str) -> str:
    """Helm chart (and release) name for an operator, e.g. kafka -> kafka-operator."""
    return f'{operator}-operator'


@dataclass
class HelmRepoAddAction:
    """Register the operator chart repository with Helm."""
    name: str
    timeout: int = 120

    error_class: ClassVar[type] = InstallationError

    def command(self, config: TutorialConfig) -> list[str]:
        return ['helm', 'repo', 'add', config.helm_repo_name, config.helm_repo_url]

    def run(self, config: TutorialConfig, _context: dict) -> ActionResult:
        """Add the Helm repository."""
        start = time.time()

        logger.info(f"[{self.name}] Adding '{config.helm_repo_name}' Helm Chart repository")
        rc, out, err = run_command(self.command(config), timeout=self.timeout)
        if rc != 0:
            return ActionResult(
                success=False,
                message=f"helm repo add failed: {err.strip() or out.strip()}",
                duration=time.time() - start
            )

        return ActionResult(
            success=True,
            message=f"Added repository {config.helm_repo_name}",
            duration=time.time() - start
        )


@dataclass
class HelmInstallAction:
    """Install one operator chart at a pinned version and wait for it."""
    name: str
    operator: str
    version: str
    timeout: int = 600

    error_class: ClassVar[type] = InstallationError

    def command(self, config: TutorialConfig) -> list[str]:
        chart = chart_name(self.operator)
        return [
            'helm', 'install', '--wait', chart,
            f'{config.helm_repo_name}/{chart}',
            '--version', self.version,
        ]

    def run(self, config: TutorialConfig, _context: dict) -> ActionResult:
        """Run helm install --wait for the operator chart."""
        start = time.time()
        chart = chart_name(self.operator)

        logger.info(f"[{self.name}] Installing {chart} {self.version} with Helm...")
        rc, out, err = run_command(self.command(config), timeout=self.timeout)
        if rc != 0:
            return ActionResult(
                success=False,
                message=f"helm install {chart} failed: {err.strip() or out.strip()}",
                duration=time.time() - start
            )

        return ActionResult(
            success=True,
            message=f"Installed {chart} {self.version}",
            duration=time.time() - start,
            context_updates={f'{self.operator}_operator_version': self.version}
        )
