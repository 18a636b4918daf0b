"""stackablectl actions for operator installation."""

import logging
import time
from dataclasses import dataclass, field
from typing import ClassVar

from common import ActionResult, InstallationError, run_command
from config import TutorialConfig

logger = logging.getLogger(__name__)


@dataclass
class StackablectlInstallAction:
    """Install all operators in one stackablectl invocation.

    stackablectl orders the installs and waits for them itself.
    """
    name: str
    operators: dict = field(default_factory=dict)  # operator name -> version
    timeout: int = 900

    error_class: ClassVar[type] = InstallationError

    def command(self, _config: TutorialConfig) -> list[str]:
        pairs = [f'{op}={version}' for op, version in self.operators.items()]
        return ['stackablectl', 'operator', 'install', *pairs]

    def run(self, config: TutorialConfig, _context: dict) -> ActionResult:
        """Run stackablectl operator install."""
        start = time.time()

        if not self.operators:
            return ActionResult(
                success=False,
                message="No operators to install",
                duration=time.time() - start
            )

        logger.info(f"[{self.name}] Installing operators with stackablectl: "
                    f"{', '.join(self.operators)}")
        rc, out, err = run_command(self.command(config), timeout=self.timeout)
        if rc != 0:
            return ActionResult(
                success=False,
                message=f"stackablectl operator install failed: {err.strip() or out.strip()}",
                duration=time.time() - start
            )

        return ActionResult(
            success=True,
            message=f"Installed {len(self.operators)} operators",
            duration=time.time() - start,
            context_updates={f'{op}_operator_version': v for op, v in self.operators.items()}
        )
