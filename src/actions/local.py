"""Local actions: fixed delays and temporary file bookkeeping."""

import logging
import time
from contextlib import ExitStack
from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar, Optional

from common import ActionResult
from config import TutorialConfig

logger = logging.getLogger(__name__)


def _remove_file(path: Path) -> None:
    try:
        path.unlink()
        logger.debug(f"Removed {path}")
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Could not remove {path}: {e}")


def register_temp_file(context: dict, path: Path) -> Optional[ExitStack]:
    """Schedule path for removal when the run's cleanup stack unwinds.

    Returns the cleanup stack, or None if the context carries none.
    """
    stack = context.get('_cleanup')
    if stack is not None:
        stack.callback(_remove_file, path)
    return stack


@dataclass
class SleepAction:
    """Wait a fixed time before the next phase.

    A readiness heuristic only; nothing guarantees the cluster is ready after it.
    """
    name: str
    seconds: Optional[float] = None  # None uses config.settle_delay

    error_class: ClassVar[Optional[type]] = None

    def command(self, config: TutorialConfig) -> list[str]:
        return ['sleep', f'{self._seconds(config):g}']

    def _seconds(self, config: TutorialConfig) -> float:
        return config.settle_delay if self.seconds is None else self.seconds

    def run(self, config: TutorialConfig, _context: dict) -> ActionResult:
        """Sleep for the configured delay."""
        start = time.time()
        seconds = self._seconds(config)
        logger.debug(f"[{self.name}] Sleeping {seconds:g}s")
        time.sleep(seconds)
        return ActionResult(
            success=True,
            message=f"Waited {seconds:g}s",
            duration=time.time() - start
        )
