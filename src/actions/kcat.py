"""kafkacat actions for the produce/consume round-trip."""

import logging
import time
from dataclasses import dataclass
from typing import ClassVar

from actions.local import register_temp_file
from common import (
    ActionResult,
    ConsumeError,
    DataAssertionError,
    ProduceError,
    run_command,
)
from config import TutorialConfig

logger = logging.getLogger(__name__)


def kafkacat(config: TutorialConfig, *args: str) -> list[str]:
    """Build a kafkacat command against the forwarded broker and topic."""
    return [config.kafkacat_binary, '-b', config.broker_address, '-t', config.topic, *args]


@dataclass
class WriteTestDataAction:
    """Create the test data file and publish it to the topic."""
    name: str
    timeout: int = 60

    error_class: ClassVar[type] = ProduceError

    def command(self, config: TutorialConfig) -> list[str]:
        return kafkacat(config, '-P', config.data_file)

    def run(self, config: TutorialConfig, context: dict) -> ActionResult:
        """Write the payload file, then kafkacat -P it."""
        start = time.time()

        data_path = config.work_dir / config.data_file
        if register_temp_file(context, data_path) is None:
            return ActionResult(
                success=False,
                message="No cleanup stack in context",
                duration=time.time() - start
            )

        logger.info(f"[{self.name}] Creating test data in {data_path}")
        data_path.write_text(config.payload + '\n', encoding='utf-8')

        logger.info(f"[{self.name}] Writing test data to {config.topic}")
        rc, out, err = run_command(self.command(config), cwd=config.work_dir, timeout=self.timeout)
        if rc != 0:
            return ActionResult(
                success=False,
                message=f"Producing to {config.topic} failed: {err.strip() or out.strip()}",
                duration=time.time() - start
            )

        return ActionResult(
            success=True,
            message=f"Wrote '{config.payload}' to {config.topic}",
            duration=time.time() - start
        )


@dataclass
class ReadTestDataAction:
    """Consume the topic until the end marker, saving output to a file."""
    name: str
    timeout: int = 60

    error_class: ClassVar[type] = ConsumeError

    def command(self, config: TutorialConfig) -> list[str]:
        # -e exits once the end of the partition is reached
        return kafkacat(config, '-C', '-e')

    def run(self, config: TutorialConfig, context: dict) -> ActionResult:
        """Run kafkacat -C -e and redirect stdout into the read-data file."""
        start = time.time()

        read_path = config.work_dir / config.read_data_file
        if register_temp_file(context, read_path) is None:
            return ActionResult(
                success=False,
                message="No cleanup stack in context",
                duration=time.time() - start
            )

        logger.info(f"[{self.name}] Reading test data from {config.topic}")
        # Records are opaque bytes; surrogateescape carries them through unchanged
        rc, out, err = run_command(self.command(config), cwd=config.work_dir, timeout=self.timeout,
                                   encoding='utf-8', errors='surrogateescape')
        read_path.write_bytes(out.encode('utf-8', 'surrogateescape'))
        if rc != 0:
            return ActionResult(
                success=False,
                message=f"Consuming from {config.topic} failed: {err.strip() or 'no output'}",
                duration=time.time() - start
            )

        records = len(out.splitlines())
        return ActionResult(
            success=True,
            message=f"Read {records} records from {config.topic}",
            duration=time.time() - start,
            context_updates={'records_read': records}
        )


@dataclass
class CheckTestDataAction:
    """Assert the consumed output contains the written payload."""
    name: str

    error_class: ClassVar[type] = DataAssertionError

    def command(self, config: TutorialConfig) -> list[str]:
        return ['grep', config.payload, config.read_data_file]

    def run(self, config: TutorialConfig, _context: dict) -> ActionResult:
        """Look for the payload line in the read-data file."""
        start = time.time()

        read_path = config.work_dir / config.read_data_file
        try:
            content = read_path.read_bytes()
        except FileNotFoundError:
            return ActionResult(
                success=False,
                message=f"{read_path} not found",
                duration=time.time() - start
            )

        payload = config.payload.encode('utf-8')
        if not any(payload in line for line in content.splitlines()):
            return ActionResult(
                success=False,
                message=f"'{config.payload}' not found in data read from {config.topic}",
                duration=time.time() - start
            )

        return ActionResult(
            success=True,
            message=f"Found '{config.payload}' in {config.topic}",
            duration=time.time() - start
        )
