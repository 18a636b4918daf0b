"""Run reports for the getting-started scenario.

Each run leaves two files in the report directory, named
<timestamp>.<scenario>-<mode>.<passed|failed>.{json,md}, so runs of both
installation methods can share one directory.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

STATUS_MARKS = {'passed': '✅', 'failed': '❌', 'skipped': '⏭️'}


@dataclass
class PhaseResult:
    """Outcome of one phase."""
    name: str
    description: str
    status: str  # 'passed', 'failed', 'skipped'
    message: str = ''
    duration: float = 0.0
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    def as_dict(self) -> dict:
        return {
            'name': self.name,
            'description': self.description,
            'status': self.status,
            'message': self.message,
            'duration': round(self.duration, 1),
        }


@dataclass
class RunReport:
    """Phase outcomes of one guide run, plus the error that ended it."""
    mode: str
    report_dir: Path
    scenario: str = 'getting-started'
    phases: list[PhaseResult] = field(default_factory=list)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    success: bool = False
    error_type: Optional[str] = None
    exit_code: int = 0

    _open_phase: Optional[tuple[str, str, datetime]] = field(default=None, repr=False)

    @property
    def duration(self) -> float:
        if self.started_at and self.finished_at:
            return (self.finished_at - self.started_at).total_seconds()
        return 0.0

    @property
    def failed_phase(self) -> Optional[PhaseResult]:
        return next((p for p in self.phases if p.status == 'failed'), None)

    def start(self) -> None:
        self.started_at = datetime.now()
        self.report_dir.mkdir(parents=True, exist_ok=True)

    def start_phase(self, name: str, description: str) -> None:
        self._open_phase = (name, description, datetime.now())

    def pass_phase(self, name: str, message: str = '', duration: float = 0.0) -> None:
        self._close_phase(name, 'passed', message, duration)

    def fail_phase(self, name: str, message: str = '', duration: float = 0.0) -> None:
        self._close_phase(name, 'failed', message, duration)

    def skip_phase(self, name: str, description: str) -> None:
        self.phases.append(PhaseResult(name=name, description=description, status='skipped'))

    def _close_phase(self, name: str, status: str, message: str, duration: float) -> None:
        now = datetime.now()
        description, started = name, None
        if self._open_phase and self._open_phase[0] == name:
            _, description, started = self._open_phase
            if not duration:
                duration = (now - started).total_seconds()
        self.phases.append(PhaseResult(
            name=name,
            description=description,
            status=status,
            message=message,
            duration=duration,
            started_at=started,
            finished_at=now
        ))
        self._open_phase = None

    def finish(self, success: bool, error: Optional[Exception] = None, exit_code: int = 0) -> None:
        """Record the outcome and write the JSON and Markdown files."""
        self.finished_at = datetime.now()
        self.success = success
        self.error_type = type(error).__name__ if error is not None else None
        self.exit_code = exit_code
        self.path_for('json').write_text(json.dumps(self._document(), indent=2), encoding='utf-8')
        self.path_for('md').write_text(self._markdown(), encoding='utf-8')

    def path_for(self, ext: str) -> Path:
        timestamp = self.started_at.strftime('%Y%m%d-%H%M%S') if self.started_at else 'unknown'
        outcome = 'passed' if self.success else 'failed'
        return self.report_dir / f"{timestamp}.{self.scenario}-{self.mode}.{outcome}.{ext}"

    def _document(self) -> dict:
        return {
            'scenario': self.scenario,
            'mode': self.mode,
            'success': self.success,
            'exit_code': self.exit_code,
            'error_type': self.error_type,
            'started_at': self.started_at.isoformat() if self.started_at else None,
            'finished_at': self.finished_at.isoformat() if self.finished_at else None,
            'duration': round(self.duration, 1),
            'phases': [p.as_dict() for p in self.phases],
        }

    def _markdown(self) -> str:
        started = self.started_at.strftime('%Y-%m-%d %H:%M:%S') if self.started_at else 'N/A'
        lines = [
            f"# {self.scenario} ({self.mode})",
            "",
            f"**Status**: {'PASSED' if self.success else 'FAILED'}",
            f"**Date**: {started}",
            f"**Duration**: {self.duration:.1f}s",
        ]
        failed = self.failed_phase
        if failed is not None:
            lines.append(f"**Failed phase**: {failed.name} ({self.error_type or 'error'}, exit {self.exit_code})")
        lines += [
            "",
            "| Phase | Status | Duration | Message |",
            "|-------|--------|----------|---------|",
        ]
        for p in self.phases:
            message = p.message.replace('|', '\\|').replace('\n', ' ')
            lines.append(f"| {p.name} | {STATUS_MARKS.get(p.status, '?')} {p.status} "
                         f"| {p.duration:.1f}s | {message} |")
        return '\n'.join(lines) + '\n'

    def to_dict(self, context: Optional[dict] = None) -> dict:
        """Summary for --json-output.

        Context keys starting with '_' and values json cannot encode are left out.
        """
        result: dict[str, Any] = {
            'scenario': self.scenario,
            'mode': self.mode,
            'success': self.success,
            'exit_code': self.exit_code,
            'duration_seconds': round(self.duration, 1),
            'phases': [
                {'name': p.name, 'status': p.status, 'duration': round(p.duration, 1)}
                for p in self.phases
            ],
        }

        failed = self.failed_phase
        if failed is not None:
            result['failed_phase'] = failed.name
            result['error'] = failed.message
            if self.error_type:
                result['error_type'] = self.error_type

        if context:
            serializable = {}
            for key, value in context.items():
                if key.startswith('_'):
                    continue
                try:
                    json.dumps(value)
                except (TypeError, ValueError):
                    continue
                serializable[key] = value
            if serializable:
                result['context'] = serializable

        return result
