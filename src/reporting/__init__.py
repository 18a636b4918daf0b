"""Run reporting."""

from reporting.report import PhaseResult, RunReport

__all__ = ['PhaseResult', 'RunReport']
