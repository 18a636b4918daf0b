"""Reusable tutorial actions."""

from actions.helm import HelmRepoAddAction, HelmInstallAction
from actions.stackablectl import StackablectlInstallAction
from actions.kubectl import KubectlApplyAction, RolloutStatusAction, PortForwardAction
from actions.kcat import WriteTestDataAction, ReadTestDataAction, CheckTestDataAction
from actions.local import SleepAction

__all__ = [
    'HelmRepoAddAction',
    'HelmInstallAction',
    'StackablectlInstallAction',
    'KubectlApplyAction',
    'RolloutStatusAction',
    'PortForwardAction',
    'WriteTestDataAction',
    'ReadTestDataAction',
    'CheckTestDataAction',
    'SleepAction',
]
