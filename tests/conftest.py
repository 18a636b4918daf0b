"""Shared pytest fixtures for kafka-getting-started tests."""

import shutil
import subprocess
import sys
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))


def _has_cluster():
    """Check if a Kubernetes cluster and the guide's tools are available."""
    for tool in ('kubectl', 'helm', 'kafkacat'):
        if shutil.which(tool) is None:
            return False
    try:
        result = subprocess.run(
            ['kubectl', 'cluster-info'],
            capture_output=True, timeout=15, check=False,
        )
        return result.returncode == 0
    except Exception:
        return False


def pytest_collection_modifyitems(config, items):
    """Skip tests marked with requires_cluster when no cluster is reachable."""
    if not any("requires_cluster" in item.keywords for item in items):
        return
    if _has_cluster():
        return
    skip_marker = pytest.mark.skip(reason="requires a Kubernetes cluster with kubectl, helm and kafkacat")
    for item in items:
        if "requires_cluster" in item.keywords:
            item.add_marker(skip_marker)


class FakeProcess:
    """Stand-in for the port-forward subprocess.Popen handle."""

    def __init__(self, pid=4242, exit_code=None):
        self.pid = pid
        self.returncode = exit_code
        self.terminate_calls = 0
        self.kill_calls = 0

    def poll(self):
        return self.returncode

    def wait(self, timeout=None):
        if self.returncode is None:
            raise subprocess.TimeoutExpired('kubectl port-forward', timeout)
        return self.returncode

    def terminate(self):
        self.terminate_calls += 1
        self.returncode = -15

    def kill(self):
        self.kill_calls += 1
        self.returncode = -9


class FakeCluster:
    """Answers collaborator commands the way a healthy cluster would.

    fail_when: predicate on the argv; matching commands return rc=1.
    raise_when: returns an exception to raise for an argv, or None.
    consumed: what kafkacat -C prints.
    """

    def __init__(self, fail_when=None, consumed='some test data\n', raise_when=None):
        self.fail_when = fail_when
        self.raise_when = raise_when
        self.consumed = consumed
        self.calls = []
        self.processes = []

    def run_command(self, cmd, cwd=None, timeout=600, capture=True, env=None, encoding=None, errors=None):
        self.calls.append(list(cmd))
        if self.raise_when:
            exc = self.raise_when(cmd)
            if exc is not None:
                raise exc
        if self.fail_when and self.fail_when(cmd):
            return 1, '', f"error: {cmd[0]} failed"
        if '-C' in cmd:
            return 0, self.consumed, ''
        if 'rollout' in cmd:
            return 0, 'statefulset rolling update complete 1 pods at revision x...\n', ''
        return 0, '', ''

    def start_background(self, cmd, cwd=None):
        self.calls.append(list(cmd))
        process = FakeProcess(pid=4242 + len(self.processes))
        self.processes.append(process)
        return process

    def ran(self, *words):
        """True if some recorded command contains all the given words."""
        return any(all(w in cmd for w in words) for cmd in self.calls)


@pytest.fixture
def fake_cluster(monkeypatch):
    """Route every collaborator invocation to a FakeCluster."""
    cluster = FakeCluster()
    for module in ('actions.helm', 'actions.stackablectl', 'actions.kubectl', 'actions.kcat'):
        monkeypatch.setattr(f'{module}.run_command', cluster.run_command)
    monkeypatch.setattr('actions.kubectl.start_background', cluster.start_background)
    return cluster


@pytest.fixture
def tutorial_config(tmp_path):
    """TutorialConfig writing temp files into tmp_path with no settle delays."""
    from config import TutorialConfig
    work_dir = tmp_path / 'work'
    work_dir.mkdir()
    return TutorialConfig(work_dir=work_dir, settle_delay=0)


@pytest.fixture
def cleanup_context():
    """Context dict carrying a cleanup stack, closed after the test."""
    from contextlib import ExitStack
    with ExitStack() as stack:
        yield {'_cleanup': stack}


@pytest.fixture
def config_file(tmp_path):
    """Write a config file pointing work_dir at tmp_path/work."""
    (tmp_path / 'work').mkdir(exist_ok=True)
    path = tmp_path / 'kafka-tutorial.yaml'
    path.write_text("""
work_dir: work
settle_delay: 0
""")
    return path
