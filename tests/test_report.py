#!/usr/bin/env python3
"""Tests for reporting/report.py."""

import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from common import DataAssertionError
from reporting import RunReport


def _report(tmp_path):
    report = RunReport(mode='helm', report_dir=tmp_path / 'reports')
    report.start()
    return report


class TestRunReport:
    """Phase bookkeeping and report files."""

    def test_start_creates_report_dir(self, tmp_path):
        _report(tmp_path)
        assert (tmp_path / 'reports').is_dir()

    def test_records_phases(self, tmp_path):
        report = _report(tmp_path)
        report.start_phase('add_repo', 'Add repo')
        report.pass_phase('add_repo', 'added', 1.5)
        report.skip_phase('install_commons_operator', 'Install commons')
        report.start_phase('apply_zookeeper', 'Install ZooKeeper')
        report.fail_phase('apply_zookeeper', 'boom')
        assert [(p.name, p.status) for p in report.phases] == [
            ('add_repo', 'passed'),
            ('install_commons_operator', 'skipped'),
            ('apply_zookeeper', 'failed'),
        ]
        assert report.phases[0].duration == 1.5
        assert report.phases[2].description == 'Install ZooKeeper'
        assert report.phases[2].started_at is not None
        assert report.failed_phase is report.phases[2]

    def test_phase_without_start_uses_name(self, tmp_path):
        report = _report(tmp_path)
        report.fail_phase('check_data', 'Timeout exceeded')
        assert report.phases[0].description == 'check_data'
        assert report.phases[0].started_at is None

    def test_finish_writes_json_and_markdown(self, tmp_path):
        report = _report(tmp_path)
        report.start_phase('check_data', 'Check contents')
        report.pass_phase('check_data', 'found', 0.1)
        report.finish(True)

        files = sorted((tmp_path / 'reports').iterdir())
        assert [f.suffix for f in files] == ['.json', '.md']
        assert all('.getting-started-helm.passed.' in f.name for f in files)

        data = json.loads(files[0].read_text())
        assert data['mode'] == 'helm'
        assert data['success'] is True
        assert data['exit_code'] == 0
        assert data['error_type'] is None
        assert data['phases'][0]['message'] == 'found'

        markdown = files[1].read_text()
        assert markdown.startswith('# getting-started (helm)')
        assert '**Status**: PASSED' in markdown
        assert '| check_data |' in markdown
        assert 'Failed phase' not in markdown

    def test_failed_run(self, tmp_path):
        report = _report(tmp_path)
        report.fail_phase('check_data', "'some test data' not found | in topic")
        report.finish(False, DataAssertionError('missing'), 8)

        assert report.path_for('json').name.endswith('.getting-started-helm.failed.json')
        data = json.loads(report.path_for('json').read_text())
        assert data['error_type'] == 'DataAssertionError'
        assert data['exit_code'] == 8
        markdown = report.path_for('md').read_text()
        assert '**Failed phase**: check_data (DataAssertionError, exit 8)' in markdown
        assert 'not found \\| in topic' in markdown

    def test_to_dict_filters_context(self, tmp_path):
        report = _report(tmp_path)
        report.pass_phase('port_forward', 'ok')
        report.fail_phase('check_data', 'missing payload')
        report.finish(False, DataAssertionError('missing payload'), 8)
        data = report.to_dict({'_cleanup': object(), 'port_forward_pid': 4242, 'handle': object()})
        assert data['error'] == 'missing payload'
        assert data['failed_phase'] == 'check_data'
        assert data['error_type'] == 'DataAssertionError'
        assert data['exit_code'] == 8
        assert data['context'] == {'port_forward_pid': 4242}

    def test_to_dict_success_has_no_error(self, tmp_path):
        report = _report(tmp_path)
        report.finish(True)
        data = report.to_dict()
        assert 'error' not in data
        assert 'context' not in data
