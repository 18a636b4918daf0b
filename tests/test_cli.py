"""Tests for CLI module."""

import json
import logging
import signal
import sys
from pathlib import Path
from unittest.mock import patch

sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

import pytest
from cli import _handle_sigterm, build_parser, main


@pytest.fixture(autouse=True)
def isolated_cli(monkeypatch):
    """Keep $KAFKA_TUTORIAL_CONFIG and main()'s logging setup out of other tests."""
    monkeypatch.delenv('KAFKA_TUTORIAL_CONFIG', raising=False)
    root_logger = logging.getLogger()
    handlers, level = root_logger.handlers[:], root_logger.level
    yield
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)


@pytest.fixture
def preflight_ok():
    """Preflight that finds every tool and a healthy chart repository."""
    with patch('validation.shutil.which', return_value='/usr/bin/tool'), \
         patch('validation.validate_chart_repository', return_value=(True, '4 pinned charts available')):
        yield


class TestModeArgument:
    """The installation method is validated before anything runs."""

    def test_missing_mode(self, fake_cluster, capsys):
        assert main([]) == 1
        err = capsys.readouterr().err
        assert "Installation method argument ('helm' or 'stackablectl') required." in err
        assert fake_cluster.calls == []

    @pytest.mark.parametrize('token', ['kubectl', 'Helm', 'stackable'])
    def test_invalid_mode(self, fake_cluster, capsys, token):
        assert main([token]) == 1
        err = capsys.readouterr().err
        assert "Need to provide 'helm' or 'stackablectl'" in err
        assert 'usage:' in err
        assert fake_cluster.calls == []

    def test_unknown_option_exits_1(self, fake_cluster):
        with pytest.raises(SystemExit) as exc_info:
            main(['helm', '--no-such-option'])
        assert exc_info.value.code == 1
        assert fake_cluster.calls == []

    def test_parser_defaults(self):
        args = build_parser().parse_args(['stackablectl'])
        assert args.mode == 'stackablectl'
        assert args.skip == []
        assert args.dry_run is False


class TestInformationalModes:
    """--list-phases, --dry-run and --preflight run no collaborators."""

    def test_list_phases_helm(self, fake_cluster, config_file, capsys):
        assert main(['helm', '--list-phases', '--config', str(config_file)]) == 0
        out = capsys.readouterr().out
        assert 'install_zookeeper_operator' in out
        assert 'check_data' in out
        assert fake_cluster.calls == []

    def test_list_phases_stackablectl(self, fake_cluster, config_file, capsys):
        assert main(['stackablectl', '--list-phases', '--config', str(config_file)]) == 0
        out = capsys.readouterr().out
        assert 'install_operators' in out
        assert 'add_repo' not in out

    def test_dry_run(self, fake_cluster, config_file, tmp_path, capsys):
        rc = main(['stackablectl', '--dry-run', '--config', str(config_file),
                   '--report-dir', str(tmp_path / 'reports')])
        assert rc == 0
        assert 'stackablectl operator install commons=0.5.0-nightly' in capsys.readouterr().out
        assert fake_cluster.calls == []

    def test_preflight_only(self, fake_cluster, config_file, preflight_ok, capsys):
        assert main(['helm', '--preflight', '--config', str(config_file)]) == 0
        out = capsys.readouterr().out
        assert 'All checks passed' in out
        assert fake_cluster.calls == []


class TestRun:
    """Full runs through main()."""

    def test_success(self, fake_cluster, config_file, tmp_path, preflight_ok):
        rc = main(['helm', '--config', str(config_file),
                   '--report-dir', str(tmp_path / 'reports')])
        assert rc == 0
        assert fake_cluster.ran('kafkacat', '-C', '-e')
        assert list((tmp_path / 'work').iterdir()) == []

    def test_sigterm_handler_restored(self, fake_cluster, config_file, tmp_path):
        before = signal.getsignal(signal.SIGTERM)
        main(['helm', '--config', str(config_file), '--skip-preflight',
              '--report-dir', str(tmp_path / 'reports')])
        assert signal.getsignal(signal.SIGTERM) == before

    def test_failure_exit_code(self, fake_cluster, config_file, tmp_path, capsys):
        fake_cluster.fail_when = lambda cmd: 'rollout' in cmd
        rc = main(['stackablectl', '--config', str(config_file), '--skip-preflight',
                   '--report-dir', str(tmp_path / 'reports')])
        assert rc == 4
        assert 'Error: zookeeper_rollout: Rollout of statefulset/simple-zk-server-default failed' \
            in capsys.readouterr().err

    def test_json_output(self, fake_cluster, config_file, tmp_path, capsys):
        fake_cluster.consumed = 'nothing useful\n'
        rc = main(['helm', '--json-output', '--config', str(config_file), '--skip-preflight',
                   '--report-dir', str(tmp_path / 'reports')])
        assert rc == 8
        data = json.loads(capsys.readouterr().out)
        assert data['success'] is False
        assert data['exit_code'] == 8
        assert data['error_type'] == 'DataAssertionError'
        assert data['failed_phase'] == 'check_data'

    def test_skip_option(self, fake_cluster, config_file, tmp_path):
        rc = main(['stackablectl', '--config', str(config_file), '--skip-preflight',
                   '--skip', 'install_operators', '--report-dir', str(tmp_path / 'reports')])
        assert rc == 0
        assert not fake_cluster.ran('stackablectl')

    def test_preflight_failure_stops_run(self, fake_cluster, config_file, tmp_path, capsys):
        with patch('validation.shutil.which', return_value=None):
            rc = main(['stackablectl', '--config', str(config_file),
                       '--report-dir', str(tmp_path / 'reports')])
        assert rc == 1
        err = capsys.readouterr().err
        assert "'stackablectl' not found on PATH" in err
        assert '--skip-preflight' in err
        assert fake_cluster.calls == []

    def test_config_error(self, fake_cluster, tmp_path, capsys):
        bad = tmp_path / 'bad.yaml'
        bad.write_text("settle_delay: -1\n")
        assert main(['helm', '--config', str(bad)]) == 1
        assert 'Error loading config' in capsys.readouterr().err
        assert fake_cluster.calls == []

    def test_quoted_port_is_config_error(self, fake_cluster, tmp_path, capsys):
        bad = tmp_path / 'bad.yaml'
        bad.write_text('kafka_port: "9092"\nsettle_delay: "5"\n')
        assert main(['helm', '--config', str(bad)]) == 1
        err = capsys.readouterr().err
        assert "Error loading config: 'kafka_port' must be an integer" in err
        assert 'Traceback' not in err
        assert fake_cluster.calls == []


class TestSigterm:
    """SIGTERM unwinds like Ctrl-C."""

    def test_handler_raises_keyboard_interrupt(self):
        with pytest.raises(KeyboardInterrupt):
            _handle_sigterm(signal.SIGTERM, None)

    def test_interrupted_run_exits_130(self, fake_cluster, config_file, tmp_path, capsys):
        fake_cluster.raise_when = lambda cmd: KeyboardInterrupt() if '-P' in cmd else None
        rc = main(['helm', '--config', str(config_file), '--skip-preflight',
                   '--report-dir', str(tmp_path / 'reports')])
        assert rc == 130
        assert 'Interrupted.' in capsys.readouterr().err
        assert fake_cluster.processes[0].terminate_calls == 1
        assert list((tmp_path / 'work').iterdir()) == []
