"""Tutorial configuration management.

Defaults reproduce the literals of the Kafka getting-started guide. Any of
them can be overridden from a YAML file:

    operators:
      commons: 0.5.0-nightly
      kafka: 0.9.0-nightly
    namespace: kafka-docs
    kafkacat_binary: kcat
    rollout_timeout: 600

Resolution order for the config file:
1. --config PATH on the command line
2. $KAFKA_TUTORIAL_CONFIG environment variable
3. ./kafka-tutorial.yaml in the current directory
4. Built-in defaults (no file)
"""

import dataclasses
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = 'KAFKA_TUTORIAL_CONFIG'
DEFAULT_CONFIG_NAME = 'kafka-tutorial.yaml'

# Pinned operator versions for the guide, in installation order
DEFAULT_OPERATORS = {
    'commons': '0.5.0-nightly',
    'secret': '0.6.0-nightly',
    'zookeeper': '0.13.0-nightly',
    'kafka': '0.9.0-nightly',
}


class ConfigError(Exception):
    """Configuration error."""


_STR_FIELDS = (
    'name', 'helm_repo_name', 'helm_repo_url',
    'zookeeper_manifest', 'znode_manifest', 'kafka_manifest',
    'zookeeper_workload', 'kafka_workload', 'kafka_service',
    'topic', 'payload', 'kafkacat_binary', 'data_file', 'read_data_file',
)


def _check_type(name: str, value, kinds: tuple, label: str, optional: bool = False) -> None:
    """Raise ConfigError unless value is one of kinds. bool never counts as a number."""
    if value is None and optional:
        return
    if isinstance(value, bool) and bool not in kinds:
        ok = False
    else:
        ok = isinstance(value, kinds)
    if not ok:
        raise ConfigError(f"'{name}' must be {label}, got {type(value).__name__} {value!r}")


def get_base_dir() -> Path:
    """Get the repository directory."""
    return Path(__file__).parent.parent  # src/ -> repo/


@dataclass
class TutorialConfig:
    """Settings for one run of the getting-started guide."""
    name: str = 'getting-started'

    # Operator installation
    operators: dict = field(default_factory=lambda: dict(DEFAULT_OPERATORS))
    helm_repo_name: str = 'stackable-dev'
    helm_repo_url: str = 'https://repo.stackable.tech/repository/helm-dev/'

    # Cluster resources
    manifest_dir: Path = field(default_factory=lambda: get_base_dir() / 'manifests')
    zookeeper_manifest: str = 'zookeeper.yaml'
    znode_manifest: str = 'kafka-znode.yaml'
    kafka_manifest: str = 'kafka.yaml'
    zookeeper_workload: str = 'statefulset/simple-zk-server-default'
    kafka_workload: str = 'statefulset/simple-kafka-broker-default'
    kafka_service: str = 'simple-kafka'
    namespace: Optional[str] = None
    rollout_timeout: Optional[int] = None  # seconds; None defers to kubectl

    # Data round-trip
    kafka_port: int = 9092
    topic: str = 'test-data-topic'
    payload: str = 'some test data'
    kafkacat_binary: str = 'kafkacat'
    work_dir: Path = field(default_factory=Path.cwd)
    data_file: str = 'data'
    read_data_file: str = 'read-data'

    # Readiness
    settle_delay: float = 5.0
    port_forward_probe: bool = False
    port_forward_probe_timeout: float = 30.0

    def __post_init__(self):
        if isinstance(self.manifest_dir, str):
            self.manifest_dir = Path(self.manifest_dir)
        if isinstance(self.work_dir, str):
            self.work_dir = Path(self.work_dir)

    @property
    def broker_address(self) -> str:
        """Address of the port-forwarded Kafka broker."""
        return f'localhost:{self.kafka_port}'

    def manifest_path(self, filename: str) -> Path:
        """Absolute path of a manifest shipped with the guide."""
        return self.manifest_dir / filename

    def kubectl(self, *args: str) -> list[str]:
        """Build a kubectl command, scoped to the configured namespace."""
        cmd = ['kubectl']
        if self.namespace:
            cmd += ['-n', self.namespace]
        return cmd + list(args)

    def validate(self) -> None:
        """Raise ConfigError on values no run could succeed with."""
        for name in _STR_FIELDS:
            _check_type(name, getattr(self, name), (str,), "a string")
        _check_type('namespace', self.namespace, (str,), "a string", optional=True)
        _check_type('port_forward_probe', self.port_forward_probe, (bool,), "true or false")
        _check_type('kafka_port', self.kafka_port, (int,), "an integer")
        _check_type('rollout_timeout', self.rollout_timeout, (int,), "an integer", optional=True)
        _check_type('settle_delay', self.settle_delay, (int, float), "a number")
        _check_type('port_forward_probe_timeout', self.port_forward_probe_timeout, (int, float), "a number")

        if not isinstance(self.operators, dict) or not self.operators:
            raise ConfigError("'operators' must be a non-empty mapping of name to version")
        for op, version in self.operators.items():
            if not version:
                raise ConfigError(f"Operator '{op}' has no version")
            if not isinstance(version, str):
                raise ConfigError(f"Operator '{op}' version must be a string, got {type(version).__name__}")
        if self.settle_delay < 0:
            raise ConfigError(f"'settle_delay' must not be negative (got {self.settle_delay})")
        if self.rollout_timeout is not None and self.rollout_timeout <= 0:
            raise ConfigError(f"'rollout_timeout' must be positive (got {self.rollout_timeout})")
        if not 0 < self.kafka_port < 65536:
            raise ConfigError(f"'kafka_port' out of range: {self.kafka_port}")
        if not self.payload:
            raise ConfigError("'payload' must not be empty")


def _parse_yaml(path: Path) -> dict:
    """Parse a YAML file and return contents."""
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping, got {type(data).__name__}")
    return data


def find_config_file(path: Optional[Path] = None) -> Optional[Path]:
    """Discover the config file to load, or None for built-in defaults."""
    # 1. Explicit path (highest priority)
    if path is not None:
        if not path.exists():
            raise ConfigError(f"Config file {path} does not exist")
        return path

    # 2. Environment variable
    if env_path := os.environ.get(CONFIG_ENV_VAR):
        candidate = Path(env_path)
        if candidate.exists():
            return candidate
        raise ConfigError(f"{CONFIG_ENV_VAR}={env_path} does not exist")

    # 3. Working directory
    local = Path.cwd() / DEFAULT_CONFIG_NAME
    if local.exists():
        return local

    return None


def load_config(path: Optional[Path] = None) -> TutorialConfig:
    """Load tutorial configuration, merging file values over defaults."""
    config_file = find_config_file(path)
    if config_file is None:
        config = TutorialConfig()
        config.validate()
        return config

    logger.debug(f"Loading config from {config_file}")
    data = _parse_yaml(config_file)

    known = {f.name for f in dataclasses.fields(TutorialConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown keys in {config_file}: {', '.join(unknown)}")

    # Relative paths resolve against the config file's directory
    for key in ('manifest_dir', 'work_dir'):
        if key in data:
            if not isinstance(data[key], str):
                raise ConfigError(f"'{key}' must be a path string in {config_file}")
            candidate = Path(data[key]).expanduser()
            if not candidate.is_absolute():
                candidate = config_file.parent / candidate
            data[key] = candidate

    if 'operators' in data and isinstance(data['operators'], dict):
        # YAML reads 23.4 as a float; a bare key reads as null
        for op, version in data['operators'].items():
            if version is None or version == '':
                raise ConfigError(f"Operator '{op}' has no version in {config_file}")
        data['operators'] = {str(k): str(v) for k, v in data['operators'].items()}

    try:
        config = TutorialConfig(**data)
    except TypeError as e:
        raise ConfigError(f"Invalid config in {config_file}: {e}") from e
    config.validate()
    return config
