"""Kafka getting-started guide scenario.

Installs the operators, deploys ZooKeeper and Kafka from the guide's
manifests, then checks a produce/consume round-trip through a port-forward:

    kafka-getting-started helm
    kafka-getting-started stackablectl
"""

from typing import Any

from actions import (
    CheckTestDataAction,
    HelmInstallAction,
    HelmRepoAddAction,
    KubectlApplyAction,
    PortForwardAction,
    ReadTestDataAction,
    RolloutStatusAction,
    SleepAction,
    StackablectlInstallAction,
    WriteTestDataAction,
)
from common import InstallMode
from config import TutorialConfig
from scenarios import register_scenario


def _helm_phases(config: TutorialConfig) -> list[tuple[str, Any, str]]:
    phases: list[tuple[str, Any, str]] = [
        ('add_repo', HelmRepoAddAction(
            name='helm-add-repo',
        ), f"Add '{config.helm_repo_name}' Helm Chart repository"),
    ]
    for operator, version in config.operators.items():
        phases.append((f'install_{operator}_operator', HelmInstallAction(
            name=f'helm-install-{operator}',
            operator=operator,
            version=version,
        ), f'Install {operator}-operator {version} with Helm'))
    return phases


def _stackablectl_phases(config: TutorialConfig) -> list[tuple[str, Any, str]]:
    return [
        ('install_operators', StackablectlInstallAction(
            name='stackablectl-install-operators',
            operators=dict(config.operators),
        ), 'Install operators with stackablectl'),
    ]


_INSTALLERS = {
    InstallMode.HELM: _helm_phases,
    InstallMode.STACKABLECTL: _stackablectl_phases,
}


def install_phases(mode: InstallMode, config: TutorialConfig) -> list[tuple[str, Any, str]]:
    """Operator installation phases for the chosen front-end."""
    return _INSTALLERS[mode](config)


@register_scenario
class GettingStarted:
    """Walk through the getting-started guide and verify it works."""

    name = 'getting-started'
    description = 'Install operators, deploy ZooKeeper and Kafka, check a produce/consume round-trip'

    def __init__(self, mode: InstallMode):
        self.mode = mode

    def get_phases(self, config: TutorialConfig) -> list[tuple[str, Any, str]]:
        """Return phases for the guide in document order."""
        return install_phases(self.mode, config) + [
            ('apply_zookeeper', KubectlApplyAction(
                name='install-zookeeper',
                manifest_attr='zookeeper_manifest',
            ), f'Install ZooKeeper from {config.zookeeper_manifest}'),

            ('apply_znode', KubectlApplyAction(
                name='install-znode',
                manifest_attr='znode_manifest',
            ), f'Install ZNode from {config.znode_manifest}'),

            ('settle_zookeeper', SleepAction(
                name='settle-zookeeper',
            ), 'Give the ZooKeeper operator time to create its workload'),

            ('zookeeper_rollout', RolloutStatusAction(
                name='watch-zookeeper-rollout',
                workload_attr='zookeeper_workload',
            ), 'Await ZooKeeper rollout finish'),

            ('apply_kafka', KubectlApplyAction(
                name='install-kafka',
                manifest_attr='kafka_manifest',
            ), f'Install KafkaCluster from {config.kafka_manifest}'),

            ('settle_kafka', SleepAction(
                name='settle-kafka',
            ), 'Give the Kafka operator time to create its workload'),

            ('kafka_rollout', RolloutStatusAction(
                name='watch-kafka-rollout',
                workload_attr='kafka_workload',
            ), 'Await Kafka rollout finish'),

            ('port_forward', PortForwardAction(
                name='port-forwarding',
            ), f'Start port-forwarding of port {config.kafka_port}'),

            ('settle_port_forward', SleepAction(
                name='settle-port-forward',
            ), 'Give the port-forward time to bind'),

            ('write_data', WriteTestDataAction(
                name='kcat-write-data',
            ), 'Create and write test data'),

            ('read_data', ReadTestDataAction(
                name='kcat-read-data',
            ), 'Read test data'),

            ('check_data', CheckTestDataAction(
                name='kcat-check-data',
            ), 'Check contents'),
        ]
