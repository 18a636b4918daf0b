"""Readiness checks for the tutorial's external collaborators.

Validates prerequisites before and during a run:
- Helm chart repository reachability and pinned chart versions
- Local port reachability (port-forward readiness)
"""

import socket

import requests
import yaml


def validate_chart_repository(repo_url: str, charts: dict[str, str],
                              timeout: float = 10.0) -> tuple[bool, str]:
    """Check that a Helm repository serves every pinned chart version.

    Fetches the repository's index.yaml and looks up each chart.

    Args:
        repo_url: Repository URL (e.g., https://repo.stackable.tech/repository/helm-dev/)
        charts: Mapping of chart name to pinned version
        timeout: HTTP timeout in seconds

    Returns:
        (success, message) tuple
    """
    index_url = repo_url.rstrip('/') + '/index.yaml'
    try:
        resp = requests.get(index_url, timeout=timeout)
    except requests.exceptions.ConnectionError as e:
        return False, f"Cannot connect to {repo_url}: {e}"
    except requests.exceptions.Timeout:
        return False, f"Timeout fetching {index_url}"
    except Exception as e:
        return False, f"Error fetching {index_url}: {e}"

    if resp.status_code != 200:
        return False, f"Unexpected response from {index_url}: {resp.status_code}"

    try:
        index = yaml.safe_load(resp.text) or {}
    except yaml.YAMLError as e:
        return False, f"Invalid repository index at {index_url}: {e}"

    entries = index.get('entries') or {}
    missing = []
    for chart, version in charts.items():
        versions = {str(e.get('version')) for e in entries.get(chart) or []}
        if version not in versions:
            missing.append(f"{chart}@{version}")

    if missing:
        return False, f"Charts not found in {repo_url}: {', '.join(missing)}"
    return True, f"{len(charts)} pinned charts available in {repo_url}"


def validate_host_reachable(host: str, port: int = 9092, timeout: float = 5.0) -> tuple[bool, str]:
    """Check if host is reachable on specified port.

    Args:
        host: Hostname or IP
        port: Port to check (default: 9092 for the Kafka client port)
        timeout: Connection timeout in seconds

    Returns:
        (success, message) tuple
    """
    try:
        sock = socket.create_connection((host, port), timeout=timeout)
        sock.close()
        return True, f"Host {host} reachable on port {port}"
    except socket.timeout:
        return False, f"Timeout connecting to {host}:{port}"
    except socket.error as e:
        return False, f"Cannot connect to {host}:{port}: {e}"
