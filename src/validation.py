"""Pre-flight validation checks for the getting-started scenario.

Catches missing tools and broken inputs before any collaborator touches the
cluster, with actionable error messages.
"""

import logging
import shutil
import yaml

from actions.helm import chart_name
from common import InstallMode
from config import TutorialConfig
from readiness import validate_chart_repository

logger = logging.getLogger(__name__)

# Where to get each binary when it is missing
INSTALL_HINTS = {
    'helm': 'https://helm.sh/docs/intro/install/',
    'stackablectl': 'https://docs.stackable.tech/stackablectl/stable/installation.html',
    'kubectl': 'https://kubernetes.io/docs/tasks/tools/',
    'kafkacat': 'apt install kafkacat (or kcat; set kafkacat_binary in the config)',
    'kcat': 'apt install kcat',
}


# -----------------------------------------------------------------------------
# Tool availability
# -----------------------------------------------------------------------------

def required_tools(config: TutorialConfig, mode: InstallMode) -> list[str]:
    """Binaries the scenario invokes for the given mode."""
    installer = 'helm' if mode is InstallMode.HELM else 'stackablectl'
    return [installer, 'kubectl', config.kafkacat_binary]


def validate_tools(tools: list[str]) -> list[str]:
    """Check every tool is on PATH.

    Returns:
        List of validation error messages (empty if valid)
    """
    errors = []
    for tool in tools:
        if shutil.which(tool) is None:
            hint = INSTALL_HINTS.get(tool)
            message = f"'{tool}' not found on PATH"
            if hint:
                message += f"\n  Install: {hint}"
            errors.append(message)
    return errors


# -----------------------------------------------------------------------------
# Manifest validation
# -----------------------------------------------------------------------------

def validate_manifests(config: TutorialConfig) -> list[str]:
    """Check the guide's manifests exist and parse as Kubernetes objects.

    Returns:
        List of validation error messages (empty if valid)
    """
    errors = []
    for filename in (config.zookeeper_manifest, config.znode_manifest, config.kafka_manifest):
        path = config.manifest_path(filename)
        if not path.exists():
            errors.append(f"Manifest not found: {path}")
            continue
        try:
            with open(path, encoding="utf-8") as f:
                docs = [d for d in yaml.safe_load_all(f) if d is not None]
        except yaml.YAMLError as e:
            errors.append(f"Invalid YAML in {path}: {e}")
            continue
        for doc in docs:
            if not isinstance(doc, dict) or 'kind' not in doc or 'apiVersion' not in doc:
                errors.append(f"{path} contains an object without kind/apiVersion")
                break
        if not docs:
            errors.append(f"{path} is empty")
    return errors


# -----------------------------------------------------------------------------
# Standalone preflight
# -----------------------------------------------------------------------------

def run_preflight_checks(config: TutorialConfig, mode: InstallMode,
                         check_repository: bool = True) -> tuple[bool, dict]:
    """Run preflight checks for a tutorial run.

    Args:
        config: Tutorial configuration
        mode: Operator installation front-end
        check_repository: Fetch the Helm repository index (helm mode only)

    Returns:
        (success, results) tuple where results contains check details
    """
    results: dict[str, dict[str, list[str]]] = {
        'tools': {'passed': [], 'failed': []},
        'manifests': {'passed': [], 'failed': []},
        'repository': {'passed': [], 'failed': []},
    }

    tools = required_tools(config, mode)
    tool_errors = validate_tools(tools)
    results['tools']['failed'].extend(tool_errors)
    if not tool_errors:
        results['tools']['passed'].append(f"Found on PATH: {', '.join(tools)}")

    manifest_errors = validate_manifests(config)
    results['manifests']['failed'].extend(manifest_errors)
    if not manifest_errors:
        results['manifests']['passed'].append(f"Manifests valid in {config.manifest_dir}")

    if mode is InstallMode.HELM and check_repository:
        charts = {chart_name(op): version for op, version in config.operators.items()}
        ok, message = validate_chart_repository(config.helm_repo_url, charts)
        results['repository']['passed' if ok else 'failed'].append(message)

    success = all(not category['failed'] for category in results.values())
    if not success:
        logger.debug(f"Preflight failed: {results}")
    return success, results


def format_preflight_results(mode: InstallMode, results: dict) -> str:
    """Format preflight check results for display.

    Args:
        mode: Installation mode that was checked
        results: Results dict from run_preflight_checks

    Returns:
        Formatted string for display
    """
    lines = [f"\nPreflight checks for '{mode.value}' mode:\n"]

    category_names = {
        'tools': 'Tools',
        'manifests': 'Manifests',
        'repository': 'Chart repository',
    }

    for key, name in category_names.items():
        category = results.get(key, {'passed': [], 'failed': []})
        if category['passed'] or category['failed']:
            lines.append(f"{name}:")
            for item in category['passed']:
                lines.append(f"✓ {item}")
            for item in category['failed']:
                # Handle multi-line errors
                first_line = item.split('\n')[0]
                lines.append(f"✗ {first_line}")
                for line in item.split('\n')[1:]:
                    lines.append(f"  {line}")
            lines.append("")

    all_passed = all(
        len(cat['failed']) == 0
        for cat in results.values()
    )

    if all_passed:
        lines.append("All checks passed. Ready to run the guide.")
    else:
        lines.append("Some checks failed. Fix issues before running the guide.")

    return '\n'.join(lines)
