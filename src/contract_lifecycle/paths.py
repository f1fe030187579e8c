"""Path management utilities for contract-lifecycle library."""

from pathlib import Path
from typing import Optional, Union


def get_default_artifacts_dir() -> Path:
    """
    Get default artifact directory.

    Returns:
        Path to ./.contract-artifacts
    """
    return Path.cwd() / ".contract-artifacts"


def get_artifact_path(
    name: str, version: str, artifacts_root: Optional[Union[Path, str]] = None
) -> Path:
    """
    Get the artifact file path for a contract version.

    Args:
        name: Contract name
        version: Contract version
        artifacts_root: Custom artifact directory (defaults to ./.contract-artifacts)

    Returns:
        Path to {artifacts_root}/{name}/{version}.json
    """
    if artifacts_root is None:
        artifacts_root = get_default_artifacts_dir()
    else:
        artifacts_root = Path(artifacts_root).absolute()

    return artifacts_root / name / f"{version}.json"
