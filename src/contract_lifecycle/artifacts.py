"""Compiler artifact file formats for contract-lifecycle library."""

import json
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from .exceptions import DefectiveArtifactError
from .types import Artifacts
from .utils import add_hex_prefix


class ArtifactFormat(Enum):
    """
    Artifact file format types.

    - STORED: Written by ContractCompiler.store_artifacts ({abi, bytecode})
    - HARDHAT: Hardhat/Truffle artifact ({contractName, abi, bytecode, ...})
    - SOLC_COMBINED: Output of ``solc --combined-json abi,bin``
    """

    STORED = "stored"
    HARDHAT = "hardhat"
    SOLC_COMBINED = "solc-combined"


def detect_artifact_format(data: Dict[str, Any]) -> Optional[ArtifactFormat]:
    """
    Detect which artifact format a parsed JSON document uses.

    Args:
        data: Parsed artifact JSON

    Returns:
        ArtifactFormat, or None if the document matches no known format
    """
    if "contracts" in data and isinstance(data["contracts"], dict):
        return ArtifactFormat.SOLC_COMBINED

    if "abi" in data and ("contractName" in data or "deployedBytecode" in data):
        return ArtifactFormat.HARDHAT

    if "abi" in data and "bytecode" in data:
        return ArtifactFormat.STORED

    return None


def parse_artifact(data: Dict[str, Any], name: str) -> Artifacts:
    """
    Extract ABI and bytecode from an artifact document.

    Args:
        data: Parsed artifact JSON
        name: Contract name (selects the contract in combined-json output)

    Returns:
        Artifacts with bytecode normalized to a 0x prefix

    Raises:
        DefectiveArtifactError: If format is unknown or ABI/bytecode is missing
    """
    artifact_format = detect_artifact_format(data)

    if artifact_format is ArtifactFormat.SOLC_COMBINED:
        return parse_combined_json(data, name)

    if artifact_format is None:
        raise DefectiveArtifactError(f"Unrecognized artifact format for contract '{name}'")

    bytecode = data.get("bytecode")
    # Truffle-style nested {"object": "..."} bytecode
    if isinstance(bytecode, dict):
        bytecode = bytecode.get("object")

    if not bytecode:
        raise DefectiveArtifactError(f"Missing bytecode in artifact for contract '{name}'")

    return Artifacts(abi=_abi(data["abi"]), bytecode=add_hex_prefix(bytecode))


def parse_combined_json(data: Dict[str, Any], name: str) -> Artifacts:
    """
    Pick one contract out of ``solc --combined-json`` output.

    Keys look like ``path/to/File.sol:Name``; the first key ending in
    ``:{name}`` (or equal to ``name``) wins.
    """
    for key, contract in data.get("contracts", {}).items():
        if key == name or key.endswith(f":{name}"):
            if not contract.get("bin"):
                raise DefectiveArtifactError(
                    f"Compiler produced no bytecode for contract '{name}' (abstract or interface?)"
                )
            return Artifacts(
                abi=_abi(contract.get("abi", [])), bytecode=add_hex_prefix(contract["bin"])
            )

    raise DefectiveArtifactError(f"Contract '{name}' not found in compiler output")


def load_artifact_file(file_path: Path, name: str) -> Artifacts:
    """Read and parse an artifact file of any supported format."""
    with open(file_path) as f:
        data = json.load(f)
    return parse_artifact(data, name)


def _abi(abi: Any) -> Any:
    # Older solc releases emit the ABI as a JSON string
    return json.loads(abi) if isinstance(abi, str) else abi

