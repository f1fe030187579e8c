"""Solidity compilation and artifact storage for contract-lifecycle library."""

import json
import logging
import subprocess
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from . import abi as abi_codec
from .artifacts import load_artifact_file, parse_combined_json
from .config import LifecycleConfig
from .exceptions import ArtifactsUnavailable, CompilationError, DefectiveArtifactError
from .paths import get_artifact_path
from .types import Artifacts

logger = logging.getLogger(__name__)


class ContractCompiler:
    """Compiles Solidity with ``solc`` and stores artifacts per contract version."""

    def __init__(
        self,
        artifacts_dir: Optional[Union[Path, str]] = None,
        solc_binary: str = "solc",
        optimize: bool = True,
    ):
        self.artifacts_dir = artifacts_dir
        self.solc_binary = solc_binary
        self.optimize = optimize

    @classmethod
    def from_config(cls, config: LifecycleConfig) -> "ContractCompiler":
        return cls(artifacts_dir=config.artifacts_dir)

    def compile(self, source: str, name: str) -> Artifacts:
        """
        Compile Solidity source and return the named contract's artifacts.

        Args:
            source: Solidity source text
            name: Contract name to extract from the compiler output

        Returns:
            Artifacts with ABI and 0x-prefixed creation bytecode

        Raises:
            CompilationError: If solc is missing, fails, or doesn't emit the contract
        """
        with tempfile.TemporaryDirectory() as tmp_dir:
            source_path = Path(tmp_dir) / f"{name}.sol"
            source_path.write_text(source)

            command = [self.solc_binary, "--combined-json", "abi,bin"]
            if self.optimize:
                command.append("--optimize")
            command.append(str(source_path))

            try:
                result = subprocess.run(command, check=True, capture_output=True, text=True)
            except FileNotFoundError as e:
                raise CompilationError(f"Solidity compiler '{self.solc_binary}' not found") from e
            except subprocess.CalledProcessError as e:
                raise CompilationError(f"Failed to compile {name}: {e.stderr}") from e

        try:
            artifacts = parse_combined_json(json.loads(result.stdout), name)
        except (json.JSONDecodeError, DefectiveArtifactError) as e:
            raise CompilationError(f"Failed to compile {name}: {e}") from e

        logger.info("Compiled contract %s (%d bytes)", name, len(artifacts.bytecode) // 2 - 1)
        return artifacts

    def compile_from_file(self, path: Union[Path, str], name: str) -> Artifacts:
        """
        Compile a Solidity source file.

        Raises:
            ArtifactsUnavailable: If the file does not exist
            CompilationError: If the file cannot be read or compiled
        """
        source_path = Path(path)
        if not source_path.exists():
            raise ArtifactsUnavailable(f"Source file not found: {source_path}")

        try:
            source = source_path.read_text()
        except (OSError, UnicodeDecodeError) as e:
            raise CompilationError(f"Unable to read source file {source_path}: {e}") from e

        return self.compile(source, name)

    def load_artifacts(self, name: str, version: str) -> Optional[Artifacts]:
        """
        Load previously stored artifacts.

        Returns:
            Artifacts, or None if nothing is stored for this name/version
        """
        path = get_artifact_path(name, version, self.artifacts_dir)
        if not path.exists():
            return None
        return load_artifact_file(path, name)

    def store_artifacts(self, name: str, version: str, artifacts: Artifacts) -> Path:
        """
        Save artifacts for a contract version.

        Creates parent directories if they don't exist.

        Returns:
            Path the artifacts were written to
        """
        path = get_artifact_path(name, version, self.artifacts_dir)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(
                {
                    "contractName": name,
                    "version": version,
                    "abi": artifacts.abi,
                    "bytecode": artifacts.bytecode,
                    "compiledAt": datetime.now(timezone.utc).isoformat(),
                },
                f,
                indent=2,
            )
        return path

    @staticmethod
    def validate_abi(abi: Any) -> bool:
        return abi_codec.validate_abi(abi)

    @staticmethod
    def get_constructor(abi: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        return abi_codec.find_constructor(abi)

    @staticmethod
    def get_method(abi: List[Dict[str, Any]], name: str) -> Optional[Dict[str, Any]]:
        """Function entry by name, or None."""
        for entry in abi:
            if entry.get("type") == "function" and entry.get("name") == name:
                return entry
        return None
