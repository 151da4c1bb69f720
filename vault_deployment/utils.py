import json
import tempfile
from pathlib import Path
from typing import Dict, Optional, Union

import yaml
from eth_utils import encode_hex, keccak

from vault_deployment.constants import ARTIFACTS_DIR


def _load_yaml(filepath: Path) -> dict:
    """Loads a YAML file."""
    with open(filepath, "r") as file:
        return yaml.safe_load(file)


def _load_json(filepath: Path) -> dict:
    """Loads a JSON file."""
    with open(filepath, "r") as file:
        return json.load(file)


def get_artifact_filepath(config: Dict) -> Path:
    """Returns the filepath of the registry artifact."""
    artifact_config = config.get("artifacts", {})
    artifact_dir = Path(artifact_config.get("dir", ARTIFACTS_DIR))
    filename = artifact_config.get("filename")
    if not filename:
        raise ValueError("artifact filename is not set in units file.")
    return artifact_dir / filename


def validate_config(config: Dict) -> Path:
    """Checks the top-level shape of a units file and returns its registry filepath."""
    print("Validating units YAML...")

    if not isinstance(config, dict):
        raise ValueError("Malformed units YAML.")

    units = config.get("units")
    if not units:
        raise ValueError("Units file missing 'units' field.")
    if not isinstance(units, list):
        raise ValueError("'units' must be a list of unit declarations.")

    return get_artifact_filepath(config=config)


def fingerprint(bytecode: Union[bytes, str]) -> str:
    """Returns a content fingerprint of contract bytecode."""
    if isinstance(bytecode, str):
        bytecode = bytes.fromhex(bytecode[2:] if bytecode.startswith("0x") else bytecode)
    return encode_hex(keccak(bytecode))


def get_registry_filepath(
    default: Path, override: Optional[Path] = None, local: bool = False
) -> Path:
    """
    Returns where a run records its deployments. An explicit path always
    wins. Local networks start empty on every launch, so their deployments
    go to a throwaway registry instead of the durable artifact.
    """
    if override:
        return Path(override)
    if local:
        registry_filepath = Path(tempfile.mkdtemp(prefix="vault-deployment-")) / default.name
        print(f"(i) Local network; recording deployments in {registry_filepath}")
        return registry_filepath
    return Path(default)
