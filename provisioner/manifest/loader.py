# provisioner/manifest/loader.py
"""Reading manifests and compose descriptors from disk."""

from pathlib import Path
from typing import List, Optional, Union

import yaml

from provisioner.core.errors import ManifestLoadError


MANIFEST_FILENAME = "provision.yaml"
COMPOSE_FILENAMES = ("docker-compose.yaml", "docker-compose.yml", "compose.yaml", "compose.yml")


def subdomain_from_path(path: Union[str, Path]) -> str:
    """
    Derive the subdomain a manifest file stands for.

    Supports both layouts:
    - apps/hello.yaml           -> hello
    - apps/hello/provision.yaml -> hello
    """
    path = Path(path)
    if path.name == MANIFEST_FILENAME:
        return path.parent.name
    return path.stem


def parse_manifest(content: str, source: str = "<string>") -> dict:
    """Parse YAML text that must hold a single mapping."""
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ManifestLoadError(f"Failed to parse YAML in {source}: {e}")

    if not isinstance(data, dict):
        raise ManifestLoadError(f"{source} must contain a YAML mapping")
    return data


def load_manifest_file(path: Union[str, Path]) -> dict:
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ManifestLoadError(f"Cannot read {path}: {e}")
    return parse_manifest(content, source=str(path))


def find_compose_descriptor(manifest_path: Union[str, Path]) -> Optional[dict]:
    """
    Load the compose file of an apps/<name>/provision.yaml manifest, if any.

    Flat apps/<name>.yaml manifests share their directory with every other
    app, so they never pick up a compose file.
    """
    manifest_path = Path(manifest_path)
    if manifest_path.name != MANIFEST_FILENAME:
        return None

    directory = manifest_path.parent
    for filename in COMPOSE_FILENAMES:
        candidate = directory / filename
        if candidate.is_file():
            return load_manifest_file(candidate)
    return None


def discover_manifests(apps_root: Union[str, Path]) -> List[Path]:
    """All manifests under an apps directory, sorted by subdomain."""
    root = Path(apps_root)
    if not root.is_dir():
        return []

    found = []
    for entry in root.iterdir():
        if entry.is_dir() and (entry / MANIFEST_FILENAME).is_file():
            found.append(entry / MANIFEST_FILENAME)
        elif entry.is_file() and entry.suffix in (".yaml", ".yml") and entry.name not in COMPOSE_FILENAMES:
            found.append(entry)

    return sorted(found, key=subdomain_from_path)
