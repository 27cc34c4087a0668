"""
Configuration Loader (``supply_config.loader``).

Responsibility
--------------
Loads ``supply.yaml`` and parses it into the typed ``supply_config.schema``
dataclasses.  The single public entry point for runtime config is
``supply_config.get_active_config()``.

Invariants enforced
-------------------
* Unknown top-level sections and unknown keys raise ``ValueError``; a
  typo never silently falls back to a default.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the raw
  document for configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Invalid values  -> ``ValueError`` from the schema.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from supply_config.schema import (
    DatabaseConfig,
    InvoiceConfig,
    LoggingConfig,
    MoneyConfig,
    SequenceConfig,
    SupplyConfig,
)

CONFIG_FILENAME = "supply.yaml"

_SECTIONS = {
    "money": MoneyConfig,
    "sequence": SequenceConfig,
    "invoice": InvoiceConfig,
    "database": DatabaseConfig,
    "logging": LoggingConfig,
}

_ROOT_KEYS = frozenset({"config_id", "version"}) | frozenset(_SECTIONS)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    return data


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def _parse_section(name: str, data: Any):
    section_cls = _SECTIONS[name]
    if data is None:
        return section_cls()
    if not isinstance(data, dict):
        raise ValueError(f"{name} must be a mapping")
    allowed = set(section_cls.__dataclass_fields__)
    unknown = set(data) - allowed
    if unknown:
        raise ValueError(f"{name} has unknown keys: {sorted(unknown)}")
    if name == "sequence" and "prefixes" in data:
        prefixes = data["prefixes"] or {}
        if not isinstance(prefixes, dict):
            raise ValueError("sequence.prefixes must be a mapping")
        defaults = section_cls().prefixes
        data = {**data, "prefixes": {**defaults, **prefixes}}
    return section_cls(**data)


def parse_config(data: dict[str, Any]) -> SupplyConfig:
    """
    Parse a raw document into a ``SupplyConfig``.

    Postconditions:
        - Missing sections take their defaults.
        - ``checksum`` identifies ``data`` exactly.
    """
    unknown = set(data) - _ROOT_KEYS
    if unknown:
        raise ValueError(f"unknown configuration sections: {sorted(unknown)}")
    config_id = data.get("config_id")
    if not config_id or not isinstance(config_id, str):
        raise ValueError("config_id must be a non-empty string")
    version = data.get("version", 1)
    if isinstance(version, bool) or not isinstance(version, int) or version < 1:
        raise ValueError("version must be a positive integer")

    return SupplyConfig(
        config_id=config_id,
        version=version,
        checksum=compute_checksum(data),
        **{name: _parse_section(name, data.get(name)) for name in _SECTIONS},
    )


def load_config(config_dir: Path) -> SupplyConfig:
    return parse_config(load_yaml_file(Path(config_dir) / CONFIG_FILENAME))
