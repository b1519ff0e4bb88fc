"""
Configuration Loader (``production_config.loader``).

Responsibility
--------------
Loads a YAML document and parses it into a ``ProductionConfig``.  Runtime
callers go through ``production_config.get_active_config()``; this module
is the parsing step behind it.

Invariants enforced
-------------------
* Unknown keys raise ``ValueError``; misspelt settings never fall back to
  defaults silently.
* Values are coerced to the declared field types; failures raise
  ``ValueError``.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Non-mapping document, unknown key or bad value  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from production_config.schema import ProductionConfig

_INT_FIELDS = frozenset({"binding_process_id", "cutting_process_id"})
_FLOAT_FIELDS = frozenset({"lot_lock_timeout_seconds"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration root must be a mapping: {path}")
    return data


def _coerce(name: str, value: Any) -> Any:
    try:
        if name in _INT_FIELDS:
            if isinstance(value, bool):
                raise ValueError
            return int(value)
        if name in _FLOAT_FIELDS:
            return float(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid value for {name}: {value!r}") from None
    if value is None:
        raise ValueError(f"Missing value for {name}")
    return str(value)


def parse_config(
    data: dict[str, Any],
    overrides: dict[str, Any] | None = None,
) -> ProductionConfig:
    """
    Build a ProductionConfig from a parsed mapping.

    Args:
        data: Parsed YAML document.
        overrides: Values applied after the document (environment).

    Raises:
        ValueError: Unknown keys or invalid values.
    """
    merged = {**data, **(overrides or {})}
    unknown = sorted(set(merged) - ProductionConfig.field_names())
    if unknown:
        raise ValueError(f"Unknown configuration keys: {', '.join(unknown)}")

    values = {name: _coerce(name, value) for name, value in merged.items()}
    return ProductionConfig(**values, checksum=compute_checksum(values))


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
