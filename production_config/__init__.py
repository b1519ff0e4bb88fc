"""
production_config -- single public entrypoint for production configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration files
    or environment variables directly.

Architecture position:
    Configuration -- sits above ``production_kernel`` and below
    ``production_services``.  The kernel MUST NEVER import from
    ``production_config``; the services facade passes individual values
    down.

Invariants enforced:
    - Single entrypoint: all runtime config flows through
      ``get_active_config()``.
    - Source precedence: explicit path, then the PRODUCTION_CONFIG
      environment variable, then the packaged defaults.yaml.
      PRODUCTION_DATABASE_URL overrides database_url from any source.

Failure modes:
    - ``FileNotFoundError`` -- the selected file does not exist.
    - ``ValueError`` -- unknown keys or invalid values.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``PRODUCTION_CONFIG_TRACE`` log entry with the source path and checksum.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from production_config.loader import load_yaml_file, parse_config
from production_config.schema import ProductionConfig

_logger = logging.getLogger("production_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"
CONFIG_PATH_ENV = "PRODUCTION_CONFIG"
DATABASE_URL_ENV = "PRODUCTION_DATABASE_URL"


def get_active_config(path: Path | str | None = None) -> ProductionConfig:
    """The ONLY public configuration entrypoint.

    Args:
        path: Optional YAML file.  Defaults to $PRODUCTION_CONFIG, then the
            packaged defaults.

    Raises:
        FileNotFoundError, ValueError.
    """
    if path is None:
        path = os.environ.get(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH
    source = Path(path)

    overrides = {}
    database_url = os.environ.get(DATABASE_URL_ENV)
    if database_url:
        overrides["database_url"] = database_url

    config = parse_config(load_yaml_file(source), overrides)

    _logger.info(
        "PRODUCTION_CONFIG_TRACE",
        extra={
            "trace_type": "PRODUCTION_CONFIG_TRACE",
            "config_source": str(source),
            "checksum": config.checksum,
            "database_url_overridden": bool(database_url),
        },
    )
    return config


__all__ = [
    "CONFIG_PATH_ENV",
    "DATABASE_URL_ENV",
    "DEFAULT_CONFIG_PATH",
    "ProductionConfig",
    "get_active_config",
]
