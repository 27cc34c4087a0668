"""
supply_config -- single public entrypoint for runtime configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Returns a frozen ``SupplyConfig``; YAML
    loading is internal.

Architecture position:
    Configuration.  Sits above ``supply_kernel`` and below
    ``supply_modules``.  The kernel MUST NEVER import from
    ``supply_config``; ``bridges`` translates config into kernel inputs.

Failure modes:
    - ``FileNotFoundError`` -- no ``supply.yaml`` in the config directory.
    - ``ValueError`` -- schema validation failures.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``supply_config_loaded`` log entry with the config id, version, and
    checksum.
"""

from __future__ import annotations

from pathlib import Path

from supply_config.loader import load_config
from supply_config.schema import (
    DatabaseConfig,
    InvoiceConfig,
    LoggingConfig,
    MoneyConfig,
    SequenceConfig,
    SupplyConfig,
)
from supply_kernel.logging_config import get_logger

_logger = get_logger("config")

# Default configuration sets directory
_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets" / "default"


def get_active_config(config_dir: Path | None = None) -> SupplyConfig:
    """The ONLY public configuration entrypoint.

    Args:
        config_dir: Directory holding ``supply.yaml``.  Defaults to
            supply_config/sets/default/.

    Raises:
        FileNotFoundError: If the directory has no ``supply.yaml``.
        ValueError: If configuration validation fails.
    """
    config = load_config(Path(config_dir) if config_dir else _DEFAULT_CONFIG_DIR)
    _logger.info(
        "supply_config_loaded",
        extra={
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "gst_blending": config.invoice.gst_blending,
            "rounding": config.money.rounding,
        },
    )
    return config


__all__ = [
    "DatabaseConfig",
    "InvoiceConfig",
    "LoggingConfig",
    "MoneyConfig",
    "SequenceConfig",
    "SupplyConfig",
    "get_active_config",
]
