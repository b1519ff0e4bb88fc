"""
ProductionConfig schema.

The runtime configuration artifact: one frozen dataclass carrying every
tunable of the production core.  YAML documents are parsed into it by
``production_config.loader``; nothing else constructs it from raw input.
"""

from __future__ import annotations

from dataclasses import dataclass, fields

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class ProductionConfig:
    """Validated configuration for the production core."""

    database_url: str = "sqlite:///production.db"
    # Process whose predecessor is always the cutting process
    binding_process_id: int = 4
    cutting_process_id: int = 2
    transfer_date_format: str = "%d-%m-%Y"
    stored_date_format: str = "%Y-%m-%d"
    display_date_format: str = "%d-%m-%Y"
    lot_lock_timeout_seconds: float = 30.0
    booklet_type_name: str = "Booklet"
    log_level: str = "INFO"
    checksum: str = ""

    def __post_init__(self) -> None:
        if not self.database_url:
            raise ValueError("database_url must not be empty")
        for name in ("binding_process_id", "cutting_process_id"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")
        if self.lot_lock_timeout_seconds <= 0:
            raise ValueError(
                "lot_lock_timeout_seconds must be > 0, "
                f"got {self.lot_lock_timeout_seconds!r}"
            )
        if not self.booklet_type_name:
            raise ValueError("booklet_type_name must not be empty")
        if self.log_level.upper() not in _LOG_LEVELS:
            raise ValueError(f"Unknown log_level {self.log_level!r}")
        for name in ("transfer_date_format", "stored_date_format", "display_date_format"):
            if "%" not in getattr(self, name):
                raise ValueError(f"{name} must be a strftime pattern")

    @classmethod
    def field_names(cls) -> frozenset[str]:
        return frozenset(f.name for f in fields(cls) if f.name != "checksum")
