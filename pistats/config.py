import os
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional


class ConfigurationError(ValueError):
    """Raised when the stats engine is configured with unusable values."""


class BaseConfig:
    LOG_LEVEL = getattr(logging, os.getenv("LOG_LEVEL", "INFO"))

    # Whether to run the background updater thread (never started under TESTING)
    STATS_UPDATER_ENABLED = os.getenv("STATS_UPDATER_ENABLED", "true").lower() == "true"
    # Time spent measuring CPU load per sample, must be below the update period
    STATS_CPU_SAMPLE_SECONDS = float(os.getenv("STATS_CPU_SAMPLE_SECONDS", "1"))
    STATS_UPDATE_PERIOD_SECONDS = float(os.getenv("STATS_UPDATE_PERIOD_SECONDS", "5"))
    # 720 entries of 12 samples every 5s is twelve hours of history
    STATS_HISTORY_CAPACITY = int(os.getenv("STATS_HISTORY_CAPACITY", "720"))
    STATS_CONSOLIDATION_LIMIT = int(os.getenv("STATS_CONSOLIDATION_LIMIT", "12"))
    # Empty directory disables persistence
    STATS_PERSIST_DIR = os.getenv("STATS_PERSIST_DIR", "")
    STATS_PERSIST_SIZE_LIMIT = int(os.getenv("STATS_PERSIST_SIZE_LIMIT", "1048576"))


@dataclass(frozen=True)
class PersistenceConfig:
    directory: str
    size_limit_bytes: int


@dataclass(frozen=True)
class UpdaterConfig:
    cpu_sample_duration: float
    update_period: float
    history_capacity: int
    consolidation_limit: int
    persistence: Optional[PersistenceConfig] = None

    def validate(self) -> None:
        if self.cpu_sample_duration < 0:
            raise ConfigurationError("cpu_sample_duration must not be negative")
        if self.cpu_sample_duration >= self.update_period:
            raise ConfigurationError(
                f"cpu_sample_duration ({self.cpu_sample_duration}s) must be shorter "
                f"than update_period ({self.update_period}s)"
            )
        if self.history_capacity <= 0:
            raise ConfigurationError("history_capacity must be a positive integer")
        if self.consolidation_limit <= 0:
            raise ConfigurationError("consolidation_limit must be a positive integer")
        if self.persistence is not None:
            if not self.persistence.directory:
                raise ConfigurationError("persistence directory must not be empty")
            if self.persistence.size_limit_bytes <= 0:
                raise ConfigurationError("persistence size limit must be positive")

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> "UpdaterConfig":
        """Build from Flask-style ``STATS_*`` keys, falling back to BaseConfig."""

        def get(key):
            return config.get(key, getattr(BaseConfig, key))

        try:
            persistence = None
            if get("STATS_PERSIST_DIR"):
                persistence = PersistenceConfig(
                    directory=os.path.abspath(get("STATS_PERSIST_DIR")),
                    size_limit_bytes=int(get("STATS_PERSIST_SIZE_LIMIT")),
                )
            return cls(
                cpu_sample_duration=float(get("STATS_CPU_SAMPLE_SECONDS")),
                update_period=float(get("STATS_UPDATE_PERIOD_SECONDS")),
                history_capacity=int(get("STATS_HISTORY_CAPACITY")),
                consolidation_limit=int(get("STATS_CONSOLIDATION_LIMIT")),
                persistence=persistence,
            )
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid stats configuration: {e}") from e
