"""
Configuration management with typed Pydantic models.

Provides store/source/snapshot settings and YAML loading with
environment variable interpolation.
"""

from footstage.config.loader import build_config, load_config
from footstage.config.settings import (
    LoggingConfig,
    PipelineConfig,
    SnapshotConfig,
    SourcesConfig,
    StoreConfig,
)

__all__ = [
    "LoggingConfig",
    "PipelineConfig",
    "SnapshotConfig",
    "SourcesConfig",
    "StoreConfig",
    "build_config",
    "load_config",
]
