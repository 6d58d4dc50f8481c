"""
Configuration loading utilities.

Supports environment variable interpolation and config inheritance.
A minimal config only needs ``project``; everything else has defaults.
"""

import os
import re
from pathlib import Path
from typing import Any

import yaml

from footstage.config.settings import (
    LoggingConfig,
    PipelineConfig,
    SnapshotConfig,
    SourcesConfig,
    StoreConfig,
)
from footstage.schemas.relations import Relation


def _interpolate_env_vars(value: str) -> str:
    """
    Interpolate environment variables in string values.

    Supports ${VAR} and ${VAR:default} syntax.
    """
    pattern = r"\$\{([^}:]+)(?::([^}]*))?\}"

    def replacer(match: re.Match[str]) -> str:
        var_name = match.group(1)
        default = match.group(2)
        return os.environ.get(var_name, default if default is not None else "")

    return re.sub(pattern, replacer, value)


def _process_config_values(obj: Any) -> Any:
    """Recursively process config values for env var interpolation."""
    if isinstance(obj, str):
        return _interpolate_env_vars(obj)
    if isinstance(obj, dict):
        return {k: _process_config_values(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_process_config_values(item) for item in obj]
    return obj


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries, with override taking precedence."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _optional_path(value: Any) -> Path | None:
    """Empty strings (e.g. an unset ${VAR}) mean "not configured"."""
    if value is None or value == "":
        return None
    return Path(value)


def load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML file and process environment variables."""
    with path.open(encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return _process_config_values(data) if data else {}


def build_config(data: dict[str, Any]) -> PipelineConfig:
    """
    Build a PipelineConfig from an already merged mapping.

    Args:
        data: Parsed configuration mapping.

    Returns:
        Validated PipelineConfig.

    Raises:
        ValueError: If ``project`` is missing or a value is invalid.
    """
    project = data.get("project")
    if not project:
        msg = "Config must specify 'project' name"
        raise ValueError(msg)

    store_data = data.get("store") or {}
    store = StoreConfig(path=_optional_path(store_data.get("path")))

    sources_data = data.get("sources") or {}
    source_files = {
        relation.value: Path(sources_data[relation.value])
        for relation in Relation
        if sources_data.get(relation.value)
    }
    sources = SourcesConfig(root=Path(sources_data.get("root", "./data")), **source_files)

    snapshot_data = data.get("snapshot") or {}
    snapshot = SnapshotConfig(
        path=_optional_path(snapshot_data.get("path")),
        portable=snapshot_data.get("portable") or False,
    )

    logging_data = data.get("logging") or {}
    logging = LoggingConfig(
        level=str(logging_data.get("level", "INFO")),
        json_output=logging_data.get("json") or False,
    )

    return PipelineConfig(
        project=str(project),
        store=store,
        sources=sources,
        snapshot=snapshot,
        logging=logging,
    )


def load_config(
    config_path: Path,
    base_path: Path | None = None,
) -> PipelineConfig:
    """
    Load pipeline configuration from YAML file(s).

    Args:
        config_path: Path to the main configuration file.
        base_path: Optional path to base configuration for inheritance.
            Defaults to a ``base.yaml`` next to the main file, if present.

    Returns:
        Fully validated PipelineConfig instance.
    """
    if base_path is not None:
        base_data = load_yaml(base_path)
    else:
        potential_base = config_path.parent / "base.yaml"
        if potential_base.exists() and potential_base.resolve() != config_path.resolve():
            base_data = load_yaml(potential_base)
        else:
            base_data = {}

    main_data = load_yaml(config_path)
    return build_config(_deep_merge(base_data, main_data))
