"""
Source configuration loader for the normalizer service.

This module reads `config/sources.yml`, which tells the normalizer where each
provider's scraper writes its snapshot files, where the identity mapping lives,
and any provider-specific parameters (such as the casablanca resort id).
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

DEFAULT_MAPPING_PATH = "config/provider_mapping.json"


@dataclass
class SourceConfig:
    """Configuration for a single provider."""

    input_dir: str
    enabled: bool = True
    params: dict[str, Any] = field(default_factory=dict)


@dataclass
class NormalizerConfig:
    """Top-level normalizer configuration."""

    mapping_path: str = DEFAULT_MAPPING_PATH
    sources: dict[str, SourceConfig] = field(default_factory=dict)

    def resolved_mapping_path(self) -> Path:
        """Mapping path, with relative paths anchored at the project root."""
        path = Path(self.mapping_path)
        return path if path.is_absolute() else project_root() / path

    def is_enabled(self, source: str) -> bool:
        """Unconfigured sources count as enabled."""
        source_config = self.sources.get(source)
        return source_config.enabled if source_config else True

    def input_dir_for(self, source: str) -> str | None:
        source_config = self.sources.get(source)
        return source_config.input_dir if source_config else None

    def resort_id_for(self, source: str) -> str | None:
        source_config = self.sources.get(source)
        if not source_config:
            return None
        resort_id = source_config.params.get("resort_id")
        return str(resort_id) if resort_id else None


def project_root() -> Path:
    """Return the project root path based on this file's location."""
    return Path(__file__).resolve().parent.parent.parent


def load_sources_config(config_path: str | None = None) -> NormalizerConfig:
    """
    Load normalizer configuration from YAML file.

    Args:
        config_path: Optional override for the config file path. When omitted,
            the function reads `config/sources.yml` relative to the project root.

    Returns:
        NormalizerConfig with one SourceConfig per configured provider.

    Raises:
        FileNotFoundError: If the configuration file does not exist.
        ValueError: If the YAML file cannot be parsed or has invalid structure.
    """
    path = Path(config_path) if config_path else project_root() / "config" / "sources.yml"
    if not path.exists():
        logger.error("Sources configuration file not found: %s", path)
        raise FileNotFoundError(f"Sources configuration file not found: {path}")

    try:
        with path.open("r", encoding="utf-8") as handle:
            raw_config: Mapping[str, Any] | None = yaml.safe_load(handle)
    except yaml.YAMLError as exc:
        logger.error("Failed to parse sources configuration: %s", exc)
        raise ValueError(f"Invalid YAML in sources configuration: {exc}") from exc

    if not raw_config:
        logger.warning("Sources configuration file is empty: %s", path)
        return NormalizerConfig()

    if not isinstance(raw_config, Mapping):
        raise ValueError("Sources configuration must be a mapping")

    mapping_path = raw_config.get("mapping_path", DEFAULT_MAPPING_PATH)
    if not isinstance(mapping_path, str) or not mapping_path.strip():
        raise ValueError("`mapping_path` must be a non-empty string")

    providers_section = raw_config.get("providers")
    if not isinstance(providers_section, Mapping):
        raise ValueError("`providers` section is missing or invalid in sources configuration")

    sources: dict[str, SourceConfig] = {}
    for provider_name, provider_data in providers_section.items():
        if not isinstance(provider_data, Mapping):
            raise ValueError(f"Invalid provider configuration for '{provider_name}'")

        input_dir = provider_data.get("input_dir")
        if not isinstance(input_dir, str) or not input_dir.strip():
            raise ValueError(f"Provider '{provider_name}' must define a non-empty `input_dir` string")

        enabled = bool(provider_data.get("enabled", True))
        params = provider_data.get("params") or {}
        if not isinstance(params, Mapping):
            raise ValueError(f"`params` for provider '{provider_name}' must be a mapping")

        sources[str(provider_name)] = SourceConfig(
            input_dir=input_dir,
            enabled=enabled,
            params=dict(params),
        )

    logger.info(
        "Loaded sources configuration",
        extra={
            "sources_count": len(sources),
            "enabled_sources": [name for name, cfg in sources.items() if cfg.enabled],
        },
    )
    return NormalizerConfig(mapping_path=mapping_path, sources=sources)


__all__ = ["NormalizerConfig", "SourceConfig", "load_sources_config", "project_root"]
