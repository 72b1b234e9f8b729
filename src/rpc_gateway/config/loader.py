"""
Configuration Loader - Gateway Settings from YAML.

Reads a base YAML file, optionally overlays a named profile, expands
``${VAR}`` references from the environment (provider URLs usually embed
API keys), then validates with the pydantic models and checks the endpoint
set is usable.

Profiles are looked up next to the config file first
(``<config dir>/profiles/<name>.yaml``), then under
``<base_path>/config/profiles/``.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml

from rpc_gateway.config.models import GatewayConfig
from rpc_gateway.domain.exceptions import ConfigurationError
from rpc_gateway.registry.endpoint_registry import validate_descriptors

logger = logging.getLogger(__name__)

_ENV_REF = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


class ConfigLoader:
    """Builds a validated GatewayConfig from YAML files or dictionaries."""

    def __init__(
        self,
        base_path: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> None:
        """
        Initialize config loader.

        Args:
            base_path: Directory relative config paths are resolved against
            environ: Variables for ${VAR} expansion (default: os.environ)
        """
        self._base_path = Path(base_path) if base_path else Path(".")
        self._environ = environ if environ is not None else os.environ

    def load(
        self,
        config_path: Union[str, Path],
        profile: Optional[str] = None,
    ) -> GatewayConfig:
        """
        Load a gateway configuration.

        Args:
            config_path: YAML file, absolute or relative to base_path
            profile: Optional profile overlay (e.g. "testnet")

        Returns:
            Validated GatewayConfig

        Raises:
            FileNotFoundError: If the config or profile file is missing
            ValidationError: If a field is out of range or mistyped
            ConfigurationError: If the endpoint set is empty or ambiguous,
                or a ${VAR} reference is unset
        """
        path = Path(config_path)
        if not path.is_absolute():
            path = self._base_path / path

        raw = _read_mapping(path)
        if profile:
            overlay = _read_mapping(self._find_profile(path, profile))
            raw = merge_overlay(raw, overlay)
            logger.debug(f"Applied profile {profile!r} to {path}")

        return self.load_from_dict(raw)

    def load_from_dict(self, config_dict: Dict[str, Any]) -> GatewayConfig:
        """
        Validate an already parsed configuration.

        Args:
            config_dict: Configuration as a plain dictionary

        Returns:
            Validated GatewayConfig
        """
        expanded = _expand_env(config_dict, self._environ)
        config = GatewayConfig.model_validate(expanded)
        validate_descriptors(config.endpoints)
        return config

    def _find_profile(self, config_file: Path, profile: str) -> Path:
        candidates: List[Path] = [
            config_file.parent / "profiles" / f"{profile}.yaml",
            self._base_path / "config" / "profiles" / f"{profile}.yaml",
        ]
        for candidate in candidates:
            if candidate.exists():
                return candidate
        raise FileNotFoundError(f"Profile not found: {profile}")


def merge_overlay(base: Dict[str, Any], overlay: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge a profile overlay into a base configuration.

    Nested mappings merge key by key. Lists, ``endpoints`` included, are
    replaced as a whole.
    """
    merged = dict(base)
    for key, value in overlay.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = merge_overlay(current, value)
        else:
            merged[key] = value
    return merged


def _read_mapping(path: Path) -> Dict[str, Any]:
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path}: top level must be a mapping")
    return data


def _expand_env(value: Any, environ: Mapping[str, str]) -> Any:
    if isinstance(value, str):
        def substitute(match: "re.Match[str]") -> str:
            name = match.group(1)
            if name not in environ:
                raise ConfigurationError(f"Environment variable {name} is not set")
            return environ[name]
        return _ENV_REF.sub(substitute, value)
    if isinstance(value, dict):
        return {k: _expand_env(v, environ) for k, v in value.items()}
    if isinstance(value, list):
        return [_expand_env(v, environ) for v in value]
    return value


def load_config(
    config_path: Union[str, Path],
    profile: Optional[str] = None,
    base_path: Optional[Path] = None,
) -> GatewayConfig:
    """
    Convenience function to load configuration.

    Example:
        >>> config = load_config("config/gateway.yaml", profile="testnet")
    """
    return ConfigLoader(base_path=base_path).load(config_path, profile)
