"""Settings loading and validation for the optional YAML config file."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, replace
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from btmanage.core.errors import ConfigError

LOGGER = logging.getLogger(__name__)

_KNOWN_BACKENDS = ("blueutil",)


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys."""


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict[str, Any]:
    mapping: dict[str, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise ConfigError(f"Duplicate key '{key}' in YAML document")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


@dataclass(frozen=True)
class Settings:
    blueutil_path: str = "blueutil"
    action_timeout_s: float = 10.0
    pairing_timeout_s: float = 180.0
    inquiry_s: int = 60
    wait_connect_s: int = 10
    max_attempts: int = 6


@dataclass(frozen=True)
class LoadedSettings:
    settings: Settings
    source: Path | None
    warnings: tuple[str, ...]


def config_path() -> Path:
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return xdg_config / "bt-manage" / "config.yaml"


def _load_schema_validator() -> Any:
    schema_text = resources.files("btmanage.schemas").joinpath("config.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Could not read config file {path}: {exc}") from exc

    try:
        loaded = yaml.load(content, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigError(f"Config file {path} must contain a mapping at root")
    return loaded


def _build_settings(doc: dict[str, Any], source: Path) -> tuple[Settings, list[str]]:
    validator = _load_schema_validator()
    try:
        validator.validate(doc)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        raise ConfigError(f"Schema validation failed for {source}{where}: {exc.message}") from exc

    warnings: list[str] = []
    settings = Settings()
    if "blueutil_path" in doc:
        settings = replace(settings, blueutil_path=doc["blueutil_path"].strip())
        if Path(settings.blueutil_path).name not in _KNOWN_BACKENDS:
            warnings.append(f"blueutil_path '{settings.blueutil_path}' does not look like a blueutil binary")
    for key in ("action_timeout_s", "pairing_timeout_s"):
        if key in doc:
            settings = replace(settings, **{key: float(doc[key])})
    for key in ("inquiry_s", "wait_connect_s", "max_attempts"):
        if key in doc:
            settings = replace(settings, **{key: int(doc[key])})
    return settings, warnings


def load_settings(path: Path | None = None) -> LoadedSettings:
    target = path or config_path()
    if not target.exists():
        LOGGER.debug("no config file at %s, using defaults", target)
        return LoadedSettings(settings=Settings(), source=None, warnings=())

    doc = _read_yaml(target)
    settings, warnings = _build_settings(doc, target)
    for warning in warnings:
        LOGGER.warning(warning)
    return LoadedSettings(settings=settings, source=target, warnings=tuple(warnings))
