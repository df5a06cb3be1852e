"""Configuration loading and validation for jabractl."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from jabractl.core.errors import ConfigError
from jabractl.core.model import DEFAULT_APP_ID, BridgeConfig

LOGGER = logging.getLogger(__name__)

SIMULATION_WARNING = "Simulation mode is active; no headset hardware is used."


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys."""


UniqueKeyLoader.yaml_implicit_resolvers = {
    key: list(value) for key, value in yaml.SafeLoader.yaml_implicit_resolvers.items()
}

# "on"/"off"/"yes" stay strings; booleans are normalized explicitly below.
for first_char, mappings in list(UniqueKeyLoader.yaml_implicit_resolvers.items()):
    UniqueKeyLoader.yaml_implicit_resolvers[first_char] = [
        (tag, regexp)
        for tag, regexp in mappings
        if tag != "tag:yaml.org,2002:bool"
    ]


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
class LoadedConfig:
    config: BridgeConfig
    warnings: tuple[str, ...]
    source: Path | None = None


def _load_schema_validator() -> Any:
    schema_text = resources.files("jabractl.schemas").joinpath("config.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def default_config_path() -> Path:
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return xdg_config / "jabractl/config.yaml"


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


def _normalize_bool(value: Any, *, context: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "1", "yes", "on"}:
            return True
        if lowered in {"false", "0", "no", "off", ""}:
            return False
    raise ConfigError(f"{context} must be boolean true/false")


def _build_config(doc: dict[str, Any], source: Path | str) -> BridgeConfig:
    validator = _load_schema_validator()
    try:
        validator.validate(doc)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        raise ConfigError(f"Schema validation failed for {source}{where}: {exc.message}") from exc

    return BridgeConfig(
        app_id=doc.get("app_id", DEFAULT_APP_ID).strip(),
        library_path=doc.get("library_path"),
        simulate=_normalize_bool(doc.get("simulate", False), context=f"{source}: simulate"),
        simulate_drain_s=doc.get("simulate_drain_s"),
        queue_maxsize=int(doc.get("queue_maxsize", 0)),
        shutdown_timeout_s=float(doc.get("shutdown_timeout_s", 2.0)),
    )


def _environment_overrides() -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if app_id := os.environ.get("JABRACTL_APP_ID"):
        overrides["app_id"] = app_id
    if library := os.environ.get("JABRACTL_LIBRARY"):
        overrides["library_path"] = library
    if (simulate := os.environ.get("JABRACTL_SIMULATE")) is not None:
        overrides["simulate"] = simulate
    return overrides


def load_config(path: Path | None = None) -> LoadedConfig:
    """Load the config file (if any) and apply environment overrides.

    An explicit ``path`` must exist; the default location is optional.
    """
    warnings: list[str] = []
    source = path or default_config_path()
    doc: dict[str, Any] = {}
    if path is not None or source.is_file():
        doc = _read_yaml(source)
        LOGGER.debug("Loaded config from %s", source)
    else:
        source = None

    overrides = _environment_overrides()
    for key in sorted(overrides):
        if key in doc:
            warning = f"Environment overrides '{key}' from {source}"
            LOGGER.warning(warning)
            warnings.append(warning)
    doc.update(overrides)

    config = _build_config(doc, source or "<defaults>")
    if config.simulate:
        warnings.append(SIMULATION_WARNING)
    return LoadedConfig(config=config, warnings=tuple(warnings), source=source)
