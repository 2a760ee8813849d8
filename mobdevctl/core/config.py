"""Configuration loading and validation for the mobdevctl service."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from mobdevctl.core.errors import ConfigLoadError, ConfigValidationError
from mobdevctl.core.model import MobdevConfig

SYSTEM_CONFIG_PATH = Path("/etc/mobdevctl/config.yaml")
CONFIG_ENV_VAR = "MOBDEVCTL_CONFIG"
_SENSITIVE_HELPER_KEYS = ("path", "env")
LOGGER = logging.getLogger(__name__)


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys."""


# YAML 1.1 reads on/off/yes/no as booleans; keep them as strings.
UniqueKeyLoader.yaml_implicit_resolvers = {
    key: list(value) for key, value in yaml.SafeLoader.yaml_implicit_resolvers.items()
}

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
            raise ConfigValidationError(f"Duplicate key '{key}' in YAML document")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


@dataclass(frozen=True)
class LoadedConfig:
    config: MobdevConfig
    sources: tuple[str, ...]
    warnings: tuple[str, ...]


def _load_schema_validator() -> Any:
    schema_text = resources.files("mobdevctl.schemas").joinpath("config.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def _read_yaml(path: Path | Traversable) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigLoadError(f"Could not read config file {path}: {exc}") from exc

    try:
        loaded = yaml.load(content, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise ConfigValidationError(f"Invalid YAML in {path}: {exc}") from exc

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigValidationError(f"Config file {path} must contain a mapping at root")
    return loaded


def _validate(doc: dict[str, Any], source: Path | Traversable, validator: Any) -> None:
    try:
        validator.validate(doc)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        raise ConfigValidationError(f"Schema validation failed for {source}{where}: {exc.message}") from exc


def _normalize_bool(value: Any, *, context: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "on"}:
            return True
        if lowered in {"false", "no", "off"}:
            return False
    raise ConfigValidationError(f"{context} must be boolean true/false")


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = {section: dict(values) for section, values in base.items()}
    for section, values in override.items():
        merged.setdefault(section, {}).update(values)
    return merged


def _build_config(doc: dict[str, Any]) -> MobdevConfig:
    helper = doc.get("helper", {})
    transfer = doc.get("transfer", {})
    call_control = doc.get("call_control", {})
    server = doc.get("server", {})

    helper_path = helper.get("path", "")
    if not os.path.isabs(helper_path):
        raise ConfigValidationError(f"helper.path must be an absolute path, got '{helper_path}'")

    return MobdevConfig(
        helper_path=helper_path,
        helper_timeout_s=float(helper.get("timeout_s", 30.0)),
        helper_env=dict(helper.get("env", {})),
        remote_dir=transfer.get("remote_dir", "/sdcard/"),
        local_dir=transfer.get("local_dir", "/var/lib/mobdevctl/inbox"),
        call_state_probe=_normalize_bool(
            call_control.get("state_probe", False),
            context="call_control.state_probe",
        ),
        socket_path=server.get("socket_path", "/run/mobdevctl.sock"),
        socket_mode=int(str(server.get("socket_mode", "660")), 8),
    )


def _config_paths(explicit: Path | None) -> list[tuple[Path, bool]]:
    paths: list[tuple[Path, bool]] = [(SYSTEM_CONFIG_PATH, False)]
    if explicit is None and os.environ.get(CONFIG_ENV_VAR):
        explicit = Path(os.environ[CONFIG_ENV_VAR])
    if explicit is not None:
        paths.append((explicit, True))
    return paths


def load_config(path: Path | None = None) -> LoadedConfig:
    """Load packaged defaults, then the system file, then ``path`` or $MOBDEVCTL_CONFIG."""
    validator = _load_schema_validator()
    defaults = resources.files("mobdevctl.defaults").joinpath("config.yaml")
    doc = _read_yaml(defaults)
    _validate(doc, defaults, validator)
    sources = [str(defaults)]
    warnings: list[str] = []

    for candidate, required in _config_paths(path):
        if not candidate.is_file():
            if required:
                raise ConfigLoadError(f"Config file {candidate} does not exist")
            continue
        override = _read_yaml(candidate)
        _validate(override, candidate, validator)
        override_helper = override.get("helper", {})
        for key in _SENSITIVE_HELPER_KEYS:
            if key in override_helper and override_helper[key] != doc.get("helper", {}).get(key):
                warning = f"{candidate} overrides helper.{key}"
                LOGGER.warning(warning)
                warnings.append(warning)
        doc = _merge(doc, override)
        sources.append(str(candidate))

    return LoadedConfig(config=_build_config(doc), sources=tuple(sources), warnings=tuple(warnings))
