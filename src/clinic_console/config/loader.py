from __future__ import annotations

import os
import shutil
from pathlib import Path
from typing import Any, Mapping, MutableMapping, Sequence

import yaml
from dotenv import load_dotenv

from clinic_console.config.models import AppConfig, ConfigLoadRequest

CONFIG_TEMPLATE_PATH = Path("examples/config.yaml")


def _bootstrap_config_file(yaml_path: Path) -> None:
    """Copy the bundled template into place the first time the console tools run."""
    if yaml_path.exists() or not CONFIG_TEMPLATE_PATH.exists():
        return
    yaml_path.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(CONFIG_TEMPLATE_PATH, yaml_path)


def _prepare_data_dirs(yaml_path: Path) -> None:
    # Only the data/config/config.yaml layout owns a data root with a logs folder.
    if yaml_path.parent.name != "config":
        return
    data_root = yaml_path.parent.parent
    for name in ("config", "logs"):
        (data_root / name).mkdir(parents=True, exist_ok=True)


def _read_yaml_mapping(yaml_path: Path) -> dict[str, Any]:
    if not yaml_path.exists():
        raise FileNotFoundError(f"Config file not found: {yaml_path}")
    data = yaml.safe_load(yaml_path.read_text(encoding="utf-8"))
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Top-level YAML must be a mapping, got: {type(data).__name__}")
    return data


def _parse_override_value(raw: str) -> Any:
    """
    Read an environment value as a YAML scalar or flow sequence.

    `APP__TABLE__PAGE_SIZE_OPTIONS="[10, 25]"` becomes a list; plain text stays text.
    """
    try:
        value = yaml.safe_load(raw)
    except yaml.YAMLError:
        return raw
    return raw if value is None else value


def _override_path(env_name: str, prefix: str) -> Sequence[str]:
    segments = [part.lower() for part in env_name[len(prefix) :].split("__") if part]
    if not segments:
        raise ValueError(f"Invalid environment variable override name: {env_name}")
    return segments


def _assign(config: MutableMapping[str, Any], path: Sequence[str], value: Any) -> None:
    dotted = ".".join(path)
    section: Any = config
    for segment in path[:-1]:
        if not isinstance(section, MutableMapping) or segment not in section:
            raise KeyError(f"Unknown configuration key path: {dotted}")
        section = section[segment]
    if not isinstance(section, MutableMapping):
        raise TypeError(f"Configuration key path does not point to a mapping: {dotted}")
    if path[-1] not in section:
        raise KeyError(f"Unknown configuration key path: {dotted}")
    section[path[-1]] = value


def _with_model_defaults(config: Mapping[str, Any]) -> dict[str, Any]:
    """
    Fill sections the YAML file leaves out with their model defaults.

    Overrides may target any documented key, including ones the file does not spell out.
    """
    merged: dict[str, Any] = {}
    for name, field_info in AppConfig.model_fields.items():
        present = config.get(name)
        if field_info.is_required() or field_info.default_factory is None:
            if name in config:
                merged[name] = present
            continue
        defaults = field_info.default_factory().model_dump(mode="python")
        merged[name] = {**defaults, **(present or {})}
    for name, value in config.items():
        merged.setdefault(name, value)
    return merged


def _apply_env_overrides(config: MutableMapping[str, Any], env_prefix: str) -> None:
    for name, raw in os.environ.items():
        if name.startswith(env_prefix):
            _assign(config, _override_path(name, env_prefix), _parse_override_value(raw))


class YamlConfigLoader:
    """
    Builds the effective `AppConfig`.

    Sources in increasing precedence: the YAML file, the optional `.env` file (which
    never replaces variables already set in the process), and `APP__SECTION__KEY`
    environment variables.
    """

    async def load(self, request: ConfigLoadRequest = ConfigLoadRequest()) -> AppConfig:
        yaml_path = Path(request.yaml_path)
        _prepare_data_dirs(yaml_path)
        _bootstrap_config_file(yaml_path)
        config = _with_model_defaults(_read_yaml_mapping(yaml_path))

        if request.dotenv_path is not None and Path(request.dotenv_path).exists():
            load_dotenv(dotenv_path=request.dotenv_path, override=False)

        _apply_env_overrides(config, request.env_prefix)
        return AppConfig.model_validate(config)
