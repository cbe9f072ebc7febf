from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import yaml
from platformdirs import user_config_path

from .errors import ErrorKind, TemplaarError

APP_NAME = "templaar"
CONFIG_DIR_ENV = "TEMPLAAR_CONFIG_DIR"
CONFIG_FILES = ("config.yml", "config.yaml")

DEFAULT_TEMPLATE_NAME = "templ"
DEFAULT_LOG_LEVEL = "WARNING"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class Settings:
    config_dir: Path
    global_dir: Path
    editor: str | None = None
    log_level: str = DEFAULT_LOG_LEVEL
    default_name: str = DEFAULT_TEMPLATE_NAME


def config_root() -> Path:
    override = os.environ.get(CONFIG_DIR_ENV, "").strip()
    if override:
        return Path(override).expanduser()
    return user_config_path(APP_NAME)


def _find_config_file(root: Path) -> Path | None:
    for name in CONFIG_FILES:
        candidate = root / name
        if candidate.is_file():
            return candidate
    return None


def _optional_str(data: dict, key: str, source: Path) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise TemplaarError(ErrorKind.invalid_input, f"'{key}' must be a string in {source}", path=source)
    return value.strip() or None


def load_settings(root: Path | None = None) -> Settings:
    """Read ``config.yml`` from the config root, falling back to defaults.

    A missing file is not an error. The global template directory defaults
    to the config root itself; relative values are taken relative to it.
    """
    root = root if root is not None else config_root()
    source = _find_config_file(root)
    if source is None:
        return Settings(config_dir=root, global_dir=root)

    try:
        data = yaml.safe_load(source.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as error:
        raise TemplaarError(ErrorKind.invalid_input, f"Could not read settings file {source}: {error}", path=source) from error
    if not isinstance(data, dict):
        raise TemplaarError(ErrorKind.invalid_input, f"Settings file must contain a mapping: {source}", path=source)

    global_dir = root
    raw_global = _optional_str(data, "global_dir", source)
    if raw_global:
        candidate = Path(raw_global).expanduser()
        global_dir = candidate if candidate.is_absolute() else root / candidate

    log_level = (_optional_str(data, "log_level", source) or DEFAULT_LOG_LEVEL).upper()
    if log_level not in LOG_LEVELS:
        raise TemplaarError(ErrorKind.invalid_input, f"Unsupported log_level '{log_level}' in {source}", path=source)

    return Settings(
        config_dir=root,
        global_dir=global_dir,
        editor=_optional_str(data, "editor", source),
        log_level=log_level,
        default_name=_optional_str(data, "default_name", source) or DEFAULT_TEMPLATE_NAME,
    )
