"""
Configuration loading.

Settings come from, lowest precedence first: StoreConfig defaults, an
optional YAML file, then PASSMANAGER_* environment variables. The result
is a frozen StoreConfig handed to every component.
"""

from __future__ import annotations

import logging
import os
import shlex
import shutil
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from pydantic import ValidationError

from .errors import ConfigError
from .models import StoreConfig

logger = logging.getLogger("passmanager.config")

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def default_store_dir(env: Mapping[str, str]) -> Path:
    data_home = env.get("XDG_DATA_HOME") or str(Path("~/.local/share").expanduser())
    return Path(data_home) / "passmanager"


def default_config_file(env: Mapping[str, str]) -> Path:
    if env.get("PASSMANAGER_CONFIG"):
        return Path(env["PASSMANAGER_CONFIG"]).expanduser()
    config_home = env.get("XDG_CONFIG_HOME") or str(Path("~/.config").expanduser())
    return Path(config_home) / "passmanager" / "config.yaml"


def _read_yaml(config_file: Path) -> dict[str, Any]:
    """Load the YAML config file.

    Args:
        config_file: Path to the YAML file.

    Returns:
        Parsed mapping, or an empty dict if the file is absent or unreadable.
    """
    if not config_file.exists():
        return {}
    try:
        data = yaml.safe_load(config_file.read_text(encoding="utf-8")) or {}
    except (yaml.YAMLError, OSError) as exc:
        logger.warning("Failed to load %s: %s; using defaults", config_file, exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring %s: top level is not a mapping", config_file)
        return {}
    return data


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigError(f"{name} must be a boolean, got {raw!r}")


def _editor_command(raw: str) -> tuple[str, ...]:
    cmd = tuple(shlex.split(raw))
    # keep vim from writing plaintext backups and undo files
    if cmd and Path(cmd[0]).name in ("vim", "nvim"):
        cmd += ("-c", "set nobackup", "-c", "set noundofile")
    return cmd


def _from_env(env: Mapping[str, str], data: dict[str, Any]) -> dict[str, Any]:
    """Overlay PASSMANAGER_* environment variables on the file settings."""
    merged = dict(data)

    if env.get("PASSMANAGER_DIR"):
        merged["store_dir"] = env["PASSMANAGER_DIR"]
    merged.setdefault("store_dir", str(default_store_dir(env)))

    umask = env.get("PASSMANAGER_UMASK") or merged.get("umask")
    if isinstance(umask, str):
        try:
            merged["umask"] = int(umask, 8)
        except ValueError as exc:
            raise ConfigError(f"umask is not octal: {umask!r}") from exc

    if env.get("PASSMANAGER_GPG"):
        merged["gpg_binary"] = env["PASSMANAGER_GPG"]
    if env.get("PASSMANAGER_GPG_OPTS"):
        merged["gpg_options"] = shlex.split(env["PASSMANAGER_GPG_OPTS"])

    if env.get("PASSMANAGER_USE_GIT"):
        merged["use_git"] = _parse_bool("PASSMANAGER_USE_GIT", env["PASSMANAGER_USE_GIT"])

    editor = env.get("PASSMANAGER_EDITOR") or env.get("EDITOR")
    if editor:
        merged["editor"] = _editor_command(editor)
    elif isinstance(merged.get("editor"), str):
        merged["editor"] = _editor_command(merged["editor"])

    for var, field in (
        ("PASSMANAGER_PASS_LENGTH", "pass_length"),
        ("PASSMANAGER_CLIP_TIME", "clip_time"),
    ):
        if env.get(var):
            merged[field] = env[var]

    if env.get("PASSMANAGER_REPLACE"):
        merged["replace_strategy"] = env["PASSMANAGER_REPLACE"].strip().lower()
    if env.get("PASSMANAGER_TMPDIR"):
        merged["tmp_dir"] = env["PASSMANAGER_TMPDIR"]

    return merged


def load_config(
    env: Optional[Mapping[str, str]] = None,
    config_file: Optional[Path] = None,
) -> StoreConfig:
    """Build the StoreConfig for this invocation.

    Args:
        env: Environment mapping. Defaults to os.environ.
        config_file: Explicit YAML file. Defaults to
            $PASSMANAGER_CONFIG or $XDG_CONFIG_HOME/passmanager/config.yaml.

    Returns:
        StoreConfig: Frozen configuration.

    Raises:
        ConfigError: If a value cannot be validated.
    """
    env = os.environ if env is None else env
    data = _read_yaml(config_file or default_config_file(env))

    try:
        config = StoreConfig(**_from_env(env, data))
    except (ValidationError, ValueError) as exc:
        raise ConfigError(f"invalid configuration: {exc}") from exc

    if config.use_git is None:
        config = config.model_copy(update={"use_git": shutil.which("git") is not None})

    logger.debug(
        "Loaded config: store=%s replace=%s git=%s",
        config.store_dir, config.replace_strategy.value, config.use_git,
    )
    return config
