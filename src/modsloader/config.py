"""
Configuration loading for mods-loader.

The configuration is a YAML mapping with upper-case keys. It is read once at
startup; changes take effect on restart.
"""

import os
from typing import Any, Dict, List, Mapping, Optional

import platformdirs
import yaml

from modsloader.constants import (
    APP_NAME,
    CONFIG_FILE_NAME,
    DEFAULT_MODS,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_SYNC_HOURS,
    DEFAULT_UPLOAD_LOCK_TIMEOUT,
    GITHUB_API_BASE,
    GITLAB_API_BASE,
    GITLAB_BASE,
    RESTRICTION_TO_VARIANT,
    STORE_DIR_NAME,
)
from modsloader.download.files import _sanitize_path_component
from modsloader.download.interfaces import ModEntry, ModSource
from modsloader.exceptions import ConfigFileError, ConfigValidationError
from modsloader.log_utils import logger


def get_config_dir() -> str:
    return platformdirs.user_config_dir(APP_NAME)


def get_default_config_path() -> str:
    return os.path.join(get_config_dir(), CONFIG_FILE_NAME)


def get_default_store_dir() -> str:
    return os.path.join(platformdirs.user_data_dir(APP_NAME), STORE_DIR_NAME)


def default_config() -> Dict[str, Any]:
    return {
        "STORE_DIR": get_default_store_dir(),
        "PUBLIC_BASE_URL": "",
        "GITHUB_TOKEN": None,
        "ALLOW_ENV_TOKEN": True,
        "GITHUB_API_BASE": GITHUB_API_BASE,
        "GITLAB_API_BASE": GITLAB_API_BASE,
        "GITLAB_BASE": GITLAB_BASE,
        "REQUEST_TIMEOUT": DEFAULT_REQUEST_TIMEOUT,
        "SYNC_HOURS": list(DEFAULT_SYNC_HOURS),
        "UPLOAD_TOKENS": {},
        "UPLOAD_LOCK_TIMEOUT": DEFAULT_UPLOAD_LOCK_TIMEOUT,
        "LOG_LEVEL": None,
        "LOG_DIR": None,
        "MODS": [dict(mod) for mod in DEFAULT_MODS],
    }


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load and validate the configuration.

    An explicit `config_path` must exist. Without one, the platformdirs location
    is used when present, otherwise the built-in defaults apply.

    Returns:
        Dict[str, Any]: The validated configuration with defaults filled in.

    Raises:
        ConfigFileError: If the file is missing, unreadable or not a YAML mapping.
        ConfigValidationError: If a value is invalid.
    """
    if config_path is None:
        default_path = get_default_config_path()
        if not os.path.exists(default_path):
            logger.info(f"No configuration at {default_path}; using built-in defaults")
            return validate_config(default_config())
        config_path = default_path
    elif not os.path.exists(config_path):
        raise ConfigFileError("Configuration file not found", config_path)

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            loaded = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigFileError(f"Invalid YAML in {config_path}", str(e)) from e
    except OSError as e:
        raise ConfigFileError(f"Could not read {config_path}", str(e)) from e

    if loaded is None:
        loaded = {}
    if not isinstance(loaded, dict):
        raise ConfigFileError(f"Configuration in {config_path} must be a mapping")

    logger.debug(f"Loaded configuration from {config_path}")
    config = default_config()
    config.update(loaded)
    return validate_config(config)


def validate_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """Check value types and normalize numbers and lists in place."""
    timeout = config.get("REQUEST_TIMEOUT")
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        raise ConfigValidationError("REQUEST_TIMEOUT must be a positive number", repr(timeout))

    lock_timeout = config.get("UPLOAD_LOCK_TIMEOUT")
    if (
        isinstance(lock_timeout, bool)
        or not isinstance(lock_timeout, (int, float))
        or lock_timeout < 0
    ):
        raise ConfigValidationError(
            "UPLOAD_LOCK_TIMEOUT must be a non-negative number", repr(lock_timeout)
        )

    hours = config.get("SYNC_HOURS")
    if isinstance(hours, int) and not isinstance(hours, bool):
        hours = [hours]
    if (
        not isinstance(hours, list)
        or not hours
        or any(isinstance(h, bool) or not isinstance(h, int) or not 0 <= h <= 23 for h in hours)
    ):
        raise ConfigValidationError("SYNC_HOURS must be a list of hours between 0 and 23", repr(hours))
    config["SYNC_HOURS"] = sorted(set(hours))

    tokens = config.get("UPLOAD_TOKENS") or {}
    if not isinstance(tokens, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in tokens.items()
    ):
        raise ConfigValidationError("UPLOAD_TOKENS must map tags to token strings")
    config["UPLOAD_TOKENS"] = tokens

    if not config.get("STORE_DIR"):
        config["STORE_DIR"] = get_default_store_dir()
    config["STORE_DIR"] = os.path.expanduser(str(config["STORE_DIR"]))
    config["PUBLIC_BASE_URL"] = config.get("PUBLIC_BASE_URL") or ""

    # Fail early on malformed mod entries.
    parse_mod_entries(config.get("MODS"))
    return config


def _parse_source(tag: str, raw: Any) -> Optional[ModSource]:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise ConfigValidationError(f"{tag}: source must be a mapping", repr(raw))

    source_type = raw.get("type")
    if not isinstance(source_type, str) or not source_type.strip():
        raise ConfigValidationError(f"{tag}: source.type is required")

    repo_id = raw.get("repo_id")
    if repo_id is not None:
        if isinstance(repo_id, bool):
            raise ConfigValidationError(f"{tag}: source.repo_id must be an integer", repr(repo_id))
        try:
            repo_id = int(repo_id)
        except (TypeError, ValueError) as e:
            raise ConfigValidationError(
                f"{tag}: source.repo_id must be an integer", repr(repo_id)
            ) from e

    return ModSource(
        type=source_type.strip(),
        owner=raw.get("owner"),
        repo=raw.get("repo"),
        repo_id=repo_id,
    )


def parse_mod_entries(raw_mods: Any) -> List[ModEntry]:
    """
    Turn the MODS list into catalog entries, preserving order.

    Unknown source kinds are accepted here and reported when a pass runs.

    Raises:
        ConfigValidationError: On a malformed entry, a duplicate or unsafe tag,
        or an unknown variant restriction.
    """
    if raw_mods is None:
        raw_mods = [dict(mod) for mod in DEFAULT_MODS]
    if not isinstance(raw_mods, list):
        raise ConfigValidationError("MODS must be a list")

    entries: List[ModEntry] = []
    seen = set()
    for index, raw in enumerate(raw_mods):
        if not isinstance(raw, dict):
            raise ConfigValidationError(f"MODS[{index}] must be a mapping", repr(raw))

        tag = raw.get("tag")
        if not isinstance(tag, str) or _sanitize_path_component(tag) != tag:
            raise ConfigValidationError(f"MODS[{index}]: invalid tag", repr(tag))
        if tag in seen:
            raise ConfigValidationError("Duplicate mod tag", tag)
        seen.add(tag)

        restriction = raw.get("variant_restriction")
        if restriction is not None and restriction not in RESTRICTION_TO_VARIANT:
            raise ConfigValidationError(
                f"{tag}: variant_restriction must be one of {sorted(RESTRICTION_TO_VARIANT)}",
                repr(restriction),
            )

        entries.append(
            ModEntry(
                tag=tag,
                variant_restriction=restriction,
                source=_parse_source(tag, raw.get("source")),
            )
        )
    return entries


def get_mod_entries(config: Mapping[str, Any]) -> List[ModEntry]:
    return parse_mod_entries(config.get("MODS"))
