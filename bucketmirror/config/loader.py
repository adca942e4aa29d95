# bucketmirror Configuration Loader
# Load, save, and validate YAML configuration files

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from bucketmirror.config.defaults import generate_default_config, get_default_config
from bucketmirror.config.schema import MirrorConfig, StoreBackend

CONFIG_ENV_VAR = "BUCKETMIRROR_CONFIG"
ACCESS_KEY_ENV_VAR = "BUCKETMIRROR_ACCESS_KEY"
SECRET_KEY_ENV_VAR = "BUCKETMIRROR_SECRET_KEY"


def get_config_dir() -> Path:
    """Get the bucketmirror configuration directory."""
    return Path.home() / ".config" / "bucketmirror"


def get_config_path() -> Path:
    """Get the path to the configuration file."""
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()
    return get_config_dir() / "config.yaml"


def load_config(config_path: Optional[Path] = None) -> MirrorConfig:
    """
    Load configuration from YAML file.

    Args:
        config_path: Optional path to config file. Uses default if not provided.

    Returns:
        MirrorConfig: Validated configuration object.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ValidationError: If config file is invalid.
        ValueError: If the root or a section is not a mapping.
        yaml.YAMLError: If the file is not valid YAML.
    """
    if config_path is None:
        config_path = get_config_path()

    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path}\nRun 'bucketmirror config init' to create one."
        )

    with open(config_path, encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if data is None:
        data = {}

    if not isinstance(data, dict):
        raise ValueError("Configuration root must be a mapping")

    merged = _merge_with_defaults(data)
    _apply_env_overrides(merged)

    return MirrorConfig.model_validate(merged)


def save_config(config: MirrorConfig, config_path: Optional[Path] = None) -> Path:
    """
    Save configuration to YAML file.

    Args:
        config: Configuration object to save.
        config_path: Optional path to config file. Uses default if not provided.

    Returns:
        Path: Path where config was saved.
    """
    if config_path is None:
        config_path = get_config_path()

    config_path.parent.mkdir(parents=True, exist_ok=True)

    # mode='json' serializes Enums as their string values
    data = config.model_dump(exclude_none=True, mode="json")

    with open(config_path, "w", encoding="utf-8") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False, allow_unicode=True)

    return config_path


def ensure_config_exists(config_path: Optional[Path] = None) -> tuple[Path, bool]:
    """
    Ensure configuration file exists, creating default if needed.

    Returns:
        Tuple of (config_path, was_created).
    """
    if config_path is None:
        config_path = get_config_path()

    if config_path.exists():
        return config_path, False

    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(generate_default_config(), encoding="utf-8")
    return config_path, True


def validate_config_file(config_path: Optional[Path] = None) -> tuple[bool, list[str]]:
    """
    Validate a configuration file without starting anything.

    Args:
        config_path: Path to config file to validate.

    Returns:
        Tuple of (is_valid, error_messages).
    """
    if config_path is None:
        config_path = get_config_path()

    errors: list[str] = []

    if not config_path.exists():
        return False, [f"Configuration file not found: {config_path}"]

    try:
        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        return False, [f"Invalid YAML syntax: {e}"]

    if data is None:
        return False, ["Configuration file is empty"]

    if not isinstance(data, dict):
        return False, ["Configuration root must be a mapping"]

    try:
        config = MirrorConfig.model_validate(_merge_with_defaults(data))
    except ValidationError as e:
        for error in e.errors():
            loc = " -> ".join(str(part) for part in error["loc"])
            errors.append(f"{loc}: {error['msg']}")
        return False, errors
    except ValueError as e:
        return False, [str(e)]

    if not config.watch_root_path.is_dir():
        errors.append(f"watch_root is not a directory: {config.watch_root}")

    if config.store.backend == StoreBackend.LOCAL and not config.store.local_path:
        errors.append("store.local_path is required for the local backend")

    return len(errors) == 0, errors


def _merge_with_defaults(data: dict) -> dict:
    """
    Merge loaded data with default values for missing keys.

    Raises:
        ValueError: If a section is present but is not a mapping.
    """
    result = get_default_config()

    if "watch_root" in data:
        result["watch_root"] = data["watch_root"]

    for section in ("store", "sync", "output"):
        value = data.get(section)
        if value is None:
            continue
        if not isinstance(value, dict):
            raise ValueError(f"Configuration section '{section}' must be a mapping")
        result[section] = {**result[section], **value}

    return result


def _apply_env_overrides(data: dict) -> None:
    """Let credentials come from the environment instead of the file."""
    access_key = os.environ.get(ACCESS_KEY_ENV_VAR)
    secret_key = os.environ.get(SECRET_KEY_ENV_VAR)
    if access_key:
        data["store"]["access_key"] = access_key
    if secret_key:
        data["store"]["secret_key"] = secret_key
