# bucketmirror Configuration Module
# Handles YAML-based configuration loading, validation, and defaults

from bucketmirror.config.defaults import DEFAULT_CONFIG, generate_default_config, get_default_config
from bucketmirror.config.loader import (
    ensure_config_exists,
    get_config_path,
    load_config,
    save_config,
    validate_config_file,
)
from bucketmirror.config.schema import (
    MirrorConfig,
    OutputConfig,
    StoreBackend,
    StoreConfig,
    SyncConfig,
)

__all__ = [
    # Schema
    "MirrorConfig",
    "StoreConfig",
    "StoreBackend",
    "SyncConfig",
    "OutputConfig",
    # Loader
    "load_config",
    "save_config",
    "get_config_path",
    "ensure_config_exists",
    "validate_config_file",
    # Defaults
    "DEFAULT_CONFIG",
    "generate_default_config",
    "get_default_config",
]
