# bucketmirror Default Configuration
# Default configuration as Python dict and YAML generator

import copy
from typing import Any

import yaml

DEFAULT_CONFIG: dict[str, Any] = {
    "watch_root": "~/Backup",
    "store": {
        "backend": "s3",
        "endpoint": "localhost:9000",
        "bucket": "bucketmirror",
        "secure": False,
        "connect_timeout": 5.0,
        "read_timeout": 60.0,
        "max_attempts": 3,
    },
    "sync": {
        "interval_seconds": 300,
        "sweep_on_start": True,
        "poll_timeout": 0.5,
        "exclude": [],
    },
    "output": {
        "verbose": False,
        "colored": True,
        "log_file": "~/.config/bucketmirror/bucketmirror.log",
        "status_file": "~/.config/bucketmirror/status.yaml",
    },
}


def get_default_config() -> dict[str, Any]:
    """Return a deep copy of the default configuration."""
    return copy.deepcopy(DEFAULT_CONFIG)


def generate_default_config() -> str:
    """Generate default configuration as YAML string with comments."""
    header = """# bucketmirror Configuration
#
# Mirrors watch_root one-way into an object store bucket.
# Local changes are pushed as they happen; a full reconciliation sweep
# runs every sync.interval_seconds to repair anything the watcher missed.
#
# Store backends:
#   - s3:    any S3-compatible endpoint (AWS, MinIO, ...)
#   - local: a directory on disk (store.local_path/<bucket>)
#
# Credentials can be given here or via BUCKETMIRROR_ACCESS_KEY and
# BUCKETMIRROR_SECRET_KEY.
#
# sync.exclude takes glob patterns, e.g. ["*.tmp", "*.swp", ".DS_Store"]

"""
    return header + yaml.dump(DEFAULT_CONFIG, default_flow_style=False, sort_keys=False, allow_unicode=True)
