# bucketmirror Output Module
# Rich console output

from bucketmirror.output.console import Console, create_console

__all__ = [
    "Console",
    "create_console",
]
