# bucketmirror Errors
# Exception hierarchy for store, watch, and path failures


class MirrorError(Exception):
    """Base class for all bucketmirror errors."""


class StoreUnavailable(MirrorError):
    """Network, auth, or backend failure talking to the object store."""


class LocalFileUnreadable(MirrorError):
    """Local file vanished or became inaccessible before it could be uploaded."""


class WatchSubscriptionFailed(MirrorError):
    """A directory could not be subscribed for change notifications."""


class PathResolutionFailed(MirrorError):
    """A path lies outside the watch root or has no relative key."""


class ServiceStateError(MirrorError):
    """Requested lifecycle transition is not allowed from the current state."""
