from __future__ import annotations


class MediaError(Exception):
    """Base class for failures surfaced by the moderation pipeline."""

    kind = "media_error"


class ValidationError(MediaError):
    """Caller sent a bad request (missing upload, unknown status, ...)."""

    kind = "validation_error"


class NotFound(MediaError):
    kind = "not_found"

    def __init__(self, media_id: str):
        super().__init__(f"Media item not found: {media_id}")
        self.media_id = media_id


class StoreUnavailable(MediaError):
    """The item store could not serve the request. Safe to retry later."""

    kind = "store_unavailable"


class StorageUnavailable(MediaError):
    """The blob gateway could not accept or publish the upload. Safe to retry later."""

    kind = "storage_unavailable"
