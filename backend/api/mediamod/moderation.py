"""Moderation queue: submission -> pending -> approved/rejected.

Holds no copy of any record; every read goes to the item store. Status
updates are unconditional writes, so two concurrent moderations of the same
item race and the store keeps the last write. Both callers still get their
own result and both events are broadcast.
"""

from __future__ import annotations

from typing import List, Optional

from sqlalchemy.engine import Engine

from mediamod import repo
from mediamod.broadcast import BroadcastChannel
from mediamod.errors import ValidationError
from mediamod.logging_config import get_logger
from mediamod.models import Approved, MediaItem, NewPending, Rejected
from mediamod.workflow import (
    APPROVED,
    PENDING,
    is_terminal,
    validate_moderation_target,
    validate_status,
)

logger = get_logger(__name__)


class ModerationQueue:
    def __init__(self, engine: Engine, channel: BroadcastChannel, default_author: str = "Invitado"):
        self.engine = engine
        self.channel = channel
        self.default_author = default_author

    def submit(self, blob_url: str, author: Optional[str] = None) -> MediaItem:
        if not blob_url:
            raise ValidationError("blob url is required")

        author = (author or "").strip() or self.default_author
        item = repo.insert_media(self.engine, url=blob_url, author=author, status=PENDING)
        logger.info("media_submitted", media_id=item.id, author=item.author)

        self.channel.emit(NewPending(item))
        return item

    def list_by_status(self, status: Optional[str] = None) -> List[MediaItem]:
        """Newest first. `None` lists every item."""
        if status is not None:
            status = validate_status(status)
        return repo.query_media(self.engine, status=status)

    def list_pending(self) -> List[MediaItem]:
        return self.list_by_status(PENDING)

    def get(self, media_id: str) -> MediaItem:
        return repo.get_media(self.engine, media_id)

    def moderate(self, media_id: str, new_status: str) -> MediaItem:
        target = validate_moderation_target(new_status)

        current = repo.get_media(self.engine, media_id)
        if is_terminal(current.status):
            # no guard: terminal items can be moderated again
            logger.warning(
                "moderating_terminal_item",
                media_id=media_id,
                from_status=current.status,
                to_status=target,
            )

        repo.update_media_status(self.engine, media_id, target)
        item = current.with_status(target)
        logger.info("media_moderated", media_id=media_id, from_status=current.status, to_status=target)

        if target == APPROVED:
            self.channel.emit(Approved(item))
        else:
            self.channel.emit(Rejected(item.id))
        return item
