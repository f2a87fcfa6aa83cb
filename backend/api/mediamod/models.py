from __future__ import annotations
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Union

@dataclass(frozen=True)
class MediaItem:
    id: str
    url: str
    author: str
    status: str
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat()
        return data

    def with_status(self, status: str) -> "MediaItem":
        return MediaItem(
            id=self.id,
            url=self.url,
            author=self.author,
            status=status,
            created_at=self.created_at,
        )

# Broadcast events. Ephemeral: never persisted, never replayed.

@dataclass(frozen=True)
class NewPending:
    item: MediaItem
    type = "new_pending_item"

    def payload(self) -> Any:
        return self.item.to_dict()

@dataclass(frozen=True)
class Approved:
    item: MediaItem
    type = "item_approved"

    def payload(self) -> Any:
        return self.item.to_dict()

@dataclass(frozen=True)
class Rejected:
    id: str
    type = "item_rejected"

    def payload(self) -> Any:
        return self.id

BroadcastEvent = Union[NewPending, Approved, Rejected]

def event_message(event: BroadcastEvent) -> dict[str, Any]:
    """Wire shape sent to real-time subscribers."""
    return {"type": event.type, "payload": event.payload()}
