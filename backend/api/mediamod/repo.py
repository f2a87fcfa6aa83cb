"""Item store for media records.

Every function opens its own transaction and returns plain data; nothing
is cached here, the table is the source of truth.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from sqlalchemy import DateTime, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from mediamod.errors import NotFound, StoreUnavailable
from mediamod.models import MediaItem


# ----------------------------
# Helpers
# ----------------------------

_MEDIA_COLUMNS = "id, url, author, status, created_at"


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _row_to_item(row: Any) -> MediaItem:
    return MediaItem(
        id=str(row["id"]),
        url=row["url"],
        author=row["author"],
        status=row["status"],
        created_at=_as_utc(row["created_at"]),
    )


def _select(sql: str):
    return text(sql).columns(created_at=DateTime(timezone=True))


def _new_id() -> str:
    return uuid4().hex


# ----------------------------
# CRUD / Queries
# ----------------------------

def insert_media(engine: Engine, url: str, author: str, status: str = "pending") -> MediaItem:
    """
    Insert a new record and return it as persisted, including the assigned id
    and the store-assigned timestamp. Single transaction: on failure nothing
    is visible.
    """
    media_id = _new_id()

    # created_at comes from the database clock, not the API host
    sql_insert = text("""
        INSERT INTO media (id, url, author, status, created_at)
        VALUES (:id, :url, :author, :status, CURRENT_TIMESTAMP)
    """)

    sql_get = _select(f"""
        SELECT {_MEDIA_COLUMNS}
        FROM media
        WHERE id = :id
    """)

    try:
        with engine.begin() as conn:
            conn.execute(
                sql_insert,
                {"id": media_id, "url": url, "author": author, "status": status},
            )
            row = conn.execute(sql_get, {"id": media_id}).mappings().one()
    except SQLAlchemyError as e:
        raise StoreUnavailable(f"Could not insert media record: {e}") from e

    return _row_to_item(row)


def get_media(engine: Engine, media_id: str) -> MediaItem:
    sql = _select(f"""
        SELECT {_MEDIA_COLUMNS}
        FROM media
        WHERE id = :id
    """)

    try:
        with engine.begin() as conn:
            row = conn.execute(sql, {"id": str(media_id)}).mappings().first()
    except SQLAlchemyError as e:
        raise StoreUnavailable(f"Could not read media record: {e}") from e

    if row is None:
        raise NotFound(str(media_id))
    return _row_to_item(row)


def query_media(engine: Engine, status: Optional[str] = None) -> List[MediaItem]:
    """
    Items filtered by status (all when None), always newest first.
    Ties on created_at fall back to insertion order.
    """
    where_sql = ""
    params: Dict[str, Any] = {}
    if status is not None:
        where_sql = "WHERE status = :status"
        params["status"] = status

    sql = _select(f"""
        SELECT {_MEDIA_COLUMNS}
        FROM media
        {where_sql}
        ORDER BY created_at DESC, seq DESC
    """)

    try:
        with engine.begin() as conn:
            rows = conn.execute(sql, params).mappings().all()
    except SQLAlchemyError as e:
        raise StoreUnavailable(f"Could not query media records: {e}") from e

    return [_row_to_item(r) for r in rows]


def update_media_status(engine: Engine, media_id: str, status: str) -> None:
    """
    Unconditional status write (last write wins). No version check.
    """
    sql = text("""
        UPDATE media
        SET status = :status
        WHERE id = :id
    """)

    try:
        with engine.begin() as conn:
            result = conn.execute(sql, {"id": str(media_id), "status": status})
    except SQLAlchemyError as e:
        raise StoreUnavailable(f"Could not update media record: {e}") from e

    if result.rowcount == 0:
        raise NotFound(str(media_id))
