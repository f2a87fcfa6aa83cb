# backend/api/mediamod/db.py
from __future__ import annotations

import threading

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    create_engine,
    func,
    text,
)
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from mediamod.config import get_settings

metadata = MetaData()

# `seq` breaks created_at ties so ordering follows insertion order.
media_table = Table(
    "media",
    metadata,
    Column("seq", Integer, primary_key=True, autoincrement=True),
    Column("id", String(64), nullable=False, unique=True),
    Column("url", String(2048), nullable=False),
    Column("author", String(255), nullable=False),
    Column("status", String(16), nullable=False, server_default="pending"),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    CheckConstraint("status IN ('pending', 'approved', 'rejected')", name="ck_media_status"),
    Index("ix_media_status_created_at", "status", "created_at"),
)


def make_engine(db_url: str) -> Engine:
    if db_url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in db_url or db_url in ("sqlite://", "sqlite:///"):
            # one shared connection, otherwise every checkout sees an empty database
            kwargs["poolclass"] = StaticPool
        return create_engine(db_url, future=True, **kwargs)
    return create_engine(db_url, pool_pre_ping=True, future=True)


def init_schema(engine: Engine) -> None:
    metadata.create_all(engine, checkfirst=True)


_engine: Engine | None = None
_engine_lock = threading.Lock()


def get_engine() -> Engine:
    global _engine

    if _engine is not None:
        return _engine

    with _engine_lock:
        if _engine is None:
            settings = get_settings()
            engine = make_engine(settings.database_url)
            if settings.auto_create_schema:
                init_schema(engine)
            _engine = engine
    return _engine


def db_ping(engine: Engine) -> None:
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
