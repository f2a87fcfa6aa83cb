"""Tests for the process-wide collaborators behind the API."""

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable

import pytest

from mediamod import db
from mediamod import main
from mediamod.blob import LocalBlobGateway
from mediamod.broadcast import BroadcastChannel

_WORKERS = 8


def _call_together(fn: Callable[[], Any]) -> list[Any]:
    barrier = threading.Barrier(_WORKERS)

    def call() -> Any:
        barrier.wait(timeout=5)
        return fn()

    with ThreadPoolExecutor(max_workers=_WORKERS) as pool:
        futures = [pool.submit(call) for _ in range(_WORKERS)]
        return [f.result(timeout=10) for f in futures]


def test_get_channel_builds_one_channel_under_contention(monkeypatch: pytest.MonkeyPatch) -> None:
    def slow_channel(**kwargs: Any) -> BroadcastChannel:
        time.sleep(0.01)
        return BroadcastChannel(**kwargs)

    monkeypatch.setattr(main, "_channel", None)
    monkeypatch.setattr(main, "BroadcastChannel", slow_channel)

    channels = _call_together(main.get_channel)

    assert len({id(c) for c in channels}) == 1
    assert main.get_channel() is channels[0]


def test_get_blob_gateway_builds_one_gateway_under_contention(
    monkeypatch: pytest.MonkeyPatch, tmp_path
) -> None:
    def slow_gateway(settings: Any) -> LocalBlobGateway:
        time.sleep(0.01)
        return LocalBlobGateway(tmp_path)

    monkeypatch.setattr(main, "_blob_gateway", None)
    monkeypatch.setattr(main, "build_blob_gateway", slow_gateway)

    gateways = _call_together(main.get_blob_gateway)

    assert len({id(g) for g in gateways}) == 1


def test_get_engine_builds_one_engine_under_contention(monkeypatch: pytest.MonkeyPatch) -> None:
    built = []
    real_make_engine = db.make_engine

    def slow_make_engine(url: str):
        time.sleep(0.01)
        engine = real_make_engine("sqlite://")
        built.append(engine)
        return engine

    monkeypatch.setattr(db, "_engine", None)
    monkeypatch.setattr(db, "make_engine", slow_make_engine)

    try:
        engines = _call_together(db.get_engine)
        assert len({id(e) for e in engines}) == 1
        assert len(built) == 1
    finally:
        for engine in built:
            engine.dispose()
