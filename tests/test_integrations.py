"""
Tests for web and worker integrations.
"""

import logging

import pytest
from celery.signals import task_postrun, task_prerun
from starlette.applications import Starlette
from starlette.responses import JSONResponse
from starlette.routing import Route
from starlette.testclient import TestClient

from flagkeeper.api.middleware import FlushFeatureCacheMiddleware
from flagkeeper.worker import connect_cache_flush


@pytest.fixture
def app(manager) -> Starlette:
    def feature(request):
        return JSONResponse({"value": manager.value("foo")})

    def broken(request):
        manager.value("foo")
        raise RuntimeError("boom")

    app = Starlette(routes=[Route("/feature", feature), Route("/broken", broken)])
    app.add_middleware(FlushFeatureCacheMiddleware, manager=manager)
    return app


def test_cache_is_flushed_between_requests(app, manager):
    """Test that a value changed in storage is seen by the next request."""
    manager.define("foo", "v1")
    client = TestClient(app)

    assert client.get("/feature").json() == {"value": "v1"}

    manager.store().driver.set("foo", None, "v2")

    assert client.get("/feature").json() == {"value": "v2"}


def test_cache_is_flushed_when_handler_raises(app, manager, monkeypatch):
    flushes = []
    monkeypatch.setattr(manager, "flush_cache", lambda: flushes.append(1))
    client = TestClient(app, raise_server_exceptions=False)

    response = client.get("/broken")

    assert response.status_code == 500
    assert flushes == [1]


def test_celery_signals_flush_cache(manager, monkeypatch):
    flushes = []
    monkeypatch.setattr(manager, "flush_cache", lambda: flushes.append(1))

    disconnect = connect_cache_flush(manager)
    try:
        task_prerun.send(sender=None, task_id="t-1", task=None, args=(), kwargs={})
        task_postrun.send(sender=None, task_id="t-1", task=None, args=(), kwargs={})
    finally:
        disconnect()

    assert flushes == [1, 1]

    task_postrun.send(sender=None, task_id="t-2", task=None, args=(), kwargs={})
    assert flushes == [1, 1]


def test_celery_flush_is_logged_with_task_id(manager, caplog):
    caplog.set_level(logging.DEBUG, logger="flagkeeper.worker.signals")

    disconnect = connect_cache_flush(manager)
    try:
        task_prerun.send(sender=None, task_id="t-9", task=None, args=(), kwargs={})
    finally:
        disconnect()

    [record] = [r for r in caplog.records if r.name == "flagkeeper.worker.signals"]
    assert record.msg == "Feature cache flushed (task=%s)"
    assert record.args == ("t-9",)
    assert record.getMessage() == "Feature cache flushed (task=t-9)"
