"""
Tests for gunicorn.conf.py: uvicorn workers, env-driven bind, workers and log level.
"""
from __future__ import annotations

import runpy
from pathlib import Path

GUNICORN_CONF = Path(__file__).resolve().parent.parent / "gunicorn.conf.py"


def _load() -> dict:
    return runpy.run_path(str(GUNICORN_CONF))


def test_defaults(monkeypatch):
    for var in ("PORT", "WORKERS", "LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)
    conf = _load()
    assert conf["bind"] == "0.0.0.0:8000"
    assert conf["workers"] == 2
    assert conf["worker_class"] == "uvicorn.workers.UvicornWorker"
    assert conf["loglevel"] == "info"
    assert conf["timeout"] == 300


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("PORT", "9123")
    monkeypatch.setenv("WORKERS", "4")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    conf = _load()
    assert conf["bind"] == "0.0.0.0:9123"
    assert conf["workers"] == 4
    assert conf["loglevel"] == "debug"
