from __future__ import annotations

from pathlib import Path
import sys

sys.path.append(str(Path(__file__).resolve().parents[1]))

from vizboard import server


def test_main_serves_the_app_from_environment(monkeypatch):
    calls: list[tuple[tuple, dict]] = []
    monkeypatch.setattr(server.uvicorn, "run", lambda *args, **kwargs: calls.append((args, kwargs)))
    monkeypatch.setenv("API_HOST", "0.0.0.0")
    monkeypatch.setenv("API_PORT", "9000")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    monkeypatch.delenv("API_RELOAD", raising=False)

    server.main()

    assert calls == [
        (("vizboard.app:app",), {"host": "0.0.0.0", "port": 9000, "log_level": "debug", "reload": False})
    ]
