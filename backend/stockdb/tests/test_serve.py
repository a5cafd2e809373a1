from __future__ import annotations

from stockdb import serve


def test_reload_runs_single_process(monkeypatch):
    monkeypatch.setenv("RELOAD", "yes")
    monkeypatch.setenv("WORKERS", "4")
    monkeypatch.setenv("PORT", "9001")

    options = serve.server_options()

    assert options["reload"] is True
    assert "workers" not in options
    assert options["port"] == 9001


def test_workers_and_ssl_from_env(monkeypatch):
    monkeypatch.delenv("RELOAD", raising=False)
    monkeypatch.setenv("WORKERS", "3")
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    monkeypatch.setenv("SSL_CERTFILE", "/etc/ssl/stock.pem")
    monkeypatch.delenv("SSL_KEYFILE", raising=False)

    options = serve.server_options()

    assert options["workers"] == 3
    assert options["log_level"] == "warning"
    assert options["ssl_certfile"] == "/etc/ssl/stock.pem"
    assert "ssl_keyfile" not in options
