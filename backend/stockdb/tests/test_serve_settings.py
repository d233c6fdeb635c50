from __future__ import annotations

import pytest

from stockdb.serve import ServerSettings


def test_defaults_when_environment_is_empty():
    settings = ServerSettings.from_env({})

    assert settings == ServerSettings()
    options = settings.uvicorn_options()
    assert options["port"] == 8000
    assert "workers" not in options
    assert "ssl_certfile" not in options


def test_environment_overrides():
    settings = ServerSettings.from_env(
        {
            "HOST": "127.0.0.1",
            "PORT": "9001",
            "LOG_LEVEL": "DEBUG",
            "WEB_CONCURRENCY": "4",
            "SSL_CERTFILE": "/certs/api.pem",
            "SSL_KEYFILE": "/certs/api.key",
            "STOCKDB_MIGRATE_ON_START": "yes",
        }
    )

    options = settings.uvicorn_options()
    assert (options["host"], options["port"], options["log_level"]) == ("127.0.0.1", 9001, "debug")
    assert options["workers"] == 4
    assert (options["ssl_certfile"], options["ssl_keyfile"]) == ("/certs/api.pem", "/certs/api.key")
    assert settings.migrate_on_start is True


def test_reload_runs_single_worker():
    settings = ServerSettings.from_env({"RELOAD": "true", "WEB_CONCURRENCY": "3"})
    assert "workers" not in settings.uvicorn_options()


@pytest.mark.parametrize("env", [{"SSL_CERTFILE": "/certs/api.pem"}, {"SSL_KEYFILE": "/certs/api.key"}])
def test_half_configured_tls_rejected(env):
    with pytest.raises(RuntimeError):
        ServerSettings.from_env(env)
