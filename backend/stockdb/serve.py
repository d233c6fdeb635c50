"""
Process entry point for the stock ledger API.

Reads its settings from the environment, configures logging once for the
whole process, optionally brings the schema to the latest Alembic revision
and then hands over to uvicorn.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import uvicorn

logger = logging.getLogger(__name__)

PACKAGE_DIR = Path(__file__).resolve().parent
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_TRUTHY = {"1", "true", "yes", "on"}


def _flag(environ: Mapping[str, str], key: str, default: str = "false") -> bool:
    return environ.get(key, default).strip().lower() in _TRUTHY


@dataclass(frozen=True)
class ServerSettings:
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False
    workers: int = 1
    log_level: str = "info"
    forwarded_allow_ips: str = "*"
    ssl_certfile: Optional[str] = None
    ssl_keyfile: Optional[str] = None
    migrate_on_start: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ServerSettings":
        environ = os.environ if environ is None else environ
        certfile = environ.get("SSL_CERTFILE") or None
        keyfile = environ.get("SSL_KEYFILE") or None
        # uvicorn accepts a lone certfile, but then fails on the first handshake.
        if bool(certfile) != bool(keyfile):
            raise RuntimeError("SSL_CERTFILE and SSL_KEYFILE must be set together.")
        return cls(
            host=environ.get("HOST", cls.host),
            port=int(environ.get("PORT", cls.port)),
            reload=_flag(environ, "RELOAD"),
            workers=max(1, int(environ.get("WEB_CONCURRENCY", cls.workers))),
            log_level=environ.get("LOG_LEVEL", cls.log_level).strip().lower(),
            forwarded_allow_ips=environ.get("FORWARDED_ALLOW_IPS", cls.forwarded_allow_ips),
            ssl_certfile=certfile,
            ssl_keyfile=keyfile,
            migrate_on_start=_flag(environ, "STOCKDB_MIGRATE_ON_START"),
        )

    def uvicorn_options(self) -> Dict[str, Any]:
        options: Dict[str, Any] = {
            "host": self.host,
            "port": self.port,
            "reload": self.reload,
            "log_level": self.log_level,
            "proxy_headers": True,
            "forwarded_allow_ips": self.forwarded_allow_ips,
        }
        # Reload runs a single process; uvicorn rejects workers alongside it.
        if not self.reload and self.workers > 1:
            options["workers"] = self.workers
        if self.ssl_certfile:
            options["ssl_certfile"] = self.ssl_certfile
            options["ssl_keyfile"] = self.ssl_keyfile
        return options


def configure_logging(level: str) -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    logging.getLogger("stockdb").setLevel(level.upper())


def run_migrations() -> None:
    from alembic import command
    from alembic.config import Config

    config = Config()
    config.set_main_option("script_location", str(PACKAGE_DIR / "alembic"))
    logger.info("Upgrading database schema to head")
    command.upgrade(config, "head")


def main() -> None:
    settings = ServerSettings.from_env()
    configure_logging(settings.log_level)
    if settings.migrate_on_start:
        run_migrations()
    logger.info(
        "Starting stock ledger API",
        extra={"host": settings.host, "port": settings.port, "tls": bool(settings.ssl_certfile)},
    )
    uvicorn.run("stockdb.main:app", **settings.uvicorn_options())


if __name__ == "__main__":
    main()
