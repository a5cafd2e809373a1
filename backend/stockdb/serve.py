"""
Run the stock withdrawal API under uvicorn.

    HOST / PORT            bind address (0.0.0.0:8000)
    WORKERS                worker processes; ignored when RELOAD is on
    RELOAD                 auto-reload for local development
    LOG_LEVEL              uvicorn and application log level
    ACCESS_LOG             per-request access lines (on)
    SSL_CERTFILE / SSL_KEYFILE
"""

import logging
import os
from typing import Any, Dict

import uvicorn

APP_PATH = "stockdb.main:app"

_TRUTHY = {"1", "true", "yes", "on"}


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in _TRUTHY


def _ssl_options() -> Dict[str, str]:
    options: Dict[str, str] = {}
    certfile = os.getenv("SSL_CERTFILE")
    keyfile = os.getenv("SSL_KEYFILE")
    if certfile:
        options["ssl_certfile"] = certfile
    if keyfile:
        options["ssl_keyfile"] = keyfile
    return options


def server_options() -> Dict[str, Any]:
    reload_enabled = _flag("RELOAD")
    log_level = os.getenv("LOG_LEVEL", "info").lower()
    options: Dict[str, Any] = {
        "host": os.getenv("HOST", "0.0.0.0"),
        "port": int(os.getenv("PORT", "8000")),
        "reload": reload_enabled,
        "log_level": log_level,
        "access_log": _flag("ACCESS_LOG", "true"),
        "proxy_headers": True,
    }
    if not reload_enabled:
        options["workers"] = int(os.getenv("WORKERS", "1"))
    options.update(_ssl_options())
    return options


def main() -> None:
    options = server_options()
    # Application loggers (stockdb.*) follow the server's level.
    logging.getLogger("stockdb").setLevel(options["log_level"].upper())
    uvicorn.run(APP_PATH, **options)


if __name__ == "__main__":
    main()
