# backend/stockdb/alembic/env.py
"""
Alembic environment for the stock schema.

Tables come from `import stockdb`, whose package __init__ imports the directory,
inventory, withdrawals and audit models onto `Base.metadata`.

URL precedence:
  1. `alembic -x db_url=...`
  2. sqlalchemy.url in alembic.ini, unless it is the `driver://` placeholder
  3. DATABASE_WRITE_URL / DATABASE_URL (the application's write engine)
"""

from __future__ import annotations

import os
import sys
from logging.config import fileConfig
from typing import Optional

from alembic import context
from sqlalchemy.engine import Engine

# env.py lives in backend/stockdb/alembic; `stockdb` must import from backend/.
BACKEND_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
if BACKEND_DIR not in sys.path:
    sys.path.insert(0, BACKEND_DIR)

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def _explicit_url() -> Optional[str]:
    """A URL given on the command line or in alembic.ini, if any."""
    url = context.get_x_argument(as_dictionary=True).get("db_url")
    if url:
        return url.strip()
    url = (config.get_main_option("sqlalchemy.url") or "").strip()
    if url and not url.startswith("driver://"):
        return url
    return None


# stockdb.database reads its URL from the environment at import time.
_cli_url = _explicit_url()
if _cli_url:
    os.environ.setdefault("DATABASE_WRITE_URL", _cli_url)

import stockdb  # noqa: F401, E402
from stockdb.database import Base, build_engine, write_engine  # noqa: E402

target_metadata = Base.metadata


def _env_url() -> str:
    url = (os.getenv("DATABASE_WRITE_URL") or os.getenv("DATABASE_URL") or "").strip()
    if not url:
        raise RuntimeError("No database URL: pass -x db_url=..., set sqlalchemy.url, or set DATABASE_WRITE_URL.")
    return url


def _configure_options() -> dict:
    # Enums are stored as VARCHAR + CHECK (native_enum=False); compare types so
    # a widened enum shows up in autogenerate.
    return {
        "target_metadata": target_metadata,
        "compare_type": True,
        "compare_server_default": True,
        "render_as_batch": context.get_x_argument(as_dictionary=True).get("batch") == "1",
    }


def run_migrations_offline() -> None:
    """Render SQL to stdout without connecting."""
    url = _explicit_url() or _env_url()
    config.set_main_option("sqlalchemy.url", url)
    context.configure(url=url, literal_binds=True, **_configure_options())

    with context.begin_transaction():
        context.run_migrations()


def _online_engine() -> Engine:
    url = _explicit_url()
    return build_engine(url) if url else write_engine


def run_migrations_online() -> None:
    engine = _online_engine()
    with engine.connect() as connection:
        context.configure(connection=connection, **_configure_options())
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
