"""
Database engine, session factory and migration check for the SQL backend
"""
import logging
from pathlib import Path
from typing import Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
from alembic.config import Config
from alembic.script import ScriptDirectory

from bitacora.core.config import settings

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[2]


def build_engine(database_url: str) -> Engine:
    """SQLite shares one connection so in-memory databases survive across sessions."""
    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    return create_engine(database_url, pool_pre_ping=True)


engine = build_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for the ledger tables
Base = declarative_base()


def alembic_head(project_root: Path = PROJECT_ROOT) -> str:
    alembic_ini = project_root / "alembic.ini"
    alembic_dir = project_root / "alembic"
    if not alembic_ini.exists() or not alembic_dir.exists():
        raise RuntimeError("Alembic configuration is missing, cannot verify the ledger schema.")

    alembic_cfg = Config(str(alembic_ini))
    alembic_cfg.set_main_option("script_location", str(alembic_dir))
    heads = ScriptDirectory.from_config(alembic_cfg).get_heads()
    if len(heads) != 1:
        raise RuntimeError(f"Expected a single Alembic head revision, found {len(heads)}.")
    return heads[0]


def database_revision(bind: Engine) -> Optional[str]:
    """Revision stamped in the database, None when it was never migrated."""
    try:
        with bind.connect() as conn:
            row = conn.execute(text("SELECT version_num FROM alembic_version LIMIT 1")).fetchone()
    except SQLAlchemyError:
        return None
    return row[0] if row else None


def init_db(bind: Engine = engine):
    """Refuse to start the SQL backend on a schema that is not at the latest migration."""
    expected = alembic_head()
    current = database_revision(bind)
    if current != expected:
        raise RuntimeError(
            f"Ledger schema is at revision {current}, expected {expected}. "
            "Run `python -m alembic upgrade head` before starting the app."
        )
    logger.info(f"Ledger schema verified at revision {expected}")
