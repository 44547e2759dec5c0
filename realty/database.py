from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, declarative_base
from realty.config import settings
import os

# Safety check: Prevent accidental production database usage in tests
if os.getenv("TESTING") == "true" and not settings.DATABASE_URL.startswith("sqlite"):
    import warnings
    warnings.warn(
        f"Tests are configured but DATABASE_URL points to non-SQLite: {settings.DATABASE_URL[:50]}...\n"
        "Set DATABASE_URL=sqlite:///:memory: before importing realty modules.",
        RuntimeWarning,
        stacklevel=2
    )


def _unicode_lower(value):
    if value is None:
        return None
    return str(value).lower()


def register_sqlite_functions(engine):
    """Replace SQLite's ASCII-only lower() so keyword search folds Cyrillic too."""

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.create_function("lower", 1, _unicode_lower, deterministic=True)

    return engine


# SQLite needs check_same_thread, PostgreSQL doesn't
if settings.DATABASE_URL.startswith("sqlite"):
    from sqlalchemy.pool import NullPool
    connect_args = {"check_same_thread": False}
    # SQLite doesn't support max_overflow, pool_timeout, pool_recycle or pool_pre_ping
    engine_kwargs = {
        "connect_args": connect_args,
        "poolclass": NullPool,
        "echo": False,
    }
else:
    connect_args = {
        "connect_timeout": 10,
    }
    engine_kwargs = {
        "connect_args": connect_args,
        "pool_size": 20,
        "max_overflow": 10,
        "pool_pre_ping": True,
        "pool_recycle": 3600,
        "pool_timeout": 30,
        "echo": False,
    }

engine = create_engine(settings.DATABASE_URL, **engine_kwargs)
if settings.DATABASE_URL.startswith("sqlite"):
    register_sqlite_functions(engine)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()
