from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from gallery.config import DB_URL, logger

connect_opts = {"check_same_thread": False} if DB_URL.startswith("sqlite") else {}
engine       = create_engine(DB_URL, connect_args=connect_opts)

SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)
Base         = declarative_base()


def init_db() -> None:
    """Create the gallery tables (no-op if already present)."""
    import gallery.models  # noqa: F401  registers the ORM tables on Base

    Base.metadata.create_all(bind=engine)
    logger.debug("Database ready at %s", engine.url.render_as_string(hide_password=True))
