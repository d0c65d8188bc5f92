import os
import logging
from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool


logger = logging.getLogger(__name__)

Base = declarative_base()


class Database:
    """Storage handle owning the engine and session factory for one application."""

    def __init__(self, url: str):
        self.url = make_url(url)
        engine_kwargs = {}
        if self.url.get_backend_name() == "sqlite":
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if self.url.database in (None, "", ":memory:"):
                # a single shared connection, otherwise every session sees its own empty db
                engine_kwargs["poolclass"] = StaticPool
        self.engine = create_engine(url, **engine_kwargs)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def init(self):
        """Create the data directory for SQLite files and all tables."""
        # registers the models on Base.metadata
        from lodge import models  # noqa: F401

        if self.url.get_backend_name() == "sqlite" and self.url.database not in (None, "", ":memory:"):
            directory = os.path.dirname(self.url.database)
            if directory and not os.path.exists(directory):
                os.makedirs(directory)
        Base.metadata.create_all(bind=self.engine)
        logger.info(f"Database ready: {self.url.render_as_string(hide_password=True)}")

    def dispose(self):
        self.engine.dispose()
        logger.info("Database connections closed")


def get_db(request: Request):
    """Provide a database session bound to the running application's storage."""
    db = request.app.state.database.SessionLocal()
    try:
        yield db
    finally:
        db.close()
