"""Database connection and session management"""
from sqlalchemy import create_engine, text
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi import Request
from typing import Generator
import logging

logger = logging.getLogger(__name__)

Base = declarative_base()


class Database:
    """
    Engine and session factory for one application instance.

    Created at startup and stored on ``app.state.database``; request handlers
    get their session through :func:`get_db`.
    """

    def __init__(self, database_url: str, echo: bool = False):
        logger.info("Initializing database connection")

        if database_url.startswith("sqlite"):
            # Single shared connection so in-memory databases survive across sessions
            self.engine = create_engine(
                database_url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
                echo=echo
            )
        else:
            self.engine = create_engine(
                database_url,
                pool_pre_ping=True,
                pool_size=5,
                max_overflow=10,
                echo=echo
            )

        self.SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            bind=self.engine
        )
        logger.info("Database connection initialized")

    def create_tables(self):
        """Create all tables"""
        # Registers every model on Base.metadata
        import shop_service.models  # noqa: F401

        logger.info("Creating database tables")
        Base.metadata.create_all(bind=self.engine)
        logger.info("Database tables created")

    def session(self) -> Session:
        return self.SessionLocal()

    def ping(self):
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))

    def dispose(self):
        self.engine.dispose()


def get_db(request: Request) -> Generator[Session, None, None]:
    """Dependency for getting database session"""
    db = request.app.state.database.session()
    try:
        yield db
    finally:
        db.close()
