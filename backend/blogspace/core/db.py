import logging

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine, select

from blogspace.core.config import settings
from blogspace.models import Tag

logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # SQLite ignores ON DELETE CASCADE unless the pragma is set per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(url: str) -> Engine:
    if not url.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True)

    kwargs: dict = {"connect_args": {"check_same_thread": False}}
    if url in ("sqlite://", "sqlite:///:memory:"):
        # one shared connection, otherwise every checkout sees an empty database
        kwargs["poolclass"] = StaticPool
    sqlite_engine = create_engine(url, **kwargs)
    event.listen(sqlite_engine, "connect", _enable_sqlite_foreign_keys)
    return sqlite_engine


engine = create_db_engine(settings.DATABASE_URL)


def init_db(session: Session, seed_tags: list[str] | None = None) -> None:
    """Create missing tables and seed the initial tags into an empty tag table."""
    SQLModel.metadata.create_all(session.get_bind())

    existing = session.exec(select(Tag)).first()
    if existing:
        return

    names = settings.SEED_TAGS if seed_tags is None else seed_tags
    for name in names:
        session.add(Tag(name=name))
    session.commit()
    logger.info("Database initialized with %s sample tags", len(names))
