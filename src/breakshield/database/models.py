"""Database models for BreakShield."""
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Text, create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker

from ..config import DATABASE_URL, get_engine_kwargs

Base = declarative_base()


class StateEntry(Base):
    """One key of the process-shared key/value namespace."""
    __tablename__ = 'shared_state'

    key = Column(String(100), primary_key=True)
    value = Column(Text)  # JSON
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    def __repr__(self):
        return f"<StateEntry(key={self.key})>"


class RestartEvent(Base):
    """Cross-process signal asking the controller to re-derive its schedule."""
    __tablename__ = 'restart_events'

    id = Column(Integer, primary_key=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    reason = Column(String(100), nullable=False)

    def __repr__(self):
        return f"<RestartEvent(id={self.id}, reason={self.reason})>"


class ShieldEntry(Base):
    """Token currently shielded by the local restriction engine."""
    __tablename__ = 'active_shields'

    id = Column(Integer, primary_key=True)
    kind = Column(String(30), nullable=False)  # see services.engine.SHIELD_KINDS
    token = Column(String(255), nullable=False)

    def __repr__(self):
        return f"<ShieldEntry(kind={self.kind}, token={self.token})>"


def _enable_wal(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


# Database initialization
def init_database(db_url: str = None):
    """Initialize the database, create tables and return a session factory."""
    db_url = db_url or DATABASE_URL
    engine = create_engine(db_url, **get_engine_kwargs(db_url))
    if db_url.startswith('sqlite') and ':memory:' not in db_url:
        event.listen(engine, 'connect', _enable_wal)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, expire_on_commit=False)
