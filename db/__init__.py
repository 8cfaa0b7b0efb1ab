from constants import DATABASE_URL
from sqlalchemy import create_engine, inspect
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.engine.base import Engine
from sqlalchemy.pool import StaticPool

if DATABASE_URL.startswith("sqlite"):
    # one shared connection so in-memory databases survive across sessions
    engine: Engine = create_engine(
        DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
else:
    engine: Engine = create_engine(DATABASE_URL)
SessionLocal: [Session] = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class _Base:
    def _asdict(self):
        return {c.key: getattr(self, c.key) for c in inspect(self).mapper.column_attrs}


Base = declarative_base(cls=_Base)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
