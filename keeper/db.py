# db.py
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from keeper.config import DATABASE_URL

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, connect_args=connect_args)
SessionLocal = sessionmaker(bind=engine)
Base = declarative_base()


def init_db():
    from keeper import models  # noqa: F401  (registers the tables)

    Base.metadata.create_all(bind=engine)


def get_db():
    db: Session = SessionLocal()
    try:
        yield db
    finally:
        db.close()
