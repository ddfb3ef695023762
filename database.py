from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

import settings

connect_args = {}
if settings.DATABASE_URL.startswith("sqlite"):
    # TestClient and the publish worker use the session from other threads
    connect_args["check_same_thread"] = False

engine = create_engine(settings.DATABASE_URL, connect_args=connect_args, pool_pre_ping=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
