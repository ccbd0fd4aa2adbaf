# storefront/database/db_connection.py

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from ..config.settings import DATABASE_URL
from storefront.utils.logger import logger

# Single base for every model
Base = declarative_base()

# SQLite needs check_same_thread off because FastAPI runs sync deps in a threadpool
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(
    DATABASE_URL,
    pool_pre_ping=True,
    connect_args=connect_args,
)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)


def init_db():
    """Creates the tables of every registered model."""
    # Import models so they register on Base.metadata
    from storefront.api.delivery.models import model_pending_order  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("[Database] Tables ready.")


# Dependency for FastAPI
def get_db():
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
