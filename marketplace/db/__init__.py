import logging
import os

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from marketplace.config import settings

log = logging.getLogger("marketplace.db")

DATABASE_URL = settings.DATABASE_URL
_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, future=True, echo=False, connect_args=_connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def init_db(reset: bool = None):
    """
    Initialize DB schema.

    Behavior:
      - If `reset` is true (or RESET_DB env var is set to 1/true/yes), drop & recreate tables.
      - Otherwise, leave existing tables in place.

    Model modules are imported here so the metadata is populated.
    """
    import marketplace.models.cart_item  # noqa: F401
    import marketplace.models.order  # noqa: F401
    import marketplace.models.product  # noqa: F401

    if reset is None:
        reset = os.environ.get("RESET_DB", "false").lower() in ("1", "true", "yes")

    if reset:
        log.info("Resetting database (%s)", DATABASE_URL)
        Base.metadata.drop_all(bind=engine)

    Base.metadata.create_all(bind=engine)
    log.debug("Database tables ready")


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
