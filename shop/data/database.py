# shop/data/database.py
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from shop.domain.errors import ConflictError, ShopError, TransientStoreError
from shop.utils.settings import DATABASE_URL
from shop.utils.logging import get_logger

logger = get_logger(__name__)

Base = declarative_base()


def make_engine(url: str):
    connect_args = {}
    if url.startswith("sqlite"):
        # sync endpoints run in a threadpool
        connect_args["check_same_thread"] = False
    return create_engine(url, pool_pre_ping=True, connect_args=connect_args)


engine = make_engine(DATABASE_URL)
SessionLocal = sessionmaker(bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None):
    # models must be imported before create_all can see their tables
    import shop.data.models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


@contextmanager
def transaction(db: Session):
    """
    One unit of work: commit when the block finishes, roll back everything
    written inside it on any error.

    Domain errors pass through unchanged. A unique-constraint race becomes a
    ConflictError, anything else from the driver becomes TransientStoreError
    so storage details never reach the caller.
    """
    try:
        yield db
        db.commit()
    except ShopError:
        db.rollback()
        raise
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"Integrity conflict, transaction rolled back: {e.orig}")
        raise ConflictError("Concurrent modification detected, please retry") from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Storage failure, transaction rolled back: {e}")
        raise TransientStoreError() from e
    except BaseException:
        db.rollback()
        raise
