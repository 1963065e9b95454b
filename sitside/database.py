import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from sitside.core import config, errors


logger = logging.getLogger(__name__)


def _connect_args(url: str) -> dict:
    # SQLite connections are handed between the threadpool workers FastAPI uses.
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(
    config.DATABASE_URL,
    echo=config.DATABASE_ECHO,
    connect_args=_connect_args(config.DATABASE_URL),
)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def run_with_write_retry(db: Session, operation, *, attempts: int | None = None):
    """Run a read-modify-write and commit it, retrying lost version checks.

    ``operation`` receives the session, must re-read every row it changes and
    returns whatever the caller needs. Versioned rows (``version_id_col``) make
    a concurrent writer surface as ``StaleDataError`` at flush time; the
    session is rolled back and the operation replayed against fresh state.
    """
    attempts = attempts or config.WRITE_RETRIES
    for attempt in range(1, attempts + 1):
        try:
            result = operation(db)
            db.commit()
            return result
        except StaleDataError:
            db.rollback()
            logger.warning('Write conflict detected (attempt %s of %s), retrying', attempt, attempts)
        except Exception:
            db.rollback()
            raise

    raise errors.ConflictError('The record was modified concurrently. Please retry.')
