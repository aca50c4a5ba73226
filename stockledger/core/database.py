"""
Stock Ledger Database Configuration
SQLAlchemy setup for PostgreSQL connection
"""
from contextlib import contextmanager
from typing import Any, Generator, Iterator

from sqlalchemy import MetaData, create_engine, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import QueuePool

from .config import settings
from .exceptions import ConflictError, InventoryException, StorageError
from .logging import get_logger

logger = get_logger("database")

# Create SQLAlchemy engine with connection pooling
engine = create_engine(
    settings.DATABASE_URL,
    poolclass=QueuePool,
    pool_size=settings.DATABASE_POOL_SIZE,
    max_overflow=settings.DATABASE_MAX_OVERFLOW,
    pool_recycle=3600,  # Recycle connections after 1 hour
    pool_pre_ping=True,  # Validate connections before use
    echo=settings.DEBUG,  # Log SQL queries in debug mode
)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)

# Base class for models, with a naming convention for constraints
Base = declarative_base(metadata=MetaData(naming_convention={
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s"
}))

_DEPTH_KEY = "uow_depth"


def get_db() -> Generator:
    """
    Dependency function to get database session

    Yields:
        Database session
    """
    db = SessionLocal()
    try:
        yield db
    except Exception as e:
        logger.error(f"Database session error: {e}")
        db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def unit_of_work(db: Session, operation: str, **context: Any) -> Iterator[Session]:
    """
    Run a block as one atomic unit of work.

    The outermost block commits on success and rolls back on any failure.
    Nested blocks join the enclosing unit and leave commit/rollback to it.
    Driver errors are re-raised as ConflictError (unique/check violations)
    or StorageError (everything else), carrying the operation and context.
    """
    depth = db.info.get(_DEPTH_KEY, 0)
    db.info[_DEPTH_KEY] = depth + 1
    outermost = depth == 0
    try:
        yield db
        if outermost:
            db.commit()
    except InventoryException as e:
        if outermost:
            db.rollback()
            logger.warning(f"{operation} rolled back: {e.message} {context}")
        raise
    except IntegrityError as e:
        if outermost:
            db.rollback()
        logger.error(f"{operation} violated a constraint {context}: {e.orig}")
        raise ConflictError(
            f"Constraint violation during {operation}", operation=operation, **context
        ) from e
    except SQLAlchemyError as e:
        if outermost:
            db.rollback()
        logger.error(f"{operation} failed in storage {context}: {e}")
        raise StorageError(operation, context, e) from e
    except Exception:
        if outermost:
            db.rollback()
        logger.exception(f"{operation} failed {context}")
        raise
    finally:
        db.info[_DEPTH_KEY] = depth


def init_db():
    """
    Initialize database tables

    This function creates all tables defined in models
    """
    try:
        # Import all models to ensure they are registered with Base
        from stockledger.models import inventory  # noqa: F401

        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created successfully")

    except Exception as e:
        logger.error(f"Error initializing database: {e}")
        raise


def check_db_connection() -> bool:
    """
    Check database connectivity

    Returns:
        True if connection successful, False otherwise
    """
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False
