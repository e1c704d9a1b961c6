from sqlalchemy import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine, select

from alterations.core.config import Settings
from alterations.core.observability import get_logger

# make sure all SQLModel models are imported before initializing DB
# otherwise, SQLModel might fail to initialize relationships properly
from alterations.infrastructure.database import models  # noqa: F401
from alterations.infrastructure.database.models import GlobalHoliday

logger = get_logger(__name__)


def create_db_engine(config: Settings) -> Engine:
    """Build the engine for ``config``; called once at process start."""
    url = config.SQLALCHEMY_DATABASE_URI

    if url.startswith("sqlite"):
        engine_kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection so every session sees the same in-memory DB
            engine_kwargs["poolclass"] = StaticPool
    else:
        engine_kwargs = {
            "pool_pre_ping": True,  # Verify connections before use
            "pool_recycle": 3600,  # Recycle connections every hour
            "pool_size": 10,
            "max_overflow": 20,
        }

    return create_engine(url, echo=config.LOG_SQL, **engine_kwargs)


def init_db(engine: Engine) -> None:
    # Tables are created directly from the SQLModel metadata; the schema is
    # small enough that migrations are not carried in this service.
    SQLModel.metadata.create_all(engine)

    with Session(engine) as session:
        holiday_count = len(session.exec(select(GlobalHoliday.id)).all())
    logger.info(
        "Database initialised",
        tables=len(SQLModel.metadata.tables),
        closures_configured=holiday_count,
    )
