# app/data/database.py
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from app.utils.settings import DATABASE_URL, DB_POOL_SIZE, DB_ECHO
from app.utils.retry import db_retry
from app.utils.logging import get_logger

logger = get_logger(__name__)

Base = declarative_base()


def _enable_sqlite_transactions(engine: Engine) -> None:
    #pysqlite sam decyduje kiedy robic BEGIN, wylaczamy to i robimy BEGIN sami
    #inaczej dwa SELECTy w jednej transakcji nie widza tego samego snapshotu
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_conn, _record):
        dbapi_conn.isolation_level = None
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def build_engine(url: str = DATABASE_URL) -> Engine:
    if url.startswith("sqlite"):
        engine = create_engine(
            url,
            echo=DB_ECHO,
            connect_args={"check_same_thread": False, "timeout": 30},
        )
        _enable_sqlite_transactions(engine)
        return engine

    return create_engine(
        url,
        echo=DB_ECHO,
        pool_size=DB_POOL_SIZE,
        pool_pre_ping=True,
    )


def build_session_factory(bind: Engine) -> sessionmaker:
    return sessionmaker(bind=bind, autoflush=False, expire_on_commit=False)


engine = build_engine()
SessionLocal = build_session_factory(engine)


@db_retry()
def wait_for_database(bind: Engine) -> None:
    with bind.connect() as conn:
        conn.execute(text("SELECT 1"))
    logger.info(f"Database reachable at {bind.url.render_as_string(hide_password=True)}")


def ping(bind: Engine) -> bool:
    try:
        with bind.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.warning(f"Database ping failed: {e}")
        return False
