# cohorthub/database.py

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import sessionmaker, scoped_session
from cohorthub.core.settings import settings

def build_engine(database_url: str, **kwargs) -> Engine:
    """
    Создаёт движок с ограниченными таймаутами: ожидание блокировки (SQLite),
    statement_timeout (PostgreSQL) и ожидание соединения из пула.
    """
    url = make_url(database_url)
    connect_args = dict(kwargs.pop("connect_args", {}))
    options = {"pool_pre_ping": True, "future": True}

    if url.get_backend_name() == "sqlite":
        connect_args.setdefault("check_same_thread", False)
        connect_args.setdefault("timeout", settings.DB_LOCK_TIMEOUT_SECONDS)
    else:
        timeout_ms = int(settings.DB_LOCK_TIMEOUT_SECONDS * 1000)
        if url.get_backend_name() == "postgresql":
            connect_args.setdefault(
                "options",
                f"-c statement_timeout={timeout_ms} -c lock_timeout={timeout_ms}",
            )
        options["pool_timeout"] = settings.DB_POOL_TIMEOUT_SECONDS

    options.update(kwargs)
    return create_engine(url, connect_args=connect_args, **options)

engine = build_engine(settings.DATABASE_URL)

# scoped_session для потокобезопасности
SessionLocal = scoped_session(
    sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
        expire_on_commit=False,
    )
)
