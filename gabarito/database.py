from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from typing import Iterator
import logging

from gabarito.config import settings

logger = logging.getLogger(__name__)


def criar_engine(url: str, **kwargs):
    """Cria o engine SQLAlchemy; no SQLite habilita SAVEPOINT para o pysqlite."""
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
        engine = create_engine(url, echo=settings.DEBUG, **kwargs)

        # Receita oficial do SQLAlchemy: o driver pysqlite abre transações
        # sozinho e quebra os SAVEPOINTs usados na reconciliação.
        @event.listens_for(engine, "connect")
        def _desligar_transacao_do_driver(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(engine, "begin")
        def _iniciar_transacao(conn):
            conn.exec_driver_sql("BEGIN")

        return engine

    return create_engine(url, pool_pre_ping=True, pool_recycle=300, echo=settings.DEBUG, **kwargs)


engine = criar_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db() -> Iterator[Session]:
    """Dependência do FastAPI: uma sessão por requisição."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None):
    """Cria as tabelas (em projetos maiores, usar Alembic)."""
    from gabarito import models  # noqa: F401 - registra os modelos no metadata

    Base.metadata.create_all(bind=bind or engine)
    logger.info("Tabelas do banco de dados verificadas")
