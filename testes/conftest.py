import pytest
from decimal import Decimal
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from gabarito import models
from gabarito.api.deps import get_leitor
from gabarito.database import Base, criar_engine, get_db
from gabarito.main import app
from gabarito.services.leitor import LeitorSimulado

CONTA_A = 1
CONTA_B = 2


@pytest.fixture
def engine():
    """Banco SQLite em memória, compartilhado por todas as sessões do teste."""
    engine = criar_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def fabrica_sessao(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(fabrica_sessao):
    sessao = fabrica_sessao()
    yield sessao
    sessao.close()


@pytest.fixture
def criar_prova(db):
    def _criar(gabarito="abcde", peso_questao="0.50"):
        prova = models.Prova(gabarito=gabarito, peso_questao=Decimal(peso_questao))
        db.add(prova)
        db.commit()
        return prova
    return _criar


@pytest.fixture
def criar_participante(db):
    def _criar(nome="João Silva", escola="Escola Alpha", user_id=CONTA_A):
        participante = models.Participante(nome=nome, escola=escola, user_id=user_id)
        db.add(participante)
        db.commit()
        return participante
    return _criar


@pytest.fixture
def leitor():
    return LeitorSimulado({
        "0001.png": {"erro": 0, "id_prova": 1, "id_participante": 1, "leitura": "abXde"},
        "0005.png": {"erro": 1, "id_prova": -1, "id_participante": -1, "leitura": "X-dd-"},
        "0099.png": {"erro": 0, "id_prova": 99, "id_participante": 1, "leitura": "abcde"},
    })


@pytest.fixture
def client(fabrica_sessao, leitor):
    def _get_db():
        sessao = fabrica_sessao()
        try:
            yield sessao
        finally:
            sessao.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_leitor] = lambda: leitor
    # Sem o "with": o lifespan (que cria as tabelas no banco configurado) não roda
    yield TestClient(app)
    app.dependency_overrides.clear()
