import pytest

from gabarito import models
from gabarito.exceptions import CorridaReconciliacaoPerdida
from gabarito.services import reconciliacao
from testes.conftest import CONTA_A, CONTA_B


def _copias(db, nome, escola, conta_id):
    return db.query(models.Participante).filter_by(nome=nome, escola=escola, user_id=conta_id).all()


def teste_participante_nao_identificado(db):
    resultado = reconciliacao.resolver_participante(db, None, CONTA_A)

    assert resultado.id_participante is None
    assert not resultado.entre_contas
    assert db.query(models.Participante).count() == 0


def teste_participante_inexistente_vira_nulo(db):
    resultado = reconciliacao.resolver_participante(db, 999, CONTA_A)

    assert resultado.id_participante is None
    assert db.query(models.Participante).count() == 0


def teste_participante_da_propria_conta(db, criar_participante):
    participante = criar_participante(user_id=CONTA_A)

    resultado = reconciliacao.resolver_participante(db, participante.id, CONTA_A)

    assert resultado.id_participante == participante.id
    assert resultado.participante_original is None
    assert db.query(models.Participante).count() == 1


def teste_participante_de_outra_conta_gera_copia(db, criar_participante):
    original = criar_participante("João Silva", "Escola Alpha", user_id=CONTA_A)

    resultado = reconciliacao.resolver_participante(db, original.id, CONTA_B)
    db.commit()

    copia = db.get(models.Participante, resultado.id_participante)
    assert copia.id != original.id
    assert copia.user_id == CONTA_B
    assert (copia.nome, copia.escola) == ("João Silva", "Escola Alpha")
    assert resultado.participante_original.id == original.id
    assert resultado.copia_criada
    # O registro original continua intacto e com o dono original
    assert db.get(models.Participante, original.id).user_id == CONTA_A


def teste_copia_reutilizada_em_leituras_repetidas(db, criar_participante):
    original = criar_participante(user_id=CONTA_A)

    primeira = reconciliacao.resolver_participante(db, original.id, CONTA_B)
    db.commit()
    segunda = reconciliacao.resolver_participante(db, original.id, CONTA_B)
    db.commit()

    assert primeira.id_participante == segunda.id_participante
    assert not segunda.copia_criada
    assert len(_copias(db, original.nome, original.escola, CONTA_B)) == 1


def teste_participante_legado_sem_dono_gera_copia(db, criar_participante):
    legado = criar_participante(user_id=None)

    resultado = reconciliacao.resolver_participante(db, legado.id, CONTA_B)

    assert resultado.id_participante != legado.id
    assert db.get(models.Participante, resultado.id_participante).user_id == CONTA_B


def teste_corrida_perdida_relê_copia_existente(db, criar_participante, monkeypatch):
    original = criar_participante(user_id=CONTA_A)
    # Outra requisição já criou a cópia, mas a primeira busca não a enxergou
    vencedora = criar_participante(original.nome, original.escola, user_id=CONTA_B)
    buscar = reconciliacao.buscar_participante_da_conta
    chamadas = []

    def buscar_atrasado(*args):
        chamadas.append(args)
        return None if len(chamadas) == 1 else buscar(*args)

    monkeypatch.setattr(reconciliacao, "buscar_participante_da_conta", buscar_atrasado)

    resultado = reconciliacao.resolver_participante(db, original.id, CONTA_B)
    db.commit()

    assert resultado.id_participante == vencedora.id
    assert not resultado.copia_criada
    assert len(chamadas) == 2
    assert len(_copias(db, original.nome, original.escola, CONTA_B)) == 1


def teste_corrida_perdida_duas_vezes_e_escalada(db, criar_participante, monkeypatch):
    original = criar_participante(user_id=CONTA_A)
    criar_participante(original.nome, original.escola, user_id=CONTA_B)
    monkeypatch.setattr(reconciliacao, "buscar_participante_da_conta", lambda *args: None)

    with pytest.raises(CorridaReconciliacaoPerdida):
        reconciliacao.resolver_participante(db, original.id, CONTA_B)

    db.rollback()
    assert len(_copias(db, original.nome, original.escola, CONTA_B)) == 1
