from decimal import Decimal

import pytest

from gabarito import models, schemas
from gabarito.exceptions import (
    AlteracaoVazia,
    GabaritoMalformado,
    LeituraNaoEncontrada,
    ParticipanteNaoEncontrado,
    ProvaNaoEncontrada,
)
from gabarito.services import leituras
from testes.conftest import CONTA_A, CONTA_B


def _resultado(erro=0, id_prova=-1, id_participante=-1, leitura=""):
    return schemas.ResultadoLeitor(erro=erro, id_prova=id_prova, id_participante=id_participante, leitura=leitura)


@pytest.fixture
def leitura_gravada(db, criar_prova, criar_participante):
    prova = criar_prova("abcde", "0.50")
    participante = criar_participante(user_id=CONTA_A)
    ingestao = leituras.ingerir(db, "0001.png", _resultado(0, prova.id, participante.id, "aaaaa"), CONTA_A)
    return ingestao.leitura


# --- Ingestão ---

def teste_ingestao_de_leitura_limpa(db, criar_prova, criar_participante):
    prova = criar_prova("abcde", "0.50")
    participante = criar_participante(user_id=CONTA_A)

    ingestao = leituras.ingerir(db, "0001.png", _resultado(0, prova.id, participante.id, "abXde"), CONTA_A)

    leitura = ingestao.leitura
    assert leitura.id is not None
    assert (leitura.acertos, leitura.nota) == (4, Decimal("2.00"))
    assert leitura.id_participante == participante.id
    assert leitura.user_id == CONTA_A
    assert ingestao.participante_original is None
    assert ingestao.aviso is None


def teste_erro_fatal_e_gravado_com_nota_zerada(db, criar_prova):
    prova = criar_prova("abcde", "0.50")

    ingestao = leituras.ingerir(db, "ruim.png", _resultado(3, prova.id, -1, "abcde"), CONTA_A)

    leitura = ingestao.leitura
    assert leitura.erro == 3
    assert (leitura.acertos, leitura.nota) == (0, Decimal("0.00"))
    assert leitura.id_prova is None
    assert ingestao.aviso == "Erro fatal durante a leitura"
    assert db.query(models.Leitura).count() == 1


def teste_leitura_imprecisa_ainda_e_pontuada(db, criar_prova):
    prova = criar_prova("abcde", "0.50")

    ingestao = leituras.ingerir(db, "0002.png", _resultado(2, prova.id, -1, "abcde"), CONTA_A)

    assert ingestao.leitura.acertos == 5
    assert ingestao.aviso == "Imprecisão ou erro na identificação da área de leitura"


def teste_prova_inexistente_impede_gravacao(db, criar_participante):
    participante = criar_participante(user_id=CONTA_A)

    with pytest.raises(ProvaNaoEncontrada):
        leituras.ingerir(db, "0099.png", _resultado(0, 99, participante.id, "abcde"), CONTA_B)

    db.rollback()
    assert db.query(models.Leitura).count() == 0
    # Nenhuma cópia do participante foi criada para a leitura rejeitada
    assert db.query(models.Participante).count() == 1


def teste_leitura_sem_participante_fica_visivel_para_quem_criou(db):
    ingestao = leituras.ingerir(db, "0005.png", _resultado(1, -1, -1, "X-dd-"), CONTA_A)

    leitura = ingestao.leitura
    assert leitura.id_participante is None
    assert leitura.user_id == CONTA_A
    assert leituras.obter_leitura(db, leitura.id, CONTA_A).id == leitura.id
    assert [l.id for l in leituras.listar_leituras(db, CONTA_A)] == [leitura.id]
    with pytest.raises(LeituraNaoEncontrada):
        leituras.obter_leitura(db, leitura.id, CONTA_B)


def teste_folha_base_nao_tem_prova_nem_participante(db):
    ingestao = leituras.ingerir(db, "base.png", _resultado(0, 0, 0, "-----"), CONTA_A)

    assert ingestao.leitura.id_prova is None
    assert ingestao.leitura.id_participante is None
    assert ingestao.leitura.nota == Decimal("0.00")


def teste_isolamento_entre_contas(db, criar_prova, criar_participante):
    prova = criar_prova("abcde", "0.50")
    p1 = criar_participante("Maria Santos", "Escola Beta", user_id=CONTA_A)
    leitura_a = leituras.ingerir(db, "a.png", _resultado(0, prova.id, p1.id, "abcde"), CONTA_A).leitura

    ingestao_b = leituras.ingerir(db, "b.png", _resultado(0, prova.id, p1.id, "abcde"), CONTA_B)

    copia = ingestao_b.leitura.participante
    assert copia.id != p1.id
    assert copia.user_id == CONTA_B
    assert (copia.nome, copia.escola) == ("Maria Santos", "Escola Beta")
    assert ingestao_b.participante_original.id == p1.id
    # A leitura da conta A continua apontando para o participante original
    assert db.get(models.Leitura, leitura_a.id).id_participante == p1.id
    assert [l.id for l in leituras.listar_leituras(db, CONTA_A)] == [leitura_a.id]
    assert [l.id for l in leituras.listar_leituras(db, CONTA_B)] == [ingestao_b.leitura.id]


def teste_leituras_repetidas_usam_a_mesma_copia(db, criar_prova, criar_participante):
    prova = criar_prova("abcde", "0.50")
    p1 = criar_participante(user_id=CONTA_A)

    primeira = leituras.ingerir(db, "1.png", _resultado(0, prova.id, p1.id, "abcde"), CONTA_B).leitura
    segunda = leituras.ingerir(db, "2.png", _resultado(0, prova.id, p1.id, "aaaaa"), CONTA_B).leitura

    assert primeira.id_participante == segunda.id_participante
    assert db.query(models.Participante).filter_by(user_id=CONTA_B).count() == 1


# --- Correção ---

def teste_correcao_recalcula_nota(db, leitura_gravada):
    assert (leitura_gravada.acertos, leitura_gravada.nota) == (1, Decimal("0.50"))

    corrigida = leituras.corrigir(db, leitura_gravada.id, schemas.LeituraUpdate(gabarito="abcde"), CONTA_A)

    assert (corrigida.acertos, corrigida.nota) == (5, Decimal("2.50"))
    assert corrigida.gabarito == "abcde"


def teste_correcao_ignora_nota_enviada_pelo_cliente(db, leitura_gravada):
    alteracao = schemas.LeituraUpdate.model_validate({"gabarito": "abcaa", "acertos": 5, "nota": 10})

    corrigida = leituras.corrigir(db, leitura_gravada.id, alteracao, CONTA_A)

    assert (corrigida.acertos, corrigida.nota) == (3, Decimal("1.50"))


def teste_correcao_sem_campos_e_rejeitada(db, leitura_gravada):
    with pytest.raises(AlteracaoVazia):
        leituras.corrigir(db, leitura_gravada.id, schemas.LeituraUpdate(), CONTA_A)


@pytest.mark.parametrize("respostas", ["abcdf", "abc", "abcdeabcde", "ab cd"])
def teste_gabarito_malformado_nao_altera_leitura(db, leitura_gravada, respostas):
    with pytest.raises(GabaritoMalformado):
        leituras.corrigir(db, leitura_gravada.id, schemas.LeituraUpdate(gabarito=respostas), CONTA_A)

    db.rollback()
    leitura = db.get(models.Leitura, leitura_gravada.id)
    assert leitura.gabarito == "aaaaa"
    assert leitura.acertos == 1


def teste_tamanho_fixo_da_implantacao(db, leitura_gravada, monkeypatch):
    monkeypatch.setattr(leituras.settings, "TAMANHO_GABARITO", 20)

    with pytest.raises(GabaritoMalformado):
        leituras.corrigir(db, leitura_gravada.id, schemas.LeituraUpdate(gabarito="abcde"), CONTA_A)


def teste_correcao_mantem_campos_nao_enviados(db, leitura_gravada, criar_prova):
    outra = criar_prova("aaaaa", "1.00")

    corrigida = leituras.corrigir(db, leitura_gravada.id, schemas.LeituraUpdate(id_prova=outra.id), CONTA_A)

    assert corrigida.id_prova == outra.id
    assert corrigida.gabarito == "aaaaa"
    assert corrigida.id_participante is not None
    assert (corrigida.acertos, corrigida.nota) == (5, Decimal("5.00"))


def teste_correcao_para_prova_nao_identificada_zera_nota(db, leitura_gravada):
    corrigida = leituras.corrigir(db, leitura_gravada.id, schemas.LeituraUpdate(id_prova=None), CONTA_A)

    assert corrigida.id_prova is None
    assert (corrigida.acertos, corrigida.nota) == (0, Decimal("0.00"))


def teste_correcao_com_prova_inexistente(db, leitura_gravada):
    with pytest.raises(ProvaNaoEncontrada):
        leituras.corrigir(db, leitura_gravada.id, schemas.LeituraUpdate(id_prova=77), CONTA_A)


def teste_correcao_para_participante_de_outra_conta_usa_copia(db, leitura_gravada, criar_participante):
    alheio = criar_participante("Ana Costa", "Escola Gama", user_id=CONTA_B)

    corrigida = leituras.corrigir(db, leitura_gravada.id, schemas.LeituraUpdate(id_participante=alheio.id), CONTA_A)

    assert corrigida.id_participante != alheio.id
    assert corrigida.participante.user_id == CONTA_A
    assert corrigida.participante.nome == "Ana Costa"


def teste_correcao_com_participante_inexistente(db, leitura_gravada):
    with pytest.raises(ParticipanteNaoEncontrado):
        leituras.corrigir(db, leitura_gravada.id, schemas.LeituraUpdate(id_participante=555), CONTA_A)


def teste_correcao_de_leitura_alheia(db, leitura_gravada):
    with pytest.raises(LeituraNaoEncontrada):
        leituras.corrigir(db, leitura_gravada.id, schemas.LeituraUpdate(gabarito="abcde"), CONTA_B)


# --- Remoção e estatísticas ---

def teste_remocao_nao_afeta_participante_nem_prova(db, leitura_gravada):
    id_leitura = leitura_gravada.id
    id_prova, id_participante = leitura_gravada.id_prova, leitura_gravada.id_participante

    removida = leituras.remover(db, id_leitura, CONTA_A)

    assert removida.id == id_leitura
    assert db.query(models.Leitura).count() == 0
    assert db.get(models.Prova, id_prova) is not None
    assert db.get(models.Participante, id_participante) is not None


def teste_remocao_de_leitura_inexistente(db):
    with pytest.raises(LeituraNaoEncontrada):
        leituras.remover(db, 123, CONTA_A)


def teste_estatisticas_da_conta(db, criar_prova, criar_participante):
    prova = criar_prova("abcde", "0.50")
    participante = criar_participante(user_id=CONTA_A)
    leituras.ingerir(db, "1.png", _resultado(0, prova.id, participante.id, "abcde"), CONTA_A)
    leituras.ingerir(db, "2.png", _resultado(2, prova.id, participante.id, "abaaa"), CONTA_A)
    leituras.ingerir(db, "3.png", _resultado(3), CONTA_A)
    leituras.ingerir(db, "4.png", _resultado(0, prova.id, -1, "abcde"), CONTA_B)

    stats = leituras.estatisticas(db, CONTA_A)

    assert stats["total_leituras"] == 3
    assert stats["leituras_sucesso"] == 1
    assert stats["leituras_erro"] == 2
    assert stats["taxa_sucesso"] == pytest.approx(33.33)
    assert stats["nota_maxima"] == pytest.approx(2.5)
    assert stats["nota_minima"] == pytest.approx(0.0)
    assert stats["nota_media"] == pytest.approx(1.17)
    assert stats["participantes_unicos"] == 1
    assert stats["provas_distintas"] == 1


def teste_estatisticas_sem_leituras(db):
    stats = leituras.estatisticas(db, CONTA_A)

    assert stats["total_leituras"] == 0
    assert stats["taxa_sucesso"] == 0.0
    assert stats["nota_media"] == 0.0


def teste_leitura_orfa_volta_para_quem_criou(db, criar_participante):
    participante = criar_participante(user_id=CONTA_A)
    leitura = leituras.ingerir(db, "0005.png", _resultado(1, -1, -1, "X-dd-"), CONTA_B).leitura
    # Correção administrativa aponta a leitura da conta B para o participante da conta A
    leituras.corrigir(db, leitura.id, schemas.LeituraUpdate(id_participante=participante.id))
    assert [l.id for l in leituras.listar_leituras(db, CONTA_A)] == [leitura.id]
    assert leituras.listar_leituras(db, CONTA_B) == []

    db.delete(participante)
    db.commit()

    assert db.get(models.Leitura, leitura.id).id_participante is None
    assert leituras.listar_leituras(db, CONTA_A) == []
    assert [l.id for l in leituras.listar_leituras(db, CONTA_B)] == [leitura.id]


def teste_nota_maxima_cabe_na_coluna(db, criar_prova):
    prova = criar_prova("a" * 255, "100.00")

    leitura = leituras.ingerir(db, "cheia.png", _resultado(0, prova.id, -1, "a" * 255), CONTA_A).leitura

    assert (leitura.acertos, leitura.nota) == (255, Decimal("25500.00"))
    assert models.Leitura.__table__.c.nota.type.precision >= 7
