from decimal import Decimal

import pytest

from gabarito.exceptions import ProvaNaoEncontrada
from gabarito.services import pontuacao


def teste_exemplo_com_peso_meio_ponto(db, criar_prova):
    prova = criar_prova("abcde", "0.50")

    desempenho = pontuacao.pontuar(db, prova.id, "abXde")

    assert desempenho.acertos == 4
    assert desempenho.nota == Decimal("2.00")


def teste_pontuacao_e_deterministica(db, criar_prova):
    prova = criar_prova("abcdeabcde", "0.50")

    primeiro = pontuacao.pontuar(db, prova.id, "abcd-?X0ce")
    segundo = pontuacao.pontuar(db, prova.id, "abcd-?X0ce")

    assert primeiro == segundo


@pytest.mark.parametrize("sentinela", ["0", "X", "?", "-"])
def teste_sentinela_nunca_conta_como_acerto(sentinela):
    # Mesmo quando o gabarito oficial tem o mesmo caractere na posição
    assert pontuacao.contar_acertos(sentinela * 3, sentinela * 3) == 0
    assert pontuacao.contar_acertos("a" + sentinela + "c", "a" + sentinela + "c") == 2


def teste_comparacao_ignora_maiusculas():
    assert pontuacao.contar_acertos("abcde", "ABCDE") == 5
    assert pontuacao.contar_acertos("ABCDE", "abcde") == 5


def teste_comparacao_limitada_a_menor_string():
    assert pontuacao.contar_acertos("abcde", "abc") == 3
    assert pontuacao.contar_acertos("abc", "abcdeeeee") == 3
    assert pontuacao.contar_acertos("abcde", "") == 0


def teste_nota_arredonda_meio_para_cima():
    assert pontuacao.calcular_nota(1, Decimal("0.125")) == Decimal("0.13")
    assert pontuacao.calcular_nota(3, Decimal("0.335")) == Decimal("1.01")
    assert pontuacao.calcular_nota(0, Decimal("0.50")) == Decimal("0.00")


@pytest.mark.parametrize("sentinela", [-1, 0, None])
def teste_prova_nao_identificada_zera_sem_consultar(db, sentinela):
    referencia = pontuacao.normalizar_referencia(sentinela)

    desempenho = pontuacao.pontuar(db, referencia, "abcde")

    assert referencia is None
    assert desempenho.acertos == 0
    assert desempenho.nota == Decimal("0.00")


def teste_prova_inexistente(db):
    with pytest.raises(ProvaNaoEncontrada) as excinfo:
        pontuacao.pontuar(db, 42, "abcde")
    assert excinfo.value.id_prova == 42


def teste_detalhe_por_questao(db, criar_prova):
    prova = criar_prova("abcde", "1.00")

    detalhe = pontuacao.detalhar(prova, "aXc")

    assert detalhe["acertos"] == 2
    assert detalhe["nota"] == Decimal("2.00")
    assert detalhe["total_questoes"] == 5
    assert [q["correto"] for q in detalhe["detalhe_por_questao"]] == [True, False, True, False, False]
    assert detalhe["detalhe_por_questao"][4] == {"questao": 5, "esperado": "e", "recebido": None, "correto": False}
