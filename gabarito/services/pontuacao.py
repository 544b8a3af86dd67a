from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional

from sqlalchemy.orm import Session

from gabarito import models
from gabarito.exceptions import ProvaNaoEncontrada

# Alternativas válidas; qualquer outro caractere ("0", "X", "?", "-") é
# questão em branco ou com marcação múltipla e nunca conta como acerto.
ALTERNATIVAS_VALIDAS = frozenset("abcde")
CARACTERES_SENTINELA = frozenset("0X?-")

# Valores usados pelo leitor quando a prova/participante não foi identificado
# (-1) ou quando a folha é a folha base de calibração (0).
REFERENCIAS_NAO_IDENTIFICADAS = frozenset({-1, 0})

CENTAVOS = Decimal("0.01")


@dataclass(frozen=True)
class Desempenho:
    acertos: int
    nota: Decimal


DESEMPENHO_ZERADO = Desempenho(acertos=0, nota=Decimal("0.00"))


def normalizar_referencia(valor: Optional[int]) -> Optional[int]:
    """Converte os sentinelas do leitor (-1 / 0) em ``None``."""
    if valor is None or valor in REFERENCIAS_NAO_IDENTIFICADAS:
        return None
    return valor


def resposta_correta(recebido: str, esperado: str) -> bool:
    recebido = recebido.lower()
    return recebido in ALTERNATIVAS_VALIDAS and recebido == esperado.lower()


def contar_acertos(gabarito_oficial: str, respostas: str) -> int:
    """
    Compara posição a posição até o tamanho da menor string.

    :param gabarito_oficial: Respostas corretas da prova ("abcde...")
    :param respostas: Respostas lidas do aluno, possivelmente com sentinelas
    """
    return sum(
        1 for recebido, esperado in zip(respostas, gabarito_oficial)
        if resposta_correta(recebido, esperado)
    )


def calcular_nota(acertos: int, peso_questao) -> Decimal:
    """Nota = acertos * peso, arredondada para 2 casas (meio para cima)."""
    nota = Decimal(acertos) * Decimal(str(peso_questao))
    return nota.quantize(CENTAVOS, rounding=ROUND_HALF_UP)


def pontuar_com_prova(prova: models.Prova, respostas: str) -> Desempenho:
    acertos = contar_acertos(prova.gabarito, respostas or "")
    return Desempenho(acertos=acertos, nota=calcular_nota(acertos, prova.peso_questao))


def buscar_prova(db: Session, id_prova: int) -> models.Prova:
    prova = db.query(models.Prova).filter(models.Prova.id == id_prova).first()
    if prova is None:
        raise ProvaNaoEncontrada(id_prova)
    return prova


def pontuar(db: Session, id_prova: Optional[int], respostas: str) -> Desempenho:
    """
    Calcula acertos e nota de uma folha contra o gabarito da prova.

    Prova não identificada (``None``) resulta em desempenho zerado sem
    consultar o banco; prova inexistente gera ``ProvaNaoEncontrada``.
    """
    if id_prova is None:
        return DESEMPENHO_ZERADO

    return pontuar_com_prova(buscar_prova(db, id_prova), respostas)


def detalhar(prova: models.Prova, respostas: str) -> dict:
    """Desempenho questão a questão, no formato exibido na tela de conferência."""
    respostas = respostas or ""
    detalhes: List[dict] = []

    for indice, esperado in enumerate(prova.gabarito):
        recebido = respostas[indice] if indice < len(respostas) else None
        detalhes.append({
            "questao": indice + 1,
            "esperado": esperado,
            "recebido": recebido,
            "correto": recebido is not None and resposta_correta(recebido, esperado),
        })

    desempenho = pontuar_com_prova(prova, respostas)
    return {
        "nota": desempenho.nota,
        "acertos": desempenho.acertos,
        "total_questoes": len(prova.gabarito),
        "peso_questao": prova.peso_questao,
        "detalhe_por_questao": detalhes,
    }
