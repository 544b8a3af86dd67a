from functools import lru_cache
import logging

from fastapi import Header, HTTPException

from gabarito.config import settings
from gabarito.exceptions import (
    AlteracaoVazia,
    CorridaReconciliacaoPerdida,
    ErroGabarito,
    GabaritoMalformado,
    LeituraNaoEncontrada,
    ParticipanteNaoEncontrado,
    ProvaNaoEncontrada,
)
from gabarito.services.leitor import LeitorImagem, LeitorSimulado

logger = logging.getLogger(__name__)

STATUS_POR_ERRO = {
    ProvaNaoEncontrada: 404,
    LeituraNaoEncontrada: 404,
    ParticipanteNaoEncontrado: 404,
    GabaritoMalformado: 422,
    AlteracaoVazia: 400,
    CorridaReconciliacaoPerdida: 500,
}


def erro_http(erro: ErroGabarito) -> HTTPException:
    """Traduz um erro do motor para a resposta HTTP correspondente."""
    status = STATUS_POR_ERRO.get(type(erro), 500)
    return HTTPException(status_code=status, detail=erro.mensagem)


def get_conta_atual(x_conta_id: int = Header(..., description="Conta autenticada que faz a requisição")) -> int:
    # A autenticação fica no gateway; aqui chega apenas o ID da conta
    return x_conta_id


@lru_cache
def get_leitor() -> LeitorImagem:
    if settings.RESULTADOS_LEITOR_PATH:
        return LeitorSimulado.de_arquivo(settings.RESULTADOS_LEITOR_PATH)
    logger.warning("RESULTADOS_LEITOR_PATH não configurado: todas as imagens serão tratadas como erro fatal")
    return LeitorSimulado()
