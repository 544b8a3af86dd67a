"""
Interface com o leitor de imagens externo.

O reconhecimento óptico em si não faz parte deste serviço: o leitor recebe o
caminho de uma imagem e devolve ``erro``, ``id_prova``, ``id_participante`` e a
string de respostas. ``LeitorSimulado`` atende desenvolvimento e testes com
resultados pré-definidos por nome de arquivo.
"""
import json
import logging
import os
from typing import Dict, Optional, Protocol

from gabarito.schemas import ResultadoLeitor

logger = logging.getLogger(__name__)

ERRO_CODIGO_ILEGIVEL = 1
ERRO_LEITURA_IMPRECISA = 2
ERRO_FATAL = 3

MENSAGENS_ERRO = {
    ERRO_CODIGO_ILEGIVEL: "Erro de leitura do código Aztec",
    ERRO_LEITURA_IMPRECISA: "Imprecisão ou erro na identificação da área de leitura",
    ERRO_FATAL: "Erro fatal durante a leitura",
}


# Folha de calibração: sem prova nem participante, todas as respostas em branco
RESULTADOS_PADRAO = {
    "base.png": {"erro": 0, "id_prova": 0, "id_participante": 0, "leitura": "-" * 20},
}


def mensagem_erro(erro: int) -> Optional[str]:
    """Aviso para o operador a partir do código devolvido pelo leitor."""
    return MENSAGENS_ERRO.get(erro)


class LeitorImagem(Protocol):
    def ler(self, caminho_imagem: str) -> ResultadoLeitor:
        ...


class LeitorSimulado:
    """Devolve resultados fixos, indexados pelo nome do arquivo."""

    def __init__(self, resultados: Optional[Dict[str, dict]] = None):
        cadastrados = {**RESULTADOS_PADRAO, **(resultados or {})}
        self.resultados = {nome: ResultadoLeitor(**dados) for nome, dados in cadastrados.items()}

    @classmethod
    def de_arquivo(cls, caminho_json: str) -> "LeitorSimulado":
        with open(caminho_json, encoding="utf-8") as f:
            resultados = json.load(f)
        logger.info("Leitor simulado carregado com %d resultados de %s", len(resultados), caminho_json)
        return cls(resultados)

    def ler(self, caminho_imagem: str) -> ResultadoLeitor:
        nome_arquivo = os.path.basename(caminho_imagem)
        resultado = self.resultados.get(nome_arquivo)
        if resultado is None:
            logger.warning("Nenhum resultado cadastrado para %s", nome_arquivo)
            return ResultadoLeitor(erro=ERRO_FATAL, id_prova=-1, id_participante=-1, leitura="")
        return resultado
