"""
Ciclo de vida das leituras: ingestão, correção e remoção.

Acertos e nota de uma leitura são sempre derivados das respostas e da prova
referenciada no momento do (re)cálculo; nunca são recebidos do cliente.
"""
from dataclasses import dataclass
from typing import List, Optional
import logging

from sqlalchemy import and_, case, distinct, func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session

from gabarito import models, schemas
from gabarito.config import settings
from gabarito.exceptions import AlteracaoVazia, GabaritoMalformado, LeituraNaoEncontrada, ParticipanteNaoEncontrado
from gabarito.services import pontuacao
from gabarito.services.leitor import ERRO_FATAL, mensagem_erro
from gabarito.services.reconciliacao import Reconciliacao, obter_ou_criar_copia, resolver_participante

logger = logging.getLogger(__name__)

CAMPOS_EDITAVEIS = frozenset({"id_prova", "id_participante", "gabarito"})
CARACTERES_PERMITIDOS = (
    pontuacao.ALTERNATIVAS_VALIDAS
    | frozenset(c.upper() for c in pontuacao.ALTERNATIVAS_VALIDAS)
    | pontuacao.CARACTERES_SENTINELA
)


@dataclass
class Ingestao:
    leitura: models.Leitura
    participante_original: Optional[models.Participante] = None
    aviso: Optional[str] = None


def validar_respostas(respostas: str, prova: Optional[models.Prova] = None) -> None:
    """Rejeita respostas fora do alfabeto ou com tamanho diferente do gabarito."""
    if not set(respostas) <= CARACTERES_PERMITIDOS:
        raise GabaritoMalformado("Gabarito deve conter apenas letras a-e, 0, X, ? ou -")

    tamanho = settings.TAMANHO_GABARITO or (len(prova.gabarito) if prova is not None else None)
    if tamanho is not None and len(respostas) != tamanho:
        raise GabaritoMalformado(f"Gabarito deve ter {tamanho} respostas (recebido: {len(respostas)})")


def ingerir(db: Session, arquivo: str, resultado: schemas.ResultadoLeitor, conta_id: int) -> Ingestao:
    """
    Persiste o resultado do leitor para uma imagem.

    Leituras com erro fatal também são gravadas (com nota zerada) para que o
    operador veja a falha. ``ProvaNaoEncontrada`` impede a gravação.
    """
    aviso = mensagem_erro(resultado.erro)
    respostas = resultado.leitura or ""

    if resultado.erro == ERRO_FATAL:
        id_prova = None
        desempenho = pontuacao.DESEMPENHO_ZERADO
        reconciliacao = Reconciliacao()
    else:
        id_prova = pontuacao.normalizar_referencia(resultado.id_prova)
        desempenho = pontuacao.pontuar(db, id_prova, respostas)
        reconciliacao = resolver_participante(
            db, pontuacao.normalizar_referencia(resultado.id_participante), conta_id
        )

    if aviso:
        logger.warning("Leitura de %s com erro %d: %s", arquivo, resultado.erro, aviso)

    leitura = models.Leitura(
        arquivo=arquivo,
        erro=resultado.erro,
        id_prova=id_prova,
        id_participante=reconciliacao.id_participante,
        gabarito=respostas,
        acertos=desempenho.acertos,
        nota=desempenho.nota,
        user_id=conta_id,
    )
    db.add(leitura)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        if reconciliacao.copia_criada:
            logger.error("Leitura de %s não gravada após criar cópia do participante para a conta %s", arquivo, conta_id)
        raise
    db.refresh(leitura)

    logger.info(
        "Leitura %s gravada (arquivo=%s, prova=%s, participante=%s, acertos=%d, nota=%s)",
        leitura.id, arquivo, leitura.id_prova, leitura.id_participante, leitura.acertos, leitura.nota,
    )
    return Ingestao(leitura=leitura, participante_original=reconciliacao.participante_original, aviso=aviso)


def _visiveis(query: Query, conta_id: int) -> Query:
    """Leituras dos participantes da conta ou, sem participante, criadas por ela."""
    return query.outerjoin(
        models.Participante, models.Leitura.id_participante == models.Participante.id
    ).filter(
        or_(
            models.Participante.user_id == conta_id,
            and_(models.Leitura.user_id == conta_id, models.Leitura.id_participante.is_(None)),
        )
    )


def obter_leitura(db: Session, id_leitura: int, conta_id: Optional[int] = None) -> models.Leitura:
    query = db.query(models.Leitura)
    if conta_id is not None:
        query = _visiveis(query, conta_id)

    leitura = query.filter(models.Leitura.id == id_leitura).first()
    if leitura is None:
        raise LeituraNaoEncontrada(id_leitura)
    return leitura


def listar_leituras(db: Session, conta_id: int) -> List[models.Leitura]:
    return _visiveis(db.query(models.Leitura), conta_id).order_by(
        models.Leitura.created_at.desc(), models.Leitura.id.desc()
    ).all()


def _participante_da_correcao(db: Session, id_participante: Optional[int], conta_id: Optional[int]) -> Optional[int]:
    if id_participante is None:
        return None

    participante = db.get(models.Participante, id_participante)
    if participante is None:
        raise ParticipanteNaoEncontrado(id_participante)

    # Uma conta nunca aponta a leitura para o registro de outra: usa a cópia dela
    if conta_id is not None and participante.user_id != conta_id:
        copia, _ = obter_ou_criar_copia(db, participante, conta_id)
        return copia.id
    return participante.id


def corrigir(db: Session, id_leitura: int, alteracao: schemas.LeituraUpdate, conta_id: Optional[int] = None) -> models.Leitura:
    """
    Aplica a correção do operador e recalcula acertos e nota.

    Campos não enviados mantêm o valor anterior. ``conta_id`` ``None`` indica
    uma chamada administrativa, sem restrição de visibilidade.
    """
    campos = alteracao.model_fields_set & CAMPOS_EDITAVEIS
    if not campos:
        raise AlteracaoVazia()

    leitura = obter_leitura(db, id_leitura, conta_id)

    if "id_prova" in campos:
        id_prova = pontuacao.normalizar_referencia(alteracao.id_prova)
    else:
        id_prova = leitura.id_prova
    prova = pontuacao.buscar_prova(db, id_prova) if id_prova is not None else None

    respostas = leitura.gabarito or ""
    if "gabarito" in campos:
        if alteracao.gabarito is None:
            raise GabaritoMalformado("Gabarito não pode ser nulo")
        respostas = alteracao.gabarito.strip()
        validar_respostas(respostas, prova)

    if "id_participante" in campos:
        leitura.id_participante = _participante_da_correcao(
            db, pontuacao.normalizar_referencia(alteracao.id_participante), conta_id
        )

    if prova is not None:
        desempenho = pontuacao.pontuar_com_prova(prova, respostas)
    else:
        desempenho = pontuacao.DESEMPENHO_ZERADO

    acertos_anteriores, nota_anterior = leitura.acertos, leitura.nota
    leitura.id_prova = id_prova
    leitura.gabarito = respostas
    leitura.acertos = desempenho.acertos
    leitura.nota = desempenho.nota

    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    db.refresh(leitura)

    logger.info(
        "Leitura %s corrigida (campos=%s): acertos %s -> %s, nota %s -> %s",
        leitura.id, sorted(campos), acertos_anteriores, leitura.acertos, nota_anterior, leitura.nota,
    )
    return leitura


def remover(db: Session, id_leitura: int, conta_id: Optional[int] = None) -> schemas.LeituraOut:
    """Remove apenas a leitura; participante e prova não são afetados."""
    leitura = obter_leitura(db, id_leitura, conta_id)
    removida = schemas.LeituraOut.model_validate(leitura)

    db.delete(leitura)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    logger.info("Leitura %s removida", id_leitura)
    return removida


def estatisticas(db: Session, conta_id: int) -> dict:
    """Indicadores agregados das leituras visíveis para a conta."""
    total, sucesso, com_erro, media, maxima, minima, participantes, provas = _visiveis(
        db.query(models.Leitura), conta_id
    ).with_entities(
        func.count(models.Leitura.id),
        func.count(case((models.Leitura.erro == 0, 1))),
        func.count(case((models.Leitura.erro > 0, 1))),
        func.avg(models.Leitura.nota),
        func.max(models.Leitura.nota),
        func.min(models.Leitura.nota),
        func.count(distinct(models.Leitura.id_participante)),
        func.count(distinct(models.Leitura.id_prova)),
    ).one()

    return {
        "total_leituras": total,
        "leituras_sucesso": sucesso,
        "leituras_erro": com_erro,
        "taxa_sucesso": round(sucesso / total * 100, 2) if total else 0.0,
        "nota_media": round(float(media), 2) if media is not None else 0.0,
        "nota_maxima": float(maxima) if maxima is not None else 0.0,
        "nota_minima": float(minima) if minima is not None else 0.0,
        "participantes_unicos": participantes,
        "provas_distintas": provas,
    }
