import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from gabarito.api.deps import erro_http, get_conta_atual, get_leitor
from gabarito.config import settings
from gabarito.database import get_db
from gabarito.exceptions import ErroGabarito
from gabarito.services import leituras as servico
from gabarito.services import pontuacao
from gabarito.services.leitor import LeitorImagem
from gabarito import schemas

router = APIRouter(prefix="/leituras")
logger = logging.getLogger(__name__)


def _resposta_ingestao(ingestao: servico.Ingestao) -> dict:
    original = ingestao.participante_original
    return {
        "leitura": schemas.LeituraOut.model_validate(ingestao.leitura),
        "participante_original": schemas.ParticipanteResumo.model_validate(original) if original else None,
        "aviso": ingestao.aviso,
    }


def _falha_interna(db: Session, operacao: str) -> HTTPException:
    db.rollback()
    logger.exception("Erro ao %s", operacao)
    return HTTPException(status_code=500, detail=f"Erro interno ao {operacao}")


# --- INGESTÃO DO RESULTADO DO LEITOR ---
@router.post("/", response_model=schemas.ResultadoIngestao, status_code=201)
def registrar_leitura(
    leitura_in: schemas.LeituraCreate,
    conta_id: int = Depends(get_conta_atual),
    db: Session = Depends(get_db),
):
    try:
        ingestao = servico.ingerir(db, leitura_in.arquivo, leitura_in.resultado, conta_id)
    except ErroGabarito as e:
        db.rollback()
        raise erro_http(e)
    except SQLAlchemyError:
        raise _falha_interna(db, "processar leitura")
    return _resposta_ingestao(ingestao)


@router.post("/processar", response_model=schemas.ResultadoIngestao, status_code=201)
def processar_leitura(
    pedido: schemas.ProcessarLeituraRequest,
    conta_id: int = Depends(get_conta_atual),
    leitor: LeitorImagem = Depends(get_leitor),
    db: Session = Depends(get_db),
):
    resultado = leitor.ler(pedido.caminho_imagem)
    try:
        ingestao = servico.ingerir(db, pedido.caminho_imagem, resultado, conta_id)
    except ErroGabarito as e:
        db.rollback()
        raise erro_http(e)
    except SQLAlchemyError:
        raise _falha_interna(db, "processar leitura")
    return _resposta_ingestao(ingestao)


@router.post("/processar-multiplas", response_model=schemas.LoteResponse)
def processar_multiplas_leituras(
    pedido: schemas.ProcessarMultiplasRequest,
    conta_id: int = Depends(get_conta_atual),
    leitor: LeitorImagem = Depends(get_leitor),
    db: Session = Depends(get_db),
):
    if len(pedido.caminhos_imagens) > settings.MAX_LEITURAS_POR_LOTE:
        raise HTTPException(status_code=400, detail=f"Máximo {settings.MAX_LEITURAS_POR_LOTE} imagens por vez")

    resultados = []
    for caminho in pedido.caminhos_imagens:
        # Cada imagem é independente: a falha de uma não descarta as demais
        try:
            ingestao = servico.ingerir(db, caminho, leitor.ler(caminho), conta_id)
            resultados.append({"arquivo": caminho, **_resposta_ingestao(ingestao)})
        except ErroGabarito as e:
            db.rollback()
            logger.warning("Imagem %s rejeitada: %s", caminho, e.mensagem)
            resultados.append({"arquivo": caminho, "erro": e.mensagem})
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Erro ao processar imagem %s", caminho)
            resultados.append({"arquivo": caminho, "erro": "Erro ao processar esta imagem"})

    return {
        "total": len(pedido.caminhos_imagens),
        "processados": len(resultados),
        "resultados": resultados,
    }


# --- CONSULTA ---
@router.get("/", response_model=List[schemas.LeituraOut])
def listar_leituras(conta_id: int = Depends(get_conta_atual), db: Session = Depends(get_db)):
    return servico.listar_leituras(db, conta_id)


@router.get("/estatisticas", response_model=schemas.EstatisticasResponse)
def estatisticas_leituras(conta_id: int = Depends(get_conta_atual), db: Session = Depends(get_db)):
    return servico.estatisticas(db, conta_id)


@router.get("/{id_leitura}", response_model=schemas.LeituraOut)
def obter_leitura(id_leitura: int, conta_id: int = Depends(get_conta_atual), db: Session = Depends(get_db)):
    try:
        return servico.obter_leitura(db, id_leitura, conta_id)
    except ErroGabarito as e:
        raise erro_http(e)


@router.get("/{id_leitura}/desempenho", response_model=schemas.DesempenhoResponse)
def desempenho_leitura(id_leitura: int, conta_id: int = Depends(get_conta_atual), db: Session = Depends(get_db)):
    try:
        leitura = servico.obter_leitura(db, id_leitura, conta_id)
    except ErroGabarito as e:
        raise erro_http(e)

    if leitura.prova is None:
        raise HTTPException(status_code=404, detail="Leitura sem prova identificada")
    return pontuacao.detalhar(leitura.prova, leitura.gabarito)


# --- CORREÇÃO E REMOÇÃO ---
@router.put("/{id_leitura}", response_model=schemas.LeituraOut)
def corrigir_leitura(
    id_leitura: int,
    alteracao: schemas.LeituraUpdate,
    conta_id: int = Depends(get_conta_atual),
    db: Session = Depends(get_db),
):
    try:
        return servico.corrigir(db, id_leitura, alteracao, conta_id)
    except ErroGabarito as e:
        db.rollback()
        raise erro_http(e)
    except SQLAlchemyError:
        raise _falha_interna(db, "editar leitura")


@router.delete("/{id_leitura}", response_model=schemas.LeituraOut)
def deletar_leitura(id_leitura: int, conta_id: int = Depends(get_conta_atual), db: Session = Depends(get_db)):
    try:
        return servico.remover(db, id_leitura, conta_id)
    except ErroGabarito as e:
        raise erro_http(e)
    except SQLAlchemyError:
        raise _falha_interna(db, "deletar leitura")
