import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from gabarito.api.deps import get_conta_atual
from gabarito.database import get_db
from gabarito import models, schemas

router = APIRouter(prefix="/participantes")
logger = logging.getLogger(__name__)

DUPLICADO = "Participante já cadastrado para esta conta"


def _buscar_da_conta_ou_404(db: Session, id_participante: int, conta_id: int) -> models.Participante:
    participante = db.query(models.Participante).filter(
        models.Participante.id == id_participante,
        models.Participante.user_id == conta_id,
    ).first()
    if not participante:
        raise HTTPException(status_code=404, detail="Participante não encontrado")
    return participante


@router.post("/", response_model=schemas.ParticipanteOut, status_code=201)
def criar_participante(
    participante_in: schemas.ParticipanteCreate,
    conta_id: int = Depends(get_conta_atual),
    db: Session = Depends(get_db),
):
    novo = models.Participante(
        nome=participante_in.nome.strip(),
        escola=participante_in.escola.strip(),
        user_id=conta_id,
    )
    db.add(novo)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail=DUPLICADO)
    db.refresh(novo)

    logger.info("Participante %s cadastrado pela conta %s", novo.id, conta_id)
    return novo


# Apenas os participantes da própria conta
@router.get("/", response_model=List[schemas.ParticipanteOut])
def listar_participantes(conta_id: int = Depends(get_conta_atual), db: Session = Depends(get_db)):
    return db.query(models.Participante).filter(
        models.Participante.user_id == conta_id
    ).order_by(models.Participante.nome).all()


@router.get("/{id_participante}", response_model=schemas.ParticipanteOut)
def obter_participante(id_participante: int, conta_id: int = Depends(get_conta_atual), db: Session = Depends(get_db)):
    return _buscar_da_conta_ou_404(db, id_participante, conta_id)


@router.put("/{id_participante}", response_model=schemas.ParticipanteOut)
def atualizar_participante(
    id_participante: int,
    participante_in: schemas.ParticipanteUpdate,
    conta_id: int = Depends(get_conta_atual),
    db: Session = Depends(get_db),
):
    if participante_in.nome is None and participante_in.escola is None:
        raise HTTPException(status_code=400, detail="Pelo menos um campo deve ser fornecido para atualização")

    participante = _buscar_da_conta_ou_404(db, id_participante, conta_id)
    if participante_in.nome is not None:
        participante.nome = participante_in.nome.strip()
    if participante_in.escola is not None:
        participante.escola = participante_in.escola.strip()

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail=DUPLICADO)
    db.refresh(participante)

    logger.info("Participante %s atualizado pela conta %s", id_participante, conta_id)
    return participante


# As leituras do participante permanecem, sem participante (ON DELETE SET NULL)
@router.delete("/{id_participante}", response_model=schemas.ParticipanteOut)
def deletar_participante(id_participante: int, conta_id: int = Depends(get_conta_atual), db: Session = Depends(get_db)):
    participante = _buscar_da_conta_ou_404(db, id_participante, conta_id)
    removido = schemas.ParticipanteOut.model_validate(participante)

    db.delete(participante)
    db.commit()
    logger.info("Participante %s removido pela conta %s", id_participante, conta_id)
    return removido
