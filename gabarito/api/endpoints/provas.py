import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from gabarito.database import get_db
from gabarito import models, schemas

router = APIRouter(prefix="/provas")
logger = logging.getLogger(__name__)


def _buscar_ou_404(db: Session, id_prova: int) -> models.Prova:
    db_prova = db.query(models.Prova).filter(models.Prova.id == id_prova).first()
    if not db_prova:
        raise HTTPException(status_code=404, detail="Prova não encontrada")
    return db_prova


# --- CADASTRO DO GABARITO OFICIAL ---
@router.post("/", response_model=schemas.ProvaOut, status_code=201)
def criar_prova(prova_in: schemas.ProvaCreate, db: Session = Depends(get_db)):
    nova_prova = models.Prova(
        gabarito=prova_in.gabarito,
        peso_questao=prova_in.peso_questao,
    )
    db.add(nova_prova)
    db.commit()
    db.refresh(nova_prova)

    logger.info("Prova %s criada com %d questões", nova_prova.id, len(nova_prova.gabarito))
    return nova_prova


@router.get("/", response_model=List[schemas.ProvaOut])
def listar_provas(db: Session = Depends(get_db)):
    return db.query(models.Prova).order_by(models.Prova.id).all()


@router.get("/{id_prova}", response_model=schemas.ProvaOut)
def obter_prova(id_prova: int, db: Session = Depends(get_db)):
    return _buscar_ou_404(db, id_prova)


@router.put("/{id_prova}", response_model=schemas.ProvaOut)
def atualizar_prova(id_prova: int, prova_in: schemas.ProvaUpdate, db: Session = Depends(get_db)):
    if prova_in.gabarito is None and prova_in.peso_questao is None:
        raise HTTPException(status_code=400, detail="Pelo menos um campo deve ser fornecido para atualização")

    db_prova = _buscar_ou_404(db, id_prova)
    if prova_in.gabarito is not None:
        db_prova.gabarito = prova_in.gabarito
    if prova_in.peso_questao is not None:
        db_prova.peso_questao = prova_in.peso_questao

    db.commit()
    db.refresh(db_prova)
    # Leituras já gravadas só mudam de nota quando forem corrigidas novamente
    logger.info("Prova %s atualizada", id_prova)
    return db_prova


@router.delete("/{id_prova}", response_model=schemas.ProvaOut)
def deletar_prova(id_prova: int, db: Session = Depends(get_db)):
    db_prova = _buscar_ou_404(db, id_prova)
    removida = schemas.ProvaOut.model_validate(db_prova)

    db.delete(db_prova)
    db.commit()
    logger.info("Prova %s removida", id_prova)
    return removida
