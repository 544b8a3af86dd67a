"""
Reconciliação de participantes entre contas.

Quando uma conta lê a folha de um participante que pertence a outra conta, a
leitura não pode apontar para o registro alheio: usamos (ou criamos) uma cópia
com o mesmo nome e escola, de propriedade da conta que fez a leitura.
"""
from dataclasses import dataclass
from typing import Optional, Tuple
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from gabarito import models
from gabarito.exceptions import CorridaReconciliacaoPerdida

logger = logging.getLogger(__name__)

# Uma tentativa normal + uma nova tentativa após perder a corrida
TENTATIVAS_CRIACAO = 2


@dataclass
class Reconciliacao:
    id_participante: Optional[int] = None
    # Preenchido somente quando houve atribuição entre contas (apenas exibição)
    participante_original: Optional[models.Participante] = None
    copia_criada: bool = False

    @property
    def entre_contas(self) -> bool:
        return self.participante_original is not None


def buscar_participante_da_conta(db: Session, nome: str, escola: str, conta_id: int) -> Optional[models.Participante]:
    return db.query(models.Participante).filter(
        models.Participante.nome == nome,
        models.Participante.escola == escola,
        models.Participante.user_id == conta_id,
    ).first()


def obter_ou_criar_copia(db: Session, original: models.Participante, conta_id: int) -> Tuple[models.Participante, bool]:
    """
    Busca a cópia do participante na conta ou cria uma nova.

    A unicidade (nome, escola, user_id) é garantida pelo banco: se outra
    requisição criar a mesma cópia entre a busca e o INSERT, o SAVEPOINT é
    desfeito e a cópia dela é relida.
    """
    for tentativa in range(1, TENTATIVAS_CRIACAO + 1):
        existente = buscar_participante_da_conta(db, original.nome, original.escola, conta_id)
        if existente is not None:
            return existente, False

        try:
            with db.begin_nested():
                copia = models.Participante(nome=original.nome, escola=original.escola, user_id=conta_id)
                db.add(copia)
            return copia, True
        except IntegrityError:
            logger.warning(
                "Conflito ao criar cópia de '%s' (%s) para a conta %s (tentativa %d)",
                original.nome, original.escola, conta_id, tentativa,
            )

    logger.error("Cópia do participante %s para a conta %s não pôde ser criada nem relida", original.id, conta_id)
    raise CorridaReconciliacaoPerdida()


def resolver_participante(db: Session, id_nominal: Optional[int], conta_id: int) -> Reconciliacao:
    """
    Determina qual participante, de propriedade de ``conta_id``, a leitura deve referenciar.

    :param id_nominal: Participante informado pelo leitor (``None`` = não identificado)
    :param conta_id: Conta que está realizando a leitura
    """
    if id_nominal is None:
        return Reconciliacao()

    original = db.get(models.Participante, id_nominal)
    if original is None:
        # O leitor devolveu um ID que não existe mais: a leitura segue sem participante
        logger.warning("Participante %s informado pelo leitor não existe", id_nominal)
        return Reconciliacao()

    if original.user_id == conta_id:
        return Reconciliacao(id_participante=original.id)

    copia, criada = obter_ou_criar_copia(db, original, conta_id)
    if criada:
        logger.info(
            "Participante %s (conta %s) copiado para a conta %s como %s",
            original.id, original.user_id, conta_id, copia.id,
        )

    return Reconciliacao(id_participante=copia.id, participante_original=original, copia_criada=criada)
