from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, DateTime, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from gabarito.config import settings
from gabarito.database import Base

class Prova(Base):
    __tablename__ = "provas"

    id = Column(Integer, primary_key=True, index=True)
    gabarito = Column(String(255), nullable=False) # Ex.: "abcdeabcde..." (uma letra por questão)
    peso_questao = Column(Numeric(5, 2), nullable=False, default=lambda: settings.PESO_QUESTAO_PADRAO)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    leituras = relationship("Leitura", back_populates="prova", passive_deletes=True)

class Participante(Base):
    __tablename__ = "participantes"
    # Impede cópias duplicadas do mesmo aluno para a mesma conta
    __table_args__ = (
        UniqueConstraint("nome", "escola", "user_id", name="uq_participantes_nome_escola_user"),
    )

    id = Column(Integer, primary_key=True, index=True)
    nome = Column(String(255), nullable=False, index=True)
    escola = Column(String(255), nullable=False)
    # Conta dona do registro (NULL apenas para registros legados)
    user_id = Column(Integer, nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    leituras = relationship("Leitura", back_populates="participante", passive_deletes=True)

class Leitura(Base):
    __tablename__ = "leituras"

    id = Column(Integer, primary_key=True, index=True)
    arquivo = Column(String(255), nullable=False)
    # 0 = leitura limpa, 1 = código ilegível, 2 = leitura imprecisa, 3 = erro fatal
    erro = Column(Integer, nullable=False, default=0)

    id_prova = Column(Integer, ForeignKey("provas.id", ondelete="SET NULL"), nullable=True, index=True)
    id_participante = Column(Integer, ForeignKey("participantes.id", ondelete="SET NULL"), nullable=True, index=True)

    # Respostas lidas pelo leitor (ou corrigidas pelo operador)
    gabarito = Column(String(255), nullable=False, default="")
    acertos = Column(Integer, nullable=False, default=0)
    # 255 questões x peso 100 = 25500.00
    nota = Column(Numeric(8, 2), nullable=False, default=0)

    # Conta que disparou a leitura, mesmo quando não há participante
    user_id = Column(Integer, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    prova = relationship("Prova", back_populates="leituras")
    participante = relationship("Participante", back_populates="leituras")
