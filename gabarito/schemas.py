from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from gabarito.config import settings

PADRAO_GABARITO = "^[a-eA-E0X?-]+$"

# --- Schemas para Prova ---

class ProvaBase(BaseModel):
    gabarito: str = Field(..., min_length=1, max_length=255, pattern=PADRAO_GABARITO, examples=["abcdeabcdeabcdeabcde"])
    peso_questao: float = Field(default_factory=lambda: settings.PESO_QUESTAO_PADRAO, gt=0, le=100, description="Valor de cada questão correta")

class ProvaCreate(ProvaBase):
    pass

class ProvaUpdate(BaseModel):
    gabarito: Optional[str] = Field(None, min_length=1, max_length=255, pattern=PADRAO_GABARITO)
    peso_questao: Optional[float] = Field(None, gt=0, le=100)

class ProvaOut(ProvaBase):
    id: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class ProvaResumo(BaseModel):
    gabarito: str
    peso_questao: float

    class Config:
        from_attributes = True


# --- Schemas para Participante ---

class ParticipanteCreate(BaseModel):
    nome: str = Field(..., min_length=2, max_length=255)
    escola: str = Field(..., min_length=2, max_length=255)

class ParticipanteUpdate(BaseModel):
    nome: Optional[str] = Field(None, min_length=2, max_length=255)
    escola: Optional[str] = Field(None, min_length=2, max_length=255)

class ParticipanteOut(BaseModel):
    id: int
    nome: str
    escola: str
    user_id: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class ParticipanteResumo(BaseModel):
    nome: str
    escola: str

    class Config:
        from_attributes = True


# --- Schemas para Leitura ---

class ResultadoLeitor(BaseModel):
    """Saída bruta do leitor de imagens (-1 = não identificado, 0 = folha base)."""
    erro: int = Field(0, ge=0, le=3, description="0 ok, 1 código ilegível, 2 leitura imprecisa, 3 erro fatal")
    id_prova: int = Field(-1, ge=-1)
    id_participante: int = Field(-1, ge=-1)
    leitura: str = Field("", max_length=255, description="Respostas lidas, uma por questão")

class LeituraCreate(BaseModel):
    arquivo: str = Field(..., min_length=1, max_length=255)
    resultado: ResultadoLeitor

class ProcessarLeituraRequest(BaseModel):
    caminho_imagem: str = Field(..., min_length=1, max_length=255)

class ProcessarMultiplasRequest(BaseModel):
    caminhos_imagens: List[str] = Field(..., min_length=1)

class LeituraUpdate(BaseModel):
    """
    Correção parcial de uma leitura.

    Somente os campos enviados são aplicados (``model_fields_set``);
    ``null`` limpa a referência. Acertos e nota nunca são aceitos do cliente.
    """
    id_prova: Optional[int] = Field(None, ge=-1)
    id_participante: Optional[int] = Field(None, ge=-1)
    gabarito: Optional[str] = Field(None, max_length=255)

class LeituraOut(BaseModel):
    id: int
    arquivo: str
    erro: int
    id_prova: Optional[int] = None
    id_participante: Optional[int] = None
    gabarito: str
    acertos: int
    nota: float
    user_id: int
    created_at: Optional[datetime] = None
    participante: Optional[ParticipanteResumo] = None
    prova: Optional[ProvaResumo] = None

    class Config:
        from_attributes = True

class ResultadoIngestao(BaseModel):
    leitura: LeituraOut
    # Nome/escola do participante de outra conta, apenas para exibição
    participante_original: Optional[ParticipanteResumo] = None
    aviso: Optional[str] = None

class ItemLote(BaseModel):
    arquivo: str
    leitura: Optional[LeituraOut] = None
    participante_original: Optional[ParticipanteResumo] = None
    aviso: Optional[str] = None
    erro: Optional[str] = None


class LoteResponse(BaseModel):
    total: int
    processados: int
    resultados: List[ItemLote]

class QuestaoDetalhe(BaseModel):
    questao: int
    esperado: str
    recebido: Optional[str]
    correto: bool

class DesempenhoResponse(BaseModel):
    nota: float
    acertos: int
    total_questoes: int
    peso_questao: float
    detalhe_por_questao: List[QuestaoDetalhe]

class EstatisticasResponse(BaseModel):
    total_leituras: int
    leituras_sucesso: int
    leituras_erro: int
    taxa_sucesso: float
    nota_media: float
    nota_maxima: float
    nota_minima: float
    participantes_unicos: int
    provas_distintas: int
