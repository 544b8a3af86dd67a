from pydantic_settings import BaseSettings
from typing import Optional
from dotenv import load_dotenv
import os

load_dotenv()

class Settings(BaseSettings):
    # Aplicação
    APP_NAME: str = "Sistema de Gabaritos"
    DEBUG: bool = os.getenv("DEBUG", "False").lower() == "true"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Banco de dados (SQLite local por padrão, PostgreSQL em produção)
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./gabarito.db")

    # Gabarito: tamanho fixo N por implantação (None = usa o tamanho da prova)
    TAMANHO_GABARITO: Optional[int] = None
    PESO_QUESTAO_PADRAO: float = float(os.getenv("PESO_QUESTAO_PADRAO", "0.50"))

    # Leitor externo de imagens
    RESULTADOS_LEITOR_PATH: Optional[str] = os.getenv("RESULTADOS_LEITOR_PATH", None)
    MAX_LEITURAS_POR_LOTE: int = int(os.getenv("MAX_LEITURAS_POR_LOTE", "50"))

    # CORS
    ALLOWED_ORIGINS: str = os.getenv("ALLOWED_ORIGINS", "http://localhost:3000")

    class Config:
        env_file = ".env"

settings = Settings()
