import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from gabarito.config import settings
from gabarito.database import init_db
from gabarito.api.endpoints import leituras, participantes, provas

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Cria as tabelas no banco de dados ao iniciar
    init_db()
    logger.info("%s iniciado", settings.APP_NAME)
    yield


app = FastAPI(
    title=settings.APP_NAME,
    description="API de correção de gabaritos e reconciliação de participantes entre contas",
    version="1.0.0",
    lifespan=lifespan,
)

# Configuração de CORS para o frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Registro de Rotas
app.include_router(provas.router, tags=["Provas"])
app.include_router(participantes.router, tags=["Participantes"])
app.include_router(leituras.router, tags=["Leituras"])

@app.get("/", tags=["Root"])
async def read_root():
    return {
        "status": "online",
        "docs": "/docs"
        }
