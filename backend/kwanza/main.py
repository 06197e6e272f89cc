"""
Aplicação principal FastAPI do serviço fiscal Kwanza.
Facturação certificada e declarações fiscais angolanas (IVA, Imposto
Industrial, Imposto de Selo).
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from .core.config import settings
from .db.database import init_db
from .api.endpoints import documents, purchases, series, treasury, stock, payroll, reports
from .api.middleware.audit import AuditLogMiddleware

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger(__name__)

# Criar aplicação
app = FastAPI(
    title=settings.APP_NAME,
    description="""
    ## Kwanza Fiscal

    Serviço de cálculo fiscal para facturação certificada em Angola.

    ### Funcionalidades:
    - Documentos de venda: rascunho, certificação, anulação e recibos
    - Documentos de compra
    - Tesouraria (caixas e transferências) e stock derivados dos documentos
    - Modelo 7 (IVA), Modelo 1 (Imposto Industrial) e Imposto de Selo
    - Resumo do período SAF-T
    """,
    version=settings.APP_VERSION,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json"
)

# Configurar CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(AuditLogMiddleware)

# Incluir routers
app.include_router(documents.router, prefix="/api/v1")
app.include_router(purchases.router, prefix="/api/v1")
app.include_router(series.router, prefix="/api/v1")
app.include_router(treasury.router, prefix="/api/v1")
app.include_router(stock.router, prefix="/api/v1")
app.include_router(payroll.router, prefix="/api/v1")
app.include_router(reports.router, prefix="/api/v1")


@app.on_event("startup")
async def startup_event():
    """Inicialização ao arrancar a aplicação."""
    init_db()
    logger.info(f"{settings.APP_NAME} v{settings.APP_VERSION} iniciado")
    logger.info("Documentação disponível em /api/docs")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Aplicação encerrada")


@app.get("/")
async def root():
    """Endpoint raiz."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
        "docs": "/api/docs"
    }


@app.get("/health")
async def health_check():
    """Health check para monitorização."""
    return {
        "status": "healthy",
        "version": settings.APP_VERSION
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("kwanza.main:app", host=settings.HOST, port=settings.PORT, reload=settings.DEBUG)
