from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
import uvicorn
from mailbox_admin.api.router import api_router
from mailbox_admin.config.config import settings
from mailbox_admin.config.database import init_database
from mailbox_admin.services.temp_email_store import get_temp_email_store
import logging
import time

# Configuración de logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

logger.info("=" * 80)
logger.info("🚀 INICIANDO SERVIDOR MAILBOX ADMIN")
logger.info("=" * 80)

FUNCTIONS_PREFIX = "/api/functions/"

class LoggingMiddleware(BaseHTTPMiddleware):
    """Middleware para logging de todas las peticiones"""
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()

        logger.info(f"📥 {request.method} {request.url.path}")
        logger.info(f"   Host: {request.client.host if request.client else 'Unknown'}")
        logger.info(f"   Origin: {request.headers.get('origin', 'None')}")

        response = await call_next(request)

        process_time = time.time() - start_time
        logger.info(f"📤 {request.method} {request.url.path} - {response.status_code} ({process_time:.3f}s)")

        return response

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manejo del ciclo de vida de la aplicación"""
    logger.info("Inicializando base de datos...")
    try:
        init_database()
        logger.info("✅ Base de datos inicializada correctamente")
    except Exception as e:
        logger.error(f"❌ Error crítico: {e}")
        raise RuntimeError("Fallo en inicialización de BD") from e

    # Limpieza inicial de correos temporales expirados
    try:
        removed = await get_temp_email_store().sweep()
        logger.info(f"🧹 Limpieza inicial de correos temporales: {removed} eliminados")
    except OSError as e:
        logger.warning(f"⚠️ No se pudo limpiar el directorio temporal: {e}")

    yield
    logger.info("Apagando aplicación...")

app = FastAPI(
    title="Mailbox Admin",
    description="Tokens de acceso, configuración Google OAuth y proxy de buzón.",
    version="0.1.0",
    lifespan=lifespan
)

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    # Todas las respuestas de error llevan {"error": ...}
    message = "Method not allowed" if exc.status_code == 405 else exc.detail
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": message},
        headers=getattr(exc, "headers", None)
    )

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details = jsonable_encoder(exc.errors())
    if request.url.path.startswith(FUNCTIONS_PREFIX):
        # Las funciones de admin nunca responden distinto de 200
        return JSONResponse(
            status_code=200,
            content={"error": "Invalid request body", "details": details}
        )
    return JSONResponse(status_code=400, content={"error": "Invalid request", "details": details})

# Agregar middleware de logging
app.add_middleware(LoggingMiddleware)

cors_origins = settings.cors_origins
logger.info(f"🌐 CORS Origins configurados:")
for origin in cors_origins:
    logger.info(f"   ✅ {origin}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"]
)

app.include_router(api_router, prefix="/api")

@app.get("/")
def read_root():
    return {"app_name": app.title, "environment": settings.ENVIRONMENT}

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.SERVER_PORT,
        reload=settings.DEBUG,
        log_level="info"
    )
