from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
from dotenv import load_dotenv
from pathlib import Path
import json
import logging

# Configurar logging
logger = logging.getLogger(__name__)

load_dotenv(override=False)

def parse_cors_origins(env_value: str) -> List[str]:
    """Parse CORS origins from environment variable"""
    if not env_value:
        logger.warning("⚠️ CORS_ALLOWED_ORIGINS no está configurado, usando valores por defecto")
        return ["http://localhost:3000", "http://localhost:5173", "http://localhost:8080"]

    env_value = env_value.strip()

    # Intentar parsear como JSON primero
    if env_value.startswith('[') and env_value.endswith(']'):
        try:
            origins = json.loads(env_value)
            logger.info(f"✅ CORS origins cargados desde JSON: {origins}")
            return origins
        except json.JSONDecodeError as e:
            logger.warning(f"⚠️ Error parseando JSON de CORS: {e}")

    # Fallback: parsear como string separado por comas
    origins = [origin.strip() for origin in env_value.split(",") if origin.strip()]
    logger.info(f"✅ CORS origins cargados desde string: {origins}")
    return origins

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    SECRET_KEY: str
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    SERVER_PORT: int = 3000
    # JSON o separado por comas, ver parse_cors_origins
    CORS_ALLOWED_ORIGINS: str = ""

    # Base de datos (Postgres gestionado en producción, SQLite en local)
    DATABASE_URL: str = "sqlite:///./mailbox_admin.db"

    # Almacén temporal de correos (.eml)
    TEMP_EMAILS_DIR: str = "temp_emails"
    TEMP_EMAIL_MAX_AGE_MINUTES: int = 60

    # Credenciales Google de respaldo si la config activa no trae las suyas
    GOOGLE_CLIENT_ID: Optional[str] = None
    GOOGLE_CLIENT_SECRET: Optional[str] = None
    GOOGLE_REDIRECT_URI: Optional[str] = None
    GMAIL_PAGE_SIZE: int = 100

    USE_MOCK_DATA: bool = True

    ADMIN_EMAIL: str = "admin@mailbox.local"
    ADMIN_PASSWORD: str = "admin123"

    ACCESS_TOKEN_DEFAULT_DAYS: int = 30
    JWT_EXPIRE_MINUTES: int = 60

    @field_validator('TEMP_EMAILS_DIR')
    @classmethod
    def validate_temp_emails_path(cls, v: str) -> str:

        temp_path = Path(v)
        if not temp_path.is_absolute():
            temp_path = Path.cwd() / temp_path

        temp_path.mkdir(parents=True, exist_ok=True)

        return str(temp_path)

    @property
    def cors_origins(self) -> List[str]:
        return parse_cors_origins(self.CORS_ALLOWED_ORIGINS)

    @property
    def USE_SQLITE(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")

    def get_database_url(self) -> str:
        # Algunos proveedores entregan postgres:// que SQLAlchemy ya no acepta
        if self.DATABASE_URL.startswith("postgres://"):
            return self.DATABASE_URL.replace("postgres://", "postgresql://", 1)
        return self.DATABASE_URL

settings = Settings()
