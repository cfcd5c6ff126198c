from sqlmodel import SQLModel, create_engine, Session, select, text
from typing import Generator
from datetime import timedelta
import bcrypt
import logging

from mailbox_admin.config.config import settings
from mailbox_admin.config.mock_data import MOCK_ACCESS_TOKENS, MOCK_GOOGLE_CONFIGS

# Importar todos los modelos para que se registren en SQLModel.metadata
# Esto debe hacerse ANTES de llamar a create_all()
from mailbox_admin.models import AccessTokenModel, AdminUserModel, GoogleAuthModel
from mailbox_admin.models.base import utcnow

logger = logging.getLogger(__name__)

# Determinar la URL de base de datos
database_url = settings.get_database_url()
is_sqlite = settings.USE_SQLITE

# Configurar el motor de base de datos
try:
    if is_sqlite:
        engine = create_engine(
            database_url,
            echo=settings.DEBUG,
            connect_args={"check_same_thread": False}  # Necesario para SQLite
        )
        logger.info("✅ Usando SQLite como base de datos")
    else:
        engine = create_engine(database_url, echo=settings.DEBUG, pool_pre_ping=True)
        logger.info("✅ Usando PostgreSQL como base de datos")
except Exception as e:
    logger.error(f"❌ Error al crear el motor de base de datos: {e}")
    raise

def get_db() -> Generator:
    """Generador de sesiones de base de datos"""
    with Session(engine) as session:
        yield session

def hash_password(password: str) -> str:
    # bcrypt solo usa los primeros 72 bytes
    password_bytes = password.encode('utf-8')[:72]
    return bcrypt.hashpw(password_bytes, bcrypt.gensalt()).decode('utf-8')

def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(plain_password.encode('utf-8')[:72], hashed_password.encode('utf-8'))
    except ValueError as e:
        logger.warning(f"⚠️ Hash de contraseña inválido: {e}")
        return False

def verify_database_connection():
    """Verifica que la conexión a la base de datos funciona"""
    try:
        with Session(engine) as session:
            session.exec(text("SELECT 1"))
            logger.info("✅ Conexión a la base de datos verificada correctamente")
        return True
    except Exception as e:
        logger.error(f"❌ Error al conectar a la base de datos: {e}")
        return False

def create_sqlmodel_tables():
    """Crea todas las tablas definidas con SQLModel"""
    try:
        logger.info(f"📋 Creando tablas de SQLModel. Total de tablas: {len(SQLModel.metadata.tables)}")
        SQLModel.metadata.create_all(engine)
        logger.info("✅ Tablas de SQLModel creadas correctamente")
    except Exception as e:
        logger.error(f"❌ Error al crear tablas de SQLModel: {e}")
        raise

def create_admin_user():
    """Crea la cuenta admin inicial si todavía no existe"""
    try:
        with Session(engine) as session:
            admin = session.exec(
                select(AdminUserModel).where(AdminUserModel.email == settings.ADMIN_EMAIL)
            ).first()

            if admin:
                logger.info(f"✅ Usuario admin ya existe: {admin.email}")
                return admin

            admin = AdminUserModel(
                email=settings.ADMIN_EMAIL,
                password=hash_password(settings.ADMIN_PASSWORD)
            )
            session.add(admin)
            session.commit()
            session.refresh(admin)
            logger.info(f"✅ Usuario admin creado: {admin.email}")
            return admin

    except Exception as e:
        logger.error(f"❌ Error al crear usuario admin: {e}")
        raise

def create_initial_mock_data():
    """Carga tokens y configuraciones de ejemplo si las tablas están vacías"""
    try:
        with Session(engine) as session:
            if session.exec(select(AccessTokenModel)).first() is None:
                expires_at = utcnow() + timedelta(days=settings.ACCESS_TOKEN_DEFAULT_DAYS)
                for item in MOCK_ACCESS_TOKENS:
                    session.add(AccessTokenModel(
                        id=item["id"],
                        token=item["accessToken"],
                        description="Token de demostración",
                        blocked=item["isBlocked"],
                        expires_at=expires_at
                    ))
                logger.info(f"📊 {len(MOCK_ACCESS_TOKENS)} tokens de ejemplo creados")

            if session.exec(select(GoogleAuthModel)).first() is None:
                for item in MOCK_GOOGLE_CONFIGS:
                    session.add(GoogleAuthModel(
                        id=item["id"],
                        client_id=item["clientId"],
                        client_secret=item["clientSecret"],
                        project_id=item["projectId"],
                        description=item["projectId"],
                        auth_uri=item["authUri"],
                        token_uri=item["tokenUri"],
                        auth_provider_cert_url=item["authProviderCertUrl"],
                        active=item["isActive"]
                    ))
                logger.info(f"📊 {len(MOCK_GOOGLE_CONFIGS)} configuraciones Google de ejemplo creadas")

            session.commit()
    except Exception as e:
        logger.error(f"❌ Error al crear datos de ejemplo: {e}")
        raise

def init_database():
    """Inicializa la base de datos - función principal"""

    if not verify_database_connection():
        raise RuntimeError("No se pudo establecer conexión con la base de datos")

    try:
        create_sqlmodel_tables()          # 1. Crear tablas
        create_admin_user()               # 2. Crear admin
        if settings.USE_MOCK_DATA:
            create_initial_mock_data()    # 3. Datos de demostración
    except Exception as e:
        logger.error(f"❌ Error crítico al inicializar base de datos: {e}")
        raise
