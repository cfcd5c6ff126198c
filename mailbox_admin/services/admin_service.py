from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import func, or_
from sqlmodel import Session, select

from ..config.config import settings
from ..models.access_token_model import AccessTokenModel
from ..models.google_auth_model import GoogleAuthModel
from ..models.base import as_utc, utcnow

logger = logging.getLogger(__name__)

RECENT_LOGIN_DAYS = 7

# Columnas que update-google-config permite modificar
GOOGLE_CONFIG_UPDATABLE_FIELDS = {
    "client_id",
    "client_secret",
    "project_id",
    "description",
    "auth_uri",
    "token_uri",
    "auth_provider_cert_url",
    "redirect_uri",
    "active",
    "access_token",
    "refresh_token",
    "token_expiry",
}


class AdminFunctionError(Exception):
    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details


class AccessTokenService:

    @staticmethod
    def list_tokens(db: Session) -> List[AccessTokenModel]:
        statement = select(AccessTokenModel).order_by(AccessTokenModel.created_at.desc())
        return list(db.exec(statement).all())

    @staticmethod
    def add_token(
        db: Session,
        token: str,
        description: Optional[str] = None,
        expires_at: Optional[datetime] = None,
    ) -> AccessTokenModel:
        now = utcnow()
        row = AccessTokenModel(
            token=token,
            description=description or f"Token created on {now.strftime('%m/%d/%Y')}",
            expires_at=as_utc(expires_at) or now + timedelta(days=settings.ACCESS_TOKEN_DEFAULT_DAYS),
            blocked=False
        )
        try:
            db.add(row)
            db.commit()
            db.refresh(row)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"❌ Error insertando access token: {e}")
            raise AdminFunctionError("Failed to add access token", details=str(getattr(e, "orig", e)))

        logger.info(f"✅ Access token creado: {row.id}")
        return row

    @staticmethod
    def set_blocked(db: Session, token_id: str, blocked: bool) -> AccessTokenModel:
        row = db.get(AccessTokenModel, token_id)
        if not row:
            raise AdminFunctionError("Failed to update access token", details="Token not found")

        row.blocked = blocked
        db.add(row)
        db.commit()
        db.refresh(row)
        logger.info(f"✅ Access token {token_id} {'bloqueado' if blocked else 'desbloqueado'}")
        return row

    @staticmethod
    def delete_token(db: Session, token_id: str) -> None:
        row = db.get(AccessTokenModel, token_id)
        if not row:
            raise AdminFunctionError("Failed to delete access token", details="Token not found")

        db.delete(row)
        db.commit()
        logger.info(f"🗑️ Access token eliminado: {token_id}")

    @staticmethod
    def authenticate(db: Session, token: str) -> Optional[AccessTokenModel]:
        """Token válido (existe, no bloqueado, no expirado) o None"""
        row = db.exec(select(AccessTokenModel).where(AccessTokenModel.token == token)).first()
        if not row or not row.is_usable():
            return None

        row.last_login_at = utcnow()
        db.add(row)
        db.commit()
        db.refresh(row)
        return row

    @staticmethod
    def count(db: Session, *conditions) -> int:
        statement = select(func.count()).select_from(AccessTokenModel)
        for condition in conditions:
            statement = statement.where(condition)
        return db.exec(statement).one()

    @staticmethod
    def summary(db: Session, now: Optional[datetime] = None) -> Dict[str, int]:
        """Contadores del panel de administración"""
        now = as_utc(now) or utcnow()
        not_expired = or_(AccessTokenModel.expires_at.is_(None), AccessTokenModel.expires_at > now)

        total = AccessTokenService.count(db)
        active = AccessTokenService.count(db, AccessTokenModel.blocked == False, not_expired)  # noqa: E712
        blocked = AccessTokenService.count(db, AccessTokenModel.blocked == True)  # noqa: E712
        recent_logins = AccessTokenService.count(
            db, AccessTokenModel.last_login_at >= now - timedelta(days=RECENT_LOGIN_DAYS)
        )

        return {
            "totalTokens": total,
            "activeTokens": active,
            "blockedTokens": blocked,
            # No bloqueados pero vencidos
            "expiredTokens": total - active - blocked,
            "recentLogins": recent_logins,
        }


class GoogleConfigService:

    @staticmethod
    def list_configs(db: Session) -> List[GoogleAuthModel]:
        statement = select(GoogleAuthModel).order_by(GoogleAuthModel.created_at.desc())
        return list(db.exec(statement).all())

    @staticmethod
    def get_active(db: Session) -> Optional[GoogleAuthModel]:
        statement = (
            select(GoogleAuthModel)
            .where(GoogleAuthModel.active == True)  # noqa: E712
            .order_by(GoogleAuthModel.updated_at.desc())
        )
        return db.exec(statement).first()

    @staticmethod
    def deactivate_all(db: Session, exclude_id: Optional[str] = None) -> int:
        """
        Primer paso de la activación: apaga las configuraciones activas y
        confirma. No es atómico con la escritura posterior, dos activaciones
        concurrentes pueden dejar dos filas activas.
        """
        statement = select(GoogleAuthModel).where(GoogleAuthModel.active == True)  # noqa: E712
        if exclude_id is not None:
            statement = statement.where(GoogleAuthModel.id != exclude_id)

        rows = db.exec(statement).all()
        for row in rows:
            row.active = False
            row.updated_at = utcnow()
            db.add(row)
        db.commit()
        return len(rows)

    @staticmethod
    def _deactivate_best_effort(db: Session, exclude_id: Optional[str] = None):
        try:
            GoogleConfigService.deactivate_all(db, exclude_id=exclude_id)
        except SQLAlchemyError as e:
            # Se continúa con la escritura aunque esto falle
            db.rollback()
            logger.error(f"❌ Error desactivando configuraciones existentes: {e}")

    @staticmethod
    def add_config(db: Session, data: Dict[str, Any], active: bool = False) -> GoogleAuthModel:
        if active:
            GoogleConfigService._deactivate_best_effort(db)

        fields = {k: v for k, v in data.items() if k in GOOGLE_CONFIG_UPDATABLE_FIELDS and v is not None}
        fields["active"] = bool(active)
        if "token_expiry" in fields:
            fields["token_expiry"] = as_utc(fields["token_expiry"])

        row = GoogleAuthModel(**fields)
        try:
            db.add(row)
            db.commit()
            db.refresh(row)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"❌ Error insertando configuración Google: {e}")
            raise AdminFunctionError(
                "Failed to add Google authentication configuration",
                details=str(getattr(e, "orig", e))
            )

        logger.info(f"✅ Configuración Google creada: {row.id} (activa={row.active})")
        return row

    @staticmethod
    def update_config(db: Session, config_id: str, updates: Dict[str, Any]) -> GoogleAuthModel:
        updates = {k: v for k, v in updates.items() if k in GOOGLE_CONFIG_UPDATABLE_FIELDS}

        if updates.get("active"):
            GoogleConfigService._deactivate_best_effort(db, exclude_id=config_id)

        row = db.get(GoogleAuthModel, config_id)
        if not row:
            raise AdminFunctionError(
                "Failed to update Google authentication configuration",
                details="Config not found"
            )

        for field, value in updates.items():
            if field == "token_expiry":
                value = as_utc(value)
            setattr(row, field, value)
        row.updated_at = utcnow()

        try:
            db.add(row)
            db.commit()
            db.refresh(row)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"❌ Error actualizando configuración Google: {e}")
            raise AdminFunctionError(
                "Failed to update Google authentication configuration",
                details=str(getattr(e, "orig", e))
            )

        logger.info(f"✅ Configuración Google actualizada: {config_id}")
        return row

    @staticmethod
    def delete_config(db: Session, config_id: str) -> None:
        row = db.get(GoogleAuthModel, config_id)
        if not row:
            raise AdminFunctionError(
                "Failed to delete Google authentication configuration",
                details="Config not found"
            )

        db.delete(row)
        db.commit()
        logger.info(f"🗑️ Configuración Google eliminada: {config_id}")
