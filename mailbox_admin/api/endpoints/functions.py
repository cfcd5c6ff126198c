"""
Funciones de administración (una por verbo CRUD) sobre access_tokens y
google_auth.

Siempre responden HTTP 200: {"success": true, "data": ...} o
{"error": ..., "details": ...}. Los clientes existentes leen el campo
error en vez del código de estado. El CORS lo resuelve el CORSMiddleware
de la app con los orígenes configurados, preflight incluido.
"""
from datetime import datetime
from typing import Any, Optional
from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict
from sqlmodel import Session
from mailbox_admin.api.endpoints.token import SessionUser, require_admin
from mailbox_admin.config.database import get_db
from mailbox_admin.services.admin_service import (
    AccessTokenService,
    AdminFunctionError,
    GoogleConfigService,
)
import logging

router = APIRouter()
logger = logging.getLogger(__name__)


class AddAccessTokenRequest(BaseModel):
    token: Optional[str] = None
    description: Optional[str] = None
    expires_at: Optional[datetime] = None

class UpdateAccessTokenRequest(BaseModel):
    id: Optional[str] = None
    blocked: Optional[bool] = None

class IdRequest(BaseModel):
    id: Optional[str] = None

class GoogleConfigFields(BaseModel):
    model_config = ConfigDict(extra="ignore")

    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    project_id: Optional[str] = None
    description: Optional[str] = None
    auth_uri: Optional[str] = None
    token_uri: Optional[str] = None
    auth_provider_cert_url: Optional[str] = None
    redirect_uri: Optional[str] = None
    active: Optional[bool] = None

class AddGoogleConfigRequest(GoogleConfigFields):
    pass

class GoogleConfigUpdates(GoogleConfigFields):
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    token_expiry: Optional[datetime] = None

class UpdateGoogleConfigRequest(BaseModel):
    id: Optional[str] = None
    updates: GoogleConfigUpdates = GoogleConfigUpdates()


def function_success(data: Any = None, include_data: bool = True) -> JSONResponse:
    content = {"success": True}
    if include_data:
        content["data"] = jsonable_encoder(data)
    return JSONResponse(status_code=200, content=content)


def function_error(message: str, details: Any = None) -> JSONResponse:
    content = {"error": message}
    if details is not None:
        content["details"] = jsonable_encoder(details)
    return JSONResponse(status_code=200, content=content)


def unexpected_error(function_name: str, error: Exception, db: Session) -> JSONResponse:
    db.rollback()
    logger.error(f"❌ Error en la función {function_name}: {error}")
    return function_error(str(error) or "Unknown error occurred")


# ----------------------------
# Access tokens
# ----------------------------

@router.post("/add-access-token")
async def add_access_token(
    payload: Optional[AddAccessTokenRequest] = None,
    current_admin: SessionUser = Depends(require_admin),
    db: Session = Depends(get_db)
):
    payload = payload or AddAccessTokenRequest()
    if not payload.token:
        return function_error("Token is required")

    try:
        row = AccessTokenService.add_token(db, payload.token, payload.description, payload.expires_at)
        return function_success(row)
    except AdminFunctionError as e:
        return function_error(e.message, e.details)
    except Exception as e:
        return unexpected_error("add-access-token", e, db)


@router.post("/update-access-token")
async def update_access_token(
    payload: Optional[UpdateAccessTokenRequest] = None,
    current_admin: SessionUser = Depends(require_admin),
    db: Session = Depends(get_db)
):
    payload = payload or UpdateAccessTokenRequest()
    if not payload.id:
        return function_error("Token ID is required")
    if payload.blocked is None:
        return function_error("Blocked flag is required")

    try:
        row = AccessTokenService.set_blocked(db, payload.id, payload.blocked)
        return function_success(row)
    except AdminFunctionError as e:
        return function_error(e.message, e.details)
    except Exception as e:
        return unexpected_error("update-access-token", e, db)


@router.post("/delete-access-token")
async def delete_access_token(
    payload: Optional[IdRequest] = None,
    current_admin: SessionUser = Depends(require_admin),
    db: Session = Depends(get_db)
):
    payload = payload or IdRequest()
    if not payload.id:
        return function_error("Token ID is required")

    try:
        AccessTokenService.delete_token(db, payload.id)
        return function_success(include_data=False)
    except AdminFunctionError as e:
        return function_error(e.message, e.details)
    except Exception as e:
        return unexpected_error("delete-access-token", e, db)


@router.api_route("/fetch-access-tokens", methods=["GET", "POST"])
async def fetch_access_tokens(
    current_admin: SessionUser = Depends(require_admin),
    db: Session = Depends(get_db)
):
    try:
        return function_success(AccessTokenService.list_tokens(db))
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Error obteniendo access tokens: {e}")
        return function_error("Failed to fetch access tokens", str(e))


# ----------------------------
# Configuraciones Google OAuth
# ----------------------------

@router.post("/add-google-config")
async def add_google_config(
    payload: Optional[AddGoogleConfigRequest] = None,
    current_admin: SessionUser = Depends(require_admin),
    db: Session = Depends(get_db)
):
    payload = payload or AddGoogleConfigRequest()
    if not payload.client_id or not payload.client_secret:
        return function_error("Client ID and Client Secret are required")

    try:
        data = payload.model_dump(exclude={"active"})
        row = GoogleConfigService.add_config(db, data, active=bool(payload.active))
        return function_success(row)
    except AdminFunctionError as e:
        return function_error(e.message, e.details)
    except Exception as e:
        return unexpected_error("add-google-config", e, db)


@router.post("/update-google-config")
async def update_google_config(
    payload: Optional[UpdateGoogleConfigRequest] = None,
    current_admin: SessionUser = Depends(require_admin),
    db: Session = Depends(get_db)
):
    payload = payload or UpdateGoogleConfigRequest()
    if not payload.id:
        return function_error("Config ID is required")

    try:
        updates = payload.updates.model_dump(exclude_unset=True)
        row = GoogleConfigService.update_config(db, payload.id, updates)
        return function_success(row)
    except AdminFunctionError as e:
        return function_error(e.message, e.details)
    except Exception as e:
        return unexpected_error("update-google-config", e, db)


@router.post("/delete-google-config")
async def delete_google_config(
    payload: Optional[IdRequest] = None,
    current_admin: SessionUser = Depends(require_admin),
    db: Session = Depends(get_db)
):
    payload = payload or IdRequest()
    if not payload.id:
        return function_error("Config ID is required")

    try:
        GoogleConfigService.delete_config(db, payload.id)
        return function_success(include_data=False)
    except AdminFunctionError as e:
        return function_error(e.message, e.details)
    except Exception as e:
        return unexpected_error("delete-google-config", e, db)


@router.api_route("/fetch-google-configs", methods=["GET", "POST"])
async def fetch_google_configs(
    current_admin: SessionUser = Depends(require_admin),
    db: Session = Depends(get_db)
):
    try:
        return function_success(GoogleConfigService.list_configs(db))
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Error obteniendo configuraciones Google: {e}")
        return function_error("Failed to fetch Google authentication configurations", str(e))
