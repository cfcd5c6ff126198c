from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session
from mailbox_admin.api.endpoints.token import SessionUser, get_optional_session
from mailbox_admin.config.database import get_db
from mailbox_admin.services import gmail_service
from mailbox_admin.services.admin_service import GoogleConfigService
import logging

router = APIRouter()
logger = logging.getLogger(__name__)


def get_gmail_service(
    session: Optional[SessionUser] = Depends(get_optional_session),
    db: Session = Depends(get_db)
):
    """Cliente Gmail para la sesión actual, con los tokens de la config activa"""
    if session is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    config = GoogleConfigService.get_active(db)
    try:
        return gmail_service.build_gmail_service(config, db)
    except gmail_service.GmailNotConnected as e:
        logger.warning(f"⚠️ {e}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Google account not connected")
    except Exception as e:
        logger.error(f"❌ Error creando cliente Gmail: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch emails")


@router.get("/messages")
def list_gmail_messages(service=Depends(get_gmail_service)):
    try:
        return gmail_service.list_messages(service)
    except Exception as e:
        logger.error(f"❌ Error obteniendo correos de Gmail: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch emails")


@router.get("/messages/{message_id}")
def get_gmail_message(message_id: str, service=Depends(get_gmail_service)):
    if not message_id.strip():
        raise HTTPException(status_code=400, detail="Email ID is required")

    try:
        return gmail_service.get_message(service, message_id)
    except Exception as e:
        logger.error(f"❌ Error obteniendo correo {message_id} de Gmail: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch email")
