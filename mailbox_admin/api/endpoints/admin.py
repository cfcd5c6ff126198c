from typing import List
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session
from mailbox_admin.api.endpoints.emails import get_mailbox_emails, load_mailbox_emails
from mailbox_admin.api.endpoints.token import SessionUser, require_admin
from mailbox_admin.config.database import get_db
from mailbox_admin.models.email_model import EmailModel
from mailbox_admin.services import gmail_service
from mailbox_admin.services.admin_service import AccessTokenService, GoogleConfigService
from mailbox_admin.services.stats_service import email_stats
import logging

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/dashboard")
def get_dashboard_summary(
    current_admin: SessionUser = Depends(require_admin),
    db: Session = Depends(get_db)
):
    try:
        summary = AccessTokenService.summary(db)
        active_config = GoogleConfigService.get_active(db)
    except SQLAlchemyError as e:
        logger.error(f"❌ Error obteniendo resumen del panel: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch dashboard summary")

    # Sin cuenta de Google el panel se muestra igual, sin total de correos
    try:
        summary["totalEmails"] = len(load_mailbox_emails(db))
    except gmail_service.GmailNotConnected:
        summary["totalEmails"] = None
    except Exception as e:
        logger.warning(f"⚠️ No se pudo contar los correos del buzón: {e}")
        summary["totalEmails"] = None

    return {
        "summary": summary,
        "googleConnected": bool(active_config and active_config.access_token),
    }


@router.get("/email-stats")
def get_email_stats(
    current_admin: SessionUser = Depends(require_admin),
    emails: List[EmailModel] = Depends(get_mailbox_emails)
):
    return email_stats(emails)
