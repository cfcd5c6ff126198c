from typing import Dict, List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from googleapiclient.errors import HttpError
from pydantic import BaseModel
from sqlmodel import Session, select
from mailbox_admin.api.endpoints.token import SessionUser, require_admin, verify_token
from mailbox_admin.config.config import settings
from mailbox_admin.config.database import get_db
from mailbox_admin.config.mock_data import get_mock_emails
from mailbox_admin.config.pagination import PaginatedResponse, PaginationParams
from mailbox_admin.models.email_model import EmailModel, EmailStateModel
from mailbox_admin.services import gmail_service
from mailbox_admin.services.admin_service import GoogleConfigService
import logging

router = APIRouter()
logger = logging.getLogger(__name__)


class ReadStateRequest(BaseModel):
    isRead: bool

class VisibilityRequest(BaseModel):
    isHidden: bool


def _mailbox_gmail_service(db: Session):
    return gmail_service.build_gmail_service(GoogleConfigService.get_active(db), db)


def load_mailbox_emails(db: Session) -> List[EmailModel]:
    """Correos de demostración o, sin USE_MOCK_DATA, los de Gmail"""
    if settings.USE_MOCK_DATA:
        return get_mock_emails()

    service = _mailbox_gmail_service(db)
    details = gmail_service.fetch_message_details(service, settings.GMAIL_PAGE_SIZE)
    return [gmail_service.message_to_email(detail) for detail in details]


def load_mailbox_email(db: Session, email_id: str) -> Optional[EmailModel]:
    """Un solo correo, sin recorrer la lista completa de Gmail"""
    if settings.USE_MOCK_DATA:
        return next((email for email in get_mock_emails() if email.id == email_id), None)

    service = _mailbox_gmail_service(db)
    try:
        detail = gmail_service.fetch_message_metadata(service, email_id)
    except HttpError as e:
        if e.resp.status == 404:
            return None
        raise
    return gmail_service.message_to_email(detail)


def get_mailbox_emails(db: Session = Depends(get_db)) -> List[EmailModel]:
    try:
        return load_mailbox_emails(db)
    except gmail_service.GmailNotConnected:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Google account not connected")
    except Exception as e:
        logger.error(f"❌ Error cargando correos del buzón: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch emails")


def get_mailbox_email(email_id: str, db: Session = Depends(get_db)) -> Optional[EmailModel]:
    try:
        return load_mailbox_email(db, email_id)
    except gmail_service.GmailNotConnected:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Google account not connected")
    except Exception as e:
        logger.error(f"❌ Error cargando el correo {email_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch email")


def apply_states(db: Session, emails: List[EmailModel]) -> List[EmailModel]:
    if not emails:
        return emails

    ids = [email.id for email in emails]
    states: Dict[str, EmailStateModel] = {
        state.email_id: state
        for state in db.exec(select(EmailStateModel).where(EmailStateModel.email_id.in_(ids))).all()
    }

    for email in emails:
        state = states.get(email.id)
        if state is None:
            continue
        if state.is_read is not None:
            email.isRead = state.is_read
        if state.is_hidden is not None:
            email.isHidden = state.is_hidden
    return emails


def matches_search(email: EmailModel, search: Optional[str]) -> bool:
    if not search:
        return True
    needle = search.lower()
    return any(needle in value.lower() for value in (email.subject, email.sender, email.to))


def visible_email(db: Session, email: Optional[EmailModel], session: SessionUser) -> EmailModel:
    if email is not None:
        email = apply_states(db, [email])[0]
    # Los ocultos no existen para el usuario final
    if email is None or (email.isHidden and not session.is_admin):
        raise HTTPException(status_code=404, detail="Email not found")
    return email


def save_state(db: Session, email_id: str, **changes) -> None:
    state = db.get(EmailStateModel, email_id) or EmailStateModel(email_id=email_id)
    for field, value in changes.items():
        setattr(state, field, value)
    db.add(state)
    db.commit()


@router.get("/emails", response_model=PaginatedResponse[EmailModel])
def list_emails(
    request: Request,
    page: int = Query(1, ge=1),
    size: int = Query(50, ge=1, le=500),
    search: Optional[str] = Query(None),
    session: SessionUser = Depends(verify_token),
    emails: List[EmailModel] = Depends(get_mailbox_emails),
    db: Session = Depends(get_db)
):
    params = PaginationParams(page=page, size=size, search=search)
    emails = apply_states(db, emails)

    visible = [
        email for email in emails
        if (session.is_admin or not email.isHidden) and matches_search(email, params.search)
    ]
    visible.sort(key=lambda email: email.date, reverse=True)

    return PaginatedResponse[EmailModel].create(
        items=params.slice(visible),
        total=len(visible),
        params=params,
        base_url=request.url.path
    )


@router.get("/emails/{email_id}", response_model=EmailModel)
def get_email(
    email_id: str,
    session: SessionUser = Depends(verify_token),
    email: Optional[EmailModel] = Depends(get_mailbox_email),
    db: Session = Depends(get_db)
):
    return visible_email(db, email, session)


@router.patch("/emails/{email_id}/read", response_model=EmailModel)
def mark_email_read(
    email_id: str,
    payload: ReadStateRequest,
    session: SessionUser = Depends(verify_token),
    email: Optional[EmailModel] = Depends(get_mailbox_email),
    db: Session = Depends(get_db)
):
    email = visible_email(db, email, session)
    save_state(db, email_id, is_read=payload.isRead)
    email.isRead = payload.isRead
    return email


@router.patch("/emails/{email_id}/visibility", response_model=EmailModel)
def set_email_visibility(
    email_id: str,
    payload: VisibilityRequest,
    session: SessionUser = Depends(require_admin),
    email: Optional[EmailModel] = Depends(get_mailbox_email),
    db: Session = Depends(get_db)
):
    email = visible_email(db, email, session)
    save_state(db, email_id, is_hidden=payload.isHidden)
    email.isHidden = payload.isHidden
    logger.info(f"👁️ Correo {email_id} {'oculto' if payload.isHidden else 'visible'} para usuarios")
    return email
