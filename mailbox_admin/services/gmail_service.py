import base64
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
import logging

from google.auth.exceptions import RefreshError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from sqlmodel import Session

from ..config.config import settings
from ..models.base import as_utc, utcnow
from ..models.email_model import EmailModel
from ..models.google_auth_model import GoogleAuthModel

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/gmail.readonly"]
METADATA_HEADERS = ["Subject", "From", "To", "Date"]


class GmailNotConnected(Exception):
    pass


def build_credentials(config: GoogleAuthModel) -> Credentials:
    expiry = as_utc(config.token_expiry)
    return Credentials(
        token=config.access_token,
        refresh_token=config.refresh_token,
        token_uri=config.token_uri,
        client_id=config.client_id or settings.GOOGLE_CLIENT_ID,
        client_secret=config.client_secret or settings.GOOGLE_CLIENT_SECRET,
        scopes=SCOPES,
        # google-auth compara la expiración contra UTC sin zona
        expiry=expiry.replace(tzinfo=None) if expiry else None
    )


def refresh_if_expired(creds: Credentials, config: GoogleAuthModel, db: Optional[Session] = None) -> bool:
    """
    Renueva el access token vencido con el refresh token y lo guarda en la
    configuración. Devuelve True si hubo renovación.
    """
    if not (creds.expired and creds.refresh_token):
        return False

    try:
        creds.refresh(Request())
    except RefreshError as e:
        logger.error(f"❌ No se pudo renovar el token de Google: {e}")
        raise GmailNotConnected("El refresh token fue rechazado, hay que volver a autorizar la cuenta") from e

    config.access_token = creds.token
    config.token_expiry = as_utc(creds.expiry)
    config.updated_at = utcnow()
    if db is not None:
        db.add(config)
        db.commit()
        db.refresh(config)

    logger.info(f"🔄 Token de Google renovado para la configuración {config.id}")
    return True


def build_gmail_service(config: Optional[GoogleAuthModel], db: Optional[Session] = None):
    """Cliente Gmail con los tokens OAuth guardados en la configuración activa"""
    if config is None or not config.access_token:
        raise GmailNotConnected("No hay una cuenta de Google conectada")

    creds = build_credentials(config)
    refresh_if_expired(creds, config, db)
    return build("gmail", "v1", credentials=creds, cache_discovery=False)


def get_header(headers: List[Dict[str, Any]], name: str) -> str:
    name = name.lower()
    for header in headers:
        if (header.get("name") or "").lower() == name:
            return header.get("value") or ""
    return ""


def decode_body(data: Optional[str]) -> str:
    """Gmail entrega los cuerpos en base64 url-safe, a veces sin padding"""
    if not data:
        return ""
    padded = data + "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8", errors="replace")


def flatten_parts(payload: Dict[str, Any]) -> List[Dict[str, Any]]:
    # Recorrido en anchura de las partes MIME anidadas
    pending = list(payload.get("parts", []))
    flat = []
    while pending:
        part = pending.pop(0)
        flat.append(part)
        pending.extend(part.get("parts", []))
    return flat


def extract_body(payload: Dict[str, Any]) -> Tuple[str, str]:
    """Devuelve (cuerpo, tipo): text/html preferido, text/plain de respaldo"""
    plain = None
    for part in flatten_parts(payload):
        mime_type = part.get("mimeType")
        if mime_type == "text/html":
            return decode_body(part.get("body", {}).get("data")), "html"
        if mime_type == "text/plain" and plain is None:
            plain = decode_body(part.get("body", {}).get("data"))

    if plain is not None:
        return plain, "plain"

    return decode_body(payload.get("body", {}).get("data")), ""


def fetch_message_metadata(service, message_id: str) -> Dict[str, Any]:
    return service.users().messages().get(
        userId="me",
        id=message_id,
        format="metadata",
        metadataHeaders=METADATA_HEADERS
    ).execute()


def fetch_message_details(service, max_results: int) -> List[Dict[str, Any]]:
    """
    Lista hasta max_results mensajes y pide los metadatos de cada uno,
    uno por uno. Cualquier error aborta la lista completa.
    """
    response = service.users().messages().list(userId="me", maxResults=max_results).execute()
    messages = response.get("messages", [])

    details = [fetch_message_metadata(service, message["id"]) for message in messages]

    logger.info(f"📬 Gmail: {len(details)} mensajes obtenidos")
    return details


def summarize_message(detail: Dict[str, Any]) -> Dict[str, str]:
    headers = detail.get("payload", {}).get("headers", [])
    return {
        "id": detail.get("id"),
        "threadId": detail.get("threadId"),
        "subject": get_header(headers, "Subject"),
        "from": get_header(headers, "From"),
        "to": get_header(headers, "To"),
        "date": get_header(headers, "Date"),
    }


def list_messages(service, max_results: Optional[int] = None) -> List[Dict[str, str]]:
    max_results = max_results or settings.GMAIL_PAGE_SIZE
    return [summarize_message(detail) for detail in fetch_message_details(service, max_results)]


def get_message(service, message_id: str) -> Dict[str, Any]:
    message = service.users().messages().get(userId="me", id=message_id, format="full").execute()
    payload = message.get("payload", {})
    headers = payload.get("headers", [])
    body, content_type = extract_body(payload)

    return {
        "id": message.get("id"),
        "threadId": message.get("threadId"),
        "subject": get_header(headers, "Subject"),
        "from": get_header(headers, "From"),
        "to": get_header(headers, "To"),
        "date": get_header(headers, "Date"),
        "body": body,
        "contentType": content_type,
        "headers": headers,
    }


def message_to_email(detail: Dict[str, Any]) -> EmailModel:
    """Adapta un mensaje de Gmail (metadatos) a la forma Email del panel"""
    summary = summarize_message(detail)
    internal_date = detail.get("internalDate")
    if internal_date:
        date = datetime.fromtimestamp(int(internal_date) / 1000, tz=timezone.utc).isoformat()
    else:
        date = summary["date"]

    return EmailModel(
        id=summary["id"],
        sender=summary["from"],
        to=summary["to"],
        subject=summary["subject"],
        body=detail.get("snippet", ""),
        date=date,
        isRead="UNREAD" not in detail.get("labelIds", []),
        isHidden=False,
    )
