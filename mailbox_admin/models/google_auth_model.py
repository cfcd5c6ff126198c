from datetime import datetime
from typing import Optional
from sqlmodel import Field, SQLModel
from mailbox_admin.models.base import UTCDateTime, new_id, utcnow

DEFAULT_AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
DEFAULT_TOKEN_URI = "https://oauth2.googleapis.com/token"
DEFAULT_CERT_URL = "https://www.googleapis.com/oauth2/v1/certs"

class GoogleAuthModel(SQLModel, table=True):
    __tablename__ = "google_auth"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=36)
    client_id: str = Field(nullable=False)
    client_secret: str = Field(nullable=False)
    project_id: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = Field(default=None, max_length=255)
    auth_uri: str = Field(default=DEFAULT_AUTH_URI, nullable=False)
    token_uri: str = Field(default=DEFAULT_TOKEN_URI, nullable=False)
    auth_provider_cert_url: str = Field(default=DEFAULT_CERT_URL, nullable=False)
    redirect_uri: Optional[str] = Field(default=None)
    # Solo una configuración activa a la vez (ver admin_service)
    active: bool = Field(default=False, nullable=False, index=True)

    # Tokens OAuth guardados por el callback de Google
    access_token: Optional[str] = Field(default=None)
    refresh_token: Optional[str] = Field(default=None)
    token_expiry: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)

    created_at: datetime = Field(default_factory=utcnow, nullable=False, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utcnow, nullable=False, sa_type=UTCDateTime)

    def __repr__(self):
        return f"<GoogleAuthModel(id={self.id}, active={self.active})>"
