from datetime import datetime
from typing import Optional
from sqlmodel import Field, SQLModel
from mailbox_admin.models.base import UTCDateTime, as_utc, new_id, utcnow

class AccessTokenModel(SQLModel, table=True):
    __tablename__ = "access_tokens"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=36)
    token: str = Field(max_length=255, nullable=False, unique=True, index=True)
    description: Optional[str] = Field(default=None, max_length=255)
    blocked: bool = Field(default=False, nullable=False)
    expires_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)
    created_at: datetime = Field(default_factory=utcnow, nullable=False, sa_type=UTCDateTime)
    last_login_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)

    def is_usable(self, now: Optional[datetime] = None) -> bool:
        now = as_utc(now) or utcnow()
        if self.blocked:
            return False
        return self.expires_at is None or as_utc(self.expires_at) > now

    def __repr__(self):
        return f"<AccessTokenModel(id={self.id}, blocked={self.blocked})>"
