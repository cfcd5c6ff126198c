from datetime import datetime
from typing import Optional
from sqlmodel import Field, SQLModel
from mailbox_admin.models.base import UTCDateTime, utcnow

class AdminUserModel(SQLModel, table=True):
    __tablename__ = "admin_accounts"

    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(max_length=96, nullable=False, unique=True)
    password: str = Field(max_length=255, nullable=False)
    created_at: datetime = Field(default_factory=utcnow, nullable=False, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utcnow, nullable=False, sa_type=UTCDateTime)

    def __repr__(self):
        return f"<AdminUserModel(email={self.email})>"
