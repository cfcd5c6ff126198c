from typing import Optional
from pydantic import BaseModel, ConfigDict, Field as PydanticField
from sqlmodel import Field, SQLModel

class EmailModel(BaseModel):
    """Correo tal como lo consume el panel (mock o derivado de Gmail)"""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    sender: str = PydanticField(alias="from")
    to: str
    subject: str
    body: str
    date: str
    isRead: bool = False
    isHidden: bool = False


class EmailStateModel(SQLModel, table=True):
    """Estado leído/oculto aplicado encima de los correos"""
    __tablename__ = "email_states"

    email_id: str = Field(primary_key=True, max_length=255)
    is_read: Optional[bool] = Field(default=None)
    is_hidden: Optional[bool] = Field(default=None)
