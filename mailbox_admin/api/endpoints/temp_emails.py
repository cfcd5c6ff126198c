from typing import Optional
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel
from mailbox_admin.services.temp_email_store import (
    TempEmailStore,
    get_temp_email_store,
    is_valid_temp_id,
)
import logging

router = APIRouter()
logger = logging.getLogger(__name__)


class TempEmailRequest(BaseModel):
    content: Optional[str] = None


async def sweep_expired(store: TempEmailStore):
    try:
        await store.sweep()
    except OSError as e:
        logger.error(f"❌ Error en limpieza de correos temporales: {e}")


def _check_temp_id(temp_id: str):
    if not is_valid_temp_id(temp_id):
        raise HTTPException(status_code=400, detail="Invalid temp ID")


@router.post("")
async def save_temp_email(
    background_tasks: BackgroundTasks,
    payload: Optional[TempEmailRequest] = None,
    store: TempEmailStore = Depends(get_temp_email_store)
):
    if payload is None or not payload.content:
        raise HTTPException(status_code=400, detail="Email content is required")

    try:
        temp_id = await store.save(payload.content)
    except Exception as e:
        logger.error(f"❌ Error guardando correo temporal: {e}")
        raise HTTPException(status_code=500, detail="Failed to save email temporarily")

    # Limpieza de expirados después de responder
    background_tasks.add_task(sweep_expired, store)
    return {"tempId": temp_id}


@router.get("/{temp_id}", response_class=PlainTextResponse)
async def read_temp_email(temp_id: str, store: TempEmailStore = Depends(get_temp_email_store)):
    _check_temp_id(temp_id)

    try:
        content = await store.read(temp_id)
    except Exception as e:
        logger.error(f"❌ Error leyendo correo temporal: {e}")
        raise HTTPException(status_code=500, detail="Failed to read email")

    if content is None:
        raise HTTPException(status_code=404, detail="Email not found")

    return PlainTextResponse(content)


@router.delete("/{temp_id}")
async def delete_temp_email(temp_id: str, store: TempEmailStore = Depends(get_temp_email_store)):
    _check_temp_id(temp_id)

    try:
        deleted = await store.delete(temp_id)
    except Exception as e:
        logger.error(f"❌ Error eliminando correo temporal: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete email")

    return {"success": deleted}
