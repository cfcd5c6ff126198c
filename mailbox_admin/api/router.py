from fastapi import APIRouter

from .endpoints import token
from .endpoints import temp_emails
from .endpoints import gmail
from .endpoints import functions
from .endpoints import emails
from .endpoints import admin

# Crear el router principal de la API
api_router = APIRouter()

# Registrar subrouters (endpoints específicos)
api_router.include_router(token.router, prefix="/auth", tags=["Login"])
api_router.include_router(temp_emails.router, prefix="/emails/temp", tags=["Temp emails"])
api_router.include_router(gmail.router, prefix="/gmail", tags=["Gmail"])
api_router.include_router(functions.router, prefix="/functions", tags=["Admin functions"])
api_router.include_router(emails.router, prefix="/mailbox", tags=["Mailbox"])
api_router.include_router(admin.router, prefix="/admin", tags=["Admin"])
