from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from fastapi import APIRouter, Depends, HTTPException, Form, status
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError
from pydantic import BaseModel
from sqlmodel import Session, select
from mailbox_admin.config.config import settings
from mailbox_admin.config.database import get_db, hash_password, verify_password
from mailbox_admin.models.access_token_model import AccessTokenModel
from mailbox_admin.models.admin_user_model import AdminUserModel
from mailbox_admin.models.base import utcnow
from mailbox_admin.services.admin_service import AccessTokenService
import logging

router = APIRouter()
logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/sign-in/", auto_error=False)
ALGORITHM = "HS256"

ROLE_ADMIN = "admin"
ROLE_USER = "user"


class TokenLoginRequest(BaseModel):
    token: Optional[str] = None

class PasswordChangeRequest(BaseModel):
    current_password: str
    new_password: str


class SessionUser:
    """Sesión resuelta a partir del JWT: un admin o un usuario con access token"""
    def __init__(self, role: str, subject: str, email: Optional[str] = None):
        self.role = role
        self.subject = subject
        self.email = email

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def to_dict(self) -> Dict[str, Any]:
        return {"role": self.role, "id": self.subject, "email": self.email}


def create_session_token(role: str, subject: str, email: Optional[str] = None) -> str:
    payload = {
        "sub": subject,
        "role": role,
        "email": email,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=settings.JWT_EXPIRE_MINUTES)
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=ALGORITHM)


def decode_session_token(token: str, db: Session) -> Optional[SessionUser]:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.warning(f"⚠️ Token inválido o expirado: {e}")
        return None

    role = payload.get("role")
    subject = payload.get("sub")
    if not subject or role not in (ROLE_ADMIN, ROLE_USER):
        return None

    if role == ROLE_ADMIN:
        admin = db.exec(
            select(AdminUserModel).where(AdminUserModel.email == payload.get("email"))
        ).first()
        if admin is None:
            logger.warning(f"⚠️ Admin del token no existe: {payload.get('email')}")
            return None
        return SessionUser(ROLE_ADMIN, str(admin.id), admin.email)

    # Un access token bloqueado o borrado invalida la sesión ya emitida
    access_token = db.get(AccessTokenModel, subject)
    if access_token is None or not access_token.is_usable():
        logger.warning(f"⚠️ Access token de la sesión no disponible: {subject}")
        return None
    return SessionUser(ROLE_USER, access_token.id)


# ----------------------------
# Dependencias de sesión
# ----------------------------

async def get_optional_session(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> Optional[SessionUser]:
    if not token:
        return None
    return decode_session_token(token, db)


async def verify_token(session: Optional[SessionUser] = Depends(get_optional_session)) -> SessionUser:
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return session


async def require_admin(session: SessionUser = Depends(verify_token)) -> SessionUser:
    if not session.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return session


# ----------------------------
# Login admin (formulario)
# ----------------------------

@router.post("/sign-in/")
async def login(
    email: str = Form(...),
    password: str = Form(...),
    db: Session = Depends(get_db)
):
    logger.info(f"🔐 Intento de login admin: {email}")

    admin = db.exec(
        select(AdminUserModel).where(AdminUserModel.email == email)
    ).first()

    if not admin or not verify_password(password, admin.password):
        logger.warning(f"⚠️ Credenciales inválidas para: {email}")
        raise HTTPException(status_code=401, detail="Invalid credentials")

    access_token = create_session_token(ROLE_ADMIN, str(admin.id), admin.email)
    logger.info(f"✅ Login admin exitoso: {email}")

    return {"access_token": access_token, "token_type": "bearer"}


# ----------------------------
# Login de usuario con access token
# ----------------------------

@router.post("/token-login")
async def token_login(payload: TokenLoginRequest, db: Session = Depends(get_db)):
    if not payload.token:
        raise HTTPException(status_code=400, detail="Token is required")

    row = AccessTokenService.authenticate(db, payload.token)
    if row is None:
        logger.warning("⚠️ Access token inválido, bloqueado o expirado")
        raise HTTPException(status_code=401, detail="Invalid or inactive token")

    logger.info(f"✅ Login con access token: {row.id}")
    return {
        "access_token": create_session_token(ROLE_USER, row.id),
        "token_type": "bearer"
    }


@router.get("/me")
async def get_me(session: SessionUser = Depends(verify_token)):
    return session.to_dict()


@router.patch("/admin/password")
async def change_admin_password(
    payload: PasswordChangeRequest,
    session: SessionUser = Depends(require_admin),
    db: Session = Depends(get_db)
):
    admin = db.get(AdminUserModel, int(session.subject))
    if not admin:
        raise HTTPException(status_code=404, detail="Admin not found")

    if not verify_password(payload.current_password, admin.password):
        raise HTTPException(status_code=401, detail="Current password is incorrect")

    if not payload.new_password:
        raise HTTPException(status_code=400, detail="New password is required")

    admin.password = hash_password(payload.new_password)
    admin.updated_at = utcnow()
    db.add(admin)
    db.commit()
    logger.info(f"✅ Contraseña actualizada para: {admin.email}")

    return {"message": "Password updated successfully"}
