import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from pathlib import Path
from typing import Optional, Union
import logging

from ..config.config import settings

logger = logging.getLogger(__name__)

TEMP_EMAIL_EXTENSION = ".eml"
DEFAULT_MAX_AGE = timedelta(hours=1)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def is_valid_temp_id(temp_id: str) -> bool:
    """Solo UUID canónicos, así un id nunca puede salir del directorio"""
    try:
        return str(uuid.UUID(temp_id)) == temp_id
    except (ValueError, AttributeError, TypeError):
        return False


def _to_ns(moment: datetime) -> int:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return (moment - _EPOCH) // timedelta(microseconds=1) * 1000


class TempEmailStore(ABC):
    """Almacén de correos crudos de vida corta, indexado por un id generado"""

    @abstractmethod
    async def save(self, content: str) -> str:
        ...

    @abstractmethod
    async def read(self, temp_id: str) -> Optional[str]:
        ...

    @abstractmethod
    async def delete(self, temp_id: str) -> bool:
        ...

    @abstractmethod
    async def sweep(self, now: Optional[datetime] = None) -> int:
        ...


class FileTempEmailStore(TempEmailStore):
    """Guarda cada correo como <id>.eml dentro de un directorio"""

    def __init__(self, directory: Union[str, Path], max_age: timedelta = DEFAULT_MAX_AGE):
        self.directory = Path(directory)
        self.max_age = max_age
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path_for(self, temp_id: str) -> Path:
        if not is_valid_temp_id(temp_id):
            raise ValueError(f"ID temporal inválido: {temp_id!r}")
        return self.directory / f"{temp_id}{TEMP_EMAIL_EXTENSION}"

    async def save(self, content: str) -> str:
        """
        Guarda el contenido tal cual y devuelve el id generado.
        Los errores de escritura se propagan (OSError).
        """
        temp_id = str(uuid.uuid4())
        file_path = self._path_for(temp_id)

        # newline="" para no traducir saltos de línea
        with open(file_path, "w", encoding="utf-8", newline="") as f:
            f.write(content)

        logger.info(f"[TEMP] Correo guardado: {file_path.name} ({len(content)} caracteres)")
        return temp_id

    async def read(self, temp_id: str) -> Optional[str]:
        try:
            file_path = self._path_for(temp_id)
            with open(file_path, "r", encoding="utf-8", newline="") as f:
                return f.read()
        except (ValueError, OSError) as e:
            logger.error(f"[TEMP] Error leyendo correo temporal {temp_id}: {e}")
            return None

    async def delete(self, temp_id: str) -> bool:
        try:
            self._path_for(temp_id).unlink()
            logger.info(f"[TEMP] Correo eliminado: {temp_id}")
            return True
        except (ValueError, OSError) as e:
            logger.warning(f"[TEMP] No se pudo eliminar correo temporal {temp_id}: {e}")
            return False

    async def sweep(self, now: Optional[datetime] = None) -> int:
        """
        Elimina los .eml con fecha de modificación anterior a now - max_age.
        Un archivo justo en el límite se conserva. Los fallos por archivo
        se registran y no detienen el barrido.
        """
        now = now or datetime.now(timezone.utc)
        threshold_ns = _to_ns(now - self.max_age)
        removed = 0

        for file_path in self.directory.glob(f"*{TEMP_EMAIL_EXTENSION}"):
            try:
                if file_path.stat().st_mtime_ns < threshold_ns:
                    file_path.unlink()
                    removed += 1
            except OSError as e:
                logger.error(f"[TEMP] Error limpiando correo temporal {file_path.name}: {e}")

        if removed:
            logger.info(f"🧹 [TEMP] {removed} correos temporales expirados eliminados")
        return removed


@lru_cache
def get_temp_email_store() -> TempEmailStore:
    """Dependencia FastAPI: almacén configurado desde settings"""
    return FileTempEmailStore(
        settings.TEMP_EMAILS_DIR,
        max_age=timedelta(minutes=settings.TEMP_EMAIL_MAX_AGE_MINUTES)
    )
