import io
import logging
import os
import uuid
from typing import Optional

from fastapi import UploadFile
from sqlmodel import Session

from app.model.media import Media
from app.storage.client import S3Client, StorageError
from app.storage.config import S3Config

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 10 * 1024 * 1024

ALLOWED_MEDIA_TYPES = frozenset(
    [
        "image/jpeg",
        "image/png",
        "image/gif",
        "image/webp",
        "image/svg+xml",
        "image/x-icon",
        "image/vnd.microsoft.icon",
        "application/pdf",
    ]
)


class StorageService:
    """Serviço de storage que combina S3Client com o modelo Media."""

    def __init__(self, config: Optional[S3Config] = None):
        self.config = config or S3Config()
        self.client = S3Client(self.config)

    @staticmethod
    def generate_s3_key(tenant_id: int, kind: str, filename: str) -> str:
        """
        Chave S3: {tenant_id}/{kind}/{nome}_{uuid8}{ext}

        Ex: generate_s3_key(1, "media", "banner azul.png") -> "1/media/banner_azul_1a2b3c4d.png"
        """
        safe_filename = os.path.basename(filename).replace(" ", "_") or "file"
        name, ext = os.path.splitext(safe_filename)
        return f"{tenant_id}/{kind}/{name}_{uuid.uuid4().hex[:8]}{ext.lower()}"

    def upload_bytes(self, tenant_id: int, kind: str, filename: str, content: bytes, content_type: str) -> tuple[str, str]:
        """Envia bytes e retorna (s3_key, url)."""
        s3_key = self.generate_s3_key(tenant_id, kind, filename)
        url = self.client.upload_fileobj(io.BytesIO(content), s3_key, content_type=content_type)
        return s3_key, url

    def upload_media(
        self,
        session: Session,
        tenant_id: int,
        file: UploadFile,
        content: bytes,
        alt_text: Optional[str] = None,
        kind: str = "media",
    ) -> Media:
        """Faz upload e cria o registro Media (commit incluso)."""
        filename = file.filename or "unknown"
        content_type = file.content_type or "application/octet-stream"
        s3_key, s3_url = self.upload_bytes(tenant_id, kind, filename, content, content_type)

        media = Media(
            tenant_id=tenant_id,
            filename=filename,
            content_type=content_type,
            s3_key=s3_key,
            s3_url=s3_url,
            file_size=len(content),
            alt_text=alt_text,
        )
        try:
            session.add(media)
            session.commit()
            session.refresh(media)
        except Exception:
            session.rollback()
            # Não deixa objeto órfão no bucket
            self.delete_quietly(s3_key)
            raise
        return media

    def get_presigned_url(self, s3_key: str, expiration: int = 3600) -> str:
        return self.client.get_presigned_url(s3_key, expiration=expiration)

    def delete_file(self, s3_key: str) -> None:
        self.client.delete_file(s3_key)

    def delete_quietly(self, s3_key: str) -> None:
        try:
            self.client.delete_file(s3_key)
        except StorageError as e:
            logger.warning(f"Erro ao deletar arquivo do S3 (continuando): {e}")


def get_storage_service() -> StorageService:
    """Dependency do FastAPI (sobrescrita nos testes)."""
    return StorageService()
