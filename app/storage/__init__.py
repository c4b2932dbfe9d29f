from app.storage.config import S3Config
from app.storage.client import S3Client, StorageError
from app.storage.service import ALLOWED_MEDIA_TYPES, MAX_UPLOAD_BYTES, StorageService, get_storage_service

__all__ = [
    "S3Config",
    "S3Client",
    "StorageError",
    "StorageService",
    "get_storage_service",
    "ALLOWED_MEDIA_TYPES",
    "MAX_UPLOAD_BYTES",
]
