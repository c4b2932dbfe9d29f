import os


class S3Config:
    """Configuração S3/MinIO lida de variáveis de ambiente."""

    def __init__(self):
        endpoint_url = os.getenv("S3_ENDPOINT_URL", "http://localhost:9000")

        # Validar que não é um placeholder copiado do .env.example
        if "YOUR_S3" in endpoint_url.upper():
            raise ValueError(
                f"Variável S3_ENDPOINT_URL contém placeholder inválido: {endpoint_url}\n"
                f"Configure no .env, por exemplo:\n"
                f"  S3_ENDPOINT_URL=http://localhost:9000\n"
                f"  S3_BUCKET_NAME=dukanest"
            )

        self.endpoint_url: str = endpoint_url
        self.access_key_id: str = os.getenv("S3_ACCESS_KEY_ID", "minio")
        self.secret_access_key: str = os.getenv("S3_SECRET_ACCESS_KEY", "minio12345")
        self.bucket_name: str = os.getenv("S3_BUCKET_NAME", "dukanest")
        self.region: str = os.getenv("S3_REGION", "us-east-1")
        self.use_ssl: bool = os.getenv("S3_USE_SSL", "false").lower() == "true"
        # URL pública (CDN) opcional; senão endpoint/bucket/key
        self.public_base_url: str | None = os.getenv("S3_PUBLIC_BASE_URL") or None
