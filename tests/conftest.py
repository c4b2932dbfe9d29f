"""
Configuração e fixtures dos testes da DukaNest.

Banco SQLite em memória (StaticPool) recriado a cada teste; storage S3
substituído por um fake em memória.
"""
import os

# Precisa estar definido antes de importar app.db.session / app.auth.jwt
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("ROOT_DOMAIN", "dukanest.local")

from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from app.db.session import create_tables, drop_tables, engine
from app.lib.cache import cache
from app.main import app
from app.services.subscription_service import seed_default_price_plans
from app.storage import StorageService, get_storage_service
from factories import register_store


# =============================================================================
# Storage fake
# =============================================================================


class FakeStorage(StorageService):
    """Guarda os objetos num dict; mesma interface do StorageService."""

    def __init__(self):
        self.objects: dict[str, bytes] = {}

    def upload_bytes(self, tenant_id, kind, filename, content, content_type):
        s3_key = self.generate_s3_key(tenant_id, kind, filename)
        self.objects[s3_key] = content
        return s3_key, f"http://storage.test/{s3_key}"

    def get_presigned_url(self, s3_key, expiration=3600):
        return f"http://storage.test/{s3_key}?expires={expiration}"

    def delete_file(self, s3_key):
        self.objects.pop(s3_key, None)

    def delete_quietly(self, s3_key):
        self.objects.pop(s3_key, None)


# =============================================================================
# Banco e cliente HTTP
# =============================================================================


@pytest.fixture(autouse=True)
def database() -> Generator[None, None, None]:
    create_tables()
    cache.clear()
    yield
    drop_tables()
    cache.clear()


@pytest.fixture
def session() -> Generator[Session, None, None]:
    with Session(engine) as s:
        yield s


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def client(storage: FakeStorage) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_storage_service] = lambda: storage
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# =============================================================================
# Dados de base: planos, loja, landlord
# =============================================================================


@pytest.fixture
def plans(session: Session) -> dict[str, int]:
    created = seed_default_price_plans(session)
    return {p.name: p.id for p in created}


@pytest.fixture
def store(client: TestClient, plans: dict[str, int]) -> dict:
    """Loja `acme` no plano Enterprise (sem limites)."""
    return register_store(client, plans["Enterprise"])


@pytest.fixture
def admin_headers(store: dict) -> dict[str, str]:
    return {"Authorization": f"Bearer {store['access_token']}"}


@pytest.fixture
def store_headers(store: dict) -> dict[str, str]:
    """Headers da vitrine da loja `acme`."""
    return {"X-Tenant-Subdomain": store["tenant"]["subdomain"]}


@pytest.fixture
def landlord_headers(client: TestClient) -> dict[str, str]:
    response = client.post(
        "/auth/landlord/register",
        json={"email": "root@dukanest.test", "password": "landlord-pass", "name": "Platform Owner"},
    )
    assert response.status_code == 201, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


