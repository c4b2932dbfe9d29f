import secrets

from passlib.context import CryptContext

# pbkdf2_sha256: puro Python no passlib, sem depender do pacote bcrypt
_pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return _pwd_context.hash(password)


def verify_password(password: str, password_hash: str | None) -> bool:
    if not password_hash:
        return False
    try:
        return _pwd_context.verify(password, password_hash)
    except ValueError:
        # hash em formato desconhecido
        return False


def generate_token(nbytes: int = 32) -> str:
    """Token aleatório para reset de senha / verificação de email."""
    return secrets.token_urlsafe(nbytes)
