"""
Validação de subdomínio das lojas.

Regras (na ordem em que são checadas):
  1. obrigatório (não vazio / só espaços)
  2. normaliza: trim + lowercase
  3. 3 a 63 caracteres (limite de label DNS)
  4. apenas a-z, 0-9 e hífen; não começa nem termina com hífen
  5. não pode ser reservado
  6. sem hífens consecutivos
"""

import re

RESERVED_SUBDOMAINS: frozenset[str] = frozenset(
    [
        # sistema
        "www", "admin", "api", "app", "dashboard", "landlord", "system", "root",
        # email
        "mail", "email", "smtp", "pop", "imap",
        # infraestrutura
        "ftp", "sftp", "ssh", "dns", "ns1", "ns2", "mx",
        "secure", "ssl", "tls", "vpn", "proxy", "gateway", "firewall",
        # assets
        "cdn", "static", "assets", "media", "images", "uploads", "files", "downloads",
        # rotas da aplicação
        "blog", "forum", "shop", "store", "cart", "checkout", "payment", "billing",
        "invoice", "account", "profile", "settings", "help", "support", "docs",
        "documentation",
        # auth
        "login", "logout", "signin", "signout", "signup", "register", "auth", "oauth", "sso",
        # desenvolvimento
        "dev", "development", "staging", "test", "testing", "demo", "sandbox", "preview",
        # monitoramento
        "status", "health", "metrics", "analytics", "stats", "monitoring",
        # diversos
        "news", "about", "contact", "terms", "privacy", "legal",
    ]
)

MIN_LENGTH = 3
MAX_LENGTH = 63

_SUBDOMAIN_PATTERN = re.compile(r"^[a-z0-9]([a-z0-9-]*[a-z0-9])?$")


def normalize_subdomain(subdomain: str) -> str:
    return subdomain.strip().lower()


def is_reserved_subdomain(subdomain: str) -> bool:
    return normalize_subdomain(subdomain) in RESERVED_SUBDOMAINS


def validate_subdomain(subdomain: str | None) -> tuple[bool, str | None]:
    """
    Valida um subdomínio.

    Returns:
        (is_valid, error). `error` é None quando válido.
    """
    if not subdomain or not subdomain.strip():
        return False, "Subdomain is required"

    normalized = normalize_subdomain(subdomain)

    if len(normalized) < MIN_LENGTH:
        return False, f"Subdomain must be at least {MIN_LENGTH} characters"

    if len(normalized) > MAX_LENGTH:
        return False, f"Subdomain must be no more than {MAX_LENGTH} characters"

    if not _SUBDOMAIN_PATTERN.match(normalized):
        return False, (
            "Subdomain can only contain lowercase letters, numbers, and hyphens. "
            "It cannot start or end with a hyphen."
        )

    if normalized in RESERVED_SUBDOMAINS:
        return False, "This subdomain is reserved and cannot be used"

    if "--" in normalized:
        return False, "Subdomain cannot contain consecutive hyphens"

    return True, None
