import re

_NON_WORD = re.compile(r"[^\w\s-]")
_SEPARATORS = re.compile(r"[\s_-]+")


def generate_slug(text: str) -> str:
    """'Camiseta Azul  G!' -> 'camiseta-azul-g'"""
    slug = _NON_WORD.sub("", text.lower().strip())
    slug = _SEPARATORS.sub("-", slug)
    return slug.strip("-")


def unique_slug(base: str, taken: set[str]) -> str:
    """Adiciona sufixo numérico (-1, -2, ...) até não colidir."""
    slug = base or "item"
    if slug not in taken:
        return slug
    counter = 1
    while f"{slug}-{counter}" in taken:
        counter += 1
    return f"{slug}-{counter}"
